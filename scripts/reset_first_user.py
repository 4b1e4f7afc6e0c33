#!/usr/bin/env python3
"""
Reset first-user detection so the next user to initialize becomes admin.
Clears stored roles, the user registry, the first-user marker and the cached
per-user entries in the local store.

Usage:
    python scripts/reset_first_user.py [--dry-run]
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from kgoc.db import Base, engine
from kgoc.models import models  # noqa: F401
from kgoc.services.roles import (
    FIRST_USER_FLAG_KEY,
    USER_KEY_PREFIXES,
    USER_ROLES_COLLECTION,
    USERS_COLLECTION,
    reset_first_user_detection,
)
from kgoc.storage.factory import get_document_store, get_local_store


def reset_first_user(dry_run: bool = False, remote=None, local=None):
    if remote is None:
        Base.metadata.create_all(bind=engine)
        remote = get_document_store()
    local = local or get_local_store()

    keys = [k for k in local.keys() if k.startswith(USER_KEY_PREFIXES)]
    for prefix in USER_KEY_PREFIXES:
        print(f"- {prefix}*: {sum(1 for k in keys if k.startswith(prefix))}")
    print(f"- first-user flag set: {local.get_item(FIRST_USER_FLAG_KEY) is not None}")
    print(f"- stored roles: {len(remote.query(USER_ROLES_COLLECTION))}")
    print(f"- registered users: {len(remote.query(USERS_COLLECTION))}")

    if dry_run:
        print("Dry run, nothing removed")
        return None

    removed = reset_first_user_detection(remote, local)
    print(
        f"Removed {removed['localKeys']} local entries, {removed['roles']} stored roles "
        f"and {removed['users']} registered users"
    )
    print("The next user to initialize will be assigned the admin role")
    return removed


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reset first-user detection")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be removed")
    args = parser.parse_args()

    reset_first_user(args.dry_run)
