#!/usr/bin/env python3
"""
Force the admin role onto a user.

Usage:
    python scripts/assign_admin.py --user-id <uid> [--verify]
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from kgoc.db import Base, engine
from kgoc.models import models  # noqa: F401
from kgoc.services.roles import get_accessible_modules, get_user_role, override_to_admin_role
from kgoc.storage.factory import get_document_store, get_local_store


def assign_admin(user_id: str, verify: bool = False) -> bool:
    Base.metadata.create_all(bind=engine)
    remote = get_document_store()
    local = get_local_store()

    result = override_to_admin_role(remote, local, user_id, assigned_by="assign_admin_script")
    print(result.message)
    if not result.success:
        return False

    if verify:
        current = get_user_role(remote, local, user_id)
        role = getattr(current, "role", None)
        print(f"Current role: {role} (source: {current.source})")
        for module, allowed in get_accessible_modules(role).items():
            print(f"  {module}: {'yes' if allowed else 'no'}")
        return role == "admin"
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Assign the admin role to a user")
    parser.add_argument("--user-id", required=True, help="User id to promote")
    parser.add_argument("--verify", action="store_true", help="Read the role back and show module access")
    args = parser.parse_args()

    sys.exit(0 if assign_admin(args.user_id, args.verify) else 1)
