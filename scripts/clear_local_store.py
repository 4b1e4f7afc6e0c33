#!/usr/bin/env python3
"""
Clear the local mirror store.

Usage:
    python scripts/clear_local_store.py [--dry-run]
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from kgoc.config import settings
from kgoc.storage.factory import get_local_store


def clear_local_store(dry_run: bool = False):
    local = get_local_store()
    keys = local.keys()
    print(f"Local store: {settings.local_store_path} ({len(keys)} keys)")
    for key in sorted(keys):
        print(f"  {key}")

    if dry_run:
        print("Dry run, nothing removed")
        return
    local.clear()
    print("Local store cleared")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Clear the local mirror store")
    parser.add_argument("--dry-run", action="store_true", help="List keys without removing them")
    args = parser.parse_args()

    clear_local_store(args.dry_run)
