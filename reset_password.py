#!/usr/bin/env python3
"""
Reset an account password in the EventHub SQLite database.

This script DOES NOT read or reveal any existing passwords.  It sets a
new PBKDF2 hash for the given user (by email) or admin (by username).
Resetting an admin also clears its failed-login counter and lock, which
makes it the way back in for an owner locked out of the API.

Usage:
    python reset_password.py --account admin --login admin --password "NewStrongPass!234"
    python reset_password.py --db ./eventhub.db --account user --login jane@example.com

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sys
from typing import Optional, Sequence

from eventhub_api.app.core.config import settings
from eventhub_api.app.core.db import get_cursor
from eventhub_api.app.core.security import hash_password
from eventhub_api.app.core.timeutils import to_iso, utcnow


MIN_PASSWORD_LENGTH = 6


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Reset an EventHub account password (SQLite).")
    ap.add_argument("--db", help="Path to the SQLite DB file. Defaults to DATABASE_URL.")
    ap.add_argument("--account", choices=("user", "admin"), default="user", help="Account kind")
    ap.add_argument("--login", required=True, help="User email or admin username")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args(argv)

    if args.db:
        if not os.path.exists(args.db):
            print(f"[!] DB not found: {args.db}", file=sys.stderr)
            return 1
        settings.database_url = os.path.abspath(args.db)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"[!] Password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        return 1

    login = args.login.strip().lower()
    hashed = hash_password(new_password)
    now = to_iso(utcnow())

    with get_cursor() as cursor:
        if args.account == "admin":
            cursor.execute(
                "UPDATE admin_users SET password = ?, login_attempts = 0, lock_until = NULL,"
                " updated_at = ? WHERE username = ?",
                (hashed, now, login),
            )
        else:
            cursor.execute(
                "UPDATE users SET password = ?, updated_at = ? WHERE email = ?",
                (hashed, now, login),
            )
        updated = cursor.rowcount

    if not updated:
        print(f"[!] No {args.account} found for: {login}", file=sys.stderr)
        return 2
    print(f"[+] Password updated for {args.account}: {login}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
