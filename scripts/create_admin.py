#!/usr/bin/env python3
"""
Create an ADMIN account, or promote an existing user to ADMIN.

Usage:
  python scripts/create_admin.py --email admin@example.com [--password ...] [--name "Ada Lovelace"]
"""
from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nexus_cards.core.security import hash_password
from nexus_cards.db.create_tables import create_all
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.auth_service import MIN_PASSWORD_LENGTH


def main() -> None:
    ap = argparse.ArgumentParser(description="Create or promote an admin user")
    ap.add_argument("--email", required=True, help="Admin e-mail")
    ap.add_argument("--password", help="Password (prompted when omitted for new users)")
    ap.add_argument("--name", default="", help='Full name, e.g. "Ada Lovelace"')
    args = ap.parse_args()

    create_all()
    users = UserRepository()
    email = args.email.strip().lower()
    existing = users.get_by_email(email)
    if existing:
        users.update(existing.id, role="ADMIN")
        print(f"OK: {email} promoted to ADMIN")
        return

    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    first_name, _, last_name = args.name.strip().partition(" ")
    user = users.create(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name or None,
        last_name=last_name or None,
        role="ADMIN",
        email_verified=True,
    )
    print("OK: admin created")
    print(f"  id:    {user.id}")
    print(f"  email: {user.email}")


if __name__ == "__main__":
    main()
