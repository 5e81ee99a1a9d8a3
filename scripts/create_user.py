"""Create a user, or update an existing user's roles / name / active flag.

Usage:
  python scripts/create_user.py --email alice@example.com --password 'Secret123' --full-name Alice --role user
  python scripts/create_user.py --email alice@example.com --update --role admin --role user

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from storefront.auth.crud import get_user_by_email, get_user_by_id, insert_user, public_user, update_user
from storefront.auth.roles import VALID_ROLES
from storefront.auth.security import PasswordHasher
from storefront.config import load_config
from storefront.db import connect, init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password")
    ap.add_argument("--full-name", default="")
    ap.add_argument("--role", action="append", choices=list(VALID_ROLES), dest="roles")
    ap.add_argument("--inactive", action="store_true")
    ap.add_argument("--update", action="store_true", help="modify an existing user instead of creating one")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        if args.update:
            row = get_user_by_email(conn, args.email)
            if row is None:
                raise SystemExit(f"No user with email {args.email}")
            update_user(
                conn,
                row["id"],
                full_name=args.full_name or None,
                roles=args.roles,
                is_active=False if args.inactive else None,
            )
            u = public_user(get_user_by_id(conn, row["id"]))
            print("Updated user:")
        else:
            if not args.password:
                raise SystemExit("--password is required when creating a user")
            u = insert_user(
                conn,
                email=args.email,
                password_hash=PasswordHasher().hash(args.password),
                full_name=args.full_name or args.email,
                roles=args.roles or ["user"],
                is_active=not args.inactive,
            )
            print("Created user:")

    print(u)


if __name__ == "__main__":
    main()
