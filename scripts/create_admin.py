"""Bootstrap the first admin account.

Run manually:

    python -m scripts.create_admin --email admin@awc.local --name "District Admin"

The password is read from ADMIN_PASSWORD or prompted for.
"""
from __future__ import annotations

import argparse
import getpass
import os

from app.api.deps import get_auth_gateway
from app.db.session import SessionLocal, init_db
from app.services.accounts import register_account
from app.services.errors import DashboardError
from app.utils.logging_setup import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the first admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True, help="Full name")
    args = parser.parse_args()

    configure_logging()
    init_db()
    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")

    db = SessionLocal()
    try:
        session = register_account(
            db,
            get_auth_gateway(),
            email=args.email,
            password=password,
            full_name=args.name,
            role="admin",
        )
        print(f"✅ Admin created: {session.email}")
    except DashboardError as e:
        raise SystemExit(f"{e.category}: {e.detail}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
