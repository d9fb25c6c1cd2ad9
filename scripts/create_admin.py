"""Create the first admin account.

Usage:
    python scripts/create_admin.py --user-name admin --password 's3cret!'

Registration through the API only ever creates learner accounts; content
administration needs an admin, so the first one is created here. Re-running
the script with an existing user name leaves that account untouched.
"""

import argparse
import getpass
import sys

from edutest.db.session import init_db, session_scope
from edutest.services.accounts import ensure_admin


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("--user-name", default="admin")
    parser.add_argument("--full-name", default="System Administrator")
    parser.add_argument("--password", help="prompted for when omitted")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Admin password: ")
    if len(password) < 6:
        print("❌ Password must be at least 6 characters")
        return 1

    init_db()
    with session_scope() as db:
        admin, created = ensure_admin(db, args.user_name, args.full_name, password)

    if created:
        print(f"✅ Admin user created: {admin.user_name}")
    else:
        print(f"⚠️  User {admin.user_name} already exists (role={admin.role.value})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
