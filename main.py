#!/usr/bin/env python3
"""
Barnacle -- account administration for the Barnacle API.

Works directly against the credential store configured by DATABASE_URL, so it
can run before the API is started (e.g. to seed the demo accounts).

Usage:
  python main.py seed
  python main.py create-user --email a@b.co --name "Ann Lee" --role "Fleet Operator"
  python main.py list-users
  python main.py deactivate --email a@b.co

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the credential store (default: sqlite file
                 next to the auth package).
  DEBUG          Set to "true" for development defaults.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.errors import AuthError, DuplicateEmail
from auth.models import ADMINISTRATOR, DEMO_USER, FLEET_OPERATOR, ROLES, SHIP_CAPTAIN, User
from auth.store import UserStore
from auth.validation import FieldError, validate_email, validate_full_name, validate_password

logger = logging.getLogger("barnacle.cli")

# Demo accounts. Their passwords are deliberately simple and predate the
# signup password rules, so they are written straight to the store.
DEMO_USERS = [
    ("John Doe", "admin@barnacle.com", "admin123", ADMINISTRATOR),
    ("Sarah Wilson", "captain@barnacle.com", "captain123", SHIP_CAPTAIN),
    ("Mike Johnson", "operator@barnacle.com", "operator123", FLEET_OPERATOR),
    ("Demo User", "demo@barnacle.com", "demo123", DEMO_USER),
]


def seed(store: UserStore) -> int:
    """Create the demo accounts, skipping any email that already exists.

    Returns the number of accounts created.
    """
    created = 0
    for full_name, email, password, role in DEMO_USERS:
        if store.find_by_email(email) is not None:
            print(f"  {email} already exists, skipped")
            continue
        try:
            store.create(User(email=email, full_name=full_name, password=password, role=role))
        except DuplicateEmail:
            print(f"  {email} already exists, skipped")
            continue
        print(f"  Created {role}: {email}")
        created += 1
    print(f"\n  {created} account(s) created, {len(DEMO_USERS) - created} skipped.\n")
    return created


def create_user(store: UserStore, email: str, full_name: str, role: str, password: Optional[str] = None) -> User:
    """Create one account after applying the signup field rules.

    Unlike self-signup, any role (Administrator included) may be assigned here.
    Raises FieldError for a rule violation and DuplicateEmail for an existing email.
    """
    email = validate_email(email)
    full_name, first_name, last_name = validate_full_name(full_name)
    if password is None:
        password = getpass.getpass("  Password: ")
        if password != getpass.getpass("  Confirm password: "):
            raise FieldError("Passwords do not match")
    password = validate_password(password)
    return store.create(
        User(
            email=email,
            full_name=full_name,
            first_name=first_name,
            last_name=last_name,
            password=password,
            role=role,
        )
    )


def list_users(store: UserStore) -> list[User]:
    users = store.list_users()
    if not users:
        print("  No accounts. Run `python main.py seed` to create the demo accounts.")
        return users
    print(f"\n  {'EMAIL':<32} {'NAME':<24} {'ROLE':<16} {'ACTIVE':<7} LAST LOGIN")
    print("  " + "-" * 100)
    for u in users:
        active = "yes" if u.is_active else "no"
        print(f"  {u.email:<32} {u.full_name:<24} {u.role:<16} {active:<7} {u.last_login or '-'}")
    print()
    return users


def deactivate(store: UserStore, email: str) -> bool:
    """Mark an account inactive. Returns False if no account has that email."""
    user = store.find_by_email(email)
    if user is None:
        print(f"  [!] No account with email '{email}'.")
        return False
    if not user.is_active:
        print(f"  {user.email} is already deactivated.")
        return True
    user.is_active = False
    store.save(user)
    logger.info("Account deactivated from CLI: %s", user.email)
    print(f"  Deactivated {user.email}. Existing tokens stop working on their next request.")
    return True


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="barnacle",
        description="Account administration for the Barnacle API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed
  python main.py create-user --email ann@fleet.io --name "Ann Lee" --role "Ship Captain"
  python main.py list-users
  python main.py deactivate --email ann@fleet.io
  DATABASE_URL=sqlite:////tmp/barnacle.db python main.py seed
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("seed", help="Create the four demo accounts (existing emails are skipped)")

    p_create = sub.add_parser("create-user", help="Create one account with any role")
    p_create.add_argument("--email", required=True, help="Email address (case-insensitive)")
    p_create.add_argument("--name", required=True, metavar="FULL_NAME", help="Full name, e.g. 'Ann Lee'")
    p_create.add_argument(
        "--role",
        choices=list(ROLES),
        default=DEMO_USER,
        metavar="ROLE",
        help=f"One of: {', '.join(ROLES)} (default: {DEMO_USER})",
    )
    p_create.add_argument(
        "--password",
        default=None,
        help="Password. Prompted for when omitted, which keeps it out of shell history.",
    )

    sub.add_parser("list-users", help="List all accounts")

    p_deactivate = sub.add_parser("deactivate", help="Deactivate an account")
    p_deactivate.add_argument("--email", required=True, help="Email address of the account")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s %(message)s")

    store = UserStore()
    try:
        if args.command == "seed":
            print("\nBarnacle -- seeding demo accounts")
            print("-" * 40)
            seed(store)
        elif args.command == "create-user":
            try:
                user = create_user(store, args.email, args.name, args.role, args.password)
            except FieldError as e:
                print(f"  [!] {e}")
                return 1
            except AuthError as e:
                print(f"  [!] {e.message}")
                return 1
            print(f"  Created {user.role}: {user.email}")
        elif args.command == "list-users":
            list_users(store)
        elif args.command == "deactivate":
            if not deactivate(store, args.email):
                return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
