"""
Guide2Umrah Backend: Admin CLI
================================

What:  Account administration from the shell; there is no signup endpoint.
How:   argparse sub-commands run one AuthService call inside `session_scope()`.

Usage (from backend/):
    python -m guide2umrah.cli create-user admin@guide2umrah.be
    python -m guide2umrah.cli create-user admin@guide2umrah.be --password s3cret
    python -m guide2umrah.cli find-user admin@guide2umrah.be

Exit codes: 0 success, 1 account not found / invalid input, 2 usage error.
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import List, Optional

from guide2umrah.database import dispose_engine, session_scope
from guide2umrah.exceptions import Guide2UmrahError
from guide2umrah.services.auth_service import auth_service

logger = logging.getLogger(__name__)


async def create_user(email: str, password: str) -> int:
    async with session_scope() as db:
        user, created = await auth_service.create_user(db, email, password)
    if created:
        print(f"Account created: {user.email} ({user.id})")
    else:
        print(f"Account already exists: {user.email}; password left unchanged")
    return 0


async def find_user(email: str) -> int:
    async with session_scope() as db:
        user = await auth_service.get_user_by_email(db, email)
    if user is None:
        print(f"No account for {email}")
        return 1
    print(f"Found {user.email} ({user.id}), created {user.created_at:%Y-%m-%d %H:%M}")
    return 0


def read_password(prompt=getpass.getpass) -> str:
    password = prompt("Password: ")
    if password != prompt("Repeat password: "):
        raise Guide2UmrahError(message="Passwords do not match.")
    return password


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m guide2umrah.cli",
        description="Guide2Umrah dashboard account administration",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-user", help="Create a dashboard account (idempotent)")
    create.add_argument("email")
    create.add_argument(
        "--password",
        help="Password for the new account; prompted for when omitted",
    )

    find = commands.add_parser("find-user", help="Check whether an account exists")
    find.add_argument("email")
    return parser


async def run(args: argparse.Namespace) -> int:
    try:
        if args.command == "create-user":
            password = args.password if args.password is not None else read_password()
            return await create_user(args.email, password)
        return await find_user(args.email)
    finally:
        await dispose_engine()


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except Guide2UmrahError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
