"""
Database management commands.

    python -m rentals.manage create-tables
    python -m rentals.manage reset --confirm
    python -m rentals.manage create-admin admin@example.com 'S3cretpass'
"""

import argparse
import asyncio
import logging
import sys

from rentals.config import settings
from rentals.database import AsyncSessionLocal, close_db_connection, create_tables, drop_tables
from rentals.models.user import UserRole
from rentals.repositories.user import UserRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def create_admin(email: str, password: str, first_name: str, last_name: str) -> None:
    """Create an admin account unless the email is already registered."""
    async with AsyncSessionLocal() as session:
        user_repo = UserRepository(session)
        existing = await user_repo.get_by_email(email)
        if existing:
            logger.info(f"User {existing.email} already exists, skipping")
            return
        user = await user_repo.create_user({
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "role": UserRole.ADMIN,
        })
        logger.info(f"Admin user created: {user.email}")


async def reset_database() -> None:
    await drop_tables()
    await create_tables()
    logger.info("Database reset completed")


async def _run(coro) -> None:
    try:
        await coro
    finally:
        await close_db_connection()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=f"{settings.app_name} database management")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create-tables", help="Create all tables")
    subparsers.add_parser("drop-tables", help="Drop all tables (development and testing only)")

    reset_parser = subparsers.add_parser("reset", help="Drop and recreate all tables")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("email")
    admin_parser.add_argument("password")
    admin_parser.add_argument("--first-name", default="Admin")
    admin_parser.add_argument("--last-name", default="")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "create-tables":
            asyncio.run(_run(create_tables()))

        elif args.command == "drop-tables":
            asyncio.run(_run(drop_tables()))

        elif args.command == "reset":
            if not args.confirm:
                print("Database reset requires --confirm flag")
                return 1
            asyncio.run(_run(reset_database()))

        elif args.command == "create-admin":
            asyncio.run(_run(create_admin(args.email, args.password, args.first_name, args.last_name)))

    except Exception as e:
        logger.error(f"Command failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
