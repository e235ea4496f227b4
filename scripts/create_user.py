#!/usr/bin/env python3
"""CLI script to register local accounts.

Usage:
    python scripts/create_user.py user@example.com password123 Jane Doe
    python scripts/create_user.py admin@example.com password123 Ada Admin --superuser
"""

import argparse
import asyncio
import sys

from localauth.config import Settings
from localauth.infrastructure.database import init_database
from localauth.modules.auth import AuthError, AuthService, UserRepository
from localauth.modules.nonce import SQLiteTokenStore, TokenService


async def create_user(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    is_superuser: bool = False,
) -> int:
    """Register a user in the configured database.

    No welcome email is sent.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    settings = Settings()
    db = await init_database(settings.database_path)

    try:
        auth_service = AuthService(
            UserRepository(db),
            TokenService(SQLiteTokenStore(db)),
        )
        user = await auth_service.register_local(
            email, password, first_name, last_name, is_superuser=is_superuser
        )
    except AuthError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1
    finally:
        await db.disconnect()

    role = "superuser" if user.is_superuser else "user"
    print(f"✓ Created {role}: {user.email}")
    print(f"  User ID: {user.id}")
    print(f"  Created at: {user.created_at}")
    return 0


def main() -> int:
    """Parse arguments and create the user."""
    parser = argparse.ArgumentParser(
        description="Register a local account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a regular user
  python scripts/create_user.py user@example.com mypassword Jane Doe

  # Create a superuser
  python scripts/create_user.py admin@example.com adminpass Ada Admin --superuser
        """,
    )

    parser.add_argument("email", help="User's email address")
    parser.add_argument("password", help="User's password")
    parser.add_argument("first_name", help="User's first name")
    parser.add_argument("last_name", help="User's last name")
    parser.add_argument(
        "--superuser",
        action="store_true",
        help="Create user with superuser privileges",
    )

    args = parser.parse_args()

    return asyncio.run(
        create_user(
            args.email, args.password, args.first_name, args.last_name, args.superuser
        )
    )


if __name__ == "__main__":
    sys.exit(main())
