#!/usr/bin/env python3
"""Create a booking-service user (optionally an admin) and print a token for it."""

import argparse
import asyncio
from datetime import timedelta

from sqlalchemy import select

from trekbook.core.security import create_access_token
from trekbook.database import close_db, get_db_context, init_db
from trekbook.models.user import User


async def create_user(email: str, name: str | None, admin: bool) -> User:
    """Create the user if it doesn't exist, updating its role otherwise."""
    await init_db()
    async with get_db_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            user.role = "admin" if admin else user.role
            user.is_active = True
            print(f"Updated existing user: {email}")
        else:
            user = User(email=email, name=name, role="admin" if admin else "user")
            session.add(user)
            await session.flush()
            print(f"Created user: {email}")

    await close_db()
    return user


def main():
    parser = argparse.ArgumentParser(description="Create a user")
    parser.add_argument("email")
    parser.add_argument("--name", default=None)
    parser.add_argument("--admin", action="store_true", help="Grant the admin role")
    args = parser.parse_args()

    user = asyncio.run(create_user(args.email, args.name, args.admin))
    print(f"User ID: {user.id}")
    print(f"Role:    {user.role}")
    print(f"Token:   {create_access_token({'sub': str(user.id)}, timedelta(hours=12))}")


if __name__ == "__main__":
    main()
