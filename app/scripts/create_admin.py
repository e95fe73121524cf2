"""Bootstrap the first admin account.

    python -m app.scripts.create_admin --email ops@example.com --password '...'

Values fall back to ADMIN_EMAIL / ADMIN_PASSWORD. Re-running for an existing
account only changes it when --reset-password is given.
"""
import argparse
import asyncio
import os
import sys

from sqlalchemy import select

from app.constants.roles import Role
from app.core.config import IS_PRODUCTION
from app.core.db import AsyncSessionLocal, init_models
from app.core.security import hash_password
from app.models.users.user_models import User

MIN_PASSWORD_LENGTH = 8


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or repair the bootstrap admin user")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@jobcode-erp.local"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--full-name", default="Administrator")
    parser.add_argument(
        "--reset-password",
        action="store_true",
        help="overwrite the password, reactivate and re-grant admin on an existing account",
    )
    return parser.parse_args(argv)


async def ensure_admin(email: str, password: str, full_name: str, reset_password: bool = False) -> str:
    email = email.strip().lower()
    await init_models()

    async with AsyncSessionLocal() as session:
        user = (await session.execute(select(User).where(User.username == email))).scalar_one_or_none()

        if user is None:
            session.add(
                User(
                    username=email,
                    full_name=full_name,
                    password_hash=hash_password(password),
                    role=Role.ADMIN,
                    is_active=True,
                )
            )
            outcome = "created"
        elif reset_password:
            user.password_hash = hash_password(password)
            user.role = Role.ADMIN
            user.is_active = True
            user.token_version += 1
            user.version += 1
            outcome = "reset"
        else:
            return "exists"

        await session.commit()
    return outcome


def main(argv=None) -> int:
    args = _parse_args(argv)

    if not args.password:
        if IS_PRODUCTION:
            print("--password or ADMIN_PASSWORD is required in production", file=sys.stderr)
            return 2
        args.password = "admin123"
    if IS_PRODUCTION and len(args.password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", file=sys.stderr)
        return 2

    outcome = asyncio.run(ensure_admin(args.email, args.password, args.full_name, args.reset_password))
    print(f"Admin {args.email.lower()}: {outcome}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
