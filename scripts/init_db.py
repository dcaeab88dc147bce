"""Script to initialize the database and create the first admin account."""

import asyncio
import os
import sys

from sqlalchemy import select, text

from app.core.security import get_password_hash
from app.database import engine
from app.models.appointments import metadata as appointments_metadata
from app.models.patients import metadata as patients_metadata
from app.models.users import metadata as users_metadata
from app.models.users import users
from app.schemas.users import Permission, StaffRole


async def init_db() -> None:
    """Create all tables, extensions and the overlap constraint."""
    async with engine.begin() as conn:
        # Enable pgcrypto extension
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        # Referenced tables first
        for metadata in (users_metadata, patients_metadata, appointments_metadata):
            await conn.run_sync(metadata.create_all)

    print("✓ Database initialized successfully!")


async def create_admin(email: str, password: str) -> None:
    """Create the bootstrap admin unless the email is already taken."""
    async with engine.begin() as conn:
        existing = await conn.execute(select(users.c.id).where(users.c.email == email.lower()))
        if existing.first() is not None:
            print(f"• Admin {email} already exists, skipping")
            return

        await conn.execute(
            users.insert().values(
                email=email.lower(),
                hashed_password=get_password_hash(password),
                first_name="Clinic",
                last_name="Admin",
                role=StaffRole.ADMIN.value,
                permissions=[permission.value for permission in Permission],
            )
        )

    print(f"✓ Admin {email} created")


async def main() -> None:
    await init_db()

    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if email and password:
        await create_admin(email, password)
    elif email or password:
        print("✗ Set both ADMIN_EMAIL and ADMIN_PASSWORD to create an admin", file=sys.stderr)
        sys.exit(1)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
