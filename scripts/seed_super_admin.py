"""
Seed Super Admin

Creates the initial super admin account. Super admins can only be created
this way; there is no registration endpoint for them.

The account is created ACTIVE and without an external identity. The
identity provider's subject is bound at the first sign-in.

Usage:
    python scripts/seed_super_admin.py <email> "<name>"

    or with SEED_SUPER_ADMIN_EMAIL / SEED_SUPER_ADMIN_NAME set in the
    environment.
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lms.core.config import settings
from lms.models import SuperAdmin
from lms.modules.accounts.models import AccountStatus


async def seed_super_admin(email: str, name: str) -> None:
    """Create the super admin if it doesn't exist."""
    email = email.strip().lower()

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        result = await db.execute(select(SuperAdmin).where(SuperAdmin.email == email))
        existing = result.scalar_one_or_none()

        if existing:
            print(f"Super admin already exists: {email}")
            print(f"  ID: {existing.id}")
            print(f"  Status: {existing.status.value}")
        else:
            super_admin = SuperAdmin(
                email=email,
                name=name,
                external_id=None,  # Bound at first sign-in
                status=AccountStatus.ACTIVE,
            )
            db.add(super_admin)
            await db.commit()
            await db.refresh(super_admin)

            print("Super admin created successfully!")
            print(f"  Email: {email}")
            print(f"  Name: {name}")
            print(f"  ID: {super_admin.id}")

    await engine.dispose()


if __name__ == "__main__":
    args = sys.argv[1:]
    email = args[0] if args else os.environ.get("SEED_SUPER_ADMIN_EMAIL")
    name = args[1] if len(args) > 1 else os.environ.get("SEED_SUPER_ADMIN_NAME", "Super Admin")

    if not email:
        print(__doc__)
        sys.exit(1)

    asyncio.run(seed_super_admin(email, name))
