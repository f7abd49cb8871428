from app.models.users.user_models import User
from app.core.db import AsyncSessionLocal
from app.core.security import hash_password
from sqlalchemy import select
import asyncio
import os


async def create_admin():
    email = os.getenv("ADMIN_EMAIL", "admin@inventrack.local").lower()

    async with AsyncSessionLocal() as session:
        if await session.scalar(select(User.id).where(User.username == email)):
            print(f"Admin {email} already exists")
            return

        admin = User(
            username=email,
            full_name="Administrator",
            password_hash=hash_password(os.getenv("ADMIN_PASSWORD", "admin12345")),
            role="admin",
            is_active=True,
        )
        session.add(admin)
        await session.commit()
        print(f"Admin {email} created")


if __name__ == "__main__":
    asyncio.run(create_admin())
