import asyncio
import os
import sys

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from tramoo.core.logging import configure_logging
from tramoo.db.session import async_session_maker
from tramoo.models.user import User


async def list_users():
    async with async_session_maker() as session:
        result = await session.execute(
            select(User.email, User.name, User.role, User.is_google_user).order_by(User.joined_at)
        )
        users = result.all()
        if not users:
            print("No users found in database.")
        else:
            print("Current Users:")
            for email, name, role, is_google in users:
                origin = "google" if is_google else "password"
                print(f"- {name} ({email}) | Role: {role} | Sign-in: {origin}")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(list_users())
