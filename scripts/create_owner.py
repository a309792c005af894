import asyncio
import os
import sys

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from tramoo.core.logging import configure_logging
from tramoo.core.permissions import Role
from tramoo.core.security import get_password_hash
from tramoo.db.session import async_session_maker
from tramoo.models.user import User


async def create_owner(email: str, name: str, password: str) -> int:
    async with async_session_maker() as session:
        res = await session.execute(select(User).where(User.email == email))
        if res.scalar_one_or_none():
            print(f"Error: User with email '{email}' already exists. Use scripts/set_role.py instead.")
            return 1

        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
            role=Role.OWNER.value,
        )
        session.add(user)
        await session.commit()
        print(f"Success: owner account created for {email} ({user.id})")
        return 0


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python scripts/create_owner.py <email> <name> <password>")
        sys.exit(1)
    configure_logging()
    sys.exit(asyncio.run(create_owner(sys.argv[1], sys.argv[2], sys.argv[3])))
