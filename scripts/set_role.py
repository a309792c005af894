import asyncio
import os
import sys

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from tramoo.core.logging import configure_logging
from tramoo.core.permissions import Role
from tramoo.db.session import async_session_maker
from tramoo.models.user import User


async def set_role(email: str, role: Role) -> int:
    """Set a role directly, bypassing the API policy. For bootstrapping and recovery."""
    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if not user:
            print(f"Error: User '{email}' not found.")
            return 1

        previous = user.role
        user.role = role.value
        await session.commit()
        print(f"Success: {user.name} ({user.email}) {previous} -> {role.value}")
        return 0


if __name__ == "__main__":
    roles = ", ".join(r.value for r in Role)
    if len(sys.argv) < 3 or sys.argv[2] not in {r.value for r in Role}:
        print(f"Usage: python scripts/set_role.py <email> <{roles.replace(', ', '|')}>")
        sys.exit(1)
    configure_logging()
    sys.exit(asyncio.run(set_role(sys.argv[1], Role(sys.argv[2]))))
