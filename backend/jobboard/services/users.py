from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.errors import ConflictError
from jobboard.models import User, UserRole


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.user_email == email))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def create(self, email: str, hashed_password: str, role: UserRole = UserRole.APPLICANT) -> User:
        user = User(user_email=email, user_password=hashed_password, user_role=role.value)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with another registration for the same email
            await self.db.rollback()
            raise ConflictError("Email is already registered") from None
        await self.db.refresh(user)
        return user
