import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.base import CRUDBase
from src.marketplace.models.base import utcnow
from src.marketplace.models.core import User as UserModel
from src.marketplace.schemas import UserCreate
from src.marketplace.schemas.enums import UserRole

logger = logging.getLogger(__name__)


class CRUDUser(CRUDBase[UserModel, UserCreate, None]):
    """User directory. Owns the `role` column the subscription core projects into."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[UserModel]:
        """Get a user by email."""
        stmt = select(UserModel).where(UserModel.email == email)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_with_password(
        self, db: AsyncSession, *, obj_in: UserCreate, hashed_password: str,
        role: UserRole = UserRole.CUSTOMER, is_staff: bool = False,
    ) -> UserModel:
        """Create a user with an already hashed password. `is_staff` is only set here."""
        data = obj_in.model_dump(exclude={"password"})
        data.update(hashed_password=hashed_password, role=role.value, is_staff=is_staff)
        return await self.create(db, obj_in=data)

    async def update_role(self, db: AsyncSession, *, user_id: int, role: UserRole) -> bool:
        """Set the user's role. Returns False when no user row was changed."""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(role=role.value, updated_at=utcnow())
        )
        result = await db.execute(stmt)
        await db.commit()

        updated = result.rowcount > 0
        if updated:
            logger.info(f"User {user_id} role set to {role.value}")
        else:
            logger.warning(f"User {user_id} not found while setting role {role.value}")
        return updated
