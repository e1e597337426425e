import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.crud_user import CRUDUser
from src.marketplace.schemas.enums import UserRole


class RoleProjection:
    """Writes the user's role as a side effect of subscription changes.

    Writes are best-effort: a failure is logged and reported as False, never raised,
    so the subscription change that triggered it still stands.
    """

    def __init__(self, users: CRUDUser):
        self.users = users
        self.logger = logging.getLogger(__name__)

    async def grant_premium(self, db: AsyncSession, user_id: int) -> bool:
        return await self._set_role(db, user_id, UserRole.MEMBERSHIPS)

    async def revert_to_customer(self, db: AsyncSession, user_id: int) -> bool:
        return await self._set_role(db, user_id, UserRole.CUSTOMER)

    async def _set_role(self, db: AsyncSession, user_id: int, role: UserRole) -> bool:
        try:
            updated = await self.users.update_role(db, user_id=user_id, role=role)
        except Exception as e:
            await db.rollback()
            self.logger.warning(f"Failed to set role {role.value} for user {user_id}: {str(e)}")
            return False

        if not updated:
            self.logger.warning(f"Role {role.value} not applied, user {user_id} not found")
        return updated
