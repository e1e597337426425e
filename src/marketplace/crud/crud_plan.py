import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.base import CRUDBase
from src.marketplace.models.subscription import SubscriptionPlan
from src.marketplace.schemas.subscription import PlanCreate, PlanUpdate

logger = logging.getLogger(__name__)


class CRUDPlan(CRUDBase[SubscriptionPlan, PlanCreate, PlanUpdate]):
    """Plan catalog. Read-mostly; plans are deactivated, never deleted."""

    async def list_active_plans(self, db: AsyncSession) -> List[SubscriptionPlan]:
        """Get active plans, cheapest first."""
        stmt = (
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price.asc(), SubscriptionPlan.id.asc())
        )
        result = await db.execute(stmt)
        plans = list(result.scalars().all())
        logger.info(f"Found {len(plans)} active subscription plans")
        return plans

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[SubscriptionPlan]:
        """Get a plan by its unique name."""
        stmt = select(SubscriptionPlan).where(SubscriptionPlan.name == name)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_plan(self, db: AsyncSession, *, obj_in: PlanCreate) -> SubscriptionPlan:
        plan = await self.create(db, obj_in=obj_in)
        logger.info(f"Created subscription plan {plan.uuid} ({plan.name})")
        return plan

    async def update_plan(
        self, db: AsyncSession, *, uuid: str, obj_in: PlanUpdate
    ) -> Optional[SubscriptionPlan]:
        """Partially update a plan. Returns None when the plan does not exist."""
        plan = await self.get_by_uuid(db, uuid=uuid)
        if not plan:
            return None
        plan = await self.update(db, db_obj=plan, obj_in=obj_in)
        logger.info(f"Updated subscription plan {uuid}")
        return plan

    async def deactivate_plan(self, db: AsyncSession, *, uuid: str) -> bool:
        """Soft-disable a plan so it can no longer be subscribed to."""
        plan = await self.get_by_uuid(db, uuid=uuid)
        if not plan:
            return False
        await self.update(db, db_obj=plan, obj_in={"is_active": False})
        logger.info(f"Deactivated subscription plan {uuid}")
        return True
