import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.crud_subscription import CRUDSubscription
from src.marketplace.models.base import utcnow
from src.marketplace.models.subscription import Subscription
from src.marketplace.schemas.enums import SubscriptionStatus
from src.marketplace.services.role_projection import RoleProjection


class SubscriptionExpiryService:
    """Periodic sweep that expires lapsed subscriptions.

    Meant to be triggered by an external scheduler, one run at a time.
    Each record is handled on its own: a failure is logged and the sweep moves on.
    """

    def __init__(
        self,
        store: CRUDSubscription,
        roles: RoleProjection,
        clock: Callable[[], datetime] = utcnow,
        expiring_soon_days: int = 7,
    ):
        self.store = store
        self.roles = roles
        self.clock = clock
        self.expiring_soon_days = expiring_soon_days
        self.logger = logging.getLogger(__name__)

    async def process_expired_subscriptions(self, db: AsyncSession) -> int:
        """Expire every active subscription past its expiry and revert the owner's role.

        Returns:
            int: Number of subscriptions moved to `expired`
        """
        now = self.clock()
        lapsed = await self.store.find_expired(db, now=now)
        # Plain values survive a rollback that expires loaded objects
        targets = [(s.id, s.uuid, s.user_id) for s in lapsed]
        self.logger.info(f"Found {len(targets)} expired subscriptions to process")

        processed = 0
        for subscription_id, subscription_uuid, user_id in targets:
            try:
                subscription = await self.store.get(db, id=subscription_id)
                if not subscription or subscription.status != SubscriptionStatus.ACTIVE.value:
                    continue
                await self.store.update_subscription(
                    db,
                    db_obj=subscription,
                    changes={"status": SubscriptionStatus.EXPIRED},
                    now=now,
                )
            except Exception as e:
                await db.rollback()
                self.logger.error(f"Failed to expire subscription {subscription_uuid}: {str(e)}", exc_info=True)
                continue

            processed += 1
            role_reverted = await self.roles.revert_to_customer(db, user_id)
            self.logger.info(f"Expired subscription {subscription_uuid} (role reverted: {role_reverted})")

        self.logger.info(f"Processed {processed} expired subscriptions")
        return processed

    async def notify_expiring_soon(self, db: AsyncSession, days: Optional[int] = None) -> List[Subscription]:
        """Find subscriptions about to expire. Delivery is left to the caller."""
        window = days if days is not None else self.expiring_soon_days
        expiring = await self.store.find_expiring_soon(db, now=self.clock(), days=window)
        for subscription in expiring:
            self.logger.info(
                f"Subscription {subscription.uuid} for user {subscription.user_id} "
                f"expires at {subscription.expires_at.isoformat()}"
            )
        self.logger.info(f"Found {len(expiring)} subscriptions expiring within {window} days")
        return expiring
