import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.base import CRUDBase
from src.marketplace.models.subscription import Subscription
from src.marketplace.schemas.enums import SubscriptionStatus

logger = logging.getLogger(__name__)

# Fields the lifecycle may change after creation
MUTABLE_FIELDS = frozenset({"status", "expires_at", "auto_renew", "cancellation_reason"})


class CRUDSubscription(CRUDBase[Subscription, Any, Any]):
    """Persistence for user subscriptions. Rows are never physically deleted."""

    async def find_active_by_user(
        self, db: AsyncSession, *, user_id: int, now: datetime
    ) -> Optional[Subscription]:
        """Get the user's active, unexpired subscription, newest first."""
        stmt = (
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.expires_at > now,
            )
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    async def has_active_subscription(self, db: AsyncSession, *, user_id: int, now: datetime) -> bool:
        return await self.find_active_by_user(db, user_id=user_id, now=now) is not None

    async def list_by_user(self, db: AsyncSession, *, user_id: int) -> List[Subscription]:
        """Get the user's subscription history, newest first."""
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def create_pending(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        plan_id: int,
        payment_method: Optional[str],
        payment_reference: Optional[str],
        payment_amount: Optional[Decimal],
        auto_renew: bool,
        now: datetime,
        commit: bool = True,
    ) -> Subscription:
        """Insert a subscription in `pending` status."""
        subscription = await self.create(
            db,
            obj_in={
                "user_id": user_id,
                "subscription_plan_id": plan_id,
                "status": SubscriptionStatus.PENDING.value,
                "payment_method": payment_method or None,
                "payment_reference": payment_reference or None,
                "payment_amount": payment_amount,
                "auto_renew": auto_renew,
                "created_at": now,
                "updated_at": now,
            },
            commit=commit,
        )
        logger.info(f"Subscription {subscription.uuid} inserted for user {user_id}")
        return subscription

    async def update_subscription(
        self,
        db: AsyncSession,
        *,
        db_obj: Subscription,
        changes: Dict[str, Any],
        now: datetime,
        commit: bool = True,
    ) -> Subscription:
        """Partial update of the mutable fields.

        Moving to `active` also stamps `started_at`. `updated_at` is always bumped.
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable on a subscription: {sorted(unknown)}")

        update_data = dict(changes)
        status = update_data.get("status")
        if isinstance(status, SubscriptionStatus):
            update_data["status"] = status.value
        if update_data.get("status") == SubscriptionStatus.ACTIVE.value:
            update_data["started_at"] = now
        update_data["updated_at"] = now

        subscription = await self.update(db, db_obj=db_obj, obj_in=update_data, commit=commit)
        logger.info(f"Subscription {subscription.uuid} updated: {sorted(changes)}")
        return subscription

    async def record_cancellation(
        self, db: AsyncSession, *, uuid: str, reason: str, now: datetime, commit: bool = True
    ) -> bool:
        """Stamp cancellation metadata. Status is left to the caller."""
        stmt = (
            update(Subscription)
            .where(Subscription.uuid == uuid)
            .values(cancelled_at=now, cancellation_reason=reason, updated_at=now)
        )
        result = await db.execute(stmt)
        if commit:
            await db.commit()
        cancelled = result.rowcount > 0
        logger.info(f"Cancellation recorded for {uuid}: {result.rowcount} rows affected")
        return cancelled

    async def find_expired(self, db: AsyncSession, *, now: datetime) -> List[Subscription]:
        """Get active subscriptions whose expiry has passed."""
        stmt = (
            select(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.expires_at <= now,
            )
            .order_by(Subscription.expires_at.asc(), Subscription.id.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def find_expiring_soon(
        self, db: AsyncSession, *, now: datetime, days: int
    ) -> List[Subscription]:
        """Get active subscriptions expiring within `days`, soonest first."""
        stmt = (
            select(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.expires_at > now,
                Subscription.expires_at <= now + timedelta(days=days),
            )
            .order_by(Subscription.expires_at.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def expire_lapsed_for_user(self, db: AsyncSession, *, user_id: int, now: datetime) -> int:
        """Mark the user's active-but-lapsed rows expired so they release the active slot."""
        stmt = (
            update(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.expires_at <= now,
            )
            .values(status=SubscriptionStatus.EXPIRED.value, updated_at=now)
        )
        result = await db.execute(stmt)
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} lapsed subscriptions for user {user_id}")
        return result.rowcount
