"""Access decisions for premium-gated features.

A decision is one of three values:

* ``Unrestricted``: administrative account, no subscription involved
* ``Subscribed``: a live, entitled subscription backs the access
* ``Denied``: no access; carries the subscription found, if any

Nothing here writes to the database.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.crud_product import CRUDProduct
from src.marketplace.crud.crud_subscription import CRUDSubscription
from src.marketplace.models.base import utcnow
from src.marketplace.models.core import User
from src.marketplace.models.subscription import Subscription
from src.marketplace.schemas.enums import SubscriptionStatus, UsageAction

logger = logging.getLogger(__name__)

EntitlementPolicy = Callable[[Subscription], bool]


@dataclass(frozen=True)
class Unrestricted:
    pass


@dataclass(frozen=True)
class Subscribed:
    subscription: Subscription


@dataclass(frozen=True)
class Denied:
    subscription: Optional[Subscription] = None


AccessDecision = Union[Unrestricted, Subscribed, Denied]


def fixed_entitlement(allowed: bool) -> EntitlementPolicy:
    """Entitlement policy that answers the same for every subscription."""
    def policy(subscription: Subscription) -> bool:
        return allowed

    return policy


class AccessGate:
    def __init__(
        self,
        store: CRUDSubscription,
        products: CRUDProduct,
        entitlement_policy: EntitlementPolicy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.products = products
        self.entitlement_policy = entitlement_policy
        self.clock = clock

    async def decide(self, db: AsyncSession, user: User) -> AccessDecision:
        if user.is_admin():
            return Unrestricted()

        now = self.clock()
        subscription = await self.store.find_active_by_user(db, user_id=user.id, now=now)
        if not subscription:
            return Denied()

        live = (
            subscription.status == SubscriptionStatus.ACTIVE.value
            and subscription.expires_at is not None
            and subscription.expires_at > now
        )
        if live and self.entitlement_policy(subscription):
            return Subscribed(subscription)

        logger.info(f"Subscription {subscription.uuid} of user {user.id} not entitled to sell")
        return Denied(subscription)

    async def can_sell(self, db: AsyncSession, user: User) -> bool:
        decision = await self.decide(db, user)
        return not isinstance(decision, Denied)

    async def within_usage_limit(self, db: AsyncSession, user: User, action: UsageAction) -> bool:
        """Check the plan limit for an action. Administrative accounts have none."""
        if user.is_admin():
            return True

        subscription = await self.store.find_active_by_user(db, user_id=user.id, now=self.clock())
        if not subscription or not subscription.plan:
            return False

        if action == UsageAction.CREATE_PRODUCT:
            plan = subscription.plan
            if plan.has_unlimited_products():
                return True
            current = await self.products.count_by_owner(db, owner_id=user.id)
            return current < plan.max_products

        # Image limits are applied per product at upload time
        return True

    @staticmethod
    def describe(decision: AccessDecision) -> Dict[str, Any]:
        """Summary attached to the request for downstream handlers."""
        if isinstance(decision, Unrestricted):
            return {"has_premium_access": True, "unrestricted": True, "subscription_uuid": None}

        subscription = decision.subscription
        return {
            "has_premium_access": isinstance(decision, Subscribed),
            "unrestricted": False,
            "subscription_uuid": subscription.uuid if subscription else None,
            "expires_at": subscription.expires_at if subscription else None,
        }
