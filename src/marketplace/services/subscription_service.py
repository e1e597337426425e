import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.core.exceptions import (
    ActiveSubscriptionExistsError,
    ConflictError,
    InactivePlanError,
    InvalidPaymentDataError,
    InvalidSubscriptionStatusError,
    PlanNotFoundError,
    SubscriptionCancellationError,
    SubscriptionNotFoundError,
    SubscriptionPersistenceError,
)
from src.marketplace.crud.crud_plan import CRUDPlan
from src.marketplace.crud.crud_subscription import CRUDSubscription
from src.marketplace.models.base import utcnow
from src.marketplace.models.subscription import Subscription, SubscriptionPlan
from src.marketplace.schemas.enums import (
    PAYMENT_METHODS_REQUIRING_REFERENCE,
    PaymentMethod,
    SubscriptionStatus,
)
from src.marketplace.schemas.subscription import (
    CancelSubscriptionResult,
    CreateSubscriptionResult,
    CurrentSubscription,
    MySubscriptionResponse,
    PlanResponse,
    SubscriptionResponse,
    SubscriptionStatusView,
)
from src.marketplace.services.role_projection import RoleProjection

Clock = Callable[[], datetime]

# Legal status transitions; expired and cancelled are terminal
TRANSITIONS = {
    SubscriptionStatus.PENDING: frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.ACTIVE: frozenset({SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.EXPIRED: frozenset(),
    SubscriptionStatus.CANCELLED: frozenset(),
}

ALLOWED_PAYMENT_METHODS = [method.value for method in PaymentMethod]


def ensure_transition(current: str, target: SubscriptionStatus) -> None:
    """Raise InvalidSubscriptionStatusError unless current -> target is legal."""
    if target not in TRANSITIONS[SubscriptionStatus(current)]:
        raise InvalidSubscriptionStatusError(current, target.value)


def calculate_refund(subscription: Subscription, cancellation_date: datetime) -> Decimal:
    """Proportional refund for the unused part of the paid period.

    refund = amount * remaining_days / total_days, both counted in whole days
    rounded up, result rounded to cents. Never negative, never divides by zero.
    """
    if not subscription.expires_at or not subscription.started_at or not subscription.payment_amount:
        return Decimal("0.00")

    one_day = timedelta(days=1)
    total_days = math.ceil((subscription.expires_at - subscription.started_at) / one_day)
    remaining_days = math.ceil((subscription.expires_at - cancellation_date) / one_day)

    if remaining_days <= 0 or total_days <= 0:
        return Decimal("0.00")

    amount = Decimal(str(subscription.payment_amount))
    refund = amount * Decimal(remaining_days) / Decimal(total_days)
    return refund.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class SubscriptionService:
    """Subscription lifecycle: subscribe, cancel, toggle auto-renew and read state.

    The only writer of both subscription rows and the user's role projection.
    """

    def __init__(
        self,
        store: CRUDSubscription,
        catalog: CRUDPlan,
        roles: RoleProjection,
        clock: Clock = utcnow,
        expiring_soon_days: int = 7,
    ):
        self.store = store
        self.catalog = catalog
        self.roles = roles
        self.clock = clock
        self.expiring_soon_days = expiring_soon_days
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def validate_payment_data(
        plan: SubscriptionPlan, payment_method: Optional[str], payment_reference: Optional[str]
    ) -> None:
        """Validate payment fields for paid plans. Free plans ignore them.

        Raises:
            InvalidPaymentDataError: If the method is missing, unknown, or lacks a required reference
        """
        if plan.is_free():
            return

        if not payment_method or not payment_method.strip():
            raise InvalidPaymentDataError("payment method is required for paid plans")

        if payment_method not in ALLOWED_PAYMENT_METHODS:
            raise InvalidPaymentDataError(
                f"payment method must be one of: {', '.join(ALLOWED_PAYMENT_METHODS)}"
            )

        if payment_method in PAYMENT_METHODS_REQUIRING_REFERENCE and not payment_reference:
            raise InvalidPaymentDataError("payment reference is required for automated payment methods")

    async def create_subscription(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        plan_uuid: str,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
        auto_renew: bool = False,
    ) -> CreateSubscriptionResult:
        """Subscribe a user to a plan and activate it immediately.

        The subscription insert and its activation share one transaction; the
        role grant runs afterwards and only reports its outcome.

        Raises:
            ActiveSubscriptionExistsError: If the user already has an active, unexpired subscription
            PlanNotFoundError: If the plan does not exist
            InactivePlanError: If the plan is deactivated
            InvalidPaymentDataError: If payment data is invalid for a paid plan
            SubscriptionPersistenceError: If the database write fails
        """
        self.logger.info(f"Creating subscription for user {user_id} on plan {plan_uuid}")
        now = self.clock()

        if await self.store.has_active_subscription(db, user_id=user_id, now=now):
            raise ActiveSubscriptionExistsError()

        plan = await self.catalog.get_by_uuid(db, uuid=plan_uuid)
        if not plan:
            raise PlanNotFoundError(plan_uuid)
        if not plan.is_active:
            raise InactivePlanError(plan.name)

        self.validate_payment_data(plan, payment_method, payment_reference)

        if plan.is_free():
            payment_method, payment_reference, payment_amount = None, None, None
        else:
            payment_amount = plan.price

        expires_at = now + timedelta(days=plan.duration_days)

        try:
            # Lapsed rows still marked active would hold the one-active-per-user slot
            await self.store.expire_lapsed_for_user(db, user_id=user_id, now=now)
            subscription = await self.store.create_pending(
                db,
                user_id=user_id,
                plan_id=plan.id,
                payment_method=payment_method,
                payment_reference=payment_reference,
                payment_amount=payment_amount,
                auto_renew=auto_renew,
                now=now,
                commit=False,
            )
            ensure_transition(subscription.status, SubscriptionStatus.ACTIVE)
            subscription = await self.store.update_subscription(
                db,
                db_obj=subscription,
                changes={"status": SubscriptionStatus.ACTIVE, "expires_at": expires_at},
                now=now,
                commit=False,
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            self.logger.warning(f"Concurrent activation rejected for user {user_id}")
            raise ActiveSubscriptionExistsError()
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Failed to create subscription for user {user_id}: {str(e)}")
            raise SubscriptionPersistenceError("Failed to create subscription") from e

        # Snapshot before the role write, which may roll the session back
        response = SubscriptionResponse.model_validate(subscription)
        message = f"Successfully subscribed to {plan.name}. You now have premium access!"
        role_updated = await self.roles.grant_premium(db, user_id)

        self.logger.info(f"Subscription {response.uuid} created and activated (role updated: {role_updated})")
        return CreateSubscriptionResult(
            subscription=response,
            message=message,
            activated_at=now,
            expires_at=expires_at,
            role_updated=role_updated,
        )

    async def _get_owned(self, db: AsyncSession, *, user_id: int, subscription_uuid: str) -> Subscription:
        subscription = await self.store.get_by_uuid(db, uuid=subscription_uuid)
        # Ownership mismatch is reported as not found
        if not subscription or subscription.user_id != user_id:
            raise SubscriptionNotFoundError(subscription_uuid)
        return subscription

    async def cancel_subscription(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        subscription_uuid: str,
        reason: str,
        immediate: bool = False,
    ) -> CancelSubscriptionResult:
        """Cancel now, or at the end of the paid period.

        Immediate cancellation ends access, reverts the role and refunds the
        unused days. Deferred cancellation only turns auto-renew off; the expiry
        sweep ends access later.

        Raises:
            SubscriptionNotFoundError: If missing or owned by another user
            SubscriptionCancellationError: If already cancelled or expired
        """
        self.logger.info(f"Cancelling subscription {subscription_uuid} (immediate: {immediate})")
        now = self.clock()

        subscription = await self._get_owned(db, user_id=user_id, subscription_uuid=subscription_uuid)

        if subscription.status == SubscriptionStatus.CANCELLED.value:
            raise SubscriptionCancellationError("Subscription is already cancelled")
        if subscription.status == SubscriptionStatus.EXPIRED.value:
            raise SubscriptionCancellationError("Cannot cancel an expired subscription")

        if immediate:
            ensure_transition(subscription.status, SubscriptionStatus.CANCELLED)
            effective_date = now
            changes = {"status": SubscriptionStatus.CANCELLED, "auto_renew": False}
        else:
            effective_date = subscription.expires_at or now
            changes = {"auto_renew": False}

        # Refund is based on the period as it stood before this change
        refund_amount: Optional[Decimal] = None
        if immediate and subscription.payment_amount:
            refund_amount = calculate_refund(subscription, effective_date)

        try:
            await self.store.update_subscription(db, db_obj=subscription, changes=changes, now=now, commit=False)
            cancelled = await self.store.record_cancellation(
                db, uuid=subscription.uuid, reason=reason, now=now, commit=False
            )
            if not cancelled:
                await db.rollback()
                raise SubscriptionPersistenceError("Failed to cancel subscription")
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Failed to cancel subscription {subscription_uuid}: {str(e)}")
            raise SubscriptionPersistenceError("Failed to cancel subscription") from e

        role_reverted = False
        if immediate:
            role_reverted = await self.roles.revert_to_customer(db, user_id)

        if immediate:
            message = "Subscription cancelled immediately. Premium access removed."
        else:
            message = (
                f"Subscription will be cancelled on {effective_date.date().isoformat()}. "
                "You will keep premium access until then."
            )

        self.logger.info(f"Subscription {subscription_uuid} cancelled (role reverted: {role_reverted})")
        return CancelSubscriptionResult(
            success=True,
            message=message,
            effective_date=effective_date,
            refund_amount=float(refund_amount) if refund_amount is not None else None,
            role_reverted=role_reverted,
        )

    async def update_auto_renew(
        self, db: AsyncSession, *, user_id: int, subscription_uuid: str, auto_renew: bool
    ) -> SubscriptionResponse:
        """Turn auto-renewal on or off for an active subscription.

        Raises:
            SubscriptionNotFoundError: If missing or owned by another user
            ConflictError: If not active, or re-enabling after a deferred cancellation
        """
        now = self.clock()
        subscription = await self._get_owned(db, user_id=user_id, subscription_uuid=subscription_uuid)

        if not subscription.is_active(now):
            raise ConflictError(
                "Auto-renew can only be changed on an active subscription",
                "SUBSCRIPTION_NOT_ACTIVE",
            )
        if auto_renew and subscription.cancelled_at is not None:
            raise ConflictError(
                "Auto-renew cannot be re-enabled on a subscription scheduled for cancellation",
                "SUBSCRIPTION_CANCELLATION_PENDING",
            )

        subscription = await self.store.update_subscription(
            db, db_obj=subscription, changes={"auto_renew": auto_renew}, now=now
        )
        return SubscriptionResponse.model_validate(subscription)

    def get_available_actions(self, active: Optional[Subscription], now: datetime) -> List[str]:
        """Next actions offered to the user given their current subscription."""
        actions: List[str] = []

        if not active:
            actions.extend(["subscribe", "view_plans"])
            return actions

        if active.is_active(now):
            actions.extend(["cancel_subscription", "update_payment_method"])
            if active.auto_renew:
                actions.append("disable_auto_renew")
            elif active.cancelled_at is None:
                actions.append("enable_auto_renew")
            if active.is_expiring_soon(now, self.expiring_soon_days):
                actions.append("renew_subscription")
        else:
            actions.extend(["reactivate_subscription", "subscribe_new_plan"])

        actions.extend(["view_subscription_history", "download_invoices"])
        return actions

    async def get_my_subscription(self, db: AsyncSession, *, user_id: int) -> MySubscriptionResponse:
        """Active subscription with its plan and status, plus history and available actions."""
        now = self.clock()

        active = await self.store.find_active_by_user(db, user_id=user_id, now=now)
        history = await self.store.list_by_user(db, user_id=user_id)

        current: Optional[CurrentSubscription] = None
        if active:
            plan = active.plan or await self.catalog.get(db, id=active.subscription_plan_id)
            if plan:
                current = CurrentSubscription(
                    subscription=SubscriptionResponse.model_validate(active),
                    plan=PlanResponse.model_validate(plan),
                    status=SubscriptionStatusView(
                        is_active=active.is_active(now),
                        is_expiring_soon=active.is_expiring_soon(now, self.expiring_soon_days),
                        days_remaining=active.days_remaining(now),
                    ),
                )

        self.logger.info(
            f"User {user_id} subscription status: {'active' if active else 'no active subscription'}"
        )
        return MySubscriptionResponse(
            has_active_subscription=active is not None,
            current_subscription=current,
            subscription_history=[SubscriptionResponse.model_validate(s) for s in history],
            available_actions=self.get_available_actions(active, now),
        )
