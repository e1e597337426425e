from datetime import timedelta

from src.marketplace.crud import CRUDUser
from src.marketplace.models import User
from src.marketplace.schemas import UserRole
from src.marketplace.services.expiry_service import SubscriptionExpiryService
from src.marketplace.services.role_projection import RoleProjection


class FlakyUsers(CRUDUser):
    """Fails the role write for one user only."""

    def __init__(self, sql_model, failing_user_id):
        super().__init__(sql_model)
        self.failing_user_id = failing_user_id

    async def update_role(self, db, *, user_id, role):
        if user_id == self.failing_user_id:
            raise RuntimeError("user directory unavailable")
        return await super().update_role(db, user_id=user_id, role=role)


async def _active(db, store, user, plan, clock, expires_in_days):
    subscription = await store.create_pending(
        db,
        user_id=user.id,
        plan_id=plan.id,
        payment_method="manual",
        payment_reference=None,
        payment_amount=plan.price,
        auto_renew=False,
        now=clock.now,
    )
    return await store.update_subscription(
        db,
        db_obj=subscription,
        changes={"status": "active", "expires_at": clock.now + timedelta(days=expires_in_days)},
        now=clock.now,
    )


async def test_sweep_expires_lapsed_subscriptions_and_reverts_roles(
    db, store, users, customer, other_customer, plans, clock
):
    lapsed = await _active(db, store, customer, plans["monthly"], clock, expires_in_days=-1)
    current = await _active(db, store, other_customer, plans["monthly"], clock, expires_in_days=10)
    lapsed_uuid, current_uuid = lapsed.uuid, current.uuid
    await users.update_role(db, user_id=customer.id, role=UserRole.MEMBERSHIPS)
    service = SubscriptionExpiryService(store, RoleProjection(users), clock=clock)

    processed = await service.process_expired_subscriptions(db)

    assert processed == 1
    lapsed = await store.get_by_uuid(db, uuid=lapsed_uuid)
    current = await store.get_by_uuid(db, uuid=current_uuid)
    await db.refresh(lapsed)
    await db.refresh(current)
    assert lapsed.status == "expired"
    assert current.status == "active"
    await db.refresh(customer)
    assert customer.role == "Cliente"


async def test_sweep_continues_when_one_role_revert_fails(
    db, store, customer, other_customer, plans, clock
):
    first = await _active(db, store, customer, plans["monthly"], clock, expires_in_days=-2)
    second = await _active(db, store, other_customer, plans["annual"], clock, expires_in_days=-1)
    first_uuid, second_uuid = first.uuid, second.uuid
    service = SubscriptionExpiryService(
        store, RoleProjection(FlakyUsers(User, failing_user_id=customer.id)), clock=clock
    )

    processed = await service.process_expired_subscriptions(db)

    assert processed == 2
    for uuid in (first_uuid, second_uuid):
        subscription = await store.get_by_uuid(db, uuid=uuid)
        await db.refresh(subscription)
        assert subscription.status == "expired"


async def test_sweep_is_idempotent(db, store, users, customer, plans, clock):
    await _active(db, store, customer, plans["monthly"], clock, expires_in_days=-1)
    service = SubscriptionExpiryService(store, RoleProjection(users), clock=clock)

    assert await service.process_expired_subscriptions(db) == 1
    assert await service.process_expired_subscriptions(db) == 0


async def test_subscription_expires_exactly_at_expiry(db, store, users, customer, plans, clock):
    subscription = await _active(db, store, customer, plans["monthly"], clock, expires_in_days=30)
    service = SubscriptionExpiryService(store, RoleProjection(users), clock=clock)

    assert await service.process_expired_subscriptions(db) == 0
    clock.advance(days=30)
    assert await service.process_expired_subscriptions(db) == 1
    await db.refresh(subscription)
    assert subscription.status == "expired"


async def test_notify_expiring_soon_lists_subscriptions_in_window(
    db, store, users, customer, other_customer, plans, clock
):
    soon = await _active(db, store, customer, plans["monthly"], clock, expires_in_days=3)
    await _active(db, store, other_customer, plans["annual"], clock, expires_in_days=200)
    service = SubscriptionExpiryService(store, RoleProjection(users), clock=clock)

    expiring = await service.notify_expiring_soon(db)

    assert [s.uuid for s in expiring] == [soon.uuid]
    assert await service.notify_expiring_soon(db, days=365) != []
