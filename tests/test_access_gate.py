from datetime import timedelta

from src.marketplace.schemas import ProductCreate, UsageAction
from src.marketplace.services.access_gate import (
    AccessGate,
    Denied,
    Subscribed,
    Unrestricted,
    fixed_entitlement,
)


async def _subscribe(store, db, user, plan, clock):
    """Active subscription without touching the role projection."""
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
        changes={"status": "active", "expires_at": clock.now + timedelta(days=plan.duration_days)},
        now=clock.now,
    )


def _gate(store, products, clock, allowed):
    return AccessGate(store, products, fixed_entitlement(allowed), clock=clock)


async def test_admin_is_unrestricted_without_subscription(db, store, products, admin, clock):
    gate = _gate(store, products, clock, allowed=False)

    assert await gate.decide(db, admin) == Unrestricted()
    assert await gate.can_sell(db, admin) is True


async def test_customer_without_subscription_is_denied(db, store, products, customer, clock):
    gate = _gate(store, products, clock, allowed=True)

    assert await gate.decide(db, customer) == Denied()
    assert await gate.can_sell(db, customer) is False


async def test_default_entitlement_denies_subscriber(db, store, products, customer, plans, clock):
    created = await _subscribe(store, db, customer, plans["monthly"], clock)
    gate = _gate(store, products, clock, allowed=False)

    decision = await gate.decide(db, customer)

    assert isinstance(decision, Denied)
    assert decision.subscription.uuid == created.uuid


async def test_entitled_subscriber_is_allowed_until_expiry(db, store, products, customer, plans, clock):
    created = await _subscribe(store, db, customer, plans["monthly"], clock)
    gate = _gate(store, products, clock, allowed=True)

    decision = await gate.decide(db, customer)
    assert isinstance(decision, Subscribed)
    assert decision.subscription.uuid == created.uuid

    clock.advance(days=30)
    assert await gate.can_sell(db, customer) is False


async def test_usage_limit_follows_plan_product_limit(db, store, products, customer, plans, clock):
    await _subscribe(store, db, customer, plans["free"], clock)
    gate = _gate(store, products, clock, allowed=True)

    assert await gate.within_usage_limit(db, customer, UsageAction.CREATE_PRODUCT) is True
    for name in ("Lamp", "Chair"):
        await products.create_for_owner(db, obj_in=ProductCreate(name=name, price="10.00"), owner_id=customer.id)

    assert await gate.within_usage_limit(db, customer, UsageAction.CREATE_PRODUCT) is False
    assert await gate.within_usage_limit(db, customer, UsageAction.UPLOAD_IMAGE) is True


async def test_usage_limit_without_subscription_and_for_admin(db, store, products, customer, admin, clock):
    gate = _gate(store, products, clock, allowed=True)

    assert await gate.within_usage_limit(db, customer, UsageAction.CREATE_PRODUCT) is False
    assert await gate.within_usage_limit(db, admin, UsageAction.CREATE_PRODUCT) is True


def test_describe_decisions():
    assert AccessGate.describe(Unrestricted())["has_premium_access"] is True
    assert AccessGate.describe(Denied()) == {
        "has_premium_access": False,
        "unrestricted": False,
        "subscription_uuid": None,
        "expires_at": None,
    }
