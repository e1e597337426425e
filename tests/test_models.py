from datetime import datetime, timedelta
from decimal import Decimal

from src.marketplace.models import Subscription, SubscriptionPlan, User

NOW = datetime(2024, 3, 1, 12, 0, 0)


def _plan(price, duration_days=30, max_products=-1):
    return SubscriptionPlan(
        name="Plan", price=Decimal(price), duration_days=duration_days, max_products=max_products
    )


def test_plan_is_free_only_at_zero_price():
    assert _plan("0").is_free()
    assert _plan("0.00").is_free()
    assert not _plan("0.01").is_free()


def test_monthly_price_divides_long_plans_into_months():
    assert _plan("27", duration_days=90).monthly_price() == Decimal("9")
    assert _plan("9.99", duration_days=30).monthly_price() == Decimal("9.99")
    assert _plan("5", duration_days=7).monthly_price() == Decimal("5")


def test_calculate_savings_against_monthly_plan():
    monthly = _plan("10", duration_days=30)
    quarterly = _plan("25", duration_days=90)

    assert quarterly.calculate_savings(monthly) == Decimal("5")
    assert monthly.calculate_savings(monthly) == Decimal("0")


def test_duration_in_months_rounds_half_up():
    assert _plan("1", duration_days=365).duration_in_months() == 12
    assert _plan("1", duration_days=45).duration_in_months() == 2
    assert _plan("1", duration_days=30).duration_in_months() == 1


def test_unlimited_products():
    assert _plan("1", max_products=-1).has_unlimited_products()
    assert not _plan("1", max_products=10).has_unlimited_products()


def test_subscription_active_until_expiry():
    subscription = Subscription(status="active", expires_at=NOW + timedelta(days=1))

    assert subscription.is_active(NOW)
    assert not subscription.is_active(NOW + timedelta(days=1))
    assert not Subscription(status="cancelled", expires_at=NOW + timedelta(days=1)).is_active(NOW)
    assert not Subscription(status="active", expires_at=None).is_active(NOW)


def test_subscription_expiring_soon_window():
    subscription = Subscription(status="active", expires_at=NOW + timedelta(days=5))

    assert subscription.is_expiring_soon(NOW)
    assert not subscription.is_expiring_soon(NOW, days=3)
    assert not Subscription(status="active", expires_at=NOW + timedelta(days=30)).is_expiring_soon(NOW)


def test_days_remaining_rounds_up_and_is_zero_when_inactive():
    subscription = Subscription(status="active", expires_at=NOW + timedelta(days=2, hours=1))

    assert subscription.days_remaining(NOW) == 3
    assert Subscription(status="expired", expires_at=NOW + timedelta(days=2)).days_remaining(NOW) == 0


def test_user_roles():
    assert User(role="memberships").is_admin()
    assert User(role="Cliente").is_customer()
    assert not User(role="Cliente").is_admin()
    assert User(name="Ana", last_name="Lopez").full_name == "Ana Lopez"


def test_policy_roles_add_staff_only_for_flagged_users():
    assert User(role="memberships").policy_roles() == {"memberships"}
    assert User(role="memberships", is_staff=True).policy_roles() == {"memberships", "staff"}
