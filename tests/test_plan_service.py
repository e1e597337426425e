from decimal import Decimal

from src.marketplace.models import SubscriptionPlan
from src.marketplace.schemas import PlanUpdate
from src.marketplace.services.plan_service import PlanService


def _plan(uuid, name, price, duration_days=30):
    return SubscriptionPlan(uuid=uuid, name=name, price=Decimal(price), duration_days=duration_days)


def test_recommendations_pick_free_best_value_and_popular():
    plans = [
        _plan("free", "Free", "0"),
        _plan("monthly", "Premium Monthly", "9.99"),
        _plan("annual", "Premium Annual", "99.99", duration_days=365),
    ]

    recommendations = PlanService.generate_recommendations(plans)

    assert recommendations.free == "free"
    assert recommendations.best_value == "annual"
    assert recommendations.most_popular == "monthly"


def test_best_value_needs_more_than_one_paid_plan():
    recommendations = PlanService.generate_recommendations([
        _plan("free", "Free", "0"),
        _plan("basic", "Basic", "4.99"),
    ])

    assert recommendations.free == "free"
    assert recommendations.best_value is None
    assert recommendations.most_popular is None


async def test_list_plans_returns_active_plans_cheapest_first(db, catalog, plans):
    await catalog.deactivate_plan(db, uuid=plans["annual"].uuid)

    response = await PlanService(catalog).list_plans(db)

    assert [plan.name for plan in response.plans] == ["Free", "Premium Monthly"]
    assert response.recommendations.free == plans["free"].uuid
    assert response.recommendations.most_popular == plans["monthly"].uuid


async def test_update_plan_changes_only_supplied_fields(db, catalog, plans):
    updated = await catalog.update_plan(
        db, uuid=plans["monthly"].uuid, obj_in=PlanUpdate(price=Decimal("12.50"))
    )

    assert updated.price == Decimal("12.50")
    assert updated.duration_days == 30
    assert await catalog.update_plan(db, uuid="missing", obj_in=PlanUpdate(name="x")) is None
    assert await catalog.deactivate_plan(db, uuid="missing") is False
