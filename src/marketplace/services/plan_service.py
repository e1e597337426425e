from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.crud_plan import CRUDPlan
from src.marketplace.models.subscription import SubscriptionPlan
from src.marketplace.schemas.subscription import PlanRecommendations, PlanResponse, PlansResponse


class PlanService:
    def __init__(self, catalog: CRUDPlan):
        self.catalog = catalog

    @staticmethod
    def generate_recommendations(plans: List[SubscriptionPlan]) -> PlanRecommendations:
        """Pick the free plan, the cheapest paid plan per month, and the premium monthly plan."""
        recommendations = PlanRecommendations()

        free_plan = next((plan for plan in plans if plan.is_free()), None)
        if free_plan:
            recommendations.free = free_plan.uuid

        paid_plans = [plan for plan in plans if not plan.is_free()]
        if len(paid_plans) > 1:
            best_value = min(paid_plans, key=lambda plan: plan.monthly_price())
            recommendations.best_value = best_value.uuid

        popular = next(
            (
                plan for plan in paid_plans
                if "monthly" in plan.name.lower() and "premium" in plan.name.lower()
            ),
            None,
        )
        if popular:
            recommendations.most_popular = popular.uuid

        return recommendations

    async def list_plans(self, db: AsyncSession) -> PlansResponse:
        """Active plans, cheapest first, with recommendations."""
        plans = await self.catalog.list_active_plans(db)
        return PlansResponse(
            plans=[PlanResponse.model_validate(plan) for plan in plans],
            recommendations=self.generate_recommendations(plans),
        )
