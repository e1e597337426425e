"""Service providers for the endpoints.

Every request gets its own service objects wired to the same CRUD layer;
nothing here holds state between requests.
"""
from typing import Annotated

from fastapi import Depends

from src.marketplace.core.config import settings
from src.marketplace.crud import CRUDPlan, CRUDProduct, CRUDSubscription, CRUDUser
from src.marketplace.models import Product, Subscription, SubscriptionPlan, User
from src.marketplace.models.base import utcnow
from src.marketplace.services.access_gate import AccessGate, fixed_entitlement
from src.marketplace.services.auth_service import AuthService
from src.marketplace.services.plan_service import PlanService
from src.marketplace.services.role_projection import RoleProjection
from src.marketplace.services.subscription_service import SubscriptionService


def get_plan_crud() -> CRUDPlan:
    return CRUDPlan(SubscriptionPlan)


def get_subscription_crud() -> CRUDSubscription:
    return CRUDSubscription(Subscription)


def get_user_crud() -> CRUDUser:
    return CRUDUser(User)


def get_product_crud() -> CRUDProduct:
    return CRUDProduct(Product)


def get_role_projection(users: Annotated[CRUDUser, Depends(get_user_crud)]) -> RoleProjection:
    return RoleProjection(users)


def get_subscription_service(
    store: Annotated[CRUDSubscription, Depends(get_subscription_crud)],
    catalog: Annotated[CRUDPlan, Depends(get_plan_crud)],
    roles: Annotated[RoleProjection, Depends(get_role_projection)],
) -> SubscriptionService:
    return SubscriptionService(
        store, catalog, roles, clock=utcnow, expiring_soon_days=settings.EXPIRING_SOON_DAYS
    )


def get_plan_service(catalog: Annotated[CRUDPlan, Depends(get_plan_crud)]) -> PlanService:
    return PlanService(catalog)


def get_access_gate(
    store: Annotated[CRUDSubscription, Depends(get_subscription_crud)],
    products: Annotated[CRUDProduct, Depends(get_product_crud)],
) -> AccessGate:
    return AccessGate(store, products, fixed_entitlement(settings.SUBSCRIBER_CAN_SELL), clock=utcnow)


def get_auth_service(users: Annotated[CRUDUser, Depends(get_user_crud)]) -> AuthService:
    return AuthService(users)


SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
PlanServiceDep = Annotated[PlanService, Depends(get_plan_service)]
AccessGateDep = Annotated[AccessGate, Depends(get_access_gate)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
PlanCrudDep = Annotated[CRUDPlan, Depends(get_plan_crud)]
ProductCrudDep = Annotated[CRUDProduct, Depends(get_product_crud)]
