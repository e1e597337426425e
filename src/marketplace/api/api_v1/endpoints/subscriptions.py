from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.marketplace.api.auth_deps import CurrentUser
from src.marketplace.api.deps import PlanCrudDep, PlanServiceDep, SubscriptionServiceDep
from src.marketplace.core.exceptions import PlanNotFoundError
from src.marketplace.core.pbac import require_permission
from src.marketplace.db.session import SessionDep
from src.marketplace.models.core import User
from src.marketplace.schemas import (
    AutoRenewRequest,
    CancelRequest,
    CancelSubscriptionResult,
    CreateSubscriptionResult,
    MessageResponse,
    MySubscriptionResponse,
    PlanCreate,
    PlanResponse,
    PlansResponse,
    PlanUpdate,
    SubscribeRequest,
    SubscriptionResponse,
)

router = APIRouter()


@router.get("/plans", response_model=PlansResponse)
async def list_plans(db: SessionDep, plan_service: PlanServiceDep) -> PlansResponse:
    """List active plans with recommendations. Public."""
    return await plan_service.list_plans(db)


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan_in: PlanCreate,
    db: SessionDep,
    catalog: PlanCrudDep,
    current_user: Annotated[User, Depends(require_permission("manage", "plans"))],
):
    """Create a subscription plan."""
    return await catalog.create_plan(db, obj_in=plan_in)


@router.put("/plans/{plan_uuid}", response_model=PlanResponse)
async def update_plan(
    plan_uuid: str,
    plan_in: PlanUpdate,
    db: SessionDep,
    catalog: PlanCrudDep,
    current_user: Annotated[User, Depends(require_permission("manage", "plans"))],
):
    """Update a subscription plan. Only supplied fields change."""
    plan = await catalog.update_plan(db, uuid=plan_uuid, obj_in=plan_in)
    if not plan:
        raise PlanNotFoundError(plan_uuid)
    return plan


@router.delete("/plans/{plan_uuid}", response_model=MessageResponse)
async def deactivate_plan(
    plan_uuid: str,
    db: SessionDep,
    catalog: PlanCrudDep,
    current_user: Annotated[User, Depends(require_permission("manage", "plans"))],
) -> MessageResponse:
    """Deactivate a plan. Existing subscriptions keep running."""
    if not await catalog.deactivate_plan(db, uuid=plan_uuid):
        raise PlanNotFoundError(plan_uuid)
    return MessageResponse(message="Subscription plan deactivated")


@router.post("/subscribe", response_model=CreateSubscriptionResult, status_code=status.HTTP_201_CREATED)
async def subscribe(
    request: SubscribeRequest,
    db: SessionDep,
    service: SubscriptionServiceDep,
    current_user: Annotated[User, Depends(require_permission("subscribe", "subscriptions"))],
) -> CreateSubscriptionResult:
    """Subscribe the current user to a plan."""
    return await service.create_subscription(
        db,
        user_id=current_user.id,
        plan_uuid=request.plan_uuid,
        payment_method=request.payment_method,
        payment_reference=request.payment_reference,
        auto_renew=request.auto_renew,
    )


@router.get("/my-subscription", response_model=MySubscriptionResponse)
async def my_subscription(
    db: SessionDep,
    service: SubscriptionServiceDep,
    current_user: CurrentUser,
) -> MySubscriptionResponse:
    """Current subscription, history and available actions."""
    return await service.get_my_subscription(db, user_id=current_user.id)


@router.post("/cancel", response_model=CancelSubscriptionResult)
async def cancel(
    request: CancelRequest,
    db: SessionDep,
    service: SubscriptionServiceDep,
    current_user: Annotated[User, Depends(require_permission("cancel", "subscriptions"))],
) -> CancelSubscriptionResult:
    """Cancel a subscription now or at the end of its period."""
    return await service.cancel_subscription(
        db,
        user_id=current_user.id,
        subscription_uuid=request.subscription_uuid,
        reason=request.reason,
        immediate=request.immediate,
    )


@router.put("/auto-renew", response_model=SubscriptionResponse)
async def update_auto_renew(
    request: AutoRenewRequest,
    db: SessionDep,
    service: SubscriptionServiceDep,
    current_user: Annotated[User, Depends(require_permission("update", "subscriptions"))],
) -> SubscriptionResponse:
    """Turn auto-renewal on or off."""
    return await service.update_auto_renew(
        db,
        user_id=current_user.id,
        subscription_uuid=request.subscription_uuid,
        auto_renew=request.auto_renew,
    )
