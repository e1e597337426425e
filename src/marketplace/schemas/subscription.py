from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .base import BaseSchema, BaseResponseSchema
from .enums import SubscriptionStatus


# ---------------- Plans ----------------

class PlanBase(BaseSchema):
    """Base subscription plan schema."""
    name: str
    description: Optional[str] = None
    duration_days: int = Field(gt=0)
    max_products: int = Field(default=-1, ge=-1)
    max_images_per_product: int = Field(default=5, ge=0)
    features: List[str] = []


class PlanCreate(PlanBase):
    """Schema for creating a plan."""
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True


class PlanUpdate(BaseModel):
    """Schema for updating a plan. Only supplied fields change."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    duration_days: Optional[int] = Field(default=None, gt=0)
    max_products: Optional[int] = Field(default=None, ge=-1)
    max_images_per_product: Optional[int] = Field(default=None, ge=0)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class PlanResponse(PlanBase, BaseResponseSchema):
    """Schema for plan response."""
    price: float
    is_active: bool


class PlanRecommendations(BaseModel):
    """External ids of the plans the catalog highlights."""
    most_popular: Optional[str] = None
    best_value: Optional[str] = None
    free: Optional[str] = None


class PlansResponse(BaseModel):
    plans: List[PlanResponse]
    recommendations: PlanRecommendations


# ---------------- Subscriptions ----------------

class SubscriptionResponse(BaseResponseSchema):
    """Public view of a subscription. The payment reference is not exposed."""
    user_id: int
    subscription_plan_id: int
    status: SubscriptionStatus
    started_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_amount: Optional[float] = None
    auto_renew: bool
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class SubscribeRequest(BaseModel):
    """Request body for subscribing to a plan."""
    plan_uuid: str
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    auto_renew: bool = False


class CancelRequest(BaseModel):
    """Request body for cancelling a subscription."""
    subscription_uuid: str
    reason: str = "User requested cancellation"
    immediate: bool = False


class AutoRenewRequest(BaseModel):
    """Request body for toggling auto-renewal."""
    subscription_uuid: str
    auto_renew: bool


class CreateSubscriptionResult(BaseModel):
    """Outcome of subscribing. `role_updated` reports the best-effort role write."""
    subscription: SubscriptionResponse
    message: str
    activated_at: datetime
    expires_at: datetime
    role_updated: bool


class CancelSubscriptionResult(BaseModel):
    """Outcome of a cancellation. `role_reverted` reports the best-effort role write."""
    success: bool
    message: str
    effective_date: datetime
    refund_amount: Optional[float] = None
    role_reverted: bool = False


class SubscriptionStatusView(BaseModel):
    is_active: bool
    is_expiring_soon: bool
    days_remaining: int


class CurrentSubscription(BaseModel):
    subscription: SubscriptionResponse
    plan: PlanResponse
    status: SubscriptionStatusView


class MySubscriptionResponse(BaseModel):
    """Composite view of the caller's subscription state."""
    has_active_subscription: bool
    current_subscription: Optional[CurrentSubscription] = None
    subscription_history: List[SubscriptionResponse]
    available_actions: List[str]
