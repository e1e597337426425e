from .base import BaseSchema, TimestampSchema, IDSchema, BaseResponseSchema, MessageResponse
from .enums import UserRole, SubscriptionStatus, PaymentMethod, UsageAction
from .user import UserCreate, UserResponse
from .auth import Token, TokenPayload
from .product import ProductCreate, ProductResponse, ProductListResponse
from .subscription import (
    PlanCreate, PlanUpdate, PlanResponse, PlanRecommendations, PlansResponse,
    SubscriptionResponse, SubscribeRequest, CancelRequest, AutoRenewRequest,
    CreateSubscriptionResult, CancelSubscriptionResult, SubscriptionStatusView,
    CurrentSubscription, MySubscriptionResponse,
)
