from .base import Base
from .core import User, Product
from .subscription import SubscriptionPlan, Subscription

__all__ = [
    "Base",
    "User",
    "Product",
    "SubscriptionPlan",
    "Subscription"
]
