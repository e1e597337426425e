from enum import Enum


class UserRole(str, Enum):
    """Role projection stored on the user row."""
    CUSTOMER = "Cliente"
    MEMBERSHIPS = "memberships"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states. `expired` and `cancelled` are terminal."""
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Payment methods accepted for paid plans."""
    STRIPE = "stripe"
    PAYPAL = "paypal"
    CREDIT_CARD = "credit_card"
    MANUAL = "manual"


# Automated gateways must hand back a reference
PAYMENT_METHODS_REQUIRING_REFERENCE = frozenset({PaymentMethod.STRIPE.value, PaymentMethod.PAYPAL.value})


class UsageAction(str, Enum):
    """Premium actions subject to plan usage limits."""
    CREATE_PRODUCT = "create_product"
    UPLOAD_IMAGE = "upload_image"
