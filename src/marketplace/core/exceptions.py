"""Domain exceptions for the subscription core.

Each kind carries the HTTP status the boundary layer maps it to. Ownership
mismatches reuse the not-found errors so callers cannot discover other
users' subscriptions.
"""
from fastapi import status


class SubscriptionError(Exception):
    """Base subscription exception."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(SubscriptionError):
    """Identifier absent, or owned by someone else."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(SubscriptionError):
    """State precondition violated."""
    status_code = status.HTTP_409_CONFLICT


class InvalidInputError(SubscriptionError):
    """Caller-supplied data failed validation."""
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(SubscriptionError):
    """Storage failure surfaced as an opaque error."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class PlanNotFoundError(NotFoundError):
    def __init__(self, identifier: str):
        super().__init__(
            f"Subscription plan with identifier {identifier} not found",
            "SUBSCRIPTION_PLAN_NOT_FOUND",
        )


class SubscriptionNotFoundError(NotFoundError):
    def __init__(self, identifier: str):
        super().__init__(
            f"Subscription with identifier {identifier} not found",
            "SUBSCRIPTION_NOT_FOUND",
        )


class ActiveSubscriptionExistsError(ConflictError):
    def __init__(self):
        super().__init__("User already has an active subscription", "ACTIVE_SUBSCRIPTION_EXISTS")


class SubscriptionCancellationError(ConflictError):
    def __init__(self, reason: str):
        super().__init__(f"Cannot cancel subscription: {reason}", "SUBSCRIPTION_CANCELLATION_ERROR")


class EmailAlreadyRegisteredError(ConflictError):
    def __init__(self, email: str):
        super().__init__(f"A user with email {email} already exists", "EMAIL_ALREADY_REGISTERED")


class InvalidSubscriptionStatusError(ConflictError):
    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            f"Cannot change subscription status from {current_status} to {target_status}",
            "INVALID_SUBSCRIPTION_STATUS",
        )


class InactivePlanError(InvalidInputError):
    def __init__(self, plan_name: str):
        super().__init__(f"Subscription plan {plan_name} is not available", "INACTIVE_SUBSCRIPTION_PLAN")


class InvalidPaymentDataError(InvalidInputError):
    def __init__(self, field: str):
        super().__init__(f"Invalid payment data: {field}", "INVALID_PAYMENT_DATA")


class SubscriptionPersistenceError(InternalError):
    def __init__(self, message: str):
        super().__init__(message, "SUBSCRIPTION_PERSISTENCE_ERROR")
