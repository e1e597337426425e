import math
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow

MONTH_DAYS = 30


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class SubscriptionPlan(Base):
    """Purchasable tier: price, duration and feature limits. Never deleted, only deactivated."""
    __tablename__ = "subscription_plans"

    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_days = Column(Integer, nullable=False)
    max_products = Column(Integer, nullable=False, default=-1)  # -1 = unlimited
    max_images_per_product = Column(Integer, nullable=False, default=5)
    features = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    subscriptions = relationship("Subscription", back_populates="plan")

    def is_free(self) -> bool:
        return _as_decimal(self.price) == 0

    def has_unlimited_products(self) -> bool:
        return self.max_products == -1

    def monthly_price(self) -> Decimal:
        price = _as_decimal(self.price)
        if self.duration_days <= MONTH_DAYS:
            return price
        return price / (Decimal(self.duration_days) / Decimal(MONTH_DAYS))

    def calculate_savings(self, monthly_plan: "SubscriptionPlan") -> Decimal:
        """Savings of this plan against paying `monthly_plan` for the same period."""
        if self.duration_days <= MONTH_DAYS:
            return Decimal(0)
        months_in_plan = Decimal(self.duration_days) / Decimal(MONTH_DAYS)
        monthly_total = _as_decimal(monthly_plan.price) * months_in_plan
        return monthly_total - _as_decimal(self.price)

    def duration_in_months(self) -> int:
        months = Decimal(self.duration_days) / Decimal(MONTH_DAYS)
        return int(months.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class Subscription(Base):
    """A user's time-bounded enrollment in a plan."""
    __tablename__ = "user_subscriptions"
    __table_args__ = (
        # At most one active row per user
        Index(
            "uq_user_subscriptions_one_active",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    started_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    payment_method = Column(String(30), nullable=True)
    payment_reference = Column(String(255), nullable=True)
    payment_amount = Column(Numeric(10, 2), nullable=True)
    auto_renew = Column(Boolean, nullable=False, default=False)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Relationships
    user = relationship("User", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan", back_populates="subscriptions", lazy="joined")

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.status != "active" or self.expires_at is None:
            return False
        return (now or utcnow()) < self.expires_at

    def is_expiring_soon(self, now: Optional[datetime] = None, days: int = 7) -> bool:
        now = now or utcnow()
        if not self.is_active(now):
            return False
        return self.expires_at <= now + timedelta(days=days)

    def days_remaining(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        if not self.is_active(now):
            return 0
        return math.ceil((self.expires_at - now) / timedelta(days=1))
