from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import Base

CUSTOMER_ROLE = "Cliente"
MEMBERSHIPS_ROLE = "memberships"
# Policy role granted by `is_staff`, never by subscription state
STAFF_ROLE = "staff"


class User(Base):
    """User model. `role` is a projection of subscription state."""
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, default=CUSTOMER_ROLE)
    is_staff = Column(Boolean, nullable=False, default=False)

    # Relationships
    subscriptions = relationship("Subscription", back_populates="user")
    products = relationship("Product", back_populates="owner")

    def is_admin(self) -> bool:
        return self.role == MEMBERSHIPS_ROLE

    def policy_roles(self) -> set:
        """Roles matched against policies.yaml."""
        roles = {self.role}
        if self.is_staff:
            roles.add(STAFF_ROLE)
        return roles

    def is_customer(self) -> bool:
        return self.role == CUSTOMER_ROLE

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()


class Product(Base):
    """Product listing owned by a seller."""
    __tablename__ = "products"

    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    # Relationships
    owner = relationship("User", back_populates="products")

    def in_stock(self) -> bool:
        return (self.stock or 0) > 0
