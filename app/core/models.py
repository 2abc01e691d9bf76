from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    Numeric,
    Boolean,
    TIMESTAMP,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func, text
from sqlalchemy.orm import relationship

from app.core.database import Base


def uuid_pk():
    return Column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )


def tenant_fk(nullable: bool = False):
    return Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=nullable,
        index=True,
    )


def created_at_column():
    return Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


# =========================
# Tenant
# =========================
class Tenant(Base):
    """An isolated distribution company. Every business row points at one."""

    __tablename__ = "tenants"

    id = uuid_pk()
    name = Column(String, nullable=False)
    subscription_plan = Column(String, nullable=False, server_default="basic")
    max_users = Column(Integer, nullable=False, server_default="5")

    created_at = created_at_column()

    profiles = relationship("Profile", back_populates="tenant")


# =========================
# Profile (staff user)
# =========================
class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the identity provider's user id
    id = Column(UUID(as_uuid=True), primary_key=True)
    tenant_id = tenant_fk(nullable=True)

    role = Column(String, nullable=False, server_default="sales")
    first_name = Column(String)
    last_name = Column(String)

    created_at = created_at_column()

    tenant = relationship("Tenant", back_populates="profiles")


# =========================
# Customer
# =========================
class Customer(Base):
    __tablename__ = "customers"

    id = uuid_pk()
    tenant_id = tenant_fk()

    name = Column(String, nullable=False)
    email = Column(String)
    phone = Column(String)
    address = Column(Text)

    created_at = created_at_column()


# =========================
# Product
# =========================
class Product(Base):
    __tablename__ = "products"

    id = uuid_pk()
    tenant_id = tenant_fk()

    name = Column(String, nullable=False)
    description = Column(Text)
    price = Column(Numeric(12, 2), nullable=False, server_default="0")
    sku = Column(String, index=True)
    stock_quantity = Column(Integer, nullable=False, server_default="0")
    category = Column(String)
    is_active = Column(Boolean, nullable=False, server_default="true")

    created_at = created_at_column()


# =========================
# Order
# =========================
class Order(Base):
    __tablename__ = "orders"

    id = uuid_pk()
    tenant_id = tenant_fk()
    customer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    order_date = created_at_column()
    total_amount = Column(Numeric(12, 2), nullable=False, server_default="0")
    status = Column(String, nullable=False, server_default="pending", index=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = uuid_pk()
    order_id = Column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")


# =========================
# User activity log (AUDIT TRAIL)
# =========================
class UserActivityLog(Base):
    """
    Append-only record of what a staff user did.
    The assistant writes one row per executed database query.
    """

    __tablename__ = "user_activity_logs"

    id = uuid_pk()

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    # No cascade: audit rows outlive the tenant
    tenant_id = Column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=True, index=True
    )

    action_type = Column(String, nullable=False, index=True)
    details = Column(JSONB, nullable=True)  # {"query": ..., "description": ...}

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
