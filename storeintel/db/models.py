"""SQLAlchemy ORM models for the store intelligence read model.

Only the columns the engine reads are mapped:
- Reference data (Stores, Products, Variants)
- Stock ledger (StoreProduct: on-hand and reserved counters per store)
- Fact tables (Orders, OrderItems)

All timestamps are stored as naive UTC. Display timezone conversion happens in
the presentation layer of the host application.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class OrderStatus(str, enum.Enum):
    """Order lifecycle states. Only DELIVERED is terminal-fulfilled."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# =============================================================================
# Reference Tables
# =============================================================================


class Store(Base):
    """Inventory-holding entity (one physical or dark store)."""

    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Product(Base):
    """Catalog product (shared across stores)."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(300))
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)


class ProductVariant(Base):
    """Sellable variant of a product (pack size, weight, flavour)."""

    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(200))
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)


# =============================================================================
# Stock ledger
# =============================================================================


class StoreProduct(Base):
    """A variant offered by a specific store, with its stock counters.

    ``stock`` is on-hand, ``reserved_stock`` is committed to in-flight orders.
    Both are mutated by the order-processing path; this engine only reads them.
    """

    __tablename__ = "store_products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"))
    variant_id: Mapped[str] = mapped_column(ForeignKey("product_variants.id", ondelete="RESTRICT"))
    stock: Mapped[int] = mapped_column(Integer, default=0)
    reserved_stock: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    product: Mapped[Product] = relationship()
    variant: Mapped[ProductVariant] = relationship()


# =============================================================================
# Fact Tables
# =============================================================================


class Order(Base):
    """Customer order placed against one store."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id", ondelete="RESTRICT"))
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime)

    __table_args__ = (Index("ix_orders_store_status_created", "store_id", "status", "created_at"),)


class OrderItem(Base):
    """Line item of an order."""

    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    store_product_id: Mapped[str] = mapped_column(
        ForeignKey("store_products.id", ondelete="RESTRICT"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer)
