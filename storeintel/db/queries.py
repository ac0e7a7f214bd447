"""Read queries feeding the intelligence pipeline.

Every query is scoped to one store and returns plain domain records, so the
domain layer never sees ORM objects or sessions.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storeintel.db.models import (
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductVariant,
    Store,
    StoreProduct,
)
from storeintel.domain.intelligence.types import SaleLine, StockedItem


def get_store(db: Session, store_id: str) -> Store | None:
    return db.get(Store, store_id)


def load_stocked_items(db: Session, store_id: str) -> list[StockedItem]:
    """Load the store's stock ledger (active and inactive items).

    Ordered by product name, variant name, id so downstream output is stable.
    """
    stmt = (
        select(
            StoreProduct.id,
            Product.name.label("product_name"),
            ProductVariant.name.label("variant_name"),
            func.coalesce(Product.image_url, ProductVariant.image_url).label("image_url"),
            StoreProduct.stock,
            StoreProduct.reserved_stock,
            StoreProduct.is_active,
        )
        .join(Product, StoreProduct.product_id == Product.id)
        .join(ProductVariant, StoreProduct.variant_id == ProductVariant.id)
        .where(StoreProduct.store_id == store_id)
        .order_by(Product.name, ProductVariant.name, StoreProduct.id)
    )

    return [
        StockedItem(
            id=row.id,
            product_name=row.product_name,
            variant_name=row.variant_name,
            image_url=row.image_url,
            stock=row.stock,
            reserved_stock=row.reserved_stock,
            is_active=bool(row.is_active),
        )
        for row in db.execute(stmt).all()
    ]


def load_sale_lines(
    db: Session,
    store_id: str,
    since: datetime,
    until: datetime,
) -> list[SaleLine]:
    """Load fulfilled order lines of one store placed within ``[since, until]``.

    Only DELIVERED orders count; in-flight and cancelled orders would
    overstate demand.
    """
    stmt = (
        select(
            OrderItem.store_product_id,
            OrderItem.order_id,
            OrderItem.quantity,
            Order.created_at,
        )
        .join(Order, OrderItem.order_id == Order.id)
        .where(Order.store_id == store_id)
        .where(Order.status == OrderStatus.DELIVERED.value)
        .where(Order.created_at >= since)
        .where(Order.created_at <= until)
        .order_by(Order.created_at, OrderItem.id)
    )

    return [
        SaleLine(
            store_product_id=row.store_product_id,
            order_id=row.order_id,
            quantity=row.quantity,
            created_at=row.created_at,
        )
        for row in db.execute(stmt).all()
    ]


def load_recent_stock_changes(db: Session, store_id: str, limit: int) -> list:
    """Most recently updated store products with their stock counters."""
    stmt = (
        select(
            StoreProduct.id,
            Product.name.label("product_name"),
            ProductVariant.name.label("variant_name"),
            StoreProduct.stock,
            StoreProduct.reserved_stock,
            StoreProduct.updated_at,
        )
        .join(Product, StoreProduct.product_id == Product.id)
        .join(ProductVariant, StoreProduct.variant_id == ProductVariant.id)
        .where(StoreProduct.store_id == store_id)
        .order_by(StoreProduct.updated_at.desc(), StoreProduct.id)
        .limit(limit)
    )
    return db.execute(stmt).all()
