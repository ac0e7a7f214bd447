"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import itertools
import os
from datetime import datetime, timedelta, timezone

# Keep the module-level engine off the working directory during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from storeintel.db.models import (
    Base,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductVariant,
    Store,
    StoreProduct,
)

# Fixed clock for service-level tests
NOW = datetime(2025, 6, 30, 12, 0, 0)

STORE_ID = "store-1"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StoreSeeder:
    """Builds a store with stocked items and fulfilled orders."""

    def __init__(self, db: Session, store_id: str = STORE_ID, name: str = "Corner Shop"):
        self.db = db
        self.store_id = store_id
        self._ids = itertools.count(1)
        db.add(Store(id=store_id, name=name))
        db.commit()

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{self.store_id}-{next(self._ids)}"

    def item(
        self,
        item_id: str,
        stock: int,
        reserved: int = 0,
        *,
        product: str = "Milk",
        variant: str = "1L",
        active: bool = True,
        image_url: str | None = None,
        updated_at: datetime | None = None,
    ) -> str:
        product_id = self._next_id("p")
        variant_id = self._next_id("v")
        self.db.add(Product(id=product_id, name=product, image_url=image_url))
        self.db.add(ProductVariant(id=variant_id, product_id=product_id, name=variant))
        self.db.add(
            StoreProduct(
                id=item_id,
                store_id=self.store_id,
                product_id=product_id,
                variant_id=variant_id,
                stock=stock,
                reserved_stock=reserved,
                is_active=active,
                updated_at=updated_at or NOW,
            )
        )
        self.db.commit()
        return item_id

    def sale(
        self,
        item_id: str,
        quantity: int,
        at: datetime,
        status: OrderStatus = OrderStatus.DELIVERED,
    ) -> str:
        order_id = self._next_id("o")
        self.db.add(Order(id=order_id, store_id=self.store_id, status=status.value, created_at=at))
        self.db.add(
            OrderItem(
                id=self._next_id("oi"),
                order_id=order_id,
                store_product_id=item_id,
                quantity=quantity,
            )
        )
        self.db.commit()
        return order_id

    def daily_sales(self, item_id: str, quantity: int, days: range, *, now: datetime = NOW) -> None:
        """One delivered order per day ``d`` in ``days``, placed ``d`` days before ``now``."""
        for d in days:
            self.sale(item_id, quantity, now - timedelta(days=d))


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so concurrent sessions get their own connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'storeintel_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeder(db) -> StoreSeeder:
    return StoreSeeder(db)
