"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Set, Tuple
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from krolist.core.exceptions import StoreError
from krolist.models import Base
from krolist.schemas import (
    GlobalNotificationCreate,
    PriceHistoryCreate,
    PriceHistoryPoint,
    ProductRecord,
)
from krolist.store.base import PriceStore


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


def make_product(
    title: str,
    price: str = "100.00",
    collection: Optional[str] = None,
    store: str = "Amazon",
    status: str = "available",
) -> ProductRecord:
    return ProductRecord(
        id=uuid4(),
        title=title,
        store=store,
        collection_title=collection,
        current_price=Decimal(price),
        original_price=Decimal("150.00"),
        currency="SAR",
        availability_status=status,
        product_url=f"https://example.com/{title.replace(' ', '-').lower()}",
        image_url="https://example.com/image.jpg",
    )


class InMemoryPriceStore(PriceStore):
    """Store double that keeps rows in dicts and can be told to fail."""

    backend = "memory"

    def __init__(self, products: Sequence[ProductRecord] = ()):
        super().__init__()
        self.products: Dict[UUID, ProductRecord] = {p.id: p for p in products}
        self.history: List[PriceHistoryCreate] = []
        self.history_calls = 0
        self.notifications: List[GlobalNotificationCreate] = []
        self.refresh_counts: Dict[Tuple[str, date], int] = {}
        self.fail_ids: Set[UUID] = set()
        self.fail_history = False
        self.fail_refresh_read = False
        self.update_calls: List[UUID] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_products(self) -> List[ProductRecord]:
        return list(self.products.values())

    async def update_product_price(
        self,
        product_id: UUID,
        price: Decimal,
        status: str,
        checked_at: datetime,
    ) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.update_calls.append(product_id)
            if product_id in self.fail_ids:
                raise StoreError("update_product_price", "row is locked")
            current = self.products[product_id]
            self.products[product_id] = current.model_copy(update={
                "current_price": price,
                "availability_status": status,
                "last_checked_at": checked_at,
            })
        finally:
            self.in_flight -= 1

    async def insert_price_history(self, records: Sequence[PriceHistoryCreate]) -> None:
        self.history_calls += 1
        if self.fail_history:
            raise StoreError("insert_price_history", "insert rejected")
        self.history.extend(records)

    async def fetch_price_history(self, product_id: UUID) -> List[PriceHistoryPoint]:
        return [
            PriceHistoryPoint(
                product_id=r.product_id,
                price=r.price,
                original_price=r.original_price,
                currency=r.currency,
                scraped_at=datetime.now(),
            )
            for r in self.history
            if r.product_id == product_id
        ]

    async def fetch_refresh_count(self, user_id: str, week_start: date) -> int:
        if self.fail_refresh_read:
            raise StoreError("fetch_refresh_count", "connection reset")
        return self.refresh_counts.get((user_id, week_start), 0)

    async def insert_notification(self, notification: GlobalNotificationCreate) -> None:
        self.notifications.append(notification)


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    return InMemoryPriceStore()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """File-backed SQLite database so concurrent sessions see one schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'krolist.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()
