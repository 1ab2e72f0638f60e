"""SQLAlchemy store for self-hosted or local Krolist databases.

Each call opens its own short-lived session so operations in one batch
can run concurrently without sharing an AsyncSession.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from krolist.core.exceptions import StoreError
from krolist.db.session import get_session_factory
from krolist.models import GlobalNotification, PriceHistory, Product, UserRefreshLog
from krolist.schemas import (
    GlobalNotificationCreate,
    PriceHistoryCreate,
    PriceHistoryPoint,
    ProductRecord,
)
from krolist.store.base import PriceStore


class SqlPriceStore(PriceStore):
    """PriceStore over an async SQLAlchemy session factory."""

    backend = "sql"

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        """Initialize SQL store.

        Args:
            session_factory: Session factory; defaults to the configured database
        """
        super().__init__()
        self.session_factory = session_factory or get_session_factory()

    async def fetch_products(self) -> List[ProductRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Product).order_by(Product.created_at.desc())
                )
                return [ProductRecord.model_validate(p) for p in result.scalars().all()]
        except SQLAlchemyError as e:
            self.logger.error("store_read_failed", operation="fetch_products", error=str(e))
            raise StoreError("fetch_products", str(e)) from e

    async def update_product_price(
        self,
        product_id: UUID,
        price: Decimal,
        status: str,
        checked_at: datetime,
    ) -> None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(
                        current_price=price,
                        availability_status=status,
                        last_checked_at=checked_at,
                    )
                )
                matched = result.rowcount
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError("update_product_price", str(e)) from e

        if matched == 0:
            raise StoreError("update_product_price", f"product {product_id} not found")

    async def insert_price_history(self, records: Sequence[PriceHistoryCreate]) -> None:
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                session.add_all([
                    PriceHistory(
                        product_id=r.product_id,
                        price=r.price,
                        original_price=r.original_price,
                        currency=r.currency,
                        scraped_at=now,
                    )
                    for r in records
                ])
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError("insert_price_history", str(e)) from e

    async def fetch_price_history(self, product_id: UUID) -> List[PriceHistoryPoint]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PriceHistory)
                    .where(PriceHistory.product_id == product_id)
                    .order_by(PriceHistory.scraped_at.asc())
                )
                return [PriceHistoryPoint.model_validate(h) for h in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError("fetch_price_history", str(e)) from e

    async def fetch_refresh_count(self, user_id: str, week_start: date) -> int:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(UserRefreshLog.refresh_count).where(
                        UserRefreshLog.user_id == user_id,
                        UserRefreshLog.week_start == week_start,
                    )
                )
                count = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error("store_read_failed", operation="fetch_refresh_count", error=str(e))
            raise StoreError("fetch_refresh_count", str(e)) from e
        return count or 0

    async def insert_notification(self, notification: GlobalNotificationCreate) -> None:
        try:
            async with self.session_factory() as session:
                session.add(GlobalNotification(**notification.model_dump()))
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError("insert_notification", str(e)) from e
