"""External store interface.

Every read and write the price workflows make goes through a PriceStore.
Implementations translate their own transport or database failures into
StoreError so callers only ever handle one exception type.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import List, Sequence
from uuid import UUID

import structlog

from krolist.schemas import (
    GlobalNotificationCreate,
    PriceHistoryCreate,
    PriceHistoryPoint,
    ProductRecord,
)


class PriceStore(ABC):
    """Abstract gateway to the hosted Krolist tables."""

    backend: str = "base"

    def __init__(self):
        self.logger = structlog.get_logger(__name__).bind(store=self.backend)

    @abstractmethod
    async def fetch_products(self) -> List[ProductRecord]:
        """Fetch every curated product, newest first.

        Raises:
            StoreError: If the store cannot be read
        """

    @abstractmethod
    async def update_product_price(
        self,
        product_id: UUID,
        price: Decimal,
        status: str,
        checked_at: datetime,
    ) -> None:
        """Write price, availability status and check time to one row.

        Raises:
            StoreError: If the row does not exist or could not be updated
        """

    @abstractmethod
    async def insert_price_history(self, records: Sequence[PriceHistoryCreate]) -> None:
        """Append history rows in a single insert.

        Raises:
            StoreError: If the insert fails
        """

    @abstractmethod
    async def fetch_price_history(self, product_id: UUID) -> List[PriceHistoryPoint]:
        """Fetch a product's history, oldest first."""

    @abstractmethod
    async def fetch_refresh_count(self, user_id: str, week_start: date) -> int:
        """Read the refresh counter for one user and week.

        Returns:
            The counter, or 0 when no bucket exists yet
        """

    @abstractmethod
    async def insert_notification(self, notification: GlobalNotificationCreate) -> None:
        """Publish a site-wide notification."""

    async def aclose(self) -> None:
        """Release transport resources."""
