"""Price history appender.

History is a derived trail: the product row is the source of truth, so a
failed history insert is logged and never undoes the price writes.
"""

from typing import Sequence

import structlog

from krolist.config import settings
from krolist.core.exceptions import StoreError
from krolist.schemas import PriceHistoryCreate, PriceUpdateOperation
from krolist.store.base import PriceStore

logger = structlog.get_logger(__name__)


class PriceHistoryAppender:
    """Writes one history row per changed product in a single insert."""

    def __init__(self, store: PriceStore):
        self.store = store
        self.logger = logger.bind(service="price_history")

    @staticmethod
    def to_record(operation: PriceUpdateOperation) -> PriceHistoryCreate:
        product = operation.product
        return PriceHistoryCreate(
            product_id=product.id,
            price=operation.price,
            original_price=product.original_price,
            currency=product.currency or settings.DEFAULT_CURRENCY,
        )

    async def append(self, changed_operations: Sequence[PriceUpdateOperation]) -> bool:
        """Insert history for operations whose price changed.

        Args:
            changed_operations: Successful operations with a new price

        Returns:
            True if rows were written, False if nothing to write or the insert failed
        """
        if not changed_operations:
            return False

        records = [self.to_record(op) for op in changed_operations]
        try:
            await self.store.insert_price_history(records)
        except StoreError as e:
            self.logger.error(
                "price_history_insert_failed",
                records=len(records),
                error=str(e),
            )
            return False

        self.logger.info("price_history_appended", records=len(records))
        return True
