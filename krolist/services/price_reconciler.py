"""Batch reconciliation of manual price edits.

Operations are written in fixed-size batches: every operation in a batch
is in flight at once, and the next batch starts only after the whole
batch has settled. One failed write never stops its siblings. History is
appended once, after the last batch, for the writes that changed a price.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from krolist.config import settings
from krolist.core.exceptions import RunInProgressError, StoreError
from krolist.schemas import GlobalNotificationCreate, PriceUpdateOperation
from krolist.services.price_history import PriceHistoryAppender
from krolist.services.progress import ProgressReporter
from krolist.store.base import PriceStore

logger = structlog.get_logger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    BATCHING = "batching"
    APPENDING_HISTORY = "appending_history"
    DONE = "done"


class RunOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    EMPTY = "empty"


class ReconcileResult(BaseModel):
    """Summary of one reconciliation run."""

    updated_count: int = 0
    errors: List[str] = Field(default_factory=list)
    history_appended: int = 0
    outcome: RunOutcome = RunOutcome.EMPTY


class PriceReconciler:
    """Applies price update operations to the store in bounded batches."""

    def __init__(
        self,
        store: PriceStore,
        batch_size: Optional[int] = None,
        progress: Optional[ProgressReporter] = None,
        history: Optional[PriceHistoryAppender] = None,
        notify: bool = True,
    ):
        """Initialize reconciler.

        Args:
            store: External store
            batch_size: Operations per batch; defaults to settings.BULK_UPDATE_BATCH_SIZE
            progress: Reporter updated after each batch
            history: History appender; defaults to one over the same store
            notify: Publish a "Prices Updated" notification after a run that updated rows
        """
        self.store = store
        self.batch_size = batch_size or settings.BULK_UPDATE_BATCH_SIZE
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.progress = progress or ProgressReporter()
        self.history = history or PriceHistoryAppender(store)
        self.notify = notify
        self.state = RunState.IDLE
        self.batches_done = 0
        self.batches_total = 0
        self.logger = logger.bind(service="price_reconciler")

    @property
    def is_running(self) -> bool:
        return self.state not in (RunState.IDLE, RunState.DONE)

    async def _apply(self, operation: PriceUpdateOperation, checked_at: datetime) -> PriceUpdateOperation:
        try:
            await self.store.update_product_price(
                operation.product.id,
                operation.price,
                operation.status,
                checked_at,
            )
        except StoreError as e:
            raise StoreError(
                "update_product_price",
                f"Failed to update {operation.product.title}: {e.message}",
            ) from e
        return operation

    async def run(self, operations: Sequence[PriceUpdateOperation]) -> ReconcileResult:
        """Write every operation and append history for changed prices.

        Args:
            operations: One operation per product row

        Returns:
            ReconcileResult; non-empty errors means a partial success

        Raises:
            RunInProgressError: If this reconciler is already running
        """
        if self.is_running:
            raise RunInProgressError()

        self.state = RunState.VALIDATING
        try:
            return await self._run(list(operations))
        finally:
            self.state = RunState.DONE

    async def _run(self, operations: List[PriceUpdateOperation]) -> ReconcileResult:
        result = ReconcileResult()
        total = len(operations)
        self.progress.start(total)

        if total == 0:
            self.logger.info("reconcile_skipped_empty")
            return result

        checked_at = datetime.now(timezone.utc)
        changed: List[PriceUpdateOperation] = []
        self.batches_total = (total + self.batch_size - 1) // self.batch_size
        self.batches_done = 0
        self.state = RunState.BATCHING

        self.logger.info(
            "reconcile_started",
            operations=total,
            batch_size=self.batch_size,
            batches=self.batches_total,
        )

        for start in range(0, total, self.batch_size):
            batch = operations[start:start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self._apply(op, checked_at) for op in batch),
                return_exceptions=True,
            )

            for op, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    message = getattr(outcome, "message", None) or str(outcome) or "Unknown error"
                    result.errors.append(message)
                    self.logger.warning(
                        "price_update_failed",
                        product_id=str(op.product.id),
                        error=message,
                    )
                    continue
                result.updated_count += 1
                if op.price_changed:
                    changed.append(op)

            self.batches_done += 1
            self.progress.advance(min(start + self.batch_size, total))

        self.state = RunState.APPENDING_HISTORY
        if await self.history.append(changed):
            result.history_appended = len(changed)

        if result.updated_count > 0 and self.notify:
            await self._publish_notification(result.updated_count, checked_at)

        self.progress.finish()
        result.outcome = RunOutcome.PARTIAL if result.errors else RunOutcome.SUCCESS

        self.logger.info(
            "reconcile_finished",
            updated=result.updated_count,
            errors=len(result.errors),
            history_appended=result.history_appended,
            outcome=result.outcome.value,
        )
        return result

    async def _publish_notification(self, updated_count: int, timestamp: datetime) -> None:
        day = timestamp.astimezone().strftime("%Y-%m-%d")
        notification = GlobalNotificationCreate(
            type="price_update",
            title="Prices Updated",
            title_ar="تم تحديث الأسعار",
            message=f"Product prices have been updated on {day}",
            message_ar=f"تم تحديث أسعار المنتجات في {day}",
            data={"updatedCount": updated_count, "timestamp": timestamp.isoformat()},
        )
        try:
            await self.store.insert_notification(notification)
        except StoreError as e:
            self.logger.error("price_notification_failed", error=str(e))
