"""Services module for the price administration workflows.

Services hold the workflow logic: quota gating, bulk editing, batched
reconciliation, the history ledger and the action boundary that turns
outcomes into user-facing notices.
"""

from krolist.services.actions import PriceAdminActions
from krolist.services.bulk_price_editor import BulkEditEntry, BulkPriceEditor
from krolist.services.price_history import PriceHistoryAppender
from krolist.services.price_reconciler import PriceReconciler, ReconcileResult, RunOutcome, RunState
from krolist.services.progress import ProgressReporter
from krolist.services.quota_service import (
    QuotaLedgerReader,
    can_refresh,
    get_current_week_bucket,
    next_week_start,
    reconcile_gate,
)
from krolist.services.translation import DebouncedTranslator

__all__ = [
    "PriceAdminActions",
    "BulkEditEntry",
    "BulkPriceEditor",
    "PriceHistoryAppender",
    "PriceReconciler",
    "ReconcileResult",
    "RunOutcome",
    "RunState",
    "ProgressReporter",
    "QuotaLedgerReader",
    "can_refresh",
    "get_current_week_bucket",
    "next_week_start",
    "reconcile_gate",
    "DebouncedTranslator",
]
