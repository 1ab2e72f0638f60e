"""Admin price actions as seen from the dashboard.

Each public method is one user-triggered action. It always returns a
Notice for the toast and never raises. Failures are recovered here; the
in-flight flag is always cleared and progress is reset after a failure.
"""

from datetime import date, datetime
from typing import Optional

import structlog

from krolist.clients.functions import FunctionsClient
from krolist.core.exceptions import KrolistException, RunInProgressError
from krolist.schemas import (
    CatalogRefreshOk,
    Notice,
    QuotaDenied,
    RefreshGate,
    RefreshOk,
)
from krolist.services.bulk_price_editor import BulkPriceEditor
from krolist.services.price_reconciler import PriceReconciler, RunOutcome
from krolist.services.quota_service import (
    QuotaLedgerReader,
    gate_is_stale,
    get_current_week_bucket,
    local_now,
    reconcile_gate,
)
from krolist.store.base import PriceStore

logger = structlog.get_logger(__name__)


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "next Sunday"


class PriceAdminActions:
    """Owns gate state, progress and the in-flight flags for one session."""

    def __init__(
        self,
        store: PriceStore,
        functions: FunctionsClient,
        quota: Optional[QuotaLedgerReader] = None,
        reconciler: Optional[PriceReconciler] = None,
    ):
        self.store = store
        self.functions = functions
        self.quota = quota or QuotaLedgerReader(store)
        self.reconciler = reconciler or PriceReconciler(store)
        self.progress = self.reconciler.progress
        self.gate: Optional[RefreshGate] = None
        self.gate_week: Optional[date] = None
        self.is_refreshing = False
        self.is_saving = False
        self.logger = logger.bind(service="price_admin_actions")

    async def load_gate(self, now: Optional[datetime] = None) -> RefreshGate:
        """Read the weekly quota and cache the advisory gate for now's week."""
        now = now or local_now()
        self.gate = await self.quota.current_gate(now)
        self.gate_week = get_current_week_bucket(now)
        return self.gate

    async def current_gate(self, now: datetime) -> RefreshGate:
        """Cached gate, re-read once its week or eligible date has passed."""
        if self.gate is None or gate_is_stale(self.gate, self.gate_week, now):
            return await self.load_gate(now)
        return self.gate

    async def refresh_all_prices(self, now: Optional[datetime] = None) -> Notice:
        """Trigger the weekly automatic refresh of the user's tracked prices."""
        if self.is_refreshing:
            return Notice(title="Refresh in progress", description="Please wait for the current refresh")

        now = now or local_now()
        self.is_refreshing = True
        try:
            gate = await self.current_gate(now)
            if not gate.allowed:
                return Notice(
                    title="Weekly limit reached",
                    description=f"Next refresh available on {_format_date(gate.next_eligible_date)}",
                    variant="destructive",
                )

            result = await self.functions.refresh_user_prices()
            self.gate = reconcile_gate(gate, result, now)

            if isinstance(result, QuotaDenied):
                return Notice(
                    title="Weekly limit reached",
                    description=f"{result.message} Next refresh available on {_format_date(self.gate.next_eligible_date)}",
                    variant="destructive",
                )
            if isinstance(result, RefreshOk):
                return Notice(
                    title="Prices refreshed successfully",
                    description=f"Updated {result.updated} of {result.checked} products",
                )
            return Notice(title="Error refreshing prices", description=result.message, variant="destructive")

        except KrolistException as e:
            self.logger.error("refresh_all_failed", error=e.message)
            return Notice(title="Error refreshing prices", description=e.message, variant="destructive")
        except Exception as e:
            self.logger.exception("refresh_all_unexpected_error", error=str(e))
            return Notice(title="Error", description="Something went wrong. Please try again.", variant="destructive")
        finally:
            self.is_refreshing = False

    async def refresh_catalog_prices(self) -> Notice:
        """Ask the server to re-scrape every curated product (admin)."""
        if self.is_refreshing:
            return Notice(title="Refresh in progress", description="Please wait for the current refresh")

        self.is_refreshing = True
        self.progress.start(1)
        try:
            result = await self.functions.refresh_catalog_prices()
            self.progress.finish()
            if isinstance(result, CatalogRefreshOk):
                return Notice(
                    title="Prices refreshed successfully",
                    description=f"Updated {result.updated} products. Failed: {result.failed}",
                )
            return Notice(title="Error refreshing prices", description=result.message, variant="destructive")
        except KrolistException as e:
            self.logger.error("catalog_refresh_failed", error=e.message)
            self.progress.reset()
            return Notice(title="Error refreshing prices", description=e.message, variant="destructive")
        except Exception as e:
            self.logger.exception("catalog_refresh_unexpected_error", error=str(e))
            self.progress.reset()
            return Notice(title="Error", description="Something went wrong. Please try again.", variant="destructive")
        finally:
            self.is_refreshing = False

    async def open_bulk_editor(self) -> BulkPriceEditor:
        """Load every product and start a fresh edit set.

        Raises:
            StoreError: If the products cannot be loaded
        """
        products = await self.store.fetch_products()
        return BulkPriceEditor(products)

    async def save_manual_prices(self, editor: BulkPriceEditor) -> Notice:
        """Apply the edit set to every product copy and report the outcome."""
        if self.is_saving or self.reconciler.is_running:
            return Notice(title="Update in progress", description="Please wait for the current update to finish")

        operations = editor.build_operations()
        if not operations:
            return Notice(title="No updates", description="No valid price changes to save", variant="destructive")

        self.is_saving = True
        try:
            result = await self.reconciler.run(operations)
            editor.discard()
            if result.outcome == RunOutcome.PARTIAL:
                return Notice(
                    title="Partial success",
                    description=f"Updated {result.updated_count} products. {len(result.errors)} errors occurred.",
                    variant="destructive",
                )
            return Notice(title="Success", description=f"Updated {result.updated_count} products successfully")
        except RunInProgressError:
            return Notice(title="Update in progress", description="Please wait for the current update to finish")
        except Exception as e:
            self.logger.exception("save_manual_prices_failed", error=str(e))
            self.progress.reset()
            return Notice(title="Error", description="Could not update prices. Please try again.", variant="destructive")
        finally:
            self.is_saving = False
