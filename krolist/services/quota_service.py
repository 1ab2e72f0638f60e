"""Weekly refresh quota: week buckets, the local gate and reconciliation.

Weeks start on Sunday at local midnight. The local gate is only a hint
for the UI; the refresh function enforces the quota on the server and
its answer always overwrites whatever the gate predicted.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import structlog

from krolist.config import settings
from krolist.core.exceptions import StoreError
from krolist.schemas import QuotaDenied, RefreshGate, RefreshOk, RefreshResult
from krolist.store.base import PriceStore

logger = structlog.get_logger(__name__)


def local_now() -> datetime:
    """Current time in the configured IANA zone (settings.TIMEZONE)."""
    return datetime.now(ZoneInfo(settings.TIMEZONE))


def get_current_week_bucket(now: datetime) -> date:
    """Return the Sunday that opens the week containing ``now``.

    Python counts Monday as weekday 0, so Sunday (6) maps to offset 0.
    """
    return now.date() - timedelta(days=(now.weekday() + 1) % 7)


def next_week_start(now: datetime) -> datetime:
    """Midnight of the Sunday after ``now``'s week, in ``now``'s timezone.

    With a ZoneInfo the offset is resolved for that Sunday, so a DST
    change during the week is honoured. A fixed-offset tzinfo is kept as is.
    """
    start = get_current_week_bucket(now) + timedelta(days=7)
    return datetime.combine(start, time.min, tzinfo=now.tzinfo)


def gate_is_stale(gate: RefreshGate, week_key: Optional[date], now: datetime) -> bool:
    """Whether a cached gate no longer describes ``now``.

    A gate goes stale when the week rolls over or when the eligible date
    it was closed until has passed.
    """
    if week_key is None or get_current_week_bucket(now) != week_key:
        return True
    eligible = gate.next_eligible_date
    if eligible is None:
        return False
    if (eligible.tzinfo is None) != (now.tzinfo is None):
        # Cannot compare naive and aware times; the week check above still applies
        return False
    return now >= eligible


def can_refresh(
    refresh_count: int,
    now: datetime,
    cap: Optional[int] = None,
) -> RefreshGate:
    """Decide whether an automatic refresh is allowed in ``now``'s week.

    Args:
        refresh_count: Refreshes already used in the current bucket
        now: Reference time (local)
        cap: Weekly cap; defaults to settings.WEEKLY_REFRESH_CAP

    Returns:
        RefreshGate with the next eligible date set only when denied
    """
    cap = settings.WEEKLY_REFRESH_CAP if cap is None else cap
    used = max(refresh_count, 0)
    if used >= cap:
        return RefreshGate(allowed=False, next_eligible_date=next_week_start(now), remaining=0)
    return RefreshGate(allowed=True, next_eligible_date=None, remaining=cap - used)


def reconcile_gate(gate: RefreshGate, result: RefreshResult, now: datetime) -> RefreshGate:
    """Overwrite the local gate with what the server just said.

    Args:
        gate: Gate state before the attempt
        result: Decoded refresh function response
        now: Time of the attempt

    Returns:
        The gate to show from now on
    """
    if isinstance(result, QuotaDenied):
        return RefreshGate(
            allowed=False,
            next_eligible_date=result.next_refresh_date or next_week_start(now),
            remaining=0,
        )

    if isinstance(result, RefreshOk):
        if result.remaining_refreshes is not None:
            remaining = max(result.remaining_refreshes, 0)
        else:
            remaining = max(gate.remaining - 1, 0)
        if remaining > 0:
            return RefreshGate(allowed=True, next_eligible_date=None, remaining=remaining)
        return RefreshGate(
            allowed=False,
            next_eligible_date=result.next_refresh_date or next_week_start(now),
            remaining=0,
        )

    return gate


class QuotaLedgerReader:
    """Reads the per-week refresh counter for one user."""

    def __init__(self, store: PriceStore, user_id: Optional[str] = None):
        """Initialize quota reader.

        Args:
            store: External store
            user_id: Tenant scope; defaults to settings.KROLIST_USER_ID
        """
        self.store = store
        self.user_id = user_id if user_id is not None else settings.KROLIST_USER_ID
        self.logger = logger.bind(service="quota_ledger")

    async def read_refresh_count(self, week_key: date) -> int:
        """Fetch the counter for a week; a missing bucket counts as 0.

        Raises:
            StoreError: If the store cannot be read
        """
        count = await self.store.fetch_refresh_count(self.user_id, week_key)
        self.logger.debug("refresh_count_read", week_start=week_key.isoformat(), count=count)
        return count

    async def current_gate(self, now: Optional[datetime] = None) -> RefreshGate:
        """Compute the gate for the current week.

        A failed read fails open: the server re-checks the quota anyway,
        and a transient read error should not block the user.
        """
        now = now or local_now()
        week_key = get_current_week_bucket(now)
        try:
            count = await self.read_refresh_count(week_key)
        except StoreError as e:
            self.logger.warning(
                "refresh_count_read_failed",
                week_start=week_key.isoformat(),
                error=str(e),
            )
            count = 0
        return can_refresh(count, now)
