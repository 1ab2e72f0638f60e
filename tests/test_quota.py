"""Tests for the weekly refresh quota: week buckets, gate and reconciliation."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from krolist.config import settings
from krolist.schemas import QuotaDenied, RefreshFailed, RefreshGate, RefreshOk
from krolist.services.quota_service import (
    QuotaLedgerReader,
    can_refresh,
    gate_is_stale,
    get_current_week_bucket,
    local_now,
    next_week_start,
    reconcile_gate,
)
from tests.conftest import InMemoryPriceStore

RIYADH = timezone(timedelta(hours=3))
BERLIN = ZoneInfo("Europe/Berlin")


# ============================================================================
# TESTS: WEEK BUCKETS
# ============================================================================

class TestWeekBuckets:
    """Sunday-aligned week keys."""

    def test_midweek_maps_to_previous_sunday(self):
        now = datetime(2024, 1, 10, 15, 30, tzinfo=RIYADH)  # Wednesday
        assert get_current_week_bucket(now) == date(2024, 1, 7)

    def test_sunday_is_its_own_bucket(self):
        now = datetime(2024, 1, 14, 0, 0, tzinfo=RIYADH)
        assert get_current_week_bucket(now) == date(2024, 1, 14)

    def test_saturday_night_stays_in_old_week(self):
        now = datetime(2024, 1, 13, 23, 59, 59, tzinfo=RIYADH)
        assert get_current_week_bucket(now) == date(2024, 1, 7)

    def test_bucket_crosses_month_and_year(self):
        now = datetime(2024, 1, 2, 9, 0, tzinfo=RIYADH)  # Tuesday
        assert get_current_week_bucket(now) == date(2023, 12, 31)

    def test_next_week_start_is_local_midnight(self):
        now = datetime(2024, 1, 10, 15, 30, tzinfo=RIYADH)
        nxt = next_week_start(now)

        assert nxt == datetime(2024, 1, 14, 0, 0, tzinfo=RIYADH)
        assert nxt.tzinfo is RIYADH

    def test_next_week_start_resolves_dst_for_target_sunday(self):
        # Sunday 01:00 CET, before the 02:00 switch to summer time
        now = datetime(2024, 3, 31, 1, 0, tzinfo=BERLIN)
        nxt = next_week_start(now)

        assert nxt.utcoffset() == timedelta(hours=2)
        assert nxt == datetime(2024, 4, 6, 22, 0, tzinfo=timezone.utc)

    def test_local_now_uses_configured_zone(self):
        now = local_now()
        assert isinstance(now.tzinfo, ZoneInfo)
        assert now.tzinfo.key == settings.TIMEZONE


# ============================================================================
# TESTS: CACHED GATE STALENESS
# ============================================================================

class TestGateIsStale:
    """When a cached gate must be re-read."""

    closed = RefreshGate(
        allowed=False,
        next_eligible_date=datetime(2024, 1, 14, 0, 0, tzinfo=RIYADH),
        remaining=0,
    )

    def test_same_week_before_eligible_date_is_fresh(self):
        now = datetime(2024, 1, 13, 23, 59, tzinfo=RIYADH)
        assert gate_is_stale(self.closed, date(2024, 1, 7), now) is False

    def test_next_week_is_stale(self):
        now = datetime(2024, 1, 16, 9, 0, tzinfo=RIYADH)
        assert gate_is_stale(self.closed, date(2024, 1, 7), now) is True

    def test_passed_eligible_date_is_stale(self):
        early = RefreshGate(
            allowed=False,
            next_eligible_date=datetime(2024, 1, 12, 0, 0, tzinfo=timezone.utc),
            remaining=0,
        )
        now = datetime(2024, 1, 12, 8, 0, tzinfo=RIYADH)
        assert gate_is_stale(early, date(2024, 1, 7), now) is True

    def test_open_gate_in_same_week_is_fresh(self):
        gate = RefreshGate(allowed=True, remaining=1)
        assert gate_is_stale(gate, date(2024, 1, 7), datetime(2024, 1, 10, tzinfo=RIYADH)) is False

    def test_unknown_week_is_stale(self):
        gate = RefreshGate(allowed=True, remaining=1)
        assert gate_is_stale(gate, None, datetime(2024, 1, 10, tzinfo=RIYADH)) is True


# ============================================================================
# TESTS: LOCAL GATE
# ============================================================================

class TestCanRefresh:
    """Local advisory gate."""

    def test_unused_week_is_allowed(self):
        gate = can_refresh(0, datetime(2024, 1, 10, tzinfo=RIYADH), cap=1)

        assert gate.allowed is True
        assert gate.remaining == 1
        assert gate.next_eligible_date is None

    def test_used_week_is_denied_until_next_sunday(self):
        gate = can_refresh(1, datetime(2024, 1, 10, 15, 30, tzinfo=RIYADH), cap=1)

        assert gate.allowed is False
        assert gate.remaining == 0
        assert gate.next_eligible_date == datetime(2024, 1, 14, 0, 0, tzinfo=RIYADH)

    def test_counter_above_cap_is_denied(self):
        gate = can_refresh(5, datetime(2024, 1, 10, tzinfo=RIYADH), cap=2)
        assert gate.allowed is False
        assert gate.remaining == 0

    def test_larger_cap_reports_remaining(self):
        gate = can_refresh(1, datetime(2024, 1, 10, tzinfo=RIYADH), cap=3)
        assert gate.allowed is True
        assert gate.remaining == 2

    def test_default_cap_comes_from_settings(self):
        assert can_refresh(0, datetime(2024, 1, 10, tzinfo=RIYADH)).allowed is True
        assert can_refresh(1, datetime(2024, 1, 10, tzinfo=RIYADH)).allowed is False


# ============================================================================
# TESTS: RECONCILIATION WITH THE SERVER
# ============================================================================

class TestReconcileGate:
    """Server answers overwrite the local prediction."""

    now = datetime(2024, 1, 10, 12, 0, tzinfo=RIYADH)

    def test_denial_closes_an_open_gate(self):
        gate = RefreshGate(allowed=True, remaining=1)
        server_date = datetime(2024, 1, 14, tzinfo=timezone.utc)
        denied = QuotaDenied(message="Weekly limit reached", next_refresh_date=server_date)

        result = reconcile_gate(gate, denied, self.now)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.next_eligible_date == server_date

    def test_denial_without_date_uses_next_sunday(self):
        gate = RefreshGate(allowed=True, remaining=1)
        result = reconcile_gate(gate, QuotaDenied(message="limit"), self.now)

        assert result.next_eligible_date == datetime(2024, 1, 14, tzinfo=RIYADH)

    def test_success_uses_remaining_from_server(self):
        gate = RefreshGate(allowed=True, remaining=1)
        ok = RefreshOk(updated=3, checked=4, remaining_refreshes=2)

        result = reconcile_gate(gate, ok, self.now)

        assert result.allowed is True
        assert result.remaining == 2

    def test_success_spending_last_refresh_closes_gate(self):
        gate = RefreshGate(allowed=True, remaining=1)
        result = reconcile_gate(gate, RefreshOk(updated=1, checked=1), self.now)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.next_eligible_date == datetime(2024, 1, 14, tzinfo=RIYADH)

    def test_failure_leaves_gate_untouched(self):
        gate = RefreshGate(allowed=True, remaining=1)
        result = reconcile_gate(gate, RefreshFailed(message="boom"), self.now)
        assert result == gate


# ============================================================================
# TESTS: LEDGER READER
# ============================================================================

class TestQuotaLedgerReader:
    """Reading the per-week counter from the store."""

    now = datetime(2024, 1, 10, 15, 30, tzinfo=RIYADH)

    async def test_missing_bucket_counts_as_zero(self, memory_store: InMemoryPriceStore):
        reader = QuotaLedgerReader(memory_store, user_id="user-1")

        assert await reader.read_refresh_count(date(2024, 1, 7)) == 0
        gate = await reader.current_gate(self.now)
        assert gate.allowed is True

    async def test_used_bucket_denies(self, memory_store: InMemoryPriceStore):
        memory_store.refresh_counts[("user-1", date(2024, 1, 7))] = 1
        reader = QuotaLedgerReader(memory_store, user_id="user-1")

        gate = await reader.current_gate(self.now)

        assert gate.allowed is False
        assert gate.next_eligible_date == datetime(2024, 1, 14, 0, 0, tzinfo=RIYADH)

    async def test_previous_week_does_not_count(self, memory_store: InMemoryPriceStore):
        memory_store.refresh_counts[("user-1", date(2023, 12, 31))] = 1
        reader = QuotaLedgerReader(memory_store, user_id="user-1")

        gate = await reader.current_gate(self.now)
        assert gate.allowed is True

    async def test_other_users_bucket_is_ignored(self, memory_store: InMemoryPriceStore):
        memory_store.refresh_counts[("user-2", date(2024, 1, 7))] = 1
        reader = QuotaLedgerReader(memory_store, user_id="user-1")

        gate = await reader.current_gate(self.now)
        assert gate.allowed is True

    async def test_read_failure_fails_open(self, memory_store: InMemoryPriceStore):
        memory_store.fail_refresh_read = True
        reader = QuotaLedgerReader(memory_store, user_id="user-1")

        gate = await reader.current_gate(self.now)

        assert gate.allowed is True
        assert gate.remaining == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
