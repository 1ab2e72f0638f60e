"""Tests for the dashboard actions and their notices."""

from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from krolist.clients.functions import FunctionsClient
from krolist.main import KrolistSession
from krolist.services.actions import PriceAdminActions
from krolist.services.quota_service import QuotaLedgerReader
from tests.conftest import InMemoryPriceStore, make_product

RIYADH = timezone(timedelta(hours=3))
NOW = datetime(2024, 1, 10, 15, 30, tzinfo=RIYADH)


def functions_returning(status_code: int, body, calls=None) -> FunctionsClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=body)

    transport = httpx.MockTransport(handler)
    return FunctionsClient(
        client=httpx.AsyncClient(transport=transport, base_url="http://test/functions/v1")
    )


def make_actions(store: InMemoryPriceStore, functions: FunctionsClient) -> PriceAdminActions:
    return PriceAdminActions(store, functions, quota=QuotaLedgerReader(store, user_id="user-1"))


@pytest.fixture
def store():
    return InMemoryPriceStore([
        make_product("Air Fryer", price="299", collection="Kitchen"),
        make_product("Air Fryer", price="299", collection="Deals"),
        make_product("Yoga Mat", price="59"),
    ])


# ============================================================================
# TESTS: WEEKLY REFRESH
# ============================================================================

class TestRefreshAllPrices:
    """Quota-gated automatic refresh."""

    async def test_success_notice_and_gate_closes(self, store):
        functions = functions_returning(200, {
            "success": True,
            "checked": 8,
            "updated": 3,
            "remainingRefreshes": 0,
            "nextRefreshDate": "2024-01-14T00:00:00Z",
        })
        actions = make_actions(store, functions)

        notice = await actions.refresh_all_prices(NOW)

        assert notice.title == "Prices refreshed successfully"
        assert notice.description == "Updated 3 of 8 products"
        assert notice.variant == "default"
        assert actions.gate.allowed is False
        assert actions.is_refreshing is False

    async def test_closed_local_gate_skips_the_call(self, store):
        store.refresh_counts[("user-1", date(2024, 1, 7))] = 1
        calls = []
        actions = make_actions(store, functions_returning(200, {"success": True}, calls))

        await actions.load_gate(NOW)
        notice = await actions.refresh_all_prices(NOW)

        assert calls == []
        assert notice.title == "Weekly limit reached"
        assert "2024-01-14" in notice.description
        assert notice.variant == "destructive"

    async def test_server_denial_overrides_open_gate(self, store):
        functions = functions_returning(429, {
            "error": "Weekly limit reached",
            "message": "Already refreshed this week.",
            "nextRefreshDate": "2024-01-14T00:00:00Z",
        })
        actions = make_actions(store, functions)
        await actions.load_gate(NOW)
        assert actions.gate.allowed is True

        notice = await actions.refresh_all_prices(NOW)

        assert notice.title == "Weekly limit reached"
        assert "Already refreshed this week." in notice.description
        assert actions.gate.allowed is False

    async def test_failed_ledger_read_still_asks_server(self, store):
        store.fail_refresh_read = True
        calls = []
        actions = make_actions(store, functions_returning(200, {"success": True, "updated": 1, "checked": 1}, calls))

        notice = await actions.refresh_all_prices(NOW)

        assert len(calls) == 1
        assert notice.title == "Prices refreshed successfully"

    async def test_function_error_notice(self, store):
        actions = make_actions(store, functions_returning(500, {"error": "Scraper offline"}))

        notice = await actions.refresh_all_prices(NOW)

        assert notice.title == "Error refreshing prices"
        assert notice.description == "Scraper offline"
        assert notice.variant == "destructive"
        assert actions.gate.allowed is True

    async def test_transport_failure_never_raises(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        functions = FunctionsClient(client=httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test/functions/v1"
        ))
        actions = make_actions(store, functions)

        notice = await actions.refresh_all_prices(NOW)

        assert notice.variant == "destructive"
        assert actions.is_refreshing is False

    async def test_denied_gate_reopens_in_the_next_week(self, store):
        responses = [
            httpx.Response(429, json={
                "error": "Weekly limit reached",
                "nextRefreshDate": "2024-01-14T00:00:00+03:00",
            }),
            httpx.Response(200, json={"success": True, "checked": 4, "updated": 2}),
        ]
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return responses[len(calls) - 1]

        functions = FunctionsClient(client=httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test/functions/v1"
        ))
        actions = make_actions(store, functions)

        denied = await actions.refresh_all_prices(NOW)
        assert denied.title == "Weekly limit reached"

        notice = await actions.refresh_all_prices(datetime(2024, 1, 16, 9, 0, tzinfo=RIYADH))

        assert len(calls) == 2
        assert notice.title == "Prices refreshed successfully"
        assert actions.gate_week == date(2024, 1, 14)

    async def test_denied_gate_stays_closed_within_the_week(self, store):
        calls = []
        functions = functions_returning(429, {
            "error": "Weekly limit reached",
            "nextRefreshDate": "2024-01-14T00:00:00+03:00",
        }, calls)
        actions = make_actions(store, functions)

        await actions.refresh_all_prices(NOW)
        notice = await actions.refresh_all_prices(datetime(2024, 1, 13, 23, 0, tzinfo=RIYADH))

        assert len(calls) == 1
        assert notice.title == "Weekly limit reached"


class TestRefreshCatalogPrices:
    """Admin catalog refresh."""

    async def test_catalog_notice(self, store):
        actions = make_actions(store, functions_returning(200, {"updated": 12, "failed": 1}))

        notice = await actions.refresh_catalog_prices()

        assert notice.description == "Updated 12 products. Failed: 1"
        assert actions.progress.percent == 100

    async def test_catalog_unexpected_body(self, store):
        actions = make_actions(store, functions_returning(502, "not an object"))

        notice = await actions.refresh_catalog_prices()

        assert notice.title == "Error refreshing prices"
        assert notice.description == "Unexpected response (HTTP 502)"
        assert notice.variant == "destructive"

    async def test_catalog_transport_failure_resets_progress(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        functions = FunctionsClient(client=httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test/functions/v1"
        ))
        actions = make_actions(store, functions)

        notice = await actions.refresh_catalog_prices()

        assert notice.variant == "destructive"
        assert actions.progress.percent == 0
        assert actions.progress.total == 0
        assert actions.is_refreshing is False


# ============================================================================
# TESTS: MANUAL SAVE
# ============================================================================

class TestSaveManualPrices:
    """Manual bulk save notices."""

    async def test_success(self, store):
        actions = make_actions(store, functions_returning(200, {}))
        editor = await actions.open_bulk_editor()
        editor.set_entry("Air Fryer", "279")

        notice = await actions.save_manual_prices(editor)

        assert notice.title == "Success"
        assert notice.description == "Updated 3 products successfully"
        assert len(store.history) == 2
        assert editor.entries == {}
        assert actions.is_saving is False

    async def test_nothing_valid_to_save(self, store):
        actions = make_actions(store, functions_returning(200, {}))
        editor = await actions.open_bulk_editor()
        editor.set_entry("Air Fryer", "")
        editor.set_entry("Yoga Mat", "free")

        notice = await actions.save_manual_prices(editor)

        assert notice.title == "No updates"
        assert notice.description == "No valid price changes to save"
        assert store.update_calls == []

    async def test_partial_success(self, store):
        actions = make_actions(store, functions_returning(200, {}))
        editor = await actions.open_bulk_editor()
        store.fail_ids.add(editor.copies("Yoga Mat")[0].id)
        editor.set_entry("Yoga Mat", "49")

        notice = await actions.save_manual_prices(editor)

        assert notice.title == "Partial success"
        assert notice.description == "Updated 2 products. 1 errors occurred."
        assert notice.variant == "destructive"


class TestKrolistSession:
    """Session wiring."""

    async def test_session_loads_gate_and_closes(self, store):
        functions = functions_returning(200, {})
        async with KrolistSession(store=store, functions=functions) as session:
            assert session.actions.gate is not None
            assert session.actions.gate.allowed is True

    async def test_session_can_configure_logging(self, store):
        async with KrolistSession(store=store, functions=functions_returning(200, {}), setup_logging=True) as session:
            assert session.store is store


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
