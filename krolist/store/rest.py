"""PostgREST-style store backed by the hosted Krolist tables.

Talks to ``<SUPABASE_URL>/rest/v1/<table>`` with the anon key and the
user's session token. Reads are retried on transient network errors;
writes are never retried so a row is never written twice by accident.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from krolist.config import settings
from krolist.core.exceptions import StoreError
from krolist.schemas import (
    GlobalNotificationCreate,
    PriceHistoryCreate,
    PriceHistoryPoint,
    ProductRecord,
)
from krolist.store.base import PriceStore


def _json_number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class RestPriceStore(PriceStore):
    """PriceStore that speaks the BaaS table REST interface."""

    backend = "rest"

    PRODUCTS_TABLE = "krolist_products"
    HISTORY_TABLE = "krolist_price_history"
    REFRESH_LOG_TABLE = "user_refresh_logs"
    NOTIFICATIONS_TABLE = "global_notifications"

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """Initialize REST store.

        Args:
            client: Optional preconfigured client (tests inject a MockTransport)
        """
        super().__init__()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=settings.rest_url,
            headers=settings.auth_headers(),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def _get(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        response = await self.client.get(f"/{table}", params=params)
        response.raise_for_status()
        return response.json()

    async def _select(self, operation: str, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            return await self._get(table, params)
        except httpx.HTTPError as e:
            self.logger.error("store_read_failed", operation=operation, table=table, error=str(e))
            raise StoreError(operation, str(e)) from e
        except ValueError as e:
            self.logger.error("store_read_failed", operation=operation, table=table, error="non-JSON response")
            raise StoreError(operation, "non-JSON response from store") from e

    async def _write(
        self,
        operation: str,
        method: str,
        table: str,
        payload: Any,
        params: Optional[Dict[str, str]] = None,
        prefer: str = "return=minimal",
    ) -> httpx.Response:
        try:
            response = await self.client.request(
                method,
                f"/{table}",
                params=params,
                json=payload,
                headers={"Prefer": prefer},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(operation, f"{e.response.status_code} {e.response.text}") from e
        except httpx.HTTPError as e:
            raise StoreError(operation, str(e)) from e
        return response

    async def fetch_products(self) -> List[ProductRecord]:
        rows = await self._select(
            "fetch_products",
            self.PRODUCTS_TABLE,
            {"select": "*", "order": "created_at.desc"},
        )
        return [ProductRecord.model_validate(row) for row in rows]

    async def update_product_price(
        self,
        product_id: UUID,
        price: Decimal,
        status: str,
        checked_at: datetime,
    ) -> None:
        # An unmatched filter still answers 2xx; an empty representation means no row
        response = await self._write(
            "update_product_price",
            "PATCH",
            self.PRODUCTS_TABLE,
            {
                "current_price": _json_number(price),
                "availability_status": status,
                "last_checked_at": checked_at.isoformat(),
            },
            params={"id": f"eq.{product_id}", "select": "id"},
            prefer="return=representation",
        )
        try:
            rows = response.json()
        except ValueError as e:
            raise StoreError("update_product_price", "non-JSON response from store") from e
        if not rows:
            raise StoreError("update_product_price", f"product {product_id} not found")

    async def insert_price_history(self, records: Sequence[PriceHistoryCreate]) -> None:
        payload = [
            {
                "product_id": str(r.product_id),
                "price": _json_number(r.price),
                "original_price": _json_number(r.original_price),
                "currency": r.currency,
            }
            for r in records
        ]
        await self._write("insert_price_history", "POST", self.HISTORY_TABLE, payload)

    async def fetch_price_history(self, product_id: UUID) -> List[PriceHistoryPoint]:
        rows = await self._select(
            "fetch_price_history",
            self.HISTORY_TABLE,
            {"select": "*", "product_id": f"eq.{product_id}", "order": "scraped_at.asc"},
        )
        return [PriceHistoryPoint.model_validate(row) for row in rows]

    async def fetch_refresh_count(self, user_id: str, week_start: date) -> int:
        rows = await self._select(
            "fetch_refresh_count",
            self.REFRESH_LOG_TABLE,
            {
                "select": "refresh_count",
                "user_id": f"eq.{user_id}",
                "week_start": f"eq.{week_start.isoformat()}",
            },
        )
        if not rows:
            return 0
        return int(rows[0].get("refresh_count") or 0)

    async def insert_notification(self, notification: GlobalNotificationCreate) -> None:
        await self._write(
            "insert_notification",
            "POST",
            self.NOTIFICATIONS_TABLE,
            notification.model_dump(mode="json"),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
