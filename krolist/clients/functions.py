"""Edge function client.

Invokes the hosted serverless functions (``/functions/v1/<name>``) and
decodes their loosely shaped JSON into tagged result models, so callers
branch on ``result.kind`` instead of sniffing response keys.
"""

from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from krolist.config import settings
from krolist.core.exceptions import FunctionInvocationError
from krolist.schemas import (
    CatalogRefreshOk,
    CatalogRefreshResult,
    QuotaDenied,
    RefreshFailed,
    RefreshOk,
    RefreshResult,
)

logger = structlog.get_logger(__name__)

USER_REFRESH_FUNCTION = "user-refresh-prices"
CATALOG_REFRESH_FUNCTION = "admin-refresh-krolist-prices"
TRANSLATE_FUNCTION = "translate-text"


def _error_message(payload: Dict[str, Any], default: str) -> str:
    message = payload.get("message") or payload.get("error")
    if isinstance(message, str) and message:
        return message
    return default


def decode_refresh_response(status_code: int, payload: Any) -> RefreshResult:
    """Turn a refresh-all response into RefreshOk, QuotaDenied or RefreshFailed.

    A 429, or an error body carrying ``nextRefreshDate``, is a quota denial.
    Any other error body or non-2xx status is a plain failure.

    Args:
        status_code: HTTP status of the function response
        payload: Decoded JSON body (anything; non-dicts are failures)

    Returns:
        One of the tagged refresh results
    """
    if not isinstance(payload, dict):
        return RefreshFailed(message=f"Unexpected response (HTTP {status_code})")

    has_error = bool(payload.get("error"))

    try:
        if status_code == 429 or (has_error and payload.get("nextRefreshDate")):
            return QuotaDenied(
                message=_error_message(payload, "Weekly limit reached"),
                next_refresh_date=payload.get("nextRefreshDate"),
            )

        if has_error or status_code >= 400:
            return RefreshFailed(message=_error_message(payload, f"HTTP {status_code}"))

        return RefreshOk(
            updated=payload.get("updated") or 0,
            checked=payload.get("checked") or 0,
            message=payload.get("message"),
            remaining_refreshes=payload.get("remainingRefreshes"),
            next_refresh_date=payload.get("nextRefreshDate"),
        )
    except ValidationError as e:
        return RefreshFailed(message=f"Malformed refresh response: {e.error_count()} invalid fields")


def decode_catalog_refresh_response(status_code: int, payload: Any) -> CatalogRefreshResult:
    """Decode the admin catalog refresh response."""
    if not isinstance(payload, dict):
        return RefreshFailed(message=f"Unexpected response (HTTP {status_code})")
    if payload.get("error") or status_code >= 400:
        return RefreshFailed(message=_error_message(payload, f"HTTP {status_code}"))
    try:
        return CatalogRefreshOk(
            updated=payload.get("updated") or 0,
            failed=payload.get("failed") or 0,
        )
    except ValidationError as e:
        return RefreshFailed(message=f"Malformed refresh response: {e.error_count()} invalid fields")


class FunctionsClient:
    """Async client for the hosted edge functions."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """Initialize functions client.

        Args:
            client: Optional preconfigured client (tests inject a MockTransport)
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=settings.functions_url,
            headers=settings.auth_headers(),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        self.logger = logger.bind(service="functions_client")

    async def _invoke(self, name: str, body: Dict[str, Any]) -> tuple[int, Any]:
        """POST to a function and return (status, decoded body).

        Not retried: the refresh functions consume quota on the server.

        Raises:
            FunctionInvocationError: On transport failure or a non-JSON body
        """
        self.logger.info("invoking_function", function=name)
        try:
            response = await self.client.post(f"/{name}", json=body)
        except httpx.HTTPError as e:
            self.logger.error("function_transport_failed", function=name, error=str(e))
            raise FunctionInvocationError(name, str(e)) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FunctionInvocationError(
                name, f"non-JSON response (HTTP {response.status_code})"
            ) from e

        self.logger.info("function_responded", function=name, status=response.status_code)
        return response.status_code, payload

    async def refresh_user_prices(self) -> RefreshResult:
        """Ask the server to refresh the signed-in user's tracked prices."""
        status_code, payload = await self._invoke(USER_REFRESH_FUNCTION, {})
        result = decode_refresh_response(status_code, payload)
        if isinstance(result, QuotaDenied):
            self.logger.info("refresh_quota_denied", next_refresh_date=str(result.next_refresh_date))
        elif isinstance(result, RefreshOk):
            self.logger.info("refresh_completed", updated=result.updated, checked=result.checked)
        return result

    async def refresh_catalog_prices(self) -> CatalogRefreshResult:
        """Ask the server to refresh every curated Krolist product (admin only)."""
        status_code, payload = await self._invoke(CATALOG_REFRESH_FUNCTION, {})
        result = decode_catalog_refresh_response(status_code, payload)
        if isinstance(result, CatalogRefreshOk):
            self.logger.info("catalog_refresh_completed", updated=result.updated, failed=result.failed)
        return result

    async def translate(
        self,
        text: str,
        target_language: str,
        context: Optional[str] = None,
    ) -> str:
        """Translate between English and Arabic.

        Args:
            text: Source text; blank text is returned untouched
            target_language: "ar" or "en"
            context: Optional hint about where the text is used

        Returns:
            Translated text

        Raises:
            FunctionInvocationError: If the function fails or returns no translation
        """
        if not text.strip():
            return text
        if target_language not in ("ar", "en"):
            raise ValueError(f"Unsupported target language: {target_language}")

        body: Dict[str, Any] = {"text": text, "targetLanguage": target_language}
        if context:
            body["context"] = context

        status_code, payload = await self._invoke(TRANSLATE_FUNCTION, body)
        translated = payload.get("translatedText") if isinstance(payload, dict) else None
        if status_code >= 400 or not translated:
            raise FunctionInvocationError(
                TRANSLATE_FUNCTION,
                _error_message(payload, f"HTTP {status_code}") if isinstance(payload, dict) else f"HTTP {status_code}",
            )
        return translated

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
