"""Krolist admin session: wires store, function client and actions together."""

from typing import Optional

import structlog

from krolist.clients.functions import FunctionsClient
from krolist.config import settings
from krolist.core.logging import configure_logging
from krolist.services.actions import PriceAdminActions
from krolist.store import PriceStore, create_price_store

logger = structlog.get_logger(__name__)


class KrolistSession:
    """Async context manager owning the clients for one signed-in session.

    Usage:
        async with KrolistSession() as session:
            notice = await session.actions.refresh_all_prices()
    """

    def __init__(
        self,
        store: Optional[PriceStore] = None,
        functions: Optional[FunctionsClient] = None,
        setup_logging: bool = False,
    ):
        if setup_logging:
            configure_logging()
        self.store = store or create_price_store()
        self.functions = functions or FunctionsClient()
        self.actions = PriceAdminActions(self.store, self.functions)

    async def __aenter__(self) -> "KrolistSession":
        logger.info(
            "session_started",
            environment=settings.ENVIRONMENT,
            store_backend=self.store.backend,
        )
        await self.actions.load_gate()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.functions.aclose()
        await self.store.aclose()
        logger.info("session_closed")
