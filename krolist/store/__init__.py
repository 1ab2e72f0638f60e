"""External store backends."""

from krolist.config import settings
from krolist.store.base import PriceStore
from krolist.store.rest import RestPriceStore
from krolist.store.sql import SqlPriceStore

__all__ = [
    "PriceStore",
    "RestPriceStore",
    "SqlPriceStore",
    "create_price_store",
]


def create_price_store(backend: str | None = None) -> PriceStore:
    """Create the store selected by STORE_BACKEND.

    Args:
        backend: Override for settings.STORE_BACKEND ("rest" or "sql")

    Returns:
        Configured PriceStore

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = backend or settings.STORE_BACKEND
    if backend == "rest":
        return RestPriceStore()
    if backend == "sql":
        return SqlPriceStore()
    raise ValueError(f"Unknown store backend: {backend}")
