"""Pydantic schemas for Krolist.

All record and result models are defined here for easy import.
"""

from krolist.schemas.common import GlobalNotificationCreate, Notice
from krolist.schemas.product import (
    AvailabilityStatus,
    PriceHistoryCreate,
    PriceHistoryPoint,
    PriceUpdateOperation,
    ProductRecord,
)
from krolist.schemas.refresh import (
    CatalogRefreshOk,
    CatalogRefreshResult,
    QuotaDenied,
    RefreshFailed,
    RefreshGate,
    RefreshOk,
    RefreshResult,
)

__all__ = [
    # Common
    "GlobalNotificationCreate",
    "Notice",
    # Product
    "AvailabilityStatus",
    "PriceHistoryCreate",
    "PriceHistoryPoint",
    "PriceUpdateOperation",
    "ProductRecord",
    # Refresh
    "CatalogRefreshOk",
    "CatalogRefreshResult",
    "QuotaDenied",
    "RefreshFailed",
    "RefreshGate",
    "RefreshOk",
    "RefreshResult",
]
