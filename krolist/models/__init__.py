"""SQLAlchemy models for Krolist.

All models are imported here so metadata.create_all sees every table.
"""

from krolist.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from krolist.models.product import Product, AVAILABILITY_STATUSES
from krolist.models.price_history import PriceHistory
from krolist.models.refresh_log import UserRefreshLog
from krolist.models.notification import GlobalNotification

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Product",
    "AVAILABILITY_STATUSES",
    "PriceHistory",
    "UserRefreshLog",
    "GlobalNotification",
]
