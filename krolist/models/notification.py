"""Site-wide notifications shown to every user."""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy import JSON as JSONB
from sqlalchemy.orm import Mapped, mapped_column

from krolist.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class GlobalNotification(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Bilingual broadcast notification (e.g. 'Prices Updated')."""

    __tablename__ = "global_notifications"

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    title_ar: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    message_ar: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    data: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
