"""Weekly refresh quota buckets."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import String, Integer, Date, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from krolist.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserRefreshLog(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Per-user counter of automatic refreshes in one Sunday-aligned week.

    Incremented by the server-side refresh function only.
    """

    __tablename__ = "user_refresh_logs"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, comment="Sunday that opens the week")
    refresh_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_refresh_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_refresh_log_user_week"),
    )

    def __repr__(self) -> str:
        return f"<UserRefreshLog(user_id={self.user_id}, week_start={self.week_start}, count={self.refresh_count})>"
