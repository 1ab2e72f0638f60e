"""Curated Krolist product rows."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Text, Boolean, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from krolist.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from krolist.models.price_history import PriceHistory


AVAILABILITY_STATUSES = ("available", "currently_unavailable", "ran_out")


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Product curated by Krolist admins.

    The same catalog item can appear once per collection, so several rows
    may share a title. Each row keeps its own id, price and status.
    """

    __tablename__ = "krolist_products"

    # Product info
    title: Mapped[str] = mapped_column(String(500), nullable=False, comment="Product title/name")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    store: Mapped[str] = mapped_column(String(100), nullable=False, comment="Store name, e.g. 'Amazon', 'Noon'")
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    collection_title: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment="Collection grouping this copy belongs to"
    )

    # Pricing
    current_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Price before discounts"
    )
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="SAR")
    original_currency: Mapped[str] = mapped_column(String(5), nullable=False, default="SAR")

    # Status
    availability_status: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        default="available",
        comment="'available', 'currently_unavailable' or 'ran_out'"
    )
    is_featured: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=True)
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Media and links
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    product_url: Mapped[str] = mapped_column(String(2000), nullable=False)

    __table_args__ = (
        Index("idx_krolist_products_title", "title"),
    )

    price_history: Mapped[list["PriceHistory"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="PriceHistory.scraped_at.desc()"
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, title='{self.title[:50]}', store={self.store})>"
