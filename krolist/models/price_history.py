"""Price history ledger for Krolist products."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, ForeignKey, Numeric, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from krolist.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from krolist.models.product import Product


class PriceHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only record of a product price change.

    Rows are inserted after a price write succeeds and never updated.
    """

    __tablename__ = "krolist_price_history"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("krolist_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, comment="Price at this point in time")
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="SAR")

    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="When this price was recorded"
    )

    __table_args__ = (
        Index("idx_krolist_price_history_product_scraped", "product_id", "scraped_at"),
    )

    product: Mapped["Product"] = relationship(back_populates="price_history")

    def __repr__(self) -> str:
        return f"<PriceHistory(id={self.id}, product_id={self.product_id}, price={self.price}, scraped_at={self.scraped_at})>"
