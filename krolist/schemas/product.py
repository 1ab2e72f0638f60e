"""Product and price history schemas shared by both store backends."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

AvailabilityStatus = Literal["available", "currently_unavailable", "ran_out"]


class ProductRecord(BaseModel):
    """In-memory view of one krolist_products row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    store: str
    collection_title: Optional[str] = None
    current_price: Decimal
    original_price: Decimal
    currency: str = "SAR"
    availability_status: Optional[str] = "available"
    last_checked_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    image_url: Optional[str] = None
    product_url: str


class PriceHistoryCreate(BaseModel):
    """Payload for one appended price history row."""

    product_id: UUID
    price: Decimal
    original_price: Optional[Decimal] = None
    currency: str


class PriceHistoryPoint(BaseModel):
    """Single price history data point."""

    model_config = ConfigDict(from_attributes=True)

    product_id: UUID
    price: Decimal
    original_price: Optional[Decimal] = None
    currency: str
    scraped_at: datetime


class PriceUpdateOperation(BaseModel):
    """One row-level write produced from a bulk edit entry."""

    model_config = ConfigDict(frozen=True)

    product: ProductRecord
    price: Decimal
    status: AvailabilityStatus

    @property
    def price_changed(self) -> bool:
        return self.product.current_price != self.price
