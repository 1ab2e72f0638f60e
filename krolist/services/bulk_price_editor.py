"""Manual bulk price editing for curated Krolist products.

The editor shows one entry per distinct title even when the same item is
copied into several collections. Saving expands each entry back into one
write per copy so every duplicate ends up with the same price and status.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import structlog

from krolist.core.exceptions import UnknownTitleError
from krolist.models import AVAILABILITY_STATUSES
from krolist.schemas import PriceUpdateOperation, ProductRecord
from krolist.utils.normalizer import PriceNormalizer
from krolist.utils.price_csv import export_prices_csv, group_by_title, parse_prices_csv

logger = structlog.get_logger(__name__)

DEFAULT_STATUS = "available"


def _known_status(status: Optional[str]) -> str:
    return status if status in AVAILABILITY_STATUSES else DEFAULT_STATUS


@dataclass
class BulkEditEntry:
    """Pending edit for one title. Price is kept as typed until save."""

    product_title: str
    new_price: str
    new_status: str = DEFAULT_STATUS


class BulkPriceEditor:
    """Edit set for the manual price dialog."""

    def __init__(self, products: Iterable[ProductRecord]):
        """Build one entry per title, pre-filled from the first copy.

        Args:
            products: Every product row, duplicates included
        """
        self.products = list(products)
        self._groups = group_by_title(self.products)
        self.entries: Dict[str, BulkEditEntry] = {}
        self.logger = logger.bind(service="bulk_price_editor")
        self.reset()

    @property
    def titles(self) -> List[str]:
        return list(self._groups.keys())

    def copies(self, title: str) -> List[ProductRecord]:
        """All rows sharing ``title``."""
        return list(self._groups.get(title, []))

    def reset(self) -> None:
        """Discard edits and go back to the stored prices and statuses."""
        self.entries = {
            title: BulkEditEntry(
                product_title=title,
                new_price=PriceNormalizer.format_price(copies[0].current_price),
                new_status=_known_status(copies[0].availability_status),
            )
            for title, copies in self._groups.items()
        }

    def discard(self) -> None:
        """Drop every pending entry (after a save)."""
        self.entries = {}

    def set_entry(self, title: str, price: str, status: Optional[str] = None) -> BulkEditEntry:
        """Change the pending price (and optionally status) of a title.

        Raises:
            UnknownTitleError: If no product has this exact title
            ValueError: If the status is not a known availability status
        """
        entry = self.entries.get(title)
        if entry is None:
            raise UnknownTitleError(title)
        if status is not None:
            if status not in AVAILABILITY_STATUSES:
                raise ValueError(f"Unknown availability status: {status}")
            entry.new_status = status
        entry.new_price = str(price)
        return entry

    def build_operations(self) -> List[PriceUpdateOperation]:
        """Expand valid entries into one operation per product row.

        Entries whose price is not a positive finite number are skipped
        here and never reach the store.
        """
        operations: List[PriceUpdateOperation] = []
        skipped = 0
        for title, entry in self.entries.items():
            price = PriceNormalizer.parse_price(entry.new_price)
            if price is None:
                skipped += 1
                continue
            for product in self._groups.get(title, []):
                operations.append(
                    PriceUpdateOperation(product=product, price=price, status=entry.new_status)
                )

        self.logger.info(
            "bulk_edit_operations_built",
            entries=len(self.entries),
            skipped=skipped,
            operations=len(operations),
        )
        return operations

    def export_csv(self) -> str:
        """Price sheet for every distinct title (see utils.price_csv)."""
        return export_prices_csv(self.products)

    def import_csv(self, text: str) -> int:
        """Pre-fill prices from a CSV sheet by exact title match.

        Titles that match no product are ignored.

        Returns:
            Number of entries updated
        """
        imported = parse_prices_csv(text)
        applied = 0
        for title, price in imported.items():
            entry = self.entries.get(title)
            if entry is None:
                continue
            entry.new_price = price
            applied += 1

        self.logger.info(
            "bulk_edit_csv_imported",
            rows=len(imported),
            applied=applied,
            ignored=len(imported) - applied,
        )
        return applied
