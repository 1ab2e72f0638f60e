"""CSV export and import of Krolist prices.

Exports are spreadsheet friendly: UTF-8 BOM, every field quoted, one row
per distinct title. Imports only need the title (column 1) and the price
(column 3) of that layout.
"""

import csv
import io
from collections import OrderedDict
from typing import Dict, Iterable, List

from krolist.schemas import ProductRecord
from krolist.utils.normalizer import PriceNormalizer

BOM = "\ufeff"

EXPORT_COLUMNS = [
    "Product Title",
    "Store",
    "Current Price",
    "Currency",
    "Product URL",
    "Collections",
    "Number of Copies",
    "Last Updated",
    "Image URL",
]

TITLE_COLUMN = 0
PRICE_COLUMN = 2


def group_by_title(products: Iterable[ProductRecord]) -> "OrderedDict[str, List[ProductRecord]]":
    """Group rows by exact title, keeping first-seen order."""
    groups: "OrderedDict[str, List[ProductRecord]]" = OrderedDict()
    for product in products:
        groups.setdefault(product.title, []).append(product)
    return groups


def _collections(copies: List[ProductRecord]) -> str:
    seen: List[str] = []
    for copy in copies:
        if copy.collection_title and copy.collection_title not in seen:
            seen.append(copy.collection_title)
    return "; ".join(seen)


def export_prices_csv(products: Iterable[ProductRecord]) -> str:
    """Render the price sheet for every distinct title.

    Args:
        products: All product rows, duplicates included

    Returns:
        CSV text starting with a byte-order mark
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)

    for title, copies in group_by_title(products).items():
        first = copies[0]
        last_updated = first.last_checked_at or first.updated_at
        writer.writerow([
            title,
            first.store,
            PriceNormalizer.format_price(first.current_price),
            first.currency,
            first.product_url,
            _collections(copies),
            len(copies),
            last_updated.isoformat() if last_updated else "",
            first.image_url or "",
        ])

    return BOM + buffer.getvalue()


def parse_prices_csv(text: str) -> Dict[str, str]:
    """Read title -> price text pairs from an exported (or hand-made) sheet.

    The header line is skipped, as are blank lines, rows with fewer than
    three fields and rows whose price is not a number. Quoted fields may
    contain commas and doubled quotes.

    Args:
        text: File contents, with or without a leading BOM

    Returns:
        Mapping of title to the price text as written in the file
    """
    if text.startswith(BOM):
        text = text[len(BOM):]

    imported: Dict[str, str] = {}
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    for line_number, fields in enumerate(reader):
        if line_number == 0:
            continue
        if not fields or not any(f.strip() for f in fields):
            continue
        if len(fields) <= PRICE_COLUMN:
            continue

        title = fields[TITLE_COLUMN].strip()
        price = fields[PRICE_COLUMN].strip()
        if title and price and PriceNormalizer.parse_number(price) is not None:
            imported[title] = price

    return imported
