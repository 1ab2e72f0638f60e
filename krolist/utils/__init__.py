"""Parsing and file-format helpers."""

from krolist.utils.normalizer import PriceNormalizer
from krolist.utils.price_csv import export_prices_csv, group_by_title, parse_prices_csv

__all__ = [
    "PriceNormalizer",
    "export_prices_csv",
    "group_by_title",
    "parse_prices_csv",
]
