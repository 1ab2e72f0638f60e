"""Price parsing helpers for admin-entered and imported values."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


class PriceNormalizer:
    """Parses user-entered price text into Decimals.

    Entered prices are stored with two decimal places, matching the
    Numeric(12, 2) price columns.
    """

    @staticmethod
    def parse_number(raw: Optional[str]) -> Optional[Decimal]:
        """Parse any finite number.

        Args:
            raw: Raw text, e.g. " 49.99 "

        Returns:
            Decimal value, or None for blank, non-numeric, NaN or infinite input
        """
        if raw is None:
            return None
        cleaned = str(raw).strip()
        if not cleaned:
            return None
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        return value

    @classmethod
    def parse_price(cls, raw: Optional[str]) -> Optional[Decimal]:
        """Parse a sellable price: a positive finite number rounded to cents.

        Returns:
            Decimal price, or None when the entry should be skipped
        """
        value = cls.parse_number(raw)
        if value is None or value <= 0:
            return None
        rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
        if rounded <= 0:
            return None
        return rounded

    @staticmethod
    def format_price(value: Decimal) -> str:
        """Render a price without exponent notation (e.g. 49.99, 120)."""
        return format(value.normalize(), "f") if value == value.to_integral_value() else format(value, "f")
