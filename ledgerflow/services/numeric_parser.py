"""
Amount parser for statement values.

Handles the formats banks print amounts in:
- Currency: $1,234.56, €1.234,56, USD 12.00
- Negative: (123.45), -123.45, -$123.45
- Separators: US and European thousands/decimal conventions
"""
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ParsedAmount:
    """Result of parsing an amount string."""

    value: Optional[Decimal]
    raw_value: str
    confidence: float
    is_negative: bool = False
    currency: Optional[str] = None


class AmountParser:
    """
    Parser for monetary amounts found in statements.

    Parentheses or a leading minus make the value negative; currency
    symbols, codes and spaces are stripped before the number is read.
    """

    CURRENCY_SYMBOLS = ("USD", "EUR", "GBP", "CAD", "AUD", "$", "€", "£", "¥")

    PARENTHESES_PATTERN = re.compile(r"^\s*\(([^)]+)\)\s*$")

    def parse(self, value_str: str) -> ParsedAmount:
        """
        Parse a string into a signed amount.

        Args:
            value_str: Amount as printed.

        Returns:
            ParsedAmount; value is None when the string holds no number.
        """
        if not value_str or not value_str.strip():
            return ParsedAmount(value=None, raw_value=value_str or "", confidence=0.0)

        original = value_str
        value_str = value_str.strip()

        is_negative = False
        paren_match = self.PARENTHESES_PATTERN.match(value_str)
        if paren_match:
            value_str = paren_match.group(1).strip()
            is_negative = True

        if value_str.startswith("-"):
            is_negative = True
            value_str = value_str[1:].strip()
        elif value_str.startswith("+"):
            value_str = value_str[1:].strip()

        currency = None
        for symbol in self.CURRENCY_SYMBOLS:
            if value_str.startswith(symbol):
                currency = symbol
                value_str = value_str[len(symbol):].strip()
                break

        # "$-12.00" style
        if value_str.startswith("-"):
            is_negative = True
            value_str = value_str[1:].strip()

        parsed_value, confidence = self._parse_number(value_str)
        if parsed_value is not None and is_negative:
            parsed_value = -parsed_value

        return ParsedAmount(
            value=parsed_value,
            raw_value=original,
            confidence=confidence,
            is_negative=is_negative,
            currency=currency,
        )

    def parse_value(self, value_str: str) -> Optional[Decimal]:
        """Shortcut returning only the Decimal value."""
        return self.parse(value_str).value

    def _parse_number(self, value_str: str) -> Tuple[Optional[Decimal], float]:
        """
        Parse a cleaned numeric string into a Decimal.

        Returns:
            Tuple of (parsed Decimal or None, confidence score).
        """
        value_str = value_str.replace(" ", "")
        if not value_str:
            return None, 0.0

        comma_count = value_str.count(",")
        period_count = value_str.count(".")

        try:
            if comma_count == 0 and period_count <= 1:
                return Decimal(value_str), 1.0

            if period_count == 0:
                # 1,234,567 or European 1,5
                if self._is_thousand_separator(value_str, ","):
                    return Decimal(value_str.replace(",", "")), 0.95
                return Decimal(value_str.replace(",", ".")), 0.85

            # Last separator is the decimal point
            last_comma_pos = value_str.rfind(",")
            last_period_pos = value_str.rfind(".")
            if last_period_pos > last_comma_pos:
                return Decimal(value_str.replace(",", "")), 0.95
            return Decimal(value_str.replace(".", "").replace(",", ".")), 0.9

        except InvalidOperation:
            logger.debug("amount_parse_failed", value=value_str)
            return None, 0.0

    def _is_thousand_separator(self, value_str: str, separator: str) -> bool:
        """True when every group after the first has exactly three digits."""
        parts = value_str.split(separator)
        if len(parts) < 2:
            return False
        return all(len(part) == 3 and part.isdigit() for part in parts[1:])


_parser_instance: Optional[AmountParser] = None


def get_amount_parser() -> AmountParser:
    """Get singleton AmountParser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = AmountParser()
    return _parser_instance
