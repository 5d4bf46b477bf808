"""
Currency conversion with a cached rate table.

Rates are stored per unordered currency pair: a rate stored for A→B is
inverted when B→A is requested. Unknown pairs get a 1.0 placeholder so
that ingestion never stops on a missing rate.
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

import structlog

from ledgerflow.exceptions import ConversionFailure

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateEntry:
    """Rate for converting base_currency into quote_currency."""

    base_currency: str
    quote_currency: str
    rate: Decimal
    as_of: date
    placeholder: bool = False

    def rate_for(self, from_currency: str) -> Decimal:
        if from_currency == self.base_currency:
            return self.rate
        return Decimal("1") / self.rate


@dataclass(frozen=True)
class ConversionResult:
    """Converted amount and the rate applied."""

    converted_amount: Decimal
    rate: Decimal


def _pair_key(first: str, second: str) -> Tuple[str, str]:
    return tuple(sorted((first, second)))  # type: ignore[return-value]


class RateCache:
    """Thread-safe rate table keyed by unordered currency pair."""

    def __init__(self):
        self._entries: Dict[Tuple[str, str], RateEntry] = {}
        self._lock = threading.RLock()

    def get(self, from_currency: str, to_currency: str) -> Optional[RateEntry]:
        with self._lock:
            return self._entries.get(_pair_key(from_currency, to_currency))

    def set(self, entry: RateEntry) -> None:
        with self._lock:
            self._entries[_pair_key(entry.base_currency, entry.quote_currency)] = entry

    def get_or_set(self, entry: RateEntry) -> RateEntry:
        """Return the stored entry for the pair, storing the given one if absent."""
        with self._lock:
            return self._entries.setdefault(
                _pair_key(entry.base_currency, entry.quote_currency), entry
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FxConverter(ABC):
    """Converts amounts between currencies."""

    @abstractmethod
    async def convert(
        self, amount: Decimal, from_currency: str, to_currency: str, as_of: date
    ) -> ConversionResult:
        """Convert an amount as of a date."""


class CachedFxConverter(FxConverter):
    """FxConverter backed by a RateCache."""

    def __init__(
        self,
        initial_rates: Optional[Iterable[Tuple[str, str, Decimal, date]]] = None,
        cache: Optional[RateCache] = None,
    ):
        self.cache = cache if cache is not None else RateCache()
        for from_currency, to_currency, rate, as_of in initial_rates or []:
            self.set_rate(from_currency, to_currency, rate, as_of)

    def set_rate(self, from_currency: str, to_currency: str, rate: Decimal, as_of: date) -> None:
        """
        Store the rate for from_currency → to_currency.

        Raises:
            ConversionFailure: If the rate is not positive.
        """
        rate = Decimal(str(rate))
        if rate <= 0:
            raise ConversionFailure(
                from_currency, to_currency, message=f"Rate must be positive, got {rate}"
            )
        self.cache.set(RateEntry(from_currency.upper(), to_currency.upper(), rate, as_of))

    async def convert(
        self, amount: Decimal, from_currency: str, to_currency: str, as_of: date
    ) -> ConversionResult:
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()

        if from_currency == to_currency:
            return ConversionResult(converted_amount=amount, rate=Decimal("1"))

        entry = self.cache.get_or_set(
            RateEntry(from_currency, to_currency, Decimal("1"), as_of, placeholder=True)
        )
        if entry.placeholder:
            logger.warning(
                "fx_rate_missing_placeholder_used",
                from_currency=from_currency,
                to_currency=to_currency,
                as_of=as_of.isoformat(),
            )

        rate = entry.rate_for(from_currency)
        return ConversionResult(converted_amount=amount * rate, rate=rate)
