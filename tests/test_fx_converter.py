"""
Tests for the cached currency converter.
"""
import asyncio
from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.exceptions import ConversionFailure
from ledgerflow.services.fx_converter import CachedFxConverter, RateCache

AS_OF = date(2024, 1, 15)


class TestCachedFxConverter:
    """Tests for CachedFxConverter."""

    @pytest.mark.asyncio
    async def test_identity_conversion(self):
        converter = CachedFxConverter()

        result = await converter.convert(Decimal("42.10"), "usd", "USD", AS_OF)

        assert result.converted_amount == Decimal("42.10")
        assert result.rate == Decimal("1")
        assert len(converter.cache) == 0

    @pytest.mark.asyncio
    async def test_seeded_rate(self):
        converter = CachedFxConverter(initial_rates=[("EUR", "USD", Decimal("1.10"), AS_OF)])

        result = await converter.convert(Decimal("100"), "EUR", "USD", AS_OF)

        assert result.converted_amount == Decimal("110.00")
        assert result.rate == Decimal("1.10")

    @pytest.mark.asyncio
    async def test_reverse_pair_uses_inverse(self):
        converter = CachedFxConverter()
        converter.set_rate("USD", "EUR", Decimal("0.5"), AS_OF)

        result = await converter.convert(Decimal("10"), "EUR", "USD", AS_OF)

        assert result.rate == Decimal("2")
        assert result.converted_amount == Decimal("20")

    @pytest.mark.asyncio
    async def test_missing_rate_caches_placeholder(self):
        converter = CachedFxConverter()

        result = await converter.convert(Decimal("10"), "GBP", "USD", AS_OF)

        assert result.converted_amount == Decimal("10")
        assert result.rate == Decimal("1")
        entry = converter.cache.get("USD", "GBP")
        assert entry is not None and entry.placeholder

    @pytest.mark.asyncio
    async def test_set_rate_replaces_placeholder(self):
        converter = CachedFxConverter()
        await converter.convert(Decimal("10"), "GBP", "USD", AS_OF)

        converter.set_rate("GBP", "USD", Decimal("1.25"), AS_OF)
        result = await converter.convert(Decimal("10"), "GBP", "USD", AS_OF)

        assert result.converted_amount == Decimal("12.50")

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ConversionFailure):
            CachedFxConverter().set_rate("EUR", "USD", Decimal("0"), AS_OF)

    @pytest.mark.asyncio
    async def test_shared_cache(self):
        """Converters built on the same cache see each other's rates."""
        cache = RateCache()
        CachedFxConverter(cache=cache).set_rate("CAD", "USD", Decimal("0.75"), AS_OF)

        result = await CachedFxConverter(cache=cache).convert(Decimal("4"), "CAD", "USD", AS_OF)

        assert result.converted_amount == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_concurrent_conversions(self):
        converter = CachedFxConverter()
        results = await asyncio.gather(
            *[converter.convert(Decimal("1"), "AUD", "USD", AS_OF) for _ in range(20)]
        )
        assert {r.rate for r in results} == {Decimal("1")}
        assert len(converter.cache) == 1
