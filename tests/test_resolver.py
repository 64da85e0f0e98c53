"""
Tests for the price resolver.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from stockfolio.data.resolver import PriceResolver
from stockfolio.errors import PriceNotFound, UnsupportedSymbol

from conftest import SUPPORTED_SYMBOLS, TODAY, FakePriceSource


class TestPrice:
    """Tests for exact-date price lookup."""

    def test_price_on_market_date(self, resolver: PriceResolver):
        assert resolver.price("AAPL", date(2022, 1, 3)) == Decimal("121")
        assert resolver.price("msft", date(2023, 5, 10)) == Decimal("235")

    def test_weekend_has_no_price(self, resolver: PriceResolver):
        with pytest.raises(PriceNotFound) as exc_info:
            resolver.price("AAPL", date(2022, 1, 8))

        assert exc_info.value.symbol == "AAPL"
        assert exc_info.value.date == date(2022, 1, 8)
        assert "2022-01-08" in str(exc_info.value)

    def test_unsupported_symbol(self, resolver: PriceResolver):
        with pytest.raises(UnsupportedSymbol):
            resolver.price("TSLA", date(2022, 1, 3))

    def test_history_is_fetched_once(self, resolver: PriceResolver, fake_source: FakePriceSource):
        resolver.price("AAPL", date(2022, 1, 3))
        resolver.price("AAPL", date(2022, 1, 4))
        with pytest.raises(PriceNotFound):
            resolver.price("AAPL", date(2022, 1, 8))

        assert fake_source.calls["AAPL"] == 1

    def test_quote(self, resolver: PriceResolver):
        quote = resolver.quote("aapl", date(2022, 1, 3))

        assert quote.symbol == "AAPL"
        assert quote.date == date(2022, 1, 3)
        assert quote.close == Decimal("121")


class TestSupportedSymbols:
    """Tests for symbol support and the reference symbol."""

    def test_symbols_are_normalized_and_deduplicated(self, fake_source: FakePriceSource):
        resolver = PriceResolver(fake_source, ["spy", "aapl ", "SPY", ""], today=TODAY)

        assert resolver.supported_symbols == ["SPY", "AAPL"]
        assert resolver.is_supported("Aapl")
        assert not resolver.is_supported("MSFT")

    def test_reference_defaults_to_first_supported(self, resolver: PriceResolver):
        assert resolver.reference_symbol == "SPY"

    def test_explicit_reference_symbol(self, fake_source: FakePriceSource):
        resolver = PriceResolver(fake_source, SUPPORTED_SYMBOLS, reference_symbol="msft", today=TODAY)

        assert resolver.reference_symbol == "MSFT"

    def test_injected_today(self, resolver: PriceResolver):
        assert resolver.today() == TODAY
        assert resolver.yesterday() == TODAY - timedelta(days=1)


class TestMarketDates:
    """Tests for market date resolution."""

    def test_is_valid_market_date(self, resolver: PriceResolver):
        assert resolver.is_valid_market_date(date(2022, 1, 14))
        assert not resolver.is_valid_market_date(date(2022, 1, 15))
        assert not resolver.is_valid_market_date(date(2022, 1, 17))

    def test_next_valid_market_date_returns_valid_date_unchanged(self, resolver: PriceResolver):
        assert resolver.next_valid_market_date(date(2022, 1, 14)) == date(2022, 1, 14)

    def test_next_valid_market_date_skips_weekend_and_holiday(self, resolver: PriceResolver):
        assert resolver.next_valid_market_date(date(2022, 1, 15)) == date(2022, 1, 18)

    def test_next_valid_market_date_stops_after_yesterday(self, resolver: PriceResolver):
        result = resolver.next_valid_market_date(date(2024, 6, 15))

        assert result > resolver.yesterday()
        assert not resolver.is_valid_market_date(result)

    def test_previous_valid_market_date(self, resolver: PriceResolver):
        found = resolver.previous_valid_market_date(date(2022, 1, 17), floor=date(2022, 1, 10))

        assert found == date(2022, 1, 14)

    def test_previous_valid_market_date_respects_floor(self, resolver: PriceResolver):
        found = resolver.previous_valid_market_date(date(2022, 1, 17), floor=date(2022, 1, 15))

        assert found is None
