"""
Unit tests for the trade input normalizer.
"""

import pytest

from stockledger.core.enums import MarketRegistry, MarketSpec, TradeSide
from stockledger.core.exceptions.ledger import (
    InvalidFeeError,
    InvalidMarketError,
    InvalidPriceError,
    InvalidQuantityError,
    InvalidSideError,
    InvalidTimestampError,
    MissingSymbolError,
)
from stockledger.core.normalizer import TradeNormalizer, normalize, parse_timestamp, split_timestamp


def raw_trade(**overrides) -> dict:
    raw = {
        "market": "TW",
        "symbol": "2330",
        "side": "BUY",
        "date": "2024-01-02",
        "time": "09:00",
        "quantity": "100",
        "price": "586",
        "fee": "20",
    }
    raw.update(overrides)
    return raw


class TestParseTimestamp:
    """Tests for timestamp canonicalization."""

    def test_should_pad_seconds_for_hhmm(self) -> None:
        assert parse_timestamp("2024-01-02", "09:30") == "2024-01-02 09:30:00"

    def test_should_keep_seconds_for_hhmmss(self) -> None:
        assert parse_timestamp("2024-01-02", "13:05:59") == "2024-01-02 13:05:59"

    def test_should_use_midnight_when_time_blank(self) -> None:
        """Test default time for manual entries."""
        assert parse_timestamp("2024-01-02", "") == "2024-01-02 00:00:00"
        assert parse_timestamp("2024-01-02", None) == "2024-01-02 00:00:00"

    def test_should_use_supplied_default_time(self) -> None:
        assert parse_timestamp("2024-01-02", None, default_time="09:00") == "2024-01-02 09:00:00"

    @pytest.mark.parametrize("date", ["", None, "2024/01/02", "24-01-02", "2024-1-2"])
    def test_should_reject_malformed_date(self, date) -> None:
        with pytest.raises(InvalidTimestampError):
            parse_timestamp(date, "09:00")

    @pytest.mark.parametrize("time", ["9:00", "0900", "09:00:0", "noon"])
    def test_should_reject_malformed_time(self, time) -> None:
        with pytest.raises(InvalidTimestampError):
            parse_timestamp("2024-01-02", time)

    def test_should_reject_impossible_calendar_date(self) -> None:
        """Test that well-shaped but impossible dates are rejected."""
        with pytest.raises(InvalidTimestampError, match="calendar"):
            parse_timestamp("2024-02-30", "09:00")
        with pytest.raises(InvalidTimestampError):
            parse_timestamp("2024-01-02", "25:00")

    def test_should_split_iso_and_space_timestamps(self) -> None:
        assert split_timestamp("2024-01-02 09:00:00") == ("2024-01-02", "09:00:00")
        assert split_timestamp("2024-01-02T09:00") == ("2024-01-02", "09:00")
        assert split_timestamp("2024-01-02") == ("2024-01-02", "")


class TestTradeNormalizer:
    """Test suite for TradeNormalizer."""

    @pytest.fixture
    def normalizer(self) -> TradeNormalizer:
        return TradeNormalizer()

    def test_should_build_record_from_string_fields(self, normalizer) -> None:
        """Test normalizing a typical manual entry."""
        record = normalizer.normalize(raw_trade())

        assert record.market == "TW"
        assert record.symbol == "2330"
        assert record.side == TradeSide.BUY
        assert record.timestamp == "2024-01-02 09:00:00"
        assert record.quantity == 100
        assert record.price == 586
        assert record.fee == 20
        assert record.id

    def test_should_generate_unique_ids(self, normalizer) -> None:
        first = normalizer.normalize(raw_trade())
        second = normalizer.normalize(raw_trade())

        assert first.id != second.id

    def test_should_keep_supplied_id(self, normalizer) -> None:
        assert normalizer.normalize(raw_trade(id="abc")).id == "abc"

    def test_should_uppercase_us_symbols_only(self, normalizer) -> None:
        """Test the per-market symbol case rule."""
        us = normalizer.normalize(raw_trade(market="us", symbol=" aapl "))
        tw = normalizer.normalize(raw_trade(symbol=" 00878b "))

        assert us.market == "US"
        assert us.symbol == "AAPL"
        assert tw.symbol == "00878b"

    def test_should_accept_lowercase_side(self, normalizer) -> None:
        assert normalizer.normalize(raw_trade(side="sell")).side == TradeSide.SELL

    def test_should_default_blank_fee_to_zero(self, normalizer) -> None:
        assert normalizer.normalize(raw_trade(fee="")).fee == 0
        assert normalizer.normalize(raw_trade(fee=None)).fee == 0

    def test_should_strip_grouping_separators(self, normalizer) -> None:
        record = normalizer.normalize(raw_trade(quantity="1,000", price="1,234.5"))

        assert record.quantity == 1000
        assert record.price == 1234.5

    def test_should_read_persisted_document_keys(self, normalizer) -> None:
        """Test that the stored lot shape (type, qty, timestamp) normalizes."""
        record = normalizer.normalize(
            {
                "id": "x1",
                "timestamp": "2024-01-02 09:00:00",
                "market": "TW",
                "symbol": "2330",
                "type": "SELL",
                "qty": 5,
                "price": 600,
                "fee": 0,
            }
        )

        assert record.side == TradeSide.SELL
        assert record.quantity == 5
        assert record.timestamp == "2024-01-02 09:00:00"

    @pytest.mark.parametrize(
        "overrides, error",
        [
            ({"market": "HK"}, InvalidMarketError),
            ({"market": ""}, InvalidMarketError),
            ({"symbol": "   "}, MissingSymbolError),
            ({"side": "HOLD"}, InvalidSideError),
            ({"date": "02/01/2024"}, InvalidTimestampError),
            ({"quantity": "0"}, InvalidQuantityError),
            ({"quantity": "-5"}, InvalidQuantityError),
            ({"quantity": "abc"}, InvalidQuantityError),
            ({"quantity": "nan"}, InvalidQuantityError),
            ({"price": "0"}, InvalidPriceError),
            ({"price": "inf"}, InvalidPriceError),
            ({"fee": "-1"}, InvalidFeeError),
        ],
    )
    def test_should_reject_invalid_fields(self, normalizer, overrides, error) -> None:
        """Test that each invalid field raises its own error type."""
        with pytest.raises(error) as exc_info:
            normalizer.normalize(raw_trade(**overrides))

        assert exc_info.value.field == error.field

    def test_should_accept_registered_market(self) -> None:
        """Test that the market set is open through the registry."""
        registry = MarketRegistry()
        registry.register(MarketSpec(code="JP", currency="JPY"))

        record = normalize(raw_trade(market="jp", symbol="7203"), markets=registry)

        assert record.market == "JP"
