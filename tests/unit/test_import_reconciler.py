"""
Unit tests for bulk import reconciliation.
Covers lenient row formats, deduplication and all-or-nothing rollback.
"""

import pytest

from stockledger.core.enums import TradeSide
from stockledger.core.exceptions.ledger import DataError, ImportRejectedError
from stockledger.core.models.ledger import Ledger
from stockledger.core.models.trade import TradeRecord
from stockledger.infrastructure.importing import BulkImportReconciler, ImportRowCanonicalizer
from stockledger.infrastructure.importing.row_canonicalizer import (
    normalize_import_date,
    normalize_import_time,
)

HEADER = "market,symbol,side,date,time,qty,price,fee\n"


class TestImportFieldFormats:
    """Tests for lenient date, time and side parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-02", "2024-01-02"),
            ("2024/01/02", "2024-01-02"),
            ("2024.01.02", "2024-01-02"),
            ("20240102", "2024-01-02"),
            ("", None),
            ("01/02/2024", None),
        ],
    )
    def test_should_normalize_import_dates(self, value, expected) -> None:
        assert normalize_import_date(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("9:05", "09:05"),
            ("09:05", "09:05"),
            ("13:30:15", "13:30:15"),
            ("", "09:00"),
            ("9am", None),
        ],
    )
    def test_should_normalize_import_times(self, value, expected) -> None:
        assert normalize_import_time(value) == expected

    @pytest.mark.parametrize(
        "token, expected",
        [
            ("B", TradeSide.BUY),
            ("s", TradeSide.SELL),
            ("buy", TradeSide.BUY),
            ("現股買進", TradeSide.BUY),
            ("現股賣出", TradeSide.SELL),
            ("hold", None),
        ],
    )
    def test_should_parse_lenient_sides(self, token, expected) -> None:
        assert TradeSide.parse_lenient(token) == expected


class TestMarketInference:
    """Tests for market resolution of imported rows."""

    @pytest.fixture
    def canonicalizer(self) -> ImportRowCanonicalizer:
        return ImportRowCanonicalizer()

    @pytest.mark.parametrize(
        "symbol, expected",
        [("2330", "TW"), ("006208", "TW"), ("00878B", "US"), ("AAPL", "US"), ("123", "US")],
    )
    def test_should_infer_market_from_symbol_shape(self, canonicalizer, symbol, expected) -> None:
        assert canonicalizer.resolve_market("", symbol) == expected

    def test_should_prefer_explicit_market(self, canonicalizer) -> None:
        """Test that a market column overrides inference."""
        assert canonicalizer.resolve_market("us", "2330") == "US"


class TestBulkImportReconciler:
    """Test suite for BulkImportReconciler."""

    @pytest.fixture
    def reconciler(self) -> BulkImportReconciler:
        return BulkImportReconciler()

    @pytest.fixture
    def ledger(self) -> Ledger:
        return Ledger(
            lots=(
                TradeRecord("b1", "2024-01-02 09:00:00", "TW", "2330", TradeSide.BUY, 100, 586, 20),
            )
        )

    def test_should_import_rows_sorted_by_timestamp(self, reconciler, ledger) -> None:
        text = HEADER + (
            "TW,2330,SELL,2024-01-05,10:30,40,600,5\n"
            "US,AAPL,BUY,2024-01-01,21:30,10,190,1\n"
        )

        report = reconciler.import_csv(ledger, text)

        assert report.accepted_count == 2
        assert report.skipped == 0
        assert [lot.timestamp for lot in report.ledger.lots] == [
            "2024-01-01 21:30:00",
            "2024-01-02 09:00:00",
            "2024-01-05 10:30:00",
        ]
        assert len(ledger) == 1

    def test_should_be_idempotent(self, reconciler, ledger) -> None:
        """Test that importing the same file twice adds nothing the second time."""
        text = HEADER + "TW,2330,BUY,2024-01-03,09:00,10,590,1\nTW,2330,SELL,2024-01-04,09:00,5,600,1\n"

        first = reconciler.import_csv(ledger, text)
        second = reconciler.import_csv(first.ledger, text)

        assert second.accepted_count == 0
        assert second.skipped == 2
        assert second.ledger == first.ledger

    def test_should_skip_duplicates_within_one_batch(self, reconciler) -> None:
        text = HEADER + "TW,2330,BUY,2024-01-03,09:00,10,590,1\nTW,2330,BUY,2024-01-03,09:00,10,590,1\n"

        report = reconciler.import_csv(Ledger.empty(), text)

        assert report.accepted_count == 1
        assert report.skipped == 1

    def test_should_treat_equivalent_formats_as_duplicates(self, reconciler, ledger) -> None:
        """Test that dedup compares canonical values, not raw text."""
        text = "symbol,side,date,time,qty,price,fee\n2330,B,2024/01/02,9:00,100,586.0,20\n"

        report = reconciler.import_csv(ledger, text)

        assert report.accepted_count == 0
        assert report.skipped == 1

    def test_should_roll_back_whole_batch_on_oversell(self, reconciler, ledger) -> None:
        """Test atomicity: one bad sell discards every row of the batch."""
        text = HEADER + (
            "US,AAPL,BUY,2024-01-03,09:00,10,190,1\n"
            "TW,2330,SELL,2024-01-04,09:00,150,600,5\n"
        )

        with pytest.raises(ImportRejectedError) as exc_info:
            reconciler.import_csv(ledger, text)

        error = exc_info.value
        assert error.instrument == ("TW", "2330")
        assert error.timestamp == "2024-01-04 09:00:00"
        assert "negative" in str(error)
        assert len(ledger) == 1

    def test_should_reject_backdated_sell_before_existing_buy(self, reconciler, ledger) -> None:
        text = HEADER + "TW,2330,SELL,2024-01-01,09:00,10,600,0\n"

        with pytest.raises(ImportRejectedError):
            reconciler.import_csv(ledger, text)

    def test_should_accept_sell_covered_by_buy_in_same_batch(self, reconciler) -> None:
        text = HEADER + (
            "TW,0050,SELL,2024-01-04,09:00,100,25,0\n"
            "TW,0050,BUY,2024-01-03,09:00,100,20,0\n"
        )

        report = reconciler.import_csv(Ledger.empty(), text)

        assert report.accepted_count == 2

    def test_should_report_invalid_rows_and_keep_valid_ones(self, reconciler) -> None:
        """Test that normalization failures are per-row, not batch-fatal."""
        text = HEADER + (
            "TW,2330,BUY,2024-01-03,09:00,10,590,1\n"
            "TW,2330,HOLD,2024-01-03,09:00,10,590,1\n"
            "TW,2330,BUY,not-a-date,09:00,10,590,1\n"
            "TW,2330,BUY,2024-01-03,09:00,0,590,1\n"
        )

        report = reconciler.import_csv(Ledger.empty(), text)

        assert report.accepted_count == 1
        assert [(e.row_number, e.field) for e in report.errors] == [
            (2, "side"),
            (3, "timestamp"),
            (4, "quantity"),
        ]
        message = report.message()
        assert "Imported 1 trades" in message
        assert "3 rows were not imported" in message

    def test_should_truncate_error_list_in_message(self, reconciler) -> None:
        rows = "".join(f"TW,2330,HOLD,2024-01-{d:02d},09:00,1,1,0\n" for d in range(1, 11))

        report = reconciler.import_csv(Ledger.empty(), HEADER + rows)

        assert len(report.errors) == 10
        assert "Row 8:" in report.message()
        assert "Row 9:" not in report.message()

    def test_should_reject_unknown_explicit_market(self, reconciler) -> None:
        report = reconciler.import_csv(Ledger.empty(), HEADER + "HK,0700,BUY,2024-01-03,09:00,1,300,0\n")

        assert report.errors[0].field == "market"

    def test_should_default_blank_time_to_market_open(self, reconciler) -> None:
        text = "symbol,side,date,qty,price\nAAPL,BUY,20240103,3,190\n"

        report = reconciler.import_csv(Ledger.empty(), text)

        record = report.accepted[0]
        assert record.timestamp == "2024-01-03 09:00:00"
        assert record.market == "US"
        assert record.fee == 0

    def test_should_reject_file_without_data_rows(self, reconciler) -> None:
        with pytest.raises(ImportRejectedError, match="no data rows"):
            reconciler.import_csv(Ledger.empty(), HEADER)

    def test_should_return_input_ledger_when_nothing_staged(self, reconciler, ledger) -> None:
        report = reconciler.reconcile(ledger, [{"symbol": "", "side": "", "date": ""}])

        assert report.ledger is ledger
        assert report.accepted_count == 0

    def test_should_wrap_parser_failures(self, reconciler, monkeypatch) -> None:
        def broken(text):
            raise DataError("Cannot parse trade list")

        monkeypatch.setattr(
            "stockledger.infrastructure.importing.reconciler.parse_csv", broken
        )

        with pytest.raises(DataError):
            reconciler.import_csv(Ledger.empty(), "x")
