"""
Integration tests for the command line script.
"""

import json

import pytest

import ledger_cli


class TestLedgerCLI:
    """Runs CLI commands against a temporary ledger directory."""

    @pytest.fixture
    def base_args(self, tmp_path) -> list[str]:
        return ["--data-dir", str(tmp_path / "ledger")]

    def test_should_add_trade_and_print_holdings(self, base_args, capsys) -> None:
        code = ledger_cli.main(
            base_args
            + ["add", "--market", "TW", "--symbol", "2330", "--side", "BUY", "--date", "2024-01-02",
               "--qty", "100", "--price", "586", "--fee", "20"]
        )
        assert code == 0

        assert ledger_cli.main(base_args + ["holdings"]) == 0
        out = capsys.readouterr().out
        assert "2330" in out
        assert "586.2" in out

    def test_should_fail_on_oversell(self, base_args) -> None:
        code = ledger_cli.main(
            base_args
            + ["add", "--market", "TW", "--symbol", "2330", "--side", "SELL", "--date", "2024-01-02",
               "--qty", "1", "--price", "586"]
        )

        assert code == 1

    def test_should_import_and_export(self, base_args, tmp_path) -> None:
        source = tmp_path / "trades.csv"
        source.write_text("symbol,side,date,qty,price\n2330,B,2024-01-02,100,586\n", encoding="utf-8")
        backup = tmp_path / "backup.json"
        timeline = tmp_path / "timeline.csv"

        assert ledger_cli.main(base_args + ["import-csv", str(source)]) == 0
        assert ledger_cli.main(base_args + ["export-json", str(backup)]) == 0
        assert ledger_cli.main(base_args + ["export-csv", "TW", "2330", str(timeline)]) == 0

        assert len(json.loads(backup.read_text(encoding="utf-8"))["lots"]) == 1
        assert timeline.read_text(encoding="utf-8").startswith("idx,date,side")

    def test_should_restore_from_file(self, base_args, tmp_path) -> None:
        document = tmp_path / "restore.json"
        document.write_text(
            json.dumps(
                {
                    "version": 1,
                    "lots": [
                        {
                            "id": "x1",
                            "timestamp": "2024-01-02 09:00:00",
                            "market": "US",
                            "symbol": "AAPL",
                            "type": "BUY",
                            "qty": 3,
                            "price": 190,
                            "fee": 0,
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )

        assert ledger_cli.main(base_args + ["restore", str(document)]) == 0
        assert ledger_cli.main(base_args + ["delete", "x1"]) == 0
        assert ledger_cli.main(base_args + ["delete", "x1"]) == 1

    def test_should_fail_on_invalid_json_restore(self, base_args, tmp_path) -> None:
        document = tmp_path / "broken.json"
        document.write_text("{oops", encoding="utf-8")

        assert ledger_cli.main(base_args + ["restore", str(document)]) == 1
