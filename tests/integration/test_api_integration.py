"""
Integration tests for the HTTP API.

Drives the FastAPI application end to end over an in-memory ledger.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from stockledger.api.main import create_app
from stockledger.config import Settings
from stockledger.infrastructure.storage import InMemoryAsyncStore, InMemoryStore, LedgerRepository
from stockledger.services import LedgerService

NOW = datetime(2024, 3, 1, 8, 5)

BUY = {
    "market": "TW",
    "symbol": "2330",
    "side": "BUY",
    "date": "2024-01-02",
    "time": "09:00",
    "quantity": 100,
    "price": 586,
    "fee": 20,
}
SELL = {**BUY, "side": "SELL", "date": "2024-01-05", "time": "10:30", "quantity": 40, "price": 600, "fee": 5}


class TestLedgerAPI:
    """Integration tests for the ledger endpoints."""

    @pytest.fixture
    def service(self) -> LedgerService:
        repository = LedgerRepository(InMemoryStore(), backup=InMemoryAsyncStore(), clock=lambda: NOW)
        return LedgerService(repository, clock=lambda: NOW)

    @pytest.fixture
    def client(self, service, tmp_path):
        settings = Settings(data_dir=tmp_path, log_level="WARNING")
        with TestClient(create_app(settings=settings, service=service)) as client:
            yield client

    @pytest.fixture
    def seeded(self, client):
        assert client.post("/api/trades", json=BUY).status_code == 201
        assert client.post("/api/trades", json=SELL).status_code == 201
        return client

    def test_should_report_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "healthy"}
        assert client.get("/").json()["status"] == "running"

    def test_should_add_trade_and_return_position(self, client) -> None:
        response = client.post("/api/trades", json=BUY)

        assert response.status_code == 201
        body = response.json()
        assert body["trade"]["timestamp"] == "2024-01-02 09:00:00"
        assert body["position"]["average_cost"] == pytest.approx(586.2)
        assert body["ledger_count"] == 1

    def test_should_reject_oversell_with_conflict(self, seeded) -> None:
        response = seeded.post("/api/trades", json={**SELL, "date": "2024-01-08", "quantity": 70})

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "oversell_rejected"
        assert body["details"]["holding_at_time"] == pytest.approx(60)
        assert seeded.get("/api/trades").json()["count"] == 2

    def test_should_reject_invalid_trade_with_field(self, client) -> None:
        response = client.post("/api/trades", json={**BUY, "date": "2024-02-30"})

        assert response.status_code == 422
        assert response.json()["details"] == {"field": "timestamp"}

    def test_should_list_trades(self, seeded) -> None:
        body = seeded.get("/api/trades").json()

        assert body["count"] == 2
        assert body["last_timestamp"] == "2024-01-05 10:30:00"
        assert [t["side"] for t in body["trades"]] == ["BUY", "SELL"]

    def test_should_edit_trade(self, seeded) -> None:
        sell_id = seeded.get("/api/trades").json()["trades"][1]["id"]

        response = seeded.patch(f"/api/trades/{sell_id}", json={"quantity": 100})

        assert response.status_code == 200
        assert response.json()["position"]["quantity"] == 0

    def test_should_reject_edit_of_fixed_field(self, seeded) -> None:
        sell_id = seeded.get("/api/trades").json()["trades"][1]["id"]

        response = seeded.patch(f"/api/trades/{sell_id}", json={"side": "BUY"})

        assert response.status_code == 422

    def test_should_reject_delete_that_strands_sell(self, seeded) -> None:
        buy_id = seeded.get("/api/trades").json()["trades"][0]["id"]

        response = seeded.delete(f"/api/trades/{buy_id}")

        assert response.status_code == 409

    def test_should_return_not_found_for_unknown_trade(self, client) -> None:
        response = client.delete("/api/trades/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_should_report_holdings(self, seeded) -> None:
        (holding,) = seeded.get("/api/holdings").json()["holdings"]

        assert holding["currency"] == "TWD"
        assert holding["quantity"] == pytest.approx(60)
        assert holding["realized_pnl"] == pytest.approx(547)

    def test_should_return_timeline_and_chart(self, seeded) -> None:
        timeline = seeded.get("/api/instruments/TW/2330/timeline").json()
        chart = seeded.get("/api/instruments/tw/2330/chart").json()

        assert [e["afterQty"] for e in timeline["entries"]] == [100, pytest.approx(60)]
        assert chart["label"][0] == "B @586.00｜+100"

    def test_should_download_instrument_csv(self, seeded) -> None:
        response = seeded.get("/api/instruments/TW/2330/export.csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "stockledger_TW_2330_2024-03-01-08-05-00.csv" in response.headers["content-disposition"]
        assert response.text.startswith("idx,date,side,qty,price,fee,afterQty,avgCostAfter")

    def test_should_import_csv_body(self, seeded) -> None:
        text = "symbol,side,date,time,qty,price\nAAPL,B,2024/01/03,21:30,5,190\nAAPL,X,2024/01/03,21:30,5,190\n"

        response = seeded.post("/api/backup/import-csv", content=text.encode("utf-8"))

        assert response.status_code == 200
        body = response.json()
        assert body["accepted"] == 1
        assert body["errors"][0]["field"] == "side"
        assert body["ledger_count"] == 3

    def test_should_reject_oversold_import(self, seeded) -> None:
        text = "symbol,side,date,qty,price\n2330,S,2024-01-09,500,600\n"

        response = seeded.post("/api/backup/import-csv", content=text.encode("utf-8"))

        assert response.status_code == 409
        assert response.json()["details"]["symbol"] == "2330"
        assert seeded.get("/api/trades").json()["count"] == 2

    def test_should_export_restore_and_reset(self, seeded) -> None:
        export = seeded.get("/api/backup/export")
        assert export.status_code == 200
        assert "stock-ledger_20240301_0805.json" in export.headers["content-disposition"]
        assert seeded.get("/api/backup/status").json()["needs_reminder"] is False

        assert seeded.delete("/api/backup/ledger").json()["ledger_count"] == 0

        restored = seeded.post("/api/backup/restore", json=export.json())
        assert restored.status_code == 200
        assert restored.json()["ledger_count"] == 2

    def test_should_reject_malformed_restore(self, seeded) -> None:
        response = seeded.post("/api/backup/restore", json={"trades": []})

        assert response.status_code == 400
        assert response.json()["error"] == "malformed_input"
