"""Tests for the SQLite trade log and price history."""

from datetime import datetime, timedelta, timezone

import pytest

from ethbot.repos.db import init_db
from ethbot.repos.trade_log_repo import TradeLogRepo


T0 = datetime(2025, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(tmp_path):
    db_path = str(tmp_path / "data" / "ethbot.db")
    init_db(db_path)
    return TradeLogRepo(db_path)


class TestTradeLog:
    def test_init_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "ethbot.db"
        init_db(str(db_path))
        assert db_path.exists()

    def test_init_is_idempotent(self, repo, tmp_path):
        init_db(str(tmp_path / "data" / "ethbot.db"))
        assert repo.get_records()["total"] == 0

    def test_append_and_read_back(self, repo):
        row_id = repo.append_record("MA-BUY", T0, 0.0414, 304_000.0, short_ma=303_500.0)
        data = repo.get_records()

        assert data["total"] == 1
        record = data["records"][0]
        assert record["id"] == row_id
        assert record["tag"] == "MA-BUY"
        assert record["amount"] == pytest.approx(0.0414)
        assert record["price"] == 304_000.0
        assert record["recorded_at"] == T0.isoformat()
        assert record["extra"] == {"short_ma": 303_500.0}

    def test_records_newest_first_and_filtered_by_tag(self, repo):
        repo.append_record("BO-BUY", T0, 0.01, 100.0)
        repo.append_record("RSI-SELL", T0 + timedelta(minutes=5), 0.01, 101.0)
        repo.append_record("BO-SELL", T0 + timedelta(minutes=10), 0.01, 99.0)

        all_rows = repo.get_records()
        assert [r["tag"] for r in all_rows["records"]] == ["BO-SELL", "RSI-SELL", "BO-BUY"]

        filtered = repo.get_records(tag="RSI-SELL")
        assert filtered["total"] == 1
        assert filtered["records"][0]["price"] == 101.0

    def test_limit(self, repo):
        for i in range(5):
            repo.append_record("BO-BUY", T0 + timedelta(minutes=i), 0.01, 100.0 + i)
        data = repo.get_records(limit=2)
        assert data["total"] == 5
        assert [r["price"] for r in data["records"]] == [104.0, 103.0]

    def test_last_recorded_row(self, repo):
        assert repo.last_recorded_row("MA-BUY") == 0
        first = repo.append_record("MA-BUY", T0, 0.02, 100.0)
        repo.append_record("MA-SELL", T0, 0.02, 100.0)
        assert repo.last_recorded_row("MA-BUY") == first


class TestPriceHistory:
    def test_historical_prices_oldest_first(self, repo):
        for i, price in enumerate([100.0, 101.0, 102.0, 103.0]):
            repo.record_price(T0 + timedelta(minutes=5 * i), price)
        assert repo.historical_prices(3) == [101.0, 102.0, 103.0]

    def test_historical_samples_since(self, repo):
        for i, price in enumerate([100.0, 101.0, 102.0]):
            repo.record_price(T0 + timedelta(hours=i), price)

        samples = repo.historical_samples(since=T0 + timedelta(hours=1))

        assert [s.price for s in samples] == [101.0, 102.0]
        assert samples[0].timestamp == T0 + timedelta(hours=1)

    def test_historical_samples_limit(self, repo):
        for i, price in enumerate([100.0, 101.0, 102.0]):
            repo.record_price(T0 + timedelta(hours=i), price)
        assert [s.price for s in repo.historical_samples(limit=2)] == [101.0, 102.0]

    def test_empty_history(self, repo):
        assert repo.historical_prices(14) == []
        assert repo.historical_samples() == []
