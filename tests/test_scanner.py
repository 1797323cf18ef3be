"""Tests for the batched watchlist scanner."""

from __future__ import annotations

import json

import pytest

from models import CompositeScore, ScanResult
from scanner import WatchlistScanner, rank_results, resolve_symbol, save_scan_snapshot

SYMBOLS = [f"S{i:02d}" for i in range(12)]


def result(symbol, swing, intraday):
    return ScanResult(
        symbol=symbol, display_symbol=symbol, name=symbol, currency="USD",
        price=100.0, change=0.0, volume=0,
        swing=CompositeScore(total=swing), intraday=CompositeScore(total=intraday),
    )


class TestResolveSymbol:
    """Tests for provider symbol mapping."""

    @pytest.mark.parametrize("symbol,currency,expected", [
        ("sap", "EUR", "SAP.DE"),
        ("RHM.DE", "EUR", "RHM.DE"),
        ("^GDAXI", "EUR", "^GDAXI"),
        ("avgo", "USD", "AVGO"),
    ])
    def test_mapping(self, symbol, currency, expected):
        assert resolve_symbol(symbol, currency) == expected


class TestScanWatchlist:
    """Tests for scan_watchlist batching, ordering and failure isolation."""

    @pytest.fixture
    def collector(self, fake_collector, make_candles):
        return fake_collector(
            default_daily=make_candles([100.0 + (i % 7) for i in range(80)]),
            default_intraday=make_candles([100.0] * 20, volume=[300] * 19 + [1900]),
        )

    def test_progress_after_each_batch(self, collector):
        progress = []
        WatchlistScanner(collector).scan_watchlist(
            SYMBOLS, "USD", on_progress=lambda done, total: progress.append((done, total))
        )
        assert progress == [(5, 12), (10, 12), (12, 12)]

    def test_concurrency_capped_at_batch_size(self, collector):
        collector.delays = {s: 0.02 for s in SYMBOLS}
        WatchlistScanner(collector).scan_watchlist(SYMBOLS, "USD")
        assert 1 <= collector.max_active <= 5

    def test_every_symbol_returned_once(self, collector):
        results = WatchlistScanner(collector).scan_watchlist(SYMBOLS, "USD")
        assert sorted(r.display_symbol for r in results) == SYMBOLS

    def test_order_independent_of_timing(self, collector):
        """Equal scores keep input order, whatever finishes first."""
        collector.delays = {s: 0.001 * (12 - i) for i, s in enumerate(SYMBOLS)}
        first = [r.display_symbol for r in WatchlistScanner(collector).scan_watchlist(SYMBOLS, "USD")]
        collector.delays = {s: 0.001 * i for i, s in enumerate(SYMBOLS)}
        second = [r.display_symbol for r in WatchlistScanner(collector).scan_watchlist(SYMBOLS, "USD")]
        assert first == second == SYMBOLS

    def test_failure_becomes_error_result(self, collector):
        collector.fail = {"S03"}
        results = WatchlistScanner(collector).scan_watchlist(SYMBOLS, "USD")

        failed = next(r for r in results if r.display_symbol == "S03")
        assert failed.swing.total == 0
        assert failed.intraday.total == 0
        assert "unavailable" in failed.error
        assert len(results) == 12
        assert results[-1] is failed

    def test_padded_symbol_on_error_row(self, collector):
        collector.fail = {"S03"}
        results = WatchlistScanner(collector).scan_watchlist(["S01", " s03 "], "USD")

        failed = results[-1]
        assert failed.error is not None
        assert failed.symbol == failed.display_symbol == "S03"

    def test_empty_watchlist(self, collector):
        progress = []
        assert WatchlistScanner(collector).scan_watchlist([], "USD", progress.append) == []
        assert progress == []


class TestScanSymbol:
    """Tests for a single symbol scan."""

    def test_scores_both_horizons(self, fake_collector, make_candles):
        daily = make_candles([100.0 + (i % 7) for i in range(79)] + [110.0])
        collector = fake_collector(
            daily={"SAP.DE": daily},
            default_intraday=make_candles([100.0] * 20, volume=[300] * 19 + [1900]),
        )
        r = WatchlistScanner(collector).scan_symbol("sap", "EUR")

        assert r.symbol == "SAP.DE"
        assert r.display_symbol == "SAP"
        assert r.price == 110.0
        assert r.change == pytest.approx((110.0 - daily[-2].close) / daily[-2].close * 100)
        assert r.swing.error is None
        assert "Vol spike 5.0x" in r.intraday.signals
        assert ("SAP.DE", "5d", "15m") in collector.calls

    def test_intraday_failure_keeps_swing(self, fake_collector, make_candles):
        collector = fake_collector(
            default_daily=make_candles([100.0 + (i % 7) for i in range(80)]),
            intraday_fail={"AVGO"},
        )
        r = WatchlistScanner(collector).scan_symbol("AVGO", "USD")
        assert r.swing.error is None
        assert r.intraday.error.startswith("Insufficient intraday data: 0")
        assert r.error is None

    def test_short_history_is_insufficient(self, fake_collector, make_candles):
        collector = fake_collector(default_daily=make_candles([100.0] * 30))
        r = WatchlistScanner(collector).scan_symbol("AVGO", "USD")
        assert r.swing.total == 0
        assert "30 daily candles" in r.swing.error


class TestRanking:
    """Tests for rank_results and persistence."""

    def test_blended_rank_key(self):
        a = result("A", 80, 0)     # 48
        b = result("B", 50, 60)    # 54
        c = result("C", 0, 100)    # 40
        assert [r.symbol for r in rank_results([a, b, c])] == ["B", "A", "C"]

    def test_ties_are_stable(self):
        a, b = result("A", 50, 50), result("B", 50, 50)
        assert [r.symbol for r in rank_results([a, b])] == ["A", "B"]

    def test_snapshot_appends_json_lines(self, tmp_path):
        path = tmp_path / "scans.jsonl"
        save_scan_snapshot([result("A", 10, 20)], path)
        save_scan_snapshot([result("B", 30, 40)], path)

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["symbol"] == "A"
        assert first["swing"]["total"] == 10
        assert "error" not in first["swing"]
