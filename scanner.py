"""
Watchlist Scanner — ranks symbols by Swing and Intraday Score

Flow per symbol:
  1. Map the ticker to its provider symbol (EUR → Xetra ".DE")
  2. Fetch 1y daily and 5d 15-minute candles
  3. Score both horizons with the shared composite engine

Symbols are processed in batches of SCANNER["batch_size"] concurrent
fetches; each batch completes before the next starts, which caps the
number of outstanding requests. A failing symbol becomes a zero-score
result carrying the error message instead of aborting the batch.
The final list is sorted by the blended rank key (0.6 swing + 0.4 intraday).

Simple interface:
    scan_watchlist(symbols, currency) -> List[ScanResult]
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from config import (
    DAILY_INTERVAL, DAILY_RANGE, DEFAULT_EXCHANGE_SUFFIX,
    INTRADAY_INTERVAL, INTRADAY_RANGE, SCAN_HISTORY_FILE, SCANNER,
)
from data_collector import DataCollector, MarketDataError
from indicators import pct_change
from models import ScanResult
from scoring import compute_intraday_score, compute_swing_score

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def resolve_symbol(symbol: str, currency: str = "USD") -> str:
    """Provider symbol for a plain ticker ("sap", "EUR" → "SAP.DE")."""
    resolved = symbol.strip().upper()
    suffix = DEFAULT_EXCHANGE_SUFFIX.get(currency)
    if suffix and "." not in resolved and not resolved.startswith("^"):
        resolved = f"{resolved}{suffix}"
    return resolved


class WatchlistScanner:
    """
    Scores a list of symbols.

    Simple interface:
        scan_symbol(symbol, currency) -> ScanResult
        scan_watchlist(symbols, currency, on_progress) -> List[ScanResult]
    """

    def __init__(self, collector: Optional[DataCollector] = None,
                 batch_size: int = SCANNER["batch_size"]):
        self.collector = collector or DataCollector()
        self.batch_size = max(1, batch_size)

    # ── Public Interface ────────────────────────────────────────────────

    def scan_symbol(self, symbol: str, currency: str = "USD") -> ScanResult:
        provider_symbol = resolve_symbol(symbol, currency)

        daily_series = self.collector.fetch_ohlcv(provider_symbol, DAILY_RANGE, DAILY_INTERVAL)
        try:
            intraday_series = self.collector.fetch_ohlcv(
                provider_symbol, INTRADAY_RANGE, INTRADAY_INTERVAL
            )
            intraday = intraday_series.candles
        except MarketDataError as e:
            logger.warning(f"  Intraday data unavailable for {provider_symbol}: {e}")
            intraday = []

        daily = daily_series.candles
        swing = compute_swing_score(daily)
        intraday_score = compute_intraday_score(intraday, daily)

        last = daily[-1] if daily else None
        prev = daily[-2] if len(daily) >= 2 else None
        price = (last.close if last else None) or daily_series.regular_market_price or 0.0
        change = pct_change(price, prev.close) if prev else 0.0

        return ScanResult(
            symbol=provider_symbol,
            display_symbol=symbol.strip().upper(),
            name=daily_series.display_symbol or symbol.strip().upper(),
            currency=daily_series.currency or currency,
            price=price,
            change=change,
            volume=last.volume if last else 0,
            swing=swing,
            intraday=intraday_score,
            stale=daily_series.stale,
            timestamp=datetime.now(),
        )

    def scan_watchlist(self, symbols: Sequence[str], currency: str = "USD",
                       on_progress: Optional[ProgressCallback] = None) -> List[ScanResult]:
        results: List[ScanResult] = []
        total = len(symbols)
        if not total:
            return results

        logger.info(f"Scanning {total} symbols in batches of {self.batch_size}")
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, total, self.batch_size):
                batch = list(symbols[start:start + self.batch_size])
                # map() keeps input order and blocks until the whole batch is done
                results.extend(pool.map(lambda s: self._safe_scan(s, currency), batch))
                if on_progress:
                    on_progress(min(start + self.batch_size, total), total)

        return rank_results(results)

    # ── Internal ────────────────────────────────────────────────────────

    def _safe_scan(self, symbol: str, currency: str) -> ScanResult:
        try:
            result = self.scan_symbol(symbol, currency)
            logger.info(
                f"  {result.display_symbol}: swing={result.swing.total} "
                f"intraday={result.intraday.total}"
            )
            return result
        except Exception as e:
            logger.error(f"  Failed {symbol}: {e}")
            return ScanResult.failed(symbol, currency, str(e))


def rank_results(results: Sequence[ScanResult]) -> List[ScanResult]:
    """Stable sort, highest blended rank key first."""
    return sorted(results, key=lambda r: r.rank_key, reverse=True)


def save_scan_snapshot(results: Sequence[ScanResult], path: Path = SCAN_HISTORY_FILE):
    """Append one JSON line per result for later review."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            for r in results:
                f.write(json.dumps(r.to_dict()) + "\n")
    except OSError as e:
        logger.warning(f"Failed to persist scan snapshot: {e}")
