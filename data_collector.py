"""
Market Data Collector — OHLCV candles from Yahoo Finance

Turns yfinance history frames into Candle lists for the scoring engine.

Behaviour:
───────────
1. Rows without open/close (holidays, halted bars) are skipped
2. Prices are rounded to cents, missing volume becomes 0
3. Results are cached per symbol/range/interval for CACHE_TTL_HOURS
4. When a fetch fails, an expired cache entry is served with stale=True
   (offline fallback); with nothing cached, MarketDataError is raised
5. Leading index lookup: S&P 500 for USD, DAX for EUR

Deep module following Ousterhout's principles:
  Simple interface → fetch_ohlcv(symbol, range, interval) returns a CandleSeries
  Complexity hidden → caching, frame parsing, stale fallback
"""

import logging
import math
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd
import yfinance as yf

from config import (
    CACHE_TTL_HOURS, DAILY_INTERVAL, DAILY_RANGE, FETCH_TIMEOUT,
    LEADING_INDEX, PRICE_DECIMALS,
)
from models import Candle, CandleSeries

logger = logging.getLogger(__name__)


class MarketDataError(Exception):
    """Market data for a symbol could not be obtained."""


def frame_to_candles(hist: pd.DataFrame) -> List[Candle]:
    """Convert a yfinance history frame into Candle objects."""
    candles: List[Candle] = []
    if hist is None or hist.empty:
        return candles

    for ts, row in hist.iterrows():
        open_, close = row.get("Open"), row.get("Close")
        if pd.isna(open_) or pd.isna(close):
            continue
        high = row.get("High")
        low = row.get("Low")
        volume = row.get("Volume")
        high = close if pd.isna(high) else high
        low = close if pd.isna(low) else low

        candles.append(Candle(
            timestamp=ts.to_pydatetime() if isinstance(ts, pd.Timestamp) else ts,
            open=round(float(open_), PRICE_DECIMALS),
            high=round(float(high), PRICE_DECIMALS),
            low=round(float(low), PRICE_DECIMALS),
            close=round(float(close), PRICE_DECIMALS),
            volume=0 if pd.isna(volume) else int(volume),
        ))
    return candles


class DataCollector:
    """
    Fetches and caches OHLCV series.

    Simple interface:
        fetch_ohlcv(symbol, range_, interval) -> CandleSeries
        fetch_index_data(currency) -> (CandleSeries, index_name)

    The collector is shared by the scanner's worker threads, so the
    cache is guarded by a lock.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=CACHE_TTL_HOURS),
                 now: Callable[[], datetime] = datetime.now):
        self._cache: Dict[str, Tuple[CandleSeries, datetime]] = {}
        self._cache_ttl = ttl
        self._now = now
        self._lock = threading.Lock()

    # ── Public Interface ────────────────────────────────────────────────

    def fetch_ohlcv(self, symbol: str, range_: str = DAILY_RANGE,
                    interval: str = DAILY_INTERVAL) -> CandleSeries:
        cache_key = f"{symbol}:{range_}:{interval}"

        with self._lock:
            cached = self._cache.get(cache_key)
        if cached:
            series, ts = cached
            if self._now() - ts < self._cache_ttl:
                return series

        try:
            series = self._download(symbol, range_, interval)
        except Exception as e:
            if cached:
                series, ts = cached
                logger.warning(
                    f"Using expired cache for {symbol} from {ts:%Y-%m-%d %H:%M}: {e}"
                )
                return replace(series, stale=True)
            raise MarketDataError(f"Market data for {symbol} unavailable: {e}") from e

        with self._lock:
            self._cache[cache_key] = (series, self._now())
        return series

    def fetch_index_data(self, currency: str) -> Tuple[CandleSeries, str]:
        """Leading index for the trade currency (S&P 500 for USD, DAX otherwise)."""
        index = LEADING_INDEX["USD"] if currency == "USD" else LEADING_INDEX["EUR"]
        series = self.fetch_ohlcv(index["symbol"], DAILY_RANGE, DAILY_INTERVAL)
        return series, index["name"]

    def clear_cache(self):
        with self._lock:
            self._cache.clear()

    # ── Internal ────────────────────────────────────────────────────────

    def _download(self, symbol: str, range_: str, interval: str) -> CandleSeries:
        logger.info(f"Fetching {symbol} ({range_}/{interval})")

        stock = yf.Ticker(symbol)
        hist = stock.history(period=range_, interval=interval, timeout=FETCH_TIMEOUT)
        candles = frame_to_candles(hist)
        if not candles:
            raise ValueError(f"No data available for {symbol}")

        meta = self._metadata(stock)
        return CandleSeries(
            symbol=symbol,
            candles=candles,
            currency=meta.get("currency"),
            display_symbol=meta.get("symbol") or symbol,
            exchange=meta.get("exchangeName"),
            regular_market_price=self._safe_float(meta.get("regularMarketPrice")),
            stale=False,
            fetched_at=self._now(),
        )

    @staticmethod
    def _metadata(stock) -> Dict:
        try:
            return stock.history_metadata or {}
        except Exception as e:
            logger.debug(f"No history metadata: {e}")
            return {}

    @staticmethod
    def _safe_float(value) -> Optional[float]:
        try:
            result = float(value)
        except (TypeError, ValueError):
            return None
        return None if math.isnan(result) else result
