"""Pytest configuration and fixtures: synthetic candles and fake collaborators."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Union

import pytest

from data_collector import MarketDataError
from models import Candle, CandleSeries
from notifier import Notification

START = datetime(2024, 1, 2, 9, 0)


def build_candles(closes: Sequence[float], volume: Union[int, Sequence[int]] = 1000,
                  wick: float = 0.5, step: timedelta = timedelta(days=1)) -> List[Candle]:
    """Candles opening at the previous close with symmetric wicks."""
    volumes = [volume] * len(closes) if isinstance(volume, int) else list(volume)
    candles = []
    prev = closes[0] if closes else 0.0
    for i, (close, vol) in enumerate(zip(closes, volumes)):
        open_ = prev
        candles.append(Candle(
            timestamp=START + step * i,
            open=open_,
            high=max(open_, close) + wick,
            low=min(open_, close) - wick,
            close=close,
            volume=vol,
        ))
        prev = close
    return candles


def candle(open_: float, high: float, low: float, close: float,
           volume: int = 1000, index: int = 0) -> Candle:
    return Candle(START + timedelta(days=index), open_, high, low, close, volume)


class FakeCollector:
    """In-memory stand-in for DataCollector that records concurrency."""

    def __init__(self, daily: Optional[Dict[str, List[Candle]]] = None,
                 intraday: Optional[Dict[str, List[Candle]]] = None,
                 default_daily: Optional[List[Candle]] = None,
                 default_intraday: Optional[List[Candle]] = None,
                 index: Optional[List[Candle]] = None,
                 fail: Sequence[str] = (),
                 intraday_fail: Sequence[str] = (),
                 delays: Optional[Dict[str, float]] = None):
        self.daily = daily or {}
        self.intraday = intraday or {}
        self.default_daily = default_daily or []
        self.default_intraday = default_intraday or []
        self.index = index or []
        self.fail = set(fail)
        self.intraday_fail = set(intraday_fail)
        self.delays = delays or {}
        self.calls: List[tuple] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def fetch_ohlcv(self, symbol: str, range_: str = "1y", interval: str = "1d") -> CandleSeries:
        with self._lock:
            self.calls.append((symbol, range_, interval))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delays.get(symbol, 0))
            if symbol in self.fail:
                raise MarketDataError(f"Market data for {symbol} unavailable: boom")
            if interval == "1d":
                candles = self.daily.get(symbol, self.default_daily)
            else:
                if symbol in self.intraday_fail:
                    raise MarketDataError(f"No intraday data for {symbol}")
                candles = self.intraday.get(symbol, self.default_intraday)
            return CandleSeries(symbol=symbol, candles=list(candles),
                                currency="USD", display_symbol=symbol)
        finally:
            with self._lock:
                self.active -= 1

    def fetch_index_data(self, currency: str):
        name = "S&P 500" if currency == "USD" else "DAX"
        symbol = "^GSPC" if currency == "USD" else "^GDAXI"
        return CandleSeries(symbol=symbol, candles=list(self.index)), name


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingChannel:
    def __init__(self, error: Optional[Exception] = None):
        self.sent: List[Notification] = []
        self.error = error

    def send(self, notification: Notification) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(notification)


@pytest.fixture
def make_candles():
    return build_candles


@pytest.fixture
def make_candle():
    return candle


@pytest.fixture
def rising_daily():
    """250 steadily rising daily candles."""
    return build_candles([100.0 + i * 0.5 for i in range(250)])


@pytest.fixture
def falling_daily():
    return build_candles([250.0 - i * 0.5 for i in range(250)])


@pytest.fixture
def fake_collector():
    return FakeCollector


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel():
    return RecordingChannel()
