"""
Series Statistics — rolling-window indicator math

Pure functions of an input sequence, shared by the composite scorers
and the questionnaire auto-fill:

    sma, ema, rsi, bollinger_bands   -> derived series (lists)
    average_range, vwap, volume_ratio -> scalar summaries of candles

No function raises on short input. Callers check for an empty result
before indexing.

Implementation uses numpy arrays throughout; the Wilder loop follows
the same seed-then-smooth scheme as the classic RSI definition.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from models import Candle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Band:
    """One Bollinger window"""
    upper: float
    middle: float
    lower: float

    @property
    def bandwidth(self) -> float:
        return self.upper - self.lower

    def relative_position(self, price: float) -> float:
        """0 = lower band, 1 = upper band; 0.5 when the bands collapse."""
        if self.bandwidth > 0:
            return (price - self.lower) / self.bandwidth
        return 0.5


def _windows(values: Sequence[float], period: int) -> Optional[np.ndarray]:
    if period <= 0 or len(values) < period:
        return None
    return sliding_window_view(np.asarray(values, dtype=float), period)


def sma(values: Sequence[float], period: int) -> List[float]:
    windows = _windows(values, period)
    if windows is None:
        return []
    return windows.mean(axis=1).tolist()


def ema(values: Sequence[float], period: int) -> List[float]:
    """EMA seeded with the SMA of the first `period` values."""
    if period <= 0 or len(values) < period:
        return []
    arr = np.asarray(values, dtype=float)
    k = 2.0 / (period + 1)
    out = np.empty(len(arr) - period + 1)
    out[0] = arr[:period].mean()
    for i, value in enumerate(arr[period:], start=1):
        out[i] = value * k + out[i - 1] * (1 - k)
    return out.tolist()


def rsi(closes: Sequence[float], period: int = 14) -> List[float]:
    """
    Wilder-smoothed RSI series.

    One value per close from index `period` onward, so the last value
    lines up with the last close. Empty when fewer than period+1 closes.
    """
    if period <= 0 or len(closes) < period + 1:
        return []

    delta = np.diff(np.asarray(closes, dtype=float))
    gains = np.where(delta > 0, delta, 0.0)
    losses = np.where(delta < 0, -delta, 0.0)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    values = [_rsi_value(avg_gain, avg_loss)]

    for i in range(period, len(delta)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        values.append(_rsi_value(avg_gain, avg_loss))

    return values


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100.0 - (100.0 / (1.0 + rs)))


def bollinger_bands(closes: Sequence[float], period: int = 20,
                    std_dev: float = 2) -> List[Band]:
    """Population standard deviation per trailing window."""
    windows = _windows(closes, period)
    if windows is None:
        return []
    middle = windows.mean(axis=1)
    sigma = windows.std(axis=1)
    return [
        Band(upper=float(m + std_dev * s), middle=float(m), lower=float(m - std_dev * s))
        for m, s in zip(middle, sigma)
    ]


# ── Candle summaries ────────────────────────────────────────────────────────

def average_range(candles: Sequence[Candle], bars: int) -> float:
    """Mean high-low range of the last `bars` candles (ATR proxy)."""
    recent = candles[-bars:] if bars > 0 else []
    if not recent:
        return 0.0
    return float(np.mean([c.range for c in recent]))


def vwap(candles: Sequence[Candle]) -> float:
    """Volume-weighted typical price; last close when no volume traded."""
    if not candles:
        return 0.0
    volumes = np.array([c.volume for c in candles], dtype=float)
    total = volumes.sum()
    if total <= 0:
        return candles[-1].close
    typical = np.array([c.typical_price for c in candles], dtype=float)
    return float((typical * volumes).sum() / total)


def volume_ratio(volumes: Sequence[float], lookback: Optional[int] = None) -> float:
    """Last volume over the mean of the last `lookback` volumes (all if None)."""
    if not volumes:
        return 1.0
    window = volumes[-lookback:] if lookback else volumes
    avg = float(np.mean(window))
    return volumes[-1] / avg if avg > 0 else 1.0


def pct_change(new: float, old: float) -> float:
    if not old:
        return 0.0
    return (new - old) / old * 100
