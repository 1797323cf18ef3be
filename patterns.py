"""
Pattern Detectors — swing points, reversal candles, volume-at-price

Short-window classifiers used by the factor scorers and the
questionnaire auto-fill:

    swing_lows / swing_highs   -> fractal pivots (2 bars each side, ties count)
    detect_candle_pattern      -> strongest bullish reversal in the last 5 bars
    volume_profile             -> 50-bin volume-at-price histogram with POC
    bullish_divergence         -> lower price low with higher RSI low

Every detector works on a list of Candle and returns a plain value.
None of them raise on short input.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from config import INDICATORS
from models import Candle

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Swing points
# ═══════════════════════════════════════════════════════════════════════════

def swing_lows(candles: Sequence[Candle], pivot: int = INDICATORS["swing_pivot"]) -> List[int]:
    """Indices whose low is <= the low of `pivot` bars on each side."""
    result = []
    for i in range(pivot, len(candles) - pivot):
        low = candles[i].low
        neighbours = list(candles[i - pivot:i]) + list(candles[i + 1:i + pivot + 1])
        if all(low <= c.low for c in neighbours):
            result.append(i)
    return result


def swing_highs(candles: Sequence[Candle], pivot: int = INDICATORS["swing_pivot"]) -> List[int]:
    """Indices whose high is >= the high of `pivot` bars on each side."""
    result = []
    for i in range(pivot, len(candles) - pivot):
        high = candles[i].high
        neighbours = list(candles[i - pivot:i]) + list(candles[i + 1:i + pivot + 1])
        if all(high >= c.high for c in neighbours):
            result.append(i)
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Candlestick patterns
# ═══════════════════════════════════════════════════════════════════════════

PATTERN_NAMES = {
    "none": "No recognisable pattern",
    "doji": "Doji",
    "hammer": "Hammer",
    "pinbar": "Pin Bar",
    "engulfing": "Bullish Engulfing",
    "morningstar": "Morning Star",
}


@dataclass(frozen=True)
class CandlePattern:
    name: str = "none"
    confirmed: bool = False

    @property
    def label(self) -> str:
        return PATTERN_NAMES.get(self.name, self.name)


def is_hammer(c: Candle) -> bool:
    # Long lower wick, small body at the top
    return (c.range > 0
            and c.lower_wick >= c.body * 2
            and c.upper_wick <= c.body * 0.5)


def is_pin_bar(c: Candle) -> bool:
    return (c.range > 0
            and c.lower_wick >= c.range * 0.6
            and c.body <= c.range * 0.25)


def is_doji(c: Candle) -> bool:
    return c.range > 0 and c.body / c.range < 0.1


def is_bullish_engulfing(prev: Candle, curr: Candle) -> bool:
    return (prev.is_bearish and curr.is_bullish
            and curr.open <= prev.close
            and curr.close >= prev.open)


def is_morning_star(c1: Candle, c2: Candle, c3: Candle) -> bool:
    # bearish -> small star -> bullish close above the first candle's midpoint
    return (c1.is_bearish
            and c2.body < c1.body * 0.3
            and c3.is_bullish
            and c3.close > (c1.open + c1.close) / 2)


def detect_candle_pattern(candles: Sequence[Candle]) -> CandlePattern:
    """
    Strongest bullish reversal in the last 5 bars.

    A pattern on the second-to-last bar counts as confirmed when the last
    bar closes above it. Patterns on the last bar are unconfirmed.
    """
    if len(candles) < 5:
        return CandlePattern()

    last = list(candles[-5:])
    curr, prev = last[4], last[3]

    # Pattern one bar back + follow-through candle
    if is_bullish_engulfing(last[2], last[3]) and curr.close > last[3].close:
        return CandlePattern("engulfing", True)
    if is_morning_star(last[1], last[2], last[3]) and curr.close > last[3].close:
        return CandlePattern("morningstar", True)
    if is_hammer(prev) and curr.close > prev.close:
        return CandlePattern("hammer", True)
    if is_pin_bar(prev) and curr.close > prev.close:
        return CandlePattern("pinbar", True)

    # Pattern on the latest bar, not yet confirmed
    if is_bullish_engulfing(prev, curr):
        return CandlePattern("engulfing", False)
    if is_hammer(curr):
        return CandlePattern("hammer", False)
    if is_pin_bar(curr):
        return CandlePattern("pinbar", False)
    if is_doji(curr):
        return CandlePattern("doji", False)

    return CandlePattern()


# ═══════════════════════════════════════════════════════════════════════════
# Volume profile
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class VolumeProfile:
    """Volume-at-price histogram over equal-width price bins."""
    min_price: float
    bin_size: float
    volumes: List[float]
    poc_index: int

    @property
    def num_bins(self) -> int:
        return len(self.volumes)

    @property
    def poc_price(self) -> float:
        """Centre of the Point of Control bin."""
        return self.min_price + (self.poc_index + 0.5) * self.bin_size

    @property
    def average_volume(self) -> float:
        return sum(self.volumes) / self.num_bins if self.num_bins else 0.0

    def bin_index(self, price: float) -> int:
        idx = int(np.floor((price - self.min_price) / self.bin_size))
        return min(self.num_bins - 1, max(0, idx))

    def volume_at(self, price: float) -> float:
        return self.volumes[self.bin_index(price)]

    def is_near_poc(self, price: float) -> bool:
        return abs(self.bin_index(price) - self.poc_index) <= 1


def volume_profile(candles: Sequence[Candle],
                   bins: int = INDICATORS["vol_profile_bins"]) -> Optional[VolumeProfile]:
    """
    Distribute each candle's volume evenly over the bins its high-low
    range covers. Returns None when there is no price range to split.
    """
    if not candles or bins <= 0:
        return None

    price_min = min(c.low for c in candles)
    price_max = max(c.high for c in candles)
    if price_max - price_min <= 0:
        return None

    bin_size = (price_max - price_min) / bins
    vol_at_price = np.zeros(bins)

    for c in candles:
        lo = min(bins - 1, max(0, int((c.low - price_min) // bin_size)))
        hi = min(bins - 1, max(0, int((c.high - price_min) // bin_size)))
        vol_at_price[lo:hi + 1] += c.volume / (hi - lo + 1)

    # First maximum wins on ties
    poc_idx = int(np.argmax(vol_at_price))

    return VolumeProfile(
        min_price=price_min,
        bin_size=bin_size,
        volumes=vol_at_price.tolist(),
        poc_index=poc_idx,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Divergence
# ═══════════════════════════════════════════════════════════════════════════

def bullish_divergence(candles: Sequence[Candle], rsi_values: Sequence[float],
                       lookback: int = INDICATORS["divergence_lookback"]) -> bool:
    """
    Price makes a lower low in the second half of the window while RSI
    makes a higher low. RSI values must be aligned to end on the last candle.
    """
    if len(rsi_values) < lookback or len(candles) < lookback:
        return False

    recent = list(candles[-lookback:])
    recent_rsi = list(rsi_values[-lookback:])
    half = lookback // 2

    def lowest(start: int, stop: int):
        idx = min(range(start, stop), key=lambda i: (recent[i].low, i))
        return recent[idx].low, recent_rsi[idx]

    price_low1, rsi_low1 = lowest(0, half)
    price_low2, rsi_low2 = lowest(half, lookback)

    return price_low2 < price_low1 and rsi_low2 > rsi_low1
