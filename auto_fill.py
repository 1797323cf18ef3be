"""
Questionnaire Auto-Fill — pre-answers the trade-check questions

Each function answers one question and returns an AutoFillResult:
    option_index → which answer to pre-select (0 = weakest, highest = strongest)
    confidence   → heuristic certainty, 0..1
    detail       → explanation shown next to the answer
    raw_value    → the underlying metric, for inspection

Questions covered:
    q1 support zone        q5 RSI & momentum
    q2 volume profile      q6 EMA ordering
    q3 candle signal       q8 leading index vs 50/200-MA
    q4 trend & structure   q9 Bollinger bands
q7 (chart pattern) stays manual.

The metric → option mapping drives answers the user sees pre-selected
and may override, so the branches below are load-bearing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Sequence

from config import AUTO_FILL, INDICATORS
from data_collector import DataCollector
from indicators import bollinger_bands, ema, rsi, sma
from models import AutoFillResult, Candle
from patterns import (
    bullish_divergence, detect_candle_pattern, is_bullish_engulfing,
    is_hammer, swing_highs, swing_lows, volume_profile,
)
from scanner import resolve_symbol

logger = logging.getLogger(__name__)


# ── Q1: Support zone ────────────────────────────────────────────────────────

def detect_support_zone(candles: Sequence[Candle], entry_price: float,
                        tolerance_pct: float = AUTO_FILL["support_tolerance"]) -> AutoFillResult:
    if not candles or len(candles) < 20 or not entry_price:
        return AutoFillResult(0, 0.0, "Not enough data")

    tolerance = entry_price * tolerance_pct
    lower, upper = entry_price - tolerance, entry_price + tolerance

    bounces = [i for i in swing_lows(candles) if lower <= candles[i].low <= upper]
    # Long lower wicks inside the zone = buying pressure
    long_wicks = [
        c for c in candles
        if lower <= c.low <= upper and c.lower_wick > c.body * 1.5
    ]

    bounce_count = len(bounces)
    wick_confirmation = len(long_wicks) >= 2

    if bounce_count >= 3 or (bounce_count >= 2 and wick_confirmation):
        option, confidence = 3, min(0.95, 0.7 + bounce_count * 0.08)
    elif bounce_count >= 2:
        option, confidence = 2, 0.75
    elif bounce_count == 1:
        option, confidence = 1, 0.6
    else:
        option, confidence = 0, 0.7

    if bounce_count > 0:
        detail = (f"{bounce_count} swing low(s) in {lower:.2f}-{upper:.2f}"
                  f"{' + wick signals' if wick_confirmation else ''}")
    else:
        detail = f"No swing lows within ±{tolerance_pct * 100:.0f}%"

    return AutoFillResult(option, confidence, detail, bounce_count)


# ── Q2: Volume profile at the entry level ───────────────────────────────────

def analyze_volume_profile(candles: Sequence[Candle], entry_price: float,
                           num_bins: int = INDICATORS["vol_profile_bins"]) -> AutoFillResult:
    if not candles or len(candles) < 20 or not entry_price:
        return AutoFillResult(0, 0.0, "Not enough data")

    profile = volume_profile(candles, num_bins)
    if profile is None:
        return AutoFillResult(0, 0.0, "No price range")

    avg_vol = profile.average_volume
    ratio = profile.volume_at(entry_price) / avg_vol if avg_vol > 0 else 0.0
    near_poc = profile.is_near_poc(entry_price)

    if near_poc:
        option, confidence = 3, 0.85
    elif ratio >= 1.5:
        option, confidence = 2, 0.75
    elif ratio >= 0.8:
        option, confidence = 1, 0.65
    else:
        option, confidence = 0, 0.7

    if near_poc:
        detail = f"POC at {profile.poc_price:.2f} (near entry) · vol ratio {ratio:.1f}x"
    else:
        detail = f"Volume at level {ratio:.1f}x average · POC at {profile.poc_price:.2f}"

    return AutoFillResult(option, confidence, detail, round(ratio, 2))


# ── Q3: Candle signal ───────────────────────────────────────────────────────

def score_candle_pattern(candles: Sequence[Candle]) -> AutoFillResult:
    if not candles or len(candles) < 5:
        return AutoFillResult(0, 0.0, "Not enough candles")

    pattern = detect_candle_pattern(candles)

    if pattern.confirmed and pattern.name in ("engulfing", "morningstar"):
        option, confidence = 3, 0.85
    elif pattern.confirmed or pattern.name in ("hammer", "pinbar", "engulfing"):
        option, confidence = 2, 0.8 if pattern.confirmed else 0.65
    elif pattern.name == "doji":
        option, confidence = 1, 0.6
    else:
        option, confidence = 0, 0.7

    if pattern.name != "none":
        state = "confirmed by follow-through candle" if pattern.confirmed else "not yet confirmed"
        detail = f"{pattern.label} ({state})"
    else:
        detail = "No reversal pattern in the last 5 candles"

    return AutoFillResult(option, confidence, detail, pattern.name)


# ── Q4: Trend & structure ───────────────────────────────────────────────────

def _count_steps(levels: Sequence[float]):
    higher = lower = 0
    for prev, curr in zip(levels, levels[1:]):
        if curr > prev:
            higher += 1
        else:
            lower += 1
    return higher, lower


def analyze_trend(candles: Sequence[Candle]) -> AutoFillResult:
    if not candles or len(candles) < 60:
        return AutoFillResult(1, 0.3, "Not enough data for trend analysis")

    recent = list(candles[-60:])
    highs = [recent[i].high for i in swing_highs(recent)]
    lows = [recent[i].low for i in swing_lows(recent)]

    ema20 = ema([c.close for c in recent], INDICATORS["ema_fast"])
    slope = 0.0
    if len(ema20) >= 10 and ema20[-10] != 0:
        slope = (ema20[-1] - ema20[-10]) / ema20[-10]

    higher_highs, lower_highs = _count_steps(highs)
    higher_lows, lower_lows = _count_steps(lows)

    total = max(1, higher_highs + lower_highs + higher_lows + lower_lows)
    bullish = (higher_highs + higher_lows) / total
    bearish = (lower_highs + lower_lows) / total

    if bearish > 0.7 and slope < -0.02:
        option, confidence, label = 0, 0.8, "downtrend"
    elif bullish < 0.4 and bearish < 0.4:
        option, confidence, label = 1, 0.65, "sideways"
    elif bullish > 0.5 and slope > 0:
        option, confidence, label = 2, 0.7, "slightly bullish"
    elif bullish > 0.7 and slope > 0.02:
        # unreachable: any reading here already matched the branch above
        option, confidence, label = 3, 0.85, "clearly bullish"
    elif bullish > 0.5:
        option, confidence, label = 2, 0.6, "slightly bullish"
    else:
        option, confidence, label = 1, 0.5, "unclear"

    detail = (f"Trend: {label} · HH:{higher_highs} HL:{higher_lows} "
              f"LH:{lower_highs} LL:{lower_lows} · EMA slope: {slope * 100:.1f}%")
    return AutoFillResult(option, confidence, detail, round(bullish * 100))


# ── Q5: RSI & momentum ──────────────────────────────────────────────────────

def analyze_rsi(candles: Sequence[Candle]) -> AutoFillResult:
    if not candles or len(candles) < 30:
        return AutoFillResult(1, 0.3, "Not enough data for RSI")

    values = rsi([c.close for c in candles], INDICATORS["rsi_period"])
    if not values:
        return AutoFillResult(1, 0.3, "RSI could not be calculated")

    current = values[-1]
    divergence = bullish_divergence(candles, values)

    if current < 40 and divergence:
        option, confidence = 3, 0.9
    elif 30 <= current <= 50:
        option, confidence = 2, 0.8
    elif 50 < current <= 70:
        option, confidence = 1, 0.85
    else:
        option, confidence = 0, 0.85

    detail = f"RSI({INDICATORS['rsi_period']}) = {current:.1f}{' + bullish divergence' if divergence else ''}"
    return AutoFillResult(option, confidence, detail, round(current, 1))


# ── Q6: EMA ordering ────────────────────────────────────────────────────────

def analyze_emas(candles: Sequence[Candle]) -> AutoFillResult:
    if not candles or len(candles) < 220:
        return AutoFillResult(1, 0.3, "Not enough data for EMA(200)")

    closes = [c.close for c in candles]
    fast = ema(closes, INDICATORS["ema_fast"])
    mid = ema(closes, INDICATORS["ema_mid"])
    slow = ema(closes, INDICATORS["ema_slow"])
    if not fast or not mid or not slow:
        return AutoFillResult(1, 0.3, "EMA calculation failed")

    e20, e50, e200 = fast[-1], mid[-1], slow[-1]

    if e20 > e50 > e200:
        option, confidence, label = 3, 0.9, "EMA 20 > 50 > 200 (bullish)"
    elif e200 > e50 > e20:
        option, confidence, label = 0, 0.9, "EMA 200 > 50 > 20 (bearish)"
    else:
        bullish_pairs = sum([e20 > e50, e50 > e200, e20 > e200])
        if bullish_pairs >= 2:
            option, confidence, label = 2, 0.75, "Partly bullish"
        else:
            option, confidence, label = 1, 0.7, "Tangled / unclear"

    detail = f"{label} · EMA20: {e20:.2f} | EMA50: {e50:.2f} | EMA200: {e200:.2f}"
    return AutoFillResult(option, confidence, detail, {"ema20": e20, "ema50": e50, "ema200": e200})


# ── Q8: Leading index ───────────────────────────────────────────────────────

def check_leading_index(index_candles: Sequence[Candle]) -> AutoFillResult:
    if not index_candles or len(index_candles) < 220:
        return AutoFillResult(1, 0.3, "Not enough index data")

    closes = [c.close for c in index_candles]
    ma50 = sma(closes, 50)[-1]
    ma200 = sma(closes, 200)[-1]
    price = closes[-1]

    if price > ma50 and price > ma200:
        option, confidence, label = 3, 0.9, "Above 50-MA & 200-MA"
    elif ma200 < price <= ma50:
        option, confidence, label = 2, 0.8, "Above 200-MA, below 50-MA"
    elif price > ma200 or price > ma50:
        option, confidence, label = 1, 0.75, "Between 50-MA and 200-MA"
    else:
        option, confidence, label = 0, 0.85, "Below 50-MA & 200-MA"

    detail = f"Index: {label} · price: {price:.0f} | 50-MA: {ma50:.0f} | 200-MA: {ma200:.0f}"
    return AutoFillResult(option, confidence, detail, {"price": price, "ma50": ma50, "ma200": ma200})


# ── Q9: Bollinger bands ─────────────────────────────────────────────────────

def analyze_bollinger(candles: Sequence[Candle]) -> AutoFillResult:
    if not candles or len(candles) < 30:
        return AutoFillResult(2, 0.3, "Not enough data for BB")

    closes = [c.close for c in candles]
    bands = bollinger_bands(closes, INDICATORS["bb_period"], INDICATORS["bb_std"])
    if len(bands) < 6:
        return AutoFillResult(2, 0.3, "BB calculation failed")

    latest, prev5 = bands[-1], bands[-6]
    price = closes[-1]

    # Squeeze: bandwidth below 60% of the width five bars ago
    squeeze = latest.bandwidth < prev5.bandwidth * 0.6
    breaking_up = squeeze and price > latest.upper
    rel_pos = latest.relative_position(price)

    last, prev = candles[-1], candles[-2]
    reversal_at_lower = rel_pos < 0.2 and (is_hammer(last) or is_bullish_engulfing(prev, last))

    if breaking_up:
        option, confidence, label = 4, 0.85, "Squeeze + upside breakout"
    elif reversal_at_lower:
        option, confidence, label = 3, 0.8, "At lower band + reversal signal"
    elif price < latest.lower:
        option, confidence, label = 0, 0.8, "Below lower band (oversold)"
    elif rel_pos < 0.25:
        option, confidence, label = 1, 0.7, "Near lower band"
    else:
        option, confidence, label = 2, 0.65, "Between the bands"

    detail = (f"{label} · price: {price:.2f} | BB: {latest.lower:.2f} - "
              f"{latest.middle:.2f} - {latest.upper:.2f}{' | SQUEEZE' if squeeze else ''}")
    raw = {
        "price": price, "upper": latest.upper, "middle": latest.middle,
        "lower": latest.lower, "relative_pos": round(rel_pos * 100),
    }
    return AutoFillResult(option, confidence, detail, raw)


# ═══════════════════════════════════════════════════════════════════════════
# Orchestration
# ═══════════════════════════════════════════════════════════════════════════

def auto_fill(candles: Sequence[Candle], index_candles: Sequence[Candle],
              entry_price: float) -> Dict[str, AutoFillResult]:
    """All auto-filled answers keyed by question id (q7 is manual)."""
    return {
        "q1": detect_support_zone(candles, entry_price),
        "q2": analyze_volume_profile(candles, entry_price),
        "q3": score_candle_pattern(candles),
        "q4": analyze_trend(candles),
        "q5": analyze_rsi(candles),
        "q6": analyze_emas(candles),
        "q8": check_leading_index(index_candles),
        "q9": analyze_bollinger(candles),
    }


@dataclass
class AutoFillReport:
    symbol: str
    scores: Dict[str, AutoFillResult]
    candle_count: int
    last_price: Optional[float]
    last_date: Optional[datetime]
    currency: Optional[str]
    index_name: str
    index_price: Optional[float]
    stale: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


class AutoScorer:
    """
    Loads symbol and leading-index data, then auto-fills the questionnaire.

    Simple interface:
        compute(symbol, currency, entry_price) -> AutoFillReport
    """

    def __init__(self, collector: Optional[DataCollector] = None):
        self.collector = collector or DataCollector()

    def compute(self, symbol: str, currency: str, entry_price: float) -> AutoFillReport:
        if not symbol or not entry_price:
            raise ValueError("Symbol and entry price are required")

        provider_symbol = resolve_symbol(symbol, currency)
        series = self.collector.fetch_ohlcv(provider_symbol)
        index_series, index_name = self.collector.fetch_index_data(currency)

        candles = series.candles
        if len(candles) < AUTO_FILL["min_candles"]:
            raise ValueError(
                f"Only {len(candles)} candles for {provider_symbol}, "
                f"at least {AUTO_FILL['min_candles']} required"
            )

        logger.info(f"Auto-filling questionnaire for {provider_symbol} at {entry_price:.2f}")
        last = candles[-1]
        return AutoFillReport(
            symbol=provider_symbol,
            scores=auto_fill(candles, index_series.candles, entry_price),
            candle_count=len(candles),
            last_price=last.close,
            last_date=last.timestamp,
            currency=series.currency,
            index_name=index_name,
            index_price=index_series.last.close if index_series.last else None,
            stale=series.stale or index_series.stale,
        )
