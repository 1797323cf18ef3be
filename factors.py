"""
Factor Scorers — one 0-100 sub-score per decision factor

Each scorer maps an indicator reading onto a fixed threshold ladder and
returns (FactorScore, signal). The signal is a short display string, set
only when the reading is notable; downstream alerts quote it verbatim,
so the ladders below must stay as they are.

Swing factors work on daily candles, intraday factors on 15-minute
candles plus the daily series for gap/strength/range context.
Insufficient input yields the documented neutral score, never an error.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from config import INDICATORS, SWING_WEIGHTS, INTRADAY_WEIGHTS
from indicators import (
    average_range, bollinger_bands, ema, pct_change, rsi, volume_ratio, vwap,
)
from models import Candle, FactorScore
from patterns import swing_lows

logger = logging.getLogger(__name__)

FactorOutcome = Tuple[FactorScore, Optional[str]]


# ═══════════════════════════════════════════════════════════════════════════
# Swing factors (daily chart)
# ═══════════════════════════════════════════════════════════════════════════

def score_rsi(closes: Sequence[float]) -> FactorOutcome:
    values = rsi(closes, INDICATORS["rsi_period"])
    value = values[-1] if values else 50.0
    signal = None

    if 30 <= value <= 45:
        score = 100
        signal = f"RSI {value:.0f} (buy zone)"
    elif 45 < value <= 55:
        score = 60
    elif value < 30:
        score = 40
        signal = f"RSI {value:.0f} (oversold)"
    elif value > 70:
        score = 10
        signal = f"RSI {value:.0f} (overbought)"
    else:
        score = 20

    factor = FactorScore(f"RSI({INDICATORS['rsi_period']})", SWING_WEIGHTS["rsi"], score, f"{value:.1f}")
    return factor, signal


def count_support_bounces(candles: Sequence[Candle], price: float,
                          tolerance_pct: float) -> int:
    """Swing lows inside price ± tolerance."""
    tolerance = price * tolerance_pct
    lower, upper = price - tolerance, price + tolerance
    return sum(1 for i in swing_lows(candles) if lower <= candles[i].low <= upper)


def score_support(candles: Sequence[Candle]) -> FactorOutcome:
    if not candles:
        return FactorScore("Support", SWING_WEIGHTS["support"], 0, "0 bounces"), None

    bounces = count_support_bounces(candles, candles[-1].close, INDICATORS["support_tolerance"])
    signal = None
    if bounces >= 3:
        score = 100
        signal = f"{bounces} swing lows as support"
    elif bounces == 2:
        score = 70
    elif bounces == 1:
        score = 40
    else:
        score = 0

    return FactorScore("Support", SWING_WEIGHTS["support"], score, f"{bounces} bounces"), signal


def score_ema_order(closes: Sequence[float]) -> FactorOutcome:
    score = 50  # neutral until EMA200 is available
    signal = None

    if len(closes) >= INDICATORS["ema_slow"]:
        fast = ema(closes, INDICATORS["ema_fast"])
        mid = ema(closes, INDICATORS["ema_mid"])
        slow = ema(closes, INDICATORS["ema_slow"])
        if fast and mid and slow:
            e20, e50, e200 = fast[-1], mid[-1], slow[-1]
            if e20 > e50 > e200:
                score = 100
                signal = "EMA 20>50>200"
            elif e20 > e200 or e50 > e200:
                score = 60
            elif e200 > e50 > e20:
                score = 0
            else:
                score = 30

    if score >= 80:
        label = "bullish"
    elif score >= 40:
        label = "neutral"
    else:
        label = "bearish"
    return FactorScore("EMA", SWING_WEIGHTS["ema"], score, label), signal


def score_bollinger(closes: Sequence[float]) -> FactorOutcome:
    score = 30
    signal = None

    bands = bollinger_bands(closes, INDICATORS["bb_period"], INDICATORS["bb_std"])
    if bands:
        band = bands[-1]
        price = closes[-1]
        rel_pos = band.relative_position(price)
        if price < band.lower:
            score = 100
            signal = "Below Bollinger band"
        elif rel_pos < 0.25:
            score = 70
            signal = "Near lower BB"
        elif rel_pos < 0.5:
            score = 40
        else:
            score = 15

    label = "oversold" if score >= 70 else "neutral"
    return FactorScore("BB", SWING_WEIGHTS["bollinger"], score, label), signal


def score_volume(candles: Sequence[Candle]) -> FactorOutcome:
    ratio = volume_ratio([c.volume for c in candles], INDICATORS["volume_avg"])
    signal = None

    if ratio >= 2:
        score = 100
        signal = f"Vol {ratio:.1f}x avg"
    elif ratio >= 1.5:
        score = 70
    elif ratio >= 1:
        score = 40
    else:
        score = 20

    return FactorScore("Volume", SWING_WEIGHTS["volume"], score, f"{ratio:.1f}x"), signal


def score_trend(closes: Sequence[float]) -> FactorOutcome:
    score = 50
    bars = INDICATORS["trend_slope_bars"]
    ema50 = ema(closes, INDICATORS["ema_mid"])

    if len(ema50) >= bars and ema50[-bars] != 0:
        slope = (ema50[-1] - ema50[-bars]) / ema50[-bars]
        if slope > 0.03:
            score = 100
        elif slope > 0.01:
            score = 70
        elif slope > -0.01:
            score = 40
        else:
            score = 10

    if score >= 70:
        label = "up"
    elif score >= 30:
        label = "sideways"
    else:
        label = "down"
    return FactorScore("Trend", SWING_WEIGHTS["trend"], score, label), None


# ═══════════════════════════════════════════════════════════════════════════
# Intraday factors (15-minute chart + daily context)
# ═══════════════════════════════════════════════════════════════════════════

def score_volume_spike(intraday: Sequence[Candle]) -> FactorOutcome:
    """Last bar against the average of every intraday bar supplied."""
    ratio = volume_ratio([c.volume for c in intraday])
    signal = None

    if ratio >= 5:
        score = 100
        signal = f"Vol spike {ratio:.1f}x"
    elif ratio >= 3:
        score = 80
        signal = f"Vol {ratio:.1f}x avg"
    elif ratio >= 2:
        score = 50
    else:
        score = 20

    return FactorScore("Vol-Spike", INTRADAY_WEIGHTS["volume_spike"], score, f"{ratio:.1f}x"), signal


def score_gap(daily: Sequence[Candle]) -> FactorOutcome:
    score = 0
    signal = None

    if len(daily) >= 2 and daily[-2].close > 0:
        gap_pct = abs(pct_change(daily[-1].open, daily[-2].close))
        if gap_pct >= 3:
            score = 100
            signal = f"Gap {gap_pct:.1f}%"
        elif gap_pct >= 2:
            score = 70
            signal = f"Gap {gap_pct:.1f}%"
        elif gap_pct >= 1:
            score = 40

    if score == 0:
        label = "none"
    else:
        label = "strong" if score >= 70 else "weak"
    return FactorScore("Gap", INTRADAY_WEIGHTS["gap"], score, label), signal


def score_relative_strength(daily: Sequence[Candle]) -> FactorOutcome:
    score = 30
    signal = None

    if len(daily) >= 2 and daily[-2].close > 0:
        change = pct_change(daily[-1].close, daily[-2].close)
        if change > 2:
            score = 100
            signal = f"+{change:.1f}% today"
        elif change > 1:
            score = 70
        elif change > 0:
            score = 40
        elif change > -1:
            score = 20
        else:
            score = 0

    label = "strong" if score >= 70 else "normal"
    return FactorScore("Rel. Strength", INTRADAY_WEIGHTS["rel_strength"], score, label), signal


def score_atr_breakout(daily: Sequence[Candle]) -> FactorOutcome:
    score = 30
    signal = None
    bars = INDICATORS["atr_bars"]

    if len(daily) >= bars:
        atr = average_range(daily, bars)
        ratio = daily[-1].range / atr if atr > 0 else 1.0
        if ratio >= 2:
            score = 100
            signal = f"ATR breakout {ratio:.1f}x"
        elif ratio >= 1.5:
            score = 70
        elif ratio >= 1:
            score = 30
        else:
            score = 10

    label = "expansion" if score >= 70 else "normal"
    return FactorScore("ATR", INTRADAY_WEIGHTS["atr"], score, label), signal


def score_vwap_distance(intraday: Sequence[Candle]) -> FactorOutcome:
    signal = None
    last_close = intraday[-1].close if intraday else 0.0
    level = vwap(intraday)
    distance = abs(pct_change(last_close, level)) if level else 0.0

    if distance <= 0.5:
        score = 100
        signal = "Near VWAP"
    elif distance <= 1:
        score = 60
    else:
        score = 20

    return FactorScore("VWAP", INTRADAY_WEIGHTS["vwap"], score, f"{distance:.1f}% dist."), signal


def collect(outcomes: List[FactorOutcome]) -> Tuple[List[FactorScore], List[str]]:
    """Split scorer outcomes into factors and the notable signals, order kept."""
    factors = [factor for factor, _ in outcomes]
    signals = [signal for _, signal in outcomes if signal]
    return factors, signals
