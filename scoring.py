"""
Composite Scoring Engine — Swing Score and Intraday Score

Single source of truth for both run sites: the scheduled scanner job
and the on-demand trade check import these two functions.

    compute_swing_score(daily_candles)                 -> CompositeScore
    compute_intraday_score(intraday_candles, daily)    -> CompositeScore

Totals are the weighted sum of the factor scores, rounded half-up once
at the end. Too little data returns CompositeScore.insufficient(...)
instead of raising, so one thin symbol never breaks a batch.
"""

import logging
import math
from typing import List, Optional, Sequence

from config import MIN_SWING_CANDLES, MIN_INTRADAY_CANDLES
from factors import (
    collect,
    score_atr_breakout, score_bollinger, score_ema_order, score_gap,
    score_relative_strength, score_rsi, score_support, score_trend,
    score_volume, score_volume_spike, score_vwap_distance,
)
from models import Candle, CompositeScore, FactorScore

logger = logging.getLogger(__name__)


def weighted_total(factors: List[FactorScore]) -> int:
    total = sum(f.score * f.weight for f in factors)
    # Half-up, not Python's banker's rounding
    return int(min(100, max(0, math.floor(total + 0.5))))


def compute_swing_score(candles: Optional[Sequence[Candle]]) -> CompositeScore:
    """Multi-day setup quality from daily candles (needs >= 60)."""
    candles = list(candles or [])
    if len(candles) < MIN_SWING_CANDLES:
        return CompositeScore.insufficient(
            f"Insufficient data: {len(candles)} daily candles, {MIN_SWING_CANDLES} required"
        )

    closes = [c.close for c in candles]
    factors, signals = collect([
        score_rsi(closes),
        score_support(candles),
        score_ema_order(closes),
        score_bollinger(closes),
        score_volume(candles),
        score_trend(closes),
    ])
    return CompositeScore(total=weighted_total(factors), factors=factors, signals=signals)


def compute_intraday_score(intraday: Optional[Sequence[Candle]],
                           daily: Optional[Sequence[Candle]] = None) -> CompositeScore:
    """Same-session setup quality from 15-minute candles (needs >= 10)."""
    intraday = list(intraday or [])
    daily = list(daily or [])
    if len(intraday) < MIN_INTRADAY_CANDLES:
        return CompositeScore.insufficient(
            f"Insufficient intraday data: {len(intraday)} candles, {MIN_INTRADAY_CANDLES} required"
        )

    factors, signals = collect([
        score_volume_spike(intraday),
        score_gap(daily),
        score_relative_strength(daily),
        score_atr_breakout(daily),
        score_vwap_distance(intraday),
    ])
    return CompositeScore(total=weighted_total(factors), factors=factors, signals=signals)
