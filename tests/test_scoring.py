"""Tests for the factor scorers and the composite Swing/Intraday scores."""

from __future__ import annotations

import pytest

import factors
from config import INTRADAY_WEIGHTS, SWING_WEIGHTS
from factors import (
    score_atr_breakout, score_bollinger, score_ema_order, score_gap,
    score_relative_strength, score_rsi, score_support, score_trend, score_volume,
    score_volume_spike, score_vwap_distance,
)
from indicators import Band
from models import FactorScore
from scoring import compute_intraday_score, compute_swing_score, weighted_total


def support_candles(make_candle, dips):
    """Dips touch 100, the rest sit at 105+; the last close of 101 puts 100 in range."""
    candles = []
    for i in range(30):
        if i in dips:
            candles.append(make_candle(102, 104, 100, 103, index=i))
        else:
            candles.append(make_candle(106, 108, 105, 107, index=i))
    candles.append(make_candle(101, 102, 100.5, 101, index=30))
    return candles


def with_prev_close(make_candle, open_, close, prev_close=100.0):
    return [make_candle(prev_close, prev_close + 1, prev_close - 1, prev_close, index=0),
            make_candle(open_, max(open_, close) + 0.5, min(open_, close) - 0.5, close, index=1)]


class TestWeights:
    """Weight vectors are fixed and normalised."""

    def test_swing_weights_sum_to_one(self):
        assert sum(SWING_WEIGHTS.values()) == pytest.approx(1.0)

    def test_intraday_weights_sum_to_one(self):
        assert sum(INTRADAY_WEIGHTS.values()) == pytest.approx(1.0)


class TestWeightedTotal:
    """Tests for weighted_total rounding and clamping."""

    def test_rounds_half_up(self):
        factors = [FactorScore("a", 0.5, 51, ""), FactorScore("b", 0.5, 50, "")]
        assert weighted_total(factors) == 51

    def test_clamped(self):
        assert weighted_total([FactorScore("a", 1.0, 150, "")]) == 100
        assert weighted_total([]) == 0


class TestSwingFactors:
    """Threshold ladders of the daily-chart scorers."""

    def test_rsi_default_without_data(self):
        factor, signal = score_rsi([100.0] * 5)
        assert factor.score == 60
        assert factor.value == "50.0"
        assert signal is None

    def test_rsi_overbought(self):
        factor, signal = score_rsi([100.0 + i for i in range(30)])
        assert factor.score == 10
        assert signal == "RSI 100 (overbought)"

    def test_ema_neutral_without_200_bars(self):
        factor, signal = score_ema_order([100.0 + i for i in range(199)])
        assert factor.score == 50
        assert signal is None

    def test_ema_bullish_order(self, rising_daily):
        factor, signal = score_ema_order([c.close for c in rising_daily])
        assert factor.score == 100
        assert factor.value == "bullish"
        assert signal == "EMA 20>50>200"

    def test_ema_bearish_order(self, falling_daily):
        factor, _ = score_ema_order([c.close for c in falling_daily])
        assert factor.score == 0

    def test_bollinger_default(self):
        factor, _ = score_bollinger([100.0] * 10)
        assert factor.score == 30

    def test_bollinger_flat_is_mid_band(self):
        factor, _ = score_bollinger([100.0] * 30)
        assert factor.score == 15

    def test_bollinger_below_lower_band(self):
        closes = [100.0 + (i % 2) for i in range(39)] + [90.0]
        factor, signal = score_bollinger(closes)
        assert factor.score == 100
        assert signal == "Below Bollinger band"

    def test_volume_ratio_ladder(self, make_candles):
        candles = make_candles([100.0] * 20, volume=[100] * 19 + [475])
        factor, signal = score_volume(candles)
        # 475 / mean(100 * 19 + 475) = 4.0
        assert factor.score == 100
        assert signal == "Vol 4.0x avg"

    def test_support_counts_swing_lows(self, make_candle):
        factor, signal = score_support(support_candles(make_candle, (5, 15, 25)))
        assert factor.score == 100
        assert factor.value == "3 bounces"
        assert signal == "3 swing lows as support"

    @pytest.mark.parametrize("dips,expected", [
        ((5, 15), 70),
        ((15,), 40),
        ((), 0),
    ])
    def test_support_ladder(self, make_candle, dips, expected):
        factor, signal = score_support(support_candles(make_candle, dips))
        assert factor.score == expected
        assert factor.value == f"{len(dips)} bounces"
        assert signal is None

    def test_support_empty(self):
        factor, signal = score_support([])
        assert factor.score == 0
        assert signal is None


class TestIntradayFactors:
    """Threshold ladders of the intraday scorers."""

    def test_volume_spike_exactly_five(self, make_candles):
        intraday = make_candles([100.0] * 20, volume=[300] * 19 + [1900])
        factor, signal = score_volume_spike(intraday)
        assert factor.score == 100
        assert signal == "Vol spike 5.0x"

    def test_gap(self, make_candle):
        daily = [make_candle(99, 101, 98, 100, index=0), make_candle(103.5, 104, 103, 103.8, index=1)]
        factor, signal = score_gap(daily)
        assert factor.score == 100
        assert signal == "Gap 3.5%"

    def test_gap_default(self):
        factor, signal = score_gap([])
        assert factor.score == 0
        assert signal is None

    def test_relative_strength(self, make_candle):
        daily = [make_candle(99, 101, 98, 100, index=0), make_candle(100, 103, 100, 102.5, index=1)]
        factor, signal = score_relative_strength(daily)
        assert factor.score == 100
        assert signal == "+2.5% today"

    def test_relative_strength_default(self):
        assert score_relative_strength([])[0].score == 30

    def test_atr_breakout(self, make_candle):
        daily = [make_candle(100, 100.5, 99.5, 100, index=i) for i in range(14)]
        daily.append(make_candle(100, 103, 100, 102.5, index=14))
        factor, signal = score_atr_breakout(daily)
        # range 3 over mean range 17/15
        assert factor.score == 100
        assert signal.startswith("ATR breakout")

    def test_atr_default(self, make_candle):
        assert score_atr_breakout([make_candle(1, 2, 0.5, 1.5)])[0].score == 30

    def test_near_vwap(self, make_candles):
        factor, signal = score_vwap_distance(make_candles([100.0] * 12))
        assert factor.score == 100
        assert signal == "Near VWAP"


class TestSwingLadders:
    """Every rung of the daily-chart ladders, edges included."""

    @pytest.mark.parametrize("value,expected,signal", [
        (25.0, 40, "RSI 25 (oversold)"),
        (29.9, 40, "RSI 30 (oversold)"),
        (30.0, 100, "RSI 30 (buy zone)"),
        (38.0, 100, "RSI 38 (buy zone)"),
        (45.0, 100, "RSI 45 (buy zone)"),
        (45.5, 60, None),
        (55.0, 60, None),
        (55.5, 20, None),
        (70.0, 20, None),
        (75.0, 10, "RSI 75 (overbought)"),
    ])
    def test_rsi_ladder(self, monkeypatch, value, expected, signal):
        monkeypatch.setattr(factors, "rsi", lambda closes, period: [value])
        factor, got = score_rsi([100.0] * 30)
        assert factor.score == expected
        assert factor.value == f"{value:.1f}"
        assert got == signal

    def test_rsi_neutral_band_from_prices(self):
        # alternating +1/-1 settles RSI near 50
        factor, signal = score_rsi([100.0 + (i % 2) for i in range(40)])
        assert 45 < float(factor.value) < 55
        assert factor.score == 60
        assert signal is None

    @pytest.mark.parametrize("e20,e50,e200,expected,label", [
        (3.0, 2.0, 1.0, 100, "bullish"),
        (3.0, 1.0, 2.0, 60, "neutral"),
        (1.0, 3.0, 2.0, 60, "neutral"),
        (2.0, 1.0, 3.0, 30, "bearish"),
        (1.0, 2.0, 3.0, 0, "bearish"),
    ])
    def test_ema_ladder(self, monkeypatch, e20, e50, e200, expected, label):
        levels = {20: [e20], 50: [e50], 200: [e200]}
        monkeypatch.setattr(factors, "ema", lambda values, period: levels[period])
        factor, _ = score_ema_order([100.0] * 200)
        assert factor.score == expected
        assert factor.value == label

    @pytest.mark.parametrize("price,expected,signal", [
        (89.0, 100, "Below Bollinger band"),
        (90.0, 70, "Near lower BB"),
        (94.9, 70, "Near lower BB"),
        (95.0, 40, None),
        (99.9, 40, None),
        (100.0, 15, None),
        (115.0, 15, None),
    ])
    def test_bollinger_ladder(self, monkeypatch, price, expected, signal):
        monkeypatch.setattr(factors, "bollinger_bands",
                            lambda closes, period, std: [Band(110.0, 100.0, 90.0)])
        factor, got = score_bollinger([100.0] * 29 + [price])
        assert factor.score == expected
        assert factor.value == ("oversold" if expected >= 70 else "neutral")
        assert got == signal

    @pytest.mark.parametrize("volumes,expected,signal", [
        # mean of 19 x 9 and 19 is 9.5, ratio exactly 2
        ([9] * 19 + [19], 100, "Vol 2.0x avg"),
        ([9] * 19 + [18], 70, None),
        # mean of 19 x 37 and 57 is 38, ratio exactly 1.5
        ([37] * 19 + [57], 70, None),
        ([37] * 19 + [56], 40, None),
        ([100] * 20, 40, None),
        ([100] * 19 + [50], 20, None),
    ])
    def test_volume_ladder(self, make_candles, volumes, expected, signal):
        factor, got = score_volume(make_candles([100.0] * 20, volume=volumes))
        assert factor.score == expected
        assert got == signal

    @pytest.mark.parametrize("last,expected,label", [
        (104.0, 100, "up"),
        (103.0, 70, "up"),
        (102.0, 70, "up"),
        (101.0, 40, "sideways"),
        (100.0, 40, "sideways"),
        (99.0, 10, "down"),
    ])
    def test_trend_ladder(self, monkeypatch, last, expected, label):
        monkeypatch.setattr(factors, "ema", lambda values, period: [100.0] * 9 + [last])
        factor, signal = score_trend([100.0] * 60)
        assert factor.score == expected
        assert factor.value == label
        assert signal is None

    def test_trend_needs_ten_ema_values(self):
        factor, _ = score_trend([100.0 + i for i in range(58)])
        assert factor.score == 50
        assert factor.value == "sideways"

    def test_trend_from_prices(self):
        rising = [100.0 * 1.01 ** i for i in range(150)]
        falling = [100.0 * 0.99 ** i for i in range(150)]
        assert score_trend(rising)[0].score == 100
        assert score_trend(falling)[0].score == 10
        assert score_trend([100.0] * 150)[0].score == 40


class TestIntradayLadders:
    """Every rung of the intraday ladders, edges included."""

    @pytest.mark.parametrize("volumes,expected,signal", [
        ([300] * 19 + [1900], 100, "Vol spike 5.0x"),
        # mean of 19 x 17 and 57 is 19, ratio exactly 3
        ([17] * 19 + [57], 80, "Vol 3.0x avg"),
        ([17] * 19 + [56], 50, None),
        ([9] * 19 + [19], 50, None),
        ([9] * 19 + [18], 20, None),
    ])
    def test_volume_spike_ladder(self, make_candles, volumes, expected, signal):
        factor, got = score_volume_spike(make_candles([100.0] * 20, volume=volumes))
        assert factor.score == expected
        assert got == signal

    @pytest.mark.parametrize("open_,expected,signal,label", [
        (103.0, 100, "Gap 3.0%", "strong"),
        (102.0, 70, "Gap 2.0%", "strong"),
        (97.5, 70, "Gap 2.5%", "strong"),
        (101.9, 40, None, "weak"),
        (101.0, 40, None, "weak"),
        (100.9, 0, None, "none"),
    ])
    def test_gap_ladder(self, make_candle, open_, expected, signal, label):
        factor, got = score_gap(with_prev_close(make_candle, open_, open_))
        assert factor.score == expected
        assert factor.value == label
        assert got == signal

    @pytest.mark.parametrize("close,expected", [
        (102.0, 70),
        (101.5, 70),
        (101.0, 40),
        (100.5, 40),
        (100.0, 20),
        (99.5, 20),
        (99.0, 0),
    ])
    def test_relative_strength_ladder(self, make_candle, close, expected):
        factor, signal = score_relative_strength(with_prev_close(make_candle, 100.0, close))
        assert factor.score == expected
        assert signal is None

    @pytest.mark.parametrize("base_range,last_range,expected", [
        # 14 x 27 plus 42 averages 28, ratio exactly 1.5
        (27, 42, 70),
        (27, 41, 30),
        (27, 27, 30),
        (27, 20, 10),
    ])
    def test_atr_ladder(self, make_candle, base_range, last_range, expected):
        daily = [make_candle(100, 100 + base_range, 100, 101, index=i) for i in range(14)]
        daily.append(make_candle(100, 100 + last_range, 100, 101, index=14))
        factor, signal = score_atr_breakout(daily)
        assert factor.score == expected
        assert signal is None

    def test_atr_flat_range_is_neutral(self, make_candle):
        daily = [make_candle(100, 100, 100, 100, index=i) for i in range(15)]
        assert score_atr_breakout(daily)[0].score == 30

    @pytest.mark.parametrize("close,expected,signal", [
        (100.5, 100, "Near VWAP"),
        (99.5, 100, "Near VWAP"),
        (100.6, 60, None),
        (101.0, 60, None),
        (99.0, 60, None),
        (101.5, 20, None),
        (98.0, 20, None),
    ])
    def test_vwap_ladder(self, monkeypatch, make_candles, close, expected, signal):
        monkeypatch.setattr(factors, "vwap", lambda candles: 100.0)
        factor, got = score_vwap_distance(make_candles([100.0] * 11 + [close]))
        assert factor.score == expected
        assert got == signal


class TestSwingScore:
    """Tests for compute_swing_score."""

    def test_insufficient_data(self, make_candles):
        result = compute_swing_score(make_candles([100.0] * 59))
        assert result.total == 0
        assert result.factors == []
        assert result.signals == []
        assert result.error == "Insufficient data: 59 daily candles, 60 required"

    def test_none_input(self):
        assert compute_swing_score(None).error.startswith("Insufficient data: 0")

    def test_sixty_candles_scored(self, make_candles):
        result = compute_swing_score(make_candles([100.0 + (i % 5) for i in range(60)]))
        assert result.error is None
        assert [f.name for f in result.factors] == ["RSI(14)", "Support", "EMA", "BB", "Volume", "Trend"]
        assert isinstance(result.total, int)
        assert 0 <= result.total <= 100

    def test_rising_series(self, rising_daily):
        result = compute_swing_score(rising_daily)
        ema_factor = next(f for f in result.factors if f.name == "EMA")
        assert ema_factor.score == 100
        assert "EMA 20>50>200" in result.signals

    def test_deterministic(self, rising_daily):
        assert compute_swing_score(rising_daily) == compute_swing_score(rising_daily)

    def test_total_matches_factors(self, rising_daily):
        result = compute_swing_score(rising_daily)
        assert result.total == weighted_total(result.factors)


class TestIntradayScore:
    """Tests for compute_intraday_score."""

    def test_insufficient_data(self, make_candles):
        result = compute_intraday_score(make_candles([100.0] * 9))
        assert result.total == 0
        assert result.error == "Insufficient intraday data: 9 candles, 10 required"

    def test_defaults_without_daily(self, make_candles):
        result = compute_intraday_score(make_candles([100.0] * 12))
        scores = {f.name: f.score for f in result.factors}
        assert scores["Gap"] == 0
        assert scores["Rel. Strength"] == 30
        assert scores["ATR"] == 30

    def test_volume_spike_drives_total(self, make_candles):
        intraday = make_candles([100.0] * 20, volume=[300] * 19 + [1900])
        result = compute_intraday_score(intraday)
        assert [f.score for f in result.factors] == [100, 0, 30, 30, 100]
        # 30 + 0 + 6 + 4.5 + 10 = 50.5, rounded half-up
        assert result.total == 51
        assert result.signals[0] == "Vol spike 5.0x"
