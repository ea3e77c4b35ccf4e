"""
Return Calculator and Portfolio Aggregator Tests
"""

import numpy as np
import pandas as pd
import pytest

from backtest.errors import EmptySeries, InvalidParameter, MisalignedSeries
from backtest.portfolio import combine, cumulative_value, equal_weights
from backtest.returns import daily_return, strategy_return
from rules.base_rule import Signal


@pytest.fixture
def scenario_prices(make_prices):
    """prices = [100, 110, 99, 108.9]"""
    return make_prices([100.0, 110.0, 99.0, 108.9])


# ═══════════════════════════════════════════════════════════════
# DAILY / STRATEGY RETURNS
# ═══════════════════════════════════════════════════════════════

class TestDailyReturn:
    """Test close-to-close returns."""

    def test_scenario_returns(self, scenario_prices):
        """[100, 110, 99, 108.9] -> [-, 0.10, -0.10, 0.10]"""
        returns = daily_return(scenario_prices)

        assert np.isnan(returns.iloc[0])
        assert returns.iloc[1:].tolist() == pytest.approx([0.10, -0.10, 0.10])
        assert returns.index.equals(scenario_prices.index)

    def test_accepts_close_series(self, scenario_prices):
        """A bare close series gives the same result as the frame."""
        from_frame = daily_return(scenario_prices)
        from_series = daily_return(scenario_prices["close"])

        pd.testing.assert_series_equal(from_frame, from_series)

    def test_empty_raises(self):
        """No prices -> EmptySeries."""
        with pytest.raises(EmptySeries):
            daily_return(pd.Series([], dtype=float, name="close"))


class TestStrategyReturn:
    """Test signal application laws."""

    def test_all_long_is_identity(self, scenario_prices):
        """signal == LONG everywhere -> strategy return == daily return exactly."""
        returns = daily_return(scenario_prices)
        signals = pd.Series(int(Signal.LONG), index=returns.index)

        pd.testing.assert_series_equal(strategy_return(returns, signals), returns)

    def test_all_short_flips_sign(self, scenario_prices):
        """signal == SHORT everywhere -> strategy return == -daily return."""
        returns = daily_return(scenario_prices)
        signals = pd.Series(int(Signal.SHORT), index=returns.index)

        pd.testing.assert_series_equal(strategy_return(returns, signals), -returns)

    def test_flat_zeroes(self, scenario_prices):
        """FLAT zeroes the return; the undefined first date stays undefined."""
        returns = daily_return(scenario_prices)
        signals = pd.Series(int(Signal.FLAT), index=returns.index)

        result = strategy_return(returns, signals)

        assert np.isnan(result.iloc[0])
        assert (result.iloc[1:] == 0.0).all()

    def test_mixed_signals(self, scenario_prices):
        """Each date is scaled by its own signal."""
        returns = daily_return(scenario_prices)
        signals = pd.Series([0, 1, -1, 0], index=returns.index)

        result = strategy_return(returns, signals)

        assert result.iloc[1:].tolist() == pytest.approx([0.10, 0.10, 0.0])

    def test_misaligned_index_raises(self, scenario_prices):
        """Signals on different dates are rejected."""
        returns = daily_return(scenario_prices)
        signals = pd.Series(1, index=returns.index[:-1])

        with pytest.raises(MisalignedSeries):
            strategy_return(returns, signals)


# ═══════════════════════════════════════════════════════════════
# PORTFOLIO
# ═══════════════════════════════════════════════════════════════

class TestCombine:
    """Test weighted combination."""

    def test_two_instrument_scenario(self):
        """[0.01, 0.02] and [0.03, -0.01] at 50/50 -> [0.02, 0.005]"""
        index = pd.bdate_range("2024-01-01", periods=2)
        a = pd.Series([0.01, 0.02], index=index, name="A")
        b = pd.Series([0.03, -0.01], index=index, name="B")

        result = combine([a, b], [0.5, 0.5])

        assert result.tolist() == pytest.approx([0.02, 0.005])
        assert result.index.equals(index)

    def test_inner_join_on_dates(self):
        """Dates missing from any series are dropped."""
        dates = pd.bdate_range("2024-01-01", periods=4)
        a = pd.Series([0.01, 0.02, 0.03], index=dates[:3])
        b = pd.Series([0.04, 0.05, 0.06], index=dates[1:])

        result = combine([a, b], [0.5, 0.5])

        assert result.index.equals(dates[1:3])
        assert result.tolist() == pytest.approx([0.035, 0.045])

    def test_undefined_leading_returns_dropped(self):
        """NaN first-day returns do not enter the combination."""
        index = pd.bdate_range("2024-01-01", periods=3)
        a = pd.Series([np.nan, 0.01, 0.02], index=index)
        b = pd.Series([np.nan, 0.03, -0.01], index=index)

        result = combine([a, b], [0.5, 0.5])

        assert len(result) == 2
        assert result.notna().all()

    def test_unequal_weights(self):
        """Weights scale each instrument."""
        index = pd.bdate_range("2024-01-01", periods=1)
        a = pd.Series([0.10], index=index)
        b = pd.Series([0.20], index=index)

        assert combine([a, b], [0.25, 0.75]).iloc[0] == pytest.approx(0.175)

    def test_no_common_dates_raises(self):
        """Disjoint series -> MisalignedSeries."""
        dates = pd.bdate_range("2024-01-01", periods=4)
        a = pd.Series([0.01, 0.02], index=dates[:2])
        b = pd.Series([0.03, 0.04], index=dates[2:])

        with pytest.raises(MisalignedSeries):
            combine([a, b], [0.5, 0.5])

    def test_weight_count_mismatch_raises(self):
        """One weight per series."""
        a = pd.Series([0.01])
        with pytest.raises(InvalidParameter):
            combine([a, a], [1.0])

    def test_weights_not_summing_to_one_raise(self):
        """Weights must sum to 1."""
        a = pd.Series([0.01])
        with pytest.raises(InvalidParameter):
            combine([a, a], [0.5, 0.6])

    def test_empty_list_raises(self):
        """Nothing to combine -> EmptySeries."""
        with pytest.raises(EmptySeries):
            combine([], [])

    def test_inputs_not_mutated(self):
        """Source series are left untouched."""
        a = pd.Series([np.nan, 0.01, 0.02])
        original = a.copy()

        combine([a], [1.0])

        pd.testing.assert_series_equal(a, original)


class TestEqualWeights:
    """Test static equal weighting."""

    def test_equal_split(self):
        """n instruments -> 1/n each."""
        assert equal_weights(4) == [0.25] * 4

    def test_zero_instruments_raises(self):
        """n must be at least 1."""
        with pytest.raises(InvalidParameter):
            equal_weights(0)


class TestCumulativeValue:
    """Test growth-of-one-unit curve."""

    def test_all_zero_returns_constant_one(self):
        """Zero returns -> 1.0 at every date."""
        returns = pd.Series([0.0] * 5)
        assert (cumulative_value(returns) == 1.0).all()

    def test_scenario_curve(self, scenario_prices):
        """[100, 110, 99, 108.9] -> [1.0, 1.10, 0.99, 1.089] (price / first price)."""
        values = cumulative_value(daily_return(scenario_prices))

        assert values.iloc[0] == 1.0
        assert values.tolist() == pytest.approx([1.0, 1.10, 0.99, 1.089])

    def test_all_long_strategy_matches_base(self, scenario_prices):
        """Identity law carries through to the cumulative curve."""
        returns = daily_return(scenario_prices)
        signals = pd.Series(1, index=returns.index)

        pd.testing.assert_series_equal(
            cumulative_value(strategy_return(returns, signals)),
            cumulative_value(returns)
        )
