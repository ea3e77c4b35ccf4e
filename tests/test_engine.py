"""
BacktestEngine Tests: per-instrument fan-out, portfolio fan-in

Small indicator periods (RSI 3, SMA 2/4) keep the synthetic series short.
"""

import numpy as np
import pandas as pd
import pytest

from backtest.engine import BacktestEngine, BacktestResult
from backtest.errors import EmptySeries, InvalidParameter
from backtest.portfolio import combine
from scripts.config import Config


@pytest.fixture
def engine():
    return BacktestEngine(
        rsi_period=3, short_period=2, long_period=4, risk_free_rate=0.03, max_workers=2
    )


@pytest.fixture
def universe(random_prices):
    prices = {
        "AAA": random_prices(seed=1),
        "BBB": random_prices(seed=2),
        "CCC": random_prices(seed=3),
    }
    benchmark = random_prices(seed=99, vol=0.01)
    return prices, benchmark


# ═══════════════════════════════════════════════════════════════
# HAPPY PATH
# ═══════════════════════════════════════════════════════════════

class TestRun:
    """Test a full backtest run."""

    def test_every_instrument_processed(self, engine, universe):
        """All tickers succeed, in input order."""
        prices, benchmark = universe
        result = engine.run(prices, benchmark)

        assert isinstance(result, BacktestResult)
        assert list(result.instruments) == ["AAA", "BBB", "CCC"]
        assert result.failures == {}

    def test_default_equal_weights(self, engine, universe):
        """Weights default to 1/n."""
        prices, benchmark = universe
        result = engine.run(prices, benchmark)

        assert result.weights == pytest.approx({"AAA": 1 / 3, "BBB": 1 / 3, "CCC": 1 / 3})

    def test_instrument_series_aligned_to_prices(self, engine, universe):
        """Every derived series shares the price dates."""
        prices, benchmark = universe
        result = engine.run(prices, benchmark)

        inst = result.instruments["AAA"]
        index = prices["AAA"].index
        for series in [inst.signals, inst.daily_returns, inst.strategy_returns,
                       inst.base_value, inst.strategy_value]:
            assert series.index.equals(index)
        assert set(inst.signals.unique()) <= {-1, 0, 1}

    def test_strategy_returns_are_signal_times_return(self, engine, universe):
        """strategy_return[t] == signal[t] * daily_return[t]"""
        prices, benchmark = universe
        inst = engine.run(prices, benchmark).instruments["BBB"]

        expected = inst.signals * inst.daily_returns
        pd.testing.assert_series_equal(
            inst.strategy_returns, expected, check_names=False
        )

    def test_portfolios_combine_instrument_returns(self, engine, universe):
        """Base uses raw returns, strategy uses adjusted returns, same weights."""
        prices, benchmark = universe
        result = engine.run(prices, benchmark)
        tickers = list(result.instruments)
        weights = [result.weights[t] for t in tickers]

        base = combine([result.instruments[t].daily_returns for t in tickers], weights)
        strategy = combine([result.instruments[t].strategy_returns for t in tickers], weights)

        assert result.base_portfolio.returns.tolist() == pytest.approx(base.tolist())
        assert result.strategy_portfolio.returns.tolist() == pytest.approx(strategy.tolist())
        # first date has no return in any instrument
        assert len(result.base_portfolio.returns) == len(prices["AAA"]) - 1

    def test_portfolio_metrics_populated(self, engine, universe):
        """Both portfolio variants carry finite metrics."""
        prices, benchmark = universe
        result = engine.run(prices, benchmark)

        for portfolio in [result.base_portfolio, result.strategy_portfolio]:
            values = portfolio.metrics.to_dict()
            assert all(np.isfinite(v) for v in values.values())
            assert values["max_drawdown"] >= 0

    def test_explicit_weights(self, engine, universe):
        """Caller weights are used as given."""
        prices, benchmark = universe
        weights = {"AAA": 0.5, "BBB": 0.3, "CCC": 0.2}
        result = engine.run(prices, benchmark, weights=weights)

        a = result.instruments["AAA"].daily_returns
        b = result.instruments["BBB"].daily_returns
        c = result.instruments["CCC"].daily_returns
        expected = (0.5 * a + 0.3 * b + 0.2 * c).dropna()

        assert result.weights == pytest.approx(weights)
        assert result.base_portfolio.returns.tolist() == pytest.approx(expected.tolist())

    def test_date_range_slicing(self, engine, universe):
        """start/end restrict every series."""
        prices, benchmark = universe
        start = prices["AAA"].index[5]
        end = prices["AAA"].index[30]

        result = engine.run(prices, benchmark, start_date=start, end_date=end)

        inst = result.instruments["AAA"]
        assert inst.signals.index[0] == start
        assert inst.signals.index[-1] == end
        assert result.benchmark_returns.index[0] == start

    def test_inputs_not_mutated(self, engine, universe):
        """Price frames are untouched by the run."""
        prices, benchmark = universe
        originals = {t: df.copy() for t, df in prices.items()}

        engine.run(prices, benchmark)

        for ticker, df in prices.items():
            pd.testing.assert_frame_equal(df, originals[ticker])

    def test_summary_table(self, engine, universe):
        """summary() lists instruments and both portfolios."""
        prices, benchmark = universe
        summary = engine.run(prices, benchmark).summary()

        assert "Portfolio (base)" in summary.index
        assert "Portfolio (strategy)" in summary.index
        assert "AAA (strategy)" in summary.index
        assert "sharpe_ratio" in summary.columns
        assert len(summary) == 3 * 2 + 2


# ═══════════════════════════════════════════════════════════════
# FAILURE ISOLATION
# ═══════════════════════════════════════════════════════════════

class TestFailureIsolation:
    """One instrument failing does not block the others."""

    def test_short_series_isolated(self, engine, universe, make_prices):
        """A series shorter than the long MA fails alone."""
        prices, benchmark = universe
        prices = dict(prices, TINY=make_prices([100.0, 101.0, 102.0]))

        result = engine.run(prices, benchmark)

        assert "TINY" in result.failures
        assert "TINY" not in result.instruments
        assert list(result.instruments) == ["AAA", "BBB", "CCC"]
        assert sum(result.weights.values()) == pytest.approx(1.0)

    def test_duplicate_dates_isolated(self, engine, universe):
        """Malformed price frame is recorded as a failure."""
        prices, benchmark = universe
        bad = prices["AAA"].copy()
        bad = pd.concat([bad, bad.iloc[[-1]]])
        prices = dict(prices, BAD=bad)

        result = engine.run(prices, benchmark)

        assert "duplicate" in result.failures["BAD"]
        assert "BAD" not in result.instruments

    def test_explicit_weights_renormalized(self, engine, universe, make_prices):
        """Surviving weights are rescaled to sum to 1."""
        prices, benchmark = universe
        prices = {"AAA": prices["AAA"], "BBB": prices["BBB"],
                  "TINY": make_prices([100.0, 101.0])}
        weights = {"AAA": 0.3, "BBB": 0.2, "TINY": 0.5}

        result = engine.run(prices, benchmark, weights=weights)

        assert result.weights == pytest.approx({"AAA": 0.6, "BBB": 0.4})

    def test_metrics_failure_keeps_returns_in_portfolio(self, engine, universe, make_prices):
        """A flat-priced instrument has no Sharpe but still counts in the portfolio."""
        prices, benchmark = universe
        cash = make_prices([50.0] * len(prices["AAA"]))
        result = engine.run({"AAA": prices["AAA"], "CASH": cash}, benchmark)

        assert list(result.instruments) == ["AAA", "CASH"]
        assert result.weights == pytest.approx({"AAA": 0.5, "CASH": 0.5})
        assert "zero volatility" in result.failures["CASH"]

        inst = result.instruments["CASH"]
        assert inst.base_metrics is None
        assert inst.strategy_metrics is None
        assert (inst.daily_returns.dropna() == 0.0).all()

        expected = (0.5 * result.instruments["AAA"].daily_returns).dropna()
        assert result.base_portfolio.returns.tolist() == pytest.approx(expected.tolist())

        summary = result.summary()
        assert "CASH (base)" not in summary.index
        assert "AAA (base)" in summary.index

    def test_all_failed_raises(self, engine, universe, make_prices):
        """No survivors -> EmptySeries."""
        _, benchmark = universe
        prices = {"X": make_prices([1.0, 2.0]), "Y": make_prices([3.0])}

        with pytest.raises(EmptySeries):
            engine.run(prices, benchmark)


# ═══════════════════════════════════════════════════════════════
# PARAMETER VALIDATION
# ═══════════════════════════════════════════════════════════════

class TestEngineParameters:
    """Test eager validation of engine inputs."""

    def test_no_instruments_raises(self, engine, universe):
        """Empty price dict -> EmptySeries."""
        _, benchmark = universe
        with pytest.raises(EmptySeries):
            engine.run({}, benchmark)

    def test_weights_missing_ticker_raise(self, engine, universe):
        """Weights must name every ticker."""
        prices, benchmark = universe
        with pytest.raises(InvalidParameter):
            engine.run(prices, benchmark, weights={"AAA": 0.5, "BBB": 0.5})

    def test_weights_not_summing_to_one_raise(self, engine, universe):
        """Weights must sum to 1."""
        prices, benchmark = universe
        with pytest.raises(InvalidParameter):
            engine.run(prices, benchmark, weights={"AAA": 0.5, "BBB": 0.5, "CCC": 0.5})

    def test_invalid_ma_periods_raise(self):
        """short >= long is rejected at construction."""
        with pytest.raises(InvalidParameter):
            BacktestEngine(short_period=10, long_period=5)

    def test_invalid_worker_count_raises(self):
        """At least one worker."""
        with pytest.raises(InvalidParameter):
            BacktestEngine(max_workers=0)

    def test_defaults_from_config(self):
        """Default periods come from Config."""
        engine = BacktestEngine()
        assert engine.indicator_config == Config.indicator_config()
        assert engine.risk_free_rate == Config.RISK_FREE_RATE
