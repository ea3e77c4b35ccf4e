"""
Backtesting Engine for Trading Strategies

BacktestEngine lives in backtest.engine; it is not re-exported here because
the indicator and rule packages import backtest.errors.
"""

from .errors import (
    BacktestError,
    InvalidParameter,
    MisalignedSeries,
    InsufficientOverlap,
    EmptySeries,
    DegenerateVariance,
)
from .metrics import PerformanceMetrics, RiskMetrics
from .portfolio import combine, cumulative_value, equal_weights
from .returns import daily_return, strategy_return

__all__ = [
    # Errors
    'BacktestError',
    'InvalidParameter',
    'MisalignedSeries',
    'InsufficientOverlap',
    'EmptySeries',
    'DegenerateVariance',

    # Returns / portfolio
    'daily_return',
    'strategy_return',
    'combine',
    'cumulative_value',
    'equal_weights',

    # Metrics
    'PerformanceMetrics',
    'RiskMetrics'
]
