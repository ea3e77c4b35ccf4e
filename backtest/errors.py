"""
Backtest error kinds

All errors subclass ValueError and carry the name of the offending
parameter or series.
"""

from typing import Optional


class BacktestError(ValueError):
    """Base class for all engine errors"""

    def __init__(self, message: str, name: Optional[str] = None):
        self.name = name
        if name is not None:
            message = f"[{name}] {message}"
        super().__init__(message)


class InvalidParameter(BacktestError):
    """Non-positive or out-of-range period, threshold or weight"""

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(message, parameter)
        self.parameter = parameter


class MisalignedSeries(BacktestError):
    """Series that must share dates do not"""

    def __init__(self, message: str, series: Optional[str] = None):
        super().__init__(message, series)
        self.series = series


class InsufficientOverlap(MisalignedSeries):
    """Fewer than two common observations for covariance/beta"""


class EmptySeries(BacktestError):
    """Zero-length input where a statistic needs values"""

    def __init__(self, message: str, series: Optional[str] = None):
        super().__init__(message, series)
        self.series = series


class DegenerateVariance(BacktestError):
    """Zero-variance denominator in Sharpe or beta"""

    def __init__(self, message: str, series: Optional[str] = None):
        super().__init__(message, series)
        self.series = series
