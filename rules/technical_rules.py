"""
Technical Rules: RSI extremes and moving average trend
"""

import pandas as pd
from typing import Optional, List
import logging
from .base_rule import BaseRule, RuleMetadata, Signal
from backtest.errors import InvalidParameter

logger = logging.getLogger(__name__)


class MovingAverageCrossRule(BaseRule):
    """Moving Average Trend Strategy"""

    def __init__(
        self,
        metadata: RuleMetadata,
        fast_period: int = 50,
        slow_period: int = 200
    ):
        if fast_period <= 0 or slow_period <= 0:
            raise InvalidParameter(
                f"MA periods must be positive, got {fast_period}/{slow_period}",
                "fast_period" if fast_period <= 0 else "slow_period"
            )
        if fast_period >= slow_period:
            raise InvalidParameter(
                f"fast period ({fast_period}) must be shorter than slow period ({slow_period})",
                "fast_period"
            )
        params = {
            'fast_period': fast_period,
            'slow_period': slow_period
        }
        super().__init__(metadata, params)
        self.fast_period = fast_period
        self.slow_period = slow_period

    def evaluate(self, row: pd.Series) -> Optional[Signal]:
        """Fast MA above slow = long, below = short, equal or missing = no opinion"""
        fast_ma = row.get(f'sma_{self.fast_period}')
        slow_ma = row.get(f'sma_{self.slow_period}')

        if pd.isna(fast_ma) or pd.isna(slow_ma):
            return None

        if fast_ma > slow_ma:
            return Signal.LONG
        elif fast_ma < slow_ma:
            return Signal.SHORT
        return None

    def get_required_features(self) -> List[str]:
        return [f'sma_{self.fast_period}', f'sma_{self.slow_period}']


class RSIRule(BaseRule):
    """RSI Overbought/Oversold Strategy"""

    def __init__(
        self,
        metadata: RuleMetadata,
        period: int = 14,
        oversold: float = 30.0,
        overbought: float = 70.0
    ):
        if period <= 0:
            raise InvalidParameter(f"RSI period must be positive, got {period}", "period")
        if not 0.0 <= oversold < overbought <= 100.0:
            raise InvalidParameter(
                f"thresholds must satisfy 0 <= oversold < overbought <= 100, "
                f"got {oversold}/{overbought}",
                "oversold"
            )
        params = {
            'period': period,
            'oversold': oversold,
            'overbought': overbought
        }
        super().__init__(metadata, params)
        self.period = period
        self.oversold = oversold
        self.overbought = overbought

    def evaluate(self, row: pd.Series) -> Optional[Signal]:
        """RSI < oversold = long (buy the dip), RSI > overbought = short"""
        rsi = row.get('rsi')

        if pd.isna(rsi):
            return None

        if rsi < self.oversold:
            return Signal.LONG
        elif rsi > self.overbought:
            return Signal.SHORT
        return None

    def get_required_features(self) -> List[str]:
        return ['rsi']
