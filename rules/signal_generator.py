"""
Signal Generation: indicator features -> daily position signal
"""

from typing import Iterable, List, Optional
import logging

import pandas as pd

from .base_rule import BaseRule, PriorityRule, RuleMetadata, Signal
from .technical_rules import MovingAverageCrossRule, RSIRule
from backtest.errors import EmptySeries, InvalidParameter

logger = logging.getLogger(__name__)


def forward_fill_signals(raw: Iterable[Optional[Signal]]) -> List[Signal]:
    """
    Replace undefined (None) entries with the last defined signal.

    Left-to-right fold whose accumulator starts at FLAT, so undefined
    entries before the first defined one resolve to FLAT.

    Args:
        raw: Per-date signals, None where no rule applied

    Returns:
        List of the same length with no None entries
    """
    filled = []
    last = Signal.FLAT
    for value in raw:
        if value is not None:
            last = Signal(value)
        filled.append(last)
    return filled


class SignalGenerator:
    """Evaluate the RSI / moving-average cascade for every date

    Priority (first match wins):
        1. RSI < oversold   -> LONG
        2. RSI > overbought -> SHORT
        3. SMA fast > slow  -> LONG
        4. SMA fast < slow  -> SHORT
        5. otherwise        -> undefined, forward-filled afterwards
    """

    def __init__(
        self,
        rsi_period: int = 14,
        short_period: int = 50,
        long_period: int = 200,
        oversold: float = 30.0,
        overbought: float = 70.0
    ):
        rsi_rule = RSIRule(
            RuleMetadata(
                rule_id=f"RSI_{rsi_period}",
                name=f"RSI {rsi_period} {oversold:g}/{overbought:g}",
                description="Oversold -> long, overbought -> short"
            ),
            period=rsi_period,
            oversold=oversold,
            overbought=overbought
        )
        ma_rule = MovingAverageCrossRule(
            RuleMetadata(
                rule_id=f"MA_{short_period}_{long_period}",
                name=f"MA {short_period}/{long_period}",
                description="Fast SMA above slow -> long, below -> short"
            ),
            fast_period=short_period,
            slow_period=long_period
        )
        self.rule: BaseRule = PriorityRule(
            RuleMetadata(
                rule_id=f"RSI_MA_{rsi_period}_{short_period}_{long_period}",
                name="RSI extremes over MA trend",
                description="RSI reversal rules take priority over the MA trend rule"
            ),
            rules=[rsi_rule, ma_rule]
        )

    def evaluate(self, features: pd.DataFrame) -> pd.Series:
        """
        Per-date cascade result before forward-fill

        Args:
            features: DataFrame with 'rsi' and 'sma_<n>' columns

        Returns:
            Object Series of Signal or None, aligned to features.index
        """
        if features.empty:
            raise EmptySeries("cannot generate signals from an empty frame", "features")
        if not self.rule.validate(features):
            raise InvalidParameter(
                "; ".join(self.rule.get_validation_errors()), "features"
            )

        raw = [self.rule.evaluate(row) for _, row in features.iterrows()]
        return pd.Series(raw, index=features.index, dtype=object, name="raw_signal")

    def generate(self, features: pd.DataFrame) -> pd.Series:
        """
        Total signal series (no undefined entries)

        Args:
            features: DataFrame with 'rsi' and 'sma_<n>' columns

        Returns:
            int Series of {1, -1, 0} aligned to features.index
        """
        raw = self.evaluate(features)
        filled = forward_fill_signals(raw)

        undefined = int(raw.isna().sum())
        logger.debug(
            f"{self.rule.metadata.rule_id}: {len(raw)} dates, "
            f"{undefined} undefined before forward-fill"
        )

        return pd.Series(
            [int(s) for s in filled], index=features.index, dtype="int64", name="signal"
        )


def signal_summary(signals: pd.Series) -> dict:
    """Count days per position and the number of position changes"""
    changes = int((signals != signals.shift()).iloc[1:].sum()) if len(signals) > 1 else 0
    return {
        'long_days': int((signals == Signal.LONG).sum()),
        'short_days': int((signals == Signal.SHORT).sum()),
        'flat_days': int((signals == Signal.FLAT).sum()),
        'position_changes': changes
    }
