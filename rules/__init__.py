"""
Trading Rules System
"""

from .base_rule import BaseRule, RuleMetadata, Signal, PriorityRule
from .technical_rules import (
    MovingAverageCrossRule,
    RSIRule
)
from .signal_generator import SignalGenerator, forward_fill_signals, signal_summary

__all__ = [
    # Base classes
    'BaseRule',
    'RuleMetadata',
    'Signal',
    'PriorityRule',

    # Technical rules
    'MovingAverageCrossRule',
    'RSIRule',

    # Signal generation
    'SignalGenerator',
    'forward_fill_signals',
    'signal_summary'
]
