"""
Base Rule Classes for Trading Strategy Rules
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
import pandas as pd
import logging

from backtest.errors import InvalidParameter

logger = logging.getLogger(__name__)


class Signal(IntEnum):
    """Position state for one date"""
    LONG = 1
    SHORT = -1
    FLAT = 0


@dataclass
class RuleMetadata:
    """Rule metadata for tracking and logging"""
    rule_id: str
    name: str
    description: str
    source: str = 'technical'
    tags: List[str] = field(default_factory=list)


class BaseRule(ABC):
    """Abstract base class for all trading rules

    A rule inspects one row of features and either returns a Signal or
    None when it has no opinion for that date.
    """

    def __init__(self, metadata: RuleMetadata, params: Optional[Dict[str, Any]] = None):
        """
        Initialize rule

        Args:
            metadata: Rule metadata
            params: Rule-specific parameters
        """
        self.metadata = metadata
        self.params = params or {}
        self._validation_errors = []

        logger.debug(f"Rule initialized: {metadata.name} (ID: {metadata.rule_id})")

    @abstractmethod
    def evaluate(self, row: pd.Series) -> Optional[Signal]:
        """
        Evaluate rule on a single data row

        Args:
            row: OHLCV + features row

        Returns:
            Signal, or None if the rule does not apply
        """
        pass

    @abstractmethod
    def get_required_features(self) -> List[str]:
        """
        Get list of required features for this rule

        Returns:
            List of feature column names
        """
        pass

    def validate(self, data: pd.DataFrame) -> bool:
        """
        Validate that data contains required features

        Args:
            data: DataFrame with features

        Returns:
            True if valid, False otherwise
        """
        self._validation_errors = []
        required = self.get_required_features()
        missing = [f for f in required if f not in data.columns]

        if missing:
            error = f"Missing required features: {missing}"
            self._validation_errors.append(error)
            logger.error(f"{self.metadata.name}: {error}")
            return False

        return True

    def get_validation_errors(self) -> List[str]:
        """Get validation errors from last validate() call"""
        return self._validation_errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to dictionary for serialization"""
        return {
            'metadata': {
                'rule_id': self.metadata.rule_id,
                'name': self.metadata.name,
                'description': self.metadata.description,
                'source': self.metadata.source,
                'tags': self.metadata.tags
            },
            'params': self.params,
            'required_features': self.get_required_features()
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.metadata.rule_id}: {self.metadata.name}>"


# 여러 룰을 우선순위대로 묶을 때, ex: RSI 극단값 > 이동평균 추세
class PriorityRule(BaseRule):
    """Composite rule: the first child rule with an opinion wins

    Child rules are never blended. Order is the priority.
    """

    def __init__(self, metadata: RuleMetadata, rules: List[BaseRule]):
        if not rules:
            raise InvalidParameter("PriorityRule needs at least one child rule", "rules")
        super().__init__(metadata, params={
            'rules': [rule.metadata.rule_id for rule in rules]
        })
        self.rules = rules

    def evaluate(self, row: pd.Series) -> Optional[Signal]:
        for rule in self.rules:
            signal = rule.evaluate(row)
            if signal is not None:
                return signal
        return None

    def get_required_features(self) -> List[str]:
        """Combine required features from all child rules, keeping order"""
        all_features = []
        for rule in self.rules:
            all_features.extend(rule.get_required_features())
        return list(dict.fromkeys(all_features))
