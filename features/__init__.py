# features/__init__.py
"""
Feature engineering modules for stock price analysis
"""

from .technical_indicators import TechnicalIndicators

__all__ = ['TechnicalIndicators']
