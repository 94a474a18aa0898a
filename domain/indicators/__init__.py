"""
Technical indicators module

Exports:
- BaseIndicator (core/interfaces/indicators.py)
- Moving averages: SMA, EMA, WMA
- Momentum: RSI, MACD, KDJ
- Volatility: BollingerBands
- Registry: IndicatorRegistry
- Engine: IndicatorEngine
"""

from core.interfaces.indicators import BaseIndicator
from domain.indicators.engine import IndicatorEngine
from domain.indicators.momentum import KDJ, MACD, RSI
from domain.indicators.moving_averages import EMA, SMA, WMA
from domain.indicators.registry import IndicatorRegistry
from domain.indicators.volatility import BollingerBands

__all__ = [
    "BaseIndicator",
    "SMA",
    "EMA",
    "WMA",
    "RSI",
    "MACD",
    "KDJ",
    "BollingerBands",
    "IndicatorRegistry",
    "IndicatorEngine",
]
