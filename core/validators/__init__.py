"""
Validators module

Data quality validators for bar sequences
"""

from core.validators.market_data import BarValidator

__all__ = ["BarValidator"]
