"""
Core module for Gate Futures Trader.

Provides logging utilities, exceptions, data models and helpers.
"""

from .logger import get_logger, setup_logger

__all__ = [
    "setup_logger",
    "get_logger",
]
