"""
Gate Futures Trader.

Trading-account adapter for Gate.io USDT-settled perpetual futures.
"""

from .trader import GateTrader

__version__ = "0.1.0"

__all__ = ["GateTrader", "__version__"]
