"""
Trading adapter for Gate.io USDT perpetual futures.

Provides:
- GateTrader: account, order and settings API
- OrderLifecycleController: open / close / protective-order workflows
- PositionStateReconciler: leverage and margin mode
- PrecisionResolver and lot conversion
- CachedValue: TTL read cache with a reader/writer lock
"""

from .cache import CachedValue, ReadWriteLock
from .converter import QuantityConverter, close_lots, open_lots
from .gate_trader import GateTrader
from .orders import OrderLifecycleController, trigger_rule
from .precision import PrecisionResolver, price_precision_from_round
from .reconciler import PositionStateReconciler
from .symbols import normalize_symbol

__all__ = [
    "GateTrader",
    "OrderLifecycleController",
    "trigger_rule",
    "PositionStateReconciler",
    "PrecisionResolver",
    "price_precision_from_round",
    "QuantityConverter",
    "open_lots",
    "close_lots",
    "CachedValue",
    "ReadWriteLock",
    "normalize_symbol",
]
