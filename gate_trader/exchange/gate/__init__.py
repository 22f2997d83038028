"""
Gate.io exchange integration.

Provides:
- GateAuth: APIv4 request signing
- GateFuturesAPI: USDT-settled futures REST client
"""

from .auth import GateAuth
from .constants import (
    FUTURES_PRIVATE_ENDPOINTS,
    FUTURES_PUBLIC_ENDPOINTS,
    FUTURES_REST_URL,
    FUTURES_TESTNET_URL,
)
from .futures_api import GateFuturesAPI

__all__ = [
    "GateAuth",
    "GateFuturesAPI",
    "FUTURES_REST_URL",
    "FUTURES_TESTNET_URL",
    "FUTURES_PUBLIC_ENDPOINTS",
    "FUTURES_PRIVATE_ENDPOINTS",
]
