"""
Gate.io APIv4 constants and endpoint definitions.
"""

from dataclasses import dataclass


# =============================================================================
# Base URLs
# =============================================================================

FUTURES_REST_URL = "https://api.gateio.ws/api/v4"
FUTURES_TESTNET_URL = "https://api-testnet.gateapi.io/api/v4"

# Path prefix the signature is computed over
API_PREFIX = "/api/v4"

DEFAULT_SETTLE = "usdt"


# =============================================================================
# Endpoint Definition
# =============================================================================


@dataclass(frozen=True)
class Endpoint:
    """API endpoint definition. ``{settle}`` and ``{contract}`` are filled per call."""

    path: str
    method: str = "GET"

    def format(self, settle: str, **kwargs: str) -> str:
        return self.path.format(settle=settle, **kwargs)


# =============================================================================
# Futures Endpoints
# =============================================================================

FUTURES_PUBLIC_ENDPOINTS = {
    "CONTRACTS": Endpoint("/futures/{settle}/contracts", "GET"),
    "CONTRACT": Endpoint("/futures/{settle}/contracts/{contract}", "GET"),
}

FUTURES_PRIVATE_ENDPOINTS = {
    "ACCOUNTS": Endpoint("/futures/{settle}/accounts", "GET"),
    "POSITIONS": Endpoint("/futures/{settle}/positions", "GET"),
    "ORDERS": Endpoint("/futures/{settle}/orders", "POST"),
    "CANCEL_ORDERS": Endpoint("/futures/{settle}/orders", "DELETE"),
    "PRICE_ORDERS": Endpoint("/futures/{settle}/price_orders", "POST"),
    "LEVERAGE": Endpoint("/futures/{settle}/positions/{contract}/leverage", "POST"),
    "CROSS_MODE": Endpoint("/futures/{settle}/dual_comp/positions/cross_mode", "POST"),
}


# =============================================================================
# Order text tags
# =============================================================================

ORDER_TEXT_OPEN_LONG = "t-open_long"
ORDER_TEXT_OPEN_SHORT = "t-open_short"
ORDER_TEXT_CLOSE_LONG = "t-close_long"
ORDER_TEXT_CLOSE_SHORT = "t-close_short"

MARKET_PRICE = "0"
TIF_IOC = "ioc"


# =============================================================================
# Gate.io Error Labels
# =============================================================================

AUTH_ERROR_LABELS = frozenset({
    "INVALID_KEY",
    "INVALID_SIGNATURE",
    "MISSING_REQUIRED_HEADER",
    "REQUEST_EXPIRED",
    "IP_FORBIDDEN",
    "READ_ONLY",
    "FORBIDDEN",
})

RATE_LIMIT_LABELS = frozenset({"TOO_MANY_REQUEST"})

ORDER_ERROR_LABELS = frozenset({
    "INVALID_PARAM_VALUE",
    "ORDER_NOT_FOUND",
    "ORDER_CLOSED",
    "ORDER_CANCELLED",
    "INSUFFICIENT_AVAILABLE",
    "BALANCE_NOT_ENOUGH",
    "SIZE_TOO_LARGE",
    "SIZE_TOO_SMALL",
    "REDUCE_ONLY_FAIL",
    "POSITION_EMPTY",
    "ORDER_FOK",
    "ORDER_POC_IMMEDIATE",
    "CONTRACT_NOT_FOUND",
})

# Message fragments that classify settings updates
LEVERAGE_UNCHANGED_MARKER = "No need to change"
MARGIN_UNCHANGED_MARKER = "No need to change margin type"
MARGIN_BLOCKED_MARKER = "cannot be changed if there exists position"
MARGIN_BLOCKED_LABELS = frozenset({"POSITION_NOT_EMPTY", "POSITION_HOLDING"})
