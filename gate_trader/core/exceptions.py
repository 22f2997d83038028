"""
Custom exceptions for Gate Futures Trader.

Exception hierarchy:
    GateTraderError (base)
    ├── ExchangeError
    │   ├── ConnectionError
    │   ├── AuthenticationError
    │   ├── RateLimitError
    │   ├── OrderError
    │   └── ResponseParseError
    └── TradingError
        ├── InvalidArgument
        │   └── InvalidQuantity
        │       └── BelowMinimum
        ├── LeverageUpdateFailed
        ├── NoPositionFound
        └── TriggerOrderFailed

ExchangeError and its subclasses are transport failures: they are always
propagated and never retried. TradingError subclasses are raised by the
trading workflows themselves.
"""

from typing import Any


class GateTraderError(Exception):
    """Base exception for all trader errors."""

    default_message = "Gate trader error occurred"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r})"
        )


# Exchange-related errors
class ExchangeError(GateTraderError):
    """Base exception for exchange-related errors."""

    default_message = "Exchange error occurred"


class ConnectionError(ExchangeError):
    """Connection to exchange failed."""

    default_message = "Failed to connect to exchange"


class AuthenticationError(ExchangeError):
    """Authentication with exchange failed."""

    default_message = "Authentication failed"


class RateLimitError(ExchangeError):
    """Rate limit exceeded on exchange API."""

    default_message = "Rate limit exceeded"

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 1,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.retry_after = retry_after

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (retry after {self.retry_after}s)"


class OrderError(ExchangeError):
    """Order rejected by the exchange."""

    default_message = "Order error occurred"

    def __init__(
        self,
        message: str | None = None,
        order_id: str | None = None,
        symbol: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.order_id = order_id
        self.symbol = symbol

    def __str__(self) -> str:
        base = super().__str__()
        parts = [base]
        if self.order_id:
            parts.append(f"order_id={self.order_id}")
        if self.symbol:
            parts.append(f"symbol={self.symbol}")
        return " ".join(parts)


class ResponseParseError(ExchangeError):
    """Exchange payload contained a value that could not be parsed."""

    default_message = "Could not parse exchange response"


# Trading workflow errors
class TradingError(GateTraderError):
    """Base exception for trading workflow errors."""

    default_message = "Trading error occurred"


class InvalidArgument(TradingError):
    """Caller input rejected before any remote call."""

    default_message = "Invalid argument"


class InvalidQuantity(InvalidArgument):
    """Quantity is not positive or converts to no lots."""

    default_message = "Invalid quantity"


class BelowMinimum(InvalidQuantity):
    """Quantity converts to fewer lots than the contract minimum."""

    default_message = "Quantity below contract minimum"


class LeverageUpdateFailed(TradingError):
    """Exchange refused to change leverage."""

    default_message = "Failed to update leverage"


class NoPositionFound(TradingError):
    """No open position to close."""

    default_message = "No position found"


class TriggerOrderFailed(TradingError):
    """Price-triggered order could not be submitted."""

    default_message = "Failed to create trigger order"
