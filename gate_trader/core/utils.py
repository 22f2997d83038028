"""
Utility functions for Gate Futures Trader.

Includes time helpers and strict decimal parsing for exchange payloads.
"""

import time
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

from .exceptions import ResponseParseError


# =============================================================================
# Time-related functions
# =============================================================================


def timestamp_to_datetime(ts: float, unit: str = "s") -> datetime:
    """
    Convert timestamp to datetime (UTC).

    Gate.io reports times in seconds, sometimes with a fractional part.

    Example:
        >>> timestamp_to_datetime(1704067200)
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if unit == "ms":
        ts = ts / 1000
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def now_timestamp(unit: str = "s") -> int:
    """
    Get current timestamp.

    Args:
        unit: "ms" for milliseconds, "s" for seconds

    Returns:
        Current timestamp as integer
    """
    ts = time.time()
    if unit == "ms":
        return int(ts * 1000)
    return int(ts)


# =============================================================================
# Numeric functions
# =============================================================================


def parse_decimal(value: Any, field: str) -> Decimal:
    """
    Parse an exchange-native decimal value.

    Gate.io sends prices and amounts as strings. Missing or malformed values
    are a failed fetch, never a silent zero.

    Args:
        value: Raw value from the payload
        field: Field name, used in the error message

    Returns:
        Parsed Decimal

    Raises:
        ResponseParseError: If the value is missing or not a finite number

    Example:
        >>> parse_decimal("0.01", "quanto_multiplier")
        Decimal('0.01')
    """
    if value is None or isinstance(value, bool):
        raise ResponseParseError(f"Missing numeric field '{field}'", details={"value": value})

    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ResponseParseError(
            f"Unparsable numeric field '{field}': {value!r}",
            details={"value": value},
        ) from e

    if not result.is_finite():
        raise ResponseParseError(
            f"Non-finite numeric field '{field}': {value!r}",
            details={"value": value},
        )
    return result


def parse_int(value: Any, field: str) -> int:
    """Parse an integral exchange value (contract sizes, leverage)."""
    result = parse_decimal(value, field)
    if result != result.to_integral_value():
        raise ResponseParseError(
            f"Expected integer for '{field}': {value!r}",
            details={"value": value},
        )
    return int(result)


def parse_required(data: dict, field: str) -> str:
    """Read a mandatory identifier field (contract name, order id) as text."""
    value = data.get(field)
    if value is None or value == "":
        raise ResponseParseError(
            f"Missing field '{field}' in exchange response",
            details={"value": value},
        )
    return str(value)


def round_decimal(
    value: Decimal,
    precision: int,
    rounding: str = ROUND_DOWN,
) -> Decimal:
    """
    Round a Decimal to specified precision.

    Example:
        >>> round_decimal(Decimal("123.456"), 2)
        Decimal('123.45')
    """
    if precision < 0:
        precision = 0

    quantize_str = "1." + "0" * precision if precision > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def decimal_places(increment: str) -> int:
    """
    Count the decimal places of a price increment string.

    Trailing zeros do not count.

    Example:
        >>> decimal_places("0.001")
        3
        >>> decimal_places("0.10")
        1
        >>> decimal_places("1")
        0
    """
    if "." not in increment:
        return 0
    return len(increment.split(".", 1)[1].rstrip("0"))
