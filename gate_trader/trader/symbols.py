"""
Symbol normalisation for Gate.io contract names.
"""

SETTLE_SUFFIX = "USDT"
CONTRACT_SEPARATOR = "_"


def normalize_symbol(symbol: str) -> str:
    """
    Convert an exchange-agnostic symbol to a Gate.io contract name.

    A symbol that already contains an underscore is returned unchanged;
    otherwise it is upper-cased and the USDT suffix gets a separator.

    Example:
        >>> normalize_symbol("ethusdt")
        'ETH_USDT'
        >>> normalize_symbol("BTC_USDT")
        'BTC_USDT'
    """
    if CONTRACT_SEPARATOR in symbol:
        return symbol
    return symbol.upper().replace(SETTLE_SUFFIX, f"{CONTRACT_SEPARATOR}{SETTLE_SUFFIX}")
