# Mock classes for testing
"""Mock exchange gateway for testing."""

from .gateway_mock import MockGateway, contract_entry, position_entry

__all__ = [
    "MockGateway",
    "contract_entry",
    "position_entry",
]
