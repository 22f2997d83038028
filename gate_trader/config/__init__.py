# Config module - trader configuration
from .exceptions import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    TraderNotConfiguredError,
)
from .loader import ConfigLoader, load_config, load_gate_trader_config
from .models import (
    GATE_REST_URL,
    GATE_TESTNET_URL,
    AppConfig,
    BaseConfig,
    GateConfig,
    TraderConfig,
    TraderEntry,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "TraderNotConfiguredError",
    # Loader
    "ConfigLoader",
    "load_config",
    "load_gate_trader_config",
    # Models
    "BaseConfig",
    "GateConfig",
    "TraderConfig",
    "TraderEntry",
    "AppConfig",
    "GATE_REST_URL",
    "GATE_TESTNET_URL",
]
