# Exchange module - gateway contract and the Gate.io client
from .gate import GateAuth, GateFuturesAPI
from .gateway import ExchangeGateway

__all__ = [
    "ExchangeGateway",
    "GateAuth",
    "GateFuturesAPI",
]
