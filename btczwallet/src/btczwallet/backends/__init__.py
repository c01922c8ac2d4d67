"""
Chain client implementations.

Available clients:
- LightwalletdClient: gRPC client for a BitcoinZ lightwalletd server
"""

from btczwallet.backends.base import (
    ChainClient,
    CompactBlock,
    ConnectionState,
    RawTransaction,
    ServerInfo,
)
from btczwallet.backends.lightwalletd import LightwalletdClient

__all__ = [
    "ChainClient",
    "CompactBlock",
    "ConnectionState",
    "LightwalletdClient",
    "RawTransaction",
    "ServerInfo",
]
