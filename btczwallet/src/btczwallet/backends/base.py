"""
Base chain client interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum

from btczwallet.errors import InvalidInputError


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class RawTransaction:
    height: int
    data: bytes


@dataclass
class CompactBlock:
    height: int
    hash: bytes = b""
    prev_hash: bytes = b""
    time: int = 0
    tx_hashes: list[bytes] = field(default_factory=list)


@dataclass
class ServerInfo:
    version: str
    vendor: str
    chain_name: str
    block_height: int
    sapling_activation_height: int = 0
    consensus_branch_id: str = ""
    taddr_support: bool = False


def validate_block_range(start_height: int, end_height: int) -> None:
    if start_height < 0 or end_height < 0:
        raise InvalidInputError(
            f"Invalid block range: heights must be non-negative ({start_height}-{end_height})"
        )
    if start_height > end_height:
        raise InvalidInputError(
            f"Invalid block range: start_height({start_height}) > end_height({end_height})"
        )


class ChainClient(ABC):
    """
    Abstract chain indexing client.

    Implementations connect lazily: any request issued while disconnected
    connects first. Transport failures are raised as NetworkError and are not
    retried; the caller owns retry policy.
    """

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current connection state"""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection, raising NetworkError on failure"""

    @abstractmethod
    async def get_latest_height(self) -> int:
        """Get current chain tip height"""

    @abstractmethod
    async def get_server_info(self) -> ServerInfo:
        """Get server version and chain information"""

    @abstractmethod
    def get_address_transactions(
        self, address: str, start_height: int, end_height: int
    ) -> AsyncIterator[RawTransaction]:
        """Stream raw transactions touching an address within a height range.

        Closing the iterator before it is exhausted cancels the request."""

    @abstractmethod
    def get_block_range(self, start_height: int, end_height: int) -> AsyncIterator[CompactBlock]:
        """Stream compact blocks in [start_height, end_height].

        Raises InvalidInputError when start_height > end_height, before any
        network activity."""

    @abstractmethod
    async def submit_transaction(self, raw: bytes) -> str:
        """Broadcast a raw transaction, returns txid"""

    async def close(self) -> None:
        """Close connection"""
        pass
