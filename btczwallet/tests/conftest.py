"""
Pytest configuration and fixtures for wallet tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import pytest

from btczwallet.backends.base import (
    ChainClient,
    CompactBlock,
    ConnectionState,
    RawTransaction,
    ServerInfo,
    validate_block_range,
)
from btczwallet.config import WalletConfig
from btczwallet.errors import NetworkError
from btczwallet.wallet.address import BECH32_CHARSET, bech32_hrp_expand, bech32_polymod
from btczwallet.wallet.keys import mnemonic_to_seed
from btczwallet.wallet.transaction import encode_varint, p2pkh_script

# BIP39 test vector: all-zero 256-bit entropy
SEED_PHRASE_24 = " ".join(["abandon"] * 23 + ["art"])
SEED_PHRASE_24_OTHER = " ".join(["zoo"] * 23 + ["vote"])
SEED_PHRASE_12 = " ".join(["abandon"] * 11 + ["about"])


@pytest.fixture
def seed_phrase() -> str:
    """24-word test mnemonic (not for production use!)."""
    return SEED_PHRASE_24


@pytest.fixture
def other_seed_phrase() -> str:
    return SEED_PHRASE_24_OTHER


@pytest.fixture
def short_seed_phrase() -> str:
    return SEED_PHRASE_12


@pytest.fixture
def seed(seed_phrase: str) -> bytes:
    return mnemonic_to_seed(seed_phrase)


def build_transaction(
    outputs: list[tuple[int, bytes]],
    input_count: int = 1,
    version: int = 1,
    version_group_id: int | None = None,
) -> bytes:
    """Serialize a minimal transparent transaction with the given (value, script) outputs."""
    tx = version.to_bytes(4, "little")
    if version_group_id is not None:
        tx += version_group_id.to_bytes(4, "little")

    tx += encode_varint(input_count)
    for i in range(input_count):
        script_sig = bytes([0x51]) * (i + 2)
        tx += bytes([i + 1]) * 32 + i.to_bytes(4, "little")
        tx += encode_varint(len(script_sig)) + script_sig
        tx += b"\xff\xff\xff\xff"

    tx += encode_varint(len(outputs))
    for value, script in outputs:
        tx += value.to_bytes(8, "little") + encode_varint(len(script)) + script

    tx += b"\x00\x00\x00\x00"  # locktime
    return tx


@pytest.fixture
def make_tx() -> Callable[..., bytes]:
    return build_transaction


@pytest.fixture
def pay_to() -> Callable[[bytes], bytes]:
    """P2PKH script for a 20-byte pubkey hash."""
    return p2pkh_script


class FakeChainClient(ChainClient):
    """In-memory chain client used by wallet tests."""

    def __init__(self, latest_height: int = 2_000_000):
        self.latest_height = latest_height
        self.transactions: dict[str, list[RawTransaction]] = {}
        self.fail_latest = False
        self.fail_streams = False
        self.fail_blocks = False
        self.block_requests: list[tuple[int, int]] = []
        self.address_requests: list[tuple[str, int, int]] = []
        self.submitted: list[bytes] = []
        self.closed = False
        self._state = ConnectionState.DISCONNECTED

    def add_transaction(self, address: str, height: int, data: bytes) -> None:
        self.transactions.setdefault(address, []).append(RawTransaction(height=height, data=data))

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> None:
        if self.fail_latest:
            raise NetworkError("Connection failed: fake server down")
        self._state = ConnectionState.CONNECTED

    async def get_latest_height(self) -> int:
        await self.connect()
        return self.latest_height

    async def get_server_info(self) -> ServerInfo:
        await self.connect()
        return ServerInfo(
            version="v0.4.test",
            vendor="fake",
            chain_name="main",
            block_height=self.latest_height,
        )

    async def get_address_transactions(
        self, address: str, start_height: int, end_height: int
    ) -> AsyncIterator[RawTransaction]:
        validate_block_range(start_height, end_height)
        await self.connect()
        self.address_requests.append((address, start_height, end_height))
        if self.fail_streams:
            raise NetworkError("Error reading transaction stream")
        for tx in self.transactions.get(address, []):
            if start_height <= tx.height <= end_height:
                yield tx

    async def get_block_range(
        self, start_height: int, end_height: int
    ) -> AsyncIterator[CompactBlock]:
        validate_block_range(start_height, end_height)
        await self.connect()
        self.block_requests.append((start_height, end_height))
        for height in range(start_height, end_height + 1):
            if self.fail_blocks and height > start_height:
                raise NetworkError("Error reading block stream")
            yield CompactBlock(height=height, hash=height.to_bytes(32, "little"))

    async def submit_transaction(self, raw: bytes) -> str:
        self.submitted.append(raw)
        return "00" * 32

    async def close(self) -> None:
        self.closed = True
        self._state = ConnectionState.DISCONNECTED


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def config() -> WalletConfig:
    return WalletConfig(server_url="http://127.0.0.1:9067")


@pytest.fixture
def chain_factory() -> Callable[..., FakeChainClient]:
    return FakeChainClient


def bech32_encode(hrp: str, data: list[int]) -> str:
    """Encode 5-bit ``data`` as a checksummed bech32 string (the wallet only decodes)."""
    polymod = bech32_polymod(bech32_hrp_expand(hrp) + data + [0] * 6) ^ 1
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(BECH32_CHARSET[d] for d in data + checksum)


@pytest.fixture
def bech32() -> Callable[[str, list[int]], str]:
    return bech32_encode
