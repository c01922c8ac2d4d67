"""
Wallet data models.

Everything returned from WalletService is one of these pydantic models, so a
host layer can serialize results with ``model_dump()``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


class AddressKind(str, Enum):
    TRANSPARENT = "transparent"
    SHIELDED = "shielded"

    @classmethod
    def parse(cls, value: str) -> AddressKind:
        """Accept the short ("t"/"z") and long forms used by wallet callers."""
        aliases = {
            "t": cls.TRANSPARENT,
            "transparent": cls.TRANSPARENT,
            "z": cls.SHIELDED,
            "shielded": cls.SHIELDED,
        }
        if not isinstance(value, str):
            raise ValueError(f"Unknown address type: {value!r}")
        try:
            return aliases[value.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown address type: {value!r}") from None


class TxDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"
    PENDING = "pending"


class Address(BaseModel):
    """
    An address slot in the wallet's address book.

    Shielded slots are reserved by index but carry no encoding until Sapling
    key derivation is available; ``supported`` tells callers apart "no
    address" from "cannot compute one".
    """

    kind: AddressKind
    index: int = Field(..., ge=0)
    encoded: str | None = None

    @property
    def supported(self) -> bool:
        return self.encoded is not None

    def __str__(self) -> str:
        return self.encoded or f"<unsupported {self.kind.value} address #{self.index}>"


class WalletInfo(BaseModel):
    wallet_id: str
    transparent_addresses: list[Address]
    shielded_addresses: list[Address]


class Addresses(BaseModel):
    transparent: list[Address] = Field(default_factory=list)
    shielded: list[Address] = Field(default_factory=list)


class Balance(BaseModel):
    """Balances in zatoshis."""

    transparent: int = 0
    shielded: int = 0
    total: int = 0
    unconfirmed: int = 0
    shielded_supported: bool = False


class SyncResult(BaseModel):
    blocks_synced: int
    current_height: int
    total_height: int
    progress: float
    # True when the server was unreachable and the numbers are not real
    simulated: bool = False


class SyncStatus(BaseModel):
    is_syncing: bool = False
    current_block: int = 0
    total_blocks: int = 0
    progress: float = 0.0
    simulated: bool = False


class TransactionRecord(BaseModel):
    txid: str
    amount: int
    block_height: int | None = None
    timestamp: int
    memo: str | None = None
    direction: TxDirection

    model_config = {"frozen": True}


class TransactionResult(BaseModel):
    txid: str
    fee: int
