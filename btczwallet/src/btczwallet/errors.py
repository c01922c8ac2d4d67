"""
Typed wallet errors.

Every failure surfaced by the wallet core is a WalletError subclass carrying a
stable ``kind`` string and a human-readable message, so a host layer can map
it onto its own error envelope.
"""

from __future__ import annotations

from typing import Any


class WalletError(Exception):
    """Base class for all wallet core errors."""

    kind = "WalletError"
    default_message = "Wallet error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidInputError(WalletError):
    kind = "InvalidInput"
    default_message = "Invalid input"


class InvalidSeedError(InvalidInputError):
    """Seed phrase failed word count or BIP39 checksum validation."""

    default_message = "Invalid seed phrase"


class InvalidAddressError(WalletError):
    kind = "InvalidAddress"
    default_message = "Invalid address"


class NetworkError(WalletError):
    """Transport, connection or stream failure, or a server-side rejection."""

    kind = "NetworkError"
    default_message = "Network error"

    def __init__(self, message: str | None = None, code: int | None = None):
        super().__init__(message)
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.code is not None:
            data["code"] = self.code
        return data


class CryptoError(WalletError):
    kind = "CryptoError"
    default_message = "Cryptographic error"


class WalletNotFoundError(WalletError):
    kind = "WalletNotFound"
    default_message = "Wallet not found"


class InsufficientFundsError(WalletError):
    kind = "InsufficientFunds"
    default_message = "Insufficient funds"


class SyncError(WalletError):
    kind = "SyncError"
    default_message = "Sync error"


class SerializationError(WalletError):
    kind = "SerializationError"
    default_message = "Serialization error"


class TruncatedDataError(SerializationError):
    """A read ran past the end of a binary buffer."""

    default_message = "Unexpected end of data"
