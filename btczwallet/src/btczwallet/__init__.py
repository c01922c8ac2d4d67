"""
btczwallet - BitcoinZ light wallet core

Derives transparent addresses from a BIP39 seed, streams chain data from a
lightwalletd server and tracks balance and transaction history.
"""

__version__ = "0.3.0"

from btczwallet.backends import ChainClient, LightwalletdClient
from btczwallet.config import WalletConfig
from btczwallet.errors import (
    CryptoError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidInputError,
    InvalidSeedError,
    NetworkError,
    SerializationError,
    SyncError,
    TruncatedDataError,
    WalletError,
    WalletNotFoundError,
)
from btczwallet.wallet.models import (
    Address,
    Addresses,
    AddressKind,
    Balance,
    NetworkType,
    SyncResult,
    SyncStatus,
    TransactionRecord,
    TransactionResult,
    TxDirection,
    WalletInfo,
)
from btczwallet.wallet.service import WalletService

__all__ = [
    "Address",
    "AddressKind",
    "Addresses",
    "Balance",
    "ChainClient",
    "CryptoError",
    "InsufficientFundsError",
    "InvalidAddressError",
    "InvalidInputError",
    "InvalidSeedError",
    "LightwalletdClient",
    "NetworkError",
    "NetworkType",
    "SerializationError",
    "SyncError",
    "SyncResult",
    "SyncStatus",
    "TransactionRecord",
    "TransactionResult",
    "TruncatedDataError",
    "TxDirection",
    "WalletConfig",
    "WalletError",
    "WalletInfo",
    "WalletNotFoundError",
    "WalletService",
]
