"""
BitcoinZ protocol constants.

Address version prefixes follow the BitcoinZ chainparams (the same two-byte
layout Zcash uses), which is why every transparent address is 35 characters.
"""

from __future__ import annotations

# BIP44 path components
PURPOSE = 44
COIN_TYPE_MAINNET = 177
COIN_TYPE_TESTNET = 1
ACCOUNT = 0
EXTERNAL_CHAIN = 0

# Transparent address version prefixes (2 bytes)
P2PKH_PREFIX_MAINNET = bytes([0x1C, 0xB8])  # t1...
P2SH_PREFIX_MAINNET = bytes([0x1C, 0xBD])  # t3...
P2PKH_PREFIX_TESTNET = bytes([0x1D, 0x25])  # tm...
P2SH_PREFIX_TESTNET = bytes([0x1C, 0xBA])  # t2...

TRANSPARENT_ADDRESS_LENGTH = 35
PUBKEY_HASH_LENGTH = 20
CHECKSUM_LENGTH = 4

# Wallet import format
WIF_PREFIX = 0x80
WIF_COMPRESSED_FLAG = 0x01

# Sapling payment address human-readable parts
SAPLING_HRP_MAINNET = "zs"
SAPLING_HRP_TESTNET = "ztestsapling"

# Largest memo a shielded output can carry
MAX_MEMO_BYTES = 512

# Overwinter and later transactions set the top bit of the version field
OVERWINTERED_FLAG = 0x80000000

# Seed phrase length accepted by the wallet
SEED_WORD_COUNT = 24

DEFAULT_SERVER_URL = "https://lightd.btcz.rocks:9067"
