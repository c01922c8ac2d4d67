"""
Deterministic key derivation for BitcoinZ wallets.

Transparent keys use the BitcoinZ mobile derivation: the BIP39 seed is
concatenated with the big-endian BIP44 path m/44'/177'/0'/0/index and hashed
once with SHA256 to give the private key, so private keys match those of
earlier mobile app releases. Addresses hash the compressed public key; the
older app hashed only the X coordinate, which gave unspendable addresses.

Shielded (Sapling) keys need ZIP32 and Jubjub arithmetic that this core does
not implement; derive_shielded_address returns an unsupported slot instead of
inventing an address that could never receive funds.
"""

from __future__ import annotations

from coincurve import PrivateKey, PublicKey
from mnemonic import Mnemonic

from btczwallet.constants import (
    ACCOUNT,
    COIN_TYPE_MAINNET,
    COIN_TYPE_TESTNET,
    EXTERNAL_CHAIN,
    PURPOSE,
    SEED_WORD_COUNT,
)
from btczwallet.errors import CryptoError, InvalidInputError, InvalidSeedError
from btczwallet.wallet.address import hash160, private_key_to_wif, pubkey_hash_to_address, sha256
from btczwallet.wallet.models import Address, AddressKind, NetworkType

MAX_INDEX = 0xFFFFFFFF

_english = Mnemonic("english")


class TransparentKey:
    """
    Key material for one transparent address slot.
    """

    def __init__(self, private_key: PrivateKey, index: int, network: NetworkType):
        self._private_key = private_key
        self._public_key = private_key.public_key
        self.index = index
        self.network = network

    @property
    def private_key(self) -> PrivateKey:
        """Return the coincurve PrivateKey instance."""
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        """Return the coincurve PublicKey instance."""
        return self._public_key

    @property
    def secret(self) -> bytes:
        """Private key as 32 bytes"""
        return self._private_key.secret

    def get_public_key_bytes(self, compressed: bool = True) -> bytes:
        return self._public_key.format(compressed=compressed)

    @property
    def pubkey_hash(self) -> bytes:
        return hash160(self.get_public_key_bytes(compressed=True))

    @property
    def address(self) -> str:
        return pubkey_hash_to_address(self.pubkey_hash, self.network)

    def to_wif(self) -> str:
        return private_key_to_wif(self.secret)


def normalize_mnemonic(phrase: str) -> str:
    if not isinstance(phrase, str):
        raise InvalidSeedError(f"Seed phrase must be a string, got {type(phrase).__name__}")
    return " ".join(phrase.lower().split())


def validate_mnemonic(phrase: str) -> str:
    """
    Validate a seed phrase and return its normalized form.

    Requires exactly 24 words from the BIP39 English wordlist with a valid
    checksum.
    """
    normalized = normalize_mnemonic(phrase)
    word_count = len(normalized.split()) if normalized else 0
    if word_count != SEED_WORD_COUNT:
        raise InvalidSeedError(f"Seed phrase must be {SEED_WORD_COUNT} words, got {word_count}")

    try:
        valid = _english.check(normalized)
    except (LookupError, ValueError) as e:
        raise InvalidSeedError(f"Invalid seed phrase: {e}") from e
    if not valid:
        raise InvalidSeedError("Invalid seed phrase: unknown word or checksum mismatch")

    return normalized


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """Convert a validated BIP39 mnemonic to its 64-byte seed."""
    return Mnemonic.to_seed(validate_mnemonic(phrase), passphrase)


def _coin_type(network: NetworkType) -> int:
    return COIN_TYPE_MAINNET if network == NetworkType.MAINNET else COIN_TYPE_TESTNET


def _check_index(index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= MAX_INDEX:
        raise InvalidInputError(f"Address index must be an integer in [0, {MAX_INDEX}]: {index!r}")


def derive_private_key(
    seed: bytes, index: int, network: NetworkType = NetworkType.MAINNET
) -> TransparentKey:
    """Derive the transparent key at m/44'/coin'/0'/0/index."""
    _check_index(index)

    path = (PURPOSE, _coin_type(network), ACCOUNT, EXTERNAL_CHAIN, index)
    material = seed + b"".join(component.to_bytes(4, "big") for component in path)

    try:
        private_key = PrivateKey(sha256(material))
    except ValueError as e:
        raise CryptoError(f"Invalid private key at index {index}: {e}") from e

    return TransparentKey(private_key, index, network)


def derive_transparent_address(
    seed: bytes, index: int, network: NetworkType = NetworkType.MAINNET
) -> Address:
    key = derive_private_key(seed, index, network)
    return Address(kind=AddressKind.TRANSPARENT, index=index, encoded=key.address)


def derive_shielded_address(
    seed: bytes, index: int, network: NetworkType = NetworkType.MAINNET
) -> Address:
    """Reserve a shielded slot. Sapling derivation is not supported yet."""
    _check_index(index)
    return Address(kind=AddressKind.SHIELDED, index=index, encoded=None)
