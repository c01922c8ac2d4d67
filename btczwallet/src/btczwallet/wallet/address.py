"""
BitcoinZ address encoding utilities.

Transparent addresses are base58check over a two-byte version prefix and a
HASH160. Sapling addresses are only validated (bech32 checksum), never
produced here.
"""

from __future__ import annotations

import hashlib

from btczwallet.constants import (
    CHECKSUM_LENGTH,
    P2PKH_PREFIX_MAINNET,
    P2PKH_PREFIX_TESTNET,
    P2SH_PREFIX_MAINNET,
    P2SH_PREFIX_TESTNET,
    PUBKEY_HASH_LENGTH,
    SAPLING_HRP_MAINNET,
    SAPLING_HRP_TESTNET,
    TRANSPARENT_ADDRESS_LENGTH,
    WIF_COMPRESSED_FLAG,
    WIF_PREFIX,
)
from btczwallet.errors import InvalidAddressError
from btczwallet.wallet.models import AddressKind, NetworkType

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

_BASE58_INDEX = {char: i for i, char in enumerate(BASE58_ALPHABET)}


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash256(data: bytes) -> bytes:
    """SHA256(SHA256(data))"""
    return sha256(sha256(data))


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def base58_encode(data: bytes) -> str:
    num = int.from_bytes(data, "big")

    result = ""
    while num > 0:
        num, remainder = divmod(num, 58)
        result = BASE58_ALPHABET[remainder] + result

    for byte in data:
        if byte == 0:
            result = BASE58_ALPHABET[0] + result
        else:
            break

    return result


def base58_decode(text: str) -> bytes:
    num = 0
    for char in text:
        if char not in _BASE58_INDEX:
            raise InvalidAddressError(f"Invalid base58 character: {char!r}")
        num = num * 58 + _BASE58_INDEX[char]

    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""

    leading_zeros = len(text) - len(text.lstrip(BASE58_ALPHABET[0]))
    return b"\x00" * leading_zeros + body


def base58check_encode(payload: bytes) -> str:
    return base58_encode(payload + hash256(payload)[:CHECKSUM_LENGTH])


def base58check_decode(text: str) -> bytes:
    """Decode and verify a base58check string, returning the payload without checksum."""
    raw = base58_decode(text)
    if len(raw) <= CHECKSUM_LENGTH:
        raise InvalidAddressError("Encoded data too short")

    payload, checksum = raw[:-CHECKSUM_LENGTH], raw[-CHECKSUM_LENGTH:]
    if hash256(payload)[:CHECKSUM_LENGTH] != checksum:
        raise InvalidAddressError("Checksum mismatch")
    return payload


def p2pkh_prefix(network: NetworkType) -> bytes:
    return P2PKH_PREFIX_MAINNET if network == NetworkType.MAINNET else P2PKH_PREFIX_TESTNET


def p2sh_prefix(network: NetworkType) -> bytes:
    return P2SH_PREFIX_MAINNET if network == NetworkType.MAINNET else P2SH_PREFIX_TESTNET


def sapling_hrp(network: NetworkType) -> str:
    return SAPLING_HRP_MAINNET if network == NetworkType.MAINNET else SAPLING_HRP_TESTNET


def pubkey_hash_to_address(pubkey_hash: bytes, network: NetworkType = NetworkType.MAINNET) -> str:
    if len(pubkey_hash) != PUBKEY_HASH_LENGTH:
        raise ValueError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return base58check_encode(p2pkh_prefix(network) + pubkey_hash)


def pubkey_to_t_address(pubkey: bytes, network: NetworkType = NetworkType.MAINNET) -> str:
    """Convert a compressed public key to a transparent P2PKH address."""
    if len(pubkey) != 33:
        raise ValueError(f"Invalid compressed pubkey length: {len(pubkey)}")
    return pubkey_hash_to_address(hash160(pubkey), network)


def address_to_pubkey_hash(address: str) -> bytes:
    """
    Recover the 20-byte hash from a transparent address.

    Drops the two-byte version prefix and the four-byte checksum. The checksum
    is not verified here; use decode_transparent_address for that.
    """
    raw = base58_decode(address)
    if len(raw) < 2 + PUBKEY_HASH_LENGTH + CHECKSUM_LENGTH:
        raise InvalidAddressError("Address too short")
    return raw[2 : 2 + PUBKEY_HASH_LENGTH]


def decode_transparent_address(
    address: str, network: NetworkType = NetworkType.MAINNET
) -> tuple[bytes, bytes]:
    """Return (version prefix, hash) for a checksum-valid transparent address."""
    if len(address) != TRANSPARENT_ADDRESS_LENGTH:
        raise InvalidAddressError(f"Invalid transparent address length: {len(address)}")

    payload = base58check_decode(address)
    if len(payload) != 2 + PUBKEY_HASH_LENGTH:
        raise InvalidAddressError(f"Invalid payload length: {len(payload)}")

    prefix, hash_bytes = payload[:2], payload[2:]
    if prefix not in (p2pkh_prefix(network), p2sh_prefix(network)):
        raise InvalidAddressError(f"Unknown address prefix {prefix.hex()} for {network.value}")
    return prefix, hash_bytes


def private_key_to_wif(secret: bytes) -> str:
    """Encode a private key in wallet import format (compressed)."""
    if len(secret) != 32:
        raise ValueError(f"Invalid private key length: {len(secret)}")
    return base58check_encode(bytes([WIF_PREFIX]) + secret + bytes([WIF_COMPRESSED_FLAG]))


def bech32_polymod(values: list[int]) -> int:
    """Bech32 checksum polymod"""
    gen = [0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3]
    chk = 1
    for v in values:
        b = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ v
        for i in range(5):
            chk ^= gen[i] if ((b >> i) & 1) else 0
    return chk


def bech32_hrp_expand(hrp: str) -> list[int]:
    """Expand HRP for bech32"""
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def bech32_decode(text: str) -> tuple[str, list[int]]:
    """
    Decode a bech32 string into (hrp, data) with the checksum stripped.

    Sapling addresses exceed the BIP173 90-character limit, so no length cap
    is applied beyond the checksum itself.
    """
    if text.lower() != text and text.upper() != text:
        raise InvalidAddressError("Mixed case bech32 string")
    text = text.lower()

    pos = text.rfind("1")
    if pos < 1 or pos + 7 > len(text):
        raise InvalidAddressError("Invalid bech32 separator position")

    hrp = text[:pos]
    data = []
    for char in text[pos + 1 :]:
        if char not in BECH32_CHARSET:
            raise InvalidAddressError(f"Invalid bech32 character: {char!r}")
        data.append(BECH32_CHARSET.index(char))

    if bech32_polymod(bech32_hrp_expand(hrp) + data) != 1:
        raise InvalidAddressError("Bech32 checksum mismatch")
    return hrp, data[:-6]


def validate_address(address: str, network: NetworkType = NetworkType.MAINNET) -> AddressKind:
    """
    Validate a destination address and report its kind.

    Raises InvalidAddressError when the address fails structural or checksum
    validation for the given network.
    """
    if not address or address != address.strip():
        raise InvalidAddressError(f"Invalid address: {address!r}")

    hrp = sapling_hrp(network)
    if address.lower().startswith(hrp + "1"):
        decoded_hrp, _ = bech32_decode(address)
        if decoded_hrp != hrp:
            raise InvalidAddressError(f"Unexpected shielded prefix: {decoded_hrp}")
        return AddressKind.SHIELDED

    decode_transparent_address(address, network)
    return AddressKind.TRANSPARENT
