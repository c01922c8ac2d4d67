"""
Transparent transaction parsing and output matching.

Raw transactions arrive from the indexing server and are untrusted: every read
goes through ByteReader, which refuses to run past the end of the buffer. A
malformed transaction contributes zero to the balance instead of aborting a
whole scan.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from btczwallet.constants import OVERWINTERED_FLAG, PUBKEY_HASH_LENGTH
from btczwallet.errors import InvalidAddressError, TruncatedDataError
from btczwallet.wallet.address import address_to_pubkey_hash, hash256

# OP_DUP OP_HASH160 PUSH20 <pkh> OP_EQUALVERIFY OP_CHECKSIG
P2PKH_SCRIPT_LENGTH = 25
OP_DUP = 0x76
OP_HASH160 = 0xA9
OP_PUSH20 = 0x14
OP_EQUALVERIFY = 0x88
OP_CHECKSIG = 0xAC

# outpoint (32 + 4) + empty script varint (1) + sequence (4)
MIN_INPUT_SIZE = 41
# value (8) + empty script varint (1)
MIN_OUTPUT_SIZE = 9


@dataclass
class TxOutput:
    value: int
    script: bytes


class ByteReader:
    """Bounds-checked cursor over a byte string."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    @property
    def remaining(self) -> int:
        return max(len(self.data) - self.offset, 0)

    def read(self, size: int) -> bytes:
        if self.offset < 0 or size < 0 or size > self.remaining:
            raise TruncatedDataError(
                f"Need {size} bytes at offset {self.offset}, {self.remaining} available"
            )
        chunk = self.data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def skip(self, size: int) -> None:
        self.read(size)

    def read_uint32_le(self) -> int:
        return int.from_bytes(self.read(4), "little")

    def read_uint64_le(self) -> int:
        return int.from_bytes(self.read(8), "little")

    def read_varint(self) -> int:
        first = self.read(1)[0]

        if first < 0xFD:
            return first
        if first == 0xFD:
            return int.from_bytes(self.read(2), "little")
        if first == 0xFE:
            return int.from_bytes(self.read(4), "little")
        return int.from_bytes(self.read(8), "little")

    def read_count(self, min_item_size: int) -> int:
        """Read an item count, rejecting counts the remaining bytes cannot hold."""
        count = self.read_varint()
        if count * min_item_size > self.remaining:
            raise TruncatedDataError(
                f"Count {count} exceeds remaining {self.remaining} bytes at offset {self.offset}"
            )
        return count


def parse_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a compact size integer at ``offset``.

    Returns (value, bytes consumed). A truncated encoding returns (0, 0).
    """
    reader = ByteReader(data, offset)
    try:
        value = reader.read_varint()
    except TruncatedDataError:
        return 0, 0
    return value, reader.offset - offset


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def compute_txid(raw: bytes) -> str:
    """Transaction id as displayed by block explorers (reversed double SHA256)."""
    return hash256(raw)[::-1].hex()


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    if len(pubkey_hash) != PUBKEY_HASH_LENGTH:
        raise ValueError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return (
        bytes([OP_DUP, OP_HASH160, OP_PUSH20])
        + pubkey_hash
        + bytes([OP_EQUALVERIFY, OP_CHECKSIG])
    )


def is_p2pkh_script(script: bytes) -> bool:
    return (
        len(script) == P2PKH_SCRIPT_LENGTH
        and script[0] == OP_DUP
        and script[1] == OP_HASH160
        and script[2] == OP_PUSH20
        and script[23] == OP_EQUALVERIFY
        and script[24] == OP_CHECKSIG
    )


def deserialize_outputs(raw: bytes) -> list[TxOutput]:
    """
    Walk the transparent part of a transaction and return its outputs.

    Inputs are skipped structurally. Raises TruncatedDataError on any
    out-of-range read.
    """
    reader = ByteReader(raw)

    version = reader.read_uint32_le()
    if version & OVERWINTERED_FLAG:
        reader.skip(4)  # nVersionGroupId

    input_count = reader.read_count(MIN_INPUT_SIZE)
    for _ in range(input_count):
        reader.skip(36)  # prevout hash + index
        reader.skip(reader.read_varint())
        reader.skip(4)  # sequence

    output_count = reader.read_count(MIN_OUTPUT_SIZE)
    outputs: list[TxOutput] = []
    for _ in range(output_count):
        value = reader.read_uint64_le()
        script = reader.read(reader.read_varint())
        outputs.append(TxOutput(value, script))

    return outputs


def parse_outputs_for_address(raw: bytes, target_address: str) -> int:
    """
    Sum the values of P2PKH outputs paying ``target_address``.

    Spends are not resolved against earlier outputs, so this is the amount
    received by the address in this transaction, never a net figure. Returns
    0 for truncated or malformed transactions.
    """
    try:
        target_hash = address_to_pubkey_hash(target_address)
    except InvalidAddressError as e:
        logger.warning(f"Cannot match outputs for {target_address!r}: {e}")
        return 0

    try:
        outputs = deserialize_outputs(raw)
    except TruncatedDataError as e:
        logger.warning(f"Skipping malformed transaction ({len(raw)} bytes): {e}")
        return 0

    total = 0
    for index, output in enumerate(outputs):
        if is_p2pkh_script(output.script) and output.script[3:23] == target_hash:
            logger.debug(f"Output {index} pays {target_address}: {output.value} zatoshis")
            total += output.value

    return total
