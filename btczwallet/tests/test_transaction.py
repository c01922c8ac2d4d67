"""
Tests for transparent transaction parsing.
"""

from __future__ import annotations

import pytest

from btczwallet.errors import TruncatedDataError
from btczwallet.wallet.address import hash160, pubkey_hash_to_address
from btczwallet.wallet.transaction import (
    ByteReader,
    compute_txid,
    deserialize_outputs,
    encode_varint,
    is_p2pkh_script,
    p2pkh_script,
    parse_outputs_for_address,
    parse_varint,
)

PKH_A = hash160(b"address-a")
PKH_B = hash160(b"address-b")
ADDRESS_A = pubkey_hash_to_address(PKH_A)
ADDRESS_B = pubkey_hash_to_address(PKH_B)


class TestVarint:
    @pytest.mark.parametrize(
        "encoded,value,consumed",
        [
            (b"\x00", 0, 1),
            (b"\xfc", 252, 1),
            (b"\xfd\xfd\x00", 253, 3),
            (b"\xfd\xff\xff", 65535, 3),
            (b"\xfe\x00\x00\x01\x00", 65536, 5),
            (b"\xff\x00\x00\x00\x00\x01\x00\x00\x00", 2**32, 9),
        ],
    )
    def test_decode(self, encoded: bytes, value: int, consumed: int) -> None:
        assert parse_varint(encoded) == (value, consumed)
        assert encode_varint(value) == encoded

    def test_decode_at_offset(self) -> None:
        assert parse_varint(b"\xaa\xbb\xfd\x00\x01", offset=2) == (256, 3)

    @pytest.mark.parametrize(
        "encoded", [b"", b"\xfd", b"\xfd\x01", b"\xfe\x00\x00", b"\xff" + b"\x00" * 7]
    )
    def test_truncated(self, encoded: bytes) -> None:
        assert parse_varint(encoded) == (0, 0)

    def test_offset_past_end(self) -> None:
        assert parse_varint(b"\x01", offset=5) == (0, 0)

    def test_negative_offset(self) -> None:
        assert parse_varint(b"\x01", offset=-1) == (0, 0)


class TestByteReader:
    def test_reads_advance(self) -> None:
        reader = ByteReader(b"\x01\x00\x00\x00" + b"\x02" + b"\xff" * 8)
        assert reader.read_uint32_le() == 1
        assert reader.read_varint() == 2
        assert reader.read_uint64_le() == 2**64 - 1
        assert reader.remaining == 0

    def test_negative_offset_rejected(self) -> None:
        reader = ByteReader(b"\x00\x01", offset=-1)
        with pytest.raises(TruncatedDataError):
            reader.read(1)

    def test_read_past_end(self) -> None:
        reader = ByteReader(b"\x00\x01")
        with pytest.raises(TruncatedDataError):
            reader.read(3)
        # a failed read does not move the cursor
        assert reader.offset == 0

    def test_count_bounded_by_remaining(self) -> None:
        reader = ByteReader(b"\x05" + b"\x00" * 40)
        with pytest.raises(TruncatedDataError, match="exceeds remaining"):
            reader.read_count(9)

        reader = ByteReader(b"\x04" + b"\x00" * 36)
        assert reader.read_count(9) == 4


def test_p2pkh_script_shape():
    script = p2pkh_script(PKH_A)
    assert len(script) == 25
    assert script[:3] == b"\x76\xa9\x14"
    assert script[3:23] == PKH_A
    assert script[23:] == b"\x88\xac"
    assert is_p2pkh_script(script)
    assert not is_p2pkh_script(script[:-1])
    assert not is_p2pkh_script(b"\xa9\x14" + PKH_A + b"\x87")

    with pytest.raises(ValueError):
        p2pkh_script(b"\x00" * 19)


def test_compute_txid_is_reversed_double_sha256():
    # Bitcoin genesis coinbase
    raw = bytes.fromhex(
        "01000000010000000000000000000000000000000000000000000000000000000000000000"
        "ffffffff4d04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368"
        "616e63656c6c6f72206f6e206272696e6b206f66207365636f6e64206261696c6f757420"
        "666f722062616e6b73ffffffff0100f2052a01000000434104678afdb0fe5548271967f1a6"
        "7130b7105cd6a828e03909a67962e0ea1f61deb649f6bc3f4cef38c4f35504e51ec112de5c"
        "384df7ba0b8d578a4c702b6bf11d5fac00000000"
    )
    assert compute_txid(raw) == (
        "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"
    )


class TestDeserializeOutputs:
    def test_outputs_in_order(self, make_tx) -> None:
        raw = make_tx([(1000, p2pkh_script(PKH_A)), (2000, b"\x6a\x00")], input_count=2)
        outputs = deserialize_outputs(raw)

        assert [o.value for o in outputs] == [1000, 2000]
        assert outputs[1].script == b"\x6a\x00"

    def test_overwintered_header(self, make_tx) -> None:
        raw = make_tx(
            [(5000, p2pkh_script(PKH_A))],
            version=0x80000004,
            version_group_id=0x892F2085,
        )
        assert [o.value for o in deserialize_outputs(raw)] == [5000]

    def test_no_outputs(self, make_tx) -> None:
        assert deserialize_outputs(make_tx([])) == []

    def test_truncated_script(self, make_tx) -> None:
        raw = make_tx([(1000, p2pkh_script(PKH_A))])
        with pytest.raises(TruncatedDataError):
            deserialize_outputs(raw[:-10])


class TestParseOutputsForAddress:
    """Summing P2PKH outputs to one address."""

    def test_single_match(self, make_tx) -> None:
        raw = make_tx([(150_000, p2pkh_script(PKH_A)), (70_000, p2pkh_script(PKH_B))])
        assert parse_outputs_for_address(raw, ADDRESS_A) == 150_000
        assert parse_outputs_for_address(raw, ADDRESS_B) == 70_000

    def test_multiple_matches_are_summed(self, make_tx) -> None:
        raw = make_tx(
            [
                (100, p2pkh_script(PKH_A)),
                (200, p2pkh_script(PKH_B)),
                (300, p2pkh_script(PKH_A)),
            ]
        )
        assert parse_outputs_for_address(raw, ADDRESS_A) == 400

    def test_no_match(self, make_tx) -> None:
        raw = make_tx([(100, p2pkh_script(PKH_B))])
        assert parse_outputs_for_address(raw, ADDRESS_A) == 0

    def test_non_p2pkh_with_same_hash_ignored(self, make_tx) -> None:
        p2sh_like = b"\xa9\x14" + PKH_A + b"\x87"
        raw = make_tx([(100, p2sh_like)])
        assert parse_outputs_for_address(raw, ADDRESS_A) == 0

    def test_overwintered_transaction(self, make_tx) -> None:
        raw = make_tx(
            [(42, p2pkh_script(PKH_A))],
            version=0x80000004,
            version_group_id=0x892F2085,
        )
        assert parse_outputs_for_address(raw, ADDRESS_A) == 42

    @pytest.mark.parametrize("raw", [b"", b"\x01\x00\x00"])
    def test_short_buffers(self, raw: bytes) -> None:
        assert parse_outputs_for_address(raw, ADDRESS_A) == 0

    def test_truncated_transaction(self, make_tx) -> None:
        raw = make_tx([(100, p2pkh_script(PKH_A)), (200, p2pkh_script(PKH_A))])
        assert parse_outputs_for_address(raw[:-15], ADDRESS_A) == 0

    def test_output_count_overflow(self) -> None:
        # version, zero inputs, then an output count far larger than the buffer
        raw = b"\x01\x00\x00\x00" + b"\x00" + b"\xff" + b"\xff" * 8 + b"\x00" * 20
        assert parse_outputs_for_address(raw, ADDRESS_A) == 0

    def test_oversized_script_length(self) -> None:
        raw = (
            b"\x01\x00\x00\x00"
            + b"\x00"  # no inputs
            + b"\x01"  # one output
            + (1000).to_bytes(8, "little")
            + b"\xfe\xff\xff\xff\x7f"  # script length beyond the buffer
            + p2pkh_script(PKH_A)
        )
        assert parse_outputs_for_address(raw, ADDRESS_A) == 0

    def test_invalid_target_address(self, make_tx) -> None:
        raw = make_tx([(100, p2pkh_script(PKH_A))])
        assert parse_outputs_for_address(raw, "t1short") == 0
