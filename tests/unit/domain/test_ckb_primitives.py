"""Unit tests for CKB hashing, bech32 and molecule primitives."""

import pytest

from multisig_custody.domain.primitives.bech32 import (
    Bech32Error,
    Bech32Variant,
    bech32_decode,
    decode_payload,
    encode_payload,
)
from multisig_custody.domain.primitives.ckb_hash import blake2b_256, hash160
from multisig_custody.domain.primitives.molecule import (
    MoleculeError,
    WitnessArgs,
    pack_bytes,
    pack_dynvec,
    pack_fixvec,
    unpack_table,
)


class TestCkbHash:
    """Tests for the personalized blake2b digest."""

    def test_empty_input_matches_ckb_reference(self) -> None:
        """The CKB hash of no data is a well-known constant."""
        assert blake2b_256(b"").hex() == (
            "44f4c69744d5f8c55d642062949dcae49bc4e7ef43d388c5a12f42b5633d163e"
        )

    def test_hash160_is_digest_prefix(self) -> None:
        data = b"multisig"
        assert hash160(data) == blake2b_256(data)[:20]
        assert len(hash160(data)) == 20


class TestBech32:
    """Tests for the bech32/bech32m codec."""

    def test_payload_round_trip_bech32m(self) -> None:
        payload = bytes(range(60))
        address = encode_payload("ckt", payload, Bech32Variant.BECH32M)

        hrp, decoded, variant = decode_payload(address)

        assert hrp == "ckt"
        assert decoded == payload
        assert variant is Bech32Variant.BECH32M

    def test_long_addresses_are_accepted(self) -> None:
        """CKB full addresses exceed the 90-character BIP-173 limit."""
        address = encode_payload("ckb", bytes(100), Bech32Variant.BECH32M)
        assert len(address) > 90
        assert decode_payload(address)[1] == bytes(100)

    def test_bad_checksum_rejected(self) -> None:
        address = encode_payload("ckb", b"\x00" * 21, Bech32Variant.BECH32)
        corrupted = address[:-1] + ("q" if address[-1] != "q" else "p")

        with pytest.raises(Bech32Error):
            bech32_decode(corrupted)

    def test_mixed_case_rejected(self) -> None:
        address = encode_payload("ckb", b"\x01" * 21, Bech32Variant.BECH32)
        mixed = address[:5] + address[5:].upper()

        with pytest.raises(Bech32Error):
            bech32_decode(mixed)


class TestMolecule:
    """Tests for molecule layouts."""

    def test_bytes_is_length_prefixed(self) -> None:
        assert pack_bytes(b"\xab\xcd") == b"\x02\x00\x00\x00\xab\xcd"

    def test_fixvec_prefixes_item_count(self) -> None:
        assert pack_fixvec([b"\x01", b"\x02"]) == b"\x02\x00\x00\x00\x01\x02"

    def test_empty_dynvec_is_header_only(self) -> None:
        assert pack_dynvec([]) == b"\x04\x00\x00\x00"

    def test_table_round_trip(self) -> None:
        fields = [b"\x01\x02", b"", b"\x03"]
        assert unpack_table(pack_dynvec(fields)) == fields

    def test_table_with_wrong_total_size_rejected(self) -> None:
        data = pack_dynvec([b"\x01"]) + b"\x00"
        with pytest.raises(MoleculeError):
            unpack_table(data)


class TestWitnessArgs:
    """Tests for the WitnessArgs table."""

    def test_default_serialization(self) -> None:
        """All-absent WitnessArgs is the 16-byte header."""
        assert WitnessArgs().to_bytes().hex() == "10000000100000001000000010000000"

    def test_empty_input_parses_to_default(self) -> None:
        assert WitnessArgs.from_bytes(b"") == WitnessArgs()

    def test_lock_only_layout(self) -> None:
        """A 65-byte lock gives an 85-byte table with the lock first."""
        data = WitnessArgs(lock=bytes(65)).to_bytes()

        assert len(data) == 85
        assert data[:20].hex() == "5500000010000000550000005500000041000000"

    def test_round_trip_keeps_all_fields(self) -> None:
        witness = WitnessArgs(lock=b"\x01" * 3, input_type=b"", output_type=b"\x09")
        assert WitnessArgs.from_bytes(witness.to_bytes()) == witness

    def test_wrong_field_count_rejected(self) -> None:
        with pytest.raises(MoleculeError):
            WitnessArgs.from_bytes(pack_dynvec([b"", b""]))
