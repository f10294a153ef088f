"""Unit tests for placing signatures into the multisig witness."""

import pytest

from multisig_custody.domain.errors.witness import (
    InvalidSignatureError,
    MalformedWitnessError,
    TooManySignaturesError,
)
from multisig_custody.domain.models.ckb_transaction import CkbTransaction
from multisig_custody.domain.primitives.molecule import WitnessArgs
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.domain.services.witness_encoder import (
    encode_signatures,
    placeholder_lock,
)
from tests.helpers.ckb_builders import (
    out_point,
    parse,
    sighash_script,
    signature,
    transfer_payload,
)


@pytest.fixture
def config_blob(codec: AddressCodec, alice: str, bob: str, carol: str) -> bytes:
    """2-of-3 config."""
    return codec.derive([alice, bob, carol], 2).config_blob


def _tx(witness0: bytes = b"") -> CkbTransaction:
    return parse(
        transfer_payload([out_point(1)], sighash_script(8), 100, witnesses=[witness0])
    )


def _lock(tx: CkbTransaction) -> bytes:
    lock = WitnessArgs.from_bytes(tx.witnesses[0]).lock
    assert lock is not None
    return lock


class TestEncodeSignatures:
    """Tests for encode_signatures."""

    def test_fills_first_empty_slot(self, config_blob: bytes) -> None:
        result = encode_signatures(2, _tx(), config_blob, [signature(0xA1)])
        lock = _lock(result)

        assert lock[: len(config_blob)] == config_blob
        assert lock[len(config_blob) : len(config_blob) + 65] == signature(0xA1)
        assert lock[len(config_blob) + 65 :] == bytes(65)

    def test_two_signatures_fill_both_slots(self, config_blob: bytes) -> None:
        result = encode_signatures(
            2, _tx(), config_blob, [signature(0xA1), signature(0xB2)]
        )
        assert _lock(result) == config_blob + signature(0xA1) + signature(0xB2)

    def test_same_signature_is_not_counted_twice(self, config_blob: bytes) -> None:
        once = encode_signatures(2, _tx(), config_blob, [signature(0xA1)])
        twice = encode_signatures(2, once, config_blob, [signature(0xA1)])

        assert twice.witnesses == once.witnesses

    def test_no_free_slot_raises(self, config_blob: bytes) -> None:
        with pytest.raises(TooManySignaturesError):
            encode_signatures(
                2,
                _tx(),
                config_blob,
                [signature(1), signature(2), signature(3)],
            )

    def test_wrong_lock_length_raises(self, config_blob: bytes) -> None:
        witness = WitnessArgs(lock=placeholder_lock(config_blob, 3)).to_bytes()

        with pytest.raises(MalformedWitnessError) as exc_info:
            encode_signatures(2, _tx(witness), config_blob, [signature(1)])

        assert exc_info.value.expected_length == len(config_blob) + 130

    def test_unparsable_witness_raises(self, config_blob: bytes) -> None:
        with pytest.raises(MalformedWitnessError):
            encode_signatures(2, _tx(b"\x01\x02\x03"), config_blob, [signature(1)])

    def test_short_signature_rejected(self, config_blob: bytes) -> None:
        with pytest.raises(InvalidSignatureError):
            encode_signatures(2, _tx(), config_blob, [b"\x01" * 64])

    def test_other_witness_fields_preserved(self, config_blob: bytes) -> None:
        witness = WitnessArgs(input_type=b"\x07\x07", output_type=b"\x09").to_bytes()

        result = encode_signatures(2, _tx(witness), config_blob, [signature(1)])
        parsed = WitnessArgs.from_bytes(result.witnesses[0])

        assert parsed.input_type == b"\x07\x07"
        assert parsed.output_type == b"\x09"

    def test_missing_witness_list_is_created(self, config_blob: bytes) -> None:
        tx = parse(
            transfer_payload([out_point(1)], sighash_script(8), 100, witnesses=[])
        )
        result = encode_signatures(2, tx, config_blob, [signature(1)])

        assert len(result.witnesses) == 1
        assert _lock(result).startswith(config_blob + signature(1))

    def test_transaction_id_unchanged(self, config_blob: bytes) -> None:
        tx = _tx()
        result = encode_signatures(2, tx, config_blob, [signature(1)])
        assert result.tx_id == tx.tx_id
