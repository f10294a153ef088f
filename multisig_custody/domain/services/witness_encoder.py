"""Places partial signatures into a transaction's multisig witness.

Witness 0 carries a ``WitnessArgs`` whose ``lock`` field is

    config_blob || slot_1 || ... || slot_M     (each slot 65 bytes)

Each signature goes into the first slot that already holds it (no-op) or
is all zero. Slots are scanned from the end of the config blob. The lock
length must always be ``len(config_blob) + 65 * threshold``; a witness of
any other length was built for a different config and is refused.

Only a single lock group (witness index 0) is supported.
"""

from __future__ import annotations

from collections.abc import Sequence

from multisig_custody.domain.errors.witness import (
    InvalidSignatureError,
    MalformedWitnessError,
    TooManySignaturesError,
)
from multisig_custody.domain.models.ckb_transaction import CkbTransaction
from multisig_custody.domain.models.multisig_transaction import SIGNATURE_LENGTH
from multisig_custody.domain.primitives.molecule import MoleculeError, WitnessArgs

WITNESS_INDEX = 0
_EMPTY_SLOT = bytes(SIGNATURE_LENGTH)


def placeholder_lock(config_blob: bytes, threshold: int) -> bytes:
    """Lock field with the config blob and ``threshold`` empty slots."""
    return config_blob + bytes(SIGNATURE_LENGTH * threshold)


def encode_signatures(
    threshold: int,
    tx: CkbTransaction,
    config_blob: bytes,
    signatures: Sequence[bytes],
) -> CkbTransaction:
    """Return ``tx`` with ``signatures`` placed in its multisig witness.

    Args:
        threshold: Number of signature slots (M).
        tx: Transaction to update; not modified.
        config_blob: The account's spending config.
        signatures: 65-byte signatures, in any order.

    Raises:
        InvalidSignatureError: If a signature is not 65 bytes.
        MalformedWitnessError: If witness 0 is unparsable or its lock field
            has the wrong length.
        TooManySignaturesError: If no slot is left for a new signature.
    """
    witnesses = list(tx.witnesses)
    while len(witnesses) <= WITNESS_INDEX:
        witnesses.append(b"")

    try:
        current = WitnessArgs.from_bytes(witnesses[WITNESS_INDEX])
    except MoleculeError as exc:
        raise MalformedWitnessError(f"witness 0 is not WitnessArgs: {exc}") from exc

    expected_length = len(config_blob) + SIGNATURE_LENGTH * threshold
    lock = bytearray(current.lock or placeholder_lock(config_blob, threshold))
    if len(lock) != expected_length:
        raise MalformedWitnessError(
            f"lock field is {len(lock)} bytes, expected {expected_length}",
            actual_length=len(lock),
            expected_length=expected_length,
        )

    for signature in signatures:
        if len(signature) != SIGNATURE_LENGTH:
            raise InvalidSignatureError(len(signature))
        _place(lock, len(config_blob), bytes(signature), threshold)

    witnesses[WITNESS_INDEX] = WitnessArgs(
        lock=bytes(lock),
        input_type=current.input_type,
        output_type=current.output_type,
    ).to_bytes()
    return tx.with_witnesses(witnesses)


def _place(lock: bytearray, start: int, signature: bytes, threshold: int) -> None:
    for offset in range(start, len(lock), SIGNATURE_LENGTH):
        slot = bytes(lock[offset : offset + SIGNATURE_LENGTH])
        if slot == signature:
            return
        if slot == _EMPTY_SLOT:
            lock[offset : offset + SIGNATURE_LENGTH] = signature
            return
    raise TooManySignaturesError(threshold)
