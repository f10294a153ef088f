"""Byte-level primitives: bech32, CKB hashing and molecule serialization."""

from multisig_custody.domain.primitives.bech32 import (
    Bech32Error,
    Bech32Variant,
    decode_payload,
    encode_payload,
)
from multisig_custody.domain.primitives.ckb_hash import blake2b_256, hash160
from multisig_custody.domain.primitives.molecule import MoleculeError, WitnessArgs

__all__ = [
    "Bech32Error",
    "Bech32Variant",
    "MoleculeError",
    "WitnessArgs",
    "blake2b_256",
    "decode_payload",
    "encode_payload",
    "hash160",
]
