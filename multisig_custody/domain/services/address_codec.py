"""Multisig address derivation and CKB address encoding.

The spending config blob is what the multisig lock script reads from the
witness:

    [reserved=0x00, require_first_n=0x00, threshold M, signer count N]
    || pubkey_hash_1 || ... || pubkey_hash_N

Signer order is significant and kept exactly as supplied. The lock args
are Hash160(config blob); the account address is the full-format
(bech32m) encoding of ``Script(multisig code hash, type, args)``.

All operations are pure and deterministic for a given network profile.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from multisig_custody.domain.errors.address import (
    DuplicateSignerError,
    InvalidAddressError,
    InvalidThresholdError,
    UnsupportedLockScriptError,
)
from multisig_custody.domain.models.ckb_transaction import HashType, Script, to_hex
from multisig_custody.domain.models.multisig_account import normalize_identity
from multisig_custody.domain.models.network import (
    LEGACY_MULTISIG_CODE_HASH,
    NetworkProfile,
)
from multisig_custody.domain.primitives.bech32 import (
    Bech32Error,
    Bech32Variant,
    decode_payload,
    encode_payload,
)
from multisig_custody.domain.primitives.ckb_hash import HASH160_LENGTH, hash160

# RFC-0021 payload format types
FORMAT_FULL = 0x00
FORMAT_SHORT = 0x01
FORMAT_FULL_DATA = 0x02
FORMAT_FULL_TYPE = 0x04

SHORT_CODE_HASH_INDEX_SIGHASH = 0x00
SHORT_CODE_HASH_INDEX_MULTISIG = 0x01

MAX_SIGNERS = 255
CONFIG_HEADER_LENGTH = 4


@dataclass(frozen=True)
class DerivedAccount:
    """Result of deriving a multisig account from a signer set.

    Attributes:
        address: The multisig account address.
        config_blob: Canonical spending config (header plus key hashes).
        lock_args: Hash160 of ``config_blob``.
        signers: The signer addresses, normalized, in supplied order.
        threshold: Signatures required.
    """

    address: str
    config_blob: bytes
    lock_args: bytes
    signers: tuple[str, ...]
    threshold: int


class AddressCodec:
    """Encodes and decodes CKB addresses for one network."""

    def __init__(self, network: NetworkProfile) -> None:
        self._network = network

    @property
    def network(self) -> NetworkProfile:
        return self._network

    def encode(self, script: Script) -> str:
        """Encode a lock script as a full-format address."""
        payload = (
            bytes([FORMAT_FULL])
            + script.code_hash
            + bytes([script.hash_type.code])
            + script.args
        )
        return encode_payload(self._network.hrp, payload, Bech32Variant.BECH32M)

    def decode(self, address: str) -> Script:
        """Decode any supported address format into its lock script.

        Raises:
            InvalidAddressError: On a bad checksum, an unknown or truncated
                payload, the wrong checksum variant, or another network's
                prefix.
        """
        text = address.strip()
        try:
            hrp, payload, variant = decode_payload(text)
        except Bech32Error as exc:
            raise InvalidAddressError(address, str(exc)) from exc

        if hrp != self._network.hrp:
            raise InvalidAddressError(
                address,
                f"prefix {hrp!r} does not belong to {self._network.name}",
            )
        if not payload:
            raise InvalidAddressError(address, "empty payload")

        format_type, body = payload[0], payload[1:]
        if format_type == FORMAT_FULL:
            if variant is not Bech32Variant.BECH32M:
                raise InvalidAddressError(address, "full format requires bech32m")
            if len(body) < 33:
                raise InvalidAddressError(address, "truncated full-format payload")
            try:
                hash_type = HashType.from_code(body[32])
            except ValueError as exc:
                raise InvalidAddressError(address, str(exc)) from exc
            return Script(code_hash=body[:32], hash_type=hash_type, args=body[33:])

        if variant is not Bech32Variant.BECH32:
            raise InvalidAddressError(
                address, "deprecated address formats require bech32"
            )
        if format_type == FORMAT_SHORT:
            if len(body) != 1 + HASH160_LENGTH:
                raise InvalidAddressError(address, "short-format args must be 20 bytes")
            index = body[0]
            if index == SHORT_CODE_HASH_INDEX_SIGHASH:
                code_hash = self._network.sighash_code_hash
            elif index == SHORT_CODE_HASH_INDEX_MULTISIG:
                code_hash = LEGACY_MULTISIG_CODE_HASH
            else:
                raise InvalidAddressError(
                    address, f"unsupported short-format code hash index {index}"
                )
            return Script(code_hash=code_hash, hash_type=HashType.TYPE, args=body[1:])
        if format_type in (FORMAT_FULL_DATA, FORMAT_FULL_TYPE):
            if len(body) < 32:
                raise InvalidAddressError(address, "truncated full-format payload")
            hash_type = HashType.DATA if format_type == FORMAT_FULL_DATA else HashType.TYPE
            return Script(code_hash=body[:32], hash_type=hash_type, args=body[32:])

        raise InvalidAddressError(address, f"unknown payload format {format_type:#04x}")

    def is_multisig_lock(self, script: Script) -> bool:
        return (
            script.hash_type is HashType.TYPE
            and script.code_hash
            in (self._network.multisig_code_hash, LEGACY_MULTISIG_CODE_HASH)
            and len(script.args) == HASH160_LENGTH
        )

    def signer_key_hash(self, address: str) -> bytes:
        """Return the 20-byte key hash a signer address contributes.

        Raises:
            InvalidAddressError: If the address cannot be decoded.
            UnsupportedLockScriptError: If the lock is not a
                secp256k1-blake160 identity.
        """
        script = self.decode(address)
        if script.hash_type is HashType.TYPE and len(script.args) == HASH160_LENGTH:
            if script.code_hash == self._network.sighash_code_hash:
                return script.args
            if self.is_multisig_lock(script):
                return script.args
        raise UnsupportedLockScriptError(address, to_hex(script.code_hash))

    def build_config_blob(self, key_hashes: Sequence[bytes], threshold: int) -> bytes:
        header = bytes([0x00, 0x00, threshold, len(key_hashes)])
        return header + b"".join(key_hashes)

    def derive(self, signers: Sequence[str], threshold: int) -> DerivedAccount:
        """Derive the multisig address and config blob for a signer set.

        Args:
            signers: Signer addresses in the order that defines the account.
            threshold: Required signatures (1..N).

        Raises:
            InvalidThresholdError: If threshold or signer count is out of range.
            InvalidAddressError: If a signer address is malformed.
            UnsupportedLockScriptError: If a signer cannot co-sign.
            DuplicateSignerError: If two signers share a key hash.
        """
        count = len(signers)
        if count == 0 or count > MAX_SIGNERS:
            raise InvalidThresholdError(
                threshold, count, f"signer count must be 1..{MAX_SIGNERS}"
            )
        if threshold < 1:
            raise InvalidThresholdError(threshold, count, "threshold must be at least 1")
        if threshold > count:
            raise InvalidThresholdError(
                threshold, count, "threshold exceeds signer count"
            )

        normalized = tuple(normalize_identity(s) for s in signers)
        key_hashes: list[bytes] = []
        for signer in normalized:
            key_hash = self.signer_key_hash(signer)
            if key_hash in key_hashes:
                raise DuplicateSignerError(signer)
            key_hashes.append(key_hash)

        config_blob = self.build_config_blob(key_hashes, threshold)
        lock_args = hash160(config_blob)
        address = self.encode(
            Script(
                code_hash=self._network.multisig_code_hash,
                hash_type=HashType.TYPE,
                args=lock_args,
            )
        )
        return DerivedAccount(
            address=address,
            config_blob=config_blob,
            lock_args=lock_args,
            signers=normalized,
            threshold=threshold,
        )

    def parse_config_blob(self, config_blob: bytes) -> tuple[int, list[bytes]]:
        """Split a config blob into ``(threshold, key_hashes)``."""
        if len(config_blob) < CONFIG_HEADER_LENGTH:
            raise ValueError("config blob shorter than its header")
        threshold, count = config_blob[2], config_blob[3]
        if len(config_blob) != CONFIG_HEADER_LENGTH + HASH160_LENGTH * count:
            raise ValueError("config blob length does not match signer count")
        body = config_blob[CONFIG_HEADER_LENGTH:]
        return threshold, [
            body[i : i + HASH160_LENGTH] for i in range(0, len(body), HASH160_LENGTH)
        ]
