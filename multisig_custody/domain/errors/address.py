"""Address and signer-set derivation errors.

Raised by the address codec when a signer identity or a threshold cannot be
turned into a multisig spending configuration.
"""

from __future__ import annotations

from typing import Any

from multisig_custody.domain.errors.base import ValidationError


class InvalidAddressError(ValidationError):
    """Raised when an address string cannot be decoded.

    Covers bad bech32 checksums, unknown payload formats, truncated
    payloads and addresses for a different network.

    HTTP Status: 400 Bad Request

    Attributes:
        address: The offending address string.
        reason: Why decoding failed.
    """

    slug = "invalid-address"
    title = "Invalid Address"

    def __init__(self, address: str, reason: str) -> None:
        """Initialize the error.

        Args:
            address: The offending address string.
            reason: Why decoding failed.
        """
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid address {address!r}: {reason}")

    def context(self) -> dict[str, Any]:
        return {"address": self.address, "reason": self.reason}


class UnsupportedLockScriptError(ValidationError):
    """Raised when a signer identity uses a lock family that cannot co-sign.

    Only secp256k1-blake160 identities (sighash, or single-key multisig with
    a 20-byte public-key hash) can take part in a multisig signer set.
    Contract-custody locks carry no raw key hash to put in the config.

    HTTP Status: 400 Bad Request

    Attributes:
        address: The signer address.
        code_hash: Hex code hash of the signer's lock script.
    """

    slug = "unsupported-lock-script"
    title = "Unsupported Lock Script"

    def __init__(self, address: str, code_hash: str) -> None:
        """Initialize the error.

        Args:
            address: The signer address.
            code_hash: Hex code hash of the signer's lock script.
        """
        self.address = address
        self.code_hash = code_hash
        super().__init__(
            f"Signer {address} uses unsupported lock script {code_hash}; "
            "only secp256k1-blake160 identities can join a multisig account"
        )

    def context(self) -> dict[str, Any]:
        return {"address": self.address, "code_hash": self.code_hash}


class InvalidThresholdError(ValidationError):
    """Raised when M-of-N parameters are inconsistent.

    HTTP Status: 400 Bad Request

    Attributes:
        threshold: The requested threshold M.
        signer_count: The number of signers N.
    """

    slug = "invalid-threshold"
    title = "Invalid Threshold"

    def __init__(self, threshold: int, signer_count: int, reason: str) -> None:
        """Initialize the error.

        Args:
            threshold: The requested threshold M.
            signer_count: The number of signers N.
            reason: Which bound was violated.
        """
        self.threshold = threshold
        self.signer_count = signer_count
        super().__init__(
            f"Invalid threshold {threshold} for {signer_count} signers: {reason}"
        )

    def context(self) -> dict[str, Any]:
        return {"threshold": self.threshold, "signer_count": self.signer_count}


class DuplicateSignerError(ValidationError):
    """Raised when the same public-key hash appears twice in a signer set.

    HTTP Status: 400 Bad Request
    """

    slug = "duplicate-signer"
    title = "Duplicate Signer"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Signer {address} appears more than once")

    def context(self) -> dict[str, Any]:
        return {"address": self.address}
