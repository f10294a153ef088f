"""Witness encoding errors.

Both errors mean the proposal's witness no longer matches the account's
spending configuration. Threshold evaluation fails, the transaction is
marked FAILED and the stored signatures stay intact.
"""

from __future__ import annotations

from typing import Any

from multisig_custody.domain.errors.base import EncodingError, ValidationError


class MalformedWitnessError(EncodingError):
    """Raised when the witness lock field has an unexpected shape.

    The lock field must be exactly ``len(config_blob) + 65 * threshold``
    bytes. Any other length means the witness was built for a stale or
    foreign configuration.

    Attributes:
        actual_length: Length of the lock field found (None if unparsable).
        expected_length: Length required by the account configuration.
    """

    slug = "malformed-witness"
    title = "Malformed Witness"

    def __init__(
        self,
        reason: str,
        actual_length: int | None = None,
        expected_length: int | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            reason: What is wrong with the witness.
            actual_length: Length of the lock field found.
            expected_length: Length required by the account configuration.
        """
        self.reason = reason
        self.actual_length = actual_length
        self.expected_length = expected_length
        super().__init__(f"Malformed witness: {reason}")

    def context(self) -> dict[str, Any]:
        return {
            "actual_length": self.actual_length,
            "expected_length": self.expected_length,
        }


class TooManySignaturesError(EncodingError):
    """Raised when every signature slot is taken and a new one arrives.

    Attributes:
        threshold: Number of signature slots in the lock field.
    """

    slug = "too-many-signatures"
    title = "Too Many Signatures"

    def __init__(self, threshold: int) -> None:
        self.threshold = threshold
        super().__init__(
            f"All {threshold} signature slots are occupied; cannot place another"
        )

    def context(self) -> dict[str, Any]:
        return {"threshold": self.threshold}


class InvalidSignatureError(ValidationError):
    """Raised when a submitted signature is not 65 bytes of hex.

    HTTP Status: 400 Bad Request
    """

    slug = "invalid-signature"
    title = "Invalid Signature"

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Signature must be 65 bytes, got {length}")

    def context(self) -> dict[str, Any]:
        return {"length": self.length}
