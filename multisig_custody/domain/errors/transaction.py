"""Transaction proposal errors.

Constraints:
- Signatures are only accepted while a proposal is PENDING
- One signature per signer per signing attempt
- Every input of a proposal must be live and owned by one multisig address
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from multisig_custody.domain.errors.base import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from multisig_custody.domain.models.multisig_transaction import (
        TransactionStatus,
    )


class InvalidPayloadError(ValidationError):
    """Raised when a transaction payload cannot be parsed.

    HTTP Status: 400 Bad Request
    """

    slug = "invalid-payload"
    title = "Invalid Transaction Payload"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid transaction payload: {reason}")

    def context(self) -> dict[str, Any]:
        return {"reason": self.reason}


class OutpointConsumedError(ValidationError):
    """Raised when an input references a cell that is not live.

    HTTP Status: 400 Bad Request

    Attributes:
        outpoint: ``tx_hash:index`` of the input.
        status: Status reported by the chain (``dead``, ``unknown``...).
    """

    slug = "outpoint-consumed"
    title = "Outpoint Consumed"

    def __init__(self, outpoint: str, status: str) -> None:
        self.outpoint = outpoint
        self.status = status
        super().__init__(f"Invalid outpoint {outpoint}: cell is {status}")

    def context(self) -> dict[str, Any]:
        return {"outpoint": self.outpoint, "cell_status": self.status}


class OutpointNotOwnedError(ValidationError):
    """Raised when inputs do not all belong to the same multisig address.

    HTTP Status: 400 Bad Request

    Attributes:
        outpoint: The first input that broke ownership.
        expected_address: Owner resolved from earlier inputs (None when the
            cell is not locked by the multisig script at all).
        actual_address: Owner resolved from this input.
    """

    slug = "outpoint-not-owned"
    title = "Outpoint Not Owned"

    def __init__(
        self,
        outpoint: str,
        expected_address: str | None,
        actual_address: str,
    ) -> None:
        self.outpoint = outpoint
        self.expected_address = expected_address
        self.actual_address = actual_address
        super().__init__(
            f"Invalid outpoint {outpoint}: owned by {actual_address}, "
            f"expected {expected_address or 'a multisig lock'}"
        )

    def context(self) -> dict[str, Any]:
        return {
            "outpoint": self.outpoint,
            "expected_address": self.expected_address,
            "actual_address": self.actual_address,
        }


class InvalidSignerError(AuthorizationError):
    """Raised when a proposer or co-signer is not a signer of the owning account.

    HTTP Status: 403 Forbidden
    """

    slug = "invalid-signer"
    title = "Invalid Signer"

    def __init__(self, identity: str, address: str) -> None:
        self.identity = identity
        self.address = address
        super().__init__(f"Identity {identity} cannot sign for {address}")

    def context(self) -> dict[str, Any]:
        return {"identity": self.identity, "address": self.address}


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction is unknown or hidden from the caller.

    A transaction is hidden when the caller is not a signer of the account
    that owns it; both cases look the same to the caller.

    HTTP Status: 404 Not Found
    """

    slug = "transaction-not-found"
    title = "Transaction Not Found"

    def __init__(self, tx_id: str) -> None:
        self.tx_id = tx_id
        super().__init__(f"Transaction {tx_id} not found")

    def context(self) -> dict[str, Any]:
        return {"tx_id": self.tx_id}


class TransactionAlreadyExistsError(ConflictError):
    """Raised when a payload is proposed again while its proposal is live.

    Only FAILED proposals may be re-proposed (revived).

    HTTP Status: 409 Conflict
    """

    slug = "transaction-exists"
    title = "Transaction Already Proposed"

    def __init__(self, tx_id: str, status: TransactionStatus) -> None:
        self.tx_id = tx_id
        self.status = status
        super().__init__(
            f"Transaction {tx_id} already proposed (status {status.value})"
        )

    def context(self) -> dict[str, Any]:
        return {"tx_id": self.tx_id, "tx_status": self.status.value}


class InvalidTransactionStateError(ConflictError):
    """Raised when an operation requires a different transaction status.

    Covers signing or rejecting a proposal that is no longer PENDING and
    any status change outside the transition matrix.

    HTTP Status: 409 Conflict

    Attributes:
        tx_id: The transaction id.
        from_status: Current status.
        to_status: Requested status (None for non-transition operations).
    """

    slug = "invalid-state"
    title = "Invalid Transaction State"

    def __init__(
        self,
        tx_id: str,
        from_status: TransactionStatus,
        to_status: TransactionStatus | None = None,
        allowed: list[TransactionStatus] | None = None,
        reason: str | None = None,
    ) -> None:
        self.tx_id = tx_id
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed or []
        if to_status is None:
            message = (
                f"Transaction {tx_id} is {from_status.value}; "
                f"{reason or 'operation requires PENDING'}"
            )
        else:
            allowed_str = (
                f" Valid transitions: {[s.value for s in self.allowed]}"
                if self.allowed
                else ""
            )
            message = (
                f"Invalid transition for {tx_id}: "
                f"{from_status.value} -> {to_status.value}.{allowed_str}"
            )
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value if self.to_status else None,
        }


class AlreadySignedError(ConflictError):
    """Raised when a signer submits a different signature for the same attempt.

    Re-submitting the identical signature is accepted as a no-op; only a
    conflicting second signature is an error.

    HTTP Status: 409 Conflict
    """

    slug = "already-signed"
    title = "Already Signed"

    def __init__(self, tx_id: str, signer: str) -> None:
        self.tx_id = tx_id
        self.signer = signer
        super().__init__(
            f"Signer {signer} already submitted a different signature for {tx_id}"
        )

    def context(self) -> dict[str, Any]:
        return {"tx_id": self.tx_id, "signer": self.signer}
