"""Transaction proposal models and the proposal state machine.

State Transition Matrix:
- PENDING -> COMMITTED, REJECTED, FAILED
- FAILED -> PENDING (revival), COMMITTED (external reconcile)
- COMMITTED -> (terminal)
- REJECTED -> (terminal)

Signatures are grouped by ``attempt``. Reviving a FAILED proposal starts a
new attempt, so a fresh signature round never mixes with the signatures of
a witness that already failed to broadcast.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum

from multisig_custody.domain.errors.transaction import InvalidTransactionStateError
from multisig_custody.domain.models.ckb_transaction import CkbTransaction
from multisig_custody.domain.models.multisig_account import utc_now

SIGNATURE_LENGTH = 65

# How long a broadcast claim blocks other writers before it is treated as abandoned
DEFAULT_CLAIM_LEASE = timedelta(minutes=2)


class TransactionStatus(str, Enum):
    """Lifecycle of a transaction proposal."""

    PENDING = "pending"
    """Collecting signatures."""

    COMMITTED = "committed"
    """Broadcast accepted by the node, or confirmed out of band."""

    REJECTED = "rejected"
    """Enough signers rejected that the threshold is unreachable."""

    FAILED = "failed"
    """Witness encoding or broadcast failed; may be revived."""

    def is_terminal(self) -> bool:
        return self in (TransactionStatus.COMMITTED, TransactionStatus.REJECTED)

    def allowed_targets(self) -> list[TransactionStatus]:
        return list(_VALID_TRANSITIONS[self])

    def can_transition_to(self, target: TransactionStatus) -> bool:
        return target in _VALID_TRANSITIONS[self]

    def transition_to(
        self, target: TransactionStatus, tx_id: str = ""
    ) -> TransactionStatus:
        """Return ``target`` if the move is allowed.

        Raises:
            InvalidTransactionStateError: If the move is outside the matrix.
        """
        if not self.can_transition_to(target):
            raise InvalidTransactionStateError(
                tx_id=tx_id,
                from_status=self,
                to_status=target,
                allowed=self.allowed_targets(),
            )
        return target


_VALID_TRANSITIONS: dict[TransactionStatus, tuple[TransactionStatus, ...]] = {
    TransactionStatus.PENDING: (
        TransactionStatus.COMMITTED,
        TransactionStatus.REJECTED,
        TransactionStatus.FAILED,
    ),
    TransactionStatus.FAILED: (
        TransactionStatus.PENDING,
        TransactionStatus.COMMITTED,
    ),
    TransactionStatus.COMMITTED: (),
    TransactionStatus.REJECTED: (),
}


def is_rejection_final(signer_count: int, rejection_count: int, threshold: int) -> bool:
    """True once the remaining signers can no longer reach the threshold."""
    remaining_possible = signer_count - rejection_count
    return remaining_possible < threshold


@dataclass(frozen=True)
class TransactionRecord:
    """A stored proposal.

    Attributes:
        tx_id: 0x-prefixed transaction hash (primary key).
        account_address: Owning multisig address.
        payload: ``TransactionView`` JSON text; holds the finalized witness
            once committed.
        status: Current lifecycle state.
        attempt: Signature round, starting at 1 and bumped on revival.
        broadcast_claimed: Set while one caller is encoding and broadcasting.
        claimed_at: When the current claim was taken; starts its lease.
        created_at: When the proposal was first stored.
        updated_at: Last status or payload change.
    """

    tx_id: str
    account_address: str
    payload: str
    status: TransactionStatus = TransactionStatus.PENDING
    attempt: int = 1
    broadcast_claimed: bool = False
    claimed_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def parsed(self) -> CkbTransaction:
        return CkbTransaction.from_json(self.payload)

    def claim_held(self, lease: timedelta, now: datetime | None = None) -> bool:
        """True while a broadcast claim exists and its lease has not run out.

        A claim left behind by a crashed process stops blocking writers
        once ``lease`` has passed since ``claimed_at``.
        """
        if not self.broadcast_claimed:
            return False
        if self.claimed_at is None:
            return True
        return (now or utc_now()) - self.claimed_at < lease

    def with_status(self, new_status: TransactionStatus) -> TransactionRecord:
        """Return a copy in ``new_status``; the transition must be allowed."""
        return replace(
            self,
            status=self.status.transition_to(new_status, self.tx_id),
            updated_at=utc_now(),
        )


@dataclass(frozen=True)
class SignatureRecord:
    tx_id: str
    signer_address: str
    signature: bytes
    attempt: int = 1
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if len(self.signature) != SIGNATURE_LENGTH:
            raise ValueError(
                f"signature must be {SIGNATURE_LENGTH} bytes, got {len(self.signature)}"
            )


@dataclass(frozen=True)
class RejectionRecord:
    tx_id: str
    signer_address: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TransactionErrorRecord:
    """Audit entry for a failed broadcast or failed re-validation."""

    tx_id: str
    actor: str
    message: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class BroadcastClaim:
    """Exclusive right to encode and broadcast one signature attempt."""

    record: TransactionRecord
    signatures: list[SignatureRecord]


@dataclass(frozen=True)
class RejectionOutcome:
    """Result of recording a rejection."""

    record: TransactionRecord
    rejection_count: int
    newly_rejected: bool


@dataclass(frozen=True)
class TransactionQuery:
    """Filter for listing an account's transactions.

    ``statuses`` and ``tx_ids`` restrict results when non-empty.
    """

    account_address: str
    statuses: frozenset[TransactionStatus] = frozenset()
    tx_ids: frozenset[str] = frozenset()
    offset: int = 0
    limit: int = 50

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if self.limit < 1:
            raise ValueError(f"limit must be positive, got {self.limit}")


@dataclass(frozen=True)
class EnrichedTransaction:
    """A listed proposal with its decoded destination and signer activity.

    ``errors`` is only populated for FAILED transactions.
    """

    record: TransactionRecord
    destination: str
    amount: int
    signers: list[str]
    rejecters: list[str]
    errors: list[TransactionErrorRecord]


@dataclass(frozen=True)
class TransactionPage:
    items: list[EnrichedTransaction]
    total: int
    offset: int
    limit: int


@dataclass(frozen=True)
class TransactionSummary:
    """Pending proposals for one account; ``pending_amount`` in shannons."""

    account_address: str
    pending_count: int
    pending_amount: int
