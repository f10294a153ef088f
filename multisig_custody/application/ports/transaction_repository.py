"""Multisig transaction repository port.

Concurrency contract: signature accumulation and threshold evaluation for
one transaction id are serialized by the store, not by the caller.

- ``append_signature`` locks the transaction row, checks PENDING and
  unclaimed, inserts and returns the signature count for the current
  attempt in the same store transaction.
- ``claim_broadcast`` locks the row and stamps a claim only when the
  transaction is PENDING, unclaimed and has at least ``threshold``
  signatures. Exactly one caller wins; only the winner encodes and
  broadcasts, outside any store transaction.
- ``record_rejection`` is refused while a claim is held, so a proposal
  being broadcast cannot become REJECTED underneath the claimant.
- ``mark_committed`` / ``mark_failed`` settle the claim. A claim whose
  lease has run out no longer blocks writers and can be taken again.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import Protocol

from multisig_custody.domain.models.multisig_transaction import (
    BroadcastClaim,
    RejectionOutcome,
    RejectionRecord,
    SignatureRecord,
    TransactionErrorRecord,
    TransactionQuery,
    TransactionRecord,
)


class MultisigTransactionRepositoryProtocol(Protocol):
    """Durable storage for proposals, signatures, rejections and errors."""

    @abstractmethod
    async def get(self, tx_id: str) -> TransactionRecord | None: ...

    @abstractmethod
    async def create_with_signature(
        self, record: TransactionRecord, signature: SignatureRecord
    ) -> TransactionRecord:
        """Insert a PENDING proposal and its first signature together.

        Raises:
            TransactionAlreadyExistsError: If the id is already stored.
        """
        ...

    @abstractmethod
    async def revive(
        self, tx_id: str, payload: str, signer: str, signature: bytes
    ) -> TransactionRecord:
        """Re-open a FAILED proposal with a new signature attempt.

        Raises:
            TransactionNotFoundError: If the id is unknown.
            TransactionAlreadyExistsError: If the proposal is not FAILED.
        """
        ...

    @abstractmethod
    async def append_signature(self, tx_id: str, signer: str, signature: bytes) -> int:
        """Add a signature for the current attempt and return the new count.

        Re-submitting the identical signature is a no-op.

        Raises:
            TransactionNotFoundError: If the id is unknown.
            InvalidTransactionStateError: If the proposal is not PENDING or
                a broadcast is in flight.
            AlreadySignedError: If the signer already gave a different
                signature in this attempt.
        """
        ...

    @abstractmethod
    async def claim_broadcast(self, tx_id: str, threshold: int) -> BroadcastClaim | None:
        """Claim the right to broadcast, or return None if not ready or taken."""
        ...

    @abstractmethod
    async def mark_committed(self, tx_id: str, payload: str) -> TransactionRecord:
        """Store the finalized payload and move to COMMITTED together."""
        ...

    @abstractmethod
    async def mark_failed(self, tx_id: str, actor: str, message: str) -> TransactionRecord:
        """Move to FAILED, release the claim and append an error row together."""
        ...

    @abstractmethod
    async def record_error(self, tx_id: str, actor: str, message: str) -> None: ...

    @abstractmethod
    async def record_rejection(
        self, tx_id: str, signer: str, signer_count: int, threshold: int
    ) -> RejectionOutcome:
        """Insert at most one rejection per signer and re-evaluate.

        Moves the proposal to REJECTED when ``signer_count - rejections``
        drops below ``threshold``.

        Raises:
            TransactionNotFoundError: If the id is unknown.
            InvalidTransactionStateError: If the proposal is not PENDING or
                a broadcast is in flight.
        """
        ...

    @abstractmethod
    async def mark_externally_committed(self, tx_ids: Sequence[str]) -> list[str]:
        """Move PENDING and FAILED proposals to COMMITTED; return changed ids."""
        ...

    @abstractmethod
    async def list_signatures(
        self, tx_id: str, attempt: int | None = None
    ) -> list[SignatureRecord]: ...

    @abstractmethod
    async def list_rejections(self, tx_id: str) -> list[RejectionRecord]: ...

    @abstractmethod
    async def list_errors(self, tx_id: str) -> list[TransactionErrorRecord]: ...

    @abstractmethod
    async def query(self, query: TransactionQuery) -> tuple[list[TransactionRecord], int]:
        """Return one page of matching records (newest first) and the total."""
        ...

    @abstractmethod
    async def list_pending(self, account_address: str) -> list[TransactionRecord]: ...
