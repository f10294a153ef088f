"""In-memory stub for MultisigTransactionRepositoryProtocol.

Enforces the same rules as the SQL adapter:
- Unique signature per (transaction, signer, attempt)
- Unique rejection per (transaction, signer)
- Status changes only through ``TransactionStatus.transition_to``
- A per-transaction ``asyncio.Lock`` stands in for the row lock, so
  append/claim/settle sequences on one id are serialized
- Signatures and rejections are refused while an unexpired claim is held
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import replace
from datetime import timedelta

from multisig_custody.domain.errors.transaction import (
    AlreadySignedError,
    InvalidTransactionStateError,
    TransactionAlreadyExistsError,
    TransactionNotFoundError,
)
from multisig_custody.domain.models.multisig_account import normalize_identity, utc_now
from multisig_custody.domain.models.multisig_transaction import (
    DEFAULT_CLAIM_LEASE,
    BroadcastClaim,
    RejectionOutcome,
    RejectionRecord,
    SignatureRecord,
    TransactionErrorRecord,
    TransactionQuery,
    TransactionRecord,
    TransactionStatus,
    is_rejection_final,
)


class MultisigTransactionRepositoryStub:
    """In-memory implementation of MultisigTransactionRepositoryProtocol."""

    def __init__(self, claim_lease: timedelta = DEFAULT_CLAIM_LEASE) -> None:
        self._claim_lease = claim_lease
        self._records: dict[str, TransactionRecord] = {}
        self._signatures: list[SignatureRecord] = []
        self._rejections: list[RejectionRecord] = []
        self._errors: list[TransactionErrorRecord] = []
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, tx_id: str) -> TransactionRecord | None:
        return self._records.get(normalize_identity(tx_id))

    async def create_with_signature(
        self, record: TransactionRecord, signature: SignatureRecord
    ) -> TransactionRecord:
        tx_id = normalize_identity(record.tx_id)
        async with self._locks[tx_id]:
            existing = self._records.get(tx_id)
            if existing is not None:
                raise TransactionAlreadyExistsError(tx_id, existing.status)
            stored = replace(
                record,
                tx_id=tx_id,
                account_address=normalize_identity(record.account_address),
            )
            self._records[tx_id] = stored
            self._signatures.append(
                replace(
                    signature,
                    tx_id=tx_id,
                    signer_address=normalize_identity(signature.signer_address),
                    attempt=stored.attempt,
                )
            )
            return stored

    async def revive(
        self, tx_id: str, payload: str, signer: str, signature: bytes
    ) -> TransactionRecord:
        tx_id = normalize_identity(tx_id)
        async with self._locks[tx_id]:
            record = self._require(tx_id)
            if record.status is not TransactionStatus.FAILED:
                raise TransactionAlreadyExistsError(tx_id, record.status)
            revived = replace(
                record.with_status(TransactionStatus.PENDING),
                payload=payload,
                attempt=record.attempt + 1,
                broadcast_claimed=False,
                claimed_at=None,
            )
            self._records[tx_id] = revived
            self._signatures.append(
                SignatureRecord(
                    tx_id=tx_id,
                    signer_address=normalize_identity(signer),
                    signature=signature,
                    attempt=revived.attempt,
                )
            )
            return revived

    async def append_signature(self, tx_id: str, signer: str, signature: bytes) -> int:
        tx_id = normalize_identity(tx_id)
        signer = normalize_identity(signer)
        async with self._locks[tx_id]:
            record = self._require(tx_id)
            self._require_open(record)
            current = self._attempt_signatures(record)
            for existing in current:
                if existing.signer_address == signer:
                    if existing.signature == signature:
                        return len(current)
                    raise AlreadySignedError(tx_id, signer)
            self._signatures.append(
                SignatureRecord(
                    tx_id=tx_id,
                    signer_address=signer,
                    signature=signature,
                    attempt=record.attempt,
                )
            )
            return len(current) + 1

    async def claim_broadcast(self, tx_id: str, threshold: int) -> BroadcastClaim | None:
        tx_id = normalize_identity(tx_id)
        async with self._locks[tx_id]:
            record = self._require(tx_id)
            now = utc_now()
            if record.status is not TransactionStatus.PENDING or record.claim_held(
                self._claim_lease, now
            ):
                return None
            signatures = self._attempt_signatures(record)
            if len(signatures) < threshold:
                return None
            claimed = replace(
                record, broadcast_claimed=True, claimed_at=now, updated_at=now
            )
            self._records[tx_id] = claimed
            return BroadcastClaim(record=claimed, signatures=signatures)

    async def mark_committed(self, tx_id: str, payload: str) -> TransactionRecord:
        tx_id = normalize_identity(tx_id)
        async with self._locks[tx_id]:
            record = self._require(tx_id)
            committed = replace(
                record.with_status(TransactionStatus.COMMITTED),
                payload=payload,
                broadcast_claimed=False,
                claimed_at=None,
            )
            self._records[tx_id] = committed
            return committed

    async def mark_failed(self, tx_id: str, actor: str, message: str) -> TransactionRecord:
        tx_id = normalize_identity(tx_id)
        async with self._locks[tx_id]:
            record = self._require(tx_id)
            failed = replace(
                record.with_status(TransactionStatus.FAILED),
                broadcast_claimed=False,
                claimed_at=None,
            )
            self._records[tx_id] = failed
            self._errors.append(
                TransactionErrorRecord(
                    tx_id=tx_id, actor=normalize_identity(actor), message=message
                )
            )
            return failed

    async def record_error(self, tx_id: str, actor: str, message: str) -> None:
        tx_id = normalize_identity(tx_id)
        self._require(tx_id)
        self._errors.append(
            TransactionErrorRecord(
                tx_id=tx_id, actor=normalize_identity(actor), message=message
            )
        )

    async def record_rejection(
        self, tx_id: str, signer: str, signer_count: int, threshold: int
    ) -> RejectionOutcome:
        tx_id = normalize_identity(tx_id)
        signer = normalize_identity(signer)
        async with self._locks[tx_id]:
            record = self._require(tx_id)
            self._require_open(record)

            rejecters = {r.signer_address for r in self._rejections if r.tx_id == tx_id}
            if signer not in rejecters:
                self._rejections.append(RejectionRecord(tx_id=tx_id, signer_address=signer))
                rejecters.add(signer)

            newly_rejected = is_rejection_final(signer_count, len(rejecters), threshold)
            if newly_rejected:
                record = record.with_status(TransactionStatus.REJECTED)
                self._records[tx_id] = record
            return RejectionOutcome(
                record=record,
                rejection_count=len(rejecters),
                newly_rejected=newly_rejected,
            )

    async def mark_externally_committed(self, tx_ids: Sequence[str]) -> list[str]:
        changed: list[str] = []
        for tx_id in tx_ids:
            tx_id = normalize_identity(tx_id)
            async with self._locks[tx_id]:
                record = self._records.get(tx_id)
                if record is None or not record.status.can_transition_to(
                    TransactionStatus.COMMITTED
                ):
                    continue
                self._records[tx_id] = replace(
                    record.with_status(TransactionStatus.COMMITTED),
                    broadcast_claimed=False,
                    claimed_at=None,
                )
                changed.append(tx_id)
        return changed

    async def list_signatures(
        self, tx_id: str, attempt: int | None = None
    ) -> list[SignatureRecord]:
        tx_id = normalize_identity(tx_id)
        return [
            s
            for s in self._signatures
            if s.tx_id == tx_id and (attempt is None or s.attempt == attempt)
        ]

    async def list_rejections(self, tx_id: str) -> list[RejectionRecord]:
        tx_id = normalize_identity(tx_id)
        return [r for r in self._rejections if r.tx_id == tx_id]

    async def list_errors(self, tx_id: str) -> list[TransactionErrorRecord]:
        tx_id = normalize_identity(tx_id)
        return [e for e in self._errors if e.tx_id == tx_id]

    async def query(self, query: TransactionQuery) -> tuple[list[TransactionRecord], int]:
        address = normalize_identity(query.account_address)
        matches = [
            r
            for r in self._records.values()
            if r.account_address == address
            and (not query.statuses or r.status in query.statuses)
            and (not query.tx_ids or r.tx_id in query.tx_ids)
        ]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches[query.offset : query.offset + query.limit], len(matches)

    async def list_pending(self, account_address: str) -> list[TransactionRecord]:
        address = normalize_identity(account_address)
        return [
            r
            for r in self._records.values()
            if r.account_address == address and r.status is TransactionStatus.PENDING
        ]

    # Test helper methods

    def get_stored_signatures(self, tx_id: str) -> list[SignatureRecord]:
        """All signatures across every attempt, in insertion order."""
        return [s for s in self._signatures if s.tx_id == normalize_identity(tx_id)]

    def reset(self) -> None:
        """Reset all stored data. Useful between tests."""
        self._records.clear()
        self._signatures.clear()
        self._rejections.clear()
        self._errors.clear()

    def _require(self, tx_id: str) -> TransactionRecord:
        record = self._records.get(tx_id)
        if record is None:
            raise TransactionNotFoundError(tx_id)
        return record

    def _require_open(self, record: TransactionRecord) -> None:
        if record.status is not TransactionStatus.PENDING:
            raise InvalidTransactionStateError(record.tx_id, record.status)
        if record.claim_held(self._claim_lease):
            raise InvalidTransactionStateError(
                record.tx_id, record.status, reason="broadcast already in progress"
            )

    def _attempt_signatures(self, record: TransactionRecord) -> list[SignatureRecord]:
        return [
            s
            for s in self._signatures
            if s.tx_id == record.tx_id and s.attempt == record.attempt
        ]
