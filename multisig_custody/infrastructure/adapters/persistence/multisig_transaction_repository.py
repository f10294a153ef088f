"""SQLAlchemy implementation of MultisigTransactionRepositoryProtocol.

Every read-modify-write starts by locking the transaction row
(``SELECT ... FOR UPDATE``) inside one ``session.begin()`` block, so
signature appends, broadcast claims, settlements and rejections on the
same id are serialized by the database. Signatures and rejections are
refused while a broadcast claim is held; a claim older than the lease no
longer blocks and may be taken again. Filters are built from SQLAlchemy
expressions only.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import Any

from sqlalchemy import ColumnElement, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

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
from multisig_custody.infrastructure.adapters.persistence.tables import (
    as_utc,
    rejections,
    signatures,
    transaction_errors,
    transactions,
)

logger = get_logger()


def _record(row: Any) -> TransactionRecord:
    return TransactionRecord(
        tx_id=row.tx_id,
        account_address=row.account_address,
        payload=row.payload,
        status=TransactionStatus(row.status),
        attempt=row.attempt,
        broadcast_claimed=bool(row.broadcast_claimed),
        claimed_at=as_utc(row.claimed_at) if row.claimed_at is not None else None,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _signature(row: Any) -> SignatureRecord:
    return SignatureRecord(
        tx_id=row.tx_id,
        signer_address=row.signer_address,
        signature=bytes(row.signature),
        attempt=row.attempt,
        created_at=as_utc(row.created_at),
    )


def _filters(query: TransactionQuery) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = [
        transactions.c.account_address == normalize_identity(query.account_address)
    ]
    if query.statuses:
        clauses.append(
            transactions.c.status.in_(sorted(s.value for s in query.statuses))
        )
    if query.tx_ids:
        clauses.append(transactions.c.tx_id.in_(sorted(query.tx_ids)))
    return clauses


class SqlMultisigTransactionRepository:
    """Proposals, signatures, rejections and errors in a relational store.

    Attributes:
        _session_factory: SQLAlchemy async session factory for DB access.
        _claim_lease: How long a broadcast claim blocks writers.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        claim_lease: timedelta = DEFAULT_CLAIM_LEASE,
    ) -> None:
        self._session_factory = session_factory
        self._claim_lease = claim_lease

    async def get(self, tx_id: str) -> TransactionRecord | None:
        async with self._session_factory() as session:
            row = (
                await session.execute(
                    select(transactions).where(
                        transactions.c.tx_id == normalize_identity(tx_id)
                    )
                )
            ).first()
        return _record(row) if row else None

    async def create_with_signature(
        self, record: TransactionRecord, signature: SignatureRecord
    ) -> TransactionRecord:
        tx_id = normalize_identity(record.tx_id)
        stored = TransactionRecord(
            tx_id=tx_id,
            account_address=normalize_identity(record.account_address),
            payload=record.payload,
            status=record.status,
            attempt=record.attempt,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        try:
            async with self._session_factory.begin() as session:
                existing = await session.scalar(
                    select(transactions.c.status).where(transactions.c.tx_id == tx_id)
                )
                if existing is not None:
                    raise TransactionAlreadyExistsError(tx_id, TransactionStatus(existing))
                await session.execute(
                    insert(transactions).values(
                        tx_id=tx_id,
                        account_address=stored.account_address,
                        payload=stored.payload,
                        status=stored.status.value,
                        attempt=stored.attempt,
                        broadcast_claimed=False,
                        claimed_at=None,
                        created_at=stored.created_at,
                        updated_at=stored.updated_at,
                    )
                )
                await session.execute(
                    insert(signatures).values(
                        tx_id=tx_id,
                        signer_address=normalize_identity(signature.signer_address),
                        signature=signature.signature,
                        attempt=stored.attempt,
                        created_at=signature.created_at,
                    )
                )
        except IntegrityError as exc:
            logger.warning("transaction_insert_conflict", tx_id=tx_id, error=str(exc))
            raise TransactionAlreadyExistsError(tx_id, TransactionStatus.PENDING) from exc
        return stored

    async def revive(
        self, tx_id: str, payload: str, signer: str, signature: bytes
    ) -> TransactionRecord:
        tx_id = normalize_identity(tx_id)
        async with self._session_factory.begin() as session:
            record = await self._lock(session, tx_id)
            if record.status is not TransactionStatus.FAILED:
                raise TransactionAlreadyExistsError(tx_id, record.status)
            revived = record.with_status(TransactionStatus.PENDING)
            attempt = record.attempt + 1
            await session.execute(
                update(transactions)
                .where(transactions.c.tx_id == tx_id)
                .values(
                    status=revived.status.value,
                    payload=payload,
                    attempt=attempt,
                    broadcast_claimed=False,
                    claimed_at=None,
                    updated_at=revived.updated_at,
                )
            )
            await session.execute(
                insert(signatures).values(
                    tx_id=tx_id,
                    signer_address=normalize_identity(signer),
                    signature=signature,
                    attempt=attempt,
                    created_at=utc_now(),
                )
            )
        return TransactionRecord(
            tx_id=tx_id,
            account_address=record.account_address,
            payload=payload,
            status=revived.status,
            attempt=attempt,
            created_at=record.created_at,
            updated_at=revived.updated_at,
        )

    async def append_signature(self, tx_id: str, signer: str, signature: bytes) -> int:
        tx_id = normalize_identity(tx_id)
        signer = normalize_identity(signer)
        async with self._session_factory.begin() as session:
            record = await self._lock(session, tx_id)
            self._require_open(record)

            existing = await session.scalar(
                select(signatures.c.signature).where(
                    signatures.c.tx_id == tx_id,
                    signatures.c.signer_address == signer,
                    signatures.c.attempt == record.attempt,
                )
            )
            if existing is not None:
                if bytes(existing) != signature:
                    raise AlreadySignedError(tx_id, signer)
            else:
                await session.execute(
                    insert(signatures).values(
                        tx_id=tx_id,
                        signer_address=signer,
                        signature=signature,
                        attempt=record.attempt,
                        created_at=utc_now(),
                    )
                )
            count = await session.scalar(
                select(func.count())
                .select_from(signatures)
                .where(
                    signatures.c.tx_id == tx_id,
                    signatures.c.attempt == record.attempt,
                )
            )
        return int(count or 0)

    async def claim_broadcast(self, tx_id: str, threshold: int) -> BroadcastClaim | None:
        tx_id = normalize_identity(tx_id)
        async with self._session_factory.begin() as session:
            record = await self._lock(session, tx_id)
            claimed_at = utc_now()
            if record.status is not TransactionStatus.PENDING or record.claim_held(
                self._claim_lease, claimed_at
            ):
                return None
            if record.broadcast_claimed:
                logger.warning(
                    "broadcast_claim_expired",
                    tx_id=tx_id,
                    claimed_at=record.claimed_at,
                )
            rows = await session.execute(
                select(signatures)
                .where(
                    signatures.c.tx_id == tx_id,
                    signatures.c.attempt == record.attempt,
                )
                .order_by(signatures.c.id)
            )
            attempt_signatures = [_signature(row) for row in rows]
            if len(attempt_signatures) < threshold:
                return None

            await session.execute(
                update(transactions)
                .where(transactions.c.tx_id == tx_id)
                .values(
                    broadcast_claimed=True,
                    claimed_at=claimed_at,
                    updated_at=claimed_at,
                )
            )
        return BroadcastClaim(
            record=TransactionRecord(
                tx_id=record.tx_id,
                account_address=record.account_address,
                payload=record.payload,
                status=record.status,
                attempt=record.attempt,
                broadcast_claimed=True,
                claimed_at=claimed_at,
                created_at=record.created_at,
                updated_at=claimed_at,
            ),
            signatures=attempt_signatures,
        )

    async def mark_committed(self, tx_id: str, payload: str) -> TransactionRecord:
        tx_id = normalize_identity(tx_id)
        async with self._session_factory.begin() as session:
            record = await self._lock(session, tx_id)
            committed = record.with_status(TransactionStatus.COMMITTED)
            await session.execute(
                update(transactions)
                .where(transactions.c.tx_id == tx_id)
                .values(
                    status=committed.status.value,
                    payload=payload,
                    broadcast_claimed=False,
                    claimed_at=None,
                    updated_at=committed.updated_at,
                )
            )
        return TransactionRecord(
            tx_id=tx_id,
            account_address=record.account_address,
            payload=payload,
            status=committed.status,
            attempt=record.attempt,
            created_at=record.created_at,
            updated_at=committed.updated_at,
        )

    async def mark_failed(self, tx_id: str, actor: str, message: str) -> TransactionRecord:
        tx_id = normalize_identity(tx_id)
        async with self._session_factory.begin() as session:
            record = await self._lock(session, tx_id)
            failed = record.with_status(TransactionStatus.FAILED)
            await session.execute(
                update(transactions)
                .where(transactions.c.tx_id == tx_id)
                .values(
                    status=failed.status.value,
                    broadcast_claimed=False,
                    claimed_at=None,
                    updated_at=failed.updated_at,
                )
            )
            await session.execute(
                insert(transaction_errors).values(
                    tx_id=tx_id,
                    actor=normalize_identity(actor),
                    message=message,
                    created_at=failed.updated_at,
                )
            )
        return TransactionRecord(
            tx_id=tx_id,
            account_address=record.account_address,
            payload=record.payload,
            status=failed.status,
            attempt=record.attempt,
            created_at=record.created_at,
            updated_at=failed.updated_at,
        )

    async def record_error(self, tx_id: str, actor: str, message: str) -> None:
        async with self._session_factory.begin() as session:
            await session.execute(
                insert(transaction_errors).values(
                    tx_id=normalize_identity(tx_id),
                    actor=normalize_identity(actor),
                    message=message,
                    created_at=utc_now(),
                )
            )

    async def record_rejection(
        self, tx_id: str, signer: str, signer_count: int, threshold: int
    ) -> RejectionOutcome:
        tx_id = normalize_identity(tx_id)
        signer = normalize_identity(signer)
        async with self._session_factory.begin() as session:
            record = await self._lock(session, tx_id)
            self._require_open(record)

            already = await session.scalar(
                select(rejections.c.signer_address).where(
                    rejections.c.tx_id == tx_id,
                    rejections.c.signer_address == signer,
                )
            )
            if already is None:
                await session.execute(
                    insert(rejections).values(
                        tx_id=tx_id, signer_address=signer, created_at=utc_now()
                    )
                )
            count = int(
                await session.scalar(
                    select(func.count())
                    .select_from(rejections)
                    .where(rejections.c.tx_id == tx_id)
                )
                or 0
            )

            newly_rejected = is_rejection_final(signer_count, count, threshold)
            if newly_rejected:
                record = record.with_status(TransactionStatus.REJECTED)
                await session.execute(
                    update(transactions)
                    .where(transactions.c.tx_id == tx_id)
                    .values(status=record.status.value, updated_at=record.updated_at)
                )
        return RejectionOutcome(
            record=record, rejection_count=count, newly_rejected=newly_rejected
        )

    async def mark_externally_committed(self, tx_ids: Sequence[str]) -> list[str]:
        ids = sorted({normalize_identity(t) for t in tx_ids})
        if not ids:
            return []
        changed: list[str] = []
        async with self._session_factory.begin() as session:
            rows = await session.execute(
                select(transactions)
                .where(transactions.c.tx_id.in_(ids))
                .order_by(transactions.c.tx_id)
                .with_for_update()
            )
            now = utc_now()
            for row in rows.all():
                record = _record(row)
                if not record.status.can_transition_to(TransactionStatus.COMMITTED):
                    continue
                await session.execute(
                    update(transactions)
                    .where(transactions.c.tx_id == record.tx_id)
                    .values(
                        status=TransactionStatus.COMMITTED.value,
                        broadcast_claimed=False,
                        claimed_at=None,
                        updated_at=now,
                    )
                )
                changed.append(record.tx_id)
        return changed

    async def list_signatures(
        self, tx_id: str, attempt: int | None = None
    ) -> list[SignatureRecord]:
        stmt = select(signatures).where(signatures.c.tx_id == normalize_identity(tx_id))
        if attempt is not None:
            stmt = stmt.where(signatures.c.attempt == attempt)
        async with self._session_factory() as session:
            rows = await session.execute(stmt.order_by(signatures.c.id))
            return [_signature(row) for row in rows]

    async def list_rejections(self, tx_id: str) -> list[RejectionRecord]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(rejections)
                .where(rejections.c.tx_id == normalize_identity(tx_id))
                .order_by(rejections.c.created_at, rejections.c.signer_address)
            )
            return [
                RejectionRecord(
                    tx_id=row.tx_id,
                    signer_address=row.signer_address,
                    created_at=as_utc(row.created_at),
                )
                for row in rows
            ]

    async def list_errors(self, tx_id: str) -> list[TransactionErrorRecord]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(transaction_errors)
                .where(transaction_errors.c.tx_id == normalize_identity(tx_id))
                .order_by(transaction_errors.c.id)
            )
            return [
                TransactionErrorRecord(
                    tx_id=row.tx_id,
                    actor=row.actor,
                    message=row.message,
                    created_at=as_utc(row.created_at),
                )
                for row in rows
            ]

    async def query(self, query: TransactionQuery) -> tuple[list[TransactionRecord], int]:
        clauses = _filters(query)
        async with self._session_factory() as session:
            total = await session.scalar(
                select(func.count()).select_from(transactions).where(*clauses)
            )
            rows = await session.execute(
                select(transactions)
                .where(*clauses)
                .order_by(transactions.c.created_at.desc(), transactions.c.tx_id)
                .offset(query.offset)
                .limit(query.limit)
            )
            return [_record(row) for row in rows], int(total or 0)

    async def list_pending(self, account_address: str) -> list[TransactionRecord]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(transactions)
                .where(
                    transactions.c.account_address == normalize_identity(account_address),
                    transactions.c.status == TransactionStatus.PENDING.value,
                )
                .order_by(transactions.c.created_at)
            )
            return [_record(row) for row in rows]

    def _require_open(self, record: TransactionRecord) -> None:
        if record.status is not TransactionStatus.PENDING:
            raise InvalidTransactionStateError(record.tx_id, record.status)
        if record.claim_held(self._claim_lease):
            raise InvalidTransactionStateError(
                record.tx_id, record.status, reason="broadcast already in progress"
            )

    async def _lock(self, session: AsyncSession, tx_id: str) -> TransactionRecord:
        row = (
            await session.execute(
                select(transactions)
                .where(transactions.c.tx_id == tx_id)
                .with_for_update()
            )
        ).first()
        if row is None:
            raise TransactionNotFoundError(tx_id)
        return _record(row)
