"""Transaction proposal state machine: propose, sign, reject, broadcast.

Flow:
1. A signer proposes a payload with their signature. Inputs must be live
   and owned by one multisig account the proposer signs for. The proposal
   and first signature are stored together.
2. Co-signers add signatures. Inputs and membership are re-validated each
   time; failures are recorded against the transaction and re-raised.
3. When the current attempt reaches the threshold, exactly one caller
   claims the broadcast, places the signatures in witness 0 and sends the
   transaction. Success commits the finalized payload; an encoding or
   chain failure marks the proposal FAILED with an error row, and so does
   a cancelled broadcast. There is no automatic retry: proposing the same
   payload again revives it.
4. Rejections move the proposal to REJECTED once the threshold can no
   longer be reached.

No store transaction is held open while the chain gateway is called.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from structlog import get_logger

from multisig_custody.application.ports.account_repository import (
    MultisigAccountRepositoryProtocol,
)
from multisig_custody.application.ports.chain_gateway import ChainGatewayProtocol
from multisig_custody.application.ports.transaction_repository import (
    MultisigTransactionRepositoryProtocol,
)
from multisig_custody.application.services.cell_ownership_validator import (
    CellOwnershipValidator,
)
from multisig_custody.domain.errors.account import (
    AccountNotFoundError,
    UnauthorizedSignerError,
)
from multisig_custody.domain.errors.base import (
    AuthorizationError,
    ChainError,
    ValidationError,
)
from multisig_custody.domain.errors.transaction import (
    InvalidSignerError,
    InvalidTransactionStateError,
    OutpointNotOwnedError,
    TransactionAlreadyExistsError,
    TransactionNotFoundError,
)
from multisig_custody.domain.errors.witness import InvalidSignatureError
from multisig_custody.domain.exceptions import MultisigError
from multisig_custody.domain.models.ckb_transaction import CkbTransaction
from multisig_custody.domain.models.multisig_account import (
    MultisigAccount,
    normalize_identity,
)
from multisig_custody.domain.models.multisig_transaction import (
    SIGNATURE_LENGTH,
    EnrichedTransaction,
    SignatureRecord,
    TransactionPage,
    TransactionQuery,
    TransactionRecord,
    TransactionStatus,
    TransactionSummary,
)
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.domain.services.witness_encoder import encode_signatures

logger = get_logger()

DEFAULT_PAGE_LIMIT = 20


def decode_signature(value: str) -> bytes:
    """Parse a hex signature (``0x`` prefix optional) into 65 bytes.

    Raises:
        InvalidSignatureError: If the value is not 65 bytes of hex.
    """
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        signature = bytes.fromhex(text)
    except ValueError:
        raise InvalidSignatureError(len(text) // 2) from None
    if len(signature) != SIGNATURE_LENGTH:
        raise InvalidSignatureError(len(signature))
    return signature


class TransactionCoordinatorService:
    """Drives transaction proposals through their lifecycle."""

    def __init__(
        self,
        accounts: MultisigAccountRepositoryProtocol,
        transactions: MultisigTransactionRepositoryProtocol,
        chain: ChainGatewayProtocol,
        validator: CellOwnershipValidator,
        codec: AddressCodec,
        max_page_limit: int = 100,
    ) -> None:
        self._accounts = accounts
        self._transactions = transactions
        self._chain = chain
        self._validator = validator
        self._codec = codec
        self._max_page_limit = max_page_limit

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def propose_transfer(
        self, signer: str, signature: str, payload: str
    ) -> TransactionRecord:
        """Store a new proposal with the proposer's signature.

        A payload whose proposal previously FAILED is revived with a fresh
        signature attempt. Broadcast failure after the threshold is reached
        does not fail this call; the returned record shows FAILED.

        Raises:
            InvalidPayloadError: If the payload cannot be parsed.
            InvalidSignatureError: If the signature is malformed.
            OutpointConsumedError, OutpointNotOwnedError: From ownership
                validation; nothing is stored.
            InvalidSignerError: If the proposer does not sign for the owner.
            TransactionAlreadyExistsError: If the payload is already proposed
                and not FAILED.
        """
        signer = normalize_identity(signer)
        signature_bytes = decode_signature(signature)
        tx = CkbTransaction.from_json(payload)
        log = logger.bind(tx_id=tx.tx_id, signer=signer)

        address = await self._validator.validate(tx.input_out_points)
        log = log.bind(account=address)
        if not await self._accounts.is_signer(address, signer):
            log.warning("proposer_not_a_signer")
            raise InvalidSignerError(signer, address)
        account = await self._require_account(address)

        existing = await self._transactions.get(tx.tx_id)
        if existing is not None:
            if existing.status is not TransactionStatus.FAILED:
                raise TransactionAlreadyExistsError(tx.tx_id, existing.status)
            record = await self._transactions.revive(
                tx.tx_id, tx.to_json_text(), signer, signature_bytes
            )
            log.info("transaction_revived", attempt=record.attempt)
        else:
            record = await self._transactions.create_with_signature(
                TransactionRecord(
                    tx_id=tx.tx_id,
                    account_address=address,
                    payload=tx.to_json_text(),
                ),
                SignatureRecord(
                    tx_id=tx.tx_id,
                    signer_address=signer,
                    signature=signature_bytes,
                ),
            )
            log.info("transaction_proposed", threshold=account.threshold)

        return await self._evaluate_threshold(account, record.tx_id, signer)

    async def submit_signature(
        self, signer: str, signature: str, tx_id: str
    ) -> TransactionRecord:
        """Add a co-signer's signature and broadcast once the threshold is met.

        Raises:
            TransactionNotFoundError: If the transaction is unknown or the
                signer is not on its account.
            InvalidTransactionStateError: If the proposal is not PENDING or
                is being broadcast.
            OutpointConsumedError, OutpointNotOwnedError, InvalidSignerError,
            ChainUnavailableError: From re-validation, after an error row is
                recorded.
            AlreadySignedError: If the signer already gave another signature.
        """
        signer = normalize_identity(signer)
        tx_id = normalize_identity(tx_id)
        log = logger.bind(tx_id=tx_id, signer=signer)

        record = await self._get_visible(tx_id, signer)
        log = log.bind(account=record.account_address)
        if record.status is not TransactionStatus.PENDING:
            raise InvalidTransactionStateError(tx_id, record.status)
        signature_bytes = decode_signature(signature)

        try:
            await self._revalidate(record, signer)
        except (ValidationError, AuthorizationError, ChainError) as exc:
            current = await self._transactions.get(tx_id)
            if current is not None and current.status is not TransactionStatus.PENDING:
                # Already settled; the spent inputs are this transaction's own
                log.info("signature_after_settlement", tx_status=current.status.value)
                raise InvalidTransactionStateError(tx_id, current.status) from exc
            if current is not None and current.broadcast_claimed:
                log.info("signature_during_broadcast")
                raise InvalidTransactionStateError(
                    tx_id, current.status, reason="broadcast already in progress"
                ) from exc
            log.warning("signature_revalidation_failed", error=str(exc))
            await self._transactions.record_error(tx_id, signer, str(exc))
            raise

        account = await self._require_account(record.account_address)
        count = await self._transactions.append_signature(tx_id, signer, signature_bytes)
        log.info("signature_added", count=count, threshold=account.threshold)

        return await self._evaluate_threshold(account, tx_id, signer)

    async def reject_transaction(self, signer: str, tx_id: str) -> TransactionRecord:
        """Record a rejection; the proposal dies once the threshold is unreachable.

        A repeated rejection by the same signer is a no-op.

        Raises:
            TransactionNotFoundError: If hidden from or unknown to the signer.
            InvalidTransactionStateError: If the proposal is not PENDING or
                is being broadcast.
        """
        signer = normalize_identity(signer)
        tx_id = normalize_identity(tx_id)
        record = await self._get_visible(tx_id, signer)
        if record.status is not TransactionStatus.PENDING:
            raise InvalidTransactionStateError(tx_id, record.status)

        account = await self._require_account(record.account_address)
        outcome = await self._transactions.record_rejection(
            tx_id, signer, account.signer_count, account.threshold
        )
        logger.info(
            "transaction_rejection_recorded",
            tx_id=tx_id,
            signer=signer,
            account=account.address,
            rejections=outcome.rejection_count,
            tx_status=outcome.record.status.value,
        )
        return outcome.record

    async def reconcile_external_commit(
        self, identity: str, tx_ids: Iterable[str]
    ) -> list[str]:
        """Mark transactions confirmed out of band as COMMITTED.

        Only ids on accounts ``identity`` actively signs for are considered;
        unknown and foreign ids are skipped. Of those, PENDING and FAILED
        entries change and anything else is left alone.

        Returns:
            The ids that changed status.
        """
        identity = normalize_identity(identity)
        ids = sorted({normalize_identity(t) for t in tx_ids})
        permitted: list[str] = []
        for tx_id in ids:
            record = await self._transactions.get(tx_id)
            if record is not None and await self._accounts.is_signer(
                record.account_address, identity
            ):
                permitted.append(tx_id)
        changed = (
            await self._transactions.mark_externally_committed(permitted)
            if permitted
            else []
        )
        logger.info(
            "transactions_reconciled",
            signer=identity,
            requested=len(ids),
            skipped=len(ids) - len(permitted),
            committed=len(changed),
        )
        return changed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_transactions(
        self,
        identity: str,
        address: str,
        statuses: Sequence[TransactionStatus] = (),
        tx_ids: Sequence[str] = (),
        offset: int = 0,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> TransactionPage:
        """Enriched, paginated proposals of an account (signers only)."""
        identity = normalize_identity(identity)
        address = normalize_identity(address)
        await self._require_signer(identity, address)

        query = TransactionQuery(
            account_address=address,
            statuses=frozenset(statuses),
            tx_ids=frozenset(normalize_identity(t) for t in tx_ids),
            offset=max(offset, 0),
            limit=min(max(limit, 1), self._max_page_limit),
        )
        records, total = await self._transactions.query(query)
        items = [await self._enrich(record) for record in records]
        return TransactionPage(
            items=items, total=total, offset=query.offset, limit=query.limit
        )

    async def get_transaction(self, identity: str, tx_id: str) -> EnrichedTransaction:
        record = await self._get_visible(
            normalize_identity(tx_id), normalize_identity(identity)
        )
        return await self._enrich(record)

    async def summarize(self, identity: str, address: str) -> TransactionSummary:
        """Count and total first-output capacity of PENDING proposals."""
        identity = normalize_identity(identity)
        address = normalize_identity(address)
        await self._require_signer(identity, address)

        pending = await self._transactions.list_pending(address)
        amount = sum(record.parsed().first_output.capacity for record in pending)
        return TransactionSummary(
            account_address=address,
            pending_count=len(pending),
            pending_amount=amount,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _evaluate_threshold(
        self, account: MultisigAccount, tx_id: str, actor: str
    ) -> TransactionRecord:
        log = logger.bind(tx_id=tx_id, account=account.address, signer=actor)
        claim = await self._transactions.claim_broadcast(tx_id, account.threshold)
        if claim is None:
            current = await self._transactions.get(tx_id)
            if current is None:
                raise TransactionNotFoundError(tx_id)
            return current

        try:
            finalized = encode_signatures(
                account.threshold,
                claim.record.parsed(),
                account.config_blob,
                [s.signature for s in claim.signatures],
            )
            sent_hash = await self._chain.send_transaction(finalized)
        except MultisigError as exc:
            log.warning(
                "transaction_broadcast_failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return await self._transactions.mark_failed(tx_id, actor, str(exc))
        except asyncio.CancelledError:
            log.warning("transaction_broadcast_cancelled")
            await asyncio.shield(
                self._transactions.mark_failed(tx_id, actor, "broadcast cancelled")
            )
            raise
        except Exception as exc:
            log.error("transaction_broadcast_crashed", error=str(exc))
            await self._transactions.mark_failed(tx_id, actor, str(exc))
            raise

        log.info(
            "transaction_broadcast",
            signatures=len(claim.signatures),
            node_hash=sent_hash,
        )
        # The node already holds the transaction; a late cancel must not drop the commit
        return await asyncio.shield(
            self._transactions.mark_committed(tx_id, finalized.to_json_text())
        )

    async def _revalidate(self, record: TransactionRecord, signer: str) -> None:
        tx = record.parsed()
        address = await self._validator.validate(tx.input_out_points)
        if address != record.account_address:
            raise OutpointNotOwnedError(
                str(tx.input_out_points[0]), record.account_address, address
            )
        if not await self._accounts.is_signer(address, signer):
            raise InvalidSignerError(signer, address)

    async def _get_visible(self, tx_id: str, identity: str) -> TransactionRecord:
        record = await self._transactions.get(tx_id)
        if record is None or not await self._accounts.is_signer(
            record.account_address, identity
        ):
            raise TransactionNotFoundError(tx_id)
        return record

    async def _require_signer(self, identity: str, address: str) -> None:
        await self._require_account(address)
        if not await self._accounts.is_signer(address, identity):
            raise UnauthorizedSignerError(identity, address)

    async def _require_account(self, address: str) -> MultisigAccount:
        account = await self._accounts.get_account(address)
        if account is None:
            raise AccountNotFoundError(address)
        return account

    async def _enrich(self, record: TransactionRecord) -> EnrichedTransaction:
        first_output = record.parsed().first_output
        signatures = await self._transactions.list_signatures(
            record.tx_id, attempt=record.attempt
        )
        rejections = await self._transactions.list_rejections(record.tx_id)
        errors = (
            await self._transactions.list_errors(record.tx_id)
            if record.status is TransactionStatus.FAILED
            else []
        )
        return EnrichedTransaction(
            record=record,
            destination=self._codec.encode(first_output.lock),
            amount=first_output.capacity,
            signers=[s.signer_address for s in signatures],
            rejecters=[r.signer_address for r in rejections],
            errors=errors,
        )
