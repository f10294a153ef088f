"""Multisig transaction routes.

Endpoints:
- POST /v1/multisig/transactions: propose a transfer with the first signature
- POST /v1/multisig/signatures: add a co-signer's signature
- PUT  /v1/multisig/transactions/{tx_id}/reject
- GET  /v1/multisig/transactions/{tx_id}
- PUT  /v1/multisig/transactions/committed: reconcile out-of-band commits
- GET  /v1/multisig/accounts/{address}/transactions
- GET  /v1/multisig/accounts/{address}/transactions/summary

Proposing or signing returns 200 with the stored record even when the
broadcast that followed failed; the record then shows ``failed``.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from multisig_custody.api.dependencies.multisig import (
    get_signer_identity,
    get_transaction_coordinator,
)
from multisig_custody.api.models.multisig import (
    CommitTransactionsRequest,
    CommitTransactionsResponse,
    EnrichedTransactionResponse,
    ProblemDetailResponse,
    ProposeTransferRequest,
    SubmitSignatureRequest,
    TransactionPageResponse,
    TransactionResponse,
    TransactionSummaryResponse,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    DEFAULT_PAGE_LIMIT,
    TransactionCoordinatorService,
)
from multisig_custody.domain.models.multisig_transaction import TransactionStatus

router = APIRouter(prefix="/v1/multisig", tags=["multisig-transactions"])

Identity = Annotated[str, Depends(get_signer_identity)]
Coordinator = Annotated[TransactionCoordinatorService, Depends(get_transaction_coordinator)]

_ERRORS = {
    400: {"model": ProblemDetailResponse, "description": "Invalid payload or inputs"},
    403: {"model": ProblemDetailResponse, "description": "Not a signer"},
    404: {"model": ProblemDetailResponse, "description": "Unknown transaction"},
    409: {"model": ProblemDetailResponse, "description": "Wrong state or duplicate"},
    502: {"model": ProblemDetailResponse, "description": "CKB node failure"},
}


@router.post(
    "/transactions",
    response_model=TransactionResponse,
    status_code=201,
    responses=_ERRORS,
    summary="Propose a transfer",
)
async def propose_transfer(
    request_data: ProposeTransferRequest, identity: Identity, service: Coordinator
) -> TransactionResponse:
    record = await service.propose_transfer(
        identity, request_data.signature, request_data.payload_text()
    )
    return TransactionResponse.from_domain(record)


@router.post(
    "/signatures",
    response_model=TransactionResponse,
    responses=_ERRORS,
    summary="Add a signature to a pending transfer",
)
async def submit_signature(
    request_data: SubmitSignatureRequest, identity: Identity, service: Coordinator
) -> TransactionResponse:
    record = await service.submit_signature(
        identity, request_data.signature, request_data.tx_id
    )
    return TransactionResponse.from_domain(record)


@router.put(
    "/transactions/committed",
    response_model=CommitTransactionsResponse,
    summary="Mark transactions confirmed elsewhere as committed",
)
async def commit_transactions(
    request_data: CommitTransactionsRequest, identity: Identity, service: Coordinator
) -> CommitTransactionsResponse:
    changed = await service.reconcile_external_commit(identity, request_data.tx_ids)
    return CommitTransactionsResponse(committed=changed)


@router.put(
    "/transactions/{tx_id}/reject",
    response_model=TransactionResponse,
    responses=_ERRORS,
)
async def reject_transaction(
    tx_id: str, identity: Identity, service: Coordinator
) -> TransactionResponse:
    record = await service.reject_transaction(identity, tx_id)
    return TransactionResponse.from_domain(record)


@router.get(
    "/transactions/{tx_id}",
    response_model=EnrichedTransactionResponse,
    responses=_ERRORS,
)
async def get_transaction(
    tx_id: str, identity: Identity, service: Coordinator
) -> EnrichedTransactionResponse:
    item = await service.get_transaction(identity, tx_id)
    return EnrichedTransactionResponse.from_enriched(item)


@router.get(
    "/accounts/{address}/transactions",
    response_model=TransactionPageResponse,
    responses=_ERRORS,
)
async def list_transactions(
    address: str,
    identity: Identity,
    service: Coordinator,
    status: Annotated[list[TransactionStatus] | None, Query()] = None,
    tx_id: Annotated[list[str] | None, Query()] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1)] = DEFAULT_PAGE_LIMIT,
) -> TransactionPageResponse:
    page = await service.list_transactions(
        identity,
        address,
        statuses=status or (),
        tx_ids=tx_id or (),
        offset=offset,
        limit=limit,
    )
    return TransactionPageResponse.from_domain(page)


@router.get(
    "/accounts/{address}/transactions/summary",
    response_model=TransactionSummaryResponse,
    responses=_ERRORS,
)
async def transaction_summary(
    address: str, identity: Identity, service: Coordinator
) -> TransactionSummaryResponse:
    summary = await service.summarize(identity, address)
    return TransactionSummaryResponse.from_domain(summary)
