"""Multisig account and invite routes.

Endpoints:
- POST /v1/multisig/accounts: create an account (caller must be a signer)
- GET  /v1/multisig/accounts: accounts where the caller is an active signer
- GET  /v1/multisig/accounts/{address}: account details
- PUT  /v1/multisig/accounts/{address}: rename
- GET  /v1/multisig/accounts/{address}/signers: signers and invites
- GET  /v1/multisig/invites: the caller's pending invites
- PUT  /v1/multisig/invites/{address}/accept
- PUT  /v1/multisig/invites/{address}/reject

Domain errors propagate to the RFC 7807 handler registered by the app.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from multisig_custody.api.dependencies.multisig import (
    get_account_lifecycle_service,
    get_signer_identity,
)
from multisig_custody.api.models.multisig import (
    AccountInviteResponse,
    AccountResponse,
    AccountSignersResponse,
    CreateAccountRequest,
    InviteResponse,
    ProblemDetailResponse,
    UpdateAccountRequest,
)
from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)

router = APIRouter(prefix="/v1/multisig", tags=["multisig-accounts"])

Identity = Annotated[str, Depends(get_signer_identity)]
Lifecycle = Annotated[AccountLifecycleService, Depends(get_account_lifecycle_service)]

_ERRORS = {
    400: {"model": ProblemDetailResponse, "description": "Invalid input"},
    403: {"model": ProblemDetailResponse, "description": "Not a member"},
    404: {"model": ProblemDetailResponse, "description": "Not found"},
    409: {"model": ProblemDetailResponse, "description": "Conflict"},
}


@router.post(
    "/accounts",
    response_model=AccountResponse,
    status_code=201,
    responses=_ERRORS,
    summary="Create a multisig account",
)
async def create_account(
    request_data: CreateAccountRequest, identity: Identity, service: Lifecycle
) -> AccountResponse:
    """Derive the address, make the caller a signer and invite the rest."""
    account = await service.create_account(
        creator=identity,
        name=request_data.name,
        threshold=request_data.threshold,
        signers=request_data.signers,
    )
    return AccountResponse.from_domain(account)


@router.get("/accounts", response_model=list[AccountResponse])
async def list_accounts(identity: Identity, service: Lifecycle) -> list[AccountResponse]:
    accounts = await service.list_accounts_for(identity)
    return [AccountResponse.from_domain(a) for a in accounts]


@router.get("/accounts/{address}", response_model=AccountResponse, responses=_ERRORS)
async def get_account(address: str, identity: Identity, service: Lifecycle) -> AccountResponse:
    account = await service.get_account_info(identity, address)
    return AccountResponse.from_domain(account)


@router.put("/accounts/{address}", response_model=AccountResponse, responses=_ERRORS)
async def update_account(
    address: str,
    request_data: UpdateAccountRequest,
    identity: Identity,
    service: Lifecycle,
) -> AccountResponse:
    account = await service.update_name(identity, address, request_data.name)
    return AccountResponse.from_domain(account)


@router.get(
    "/accounts/{address}/signers",
    response_model=AccountSignersResponse,
    responses=_ERRORS,
)
async def list_signers(
    address: str, identity: Identity, service: Lifecycle
) -> AccountSignersResponse:
    result = await service.list_signers(identity, address)
    return AccountSignersResponse.from_domain(result)


@router.get("/invites", response_model=list[AccountInviteResponse])
async def list_invites(identity: Identity, service: Lifecycle) -> list[AccountInviteResponse]:
    invites = await service.list_invites_for(identity)
    return [AccountInviteResponse.from_domain(i) for i in invites]


@router.put("/invites/{address}/accept", response_model=InviteResponse, responses=_ERRORS)
async def accept_invite(address: str, identity: Identity, service: Lifecycle) -> InviteResponse:
    invite = await service.respond_to_invite(identity, address, accept=True)
    return InviteResponse.from_domain(invite)


@router.put("/invites/{address}/reject", response_model=InviteResponse, responses=_ERRORS)
async def reject_invite(address: str, identity: Identity, service: Lifecycle) -> InviteResponse:
    invite = await service.respond_to_invite(identity, address, accept=False)
    return InviteResponse.from_domain(invite)
