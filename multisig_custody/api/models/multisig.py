"""Multisig custody API request/response models.

Pydantic models for the ``/v1/multisig`` endpoints. Domain dataclasses are
converted with the ``from_domain`` constructors so routes stay thin.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field, PlainSerializer

from multisig_custody.domain.models.multisig_account import (
    AccountInvite,
    AccountSigners,
    Invite,
    InviteStatus,
    MultisigAccount,
)
from multisig_custody.domain.models.multisig_transaction import (
    EnrichedTransaction,
    TransactionErrorRecord,
    TransactionPage,
    TransactionRecord,
    TransactionStatus,
    TransactionSummary,
)

# ISO 8601 with Z suffix (Pydantic v2)
DateTimeWithZ = Annotated[
    datetime,
    PlainSerializer(
        lambda v: v.isoformat().replace("+00:00", "Z") if v else None, return_type=str
    ),
]


class CreateAccountRequest(BaseModel):
    """Request to create an M-of-N account.

    Attributes:
        name: Display name.
        threshold: Signatures required to spend.
        signers: Signer addresses; their order determines the account address.
    """

    name: str = Field(..., min_length=1, max_length=255)
    threshold: int = Field(..., ge=1, le=255)
    signers: list[str] = Field(..., min_length=1, max_length=255)


class UpdateAccountRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class AccountResponse(BaseModel):
    """A multisig account as shown to its members."""

    address: str
    name: str
    threshold: int
    signer_count: int
    config: str = Field(..., description="Hex spending config blob (0x-prefixed)")
    created_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, account: MultisigAccount) -> AccountResponse:
        return cls(
            address=account.address,
            name=account.name,
            threshold=account.threshold,
            signer_count=account.signer_count,
            config=account.config_hex,
            created_at=account.created_at,
        )


class InviteResponse(BaseModel):
    account_address: str
    signer_address: str
    status: InviteStatus
    created_at: DateTimeWithZ
    updated_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, invite: Invite) -> InviteResponse:
        return cls(
            account_address=invite.account_address,
            signer_address=invite.signer_address,
            status=invite.status,
            created_at=invite.created_at,
            updated_at=invite.updated_at,
        )


class AccountInviteResponse(BaseModel):
    """A pending invite together with the account it is for."""

    invite: InviteResponse
    account: AccountResponse

    @classmethod
    def from_domain(cls, item: AccountInvite) -> AccountInviteResponse:
        return cls(
            invite=InviteResponse.from_domain(item.invite),
            account=AccountResponse.from_domain(item.account),
        )


class AccountSignersResponse(BaseModel):
    """Active signers plus every invite of an account."""

    account: AccountResponse
    signers: list[str]
    invites: list[InviteResponse]

    @classmethod
    def from_domain(cls, result: AccountSigners) -> AccountSignersResponse:
        return cls(
            account=AccountResponse.from_domain(result.account),
            signers=[s.signer_address for s in result.signers],
            invites=[InviteResponse.from_domain(i) for i in result.invites],
        )


class ProposeTransferRequest(BaseModel):
    """A new transfer with the proposer's signature.

    Attributes:
        signature: 65-byte hex signature over the transaction.
        payload: CKB transaction JSON, as text or as an object.
    """

    signature: str = Field(..., min_length=1)
    payload: str | dict[str, Any]

    def payload_text(self) -> str:
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload, separators=(",", ":"))


class SubmitSignatureRequest(BaseModel):
    tx_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class CommitTransactionsRequest(BaseModel):
    """Transaction ids confirmed on chain by some other party."""

    tx_ids: list[str] = Field(..., min_length=1)


class CommitTransactionsResponse(BaseModel):
    committed: list[str]


class TransactionResponse(BaseModel):
    """A transaction proposal's stored state."""

    tx_id: str
    account_address: str
    status: TransactionStatus
    attempt: int
    payload: str
    created_at: DateTimeWithZ
    updated_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, record: TransactionRecord) -> TransactionResponse:
        return cls(
            tx_id=record.tx_id,
            account_address=record.account_address,
            status=record.status,
            attempt=record.attempt,
            payload=record.payload,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class TransactionErrorResponse(BaseModel):
    actor: str
    message: str
    created_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, error: TransactionErrorRecord) -> TransactionErrorResponse:
        return cls(actor=error.actor, message=error.message, created_at=error.created_at)


class EnrichedTransactionResponse(TransactionResponse):
    """Transaction with destination, amount, signers and history."""

    destination: str
    amount: int = Field(..., description="First output capacity in shannons")
    signers: list[str]
    rejecters: list[str]
    errors: list[TransactionErrorResponse]

    @classmethod
    def from_enriched(cls, item: EnrichedTransaction) -> EnrichedTransactionResponse:
        record = item.record
        return cls(
            tx_id=record.tx_id,
            account_address=record.account_address,
            status=record.status,
            attempt=record.attempt,
            payload=record.payload,
            created_at=record.created_at,
            updated_at=record.updated_at,
            destination=item.destination,
            amount=item.amount,
            signers=item.signers,
            rejecters=item.rejecters,
            errors=[TransactionErrorResponse.from_domain(e) for e in item.errors],
        )


class TransactionPageResponse(BaseModel):
    items: list[EnrichedTransactionResponse]
    total: int
    offset: int
    limit: int

    @classmethod
    def from_domain(cls, page: TransactionPage) -> TransactionPageResponse:
        return cls(
            items=[EnrichedTransactionResponse.from_enriched(i) for i in page.items],
            total=page.total,
            offset=page.offset,
            limit=page.limit,
        )


class TransactionSummaryResponse(BaseModel):
    account_address: str
    pending_count: int
    pending_amount: int

    @classmethod
    def from_domain(cls, summary: TransactionSummary) -> TransactionSummaryResponse:
        return cls(
            account_address=summary.account_address,
            pending_count=summary.pending_count,
            pending_amount=summary.pending_amount,
        )


class ProblemDetailResponse(BaseModel):
    """RFC 7807 problem document returned for domain errors."""

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
