"""Multisig API dependencies.

Services come from the ``MultisigContainer`` stored on ``app.state`` by the
app factory. The caller's identity is read from the ``X-Signer-Address``
header, which an upstream gateway sets after authenticating the caller.
"""

from typing import Annotated

from fastapi import Header, Request

from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    TransactionCoordinatorService,
)
from multisig_custody.bootstrap.container import MultisigContainer
from multisig_custody.domain.models.multisig_account import normalize_identity

SIGNER_HEADER = "X-Signer-Address"


def get_container(request: Request) -> MultisigContainer:
    container: MultisigContainer = request.app.state.container
    return container


def get_account_lifecycle_service(request: Request) -> AccountLifecycleService:
    return get_container(request).account_lifecycle


def get_transaction_coordinator(request: Request) -> TransactionCoordinatorService:
    return get_container(request).coordinator


def get_signer_identity(
    signer: Annotated[str, Header(alias=SIGNER_HEADER, min_length=1)],
) -> str:
    """Normalized identity of the authenticated caller."""
    return normalize_identity(signer)
