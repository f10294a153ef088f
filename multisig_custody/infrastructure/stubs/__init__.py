"""In-memory stubs for tests and local development."""

from multisig_custody.infrastructure.stubs.chain_gateway_stub import ChainGatewayStub
from multisig_custody.infrastructure.stubs.multisig_account_repository_stub import (
    MultisigAccountRepositoryStub,
)
from multisig_custody.infrastructure.stubs.multisig_transaction_repository_stub import (
    MultisigTransactionRepositoryStub,
)

__all__ = [
    "ChainGatewayStub",
    "MultisigAccountRepositoryStub",
    "MultisigTransactionRepositoryStub",
]
