"""Ports (protocols) implemented by infrastructure adapters and stubs."""

from multisig_custody.application.ports.account_repository import (
    MultisigAccountRepositoryProtocol,
)
from multisig_custody.application.ports.chain_gateway import (
    LIVE_STATUS,
    ChainGatewayProtocol,
    LiveCell,
)
from multisig_custody.application.ports.transaction_repository import (
    MultisigTransactionRepositoryProtocol,
)

__all__ = [
    "ChainGatewayProtocol",
    "LIVE_STATUS",
    "LiveCell",
    "MultisigAccountRepositoryProtocol",
    "MultisigTransactionRepositoryProtocol",
]
