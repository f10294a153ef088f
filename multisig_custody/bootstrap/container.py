"""Composition root: repositories, chain gateway and services.

``build_container`` picks the SQL repositories when a database URL is
configured and the in-memory stubs otherwise. Tests pass their own
gateway or session factory.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from structlog import get_logger

from multisig_custody.application.ports.account_repository import (
    MultisigAccountRepositoryProtocol,
)
from multisig_custody.application.ports.chain_gateway import ChainGatewayProtocol
from multisig_custody.application.ports.transaction_repository import (
    MultisigTransactionRepositoryProtocol,
)
from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)
from multisig_custody.application.services.cell_ownership_validator import (
    CellOwnershipValidator,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    TransactionCoordinatorService,
)
from multisig_custody.bootstrap.database import create_session_factory
from multisig_custody.config.multisig_config import MultisigSettings
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.infrastructure.adapters.ckb_rpc_gateway import CkbRpcChainGateway
from multisig_custody.infrastructure.adapters.persistence import (
    SqlMultisigAccountRepository,
    SqlMultisigTransactionRepository,
)
from multisig_custody.infrastructure.stubs import (
    MultisigAccountRepositoryStub,
    MultisigTransactionRepositoryStub,
)

logger = get_logger()


@dataclass
class MultisigContainer:
    """Wired services plus the resources that must be released."""

    settings: MultisigSettings
    codec: AddressCodec
    accounts: MultisigAccountRepositoryProtocol
    transactions: MultisigTransactionRepositoryProtocol
    chain: ChainGatewayProtocol
    account_lifecycle: AccountLifecycleService
    coordinator: TransactionCoordinatorService
    engine: AsyncEngine | None = None
    _closed: bool = field(default=False, repr=False)

    async def close(self) -> None:
        """Close the node client and dispose the engine. Safe to repeat."""
        if self._closed:
            return
        self._closed = True
        if isinstance(self.chain, CkbRpcChainGateway):
            await self.chain.aclose()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("multisig_container_closed")


def build_container(
    settings: MultisigSettings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    chain: ChainGatewayProtocol | None = None,
) -> MultisigContainer:
    """Wire the custody services for ``settings``.

    Args:
        settings: Deployment settings.
        session_factory: Use this instead of creating an engine.
        chain: Use this gateway instead of the JSON-RPC adapter.
    """
    codec = AddressCodec(settings.network_profile)
    engine: AsyncEngine | None = None

    accounts: MultisigAccountRepositoryProtocol
    transactions: MultisigTransactionRepositoryProtocol
    if session_factory is None and settings.database_url:
        engine, session_factory = create_session_factory(settings)
    if session_factory is not None:
        accounts = SqlMultisigAccountRepository(session_factory)
        transactions = SqlMultisigTransactionRepository(
            session_factory, claim_lease=settings.claim_lease
        )
    else:
        logger.warning("multisig_using_in_memory_store")
        accounts = MultisigAccountRepositoryStub()
        transactions = MultisigTransactionRepositoryStub(
            claim_lease=settings.claim_lease
        )

    if chain is None:
        chain = CkbRpcChainGateway(
            settings.rpc_url, timeout_seconds=settings.rpc_timeout_seconds
        )

    validator = CellOwnershipValidator(chain, codec)
    container = MultisigContainer(
        settings=settings,
        codec=codec,
        accounts=accounts,
        transactions=transactions,
        chain=chain,
        account_lifecycle=AccountLifecycleService(accounts, codec),
        coordinator=TransactionCoordinatorService(
            accounts,
            transactions,
            chain,
            validator,
            codec,
            max_page_limit=settings.max_page_limit,
        ),
        engine=engine,
    )
    logger.info(
        "multisig_container_built",
        network=settings.network,
        sql=session_factory is not None,
    )
    return container
