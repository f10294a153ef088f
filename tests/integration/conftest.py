"""Fixtures for tests against a real SQL engine (in-memory SQLite).

Each test gets a fresh database: the engine uses a single shared
connection, so the schema lives exactly as long as the engine.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)
from multisig_custody.application.services.cell_ownership_validator import (
    CellOwnershipValidator,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    TransactionCoordinatorService,
)
from multisig_custody.bootstrap.database import create_schema, create_session_factory
from multisig_custody.config.multisig_config import TEST_MULTISIG_SETTINGS
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.infrastructure.adapters.persistence import (
    SqlMultisigAccountRepository,
    SqlMultisigTransactionRepository,
)
from multisig_custody.infrastructure.stubs import ChainGatewayStub


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine, factory = create_session_factory(TEST_MULTISIG_SETTINGS)
    await create_schema(engine)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def sql_accounts(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlMultisigAccountRepository:
    return SqlMultisigAccountRepository(session_factory)


@pytest.fixture
def sql_transactions(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlMultisigTransactionRepository:
    return SqlMultisigTransactionRepository(session_factory)


@pytest.fixture
def sql_lifecycle(
    sql_accounts: SqlMultisigAccountRepository, codec: AddressCodec
) -> AccountLifecycleService:
    return AccountLifecycleService(sql_accounts, codec)


@pytest.fixture
def sql_coordinator(
    sql_accounts: SqlMultisigAccountRepository,
    sql_transactions: SqlMultisigTransactionRepository,
    chain: ChainGatewayStub,
    codec: AddressCodec,
) -> TransactionCoordinatorService:
    return TransactionCoordinatorService(
        accounts=sql_accounts,
        transactions=sql_transactions,
        chain=chain,
        validator=CellOwnershipValidator(chain, codec),
        codec=codec,
        max_page_limit=TEST_MULTISIG_SETTINGS.max_page_limit,
    )
