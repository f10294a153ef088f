"""
Pytest configuration and shared fixtures for multisig custody tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from __future__ import annotations

import pytest

from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)
from multisig_custody.application.services.cell_ownership_validator import (
    CellOwnershipValidator,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    TransactionCoordinatorService,
)
from multisig_custody.domain.models.network import TESTNET
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.infrastructure.stubs import (
    ChainGatewayStub,
    MultisigAccountRepositoryStub,
    MultisigTransactionRepositoryStub,
)
from tests.helpers.ckb_builders import sighash_address


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from multisig_custody import __version__

    return __version__


@pytest.fixture
def codec() -> AddressCodec:
    """Address codec for the testnet profile."""
    return AddressCodec(TESTNET)


@pytest.fixture
def alice(codec: AddressCodec) -> str:
    return sighash_address(codec, 1)


@pytest.fixture
def bob(codec: AddressCodec) -> str:
    return sighash_address(codec, 2)


@pytest.fixture
def carol(codec: AddressCodec) -> str:
    return sighash_address(codec, 3)


@pytest.fixture
def mallory(codec: AddressCodec) -> str:
    """An identity that belongs to no account."""
    return sighash_address(codec, 9)


@pytest.fixture
def account_repository() -> MultisigAccountRepositoryStub:
    return MultisigAccountRepositoryStub()


@pytest.fixture
def transaction_repository() -> MultisigTransactionRepositoryStub:
    return MultisigTransactionRepositoryStub()


@pytest.fixture
def chain() -> ChainGatewayStub:
    return ChainGatewayStub()


@pytest.fixture
def validator(chain: ChainGatewayStub, codec: AddressCodec) -> CellOwnershipValidator:
    return CellOwnershipValidator(chain, codec)


@pytest.fixture
def lifecycle(
    account_repository: MultisigAccountRepositoryStub, codec: AddressCodec
) -> AccountLifecycleService:
    return AccountLifecycleService(account_repository, codec)


@pytest.fixture
def coordinator(
    account_repository: MultisigAccountRepositoryStub,
    transaction_repository: MultisigTransactionRepositoryStub,
    chain: ChainGatewayStub,
    validator: CellOwnershipValidator,
    codec: AddressCodec,
) -> TransactionCoordinatorService:
    return TransactionCoordinatorService(
        accounts=account_repository,
        transactions=transaction_repository,
        chain=chain,
        validator=validator,
        codec=codec,
    )
