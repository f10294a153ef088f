"""SQLAlchemy Core persistence for accounts and transactions."""

from multisig_custody.infrastructure.adapters.persistence.multisig_account_repository import (
    SqlMultisigAccountRepository,
)
from multisig_custody.infrastructure.adapters.persistence.multisig_transaction_repository import (
    SqlMultisigTransactionRepository,
)
from multisig_custody.infrastructure.adapters.persistence.tables import metadata

__all__ = [
    "SqlMultisigAccountRepository",
    "SqlMultisigTransactionRepository",
    "metadata",
]
