"""Application services for multisig custody."""

from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)
from multisig_custody.application.services.cell_ownership_validator import (
    CellOwnershipValidator,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    TransactionCoordinatorService,
    decode_signature,
)

__all__ = [
    "AccountLifecycleService",
    "CellOwnershipValidator",
    "TransactionCoordinatorService",
    "decode_signature",
]
