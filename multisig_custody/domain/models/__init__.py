"""Domain models for multisig custody."""

from multisig_custody.domain.models.ckb_transaction import (
    CellDep,
    CellInput,
    CellOutput,
    CkbTransaction,
    DepType,
    HashType,
    OutPoint,
    Script,
)
from multisig_custody.domain.models.multisig_account import (
    AccountInvite,
    AccountSigners,
    Invite,
    InviteStatus,
    MultisigAccount,
    Signer,
    normalize_identity,
)
from multisig_custody.domain.models.multisig_transaction import (
    SIGNATURE_LENGTH,
    BroadcastClaim,
    EnrichedTransaction,
    RejectionOutcome,
    RejectionRecord,
    SignatureRecord,
    TransactionErrorRecord,
    TransactionPage,
    TransactionQuery,
    TransactionRecord,
    TransactionStatus,
    TransactionSummary,
    is_rejection_final,
)
from multisig_custody.domain.models.network import (
    MAINNET,
    TESTNET,
    NetworkProfile,
    get_network,
)

__all__ = [
    "AccountInvite",
    "AccountSigners",
    "BroadcastClaim",
    "CellDep",
    "CellInput",
    "CellOutput",
    "CkbTransaction",
    "DepType",
    "EnrichedTransaction",
    "HashType",
    "Invite",
    "InviteStatus",
    "MAINNET",
    "MultisigAccount",
    "NetworkProfile",
    "OutPoint",
    "RejectionOutcome",
    "RejectionRecord",
    "SIGNATURE_LENGTH",
    "Script",
    "SignatureRecord",
    "Signer",
    "TESTNET",
    "TransactionErrorRecord",
    "TransactionPage",
    "TransactionQuery",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionSummary",
    "get_network",
    "is_rejection_final",
    "normalize_identity",
]
