"""Domain errors for multisig custody.

Every error carries an RFC 7807 serialization and belongs to one category
(see ``base``); the API layer maps categories to HTTP statuses.
"""

from multisig_custody.domain.errors.account import (
    AccountExistsError,
    AccountNotFoundError,
    AlreadyASignerError,
    AlreadyRespondedError,
    InvalidAccountNameError,
    InviteNotFoundError,
    UnauthorizedSignerError,
)
from multisig_custody.domain.errors.address import (
    DuplicateSignerError,
    InvalidAddressError,
    InvalidThresholdError,
    UnsupportedLockScriptError,
)
from multisig_custody.domain.errors.base import (
    PROBLEM_TYPE_PREFIX,
    AuthorizationError,
    CategorizedError,
    ChainError,
    ConflictError,
    EncodingError,
    NotFoundError,
    ValidationError,
)
from multisig_custody.domain.errors.chain import (
    BroadcastRejectedError,
    ChainUnavailableError,
)
from multisig_custody.domain.errors.transaction import (
    AlreadySignedError,
    InvalidPayloadError,
    InvalidSignerError,
    InvalidTransactionStateError,
    OutpointConsumedError,
    OutpointNotOwnedError,
    TransactionAlreadyExistsError,
    TransactionNotFoundError,
)
from multisig_custody.domain.errors.witness import (
    InvalidSignatureError,
    MalformedWitnessError,
    TooManySignaturesError,
)
from multisig_custody.domain.exceptions import MultisigError

__all__: list[str] = [
    # Base
    "MultisigError",
    "CategorizedError",
    "PROBLEM_TYPE_PREFIX",
    # Categories
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "EncodingError",
    "ChainError",
    # Address
    "InvalidAddressError",
    "UnsupportedLockScriptError",
    "InvalidThresholdError",
    "DuplicateSignerError",
    # Witness
    "MalformedWitnessError",
    "TooManySignaturesError",
    "InvalidSignatureError",
    # Account
    "AccountExistsError",
    "AccountNotFoundError",
    "UnauthorizedSignerError",
    "InviteNotFoundError",
    "AlreadyASignerError",
    "AlreadyRespondedError",
    "InvalidAccountNameError",
    # Transaction
    "InvalidPayloadError",
    "OutpointConsumedError",
    "OutpointNotOwnedError",
    "InvalidSignerError",
    "TransactionNotFoundError",
    "TransactionAlreadyExistsError",
    "InvalidTransactionStateError",
    "AlreadySignedError",
    # Chain
    "ChainUnavailableError",
    "BroadcastRejectedError",
]
