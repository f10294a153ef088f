"""Base exception classes for the multisig custody domain layer."""


class MultisigError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    This enables consistent error handling across the application.

    Subclasses are grouped by category (see ``domain.errors.base``):
    - ValidationError: caller must correct the input, never retried
    - AuthorizationError: identity is not an active signer
    - NotFoundError: unknown account, transaction or invite
    - ConflictError: idempotency guards (already exists, already responded)
    - EncodingError: witness corruption or tampering
    - ChainError: chain node unreachable or broadcast refused
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
