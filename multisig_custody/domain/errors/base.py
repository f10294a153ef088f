"""Error categories for the multisig custody domain.

Every concrete error belongs to exactly one category. The category fixes the
HTTP status and the RFC 7807 ``type`` prefix; concrete errors contribute a
slug, a title and their context fields.

Categories:
- ValidationError (400): malformed address, threshold or payload
- AuthorizationError (403): identity is not an active signer
- NotFoundError (404): unknown account, transaction or invite
- ConflictError (409): account exists, invite answered, state mismatch
- EncodingError (422): witness length mismatch, too many signatures
- ChainError (502): liveness query or broadcast failed
"""

from __future__ import annotations

from typing import Any, ClassVar

from multisig_custody.domain.exceptions import MultisigError

PROBLEM_TYPE_PREFIX = "urn:multisig-custody"


class CategorizedError(MultisigError):
    """Base for errors that map onto an RFC 7807 problem document.

    Subclasses set ``category``, ``http_status``, ``slug`` and ``title``
    and override ``context`` to expose their attributes.
    """

    category: ClassVar[str] = "internal"
    http_status: ClassVar[int] = 500
    slug: ClassVar[str] = "error"
    title: ClassVar[str] = "Internal Error"

    def context(self) -> dict[str, Any]:
        """Return the error-specific fields included in problem documents."""
        return {}

    def to_rfc7807_dict(self) -> dict[str, Any]:
        """Serialize to RFC 7807 problem details format.

        Returns:
            Dictionary conforming to RFC 7807 with error context fields.
        """
        result: dict[str, Any] = {
            "type": f"{PROBLEM_TYPE_PREFIX}:{self.category}:{self.slug}",
            "title": self.title,
            "status": self.http_status,
            "detail": str(self),
        }
        result.update(self.context())
        return result


class ValidationError(CategorizedError):
    """Malformed input. Never retried; the caller must correct it."""

    category = "validation"
    http_status = 400
    slug = "invalid-input"
    title = "Invalid Input"


class AuthorizationError(CategorizedError):
    """Identity is not allowed to act on the account. State is untouched."""

    category = "authorization"
    http_status = 403
    slug = "unauthorized"
    title = "Unauthorized"


class NotFoundError(CategorizedError):
    """Unknown account, transaction or invite."""

    category = "not-found"
    http_status = 404
    slug = "not-found"
    title = "Not Found"


class ConflictError(CategorizedError):
    """Idempotency guard tripped or entity in the wrong state."""

    category = "conflict"
    http_status = 409
    slug = "conflict"
    title = "Conflict"


class EncodingError(CategorizedError):
    """Witness could not be built from the accumulated signatures.

    Indicates a corrupted or tampered proposal. Already accumulated
    signatures are kept.
    """

    category = "encoding"
    http_status = 422
    slug = "encoding-failed"
    title = "Encoding Failed"


class ChainError(CategorizedError):
    """The chain node could not answer or refused a transaction."""

    category = "chain"
    http_status = 502
    slug = "chain-failure"
    title = "Chain Failure"
