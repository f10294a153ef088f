"""Multisig account and invite workflow errors.

Constraints:
- An account is created once per derived address
- An invite is answered exactly once (PENDING -> ACCEPTED | REJECTED)
- Only active signers may rename or inspect an account
"""

from __future__ import annotations

from typing import Any

from multisig_custody.domain.errors.base import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class AccountExistsError(ConflictError):
    """Raised when an account with the derived address already exists.

    Guards against duplicate submission of the same signer set and
    threshold, which always derive the same address.

    HTTP Status: 409 Conflict

    Attributes:
        address: The derived multisig address.
    """

    slug = "account-exists"
    title = "Account Exists"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Multisig account {address} already exists")

    def context(self) -> dict[str, Any]:
        return {"address": self.address}


class AccountNotFoundError(NotFoundError):
    """Raised when no account exists for an address.

    HTTP Status: 404 Not Found
    """

    slug = "account-not-found"
    title = "Account Not Found"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Multisig account {address} not found")

    def context(self) -> dict[str, Any]:
        return {"address": self.address}


class UnauthorizedSignerError(AuthorizationError):
    """Raised when an identity is not an active signer of an account.

    Account state is never touched when this is raised.

    HTTP Status: 403 Forbidden

    Attributes:
        identity: The acting identity.
        address: The multisig address it tried to act on.
    """

    slug = "not-a-signer"
    title = "Not A Signer"

    def __init__(self, identity: str, address: str) -> None:
        self.identity = identity
        self.address = address
        super().__init__(
            f"Identity {identity} is not an active signer of {address}"
        )

    def context(self) -> dict[str, Any]:
        return {"identity": self.identity, "address": self.address}


class InviteNotFoundError(NotFoundError):
    """Raised when answering an invite that was never issued.

    HTTP Status: 404 Not Found
    """

    slug = "invite-not-found"
    title = "Invite Not Found"

    def __init__(self, identity: str, address: str) -> None:
        self.identity = identity
        self.address = address
        super().__init__(f"No invite for {identity} on account {address}")

    def context(self) -> dict[str, Any]:
        return {"identity": self.identity, "address": self.address}


class AlreadyASignerError(ConflictError):
    """Raised when an active signer tries to answer an invite.

    HTTP Status: 409 Conflict
    """

    slug = "already-a-signer"
    title = "Already A Signer"

    def __init__(self, identity: str, address: str) -> None:
        self.identity = identity
        self.address = address
        super().__init__(f"Identity {identity} is already a signer of {address}")

    def context(self) -> dict[str, Any]:
        return {"identity": self.identity, "address": self.address}


class AlreadyRespondedError(ConflictError):
    """Raised when an invite has already left the PENDING state.

    Invites are terminal once ACCEPTED or REJECTED; a second response
    changes nothing.

    HTTP Status: 409 Conflict

    Attributes:
        identity: The invitee.
        address: The multisig address.
        status: The invite's current (terminal) status value.
    """

    slug = "already-responded"
    title = "Invite Already Answered"

    def __init__(self, identity: str, address: str, status: str) -> None:
        self.identity = identity
        self.address = address
        self.status = status
        super().__init__(
            f"Invite for {identity} on {address} was already answered ({status})"
        )

    def context(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "address": self.address,
            "invite_status": self.status,
        }


class InvalidAccountNameError(ValidationError):
    """Raised when an account display name is empty or too long.

    HTTP Status: 400 Bad Request
    """

    slug = "invalid-account-name"
    title = "Invalid Account Name"

    def __init__(self, max_length: int) -> None:
        self.max_length = max_length
        super().__init__(f"Account name must be 1..{max_length} characters")

    def context(self) -> dict[str, Any]:
        return {"max_length": self.max_length}
