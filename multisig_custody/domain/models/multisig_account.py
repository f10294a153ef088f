"""Multisig account, signer and invite models.

Data model:
- MultisigAccount: keyed by its derived address; only ``name`` changes after
  creation and accounts are never deleted.
- Signer: an active participant (account, identity). Immutable.
- Invite: (account, identity, status). PENDING moves exactly once to
  ACCEPTED (a Signer row is created alongside) or REJECTED (terminal).

Addresses and identities are lower-cased everywhere via
``normalize_identity``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


def normalize_identity(value: str) -> str:
    """Canonical form of an address or signer identity."""
    return value.strip().lower()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InviteStatus(str, Enum):
    """Lifecycle of a signer invite.

    State Transition Matrix:
    - PENDING -> ACCEPTED, REJECTED
    - ACCEPTED -> (terminal)
    - REJECTED -> (terminal)
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        return self is not InviteStatus.PENDING

    def can_transition_to(self, target: InviteStatus) -> bool:
        return self is InviteStatus.PENDING and target is not InviteStatus.PENDING


@dataclass(frozen=True)
class MultisigAccount:
    """A shared M-of-N account.

    Attributes:
        address: Derived multisig address (normalized).
        name: Display name.
        threshold: Signatures required (M).
        signer_count: Signers in the spending config (N).
        config_blob: Canonical spending config; its Hash160 is the lock args.
        created_at: Creation time (UTC).
    """

    address: str
    name: str
    threshold: int
    signer_count: int
    config_blob: bytes
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware (UTC)")
        if not 1 <= self.threshold <= self.signer_count:
            raise ValueError(
                f"threshold {self.threshold} outside 1..{self.signer_count}"
            )

    @property
    def config_hex(self) -> str:
        return "0x" + self.config_blob.hex()

    @property
    def witness_lock_length(self) -> int:
        """Fixed length of the witness lock field for this account."""
        return len(self.config_blob) + 65 * self.threshold

    def with_name(self, name: str) -> MultisigAccount:
        return replace(self, name=name)


@dataclass(frozen=True)
class Signer:
    account_address: str
    signer_address: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class Invite:
    account_address: str
    signer_address: str
    status: InviteStatus = InviteStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def with_status(self, new_status: InviteStatus) -> Invite:
        """Return the invite moved to ``new_status``.

        Raises:
            ValueError: If the transition is not allowed.
        """
        if not self.status.can_transition_to(new_status):
            raise ValueError(
                f"Invalid invite transition: {self.status.value} -> {new_status.value}"
            )
        return replace(self, status=new_status, updated_at=utc_now())


@dataclass(frozen=True)
class AccountInvite:
    """A pending invite joined with the account's display data."""

    invite: Invite
    account: MultisigAccount


@dataclass(frozen=True)
class AccountSigners:
    """Active signers plus every invite ever issued for an account."""

    account: MultisigAccount
    signers: list[Signer]
    invites: list[Invite]
