"""Multisig account repository port.

Atomicity requirements:
- ``create_account`` inserts the account, the creator's Signer row and every
  invite in one unit; any failure leaves nothing behind.
- ``respond_to_invite`` flips the invite and (on accept) inserts the Signer
  row in one unit, re-checking PENDING under a row lock so two concurrent
  responses cannot both succeed.

Implementations normalize addresses with ``normalize_identity``.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import Protocol

from multisig_custody.domain.models.multisig_account import (
    AccountInvite,
    Invite,
    InviteStatus,
    MultisigAccount,
    Signer,
)


class MultisigAccountRepositoryProtocol(Protocol):
    """Durable storage for accounts, signers and invites."""

    @abstractmethod
    async def create_account(
        self,
        account: MultisigAccount,
        creator: str,
        invitees: Sequence[str],
    ) -> MultisigAccount:
        """Persist a new account with its creator and invites.

        Invitees that are already active signers, or already invited, are
        skipped.

        Raises:
            AccountExistsError: If the address is already stored.
        """
        ...

    @abstractmethod
    async def get_account(self, address: str) -> MultisigAccount | None: ...

    @abstractmethod
    async def update_name(self, address: str, name: str) -> MultisigAccount:
        """Rename an account.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        ...

    @abstractmethod
    async def is_signer(self, address: str, identity: str) -> bool: ...

    @abstractmethod
    async def list_signers(self, address: str) -> list[Signer]: ...

    @abstractmethod
    async def list_invites(self, address: str) -> list[Invite]: ...

    @abstractmethod
    async def get_invite(self, address: str, identity: str) -> Invite | None: ...

    @abstractmethod
    async def list_pending_invites_for(self, identity: str) -> list[AccountInvite]:
        """Pending invites addressed to ``identity`` with account data."""
        ...

    @abstractmethod
    async def list_accounts_for(self, identity: str) -> list[MultisigAccount]:
        """Accounts where ``identity`` is an active signer."""
        ...

    @abstractmethod
    async def respond_to_invite(
        self, address: str, identity: str, status: InviteStatus
    ) -> Invite:
        """Move a PENDING invite to ``status``.

        Raises:
            InviteNotFoundError: If no invite exists.
            AlreadyRespondedError: If the invite is no longer PENDING.
        """
        ...
