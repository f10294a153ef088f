"""In-memory stub for MultisigAccountRepositoryProtocol.

Simulates the relational store:
- Unique account address, unique (account, signer) and (account, invitee)
- All-or-nothing account creation and invite responses; writes are staged
  and applied only once every step has succeeded
- Per-address ``asyncio.Lock`` so concurrent responses to one invite are
  serialized the way a row lock would serialize them
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import replace

from multisig_custody.domain.errors.account import (
    AccountExistsError,
    AccountNotFoundError,
    AlreadyRespondedError,
    InviteNotFoundError,
)
from multisig_custody.domain.models.multisig_account import (
    AccountInvite,
    Invite,
    InviteStatus,
    MultisigAccount,
    Signer,
    normalize_identity,
)


class MultisigAccountRepositoryStub:
    """In-memory implementation of MultisigAccountRepositoryProtocol."""

    def __init__(self) -> None:
        self._accounts: dict[str, MultisigAccount] = {}
        # Key: (account, signer)
        self._signers: dict[tuple[str, str], Signer] = {}
        self._invites: dict[tuple[str, str], Invite] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._fail_next_write: Exception | None = None

    async def create_account(
        self,
        account: MultisigAccount,
        creator: str,
        invitees: Sequence[str],
    ) -> MultisigAccount:
        address = normalize_identity(account.address)
        async with self._locks[address]:
            if address in self._accounts:
                raise AccountExistsError(address)

            stored = replace(account, address=address)
            creator = normalize_identity(creator)
            signers = {(address, creator): Signer(address, creator)}
            invites: dict[tuple[str, str], Invite] = {}
            for invitee in invitees:
                key = (address, normalize_identity(invitee))
                if key in self._signers or key in signers:
                    continue
                if key in self._invites or key in invites:
                    continue
                self._maybe_fail()
                invites[key] = Invite(account_address=address, signer_address=key[1])

            self._accounts[address] = stored
            self._signers.update(signers)
            self._invites.update(invites)
            return stored

    async def get_account(self, address: str) -> MultisigAccount | None:
        return self._accounts.get(normalize_identity(address))

    async def update_name(self, address: str, name: str) -> MultisigAccount:
        address = normalize_identity(address)
        async with self._locks[address]:
            account = self._accounts.get(address)
            if account is None:
                raise AccountNotFoundError(address)
            self._maybe_fail()
            updated = account.with_name(name)
            self._accounts[address] = updated
            return updated

    async def is_signer(self, address: str, identity: str) -> bool:
        return (normalize_identity(address), normalize_identity(identity)) in self._signers

    async def list_signers(self, address: str) -> list[Signer]:
        address = normalize_identity(address)
        return sorted(
            (s for (a, _), s in self._signers.items() if a == address),
            key=lambda s: s.created_at,
        )

    async def list_invites(self, address: str) -> list[Invite]:
        address = normalize_identity(address)
        return sorted(
            (i for (a, _), i in self._invites.items() if a == address),
            key=lambda i: i.created_at,
        )

    async def get_invite(self, address: str, identity: str) -> Invite | None:
        return self._invites.get((normalize_identity(address), normalize_identity(identity)))

    async def list_pending_invites_for(self, identity: str) -> list[AccountInvite]:
        identity = normalize_identity(identity)
        return [
            AccountInvite(invite=invite, account=self._accounts[address])
            for (address, invitee), invite in self._invites.items()
            if invitee == identity and invite.status is InviteStatus.PENDING
        ]

    async def list_accounts_for(self, identity: str) -> list[MultisigAccount]:
        identity = normalize_identity(identity)
        return [
            self._accounts[address]
            for (address, signer) in self._signers
            if signer == identity
        ]

    async def respond_to_invite(
        self, address: str, identity: str, status: InviteStatus
    ) -> Invite:
        address = normalize_identity(address)
        identity = normalize_identity(identity)
        async with self._locks[address]:
            key = (address, identity)
            invite = self._invites.get(key)
            if invite is None:
                raise InviteNotFoundError(identity, address)
            if invite.status.is_terminal():
                raise AlreadyRespondedError(identity, address, invite.status.value)

            updated = invite.with_status(status)
            new_signer = (
                Signer(address, identity) if status is InviteStatus.ACCEPTED else None
            )
            self._maybe_fail()

            self._invites[key] = updated
            if new_signer is not None:
                self._signers[key] = new_signer
            return updated

    # Test helper methods

    def fail_next_write(self, error: Exception) -> None:
        """Make the next staged write raise ``error`` before anything is applied."""
        self._fail_next_write = error

    def _maybe_fail(self) -> None:
        if self._fail_next_write is not None:
            error, self._fail_next_write = self._fail_next_write, None
            raise error

    def reset(self) -> None:
        """Reset all stored data. Useful between tests."""
        self._accounts.clear()
        self._signers.clear()
        self._invites.clear()
        self._fail_next_write = None
