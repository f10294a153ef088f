"""Account creation and signer onboarding.

Workflow:
1. The creator submits the ordered signer list and threshold. The address
   is derived; the creator becomes an active signer and every other
   signer receives a PENDING invite, all in one store transaction.
2. Each invitee accepts (becomes an active signer) or rejects (terminal).
   An invite is answered exactly once.

Visibility: account details are shown to active signers and invitees;
renaming requires an active signer.
"""

from __future__ import annotations

from collections.abc import Sequence

from structlog import get_logger

from multisig_custody.application.ports.account_repository import (
    MultisigAccountRepositoryProtocol,
)
from multisig_custody.domain.errors.account import (
    AccountNotFoundError,
    AlreadyASignerError,
    AlreadyRespondedError,
    InvalidAccountNameError,
    InviteNotFoundError,
    UnauthorizedSignerError,
)
from multisig_custody.domain.errors.transaction import InvalidSignerError
from multisig_custody.domain.models.multisig_account import (
    AccountInvite,
    AccountSigners,
    Invite,
    InviteStatus,
    MultisigAccount,
    normalize_identity,
)
from multisig_custody.domain.services.address_codec import AddressCodec

logger = get_logger()

MAX_NAME_LENGTH = 255


class AccountLifecycleService:
    """Creates multisig accounts and runs the invite workflow."""

    def __init__(
        self,
        accounts: MultisigAccountRepositoryProtocol,
        codec: AddressCodec,
    ) -> None:
        self._accounts = accounts
        self._codec = codec

    async def create_account(
        self,
        creator: str,
        name: str,
        threshold: int,
        signers: Sequence[str],
    ) -> MultisigAccount:
        """Create an M-of-N account owned by ``signers``.

        Args:
            creator: Identity of the caller; must be one of ``signers``.
            name: Display name.
            threshold: Required signatures.
            signers: Signer addresses; order defines the address.

        Raises:
            InvalidThresholdError, InvalidAddressError,
            UnsupportedLockScriptError, DuplicateSignerError: From derivation.
            InvalidSignerError: If the creator is not in ``signers``.
            AccountExistsError: If the derived account already exists.
        """
        creator = normalize_identity(creator)
        derived = self._codec.derive(signers, threshold)
        log = logger.bind(account=derived.address, creator=creator)

        if creator not in derived.signers:
            log.warning("creator_not_in_signer_set")
            raise InvalidSignerError(creator, derived.address)

        account = MultisigAccount(
            address=normalize_identity(derived.address),
            name=_clean_name(name),
            threshold=derived.threshold,
            signer_count=len(derived.signers),
            config_blob=derived.config_blob,
        )
        invitees = [s for s in derived.signers if s != creator]
        stored = await self._accounts.create_account(account, creator, invitees)

        log.info(
            "multisig_account_created",
            threshold=stored.threshold,
            signer_count=stored.signer_count,
            invites=len(invitees),
        )
        return stored

    async def update_name(self, identity: str, address: str, name: str) -> MultisigAccount:
        """Rename an account. Only active signers may do this."""
        identity = normalize_identity(identity)
        address = normalize_identity(address)
        await self._require_account(address)
        if not await self._accounts.is_signer(address, identity):
            raise UnauthorizedSignerError(identity, address)

        account = await self._accounts.update_name(address, _clean_name(name))
        logger.info("multisig_account_renamed", account=address, signer=identity)
        return account

    async def get_account_info(self, identity: str, address: str) -> MultisigAccount:
        """Return account details to a signer or invitee."""
        identity = normalize_identity(identity)
        address = normalize_identity(address)
        account = await self._require_account(address)
        await self._require_member(identity, address)
        return account

    async def list_accounts_for(self, identity: str) -> list[MultisigAccount]:
        return await self._accounts.list_accounts_for(normalize_identity(identity))

    async def list_signers(self, identity: str, address: str) -> AccountSigners:
        """Active signers and every invite of an account."""
        identity = normalize_identity(identity)
        address = normalize_identity(address)
        account = await self._require_account(address)
        await self._require_member(identity, address)
        return AccountSigners(
            account=account,
            signers=await self._accounts.list_signers(address),
            invites=await self._accounts.list_invites(address),
        )

    async def list_invites_for(self, identity: str) -> list[AccountInvite]:
        """Pending invites where ``identity`` is the invitee."""
        return await self._accounts.list_pending_invites_for(normalize_identity(identity))

    async def respond_to_invite(self, identity: str, address: str, accept: bool) -> Invite:
        """Accept or reject an invite.

        Raises:
            AlreadyASignerError: If the identity is already an active signer.
            InviteNotFoundError: If no invite was issued.
            AlreadyRespondedError: If the invite was already answered.
        """
        identity = normalize_identity(identity)
        address = normalize_identity(address)
        log = logger.bind(account=address, signer=identity, accept=accept)

        if await self._accounts.is_signer(address, identity):
            raise AlreadyASignerError(identity, address)

        invite = await self._accounts.get_invite(address, identity)
        if invite is None:
            raise InviteNotFoundError(identity, address)
        if invite.status.is_terminal():
            raise AlreadyRespondedError(identity, address, invite.status.value)

        target = InviteStatus.ACCEPTED if accept else InviteStatus.REJECTED
        updated = await self._accounts.respond_to_invite(address, identity, target)
        log.info("invite_answered", invite_status=updated.status.value)
        return updated

    async def _require_account(self, address: str) -> MultisigAccount:
        account = await self._accounts.get_account(address)
        if account is None:
            raise AccountNotFoundError(address)
        return account

    async def _require_member(self, identity: str, address: str) -> None:
        if await self._accounts.is_signer(address, identity):
            return
        if await self._accounts.get_invite(address, identity) is not None:
            return
        raise UnauthorizedSignerError(identity, address)


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned or len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidAccountNameError(MAX_NAME_LENGTH)
    return cleaned
