"""SQLAlchemy implementation of MultisigAccountRepositoryProtocol.

Each mutating method runs in a single ``session.begin()`` block, so a
failure at any step rolls back the whole unit (account + signer + invites,
or invite flip + signer insert).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

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
    utc_now,
)
from multisig_custody.infrastructure.adapters.persistence.tables import (
    accounts,
    as_utc,
    invites,
    signers,
)

logger = get_logger()


def _account(row: Any) -> MultisigAccount:
    return MultisigAccount(
        address=row.address,
        name=row.name,
        threshold=row.threshold,
        signer_count=row.signer_count,
        config_blob=bytes(row.config_blob),
        created_at=as_utc(row.created_at),
    )


def _signer(row: Any) -> Signer:
    return Signer(
        account_address=row.account_address,
        signer_address=row.signer_address,
        created_at=as_utc(row.created_at),
    )


def _invite(row: Any) -> Invite:
    return Invite(
        account_address=row.account_address,
        signer_address=row.signer_address,
        status=InviteStatus(row.status),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class SqlMultisigAccountRepository:
    """Accounts, signers and invites in a relational store.

    Attributes:
        _session_factory: SQLAlchemy async session factory for DB access.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_account(
        self,
        account: MultisigAccount,
        creator: str,
        invitees: Sequence[str],
    ) -> MultisigAccount:
        address = normalize_identity(account.address)
        creator = normalize_identity(creator)
        now = utc_now()
        try:
            async with self._session_factory.begin() as session:
                if await session.scalar(
                    select(accounts.c.address).where(accounts.c.address == address)
                ):
                    raise AccountExistsError(address)

                await session.execute(
                    insert(accounts).values(
                        address=address,
                        name=account.name,
                        threshold=account.threshold,
                        signer_count=account.signer_count,
                        config_blob=account.config_blob,
                        created_at=account.created_at,
                    )
                )
                await session.execute(
                    insert(signers).values(
                        account_address=address, signer_address=creator, created_at=now
                    )
                )
                for invitee in dict.fromkeys(normalize_identity(i) for i in invitees):
                    if invitee == creator or await self._invite_exists(
                        session, address, invitee
                    ):
                        continue
                    await session.execute(
                        insert(invites).values(
                            account_address=address,
                            signer_address=invitee,
                            status=InviteStatus.PENDING.value,
                            created_at=now,
                            updated_at=now,
                        )
                    )
        except IntegrityError as exc:
            logger.warning("account_insert_conflict", account=address, error=str(exc))
            raise AccountExistsError(address) from exc

        return MultisigAccount(
            address=address,
            name=account.name,
            threshold=account.threshold,
            signer_count=account.signer_count,
            config_blob=account.config_blob,
            created_at=account.created_at,
        )

    async def get_account(self, address: str) -> MultisigAccount | None:
        async with self._session_factory() as session:
            row = (
                await session.execute(
                    select(accounts).where(accounts.c.address == normalize_identity(address))
                )
            ).first()
        return _account(row) if row else None

    async def update_name(self, address: str, name: str) -> MultisigAccount:
        address = normalize_identity(address)
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(accounts).where(accounts.c.address == address).values(name=name)
            )
            if result.rowcount == 0:
                raise AccountNotFoundError(address)
            row = (
                await session.execute(select(accounts).where(accounts.c.address == address))
            ).one()
        return _account(row)

    async def is_signer(self, address: str, identity: str) -> bool:
        async with self._session_factory() as session:
            found = await session.scalar(
                select(signers.c.signer_address).where(
                    signers.c.account_address == normalize_identity(address),
                    signers.c.signer_address == normalize_identity(identity),
                )
            )
        return found is not None

    async def list_signers(self, address: str) -> list[Signer]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(signers)
                .where(signers.c.account_address == normalize_identity(address))
                .order_by(signers.c.created_at, signers.c.signer_address)
            )
            return [_signer(row) for row in rows]

    async def list_invites(self, address: str) -> list[Invite]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(invites)
                .where(invites.c.account_address == normalize_identity(address))
                .order_by(invites.c.created_at, invites.c.signer_address)
            )
            return [_invite(row) for row in rows]

    async def get_invite(self, address: str, identity: str) -> Invite | None:
        async with self._session_factory() as session:
            row = (
                await session.execute(
                    select(invites).where(
                        invites.c.account_address == normalize_identity(address),
                        invites.c.signer_address == normalize_identity(identity),
                    )
                )
            ).first()
        return _invite(row) if row else None

    async def list_pending_invites_for(self, identity: str) -> list[AccountInvite]:
        stmt = (
            select(
                invites,
                accounts.c.name,
                accounts.c.threshold,
                accounts.c.signer_count,
                accounts.c.config_blob,
                accounts.c.created_at.label("account_created_at"),
            )
            .join(accounts, accounts.c.address == invites.c.account_address)
            .where(
                invites.c.signer_address == normalize_identity(identity),
                invites.c.status == InviteStatus.PENDING.value,
            )
            .order_by(invites.c.created_at)
        )
        async with self._session_factory() as session:
            rows = await session.execute(stmt)
            return [
                AccountInvite(
                    invite=_invite(row),
                    account=MultisigAccount(
                        address=row.account_address,
                        name=row.name,
                        threshold=row.threshold,
                        signer_count=row.signer_count,
                        config_blob=bytes(row.config_blob),
                        created_at=as_utc(row.account_created_at),
                    ),
                )
                for row in rows
            ]

    async def list_accounts_for(self, identity: str) -> list[MultisigAccount]:
        stmt = (
            select(accounts)
            .join(signers, signers.c.account_address == accounts.c.address)
            .where(signers.c.signer_address == normalize_identity(identity))
            .order_by(accounts.c.created_at)
        )
        async with self._session_factory() as session:
            rows = await session.execute(stmt)
            return [_account(row) for row in rows]

    async def respond_to_invite(
        self, address: str, identity: str, status: InviteStatus
    ) -> Invite:
        address = normalize_identity(address)
        identity = normalize_identity(identity)
        async with self._session_factory.begin() as session:
            row = (
                await session.execute(
                    select(invites)
                    .where(
                        invites.c.account_address == address,
                        invites.c.signer_address == identity,
                    )
                    .with_for_update()
                )
            ).first()
            if row is None:
                raise InviteNotFoundError(identity, address)
            current = _invite(row)
            if current.status.is_terminal():
                raise AlreadyRespondedError(identity, address, current.status.value)

            updated = current.with_status(status)
            await session.execute(
                update(invites)
                .where(
                    invites.c.account_address == address,
                    invites.c.signer_address == identity,
                )
                .values(status=updated.status.value, updated_at=updated.updated_at)
            )
            if updated.status is InviteStatus.ACCEPTED:
                await session.execute(
                    insert(signers).values(
                        account_address=address,
                        signer_address=identity,
                        created_at=updated.updated_at,
                    )
                )
        return updated

    async def _invite_exists(self, session: AsyncSession, address: str, identity: str) -> bool:
        found = await session.scalar(
            select(invites.c.signer_address).where(
                invites.c.account_address == address,
                invites.c.signer_address == identity,
            )
        )
        return found is not None
