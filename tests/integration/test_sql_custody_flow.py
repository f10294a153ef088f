"""End-to-end custody flow on the SQL repositories.

Account creation, invites, proposal, co-signing, broadcast failure,
revival and listing all run against one in-memory SQLite database with a
stub chain gateway.
"""

from __future__ import annotations

import json

import pytest

from multisig_custody.application.services.account_lifecycle_service import (
    AccountLifecycleService,
)
from multisig_custody.application.services.transaction_coordinator_service import (
    TransactionCoordinatorService,
)
from multisig_custody.domain.errors.account import AlreadyRespondedError
from multisig_custody.domain.errors.transaction import (
    InvalidSignerError,
    InvalidTransactionStateError,
    OutpointConsumedError,
)
from multisig_custody.domain.models.multisig_transaction import TransactionStatus
from multisig_custody.domain.primitives.molecule import WitnessArgs
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.infrastructure.adapters.persistence import (
    SqlMultisigTransactionRepository,
)
from multisig_custody.infrastructure.stubs import ChainGatewayStub
from tests.helpers.ckb_builders import (
    out_point,
    sighash_script,
    signature,
    signature_hex,
    transfer_payload,
)

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_two_of_three_transfer_commits(
    sql_lifecycle: AccountLifecycleService,
    sql_coordinator: TransactionCoordinatorService,
    sql_transactions: SqlMultisigTransactionRepository,
    chain: ChainGatewayStub,
    codec: AddressCodec,
    alice: str,
    bob: str,
    carol: str,
) -> None:
    account = await sql_lifecycle.create_account(alice, "Treasury", 2, [alice, bob, carol])
    await sql_lifecycle.respond_to_invite(bob, account.address, accept=True)
    await sql_lifecycle.respond_to_invite(carol, account.address, accept=False)
    with pytest.raises(AlreadyRespondedError):
        await sql_lifecycle.respond_to_invite(carol, account.address, accept=True)

    chain.add_live_cell(out_point(1), codec.decode(account.address), 6100000000)
    payload = json.dumps(transfer_payload([out_point(1)], sighash_script(8), 6100000000))

    with pytest.raises(InvalidSignerError):
        await sql_coordinator.propose_transfer(carol, signature_hex(0xC3), payload)

    proposed = await sql_coordinator.propose_transfer(alice, signature_hex(0xA1), payload)
    assert proposed.status is TransactionStatus.PENDING

    committed = await sql_coordinator.submit_signature(bob, signature_hex(0xB2), proposed.tx_id)

    assert committed.status is TransactionStatus.COMMITTED
    assert len(chain.broadcasts) == 1
    lock = WitnessArgs.from_bytes(chain.broadcasts[0].witnesses[0]).lock
    assert lock == account.config_blob + signature(0xA1) + signature(0xB2)

    stored = await sql_transactions.get(proposed.tx_id)
    assert stored is not None
    assert stored.status is TransactionStatus.COMMITTED
    assert json.loads(stored.payload)["hash"] == proposed.tx_id

    with pytest.raises(InvalidTransactionStateError):
        await sql_coordinator.submit_signature(bob, signature_hex(0xB2), proposed.tx_id)


@pytest.mark.asyncio
async def test_failed_broadcast_revived_and_listed(
    sql_lifecycle: AccountLifecycleService,
    sql_coordinator: TransactionCoordinatorService,
    chain: ChainGatewayStub,
    codec: AddressCodec,
    alice: str,
    bob: str,
) -> None:
    account = await sql_lifecycle.create_account(alice, "Pair", 2, [alice, bob])
    await sql_lifecycle.respond_to_invite(bob, account.address, accept=True)
    chain.add_live_cell(out_point(1), codec.decode(account.address), 500)
    chain.add_live_cell(out_point(2), codec.decode(account.address), 700)
    payload = json.dumps(transfer_payload([out_point(1)], sighash_script(8), 400))
    other = json.dumps(transfer_payload([out_point(2)], sighash_script(8), 650))

    proposed = await sql_coordinator.propose_transfer(alice, signature_hex(0xA1), payload)
    await sql_coordinator.propose_transfer(bob, signature_hex(0xB2), other)
    chain.fail_next_broadcast()
    failed = await sql_coordinator.submit_signature(bob, signature_hex(0xB2), proposed.tx_id)
    assert failed.status is TransactionStatus.FAILED

    detail = await sql_coordinator.get_transaction(alice, proposed.tx_id)
    assert len(detail.errors) == 1
    assert detail.errors[0].actor == bob

    revived = await sql_coordinator.propose_transfer(bob, signature_hex(0xB2), payload)
    assert (revived.status, revived.attempt) == (TransactionStatus.PENDING, 2)

    summary = await sql_coordinator.summarize(alice, account.address)
    assert (summary.pending_count, summary.pending_amount) == (2, 1050)

    page = await sql_coordinator.list_transactions(
        alice, account.address, statuses=[TransactionStatus.PENDING], limit=500
    )
    assert page.total == 2
    assert page.limit == 50
    revived_item = next(i for i in page.items if i.record.tx_id == proposed.tx_id)
    assert revived_item.signers == [bob]
    assert revived_item.amount == 400

    committed = await sql_coordinator.submit_signature(
        alice, signature_hex(0xA1), proposed.tx_id
    )
    assert committed.status is TransactionStatus.COMMITTED


@pytest.mark.asyncio
async def test_spent_input_recorded_on_sign(
    sql_lifecycle: AccountLifecycleService,
    sql_coordinator: TransactionCoordinatorService,
    sql_transactions: SqlMultisigTransactionRepository,
    chain: ChainGatewayStub,
    codec: AddressCodec,
    alice: str,
    bob: str,
) -> None:
    account = await sql_lifecycle.create_account(alice, "Pair", 2, [alice, bob])
    await sql_lifecycle.respond_to_invite(bob, account.address, accept=True)
    chain.add_live_cell(out_point(1), codec.decode(account.address), 500)
    payload = json.dumps(transfer_payload([out_point(1)], sighash_script(8), 400))
    proposed = await sql_coordinator.propose_transfer(alice, signature_hex(0xA1), payload)
    chain.consume(out_point(1))

    with pytest.raises(OutpointConsumedError):
        await sql_coordinator.submit_signature(bob, signature_hex(0xB2), proposed.tx_id)

    errors = await sql_transactions.list_errors(proposed.tx_id)
    assert [e.actor for e in errors] == [bob]
    reconciled = await sql_coordinator.reconcile_external_commit(bob, [proposed.tx_id])
    assert reconciled == [proposed.tx_id]
