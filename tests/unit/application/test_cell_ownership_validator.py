"""Unit tests for CellOwnershipValidator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from multisig_custody.application.ports.chain_gateway import LiveCell
from multisig_custody.application.services.cell_ownership_validator import (
    CellOwnershipValidator,
)
from multisig_custody.domain.errors.chain import ChainUnavailableError
from multisig_custody.domain.errors.transaction import (
    InvalidPayloadError,
    OutpointConsumedError,
    OutpointNotOwnedError,
)
from multisig_custody.domain.models.ckb_transaction import OutPoint, Script
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.infrastructure.stubs import ChainGatewayStub
from tests.helpers.ckb_builders import out_point, sighash_script


@pytest.fixture
def multisig_lock(codec: AddressCodec, alice: str, bob: str) -> Script:
    return codec.decode(codec.derive([alice, bob], 2).address)


@pytest.fixture
def other_multisig_lock(codec: AddressCodec, alice: str, carol: str) -> Script:
    return codec.decode(codec.derive([alice, carol], 2).address)


class TestValidate:
    """Tests for validate."""

    @pytest.mark.asyncio
    async def test_returns_common_owner(
        self,
        validator: CellOwnershipValidator,
        chain: ChainGatewayStub,
        codec: AddressCodec,
        multisig_lock: Script,
    ) -> None:
        chain.add_live_cell(out_point(1), multisig_lock)
        chain.add_live_cell(out_point(2), multisig_lock)

        owner = await validator.validate([out_point(1), out_point(2)])

        assert owner == codec.encode(multisig_lock)

    @pytest.mark.asyncio
    async def test_dead_cell_rejected(
        self,
        validator: CellOwnershipValidator,
        chain: ChainGatewayStub,
        multisig_lock: Script,
    ) -> None:
        chain.add_live_cell(out_point(1), multisig_lock)
        chain.consume(out_point(1))

        with pytest.raises(OutpointConsumedError) as exc_info:
            await validator.validate([out_point(1)])

        assert exc_info.value.status == "dead"

    @pytest.mark.asyncio
    async def test_unknown_cell_rejected(self, validator: CellOwnershipValidator) -> None:
        with pytest.raises(OutpointConsumedError):
            await validator.validate([out_point(5)])

    @pytest.mark.asyncio
    async def test_mixed_owners_rejected(
        self,
        validator: CellOwnershipValidator,
        chain: ChainGatewayStub,
        multisig_lock: Script,
        other_multisig_lock: Script,
    ) -> None:
        chain.add_live_cell(out_point(1), multisig_lock)
        chain.add_live_cell(out_point(2), other_multisig_lock)

        with pytest.raises(OutpointNotOwnedError) as exc_info:
            await validator.validate([out_point(1), out_point(2)])

        assert exc_info.value.outpoint == str(out_point(2))

    @pytest.mark.asyncio
    async def test_single_signature_lock_rejected(
        self, validator: CellOwnershipValidator, chain: ChainGatewayStub
    ) -> None:
        chain.add_live_cell(out_point(1), sighash_script(4))

        with pytest.raises(OutpointNotOwnedError):
            await validator.validate([out_point(1)])

    @pytest.mark.asyncio
    async def test_first_offending_input_reported(
        self,
        validator: CellOwnershipValidator,
        chain: ChainGatewayStub,
        multisig_lock: Script,
    ) -> None:
        """Failures follow input order even though lookups run concurrently."""
        chain.add_live_cell(out_point(3), multisig_lock)

        with pytest.raises(OutpointConsumedError) as exc_info:
            await validator.validate([out_point(3), out_point(1), out_point(2)])

        assert exc_info.value.outpoint == str(out_point(1))
        assert len(chain.live_cell_queries) == 3

    @pytest.mark.asyncio
    async def test_no_inputs_rejected(self, validator: CellOwnershipValidator) -> None:
        with pytest.raises(InvalidPayloadError):
            await validator.validate([])

    @pytest.mark.asyncio
    async def test_gateway_failure_propagates(self, codec: AddressCodec) -> None:
        gateway = AsyncMock()
        gateway.get_live_cell.side_effect = ChainUnavailableError("get_live_cell", "timed out")
        validator = CellOwnershipValidator(gateway, codec)

        with pytest.raises(ChainUnavailableError):
            await validator.validate([out_point(1)])

    @pytest.mark.asyncio
    async def test_live_cell_without_lock_treated_as_consumed(
        self, codec: AddressCodec
    ) -> None:
        gateway = AsyncMock()
        gateway.get_live_cell.return_value = LiveCell(out_point=out_point(1), status="live")
        validator = CellOwnershipValidator(gateway, codec)

        with pytest.raises(OutpointConsumedError):
            await validator.validate([out_point(1)])

    @pytest.mark.asyncio
    async def test_failed_lookup_cancels_siblings(self, codec: AddressCodec) -> None:
        cancelled = asyncio.Event()

        async def lookup(op: OutPoint) -> LiveCell:
            if op == out_point(1):
                raise ChainUnavailableError("get_live_cell", "connection refused")
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return LiveCell(out_point=op, status="live")

        gateway = AsyncMock()
        gateway.get_live_cell.side_effect = lookup
        validator = CellOwnershipValidator(gateway, codec)

        with pytest.raises(ChainUnavailableError):
            await validator.validate([out_point(2), out_point(1)])

        assert cancelled.is_set()
