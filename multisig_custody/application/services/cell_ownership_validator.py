"""Confirms that a proposal's inputs are live and share one multisig owner."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from structlog import get_logger

from multisig_custody.application.ports.chain_gateway import ChainGatewayProtocol
from multisig_custody.domain.errors.transaction import (
    InvalidPayloadError,
    OutpointConsumedError,
    OutpointNotOwnedError,
)
from multisig_custody.domain.models.ckb_transaction import OutPoint
from multisig_custody.domain.services.address_codec import AddressCodec

logger = get_logger()


class CellOwnershipValidator:
    """Resolves the single multisig address that owns a set of inputs.

    The owner address is re-encoded from each live cell's lock script as
    given by the node; the lock args are never re-hashed.
    """

    def __init__(self, chain: ChainGatewayProtocol, codec: AddressCodec) -> None:
        self._chain = chain
        self._codec = codec

    async def validate(self, out_points: Sequence[OutPoint]) -> str:
        """Return the common owner address of ``out_points``.

        Liveness lookups run concurrently; failures are reported for the
        first offending input in input order.

        Raises:
            InvalidPayloadError: If there are no inputs.
            OutpointConsumedError: If an input is not live.
            OutpointNotOwnedError: If an input is not multisig-locked or
                belongs to a different address than earlier inputs.
            ChainUnavailableError: If the node cannot be reached.
        """
        if not out_points:
            raise InvalidPayloadError("transaction has no inputs")

        log = logger.bind(input_count=len(out_points))
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [
                    tg.create_task(self._chain.get_live_cell(op)) for op in out_points
                ]
        except ExceptionGroup as group:
            # Siblings are already cancelled; surface the node error itself
            raise group.exceptions[0] from None

        owner = ""
        for cell in (t.result() for t in tasks):
            outpoint = str(cell.out_point)
            if not cell.is_live or cell.lock is None:
                log.warning("input_not_live", outpoint=outpoint, cell_status=cell.status)
                raise OutpointConsumedError(outpoint, cell.status)

            address = self._codec.encode(cell.lock)
            if not self._codec.is_multisig_lock(cell.lock) or (
                owner and address != owner
            ):
                log.warning(
                    "input_owner_mismatch",
                    outpoint=outpoint,
                    expected=owner or None,
                    actual=address,
                )
                raise OutpointNotOwnedError(outpoint, owner or None, address)
            owner = address

        log.debug("inputs_owned", account=owner)
        return owner
