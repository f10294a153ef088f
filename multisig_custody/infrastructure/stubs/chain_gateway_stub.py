"""In-memory stub for ChainGatewayProtocol.

Cells are registered with ``add_live_cell`` / ``consume``; anything not
registered is ``unknown``. Broadcasts are recorded, consume their inputs
and can be made to fail with ``fail_next_broadcast``.
"""

from __future__ import annotations

from multisig_custody.application.ports.chain_gateway import LIVE_STATUS, LiveCell
from multisig_custody.domain.errors.chain import BroadcastRejectedError
from multisig_custody.domain.exceptions import MultisigError
from multisig_custody.domain.models.ckb_transaction import (
    CkbTransaction,
    OutPoint,
    Script,
)


class ChainGatewayStub:
    """In-memory implementation of ChainGatewayProtocol."""

    def __init__(self) -> None:
        self._live: dict[OutPoint, tuple[Script, int]] = {}
        self._dead: set[OutPoint] = set()
        self._broadcast_error: MultisigError | None = None
        self.broadcasts: list[CkbTransaction] = []
        self.live_cell_queries: list[OutPoint] = []

    def add_live_cell(self, out_point: OutPoint, lock: Script, capacity: int = 0) -> None:
        self._live[out_point] = (lock, capacity)
        self._dead.discard(out_point)

    def consume(self, out_point: OutPoint) -> None:
        self._live.pop(out_point, None)
        self._dead.add(out_point)

    def fail_next_broadcast(self, error: MultisigError | None = None) -> None:
        """Make the next ``send_transaction`` raise ``error``."""
        self._broadcast_error = error or BroadcastRejectedError(
            tx_id="", reason="rejected by stub"
        )

    async def get_live_cell(self, out_point: OutPoint) -> LiveCell:
        self.live_cell_queries.append(out_point)
        if out_point in self._live:
            lock, capacity = self._live[out_point]
            return LiveCell(
                out_point=out_point, status=LIVE_STATUS, lock=lock, capacity=capacity
            )
        status = "dead" if out_point in self._dead else "unknown"
        return LiveCell(out_point=out_point, status=status)

    async def is_live(self, out_point: OutPoint) -> bool:
        return (await self.get_live_cell(out_point)).is_live

    async def send_transaction(self, tx: CkbTransaction) -> str:
        if self._broadcast_error is not None:
            error, self._broadcast_error = self._broadcast_error, None
            raise error
        self.broadcasts.append(tx)
        for out_point in tx.input_out_points:
            self.consume(out_point)
        return tx.tx_id

    # Test helper methods

    def reset(self) -> None:
        """Reset all stored data. Useful between tests."""
        self._live.clear()
        self._dead.clear()
        self._broadcast_error = None
        self.broadcasts.clear()
        self.live_cell_queries.clear()
