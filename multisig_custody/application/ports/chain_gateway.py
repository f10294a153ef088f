"""Chain gateway port: cell liveness and transaction broadcast.

Both calls go to a remote node and may be slow. Implementations bound them
with timeouts and raise ``ChainError`` subclasses on failure. Callers never
hold a store transaction open across these calls.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Protocol

from multisig_custody.domain.models.ckb_transaction import (
    CkbTransaction,
    OutPoint,
    Script,
)

LIVE_STATUS = "live"


@dataclass(frozen=True)
class LiveCell:
    """Answer to a liveness query.

    Attributes:
        out_point: The queried cell.
        status: Node status string (``live``, ``dead``, ``unknown``).
        lock: The cell's lock script, present only when live.
        capacity: Cell capacity in shannons, present only when live.
    """

    out_point: OutPoint
    status: str
    lock: Script | None = None
    capacity: int | None = None

    @property
    def is_live(self) -> bool:
        return self.status == LIVE_STATUS and self.lock is not None


class ChainGatewayProtocol(Protocol):
    """Protocol for talking to a CKB node."""

    @abstractmethod
    async def get_live_cell(self, out_point: OutPoint) -> LiveCell:
        """Look up a cell.

        Raises:
            ChainUnavailableError: If the node cannot be reached.
        """
        ...

    @abstractmethod
    async def is_live(self, out_point: OutPoint) -> bool:
        """Return True if the cell is currently live."""
        ...

    @abstractmethod
    async def send_transaction(self, tx: CkbTransaction) -> str:
        """Broadcast a fully signed transaction.

        Returns:
            The 0x-prefixed transaction hash reported by the node.

        Raises:
            ChainUnavailableError: If the node cannot be reached.
            BroadcastRejectedError: If the node refuses the transaction.
        """
        ...
