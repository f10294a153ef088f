"""Chain gateway errors.

Raised by ChainGateway adapters. Broadcast failures after the threshold is
reached are recorded against the transaction and flip it to FAILED; there
is no automatic retry.
"""

from __future__ import annotations

from typing import Any

from multisig_custody.domain.errors.base import ChainError


class ChainUnavailableError(ChainError):
    """Raised when the chain node cannot be reached or times out.

    HTTP Status: 502 Bad Gateway

    Attributes:
        method: JSON-RPC method that failed.
        reason: Transport-level failure description.
    """

    slug = "chain-unavailable"
    title = "Chain Node Unavailable"

    def __init__(self, method: str, reason: str) -> None:
        self.method = method
        self.reason = reason
        super().__init__(f"Chain call {method} failed: {reason}")

    def context(self) -> dict[str, Any]:
        return {"method": self.method, "reason": self.reason}


class BroadcastRejectedError(ChainError):
    """Raised when the node refuses a transaction.

    HTTP Status: 502 Bad Gateway

    Attributes:
        tx_id: The transaction id that was refused.
        code: JSON-RPC error code, when the node supplied one.
    """

    slug = "broadcast-rejected"
    title = "Broadcast Rejected"

    def __init__(self, tx_id: str, reason: str, code: int | None = None) -> None:
        self.tx_id = tx_id
        self.reason = reason
        self.code = code
        super().__init__(f"Broadcast of {tx_id} rejected: {reason}")

    def context(self) -> dict[str, Any]:
        return {"tx_id": self.tx_id, "rpc_code": self.code}
