"""CKB JSON-RPC adapter for ChainGatewayProtocol.

Calls used:
- ``get_live_cell(out_point, with_data=false)``
- ``send_transaction(tx, "passthrough")``

Every request is bounded by the client's timeout. Transport failures,
non-2xx responses and malformed bodies raise ``ChainUnavailableError``; a
JSON-RPC ``error`` on broadcast raises ``BroadcastRejectedError``.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx
from structlog import get_logger

from multisig_custody.application.ports.chain_gateway import LIVE_STATUS, LiveCell
from multisig_custody.domain.errors.base import ValidationError
from multisig_custody.domain.errors.chain import (
    BroadcastRejectedError,
    ChainUnavailableError,
)
from multisig_custody.domain.models.ckb_transaction import (
    CkbTransaction,
    OutPoint,
    Script,
)

logger = get_logger()

OUTPUTS_VALIDATOR = "passthrough"


class JsonRpcError(Exception):
    """A JSON-RPC ``error`` object returned by the node."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error {code}: {message}")


class CkbRpcChainGateway:
    """ChainGateway backed by a CKB node's JSON-RPC endpoint.

    Attributes:
        _client: Shared ``httpx.AsyncClient``; owned (and closed) by this
            gateway unless one was injected.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._ids = itertools.count(1)

    async def get_live_cell(self, out_point: OutPoint) -> LiveCell:
        result = await self._call("get_live_cell", [out_point.to_json(), False])
        if not isinstance(result, dict):
            raise ChainUnavailableError("get_live_cell", "result is not an object")
        status = str(result.get("status", "unknown"))
        if status != LIVE_STATUS:
            return LiveCell(out_point=out_point, status=status)

        try:
            output = result["cell"]["output"]
            lock = Script.from_json(output["lock"], "cell.output.lock")
            capacity = int(output["capacity"], 16)
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise ChainUnavailableError(
                "get_live_cell", f"malformed live cell response: {exc}"
            ) from exc
        return LiveCell(out_point=out_point, status=status, lock=lock, capacity=capacity)

    async def is_live(self, out_point: OutPoint) -> bool:
        return (await self.get_live_cell(out_point)).is_live

    async def send_transaction(self, tx: CkbTransaction) -> str:
        body = tx.to_json()
        body.pop("hash", None)
        log = logger.bind(tx_id=tx.tx_id)
        try:
            result = await self._call("send_transaction", [body, OUTPUTS_VALIDATOR])
        except JsonRpcError as exc:
            log.warning("ckb_broadcast_rejected", rpc_code=exc.code, reason=exc.message)
            raise BroadcastRejectedError(tx.tx_id, exc.message, exc.code) from exc
        log.info("ckb_broadcast_accepted", node_hash=result)
        return str(result)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._client.post(self._rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as exc:
            logger.warning("ckb_rpc_timeout", method=method)
            raise ChainUnavailableError(method, "timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("ckb_rpc_http_error", method=method, error=str(exc))
            raise ChainUnavailableError(method, str(exc)) from exc
        except ValueError as exc:
            raise ChainUnavailableError(method, "response is not JSON") from exc

        if not isinstance(body, dict):
            raise ChainUnavailableError(method, "response is not a JSON object")
        error = body.get("error")
        if error:
            if method != "send_transaction":
                raise ChainUnavailableError(
                    method, f"RPC error {error.get('code')}: {error.get('message')}"
                )
            raise JsonRpcError(
                int(error.get("code", -1)),
                str(error.get("message", "unknown error")),
                error.get("data"),
            )
        if "result" not in body:
            raise ChainUnavailableError(method, "response has no result")
        return body["result"]
