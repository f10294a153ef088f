"""Adapters binding application ports to a CKB node and a database."""

from multisig_custody.infrastructure.adapters.ckb_rpc_gateway import (
    CkbRpcChainGateway,
    JsonRpcError,
)

__all__ = ["CkbRpcChainGateway", "JsonRpcError"]
