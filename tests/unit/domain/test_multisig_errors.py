"""Unit tests for the categorized domain errors and their problem documents."""

from __future__ import annotations

import json

import pytest

from multisig_custody.domain.errors import (
    PROBLEM_TYPE_PREFIX,
    AccountExistsError,
    AlreadySignedError,
    AuthorizationError,
    BroadcastRejectedError,
    CategorizedError,
    ChainUnavailableError,
    ConflictError,
    InvalidTransactionStateError,
    MalformedWitnessError,
    OutpointConsumedError,
    TransactionNotFoundError,
    UnauthorizedSignerError,
    ValidationError,
)
from multisig_custody.domain.exceptions import MultisigError
from multisig_custody.domain.models.multisig_transaction import TransactionStatus


class TestCategories:
    @pytest.mark.parametrize(
        ("error", "status", "category"),
        [
            (OutpointConsumedError("0xaa:0", "dead"), 400, "validation"),
            (UnauthorizedSignerError("ckt1a", "ckt1b"), 403, "authorization"),
            (TransactionNotFoundError("0xaa"), 404, "not-found"),
            (AccountExistsError("ckt1b"), 409, "conflict"),
            (MalformedWitnessError("bad"), 422, "encoding"),
            (ChainUnavailableError("get_live_cell", "timed out"), 502, "chain"),
        ],
    )
    def test_status_and_type(
        self, error: CategorizedError, status: int, category: str
    ) -> None:
        problem = error.to_rfc7807_dict()

        assert error.http_status == status
        assert problem["status"] == status
        assert problem["type"] == f"{PROBLEM_TYPE_PREFIX}:{category}:{error.slug}"
        assert problem["title"] == error.title
        assert problem["detail"] == str(error)

    def test_hierarchy(self) -> None:
        assert issubclass(CategorizedError, MultisigError)
        assert issubclass(OutpointConsumedError, ValidationError)
        assert issubclass(UnauthorizedSignerError, AuthorizationError)
        assert issubclass(AlreadySignedError, ConflictError)


class TestContext:
    """Problem documents carry error attributes and stay JSON-serializable."""

    def test_outpoint_consumed(self) -> None:
        error = OutpointConsumedError("0xaa:1", "unknown")

        problem = error.to_rfc7807_dict()

        assert problem["outpoint"] == "0xaa:1"
        assert problem["cell_status"] == "unknown"
        assert error.status == "unknown"

    def test_invalid_state_uses_status_values(self) -> None:
        error = InvalidTransactionStateError(
            "0xaa", TransactionStatus.COMMITTED, TransactionStatus.PENDING
        )

        problem = error.to_rfc7807_dict()

        assert problem["from_status"] == "committed"
        assert problem["to_status"] == "pending"
        assert "committed -> pending" in problem["detail"]
        json.dumps(problem)

    def test_invalid_state_without_target(self) -> None:
        error = InvalidTransactionStateError(
            "0xaa", TransactionStatus.PENDING, reason="broadcast already in progress"
        )

        assert "broadcast already in progress" in str(error)
        assert error.to_rfc7807_dict()["to_status"] is None

    def test_malformed_witness_lengths(self) -> None:
        error = MalformedWitnessError("lock too short", actual_length=10, expected_length=89)

        problem = error.to_rfc7807_dict()

        assert (problem["actual_length"], problem["expected_length"]) == (10, 89)
        assert str(error) == "Malformed witness: lock too short"

    def test_broadcast_rejected(self) -> None:
        error = BroadcastRejectedError("0xaa", "TransactionFailedToVerify", -302)

        problem = error.to_rfc7807_dict()

        assert problem["rpc_code"] == -302
        assert "TransactionFailedToVerify" in problem["detail"]
        json.dumps(problem)
