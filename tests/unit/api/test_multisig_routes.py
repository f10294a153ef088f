"""Unit tests for the multisig HTTP API.

The app runs with the in-memory repositories and a stub chain gateway; the
lifespan is entered through ``TestClient`` as a context manager.
"""

from __future__ import annotations

import json
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from multisig_custody.api.dependencies.multisig import SIGNER_HEADER
from multisig_custody.api.main import create_app
from multisig_custody.api.middleware.logging_middleware import CORRELATION_HEADER
from multisig_custody.api.middleware.problem_details import PROBLEM_MEDIA_TYPE
from multisig_custody.bootstrap.container import MultisigContainer, build_container
from multisig_custody.config.multisig_config import MultisigSettings
from multisig_custody.domain.services.address_codec import AddressCodec
from multisig_custody.infrastructure.stubs import ChainGatewayStub
from tests.helpers.ckb_builders import (
    out_point,
    sighash_script,
    signature_hex,
    transfer_payload,
)


@pytest.fixture
def chain() -> ChainGatewayStub:
    return ChainGatewayStub()


@pytest.fixture
def container(chain: ChainGatewayStub) -> MultisigContainer:
    return build_container(MultisigSettings(environment="test"), chain=chain)


@pytest.fixture
def client(container: MultisigContainer) -> Iterator[TestClient]:
    with TestClient(create_app(container=container)) as test_client:
        yield test_client


def _as(identity: str) -> dict[str, str]:
    return {SIGNER_HEADER: identity}


def _create_treasury(client: TestClient, alice: str, bob: str, carol: str) -> dict:
    response = client.post(
        "/v1/multisig/accounts",
        json={"name": "Treasury", "threshold": 2, "signers": [alice, bob, carol]},
        headers=_as(alice),
    )
    assert response.status_code == 201
    account = response.json()
    for invitee in (bob, carol):
        accepted = client.put(
            f"/v1/multisig/invites/{account['address']}/accept", headers=_as(invitee)
        )
        assert accepted.status_code == 200
    return account


class TestHealth:
    def test_health_reports_network(self, client: TestClient) -> None:
        response = client.get("/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "network": "testnet"}

    def test_correlation_id_echoed(self, client: TestClient) -> None:
        response = client.get("/v1/health", headers={CORRELATION_HEADER: "req-123"})

        assert response.headers[CORRELATION_HEADER] == "req-123"

    def test_correlation_id_generated(self, client: TestClient) -> None:
        response = client.get("/v1/health")

        assert response.headers.get(CORRELATION_HEADER)


class TestAccountRoutes:
    """Tests for account and invite endpoints."""

    def test_create_account(
        self, client: TestClient, alice: str, bob: str, carol: str
    ) -> None:
        response = client.post(
            "/v1/multisig/accounts",
            json={"name": "Treasury", "threshold": 2, "signers": [alice, bob, carol]},
            headers=_as(alice),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["address"].startswith("ckt1")
        assert body["threshold"] == 2
        assert body["signer_count"] == 3
        assert body["config"].startswith("0x00000203")
        assert body["created_at"].endswith("Z")

    def test_identity_header_required(self, client: TestClient, alice: str) -> None:
        response = client.post(
            "/v1/multisig/accounts",
            json={"name": "Treasury", "threshold": 1, "signers": [alice]},
        )

        assert response.status_code == 422

    def test_duplicate_account_is_conflict(
        self, client: TestClient, alice: str, bob: str, carol: str
    ) -> None:
        _create_treasury(client, alice, bob, carol)

        response = client.post(
            "/v1/multisig/accounts",
            json={"name": "Again", "threshold": 2, "signers": [alice, bob, carol]},
            headers=_as(alice),
        )

        assert response.status_code == 409
        assert response.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)
        body = response.json()
        assert body["type"] == "urn:multisig-custody:conflict:account-exists"
        assert body["status"] == 409
        assert body["instance"] == "/v1/multisig/accounts"

    def test_threshold_above_signers_is_bad_request(
        self, client: TestClient, alice: str, bob: str
    ) -> None:
        response = client.post(
            "/v1/multisig/accounts",
            json={"name": "Pair", "threshold": 3, "signers": [alice, bob]},
            headers=_as(alice),
        )

        assert response.status_code == 400
        assert response.json()["type"] == "urn:multisig-custody:validation:invalid-threshold"

    def test_invites_then_membership(
        self, client: TestClient, alice: str, bob: str, carol: str
    ) -> None:
        created = client.post(
            "/v1/multisig/accounts",
            json={"name": "Treasury", "threshold": 2, "signers": [alice, bob, carol]},
            headers=_as(alice),
        ).json()
        address = created["address"]

        invites = client.get("/v1/multisig/invites", headers=_as(bob)).json()
        assert [i["account"]["address"] for i in invites] == [address]
        assert invites[0]["invite"]["status"] == "pending"

        assert client.get(f"/v1/multisig/accounts/{address}", headers=_as(bob)).status_code == 200

        accepted = client.put(f"/v1/multisig/invites/{address}/accept", headers=_as(bob))
        assert accepted.json()["status"] == "accepted"
        rejected = client.put(f"/v1/multisig/invites/{address}/reject", headers=_as(carol))
        assert rejected.json()["status"] == "rejected"

        signers = client.get(f"/v1/multisig/accounts/{address}/signers", headers=_as(bob)).json()
        assert signers["signers"] == [alice, bob]
        assert {i["signer_address"]: i["status"] for i in signers["invites"]} == {
            bob: "accepted",
            carol: "rejected",
        }
        mine = client.get("/v1/multisig/accounts", headers=_as(bob)).json()
        assert [a["address"] for a in mine] == [address]

        again = client.put(f"/v1/multisig/invites/{address}/accept", headers=_as(carol))
        assert again.status_code == 409
        assert again.json()["type"] == "urn:multisig-custody:conflict:already-responded"

    def test_rename(
        self, client: TestClient, alice: str, bob: str, carol: str, mallory: str
    ) -> None:
        account = _create_treasury(client, alice, bob, carol)
        url = f"/v1/multisig/accounts/{account['address']}"

        renamed = client.put(url, json={"name": "Ops"}, headers=_as(bob))
        forbidden = client.put(url, json={"name": "Mine"}, headers=_as(mallory))

        assert renamed.status_code == 200
        assert renamed.json()["name"] == "Ops"
        assert forbidden.status_code == 403
        assert forbidden.json()["type"] == "urn:multisig-custody:authorization:not-a-signer"

    def test_unknown_account(self, client: TestClient, alice: str) -> None:
        response = client.get("/v1/multisig/accounts/ckt1unknown", headers=_as(alice))

        assert response.status_code == 404


class TestTransactionRoutes:
    """Tests for proposal, signing, rejection and listing endpoints."""

    def test_full_signing_flow(
        self,
        client: TestClient,
        chain: ChainGatewayStub,
        codec: AddressCodec,
        alice: str,
        bob: str,
        carol: str,
    ) -> None:
        account = _create_treasury(client, alice, bob, carol)
        chain.add_live_cell(out_point(1), codec.decode(account["address"]), 5000)
        payload = transfer_payload([out_point(1)], sighash_script(8), 4000)

        proposed = client.post(
            "/v1/multisig/transactions",
            json={"signature": signature_hex(0xA1), "payload": payload},
            headers=_as(alice),
        )
        assert proposed.status_code == 201
        tx_id = proposed.json()["tx_id"]
        assert proposed.json()["status"] == "pending"

        summary = client.get(
            f"/v1/multisig/accounts/{account['address']}/transactions/summary",
            headers=_as(carol),
        ).json()
        assert summary["pending_count"] == 1
        assert summary["pending_amount"] == 4000

        signed = client.post(
            "/v1/multisig/signatures",
            json={"tx_id": tx_id, "signature": signature_hex(0xB2)},
            headers=_as(bob),
        )
        assert signed.status_code == 200
        assert signed.json()["status"] == "committed"
        assert len(chain.broadcasts) == 1

        detail = client.get(f"/v1/multisig/transactions/{tx_id}", headers=_as(carol)).json()
        assert detail["signers"] == [alice, bob]
        assert detail["destination"] == codec.encode(sighash_script(8))
        assert detail["amount"] == 4000

        late = client.post(
            "/v1/multisig/signatures",
            json={"tx_id": tx_id, "signature": signature_hex(0xC3)},
            headers=_as(carol),
        )
        assert late.status_code == 409
        assert late.json()["type"] == "urn:multisig-custody:conflict:invalid-state"

    def test_payload_as_text(
        self,
        client: TestClient,
        chain: ChainGatewayStub,
        codec: AddressCodec,
        alice: str,
        bob: str,
        carol: str,
    ) -> None:
        account = _create_treasury(client, alice, bob, carol)
        chain.add_live_cell(out_point(1), codec.decode(account["address"]), 5000)
        payload = json.dumps(transfer_payload([out_point(1)], sighash_script(8), 4000))

        response = client.post(
            "/v1/multisig/transactions",
            json={"signature": signature_hex(0xA1), "payload": payload},
            headers=_as(alice),
        )

        assert response.status_code == 201

    def test_consumed_input_is_bad_request(
        self,
        client: TestClient,
        chain: ChainGatewayStub,
        alice: str,
        bob: str,
        carol: str,
    ) -> None:
        _create_treasury(client, alice, bob, carol)
        chain.consume(out_point(1))

        response = client.post(
            "/v1/multisig/transactions",
            json={
                "signature": signature_hex(0xA1),
                "payload": transfer_payload([out_point(1)], sighash_script(8), 4000),
            },
            headers=_as(alice),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "urn:multisig-custody:validation:outpoint-consumed"
        assert body["status"] == 400

    def test_reject_and_list(
        self,
        client: TestClient,
        chain: ChainGatewayStub,
        codec: AddressCodec,
        alice: str,
        bob: str,
        carol: str,
        mallory: str,
    ) -> None:
        account = _create_treasury(client, alice, bob, carol)
        chain.add_live_cell(out_point(1), codec.decode(account["address"]), 5000)
        tx_id = client.post(
            "/v1/multisig/transactions",
            json={
                "signature": signature_hex(0xA1),
                "payload": transfer_payload([out_point(1)], sighash_script(8), 4000),
            },
            headers=_as(alice),
        ).json()["tx_id"]

        client.put(f"/v1/multisig/transactions/{tx_id}/reject", headers=_as(bob))
        rejected = client.put(f"/v1/multisig/transactions/{tx_id}/reject", headers=_as(carol))
        assert rejected.json()["status"] == "rejected"

        url = f"/v1/multisig/accounts/{account['address']}/transactions"
        listed = client.get(url, params={"status": ["rejected"]}, headers=_as(alice)).json()
        assert listed["total"] == 1
        assert listed["items"][0]["rejecters"] == [bob, carol]

        pending = client.get(url, params={"status": "pending"}, headers=_as(alice)).json()
        assert pending["total"] == 0

        hidden = client.get(url, headers=_as(mallory))
        assert hidden.status_code == 403

        missing = client.get(f"/v1/multisig/transactions/{tx_id}", headers=_as(mallory))
        assert missing.status_code == 404

    def test_reconcile_commits(
        self,
        client: TestClient,
        chain: ChainGatewayStub,
        codec: AddressCodec,
        alice: str,
        bob: str,
        carol: str,
        mallory: str,
    ) -> None:
        account = _create_treasury(client, alice, bob, carol)
        chain.add_live_cell(out_point(1), codec.decode(account["address"]), 5000)
        tx_id = client.post(
            "/v1/multisig/transactions",
            json={
                "signature": signature_hex(0xA1),
                "payload": transfer_payload([out_point(1)], sighash_script(8), 4000),
            },
            headers=_as(alice),
        ).json()["tx_id"]

        outsider = client.put(
            "/v1/multisig/transactions/committed",
            json={"tx_ids": [tx_id]},
            headers=_as(mallory),
        )
        assert outsider.status_code == 200
        assert outsider.json() == {"committed": []}

        response = client.put(
            "/v1/multisig/transactions/committed",
            json={"tx_ids": [tx_id, "0x" + "ee" * 32]},
            headers=_as(alice),
        )

        assert response.status_code == 200
        assert response.json() == {"committed": [tx_id]}

    def test_bad_signature(
        self,
        client: TestClient,
        chain: ChainGatewayStub,
        codec: AddressCodec,
        alice: str,
        bob: str,
        carol: str,
    ) -> None:
        account = _create_treasury(client, alice, bob, carol)
        chain.add_live_cell(out_point(1), codec.decode(account["address"]), 5000)

        response = client.post(
            "/v1/multisig/transactions",
            json={
                "signature": "0x1234",
                "payload": transfer_payload([out_point(1)], sighash_script(8), 4000),
            },
            headers=_as(alice),
        )

        assert response.status_code == 400
        assert response.json()["type"] == "urn:multisig-custody:validation:invalid-signature"
