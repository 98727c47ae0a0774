"""API tests for the signing workflow endpoints."""

from uuid import uuid4

import pytest

API = "/api/v1"


def create_signer(client, name):
    response = client.post(f"{API}/signers/", json={"display_name": name, "contact_ref": f"{name}@example.com"})
    assert response.status_code == 201
    return response.json()["data"]["id"]


def create_document(client, signer_ids=None):
    payload = {"title": "Service Agreement", "content_ref": "s3://contracts/agreement.pdf"}
    if signer_ids is not None:
        payload["signer_ids"] = signer_ids
    return client.post(f"{API}/documents/", json=payload)


def sign(client, document_id, signer_id, decision="completed"):
    return client.post(
        f"{API}/documents/{document_id}/signatures",
        json={"signer_id": signer_id, "decision": decision},
    )


def error_code(response):
    return response.json()["detail"]["code"]


@pytest.fixture
def signers(test_client, api_services):
    return [create_signer(test_client, name) for name in ("alice", "bob", "carol")]


class TestSignerEndpoints:

    def test_create_and_fetch(self, test_client, api_services):
        signer_id = create_signer(test_client, "alice")

        response = test_client.get(f"{API}/signers/{signer_id}")

        assert response.status_code == 200
        assert response.json()["data"]["display_name"] == "alice"

    def test_unknown_signer(self, test_client, api_services):
        response = test_client.get(f"{API}/signers/{uuid4()}")

        assert response.status_code == 404
        assert error_code(response) == "NOT_FOUND"

    def test_blank_name_is_rejected(self, test_client, api_services):
        response = test_client.post(f"{API}/signers/", json={"display_name": "   "})

        assert response.status_code == 422
        assert error_code(response) == "VALIDATION_ERROR"


class TestSigningWorkflow:

    def test_full_sequence(self, test_client, signers):
        document_id = create_document(test_client).json()["data"]["document"]["id"]

        response = test_client.post(f"{API}/documents/{document_id}/sequence", json={"signer_ids": signers})
        assert response.status_code == 201
        body = response.json()["data"]
        assert body["status"] == "pending"
        assert [line["outcome"] for line in body["ledger"]] == [None, None, None]

        response = sign(test_client, document_id, signers[2])
        assert response.status_code == 409
        assert error_code(response) == "OUT_OF_TURN"

        for signer_id in signers:
            assert sign(test_client, document_id, signer_id).status_code == 200

        response = test_client.get(f"{API}/documents/{document_id}/status")
        assert response.status_code == 200
        body = response.json()["data"]
        assert body["status"] == "completed"
        assert [line["position"] for line in body["ledger"]] == [1, 2, 3]
        assert [line["signer_id"] for line in body["ledger"]] == signers
        assert all(line["outcome"] == "completed" for line in body["ledger"])

        response = test_client.get(f"{API}/documents/{document_id}")
        assert response.json()["data"]["status"] == "completed"

    def test_document_created_with_signers(self, test_client, signers):
        response = create_document(test_client, signers[:2])

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["document"]["status"] == "pending"
        assert [line["signer_id"] for line in data["signing"]["ledger"]] == signers[:2]

    def test_rejection_closes_document(self, test_client, signers):
        document_id = create_document(test_client, signers[:2]).json()["data"]["document"]["id"]

        assert sign(test_client, document_id, signers[0], "rejected").json()["data"]["status"] == "rejected"

        response = sign(test_client, document_id, signers[1])
        assert response.status_code == 409
        assert error_code(response) == "WORKFLOW_CLOSED"

    def test_repeat_signature(self, test_client, signers):
        document_id = create_document(test_client, signers[:2]).json()["data"]["document"]["id"]
        sign(test_client, document_id, signers[0])

        response = sign(test_client, document_id, signers[0])

        assert response.status_code == 409
        assert error_code(response) == "ALREADY_ACTED"

    def test_second_sequence(self, test_client, signers):
        document_id = create_document(test_client, signers[:1]).json()["data"]["document"]["id"]

        response = test_client.post(f"{API}/documents/{document_id}/sequence", json={"signer_ids": signers})

        assert response.status_code == 409
        assert error_code(response) == "ALREADY_INITIALIZED"

    def test_empty_sequence(self, test_client, signers):
        document_id = create_document(test_client).json()["data"]["document"]["id"]

        response = test_client.post(f"{API}/documents/{document_id}/sequence", json={"signer_ids": []})

        assert response.status_code == 422
        assert error_code(response) == "VALIDATION_ERROR"

    def test_pending_is_not_a_decision(self, test_client, signers):
        document_id = create_document(test_client, signers[:1]).json()["data"]["document"]["id"]

        response = sign(test_client, document_id, signers[0], "pending")

        assert response.status_code == 422
        assert error_code(response) == "VALIDATION_ERROR"

    def test_signer_outside_sequence(self, test_client, signers):
        document_id = create_document(test_client, signers[:1]).json()["data"]["document"]["id"]

        response = sign(test_client, document_id, signers[2])

        assert response.status_code == 404
        assert error_code(response) == "NOT_FOUND"

    def test_unknown_document(self, test_client, signers):
        for response in (
            test_client.get(f"{API}/documents/{uuid4()}"),
            test_client.get(f"{API}/documents/{uuid4()}/status"),
            sign(test_client, uuid4(), signers[0]),
        ):
            assert response.status_code == 404
            assert error_code(response) == "NOT_FOUND"

    def test_correlation_id_is_echoed(self, test_client, signers):
        response = test_client.get(f"{API}/signers/{signers[0]}", headers={"X-Correlation-ID": "req-42"})

        assert response.headers["X-Correlation-ID"] == "req-42"
        assert response.json()["meta"]["request_id"] == "req-42"


def test_health(test_client, api_services):
    response = test_client.get("/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["backend"] == "memory"
