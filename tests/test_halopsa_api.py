import pytest
from fastapi.testclient import TestClient

from halodesk.api.dependencies.halopsa import get_halo_client, get_ticket_repository
from halodesk.main import app
from halodesk.services.halopsa.entities import ticket_repository
from halodesk.services.halopsa.errors import (
    APIError,
    AuthenticationError,
    HaloConfigurationError,
    RateLimitError,
)


class FakeConnection:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.cleared = 0
        self.tested = 0

    def clear_token(self):
        self.cleared += 1

    async def test_connection(self):
        self.tested += 1
        if self.error:
            raise self.error
        return True


@pytest.fixture
def api(stub_client):
    app.dependency_overrides[get_ticket_repository] = lambda: ticket_repository(stub_client)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def _use_connection(connection: FakeConnection) -> None:
    app.dependency_overrides[get_halo_client] = lambda: connection


def test_test_connection_success(api):
    connection = FakeConnection()
    _use_connection(connection)

    response = api.get("/api/halopsa/test-connection")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert connection.tested == 1


def test_reconnect_clears_token_first(api):
    connection = FakeConnection()
    _use_connection(connection)

    response = api.post("/api/halopsa/reconnect")

    assert response.status_code == 200
    assert connection.cleared == 1
    assert connection.tested == 1


def test_authentication_error_asks_user_to_reconnect(api):
    _use_connection(FakeConnection(AuthenticationError("Authentication failed: bad secret")))

    response = api.get("/api/halopsa/test-connection")

    assert response.status_code == 401
    assert "Reconnect" in response.json()["detail"]
    assert "bad secret" not in response.text


def test_rate_limit_sets_retry_after(api):
    _use_connection(FakeConnection(RateLimitError("GET /Agent failed", retry_after=30)))

    response = api.get("/api/halopsa/test-connection")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    assert response.json()["retry_after"] == 30
    assert "Try again shortly" in response.json()["detail"]


def test_generic_api_error_is_bad_gateway(api):
    _use_connection(FakeConnection(APIError("GET /Agent failed: boom", status_code=500, response="boom")))

    response = api.get("/api/halopsa/test-connection")

    assert response.status_code == 502
    assert response.json()["status_code"] == 500


def test_missing_configuration_is_service_unavailable(api):
    _use_connection(FakeConnection(HaloConfigurationError("HaloPSA base URL is not configured")))

    response = api.get("/api/halopsa/test-connection")

    assert response.status_code == 503


def test_duplicates_endpoint_returns_ranked_candidates(api, stub_client):
    stub_client.get_responses["/Tickets/1"] = {
        "id": 1,
        "summary": "printer offline in break room",
        "client_id": 7,
    }
    stub_client.get_responses["/Tickets"] = [
        {"id": 2, "summary": "printer offline in break room", "client_id": 7, "status_name": "New"},
        {"id": 3, "summary": "password reset", "client_id": 7},
    ]

    response = api.get("/api/halopsa/tickets/1/duplicates", params={"hours_lookback": 24})

    assert response.status_code == 200
    body = response.json()
    assert [item["ticket_id"] for item in body] == [2]
    assert body[0]["similarity_score"] == 1.0
    assert body[0]["status"] == "New"


def test_duplicates_endpoint_missing_ticket_is_not_found(api):
    response = api.get("/api/halopsa/tickets/404/duplicates")

    assert response.status_code == 404


def test_merge_endpoint_reports_partial_failure(api, stub_client):
    stub_client.get_responses["/Tickets/100"] = {"id": 100, "summary": "Primary"}
    stub_client.get_responses["/Tickets/101"] = {"id": 101, "summary": "Printer down"}
    stub_client.get_responses["/Actions"] = lambda params: [
        {"id": 1, "note": f"note on {params['ticket_id']}", "who": "Ana"}
    ]
    stub_client.post_responses["/Actions"] = lambda body: [{"id": 900, **body[0]}]
    stub_client.post_responses["/Tickets"] = lambda body: [{"id": body[0]["id"]}]

    response = api.post(
        "/api/halopsa/tickets/merge",
        json={"primaryTicketId": 100, "secondaryTicketIds": [101, 102]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["primary_ticket_id"] == 100
    assert body["merged_tickets"] == [{"id": 101, "summary": "Printer down", "actions_copied": 1}]
    assert body["actions_copied"] == 1
    assert body["errors"] == [{"ticket_id": 102, "error": "/Tickets/102 not found"}]


def test_merge_endpoint_rejects_primary_in_secondaries(api, stub_client):
    response = api.post(
        "/api/halopsa/tickets/merge",
        json={"primary_ticket_id": 100, "secondary_ticket_ids": [100]},
    )

    assert response.status_code == 422
    assert "secondary_ticket_ids" in response.json()["errors"]
    assert stub_client.calls == []


def test_stats_endpoint(api, stub_client):
    stub_client.get_responses["/Tickets"] = {
        "records": [
            {"id": 1, "status_name": "New", "client_name": "Acme"},
            {"id": 2, "status_name": "Closed", "dateclosed": "2026-10-01", "client_name": "Acme"},
        ]
    }

    response = api.get("/api/halopsa/tickets/stats")

    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["open"], body["closed"]) == (2, 1, 1)
    assert body["by_client"] == {"Acme": 2}
