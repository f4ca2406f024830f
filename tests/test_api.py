import pytest
from fastapi.testclient import TestClient

from conftest import FakeGenerator
from relaywriter.errors import Unauthorized
from relaywriter.main import create_app
from relaywriter.orchestrator import TurnOrchestrator


@pytest.fixture
def client(orchestrator: TurnOrchestrator):
    with TestClient(create_app(orchestrator=orchestrator)) as c:
        yield c


def _advance(client: TestClient, session_id: str = "s1", **overrides):
    body = {
        "sessionId": session_id,
        "contributors": [
            {"contributorId": "a", "displayName": "Model A", "adapterKind": "fake", "modelName": "m-a"},
            {"contributorId": "b", "displayName": "Model B", "adapterKind": "fake", "modelName": "m-b"},
        ],
        "prompt": "It began with a knock.",
        "outputBudget": 10,
    }
    body.update(overrides)
    return client.post("/chat", json=body)


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_advance_returns_cleaned_turn(client: TestClient, fake_generator: FakeGenerator) -> None:
    fake_generator.replies = ["a knock. Nobody answered.", "The door creaked."]

    first = _advance(client)
    assert first.status_code == 200
    assert first.json() == {
        "cleanedText": "Nobody answered.",
        "contributorId": "a",
        "turnIndex": 0,
        "displayName": "Model A",
        "adapterKind": "fake",
        "modelName": "m-a",
    }

    second = _advance(client).json()
    assert second["contributorId"] == "b"
    assert second["turnIndex"] == 1

    snapshot = client.get("/sessions/s1").json()
    assert snapshot["document"] == "It began with a knock. Nobody answered. The door creaked."
    assert snapshot["turnIndex"] == 2
    assert [h["contributorId"] for h in snapshot["history"]] == ["a", "b"]


def test_accepts_browser_field_names(client: TestClient, fake_generator: FakeGenerator) -> None:
    fake_generator.replies = ["More."]
    resp = client.post(
        "/chat",
        json={
            "sessionId": "legacy",
            "models": [{"modelName": "gpt-x", "provider": "fake", "apiKey": "sk-9", "displayName": "GPT X"}],
            "prompt": "Start.",
            "tokensPerTurn": 5,
        },
    )
    assert resp.status_code == 200
    assert resp.json()["contributorId"] == "gpt-x"
    assert fake_generator.calls[0]["credential_ref"] == "sk-9"
    assert fake_generator.calls[0]["output_budget"] == 5


def test_reset(client: TestClient) -> None:
    _advance(client)
    resp = client.post("/chat", json={"sessionId": "s1", "reset": True})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get("/sessions/s1").status_code == 404

    again = _advance(client, prompt="A new story.").json()
    assert again["turnIndex"] == 0
    assert client.get("/sessions/s1").json()["document"].startswith("A new story.")


def test_upstream_failure_names_contributor(client: TestClient, fake_generator: FakeGenerator) -> None:
    fake_generator.replies = [Unauthorized("HTTP 401: bad key")]
    resp = _advance(client)
    assert resp.status_code == 502
    body = resp.json()
    assert body["contributorId"] == "a"
    assert "bad key" in body["error"]
    assert client.get("/sessions/s1").json()["turnIndex"] == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"contributors": []},
        {"outputBudget": 0},
        {"outputBudget": None},
        {"prompt": ""},
    ],
)
def test_invalid_requests_are_rejected(client: TestClient, overrides: dict) -> None:
    resp = _advance(client, **overrides)
    assert resp.status_code == 400
    assert resp.json()["contributorId"] == "unknown"


def test_malformed_body_is_a_structured_400(client: TestClient) -> None:
    resp = client.post("/chat", json={"contributors": []})
    assert resp.status_code == 400
    body = resp.json()
    assert body["contributorId"] == "unknown"
    assert body["error"].startswith("Invalid request")


def test_reset_ignores_turn_fields(client: TestClient) -> None:
    _advance(client)
    resp = client.post(
        "/chat",
        json={
            "sessionId": "s1",
            "reset": True,
            "contributors": [{"modelName": "x"}],
            "outputBudget": "lots",
            "prompt": 42,
        },
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get("/sessions/s1").status_code == 404


@pytest.mark.parametrize(
    "overrides",
    [
        {"contributors": [{"modelName": "x"}]},
        {"contributors": "not a list"},
        {"outputBudget": "lots"},
    ],
)
def test_malformed_turn_fields_are_a_structured_400(client: TestClient, overrides: dict) -> None:
    resp = _advance(client, **overrides)
    assert resp.status_code == 400
    body = resp.json()
    assert body["contributorId"] == "unknown"
    assert body["error"].startswith("Invalid request")
    assert client.get("/sessions/s1").status_code == 404
