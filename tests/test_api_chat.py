from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chatnav.config.settings import RoutingSettings
from chatnav.infrastructure import api
from chatnav.infrastructure.session_store import SessionStore, SupersededTurnError
from chatnav.routing.dispatcher import Dispatcher
from chatnav.routing.errors import ContractViolationError


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(api, "store", SessionStore(dispatcher=Dispatcher(llm=None, settings=RoutingSettings())))
    return TestClient(api.app)


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_turn_flow_with_reported_widgets(client: TestClient) -> None:
    ui = {
        "open_widgets": [
            {"surface_id": "w-a", "title": "Quick Links A"},
            {"surface_id": "w-b", "title": "Quick Links B"},
        ]
    }
    first = client.post("/chat/sessions/s1/turns", json={"text": "open quick links", "ui": ui})
    assert first.status_code == 200
    body = first.json()
    assert body["handled_by_tier"] == 2
    assert body["tier_label"] == "new_topic"
    assert body["decision"]["kind"] == "ask_clarify"
    assert [o["label"] for o in body["decision"]["options"]] == ["Quick Links A", "Quick Links B"]
    set_id = body["active_option_set_id"]
    assert set_id

    ui["active_option_set_id"] = set_id
    second = client.post("/chat/sessions/s1/turns", json={"text": "the second one", "ui": ui})
    assert second.status_code == 200
    decision = second.json()["decision"]
    assert decision["kind"] == "select"
    assert decision["option"]["id"] == "w-b"
    assert second.json()["state"]["latch"]["kind"] == "pending"

    stale = client.post(
        "/chat/sessions/s1/turns",
        json={"text": "first", "ui": {"active_option_set_id": "gone"}},
    )
    assert stale.json()["turn_seq"] == 3


def test_widget_registration_and_state(client: TestClient) -> None:
    created = client.post(
        "/chat/sessions/s2/widgets",
        json={
            "surface_id": "w1",
            "title": "Recent",
            "items": [{"id": "d1", "label": "Budget"}, {"id": "d2", "label": "Roadmap"}],
        },
    )
    assert created.status_code == 201

    opened = client.post("/chat/sessions/s2/turns", json={"text": "open recent"})
    assert opened.json()["decision"]["action"]["kind"] == "open_panel"

    picked = client.post("/chat/sessions/s2/turns", json={"text": "second"})
    assert picked.json()["decision"]["action"]["target_id"] == "d2"

    state = client.get("/chat/sessions/s2/state")
    assert state.status_code == 200
    assert state.json()["widgets"] == ["w1"]
    assert state.json()["state"]["latch"]["surface_id"] == "w1"

    removed = client.delete("/chat/sessions/s2/widgets/w1")
    assert removed.status_code == 200
    assert removed.json()["state"]["latch"]["kind"] == "none"

    deleted = client.delete("/chat/sessions/s2")
    assert deleted.json() == {"session_id": "s2", "deleted": True}


def test_unknown_session_is_404(client: TestClient) -> None:
    assert client.get("/chat/sessions/nope/state").status_code == 404
    assert client.delete("/chat/sessions/nope/widgets/w1").status_code == 404
    assert client.delete("/chat/sessions/nope").status_code == 404


def test_superseded_turn_is_409(monkeypatch: pytest.MonkeyPatch) -> None:
    class _FakeStore:
        def run_turn(self, session_id, text, **kwargs):
            raise SupersededTurnError("turn 1 superseded")

    monkeypatch.setattr(api, "store", _FakeStore())
    response = TestClient(api.app).post("/chat/sessions/s1/turns", json={"text": "hello"})
    assert response.status_code == 409


def test_contract_violation_is_500(monkeypatch: pytest.MonkeyPatch) -> None:
    class _FakeStore:
        def run_turn(self, session_id, text, **kwargs):
            raise ContractViolationError("zzz", ["a", "b"])

    monkeypatch.setattr(api, "store", _FakeStore())
    response = TestClient(api.app).post("/chat/sessions/s1/turns", json={"text": "hello"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Routing contract violation"


def test_invalid_payload_is_422(client: TestClient) -> None:
    assert client.post("/chat/sessions/s1/turns", json={"ui": {}}).status_code == 422


def test_widget_item_without_id_is_422(client: TestClient) -> None:
    ui = {"open_widgets": [{"surface_id": "w1", "title": "Recent", "items": [{"id": "", "label": "Budget"}]}]}
    response = client.post("/chat/sessions/s1/turns", json={"text": "the first one", "ui": ui})
    assert response.status_code == 422
