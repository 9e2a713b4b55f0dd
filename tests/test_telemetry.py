from __future__ import annotations

import json
from pathlib import Path

import pytest

from chatnav.config.settings import RoutingSettings
from chatnav.observability.log_manager import LogManager, get_component_logger
from chatnav.observability.store import add_event_listener, remove_event_listener
from chatnav.routing.dispatcher import Dispatcher
from chatnav.routing.state import SessionState
from chatnav.routing.types import OpenWidget, TurnInput, UiContext


def _dispatch(text: str, ui: UiContext | None = None):
    dispatcher = Dispatcher(llm=None, settings=RoutingSettings())
    return dispatcher.dispatch(
        TurnInput(raw_text=text, ui=ui or UiContext(), correlation_id="corr-1"),
        SessionState(),
        session_id="s-1",
    )


def test_tier_fired_event_reaches_listeners() -> None:
    events: list[dict] = []
    add_event_listener(events.append)
    _dispatch("hello")
    fired = [e for e in events if e["event"] == "routing.tier_fired"]
    assert len(fired) == 1
    assert fired[0]["tier"] == 6
    assert fired[0]["tier_label"] == "retrieval"
    assert fired[0]["status"] == "defer_to_retrieval"
    assert fired[0]["correlation_id"] == "corr-1"
    assert fired[0]["session_id"] == "s-1"
    assert fired[0]["llm_calls"] == 0
    assert "ts" in fired[0]


def test_list_and_latch_transitions_are_reported() -> None:
    events: list[dict] = []
    add_event_listener(events.append)
    ui = UiContext(
        open_widgets=(
            OpenWidget(surface_id="w-a", title="Quick Links A"),
            OpenWidget(surface_id="w-b", title="Quick Links B"),
        )
    )
    _dispatch("open quick links", ui)
    transitions = [e for e in events if e["event"] == "routing.snapshot_transition"]
    assert len(transitions) == 1
    assert transitions[0]["from"] == "empty"
    assert transitions[0]["to"].startswith("active:")
    assert not [e for e in events if e["event"] == "routing.latch_transition"]


def test_failing_listener_does_not_break_dispatch() -> None:
    def _explode(event: dict) -> None:
        raise RuntimeError("listener down")

    add_event_listener(_explode)
    try:
        result = _dispatch("hello")
    finally:
        remove_event_listener(_explode)
    assert result.handled_by_tier == 6


def test_events_are_appended_to_jsonl_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "telemetry" / "routing.jsonl"
    monkeypatch.setenv("CHATNAV_TELEMETRY_PATH", str(path))
    _dispatch("hello")
    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert any(record["event"] == "routing.tier_fired" for record in records)


def test_emit_exception_carries_error_fields() -> None:
    events: list[dict] = []
    add_event_listener(events.append)
    try:
        raise ValueError("bad choice")
    except ValueError as exc:
        LogManager().emit_exception(event="routing.contract_violation", exc=exc, component="test")
    assert events[0]["level"] == "error"
    assert events[0]["error_code"] == "ValueError"
    assert events[0]["exception_message"] == "bad choice"


def test_component_logger_lifts_key_value_fields() -> None:
    events: list[dict] = []
    add_event_listener(events.append)
    get_component_logger("infrastructure.session_store").info(
        "superseded turn dropped session_id=%s turn_seq=%s tier=%s", "s-9", 4, "2"
    )
    event = events[0]
    assert event["event"] == "infrastructure.session_store.log"
    assert event["component"] == "infrastructure.session_store"
    assert event["session_id"] == "s-9"
    assert event["tier"] == 2
    assert event["fields"] == {"turn_seq": "4"}
    assert event["message"] == "superseded turn dropped session_id=s-9 turn_seq=4 tier=2"
