from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path

import pytest

from chatnav import cli
from chatnav.config.settings import RoutingSettings
from chatnav.infrastructure import api
from chatnav.infrastructure.api_server import ApiServer
from chatnav.infrastructure.session_store import SessionStore
from chatnav.routing.dispatcher import Dispatcher

_WIDGETS = {
    "open_widgets": [
        {"surface_id": "w-a", "title": "Quick Links A"},
        {
            "surface_id": "w-b",
            "title": "Quick Links B",
            "items": [{"id": "l1", "label": "Docs"}, {"id": "l2", "label": "Wiki"}],
        },
    ]
}


def _dispatch_args(text: str, state: Path, widgets: Path | None = None) -> Namespace:
    return Namespace(
        text=text,
        state=str(state),
        widgets=str(widgets) if widgets else None,
        badges=False,
        no_llm=True,
        correlation_id="corr-cli",
    )


def test_load_widgets_accepts_list_or_wrapped_payload(tmp_path: Path) -> None:
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps(_WIDGETS), encoding="utf-8")
    plain = tmp_path / "plain.json"
    plain.write_text(json.dumps(_WIDGETS["open_widgets"]), encoding="utf-8")
    for path in (wrapped, plain):
        widgets = cli._load_widgets(str(path))
        assert [w.surface_id for w in widgets] == ["w-a", "w-b"]
        assert widgets[1].items[1].label == "Wiki"
    assert cli._load_widgets(None) == ()


def test_dispatch_command_persists_state_between_turns(tmp_path: Path, capsys) -> None:
    state_path = tmp_path / "state.json"
    widgets_path = tmp_path / "widgets.json"
    widgets_path.write_text(json.dumps(_WIDGETS), encoding="utf-8")

    cli._command_dispatch(_dispatch_args("open quick links", state_path, widgets_path))
    first = json.loads(capsys.readouterr().out)
    assert first["decision"]["kind"] == "ask_clarify"
    assert first["handled_by_tier"] == 2
    saved = json.loads(state_path.read_text(encoding="utf-8"))
    assert [o["id"] for o in saved["active"]["options"]] == ["w-a", "w-b"]

    cli._command_dispatch(_dispatch_args("second", state_path, widgets_path))
    second = json.loads(capsys.readouterr().out)
    assert second["decision"]["kind"] == "select"
    assert second["decision"]["option"]["id"] == "w-b"
    saved = json.loads(state_path.read_text(encoding="utf-8"))
    assert saved["active"] is None
    assert saved["latch"]["kind"] == "resolved"
    assert saved["turn"] == 2


def test_repl_routes_until_quit(tmp_path: Path, capsys, monkeypatch) -> None:
    widgets_path = tmp_path / "widgets.json"
    widgets_path.write_text(json.dumps(_WIDGETS), encoding="utf-8")
    lines = iter(["open quick links", "the first one", ":quit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    store = SessionStore(dispatcher=Dispatcher(llm=None, settings=RoutingSettings()))

    cli._command_repl(
        Namespace(session_id="cli-test", widgets=str(widgets_path), badges=False, no_llm=True),
        store=store,
    )
    out = capsys.readouterr().out
    assert "[tier 2 new_topic] ask_clarify" in out
    assert "  1. Quick Links A" in out
    assert "selected: Quick Links A" in out
    assert store.get_state("cli-test").latch.awaited_ref == "w-a"


def test_repl_stops_on_eof(capsys, monkeypatch) -> None:
    def _eof(prompt: str = "") -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    store = SessionStore(dispatcher=Dispatcher(llm=None, settings=RoutingSettings()))
    cli._command_repl(Namespace(session_id="s", widgets=None, badges=False, no_llm=True), store=store)
    assert "chatnav repl" in capsys.readouterr().out


def test_serve_applies_overrides_and_disables_llm(monkeypatch: pytest.MonkeyPatch) -> None:
    served: list[ApiServer] = []
    monkeypatch.setattr(ApiServer, "serve_forever", lambda self: served.append(self))
    cli._command_serve(Namespace(host="0.0.0.0", port=9001, no_llm=True))
    server = served[0]
    assert (server.host, server.port) == ("0.0.0.0", 9001)
    assert server.store is not None
    assert not server.store.dispatcher.settings.llm_enabled


def test_api_server_installs_its_store(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(api, "store", api.store)
    store = SessionStore(dispatcher=Dispatcher(llm=None, settings=RoutingSettings()))
    config = ApiServer(host="127.0.0.1", port=8123, store=store).build_config()
    assert api.store is store
    assert config.port == 8123
