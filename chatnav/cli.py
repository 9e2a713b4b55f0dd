from __future__ import annotations

import argparse
import json
import logging
import os
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from chatnav.config.settings import load_routing_settings
from chatnav.infrastructure.api_server import ApiServer
from chatnav.infrastructure.session_store import SessionStore
from chatnav.routing.dispatcher import build_dispatcher
from chatnav.routing.state import apply_turn, deserialize_session_state, serialize_session_state
from chatnav.routing.types import OpenWidget, SessionFlags, TurnInput, UiContext, WidgetItem

_QUIT_COMMANDS = {":q", ":quit", ":exit"}


def main() -> None:
    parser = argparse.ArgumentParser(prog="chatnav")
    parser.add_argument("--log-level", default=os.getenv("CHATNAV_LOG_LEVEL", "INFO"))
    sub = parser.add_subparsers(dest="command", required=True)

    repl_parser = sub.add_parser("repl", help="Route turns interactively against an in-process session")
    repl_parser.add_argument("--session-id", default="cli", help="Session id")
    repl_parser.add_argument("--widgets", default=None, help="JSON file with open widgets")
    repl_parser.add_argument("--badges", action="store_true", help="Treat option badges as shown")
    repl_parser.add_argument("--no-llm", action="store_true", help="Disable LLM escalation for this session")

    dispatch_parser = sub.add_parser("dispatch", help="Route one turn against a JSON state file")
    dispatch_parser.add_argument("text", help="User input")
    dispatch_parser.add_argument("--state", required=True, help="Session state file (created if missing)")
    dispatch_parser.add_argument("--widgets", default=None, help="JSON file with open widgets")
    dispatch_parser.add_argument("--badges", action="store_true", help="Treat option badges as shown")
    dispatch_parser.add_argument("--no-llm", action="store_true", help="Disable LLM escalation for this turn")
    dispatch_parser.add_argument("--correlation-id", default=None, help="Optional correlation id")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind host (defaults to CHATNAV_API_HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (defaults to CHATNAV_API_PORT)")
    serve_parser.add_argument("--no-llm", action="store_true", help="Serve without LLM escalation")

    args = parser.parse_args()
    _load_env()
    _configure_logging(args.log_level)

    if args.command == "repl":
        _command_repl(args)
        return
    if args.command == "dispatch":
        _command_dispatch(args)
        return
    if args.command == "serve":
        _command_serve(args)
        return


def _command_repl(args: argparse.Namespace, store: SessionStore | None = None) -> None:
    store = store or SessionStore()
    widgets = _load_widgets(args.widgets)
    for widget in widgets:
        store.register_widget(
            args.session_id,
            widget.surface_id,
            title=widget.title,
            items=widget.items,
            stable_ref=widget.stable_ref,
            widget_type=widget.widget_type,
        )
    flags = SessionFlags(llm_enabled=not args.no_llm)
    ui = UiContext(show_badges=args.badges)
    print("chatnav repl. Type :quit to leave.")
    while True:
        try:
            text = input("> ")
        except EOFError:
            print()
            return
        if text.strip() in _QUIT_COMMANDS:
            return
        report = store.run_turn(args.session_id, text, ui=ui, flags=flags)
        _print_decision(report.result.to_dict())


def _command_dispatch(args: argparse.Namespace) -> None:
    state_path = Path(args.state)
    state = deserialize_session_state(_read_json(state_path) if state_path.exists() else None)
    turn = TurnInput(
        raw_text=args.text,
        ui=UiContext(open_widgets=_load_widgets(args.widgets), show_badges=args.badges),
        flags=SessionFlags(llm_enabled=not args.no_llm),
        turn_id=str(uuid.uuid4()),
        correlation_id=args.correlation_id,
    )
    dispatcher = build_dispatcher()
    result = dispatcher.dispatch(turn, state)
    updated = apply_turn(
        state,
        result.mutations,
        latch_pending_turns=dispatcher.settings.latch_pending_turns,
        repair_memory_turns=dispatcher.settings.repair_memory_turns,
    )
    state_path.write_text(json.dumps(serialize_session_state(updated), indent=2), encoding="utf-8")
    logging.info("state written path=%s turn=%s", state_path, updated.turn)
    print(json.dumps(result.to_dict(), indent=2))


def _command_serve(args: argparse.Namespace) -> None:
    server = ApiServer(log_level=logging.getLevelName(logging.getLogger().level).lower())
    if args.host:
        server.host = args.host
    if args.port:
        server.port = args.port
    if args.no_llm:
        server.store = SessionStore(dispatcher=build_dispatcher(replace(load_routing_settings(), llm_enabled=False)))
    server.serve_forever()


def _print_decision(payload: dict[str, Any]) -> None:
    decision = payload["decision"]
    print(f"[tier {payload['handled_by_tier']} {payload['tier_label']}] {decision['kind']}")
    message = decision.get("message") or decision.get("prompt")
    if message:
        print(message)
    for index, option in enumerate(decision.get("options") or decision.get("candidates") or [], start=1):
        print(f"  {index}. {option['label']}")
    if decision["kind"] == "select":
        print(f"  selected: {decision['option']['label']}")
    if decision["kind"] == "defer_to_retrieval":
        print(f"  query: {decision['query']}")


def _load_widgets(path: str | None) -> tuple[OpenWidget, ...]:
    if not path:
        return ()
    raw = _read_json(Path(path))
    if isinstance(raw, dict):
        raw = raw.get("open_widgets", [])
    return tuple(
        OpenWidget(
            surface_id=str(entry["surface_id"]),
            title=str(entry.get("title") or ""),
            items=tuple(WidgetItem(id=str(item["id"]), label=str(item["label"])) for item in entry.get("items", [])),
            stable_ref=entry.get("stable_ref"),
            widget_type=entry.get("widget_type"),
        )
        for entry in raw
    )


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _load_env() -> None:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(level=getattr(logging, level_name.upper(), logging.INFO))


if __name__ == "__main__":
    main()
