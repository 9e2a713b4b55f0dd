from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from chatnav.config.settings import get_telemetry_path

EventListener = Callable[[dict[str, Any]], None]

_MAX_DETAIL_CHARS = 4096

_LOCK = threading.Lock()
_LISTENERS: list[EventListener] = []


def add_event_listener(listener: EventListener) -> None:
    with _LOCK:
        if listener not in _LISTENERS:
            _LISTENERS.append(listener)


def remove_event_listener(listener: EventListener) -> None:
    with _LOCK:
        if listener in _LISTENERS:
            _LISTENERS.remove(listener)


def clear_event_listeners() -> None:
    with _LOCK:
        _LISTENERS.clear()


def write_routing_event(payload: dict[str, Any]) -> None:
    """Fan a routing event out to listeners and the optional JSONL file.

    Listener failures propagate to the caller; LogManager is the layer that
    decides they must not affect routing.
    """
    if not isinstance(payload, dict):
        return
    record = dict(payload)
    record.setdefault("ts", datetime.now(timezone.utc).isoformat())
    with _LOCK:
        listeners = list(_LISTENERS)
    for listener in listeners:
        listener(record)
    path = get_telemetry_path()
    if path:
        _append_jsonl(Path(path), record)


def _append_jsonl(path: Path, record: dict[str, Any]) -> None:
    line = _truncate_json(record)
    with _LOCK:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


def _truncate_json(payload: dict[str, Any]) -> str:
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
    if len(text) <= _MAX_DETAIL_CHARS:
        return text
    trimmed = {
        key: payload.get(key)
        for key in ("ts", "level", "event", "component", "correlation_id", "status")
    }
    trimmed["truncated"] = True
    return json.dumps(trimmed, ensure_ascii=False, separators=(",", ":"), default=str)
