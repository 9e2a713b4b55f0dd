from __future__ import annotations

import json
import logging
import re
import traceback
from functools import partialmethod
from typing import Any

from chatnav.observability.store import write_routing_event

_DEFAULT_LOGGER_NAME = "chatnav.observability"
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}
_STACK_LIMIT = 10


class LogManager:
    """Structured routing events.

    Each event becomes one compact JSON log line and one record for the
    telemetry store. Fields whose value is ``None`` are left out of the
    record. A failing sink is logged at debug level and never reaches the
    routing path.
    """

    def __init__(self, logger_name: str = _DEFAULT_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(logger_name)

    def emit(
        self,
        *,
        event: str,
        level: str = "info",
        component: str | None = None,
        message: str | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        level_name = str(level or "info").lower()
        record: dict[str, Any] = {"level": level_name, "event": event or "unknown_event"}
        if component:
            record["component"] = component
        if message:
            record["message"] = message
        record.update({key: value for key, value in fields.items() if value is not None})
        self._logger.log(_LEVELS.get(level_name, logging.INFO), "event %s", _compact(record))
        self._forward(record)
        return record

    def emit_exception(
        self,
        *,
        event: str,
        exc: BaseException,
        component: str | None = None,
        error_code: str | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        stack = traceback.format_exception(type(exc), exc, exc.__traceback__, limit=_STACK_LIMIT)
        return self.emit(
            event=event,
            level="error",
            component=component,
            message=str(exc) or type(exc).__name__,
            error_code=error_code or type(exc).__name__,
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            stack_excerpt="".join(stack),
            **fields,
        )

    def _forward(self, record: dict[str, Any]) -> None:
        try:
            write_routing_event(record)
        except Exception:
            self._logger.debug("telemetry sink failed event=%s", record.get("event"), exc_info=True)


class StructuredLoggerAdapter:
    """``logging``-style calls for one component, routed through LogManager.

    ``key=value`` pairs in the formatted message become event fields, so
    ``logger.info("turn done session_id=%s", sid)`` carries ``session_id``.
    """

    _LIFTED = ("event", "correlation_id", "session_id", "tier", "status")

    def __init__(self, *, manager: LogManager, component: str) -> None:
        self._manager = manager
        self._component = component

    def log(self, level: str, msg: str, *args: Any) -> None:
        text = _format(msg, args)
        fields: dict[str, Any] = _key_values(text)
        lifted = {key: fields.pop(key) for key in self._LIFTED if key in fields}
        if "tier" in lifted:
            lifted["tier"] = _as_int(lifted["tier"])
        event = lifted.pop("event", None) or f"{self._component}.log"
        self._manager.emit(
            event=event,
            level=level,
            component=self._component,
            message=text,
            fields=fields or None,
            **lifted,
        )

    debug = partialmethod(log, "debug")
    info = partialmethod(log, "info")
    warning = partialmethod(log, "warning")
    error = partialmethod(log, "error")


_DEFAULT_MANAGER: LogManager | None = None


def get_log_manager() -> LogManager:
    global _DEFAULT_MANAGER
    if _DEFAULT_MANAGER is None:
        _DEFAULT_MANAGER = LogManager()
    return _DEFAULT_MANAGER


def get_component_logger(component: str) -> StructuredLoggerAdapter:
    return StructuredLoggerAdapter(manager=get_log_manager(), component=component)


_KEY_VALUE = re.compile(r"([A-Za-z_][\w.-]*)=(\S+)")


def _format(msg: str, args: tuple[Any, ...]) -> str:
    if not args:
        return str(msg)
    try:
        return str(msg) % args
    except (TypeError, ValueError):
        return f"{msg} | args={', '.join(str(arg) for arg in args)}"


def _key_values(text: str) -> dict[str, str]:
    return {key: value.strip(",").strip("'\"") for key, value in _KEY_VALUE.findall(text)}


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _compact(record: dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)
