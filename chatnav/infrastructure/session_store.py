"""In-process session store: single-flight turns with supersession.

Each session owns its state, its registered widgets and the cancellation token
of the turn in flight. Starting a turn cancels the previous token first and
then waits for the session lock, so a superseded turn finishes quickly and its
result is dropped instead of applied.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from chatnav.cognition.constrained_llm import CancellationToken
from chatnav.observability.log_manager import get_component_logger
from chatnav.routing import telemetry
from chatnav.routing.decisions import DispatchResult
from chatnav.routing.dispatcher import Dispatcher, build_dispatcher
from chatnav.routing.focus_latch import on_register, on_unregister
from chatnav.routing.state import SessionState, apply_turn, serialize_session_state
from chatnav.routing.types import FocusLatchState, OpenWidget, SessionFlags, TurnInput, UiContext, WidgetItem

logger = get_component_logger("infrastructure.session_store")


class UnknownSessionError(KeyError):
    pass


class SupersededTurnError(RuntimeError):
    """A newer turn for the same session started before this one finished."""


@dataclass
class SessionRuntime:
    session_id: str
    state: SessionState = field(default_factory=SessionState)
    widgets: dict[str, OpenWidget] = field(default_factory=dict)
    turn_seq: int = 0
    in_flight: CancellationToken | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass(frozen=True)
class TurnReport:
    session_id: str
    turn_seq: int
    result: DispatchResult
    state: SessionState

    def to_dict(self) -> dict[str, Any]:
        payload = self.result.to_dict()
        payload.pop("superseded", None)
        payload["session_id"] = self.session_id
        payload["turn_seq"] = self.turn_seq
        payload["active_option_set_id"] = self.state.active.set_id if self.state.active else None
        payload["state"] = serialize_session_state(self.state)
        return payload


class SessionStore:
    def __init__(self, dispatcher: Dispatcher | None = None) -> None:
        self._dispatcher = dispatcher
        self._sessions: dict[str, SessionRuntime] = {}
        self._guard = threading.Lock()

    @property
    def dispatcher(self) -> Dispatcher:
        if self._dispatcher is None:
            self._dispatcher = build_dispatcher()
        return self._dispatcher

    def run_turn(
        self,
        session_id: str,
        text: str,
        *,
        ui: UiContext | None = None,
        flags: SessionFlags | None = None,
        correlation_id: str | None = None,
    ) -> TurnReport:
        runtime = self._runtime(session_id, create=True)
        with self._guard:
            if runtime.in_flight is not None:
                runtime.in_flight.cancel()
            runtime.turn_seq += 1
            seq = runtime.turn_seq
            token = CancellationToken(turn_id=f"{session_id}:{seq}")
            runtime.in_flight = token

        with runtime.lock:
            if token.cancelled:
                raise SupersededTurnError(f"turn {seq} superseded before dispatch")
            turn = TurnInput(
                raw_text=text,
                ui=_merge_widgets(ui or UiContext(), runtime.widgets.values()),
                flags=flags or SessionFlags(),
                turn_id=token.turn_id,
                correlation_id=correlation_id,
            )
            result = self.dispatcher.dispatch(turn, runtime.state, cancel_token=token, session_id=session_id)
            if result.superseded or token.cancelled:
                logger.info("superseded turn dropped session_id=%s turn_seq=%s", session_id, seq)
                raise SupersededTurnError(f"turn {seq} superseded")
            settings = self.dispatcher.settings
            runtime.state = apply_turn(
                runtime.state,
                result.mutations,
                latch_pending_turns=settings.latch_pending_turns,
                repair_memory_turns=settings.repair_memory_turns,
            )
            with self._guard:
                if runtime.in_flight is token:
                    runtime.in_flight = None
            return TurnReport(session_id=session_id, turn_seq=seq, result=result, state=runtime.state)

    def register_widget(
        self,
        session_id: str,
        surface_id: str,
        *,
        title: str,
        items: Iterable[WidgetItem] = (),
        stable_ref: str | None = None,
        widget_type: str | None = None,
    ) -> SessionState:
        runtime = self._runtime(session_id, create=True)
        with runtime.lock:
            runtime.widgets[surface_id] = OpenWidget(
                surface_id=surface_id,
                title=title,
                items=tuple(items),
                stable_ref=stable_ref,
                widget_type=widget_type,
            )
            self._move_latch(runtime, on_register(runtime.state.latch, surface_id, stable_ref), "widget_registered")
            return runtime.state

    def unregister_widget(self, session_id: str, surface_id: str) -> SessionState:
        runtime = self._runtime(session_id, create=False)
        with runtime.lock:
            runtime.widgets.pop(surface_id, None)
            self._move_latch(runtime, on_unregister(runtime.state.latch, surface_id), "widget_unregistered")
            return runtime.state

    def get_state(self, session_id: str) -> SessionState:
        return self._runtime(session_id, create=False).state

    def widgets(self, session_id: str) -> list[OpenWidget]:
        return list(self._runtime(session_id, create=False).widgets.values())

    def reset(self, session_id: str) -> bool:
        with self._guard:
            runtime = self._sessions.pop(session_id, None)
        if runtime is None:
            return False
        if runtime.in_flight is not None:
            runtime.in_flight.cancel()
        return True

    def _runtime(self, session_id: str, *, create: bool) -> SessionRuntime:
        with self._guard:
            runtime = self._sessions.get(session_id)
            if runtime is None:
                if not create:
                    raise UnknownSessionError(session_id)
                runtime = SessionRuntime(session_id=session_id)
                self._sessions[session_id] = runtime
            return runtime

    @staticmethod
    def _move_latch(runtime: SessionRuntime, latch: FocusLatchState, reason: str) -> None:
        before = runtime.state.latch
        if latch == before:
            return
        runtime.state = replace(runtime.state, latch=latch)
        logger.info("latch moved session_id=%s kind=%s reason=%s", runtime.session_id, latch.kind.value, reason)
        telemetry.latch_transition(before=before, after=latch, reason=reason)


def _merge_widgets(ui: UiContext, registered: Iterable[OpenWidget]) -> UiContext:
    """Registered widgets fill in whatever the request did not report itself."""
    reported = {widget.surface_id for widget in ui.open_widgets}
    extra = tuple(widget for widget in registered if widget.surface_id not in reported)
    if not extra:
        return ui
    return replace(ui, open_widgets=ui.open_widgets + extra)
