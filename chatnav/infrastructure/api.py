from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from chatnav.infrastructure.session_store import (
    SessionStore,
    SupersededTurnError,
    UnknownSessionError,
)
from chatnav.observability.log_manager import get_log_manager
from chatnav.routing.errors import ContractViolationError
from chatnav.routing.state import serialize_session_state
from chatnav.routing.types import OpenWidget, SessionFlags, UiContext, WidgetItem

app = FastAPI(title="chatnav API", version="0.1.0")
store = SessionStore()


class WidgetItemPayload(BaseModel):
    id: str = Field(min_length=1)
    label: str


class OpenWidgetPayload(BaseModel):
    surface_id: str
    title: str = ""
    items: list[WidgetItemPayload] = Field(default_factory=list)
    stable_ref: str | None = None
    widget_type: str | None = None


class UiContextPayload(BaseModel):
    open_widgets: list[OpenWidgetPayload] = Field(default_factory=list)
    mode: str = "dashboard"
    show_badges: bool = False
    active_option_set_id: str | None = None


class SessionFlagsPayload(BaseModel):
    latch_enabled: bool = True
    llm_enabled: bool = True


class TurnRequest(BaseModel):
    text: str
    ui: UiContextPayload = Field(default_factory=UiContextPayload)
    flags: SessionFlagsPayload = Field(default_factory=SessionFlagsPayload)
    correlation_id: str | None = None


class WidgetRegistration(BaseModel):
    surface_id: str
    title: str = ""
    stable_ref: str | None = None
    widget_type: str | None = None
    items: list[WidgetItemPayload] = Field(default_factory=list)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/chat/sessions/{session_id}/turns")
def post_turn(session_id: str, payload: TurnRequest) -> dict[str, Any]:
    try:
        report = store.run_turn(
            session_id,
            payload.text,
            ui=_ui_context(payload.ui),
            flags=SessionFlags(latch_enabled=payload.flags.latch_enabled, llm_enabled=payload.flags.llm_enabled),
            correlation_id=payload.correlation_id,
        )
    except SupersededTurnError as exc:
        raise HTTPException(status_code=409, detail="Turn superseded by a newer turn") from exc
    except ContractViolationError as exc:
        get_log_manager().emit_exception(
            event="routing.contract_violation",
            component="infrastructure.api",
            session_id=session_id,
            correlation_id=payload.correlation_id,
            exc=exc,
        )
        raise HTTPException(status_code=500, detail="Routing contract violation") from exc
    return report.to_dict()


@app.post("/chat/sessions/{session_id}/widgets", status_code=201)
def register_widget(session_id: str, payload: WidgetRegistration) -> dict[str, Any]:
    state = store.register_widget(
        session_id,
        payload.surface_id,
        title=payload.title,
        items=[WidgetItem(id=item.id, label=item.label) for item in payload.items],
        stable_ref=payload.stable_ref,
        widget_type=payload.widget_type,
    )
    return {"surface_id": payload.surface_id, "state": serialize_session_state(state)}


@app.delete("/chat/sessions/{session_id}/widgets/{surface_id}")
def unregister_widget(session_id: str, surface_id: str) -> dict[str, Any]:
    try:
        state = store.unregister_widget(session_id, surface_id)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return {"surface_id": surface_id, "state": serialize_session_state(state)}


@app.get("/chat/sessions/{session_id}/state")
def get_state(session_id: str) -> dict[str, Any]:
    try:
        state = store.get_state(session_id)
        widgets = store.widgets(session_id)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return {
        "session_id": session_id,
        "state": serialize_session_state(state),
        "widgets": [widget.surface_id for widget in widgets],
    }


@app.delete("/chat/sessions/{session_id}")
def delete_session(session_id: str) -> dict[str, Any]:
    if not store.reset(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session_id": session_id, "deleted": True}


def _ui_context(payload: UiContextPayload) -> UiContext:
    return UiContext(
        open_widgets=tuple(
            OpenWidget(
                surface_id=widget.surface_id,
                title=widget.title,
                items=tuple(WidgetItem(id=item.id, label=item.label) for item in widget.items),
                stable_ref=widget.stable_ref,
                widget_type=widget.widget_type,
            )
            for widget in payload.open_widgets
        ),
        mode=payload.mode,
        show_badges=payload.show_badges,
        active_option_set_id=payload.active_option_set_id,
    )
