from __future__ import annotations

import uuid
from typing import Sequence

from chatnav.routing.state import (
    ReplaceActiveOptions,
    ReplaceLatch,
    ReplaceSnapshot,
    SessionState,
    SetCounter,
    StateMutation,
)
from chatnav.routing.types import (
    ActiveOptionSet,
    ClarificationOption,
    ClarificationSnapshot,
    FocusLatchState,
    LatchKind,
    PauseReason,
)

INTERNAL_INTENTS = {
    "panel_disambiguation",
    "known_noun_confirm",
    "reshow_options",
    "grounding_clarify",
    "offmenu_clarify",
}


def new_set_id() -> str:
    return f"optset-{uuid.uuid4().hex[:12]}"


def show_options(
    state: SessionState,
    options: Sequence[ClarificationOption],
    *,
    original_intent: str,
    prompt: str = "",
    set_id: str | None = None,
) -> tuple[ActiveOptionSet, list[StateMutation]]:
    """Make ``options`` the active list, pausing any list it displaces.

    A chat list taking focus also releases an engaged focus latch.
    """
    active = ActiveOptionSet(
        set_id=set_id or new_set_id(),
        options=tuple(options),
        original_intent=original_intent,
        prompt=prompt,
    )
    mutations: list[StateMutation] = []
    if state.active is not None and state.active.set_id != active.set_id:
        mutations.extend(pause_active(state, PauseReason.INTERRUPT))
    mutations.append(ReplaceActiveOptions(active))
    mutations.append(SetCounter("offmenu_attempts", 0))
    if state.latch.kind is not LatchKind.NONE:
        mutations.append(ReplaceLatch(FocusLatchState(), reason="chat_options_shown"))
    return active, mutations


def pause_active(state: SessionState, reason: PauseReason) -> list[StateMutation]:
    """Move the active list into the snapshot slot. Never destroys options."""
    if state.active is None:
        if state.snapshot is not None and reason is PauseReason.STOP:
            return [ReplaceSnapshot(_with_reason(state.snapshot, reason))]
        return []
    snapshot = ClarificationSnapshot(
        set_id=state.active.set_id,
        options=state.active.options,
        original_intent=state.active.original_intent,
        turns_since_set=0,
        paused_reason=reason,
    )
    return [ReplaceSnapshot(snapshot), ReplaceActiveOptions(None), SetCounter("offmenu_attempts", 0)]


def restore_snapshot(state: SessionState) -> tuple[ActiveOptionSet | None, list[StateMutation]]:
    """Re-activate the paused list with the same set id, ids and order."""
    snapshot = state.snapshot
    if snapshot is None:
        return None, []
    active = ActiveOptionSet(
        set_id=snapshot.set_id,
        options=snapshot.options,
        original_intent=snapshot.original_intent,
        prompt=restore_message(snapshot),
    )
    mutations: list[StateMutation] = [
        ReplaceActiveOptions(active),
        ReplaceSnapshot(None),
        SetCounter("offmenu_attempts", 0),
    ]
    return active, mutations


def clear_active_and_snapshot() -> list[StateMutation]:
    return [ReplaceActiveOptions(None), ReplaceSnapshot(None)]


def restore_message(snapshot: ClarificationSnapshot) -> str:
    if snapshot.paused_reason is PauseReason.STOP:
        return "Here are the options you closed earlier:"
    if not snapshot.original_intent or snapshot.original_intent in INTERNAL_INTENTS:
        return "Here are the previous options:"
    return f'Here are the options for "{snapshot.original_intent}":'


def _with_reason(snapshot: ClarificationSnapshot, reason: PauseReason) -> ClarificationSnapshot:
    return ClarificationSnapshot(
        set_id=snapshot.set_id,
        options=snapshot.options,
        original_intent=snapshot.original_intent,
        type=snapshot.type,
        turns_since_set=snapshot.turns_since_set,
        paused_reason=reason,
    )
