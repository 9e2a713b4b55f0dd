"""Session-scoped conversation state and the mutations the dispatcher requests.

The dispatcher never writes state. Tiers return mutation requests; the caller
applies them once per turn with :func:`apply_turn`, which first ticks every
turn counter and then applies the mutations so an explicit reset wins over the
tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Literal, TypeVar, Union

from chatnav.routing.types import (
    ActiveOptionSet,
    ClarificationOption,
    ClarificationSnapshot,
    ConfirmKind,
    FocusLatchState,
    LatchKind,
    OptionKind,
    PauseReason,
    PendingConfirm,
    Referent,
    RepairMemory,
)

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=Enum)
_D = TypeVar("_D")

MAX_RECENT_REFERENTS = 5

CounterName = Literal["stop_suppression", "exit_count", "offmenu_attempts"]


@dataclass(frozen=True)
class SessionState:
    active: ActiveOptionSet | None = None
    snapshot: ClarificationSnapshot | None = None
    latch: FocusLatchState = field(default_factory=FocusLatchState)
    stop_suppression: int = 0
    exit_count: int = 0
    offmenu_attempts: int = 0
    pending_confirm: PendingConfirm | None = None
    repair: RepairMemory | None = None
    recent_referents: tuple[Referent, ...] = ()
    last_retrieval_query: str | None = None
    turn: int = 0


@dataclass(frozen=True)
class ReplaceActiveOptions:
    active: ActiveOptionSet | None


@dataclass(frozen=True)
class ReplaceSnapshot:
    snapshot: ClarificationSnapshot | None


@dataclass(frozen=True)
class ReplaceLatch:
    latch: FocusLatchState
    reason: str = ""


@dataclass(frozen=True)
class SetCounter:
    name: CounterName
    value: int


@dataclass(frozen=True)
class ReplacePendingConfirm:
    pending: PendingConfirm | None


@dataclass(frozen=True)
class ReplaceRepairMemory:
    repair: RepairMemory | None


@dataclass(frozen=True)
class RecordReferent:
    referent: Referent


@dataclass(frozen=True)
class SetLastRetrievalQuery:
    query: str | None


StateMutation = Union[
    ReplaceActiveOptions,
    ReplaceSnapshot,
    ReplaceLatch,
    SetCounter,
    ReplacePendingConfirm,
    ReplaceRepairMemory,
    RecordReferent,
    SetLastRetrievalQuery,
]


def apply_mutations(state: SessionState, mutations: tuple[StateMutation, ...] | list[StateMutation]) -> SessionState:
    for mutation in mutations:
        state = _apply_one(state, mutation)
    return state


def tick_turn(
    state: SessionState,
    *,
    latch_pending_turns: int,
    repair_memory_turns: int,
) -> tuple[SessionState, bool]:
    """Advance every turn counter once. Returns the new state and whether a pending latch expired."""
    snapshot = state.snapshot
    if snapshot is not None:
        snapshot = replace(snapshot, turns_since_set=snapshot.turns_since_set + 1)
    repair = state.repair
    if repair is not None:
        aged = repair.turns_since_set + 1
        repair = replace(repair, turns_since_set=aged) if aged <= repair_memory_turns else None
    latch = state.latch
    expired = False
    if latch.kind is LatchKind.PENDING:
        unresolved = latch.turns_unresolved + 1
        if unresolved > latch_pending_turns:
            latch = FocusLatchState()
            expired = True
        else:
            latch = replace(latch, turns_unresolved=unresolved)
    ticked = replace(
        state,
        snapshot=snapshot,
        repair=repair,
        latch=latch,
        stop_suppression=max(state.stop_suppression - 1, 0),
        turn=state.turn + 1,
    )
    return ticked, expired


def apply_turn(
    state: SessionState,
    mutations: tuple[StateMutation, ...] | list[StateMutation],
    *,
    latch_pending_turns: int,
    repair_memory_turns: int,
) -> SessionState:
    ticked, expired = tick_turn(
        state,
        latch_pending_turns=latch_pending_turns,
        repair_memory_turns=repair_memory_turns,
    )
    if expired:
        logger.info("pending latch expired turn=%s", ticked.turn)
    return apply_mutations(ticked, mutations)


def _apply_one(state: SessionState, mutation: StateMutation) -> SessionState:
    if isinstance(mutation, ReplaceActiveOptions):
        return replace(state, active=mutation.active)
    if isinstance(mutation, ReplaceSnapshot):
        return replace(state, snapshot=mutation.snapshot)
    if isinstance(mutation, ReplaceLatch):
        return replace(state, latch=mutation.latch)
    if isinstance(mutation, SetCounter):
        return replace(state, **{mutation.name: max(int(mutation.value), 0)})
    if isinstance(mutation, ReplacePendingConfirm):
        return replace(state, pending_confirm=mutation.pending)
    if isinstance(mutation, ReplaceRepairMemory):
        return replace(state, repair=mutation.repair)
    if isinstance(mutation, RecordReferent):
        kept = tuple(r for r in state.recent_referents if r.id != mutation.referent.id)
        return replace(
            state,
            recent_referents=((mutation.referent,) + kept)[:MAX_RECENT_REFERENTS],
        )
    if isinstance(mutation, SetLastRetrievalQuery):
        return replace(state, last_retrieval_query=mutation.query)
    raise TypeError(f"unsupported mutation {type(mutation).__name__}")


def serialize_session_state(state: SessionState) -> dict[str, Any]:
    return {
        "active": _serialize_active(state.active),
        "snapshot": _serialize_snapshot(state.snapshot),
        "latch": {
            "kind": state.latch.kind.value,
            "surface_id": state.latch.surface_id,
            "awaited_ref": state.latch.awaited_ref,
            "label": state.latch.label,
            "turns_unresolved": state.latch.turns_unresolved,
            "suspended": state.latch.suspended,
        },
        "stop_suppression": state.stop_suppression,
        "exit_count": state.exit_count,
        "offmenu_attempts": state.offmenu_attempts,
        "pending_confirm": (
            {"kind": state.pending_confirm.kind.value, "prompt": state.pending_confirm.prompt}
            if state.pending_confirm
            else None
        ),
        "repair": (
            {
                "last_choice_id": state.repair.last_choice_id,
                "options": [_serialize_option(o) for o in state.repair.options],
                "turns_since_set": state.repair.turns_since_set,
            }
            if state.repair
            else None
        ),
        "recent_referents": [
            {"id": r.id, "label": r.label, "action_hint": r.action_hint}
            for r in state.recent_referents
        ],
        "last_retrieval_query": state.last_retrieval_query,
        "turn": state.turn,
    }


def deserialize_session_state(payload: dict[str, Any] | None) -> SessionState:
    if not isinstance(payload, dict):
        return SessionState()
    latch_raw = payload.get("latch") if isinstance(payload.get("latch"), dict) else {}
    pending_raw = payload.get("pending_confirm")
    repair_raw = payload.get("repair")
    return SessionState(
        active=_deserialize_active(payload.get("active")),
        snapshot=_deserialize_snapshot(payload.get("snapshot")),
        latch=FocusLatchState(
            kind=_enum(LatchKind, latch_raw.get("kind"), LatchKind.NONE),
            surface_id=latch_raw.get("surface_id"),
            awaited_ref=latch_raw.get("awaited_ref"),
            label=latch_raw.get("label"),
            turns_unresolved=_int(latch_raw.get("turns_unresolved")),
            suspended=bool(latch_raw.get("suspended")),
        ),
        stop_suppression=_int(payload.get("stop_suppression")),
        exit_count=_int(payload.get("exit_count")),
        offmenu_attempts=_int(payload.get("offmenu_attempts")),
        pending_confirm=_deserialize_pending(pending_raw),
        repair=(
            RepairMemory(
                last_choice_id=str(repair_raw["last_choice_id"]),
                options=_deserialize_options(repair_raw.get("options")),
                turns_since_set=_int(repair_raw.get("turns_since_set")),
            )
            if isinstance(repair_raw, dict) and repair_raw.get("last_choice_id")
            else None
        ),
        recent_referents=tuple(
            Referent(id=str(r["id"]), label=str(r.get("label") or ""), action_hint=str(r.get("action_hint") or "open"))
            for r in _list(payload.get("recent_referents"))
            if isinstance(r, dict) and r.get("id")
        ),
        last_retrieval_query=payload.get("last_retrieval_query"),
        turn=_int(payload.get("turn")),
    )


def _serialize_option(option: ClarificationOption) -> dict[str, Any]:
    return {"id": option.id, "label": option.label, "kind": option.kind.value, "data": dict(option.data)}


def _deserialize_option(raw: dict[str, Any]) -> ClarificationOption:
    return ClarificationOption(
        id=str(raw["id"]),
        label=str(raw.get("label") or ""),
        kind=_enum(OptionKind, raw.get("kind"), OptionKind.EXECUTABLE),
        data=dict(raw.get("data")) if isinstance(raw.get("data"), dict) else {},
    )


def _serialize_active(active: ActiveOptionSet | None) -> dict[str, Any] | None:
    if active is None:
        return None
    return {
        "set_id": active.set_id,
        "options": [_serialize_option(o) for o in active.options],
        "original_intent": active.original_intent,
        "prompt": active.prompt,
    }


def _deserialize_active(raw: Any) -> ActiveOptionSet | None:
    if not isinstance(raw, dict) or not raw.get("set_id"):
        return None
    return ActiveOptionSet(
        set_id=str(raw["set_id"]),
        options=_deserialize_options(raw.get("options")),
        original_intent=str(raw.get("original_intent") or ""),
        prompt=str(raw.get("prompt") or ""),
    )


def _serialize_snapshot(snapshot: ClarificationSnapshot | None) -> dict[str, Any] | None:
    if snapshot is None:
        return None
    return {
        "set_id": snapshot.set_id,
        "options": [_serialize_option(o) for o in snapshot.options],
        "original_intent": snapshot.original_intent,
        "type": snapshot.type,
        "turns_since_set": snapshot.turns_since_set,
        "paused_reason": snapshot.paused_reason.value if snapshot.paused_reason else None,
    }


def _deserialize_snapshot(raw: Any) -> ClarificationSnapshot | None:
    if not isinstance(raw, dict) or not raw.get("set_id"):
        return None
    return ClarificationSnapshot(
        set_id=str(raw["set_id"]),
        options=_deserialize_options(raw.get("options")),
        original_intent=str(raw.get("original_intent") or ""),
        type=str(raw.get("type") or "option_selection"),
        turns_since_set=_int(raw.get("turns_since_set")),
        paused_reason=_enum(PauseReason, raw.get("paused_reason"), None),
    )


def _deserialize_options(raw: Any) -> tuple[ClarificationOption, ...]:
    return tuple(_deserialize_option(o) for o in _list(raw) if isinstance(o, dict) and o.get("id"))


def _deserialize_pending(raw: Any) -> PendingConfirm | None:
    if not isinstance(raw, dict):
        return None
    kind = _enum(ConfirmKind, raw.get("kind"), None)
    if kind is None:
        return None
    return PendingConfirm(kind=kind, prompt=str(raw.get("prompt") or ""))


def _enum(enum_type: type[_E], value: Any, default: _D) -> _E | _D:
    if not value:
        return default
    try:
        return enum_type(value)
    except ValueError:
        return default


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []
