from __future__ import annotations

import json

from chatnav.routing.focus_latch import latch_pending
from chatnav.routing.state import (
    MAX_RECENT_REFERENTS,
    RecordReferent,
    ReplaceLatch,
    ReplacePendingConfirm,
    ReplaceRepairMemory,
    ReplaceSnapshot,
    SessionState,
    SetCounter,
    apply_mutations,
    apply_turn,
    deserialize_session_state,
    serialize_session_state,
)
from chatnav.routing.types import (
    ActiveOptionSet,
    ClarificationOption,
    ClarificationSnapshot,
    ConfirmKind,
    LatchKind,
    OptionKind,
    PauseReason,
    PendingConfirm,
    Referent,
    RepairMemory,
)

_OPTIONS = (
    ClarificationOption(id="a", label="Alpha"),
    ClarificationOption(id="b", label="Beta", kind=OptionKind.DESCRIPTIVE, data={"doc": 7}),
)


def _turn(state: SessionState, mutations=()) -> SessionState:
    return apply_turn(state, list(mutations), latch_pending_turns=2, repair_memory_turns=2)


def test_tick_runs_before_mutations_so_resets_win() -> None:
    state = SessionState(stop_suppression=2)
    after = _turn(state, [SetCounter("stop_suppression", 2)])
    assert after.stop_suppression == 2
    assert after.turn == 1
    assert _turn(after).stop_suppression == 1


def test_counters_are_clamped_at_zero() -> None:
    state = apply_mutations(SessionState(), [SetCounter("exit_count", -3)])
    assert state.exit_count == 0
    assert _turn(SessionState()).stop_suppression == 0


def test_snapshot_age_increases_each_turn() -> None:
    snapshot = ClarificationSnapshot(set_id="s1", options=_OPTIONS, original_intent="x")
    state = apply_mutations(SessionState(), [ReplaceSnapshot(snapshot)])
    state = _turn(_turn(state))
    assert state.snapshot.turns_since_set == 2


def test_pending_latch_expires_after_configured_turns() -> None:
    state = apply_mutations(SessionState(), [ReplaceLatch(latch_pending("panel:recent"))])
    state = _turn(state)
    assert state.latch.kind is LatchKind.PENDING
    state = _turn(state)
    assert state.latch.turns_unresolved == 2
    state = _turn(state)
    assert state.latch.kind is LatchKind.NONE


def test_repair_memory_is_forgotten_after_its_window() -> None:
    repair = RepairMemory(last_choice_id="a", options=_OPTIONS)
    state = _turn(SessionState(), [ReplaceRepairMemory(repair)])
    assert state.repair.turns_since_set == 0
    state = _turn(_turn(state))
    assert state.repair.turns_since_set == 2
    assert _turn(state).repair is None


def test_recent_referents_are_deduplicated_newest_first_and_bounded() -> None:
    state = SessionState()
    for index in range(7):
        state = apply_mutations(state, [RecordReferent(Referent(id=f"r{index}", label=f"Doc {index}"))])
    state = apply_mutations(state, [RecordReferent(Referent(id="r4", label="Doc 4"))])
    ids = [r.id for r in state.recent_referents]
    assert len(ids) == MAX_RECENT_REFERENTS
    assert ids == ["r4", "r6", "r5", "r3", "r2"]


def test_serialized_state_is_json_and_round_trips() -> None:
    state = SessionState(
        active=ActiveOptionSet(set_id="s2", options=_OPTIONS, original_intent="pick", prompt="Pick one:"),
        snapshot=ClarificationSnapshot(
            set_id="s1",
            options=_OPTIONS,
            original_intent="earlier",
            turns_since_set=3,
            paused_reason=PauseReason.STOP,
        ),
        latch=latch_pending("panel:recent", label="Recent"),
        exit_count=1,
        pending_confirm=PendingConfirm(kind=ConfirmKind.EXIT, prompt="Leave?"),
        repair=RepairMemory(last_choice_id="b", options=_OPTIONS, turns_since_set=1),
        recent_referents=(Referent(id="r1", label="Budget"),),
        last_retrieval_query="budget",
        turn=9,
    )
    payload = json.loads(json.dumps(serialize_session_state(state)))
    restored = deserialize_session_state(payload)
    assert restored == state
    assert restored.active.options[1].data == {"doc": 7}


def test_deserialize_tolerates_missing_or_bad_payloads() -> None:
    assert deserialize_session_state(None) == SessionState()
    assert deserialize_session_state({"active": {"options": []}, "latch": "bogus"}) == SessionState()


def test_deserialize_falls_back_on_unknown_values() -> None:
    restored = deserialize_session_state(
        {
            "turn": "abc",
            "exit_count": [1],
            "latch": {"kind": "weird", "turns_unresolved": "x"},
            "pending_confirm": {"kind": "teleport", "prompt": "?"},
            "snapshot": {
                "set_id": "s1",
                "paused_reason": "bogus",
                "turns_since_set": None,
                "options": [{"id": "a", "label": "Alpha", "kind": "sideways"}, {"label": "no id"}, "junk"],
            },
            "recent_referents": "not a list",
        }
    )
    assert restored.turn == 0
    assert restored.exit_count == 0
    assert restored.latch.kind is LatchKind.NONE
    assert restored.pending_confirm is None
    assert restored.snapshot.paused_reason is None
    assert restored.snapshot.options == (ClarificationOption(id="a", label="Alpha", kind=OptionKind.EXECUTABLE),)
    assert restored.recent_referents == ()


def test_pending_confirm_can_be_cleared() -> None:
    state = apply_mutations(
        SessionState(),
        [ReplacePendingConfirm(PendingConfirm(kind=ConfirmKind.RETURN, prompt="Go back?"))],
    )
    assert state.pending_confirm.kind is ConfirmKind.RETURN
    assert apply_mutations(state, [ReplacePendingConfirm(None)]).pending_confirm is None
