from __future__ import annotations

from chatnav.cognition.llm_contract import LLMOutcome, TaskKind
from chatnav.observability.log_manager import get_log_manager
from chatnav.routing.types import FocusLatchState

_COMPONENT = "routing.dispatcher"


def tier_fired(
    *,
    tier: int,
    label: str,
    decision_kind: str,
    llm_calls: int,
    correlation_id: str | None = None,
    session_id: str | None = None,
) -> None:
    get_log_manager().emit(
        event="routing.tier_fired",
        component=_COMPONENT,
        correlation_id=correlation_id,
        session_id=session_id,
        tier=tier,
        status=decision_kind,
        tier_label=label,
        llm_calls=llm_calls,
    )


def llm_outcome(
    *,
    task_kind: TaskKind,
    outcome: LLMOutcome,
    candidate_count: int,
    tier: int | None = None,
    correlation_id: str | None = None,
) -> None:
    get_log_manager().emit(
        level="info" if outcome.status.value in {"ok", "skipped"} else "warning",
        event="routing.llm_outcome",
        component="routing.llm",
        correlation_id=correlation_id,
        tier=tier,
        status=outcome.status.value,
        latency_ms=outcome.latency_ms,
        task_kind=task_kind.value,
        candidate_count=candidate_count,
        confidence=outcome.confidence,
    )


def snapshot_transition(
    *,
    from_state: str,
    to_state: str,
    reason: str,
    correlation_id: str | None = None,
) -> None:
    get_log_manager().emit(
        event="routing.snapshot_transition",
        component="routing.snapshot",
        correlation_id=correlation_id,
        reason=reason,
        **{"from": from_state, "to": to_state},
    )


def latch_transition(
    *,
    before: FocusLatchState,
    after: FocusLatchState,
    reason: str,
    correlation_id: str | None = None,
) -> None:
    if before == after:
        return
    get_log_manager().emit(
        event="routing.latch_transition",
        component="routing.focus_latch",
        correlation_id=correlation_id,
        from_kind=before.kind.value,
        to_kind=after.kind.value,
        suspended=after.suspended,
        surface_id=after.surface_id,
        reason=reason,
    )
