"""Tier-chain dispatcher.

``Dispatcher.dispatch`` is a pure function of the turn and the session state:
it reads state, asks each tier in order, and returns the first decision along
with every mutation the caller must apply. A tier that declines may still hand
back mutations (a paused list, a cleared confirm); those are folded into the
view the next tier sees and carried into the result.
"""

from __future__ import annotations

import logging
from typing import Sequence

from chatnav.cognition.constrained_llm import CancellationToken, ConstrainedLLMClient
from chatnav.cognition.providers import build_llm_client
from chatnav.config.settings import RoutingSettings, load_routing_settings
from chatnav.routing import telemetry
from chatnav.routing.decisions import Decision, DeferToRetrieval, DispatchResult, decision_kind
from chatnav.routing.focus_latch import reconcile_with_widgets
from chatnav.routing.matchers.cues import is_exit_phrase
from chatnav.routing.state import ReplaceLatch, SessionState, SetCounter, StateMutation, apply_mutations
from chatnav.routing.tiers import DEFAULT_TIERS, TierHandler
from chatnav.routing.tiers import retrieval
from chatnav.routing.tiers.context import TurnContext
from chatnav.routing.types import TurnInput

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        llm: ConstrainedLLMClient | None = None,
        settings: RoutingSettings | None = None,
        tiers: Sequence[tuple[int, str, TierHandler]] | None = None,
    ) -> None:
        self._settings = settings or load_routing_settings()
        self._llm = llm
        self._tiers = list(tiers) if tiers is not None else list(DEFAULT_TIERS)

    @property
    def settings(self) -> RoutingSettings:
        return self._settings

    def dispatch(
        self,
        turn: TurnInput,
        state: SessionState,
        *,
        cancel_token: CancellationToken | None = None,
        session_id: str | None = None,
    ) -> DispatchResult:
        ctx = TurnContext(
            turn=turn,
            state=state,
            settings=self._settings,
            llm=self._llm,
            cancel_token=cancel_token,
            session_id=session_id,
        )
        self._preamble(ctx)

        for number, label, handler in self._tiers:
            outcome = handler(ctx)
            if ctx.superseded:
                logger.info("turn superseded tier=%s turn_id=%s", number, turn.turn_id)
                return DispatchResult(
                    decision=outcome.decision or DeferToRetrieval(query=ctx.text, reason="superseded"),
                    handled_by_tier=number,
                    tier_label=label,
                    llm_calls=ctx.llm_calls,
                    superseded=True,
                )
            if outcome.fired:
                return self._finish(ctx, state, number, label, outcome.decision, outcome.mutations)
            ctx.absorb(outcome.mutations)

        fallback = retrieval.handle(ctx)
        return self._finish(ctx, state, retrieval.TIER, retrieval.LABEL, fallback.decision, fallback.mutations)

    def _preamble(self, ctx: TurnContext) -> None:
        state = ctx.state
        if ctx.latch_enabled:
            reconciled = reconcile_with_widgets(state.latch, ctx.widgets)
            if reconciled != state.latch:
                ctx.absorb([ReplaceLatch(reconciled, reason="widgets_reconciled")])
        if state.stop_suppression > 0 and not is_exit_phrase(ctx.text):
            ctx.absorb([SetCounter("stop_suppression", 0)])

    def _finish(
        self,
        ctx: TurnContext,
        initial: SessionState,
        number: int,
        label: str,
        decision: Decision,
        mutations: Sequence[StateMutation],
    ) -> DispatchResult:
        applied = tuple(ctx.carried) + tuple(mutations)
        kind = decision_kind(decision)
        logger.info("tier fired tier=%s label=%s decision=%s llm_calls=%s", number, label, kind, ctx.llm_calls)
        telemetry.tier_fired(
            tier=number,
            label=label,
            decision_kind=kind,
            llm_calls=ctx.llm_calls,
            correlation_id=ctx.correlation_id,
            session_id=ctx.session_id,
        )
        _emit_transitions(initial, apply_mutations(initial, applied), applied, label, ctx.correlation_id)
        return DispatchResult(
            decision=decision,
            mutations=applied,
            handled_by_tier=number,
            tier_label=label,
            llm_calls=ctx.llm_calls,
        )


def build_dispatcher(settings: RoutingSettings | None = None) -> Dispatcher:
    """Dispatcher wired to the configured LLM provider."""
    settings = settings or load_routing_settings()
    llm = None
    if settings.llm_enabled:
        llm = ConstrainedLLMClient(
            build_llm_client(),
            timeout_ms=settings.llm_timeout_ms,
            min_confidence=settings.llm_min_confidence,
        )
    return Dispatcher(llm=llm, settings=settings)


def _emit_transitions(
    before: SessionState,
    after: SessionState,
    mutations: Sequence[StateMutation],
    label: str,
    correlation_id: str | None,
) -> None:
    from_phase = _list_phase(before)
    to_phase = _list_phase(after)
    if from_phase != to_phase:
        telemetry.snapshot_transition(
            from_state=from_phase,
            to_state=to_phase,
            reason=label,
            correlation_id=correlation_id,
        )
    reasons = [m.reason for m in mutations if isinstance(m, ReplaceLatch) and m.reason]
    telemetry.latch_transition(
        before=before.latch,
        after=after.latch,
        reason=reasons[-1] if reasons else label,
        correlation_id=correlation_id,
    )


def _list_phase(state: SessionState) -> str:
    parts = []
    if state.active is not None:
        parts.append(f"active:{state.active.set_id}")
    if state.snapshot is not None:
        reason = state.snapshot.paused_reason.value if state.snapshot.paused_reason else "none"
        parts.append(f"paused:{reason}:{state.snapshot.set_id}")
    return "+".join(parts) or "empty"
