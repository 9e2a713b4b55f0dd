"""Tier 0: exit and stop phrases, before anything else reads the input."""

from __future__ import annotations

import logging

from chatnav.routing.decisions import Action, ActionKind, AskClarify, Execute
from chatnav.routing.focus_latch import NO_LATCH
from chatnav.routing.matchers.cues import ExitIntent, classify_exit_intent, is_exit_phrase, is_keep_choosing
from chatnav.routing.matchers.phrases import is_affirmation
from chatnav.routing.snapshot import clear_active_and_snapshot, pause_active
from chatnav.routing.state import ReplaceLatch, ReplacePendingConfirm, SetCounter, StateMutation
from chatnav.routing.tiers.context import DECLINE, TierOutcome, TurnContext, fire, pass_through
from chatnav.routing.types import ConfirmKind, LatchKind, PauseReason, PendingConfirm

logger = logging.getLogger(__name__)

TIER = 0
LABEL = "stop"

HARD_EXIT_MESSAGE = "Okay, we'll drop that. What would you like to do instead?"
EXIT_CONFIRM_PROMPT = "Do you want to cancel and start over, or keep choosing from these options?"
NO_SCOPE_MESSAGE = "No problem. What would you like to do instead?"
SUPPRESSED_MESSAGE = "All set. What would you like to do?"
KEEP_CHOOSING_FALLBACK = "Which one would you like?"
START_OVER_MESSAGE = "Okay, starting fresh. What would you like to do?"

# Matches the "Start over" exit pill; the lists are discarded rather than paused.
_START_OVER = "start over"


def handle(ctx: TurnContext) -> TierOutcome:
    state = ctx.state
    active = state.active
    pending = state.pending_confirm
    intent = classify_exit_intent(ctx.text)

    if pending is not None and pending.kind is ConfirmKind.EXIT:
        reset = [ReplacePendingConfirm(None), SetCounter("exit_count", 0)]
        if active is None:
            return pass_through(reset)
        if is_affirmation(ctx.text) or intent is not ExitIntent.NONE:
            logger.info("exit confirmed input=%r", ctx.text)
            return _hard_exit(ctx)
        if is_keep_choosing(ctx.text):
            return fire(AskClarify(prompt=active.prompt or KEEP_CHOOSING_FALLBACK, options=active.options), reset)
        # An ordinal or label after the confirm prompt is a normal pick.
        return pass_through(reset)

    if active is not None:
        if intent is ExitIntent.EXPLICIT or (intent is ExitIntent.AMBIGUOUS and state.exit_count >= 1):
            return _hard_exit(ctx)
        if intent is ExitIntent.AMBIGUOUS:
            return fire(
                AskClarify(prompt=EXIT_CONFIRM_PROMPT, options=active.options),
                [
                    SetCounter("exit_count", state.exit_count + 1),
                    ReplacePendingConfirm(PendingConfirm(kind=ConfirmKind.EXIT, prompt=EXIT_CONFIRM_PROMPT)),
                ],
            )
        return DECLINE

    if not is_exit_phrase(ctx.text):
        return DECLINE
    if state.stop_suppression > 0:
        logger.info("repeated stop suppressed remaining=%s", state.stop_suppression)
        return fire(Execute(Action(kind=ActionKind.ACKNOWLEDGE), message=SUPPRESSED_MESSAGE))
    if ctx.normalized == _START_OVER and state.snapshot is not None:
        return _start_over(ctx, None)
    mutations: list[StateMutation] = pause_active(state, PauseReason.STOP)
    mutations.extend(_release_scope(ctx))
    return fire(Execute(Action(kind=ActionKind.ACKNOWLEDGE), message=NO_SCOPE_MESSAGE), mutations)


def _hard_exit(ctx: TurnContext) -> TierOutcome:
    state = ctx.state
    paused_set_id = state.active.set_id if state.active else None
    if ctx.normalized == _START_OVER:
        return _start_over(ctx, paused_set_id)
    mutations: list[StateMutation] = pause_active(state, PauseReason.STOP)
    mutations.extend(_release_scope(ctx))
    return fire(
        Execute(
            Action(kind=ActionKind.EXIT_SCOPE, target_id=paused_set_id),
            message=HARD_EXIT_MESSAGE,
        ),
        mutations,
    )


def _start_over(ctx: TurnContext, set_id: str | None) -> TierOutcome:
    logger.info("start over set_id=%s", set_id)
    mutations = clear_active_and_snapshot() + _release_scope(ctx)
    return fire(
        Execute(Action(kind=ActionKind.EXIT_SCOPE, target_id=set_id), message=START_OVER_MESSAGE),
        mutations,
    )


def _release_scope(ctx: TurnContext) -> list[StateMutation]:
    mutations: list[StateMutation] = []
    if ctx.state.latch.kind is not LatchKind.NONE:
        mutations.append(ReplaceLatch(NO_LATCH, reason="stop"))
    mutations.extend(
        [
            ReplacePendingConfirm(None),
            SetCounter("exit_count", 0),
            SetCounter("stop_suppression", ctx.settings.stop_suppression_turns),
        ]
    )
    return mutations
