"""Tier 1: return to a paused list, resume it, or repair the last pick."""

from __future__ import annotations

import logging

from chatnav.cognition.llm_contract import TaskKind
from chatnav.routing.decisions import Action, ActionKind, AskClarify, Execute, Select
from chatnav.routing.focus_latch import suspend
from chatnav.routing.matchers.cues import (
    has_return_cue_tokens,
    is_repair_phrase,
    match_return_cue,
    split_return_compound,
)
from chatnav.routing.matchers.labels import is_exact_label, match_unique_label
from chatnav.routing.matchers.ordinals import (
    MatchMode,
    has_ordinal_token,
    is_selection_like,
    is_strict_selection,
    resolve_ordinal,
)
from chatnav.routing.matchers.phrases import is_affirmation, is_rejection, matches_reshow_phrase
from chatnav.routing.snapshot import restore_message, restore_snapshot
from chatnav.routing.state import ReplaceLatch, ReplacePendingConfirm, StateMutation
from chatnav.routing.tiers.context import (
    DECLINE,
    TierOutcome,
    TurnContext,
    fire,
    selection_mutations,
)
from chatnav.routing.types import (
    ClarificationOption,
    ClarificationSnapshot,
    ConfirmKind,
    OptionKind,
    PauseReason,
    PendingConfirm,
)

logger = logging.getLogger(__name__)

TIER = 1
LABEL = "return_resume"

RETURN_CONFIRM_PROMPT = "Do you want to go back to the previous options?"
DECLINED_RETURN_MESSAGE = "Okay, what would you like to do instead?"
REPAIR_PROMPT = "Which one did you mean?"
STOP_PAUSED_ORDINAL_MESSAGE = (
    "That list was closed. Say 'back to the options' to reopen it, or tell me what you want instead."
)
RETURN_CUE_CHOICES = (
    ClarificationOption(id="return", label="Go back to the paused options", kind=OptionKind.DESCRIPTIVE),
    ClarificationOption(id="not_return", label="Something else", kind=OptionKind.DESCRIPTIVE),
)


def handle(ctx: TurnContext) -> TierOutcome:
    pending = ctx.state.pending_confirm
    if pending is not None and pending.kind is ConfirmKind.RETURN:
        if is_affirmation(ctx.text) and ctx.state.snapshot is not None:
            return _restore(ctx, reason="return_confirmed")
        if is_rejection(ctx.text):
            return fire(
                Execute(Action(kind=ActionKind.ACKNOWLEDGE), message=DECLINED_RETURN_MESSAGE),
                [ReplacePendingConfirm(None)],
            )
        ctx.absorb([ReplacePendingConfirm(None)])

    repaired = _repair_last_choice(ctx)
    if repaired is not None:
        return repaired

    snapshot = ctx.state.snapshot
    if snapshot is None or not snapshot.options or ctx.state.active is not None:
        return DECLINE

    if is_affirmation(ctx.text) or match_return_cue(ctx.text).matched or matches_reshow_phrase(ctx.text):
        return _restore(ctx, reason="return_cue")

    compound = _select_from_compound(ctx, snapshot)
    if compound is not None:
        return compound

    if is_repair_phrase(ctx.text):
        return fire(Execute(Action(kind=ActionKind.ACKNOWLEDGE), message=DECLINED_RETURN_MESSAGE))

    index = _strict_snapshot_index(ctx, snapshot)
    if index is not None:
        return _ordinal_against_paused(ctx, snapshot, index)

    if has_return_cue_tokens(ctx.text) and not is_selection_like(ctx.text, show_badges=ctx.show_badges):
        return _ask_llm_about_return(ctx)
    return DECLINE


def _restore(ctx: TurnContext, *, reason: str) -> TierOutcome:
    snapshot = ctx.state.snapshot
    if snapshot is None:
        return DECLINE
    prompt = restore_message(snapshot)
    active, mutations = restore_snapshot(ctx.state)
    if ctx.state.latch != suspend(ctx.state.latch):
        mutations.append(ReplaceLatch(suspend(ctx.state.latch), reason=reason))
    mutations.append(ReplacePendingConfirm(None))
    logger.info("paused list restored set_id=%s reason=%s", snapshot.set_id, reason)
    return fire(AskClarify(prompt=prompt, options=active.options if active else ()), mutations)


def _repair_last_choice(ctx: TurnContext) -> TierOutcome | None:
    repair = ctx.state.repair
    if repair is None or not repair.options or ctx.selectable_active is not None:
        return None
    if not is_repair_phrase(ctx.text):
        return None
    others = tuple(option for option in repair.options if option.id != repair.last_choice_id)
    if len(repair.options) == 2 and len(others) == 1:
        option = others[0]
        return fire(
            Select(option=option, source="repair"),
            selection_mutations(option, repair.options, clear_active=False),
        )
    if others:
        return fire(AskClarify(prompt=REPAIR_PROMPT, options=others))
    return None


def _select_from_compound(ctx: TurnContext, snapshot: ClarificationSnapshot) -> TierOutcome | None:
    remainder = split_return_compound(ctx.text)
    if remainder is None:
        return None
    index = _pick_index(remainder, snapshot)
    if index is None:
        return None
    option = snapshot.options[index]
    mutations: list[StateMutation] = selection_mutations(option, snapshot.options, clear_active=False)
    if ctx.state.latch != suspend(ctx.state.latch):
        mutations.append(ReplaceLatch(suspend(ctx.state.latch), reason="return_cue"))
    return fire(Select(option=option, source="paused_snapshot"), mutations)


def _pick_index(text: str, snapshot: ClarificationSnapshot) -> int | None:
    ordinal = resolve_ordinal(text, len(snapshot.options), mode=MatchMode.PERMISSIVE)
    if ordinal.matched:
        return ordinal.value
    label = match_unique_label(text, [option.label for option in snapshot.options])
    if label.matched:
        return label.value
    return None


def _strict_snapshot_index(ctx: TurnContext, snapshot: ClarificationSnapshot) -> int | None:
    for index, option in enumerate(snapshot.options):
        if is_exact_label(ctx.text, option.label):
            return index
    if not (is_strict_selection(ctx.text, show_badges=ctx.show_badges) or has_ordinal_token(ctx.ordinal_text)):
        return None
    result = resolve_ordinal(
        ctx.text,
        len(snapshot.options),
        mode=MatchMode.PERMISSIVE,
        show_badges=ctx.show_badges,
    )
    return result.value if result.matched else None


def _ordinal_against_paused(ctx: TurnContext, snapshot: ClarificationSnapshot, index: int) -> TierOutcome:
    competing_widget_list = bool(ctx.widget_lists) and not ctx.settings.paused_list_first
    if competing_widget_list or ctx.latch_blocks:
        logger.info(
            "ordinal against paused list deferred widget_lists=%s latch_blocks=%s",
            len(ctx.widget_lists),
            ctx.latch_blocks,
        )
        return DECLINE
    if snapshot.paused_reason is PauseReason.STOP:
        logger.info("ordinal blocked reason=stop_paused input=%r", ctx.text)
        return fire(Execute(Action(kind=ActionKind.ACKNOWLEDGE), message=STOP_PAUSED_ORDINAL_MESSAGE))
    option = snapshot.options[index]
    return fire(
        Select(option=option, source="paused_snapshot"),
        selection_mutations(option, snapshot.options, clear_active=False),
    )


def _ask_llm_about_return(ctx: TurnContext) -> TierOutcome:
    outcome = ctx.classify(
        ctx.text,
        RETURN_CUE_CHOICES,
        TaskKind.RETURN_CUE,
        tier=TIER,
        min_confidence=ctx.settings.return_cue_min_confidence,
    )
    if outcome.selected and outcome.choice_id == "return":
        return _restore(ctx, reason="return_cue_llm")
    if outcome.selected and outcome.choice_id == "not_return":
        return DECLINE
    return fire(
        AskClarify(prompt=RETURN_CONFIRM_PROMPT),
        [ReplacePendingConfirm(PendingConfirm(kind=ConfirmKind.RETURN, prompt=RETURN_CONFIRM_PROMPT))],
    )
