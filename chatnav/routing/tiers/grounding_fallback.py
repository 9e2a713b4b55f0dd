"""Tier 5: resolve selection-like or referential input against grounding sets.

Resolution is scoped before anything is matched: an engaged focus latch
narrows the search to the latched surface, and several open widget lists with
no way to tell them apart stop the turn with a question. Inside that scope a
strict resolver runs on the raw input first; the LLM is only consulted after
it misses, and only ever sees the capped candidates of one set.
"""

from __future__ import annotations

import logging
from typing import Sequence

from chatnav.cognition.llm_contract import MAX_LLM_CANDIDATES, LLMOutcome, TaskKind
from chatnav.routing.decisions import Action, ActionKind, Ambiguous, AskClarify, Execute, Select
from chatnav.routing.errors import AmbiguousGrounding, ContractViolationError, DeterministicMiss, NoGroundingEvidence
from chatnav.routing.focus_latch import latch_resolved
from chatnav.routing.grounding import (
    CAPABILITIES,
    candidate_by_id,
    first_set,
    list_sets,
    names_widget,
    require_grounding,
    resolve_strict,
    resolve_unique_across,
    widget_sets,
)
from chatnav.routing.matchers.ordinals import is_action_pronoun_reference, is_selection_like
from chatnav.routing.snapshot import show_options
from chatnav.routing.state import RecordReferent, ReplaceLatch, StateMutation
from chatnav.routing.tiers.context import DECLINE, TierOutcome, TurnContext, fire, selection_mutations
from chatnav.routing.types import (
    CandidateType,
    ClarificationOption,
    GroundingCandidate,
    GroundingSet,
    GroundingSourceKind,
    LatchKind,
    OptionKind,
    Referent,
)

logger = logging.getLogger(__name__)

TIER = 5
LABEL = "grounding_fallback"

NO_EVIDENCE_MESSAGE = "I'm not sure what you're referring to. Could you tell me what you'd like to do?"
MULTI_LIST_PROMPT = "I see multiple option lists open. Which one do you mean?"
GROUNDED_CLARIFY_PROMPT = "I'm not sure which one you mean. Is it one of these?"
SAME_LABEL_PROMPT = "That name appears in more than one list. Which one do you mean?"
PENDING_LATCH_MESSAGE = "{label} is still loading. Try again in a moment."

_ACTION_FOR_TYPE = {
    CandidateType.WIDGET_OPTION: ActionKind.SELECT_WIDGET_ITEM,
    CandidateType.REFERENT: ActionKind.OPEN_REFERENT,
    CandidateType.CAPABILITY: ActionKind.CAPABILITY,
}


def handle(ctx: TurnContext) -> TierOutcome:
    if ctx.informational:
        return DECLINE
    referential = is_action_pronoun_reference(ctx.text)
    if not (referential or is_selection_like(ctx.text, show_badges=ctx.show_badges)):
        return DECLINE

    try:
        sets = require_grounding(ctx.grounding_sets())
    except NoGroundingEvidence:
        logger.info("no grounding evidence input=%r", ctx.text)
        return fire(AskClarify(prompt=NO_EVIDENCE_MESSAGE))

    if ctx.latch_blocks:
        scoped = _latch_scope(ctx, sets)
        if isinstance(scoped, TierOutcome):
            return scoped
    else:
        scoped = _guard_multiple_lists(ctx, sets)
        if isinstance(scoped, TierOutcome):
            return scoped

    strict = _resolve_strict_chain(ctx, scoped)
    if strict is not None:
        return strict

    target = _llm_target_set(scoped, referential=referential)
    candidates = list(target.candidates)
    if referential and target.source_kind is not GroundingSourceKind.CAPABILITY:
        candidates.extend(CAPABILITIES)
    candidates = candidates[:MAX_LLM_CANDIDATES]
    outcome = ctx.classify(ctx.text, candidates, TaskKind.GROUNDING, tier=TIER)
    if outcome.selected:
        chosen = candidate_by_id(candidates, outcome.choice_id)
        if chosen is None:
            raise ContractViolationError(str(outcome.choice_id), [c.id for c in candidates])
        logger.info("grounding llm selected choice_id=%s type=%s", chosen.id, chosen.type.value)
        return _act(ctx, chosen)
    return _grounded_clarify(ctx, target, outcome)


def _latch_scope(ctx: TurnContext, sets: list[GroundingSet]) -> list[GroundingSet] | TierOutcome:
    latch = ctx.state.latch
    if latch.kind is LatchKind.PENDING:
        label = latch.label or "That panel"
        return fire(AskClarify(prompt=PENDING_LATCH_MESSAGE.format(label=label)))
    for grounding_set in widget_sets(sets):
        if grounding_set.surface_id == latch.surface_id:
            return [grounding_set]
    return _guard_multiple_lists(ctx, sets)


def _guard_multiple_lists(ctx: TurnContext, sets: list[GroundingSet]) -> list[GroundingSet] | TierOutcome:
    widget_lists = widget_sets(sets)
    named = names_widget(ctx.text, ctx.widget_lists)
    if named is not None:
        return [s for s in widget_lists if s.surface_id == named.surface_id]
    if ctx.selectable_active is None and len(widget_lists) >= 2:
        options = tuple(
            ClarificationOption(
                id=s.surface_id or s.label or "",
                label=s.label or "",
                kind=OptionKind.DESCRIPTIVE,
                data={"surface_id": s.surface_id},
            )
            for s in widget_lists
        )
        logger.info("multiple widget lists open count=%s", len(widget_lists))
        return fire(AskClarify(prompt=MULTI_LIST_PROMPT, options=options))
    return sets


def _resolve_strict_chain(ctx: TurnContext, sets: Sequence[GroundingSet]) -> TierOutcome | None:
    lists = list_sets(sets)
    if lists:
        try:
            return _act(ctx, resolve_strict(ctx.text, lists[0], show_badges=ctx.show_badges))
        except DeterministicMiss:
            pass
    try:
        return _act(ctx, resolve_unique_across(ctx.text, lists))
    except AmbiguousGrounding as exc:
        return fire(Ambiguous(prompt=SAME_LABEL_PROMPT, candidates=exc.candidates))
    except DeterministicMiss:
        return None


def _llm_target_set(sets: Sequence[GroundingSet], *, referential: bool) -> GroundingSet:
    if referential:
        referents = first_set(sets, GroundingSourceKind.RECENT_REFERENTS)
        if referents is not None:
            return referents
    lists = list_sets(sets)
    if lists:
        return lists[0]
    return sets[0]


def _act(ctx: TurnContext, candidate: GroundingCandidate) -> TierOutcome:
    if candidate.type is CandidateType.OPTION:
        return _select_option(ctx, candidate)
    mutations: list[StateMutation] = []
    if candidate.type is CandidateType.WIDGET_OPTION:
        if ctx.latch_enabled and candidate.surface_id and ctx.state.latch.surface_id != candidate.surface_id:
            widget = ctx.turn.ui.widget_by_id(candidate.surface_id)
            mutations.append(
                ReplaceLatch(
                    latch_resolved(candidate.surface_id, label=widget.title if widget else None),
                    reason="widget_item_grounded",
                )
            )
        mutations.append(RecordReferent(Referent(id=candidate.id, label=candidate.label)))
    elif candidate.type is CandidateType.REFERENT:
        mutations.append(
            RecordReferent(Referent(id=candidate.id, label=candidate.label, action_hint=candidate.action_hint or "open"))
        )
    action = Action(
        kind=_ACTION_FOR_TYPE[candidate.type],
        target_id=candidate.id,
        label=candidate.label,
        surface_id=candidate.surface_id,
        data={"source": candidate.source.value},
    )
    if candidate.type is CandidateType.CAPABILITY:
        message = f"Sure, I can {candidate.action_hint or candidate.label.lower()}."
    else:
        message = f"Opening {candidate.label}."
    return fire(Execute(action, message=message), mutations)


def _select_option(ctx: TurnContext, candidate: GroundingCandidate) -> TierOutcome:
    if candidate.source is GroundingSourceKind.ACTIVE_OPTIONS and ctx.selectable_active is not None:
        option = ctx.selectable_active.option_by_id(candidate.id)
        shown = ctx.selectable_active.options
        clear_active = True
    elif ctx.state.snapshot is not None:
        shown = ctx.state.snapshot.options
        option = next((o for o in shown if o.id == candidate.id), None)
        clear_active = False
    else:
        option, shown, clear_active = None, (), False
    if option is None:
        raise ContractViolationError(candidate.id, [o.id for o in shown])
    return fire(
        Select(option=option, source=candidate.source.value),
        selection_mutations(option, shown, clear_active=clear_active),
    )


def _grounded_clarify(ctx: TurnContext, target: GroundingSet, outcome: LLMOutcome) -> TierOutcome:
    logger.info(
        "grounded clarification source=%s llm_status=%s candidates=%s",
        target.source_kind.value,
        outcome.status.value,
        len(target.candidates),
    )
    if target.source_kind is GroundingSourceKind.ACTIVE_OPTIONS and ctx.selectable_active is not None:
        options = ctx.selectable_active.options[: len(target.candidates)]
        return fire(AskClarify(prompt=GROUNDED_CLARIFY_PROMPT, options=options))
    options = [_as_option(ctx, candidate) for candidate in target.candidates]
    shown, mutations = show_options(
        ctx.state,
        options,
        original_intent="grounding_clarify",
        prompt=GROUNDED_CLARIFY_PROMPT,
    )
    return fire(AskClarify(prompt=GROUNDED_CLARIFY_PROMPT, options=shown.options), mutations)


def _as_option(ctx: TurnContext, candidate: GroundingCandidate) -> ClarificationOption:
    if candidate.type is CandidateType.OPTION and ctx.state.snapshot is not None:
        for option in ctx.state.snapshot.options:
            if option.id == candidate.id:
                return option
    data: dict[str, object] = {"source": candidate.source.value}
    if candidate.type is not CandidateType.OPTION:
        data["action"] = _ACTION_FOR_TYPE[candidate.type].value
    if candidate.surface_id:
        data["surface_id"] = candidate.surface_id
    return ClarificationOption(id=candidate.id, label=candidate.label, data=data)
