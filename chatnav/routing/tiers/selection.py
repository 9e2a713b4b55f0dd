"""Tier 3: selection against the active option list.

Only a list whose set id matches what the UI has on screen is selectable.
Anything that is neither a pick nor a recognizable reply about the list walks
the off-menu ladder before the list is let go.
"""

from __future__ import annotations

import logging

from chatnav.routing.decisions import AskClarify, Select
from chatnav.routing.focus_latch import latch_for_opened_panel, latch_resolved
from chatnav.routing.matchers.cues import is_list_rejection
from chatnav.routing.matchers.known_nouns import match_known_noun
from chatnav.routing.matchers.labels import match_unique_label
from chatnav.routing.matchers.offmenu import (
    EXIT_OPTIONS,
    OffMenuConfidence,
    detect_new_topic,
    escalation_prompt,
    map_offmenu_input,
)
from chatnav.routing.matchers.ordinals import (
    MatchMode,
    is_selection_like,
    is_strict_selection,
    resolve_ordinal,
)
from chatnav.routing.matchers.phrases import (
    is_affirmation,
    is_hesitation,
    is_meta_phrase,
    is_noise,
    matches_reshow_phrase,
)
from chatnav.routing.snapshot import pause_active
from chatnav.routing.state import ReplaceLatch, SetCounter, StateMutation
from chatnav.routing.tiers.context import DECLINE, TierOutcome, TurnContext, fire, pass_through, selection_mutations
from chatnav.routing.types import ActiveOptionSet, ClarificationOption, PauseReason

logger = logging.getLogger(__name__)

TIER = 3
LABEL = "selection"

WHICH_ONE_PROMPT = "Yes to which option?"
AMBIGUOUS_LABEL_PROMPT = "Which one did you mean?"
RESHOW_PROMPT = "Here are your options:"
HESITATION_PROMPT = "Take your time. Which one would you like?"
NOISE_PROMPT = "Sorry, I didn't catch that. Which one would you like?"
REFINE_PROMPT = "Okay, none of those. Tell me a bit more about what you're looking for."
NO_CONTEXT_ORDINAL_PROMPT = (
    "Which options are you referring to? If you meant a previous list, "
    "say 'back to the options', or tell me what you want instead."
)


def handle(ctx: TurnContext) -> TierOutcome:
    if ctx.informational:
        return DECLINE
    selection_like = is_selection_like(ctx.text, show_badges=ctx.show_badges)
    if ctx.latch_blocks and selection_like:
        logger.info("selection deferred to latched surface input=%r", ctx.text)
        return DECLINE

    active = ctx.selectable_active
    if active is None:
        return _without_active_list(ctx)

    if is_hesitation(ctx.text):
        return fire(AskClarify(prompt=HESITATION_PROMPT, options=active.options))

    picked = _resolve_pick(ctx, active)
    if picked is not None:
        return picked
    if selection_like:
        return DECLINE

    if is_affirmation(ctx.text):
        if len(active.options) == 1:
            return _select(ctx, active, active.options[0], source="affirmation")
        return fire(AskClarify(prompt=WHICH_ONE_PROMPT, options=active.options))

    if matches_reshow_phrase(ctx.text) or is_meta_phrase(ctx.text):
        return fire(AskClarify(prompt=RESHOW_PROMPT, options=active.options))

    if is_list_rejection(ctx.text):
        logger.info("active list rejected set_id=%s", active.set_id)
        return fire(AskClarify(prompt=REFINE_PROMPT), pause_active(ctx.state, PauseReason.INTERRUPT))

    if is_noise(ctx.text):
        return fire(AskClarify(prompt=NOISE_PROMPT, options=active.options))

    if ctx.command_bypass or _names_something_else(ctx):
        return DECLINE
    return _offmenu(ctx, active)


def _without_active_list(ctx: TurnContext) -> TierOutcome:
    no_context = ctx.state.snapshot is None and not ctx.widget_lists and not ctx.latch_blocks
    if not no_context:
        return DECLINE
    if is_affirmation(ctx.text):
        return fire(AskClarify(prompt=WHICH_ONE_PROMPT))
    if is_strict_selection(ctx.text, show_badges=ctx.show_badges):
        return fire(AskClarify(prompt=NO_CONTEXT_ORDINAL_PROMPT))
    return DECLINE


def _resolve_pick(ctx: TurnContext, active: ActiveOptionSet) -> TierOutcome | None:
    options = active.options
    ordinal = resolve_ordinal(
        ctx.text,
        len(options),
        mode=MatchMode.PERMISSIVE,
        show_badges=ctx.show_badges,
    )
    if ordinal.matched:
        return _select(ctx, active, options[ordinal.value], source=f"ordinal_{ordinal.reason}")
    label = match_unique_label(ctx.text, [option.label for option in options])
    if label.matched:
        return _select(ctx, active, options[label.value], source="label")
    if label.reason == "ambiguous":
        matches = tuple(options[index] for index in label.value)
        return fire(AskClarify(prompt=AMBIGUOUS_LABEL_PROMPT, options=matches))
    return None


def _names_something_else(ctx: TurnContext) -> bool:
    if match_known_noun(ctx.text).matched:
        return True
    value = ctx.normalized
    return any(item.label.lower() == value for widget in ctx.widget_lists for item in widget.items)


def _offmenu(ctx: TurnContext, active: ActiveOptionSet) -> TierOutcome:
    mapped = map_offmenu_input(ctx.text, active.options)
    if mapped.confidence in (OffMenuConfidence.HIGH, OffMenuConfidence.MEDIUM):
        option = active.options[mapped.indexes[0]]
        return _select(ctx, active, option, source=f"offmenu_{mapped.confidence.value}")
    if mapped.confidence is OffMenuConfidence.AMBIGUOUS:
        matches = tuple(active.options[index] for index in mapped.indexes)
        return fire(AskClarify(prompt=AMBIGUOUS_LABEL_PROMPT, options=matches))
    if detect_new_topic(ctx.text, active.options):
        logger.info("new topic while choosing set_id=%s", active.set_id)
        return pass_through(pause_active(ctx.state, PauseReason.INTERRUPT))

    attempt = ctx.state.offmenu_attempts + 1
    max_attempts = ctx.settings.offmenu_max_attempts
    if attempt > max_attempts:
        logger.info("offmenu ladder exhausted set_id=%s attempts=%s", active.set_id, attempt - 1)
        return pass_through(pause_active(ctx.state, PauseReason.INTERRUPT))
    options: tuple[ClarificationOption, ...] = active.options
    if attempt >= max_attempts:
        options = options + EXIT_OPTIONS
    return fire(
        AskClarify(prompt=escalation_prompt(attempt, active.options), options=options),
        [SetCounter("offmenu_attempts", attempt)],
    )


def _select(ctx: TurnContext, active: ActiveOptionSet, option: ClarificationOption, *, source: str) -> TierOutcome:
    mutations: list[StateMutation] = selection_mutations(option, active.options, clear_active=True)
    mutations.extend(_latch_for_option(ctx, option))
    logger.info("option selected set_id=%s option_id=%s source=%s", active.set_id, option.id, source)
    return fire(Select(option=option, source=source), mutations)


def _latch_for_option(ctx: TurnContext, option: ClarificationOption) -> list[StateMutation]:
    """Options that open or point into a panel move focus to that panel."""
    if not ctx.latch_enabled:
        return []
    action = option.data.get("action")
    surface_id = option.data.get("surface_id")
    if action == "open_panel":
        widget = ctx.turn.ui.widget_by_id(surface_id)
        awaited = option.data.get("stable_ref") or surface_id or option.data.get("panel_type") or option.id
        return [ReplaceLatch(latch_for_opened_panel(widget, awaited_ref=awaited, label=option.label), reason="option_opened_panel")]
    if action == "select_widget_item" and surface_id:
        return [ReplaceLatch(latch_resolved(surface_id), reason="widget_item_selected")]
    return []
