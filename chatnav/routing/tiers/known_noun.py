"""Tier 4: fixed-vocabulary panel nouns ("recent", "quick links b")."""

from __future__ import annotations

import logging

from chatnav.routing.decisions import Action, ActionKind, AskClarify, Execute
from chatnav.routing.focus_latch import latch_for_opened_panel
from chatnav.routing.matchers.commands import is_polite_command
from chatnav.routing.matchers.known_nouns import (
    KnownNoun,
    find_near_known_noun,
    is_known_noun_question,
    looks_like_unknown_noun,
    match_known_noun,
    resolve_visible_panel,
)
from chatnav.routing.matchers.ordinals import is_selection_like
from chatnav.routing.snapshot import pause_active, show_options
from chatnav.routing.state import ReplaceLatch, StateMutation
from chatnav.routing.tiers.context import DECLINE, TierOutcome, TurnContext, fire
from chatnav.routing.types import ClarificationOption, OptionKind, PauseReason

logger = logging.getLogger(__name__)

TIER = 4
LABEL = "known_noun"

UNAVAILABLE_MESSAGE = "The {title} panel isn't available on the current dashboard."
NEAR_MATCH_PROMPT = 'Did you mean "{title}"?'
UNKNOWN_REFERENCE_MESSAGE = (
    'I\'m not sure what "{text}" refers to. Could you try again or ask a question about it?'
)


def handle(ctx: TurnContext) -> TierOutcome:
    if ctx.informational:
        return DECLINE
    if is_known_noun_question(ctx.text) and not is_polite_command(ctx.text):
        # "what is recent?" and "recent?" are questions about the noun.
        ctx.informational = True
        return DECLINE

    exact = match_known_noun(ctx.text)
    if exact.matched:
        return _open_known(ctx, exact.value)

    if ctx.state.active is not None:
        return DECLINE

    near = find_near_known_noun(ctx.text)
    if near.matched:
        noun: KnownNoun = near.value
        prompt = NEAR_MATCH_PROMPT.format(title=noun.title)
        option = ClarificationOption(
            id=f"panel:{noun.panel_type}",
            label=noun.title,
            kind=OptionKind.EXECUTABLE,
            data={"action": ActionKind.OPEN_PANEL.value, "panel_type": noun.panel_type},
        )
        shown, mutations = show_options(ctx.state, [option], original_intent="known_noun_confirm", prompt=prompt)
        logger.info("known noun near match input=%r suggestion=%s", ctx.text, noun.panel_type)
        return fire(AskClarify(prompt=prompt, options=shown.options), mutations)

    if (
        not ctx.widget_lists
        and not is_selection_like(ctx.text, show_badges=ctx.show_badges)
        and looks_like_unknown_noun(ctx.text)
    ):
        return fire(AskClarify(prompt=UNKNOWN_REFERENCE_MESSAGE.format(text=ctx.normalized)))
    return DECLINE


def _open_known(ctx: TurnContext, noun: KnownNoun) -> TierOutcome:
    widget = resolve_visible_panel(noun, ctx.widgets)
    if widget is None:
        logger.info("known noun not on dashboard panel_type=%s", noun.panel_type)
        return fire(
            Execute(
                Action(kind=ActionKind.ACKNOWLEDGE, label=noun.title, data={"panel_type": noun.panel_type}),
                message=UNAVAILABLE_MESSAGE.format(title=noun.title),
            )
        )
    mutations: list[StateMutation] = []
    if ctx.state.active is not None:
        mutations.extend(pause_active(ctx.state, PauseReason.INTERRUPT))
    if ctx.latch_enabled:
        latch = latch_for_opened_panel(widget, awaited_ref=widget.stable_ref or widget.surface_id, label=widget.title)
        mutations.append(ReplaceLatch(latch, reason="known_noun_opened"))
    return fire(
        Execute(
            Action(
                kind=ActionKind.OPEN_PANEL,
                target_id=widget.surface_id,
                label=widget.title,
                surface_id=widget.surface_id,
                data={"panel_type": noun.panel_type},
            ),
            message=f"Opening {widget.title}.",
        ),
        mutations,
    )
