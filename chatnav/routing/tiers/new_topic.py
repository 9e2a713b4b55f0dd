"""Tier 2: new-topic commands, scope switches and panel disambiguation.

Anything that moves the conversation elsewhere pauses the active list with
``interrupt``; the list is never discarded here.
"""

from __future__ import annotations

import logging
from typing import Sequence

from chatnav.routing.decisions import (
    Action,
    ActionKind,
    AskClarify,
    DeferToRetrieval,
    Execute,
    Select,
)
from chatnav.routing.focus_latch import latch_for_opened_panel, latch_resolved, resume, suspend
from chatnav.routing.grounding import names_widget
from chatnav.routing.matchers.commands import (
    is_explicit_command,
    is_polite_command,
    match_visible_panel_command,
)
from chatnav.routing.matchers.cues import ScopeCue, ScopeCueMatch, match_return_cue, resolve_scope_cue
from chatnav.routing.matchers.labels import match_unique_label
from chatnav.routing.matchers.ordinals import (
    MatchMode,
    is_action_pronoun_reference,
    is_selection_like,
    resolve_ordinal,
)
from chatnav.routing.matchers.phrases import (
    has_question_intent,
    is_affirmation,
    is_correction_phrase,
    is_followup_phrase,
    is_meta_explain,
    is_meta_phrase,
    matches_reshow_phrase,
)
from chatnav.routing.snapshot import pause_active, restore_message, restore_snapshot, show_options
from chatnav.routing.state import ReplaceLatch, StateMutation
from chatnav.routing.tiers.context import (
    DECLINE,
    TierOutcome,
    TurnContext,
    fire,
    selection_mutations,
    widget_item_options,
)
from chatnav.routing.types import ClarificationOption, LatchKind, OpenWidget, OptionKind, PauseReason, WidgetItem

logger = logging.getLogger(__name__)

TIER = 2
LABEL = "new_topic"

PANEL_DISAMBIGUATION_PROMPT = 'Multiple panels match "{input}". Which one would you like to open?'
NO_CHAT_OPTIONS_MESSAGE = "There are no earlier options in this chat. What would you like to do?"
CHAT_SCOPE_PROMPT = "Which of the earlier options do you mean?"
WIDGET_SCOPE_PROMPT = "Which item in {title} do you mean?"
NO_WIDGET_MESSAGE = "I don't see an open list to pick from. Which panel do you mean?"
_PREVIEW_PHRASES = {"show all", "show all items", "see all", "view all", "show more", "show the full list", "show everything"}


def handle(ctx: TurnContext) -> TierOutcome:
    cue = resolve_scope_cue(ctx.text)
    if cue is not None and cue.scope is ScopeCue.CHAT and not match_return_cue(ctx.text).matched:
        return _chat_scope(ctx, cue)
    if cue is not None and cue.scope is ScopeCue.WIDGET:
        return _widget_scope(ctx, cue)

    if _is_command_bypass(ctx):
        ctx.command_bypass = True
        if ctx.state.active is not None:
            logger.info("explicit command bypass pausing set_id=%s", ctx.state.active.set_id)
            ctx.absorb(pause_active(ctx.state, PauseReason.INTERRUPT))

    if not has_question_intent(ctx.text) or ctx.command_bypass:
        panel = _panel_disambiguation(ctx)
        if panel is not None:
            return panel

    if _is_informational(ctx):
        ctx.informational = True
        if ctx.state.active is not None:
            ctx.absorb(pause_active(ctx.state, PauseReason.INTERRUPT))
        return DECLINE

    last_query = ctx.state.last_retrieval_query
    if last_query and ctx.state.active is None:
        if is_correction_phrase(ctx.text):
            return fire(DeferToRetrieval(query=last_query, reason="correction"))
        if is_followup_phrase(ctx.text):
            return fire(DeferToRetrieval(query=last_query, reason="follow_up"))

    if ctx.normalized in _PREVIEW_PHRASES:
        return _preview_shortcut(ctx)
    return DECLINE


def _is_command_bypass(ctx: TurnContext) -> bool:
    if not is_explicit_command(ctx.text):
        return False
    if matches_reshow_phrase(ctx.text) or is_meta_phrase(ctx.text) or is_action_pronoun_reference(ctx.text):
        return False
    if match_return_cue(ctx.text).matched or ctx.normalized in _PREVIEW_PHRASES:
        return False
    active = ctx.selectable_active
    if active is not None and match_unique_label(ctx.text, [o.label for o in active.options]).matched:
        return False
    return True


def _is_informational(ctx: TurnContext) -> bool:
    if is_affirmation(ctx.text) or is_polite_command(ctx.text):
        return False
    if is_selection_like(ctx.text, show_badges=ctx.show_badges) or is_action_pronoun_reference(ctx.text):
        return False
    if ctx.state.active is not None and (is_meta_phrase(ctx.text) or matches_reshow_phrase(ctx.text)):
        return False
    if ctx.command_bypass and not is_meta_explain(ctx.text):
        return False
    return is_meta_explain(ctx.text) or has_question_intent(ctx.text)


def _chat_scope(ctx: TurnContext, cue: ScopeCueMatch) -> TierOutcome:
    state = ctx.state
    mutations: list[StateMutation] = []
    if state.latch != suspend(state.latch):
        mutations.append(ReplaceLatch(suspend(state.latch), reason="chat_scope_cue"))
    active = ctx.selectable_active
    snapshot = state.snapshot if active is None and state.snapshot and state.snapshot.options else None
    if active is None and snapshot is None:
        return fire(AskClarify(prompt=NO_CHAT_OPTIONS_MESSAGE), mutations)
    options = active.options if active is not None else snapshot.options
    if cue.remainder:
        index = _pick(cue.remainder, options)
        if index is not None:
            option = options[index]
            logger.info("chat scope cue selected option_id=%s", option.id)
            if active is not None:
                return fire(
                    Select(option=option, source="active_options"),
                    mutations + selection_mutations(option, options, clear_active=True),
                )
            # The paused list stays paused after a pick, as with a return-cue compound.
            return fire(
                Select(option=option, source="paused_snapshot"),
                mutations + selection_mutations(option, options, clear_active=False),
            )
    if active is not None:
        return fire(AskClarify(prompt=CHAT_SCOPE_PROMPT, options=options), mutations)
    prompt = restore_message(snapshot)
    restored, restore_mutations = restore_snapshot(state)
    return fire(AskClarify(prompt=prompt, options=restored.options if restored else options), mutations + restore_mutations)


def _widget_scope(ctx: TurnContext, cue: ScopeCueMatch) -> TierOutcome:
    widget = ctx.latched_widget or names_widget(cue.cue, ctx.widget_lists)
    if widget is None and len(ctx.widget_lists) == 1:
        widget = ctx.widget_lists[0]
    if widget is None:
        if ctx.widget_lists:
            options = tuple(_panel_option(w) for w in ctx.widget_lists)
            return fire(AskClarify(prompt=NO_WIDGET_MESSAGE, options=options))
        return fire(AskClarify(prompt=NO_WIDGET_MESSAGE))
    mutations: list[StateMutation] = []
    if ctx.latch_enabled:
        latch = ctx.state.latch
        if latch.kind is LatchKind.RESOLVED and latch.surface_id == widget.surface_id:
            target = resume(latch)
        else:
            target = latch_resolved(widget.surface_id, label=widget.title)
        if target != latch:
            mutations.append(ReplaceLatch(target, reason="widget_scope_cue"))
    if cue.remainder:
        index = _pick(cue.remainder, widget.items)
        if index is not None:
            item = widget.items[index]
            return fire(
                Execute(
                    Action(
                        kind=ActionKind.SELECT_WIDGET_ITEM,
                        target_id=item.id,
                        label=item.label,
                        surface_id=widget.surface_id,
                    ),
                    message=f"Opening {item.label}.",
                ),
                mutations,
            )
    return fire(
        AskClarify(prompt=WIDGET_SCOPE_PROMPT.format(title=widget.title), options=widget_item_options(widget)),
        mutations,
    )


def _panel_disambiguation(ctx: TurnContext) -> TierOutcome | None:
    if is_selection_like(ctx.text, show_badges=ctx.show_badges) or not ctx.widgets:
        return None
    active = ctx.selectable_active
    if active is not None and not ctx.command_bypass:
        if match_unique_label(ctx.text, [o.label for o in active.options]).matched:
            return None
    match = match_visible_panel_command(ctx.text, ctx.widgets)
    if match.type == "exact":
        return _open_panel(ctx, match.matches[0])
    if match.type == "partial" and len(match.matches) > 1:
        options = [_panel_option(widget) for widget in match.matches]
        prompt = PANEL_DISAMBIGUATION_PROMPT.format(input=ctx.text)
        shown, mutations = show_options(ctx.state, options, original_intent="panel_disambiguation", prompt=prompt)
        logger.info("panel disambiguation matches=%s", len(options))
        return fire(AskClarify(prompt=prompt, options=shown.options), mutations)
    return None


def _open_panel(ctx: TurnContext, widget: OpenWidget) -> TierOutcome:
    mutations: list[StateMutation] = []
    if ctx.state.active is not None:
        mutations.extend(pause_active(ctx.state, PauseReason.INTERRUPT))
    if ctx.latch_enabled:
        latch = latch_for_opened_panel(widget, awaited_ref=widget.stable_ref or widget.surface_id, label=widget.title)
        mutations.append(ReplaceLatch(latch, reason="panel_opened"))
    return fire(
        Execute(
            Action(
                kind=ActionKind.OPEN_PANEL,
                target_id=widget.surface_id,
                label=widget.title,
                surface_id=widget.surface_id,
            ),
            message=f"Opening {widget.title}.",
        ),
        mutations,
    )


def _preview_shortcut(ctx: TurnContext) -> TierOutcome:
    widget = ctx.latched_widget
    if widget is None and len(ctx.widget_lists) == 1:
        widget = ctx.widget_lists[0]
    if widget is None:
        return DECLINE
    return fire(
        Execute(
            Action(kind=ActionKind.SHOW_FULL_LIST, target_id=widget.surface_id, label=widget.title, surface_id=widget.surface_id),
            message=f"Here is the full {widget.title} list.",
        )
    )


def _pick(text: str, items: Sequence[ClarificationOption | WidgetItem]) -> int | None:
    ordinal = resolve_ordinal(text, len(items), mode=MatchMode.PERMISSIVE)
    if ordinal.matched:
        return ordinal.value
    label = match_unique_label(text, [item.label for item in items])
    if label.matched:
        return label.value
    return None


def _panel_option(widget: OpenWidget) -> ClarificationOption:
    return ClarificationOption(
        id=widget.surface_id,
        label=widget.title,
        kind=OptionKind.EXECUTABLE,
        data={
            "action": ActionKind.OPEN_PANEL.value,
            "surface_id": widget.surface_id,
            "stable_ref": widget.stable_ref,
        },
    )
