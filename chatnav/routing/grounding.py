"""Grounding sets: the ranked, capped search space for resolving a turn.

Sets are rebuilt every turn in a fixed precedence: active option list, open
widget lists (the latched one first), the paused snapshot, recent referents,
then the static capability list. List-type sets are capped at
``LIST_CANDIDATE_CAP`` and referent/capability sets at ``NON_LIST_CANDIDATE_CAP``
before any matcher or the LLM sees them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from chatnav.routing.errors import AmbiguousGrounding, DeterministicMiss, NoGroundingEvidence
from chatnav.routing.matchers.labels import is_exact_label
from chatnav.routing.matchers.ordinals import MatchMode, resolve_ordinal
from chatnav.routing.matchers.normalize import normalize_text
from chatnav.routing.types import (
    ActiveOptionSet,
    CandidateType,
    ClarificationSnapshot,
    GroundingCandidate,
    GroundingSet,
    GroundingSourceKind,
    OpenWidget,
    PauseReason,
    Referent,
)

LIST_CANDIDATE_CAP = 12
NON_LIST_CANDIDATE_CAP = 5

CAPABILITIES = (
    GroundingCandidate(
        id="cap_open",
        label="Open",
        type=CandidateType.CAPABILITY,
        source=GroundingSourceKind.CAPABILITY,
        action_hint="open a panel or resource",
    ),
    GroundingCandidate(
        id="cap_search",
        label="Search",
        type=CandidateType.CAPABILITY,
        source=GroundingSourceKind.CAPABILITY,
        action_hint="search notes and documents",
    ),
    GroundingCandidate(
        id="cap_create",
        label="Create",
        type=CandidateType.CAPABILITY,
        source=GroundingSourceKind.CAPABILITY,
        action_hint="create a new item",
    ),
    GroundingCandidate(
        id="cap_explain",
        label="Explain",
        type=CandidateType.CAPABILITY,
        source=GroundingSourceKind.CAPABILITY,
        action_hint="explain a feature",
    ),
)


@dataclass(frozen=True)
class GroundingContext:
    active: ActiveOptionSet | None = None
    widgets: tuple[OpenWidget, ...] = ()
    latched_surface_id: str | None = None
    snapshot: ClarificationSnapshot | None = None
    referents: tuple[Referent, ...] = ()
    paused_first: bool = False
    include_capabilities: bool = True


def build_grounding_sets(context: GroundingContext) -> list[GroundingSet]:
    sets: list[GroundingSet] = []
    if context.active is not None and context.active.options:
        sets.append(_active_set(context.active))
    paused = _paused_set(context.snapshot)
    if paused is not None and context.paused_first:
        sets.append(paused)
    for widget in _ordered_widgets(context.widgets, context.latched_surface_id):
        sets.append(_widget_set(widget))
    if paused is not None and not context.paused_first:
        sets.append(paused)
    if context.referents:
        sets.append(
            GroundingSet(
                source_kind=GroundingSourceKind.RECENT_REFERENTS,
                candidates=tuple(
                    GroundingCandidate(
                        id=referent.id,
                        label=referent.label,
                        type=CandidateType.REFERENT,
                        source=GroundingSourceKind.RECENT_REFERENTS,
                        action_hint=referent.action_hint,
                    )
                    for referent in context.referents
                )[:NON_LIST_CANDIDATE_CAP],
                is_list=False,
            )
        )
    if context.include_capabilities:
        sets.append(
            GroundingSet(
                source_kind=GroundingSourceKind.CAPABILITY,
                candidates=CAPABILITIES[:NON_LIST_CANDIDATE_CAP],
                is_list=False,
            )
        )
    return sets


def list_sets(sets: Sequence[GroundingSet]) -> list[GroundingSet]:
    return [grounding_set for grounding_set in sets if grounding_set.is_list and grounding_set.candidates]


def widget_sets(sets: Sequence[GroundingSet]) -> list[GroundingSet]:
    return [s for s in sets if s.source_kind is GroundingSourceKind.WIDGET_LIST and s.candidates]


def first_set(sets: Sequence[GroundingSet], kind: GroundingSourceKind) -> GroundingSet | None:
    for grounding_set in sets:
        if grounding_set.source_kind is kind and grounding_set.candidates:
            return grounding_set
    return None


def require_grounding(sets: Sequence[GroundingSet]) -> list[GroundingSet]:
    """Sets that can ground a selection; capability-only means no evidence."""
    usable = [s for s in sets if s.candidates and s.source_kind is not GroundingSourceKind.CAPABILITY]
    if not usable:
        raise NoGroundingEvidence("no candidate set to ground against")
    return usable


def resolve_strict(text: str, grounding_set: GroundingSet, *, show_badges: bool = False) -> GroundingCandidate:
    """Strict raw resolver: exact label, bare ordinal, or badge letter.

    The exact-label comparison runs against the raw input, never against a
    transformed copy of it.
    """
    candidates = grounding_set.candidates
    if not candidates:
        raise DeterministicMiss("empty set")
    for candidate in candidates:
        if is_exact_label(text, candidate.label):
            return candidate
    ordinal = resolve_ordinal(
        text,
        len(candidates),
        mode=MatchMode.STRICT,
        show_badges=show_badges,
    )
    if ordinal.matched:
        return candidates[ordinal.value]
    raise DeterministicMiss(f"no strict match in {grounding_set.source_kind.value}")


def resolve_unique_across(text: str, sets: Sequence[GroundingSet]) -> GroundingCandidate:
    """Exact label match that is unique across every given set."""
    found = [
        candidate
        for grounding_set in sets
        for candidate in grounding_set.candidates
        if is_exact_label(text, candidate.label)
    ]
    if len(found) == 1:
        return found[0]
    if found:
        raise AmbiguousGrounding(found)
    raise DeterministicMiss("label matches=0")


def names_widget(text: str, widgets: Sequence[OpenWidget]) -> OpenWidget | None:
    value = normalize_text(text)
    for widget in widgets:
        title = normalize_text(widget.title)
        if title and title in value:
            return widget
    return None


def candidate_by_id(candidates: Sequence[GroundingCandidate], choice_id: str | None) -> GroundingCandidate | None:
    for candidate in candidates:
        if candidate.id == choice_id:
            return candidate
    return None


def _active_set(active: ActiveOptionSet) -> GroundingSet:
    return GroundingSet(
        source_kind=GroundingSourceKind.ACTIVE_OPTIONS,
        candidates=tuple(
            GroundingCandidate(
                id=option.id,
                label=option.label,
                type=CandidateType.OPTION,
                source=GroundingSourceKind.ACTIVE_OPTIONS,
            )
            for option in active.options
        )[:LIST_CANDIDATE_CAP],
        is_list=True,
        label=active.original_intent,
    )


def _widget_set(widget: OpenWidget) -> GroundingSet:
    return GroundingSet(
        source_kind=GroundingSourceKind.WIDGET_LIST,
        candidates=tuple(
            GroundingCandidate(
                id=item.id,
                label=item.label,
                type=CandidateType.WIDGET_OPTION,
                source=GroundingSourceKind.WIDGET_LIST,
                surface_id=widget.surface_id,
            )
            for item in widget.items
        )[:LIST_CANDIDATE_CAP],
        is_list=True,
        surface_id=widget.surface_id,
        label=widget.title,
    )


def _paused_set(snapshot: ClarificationSnapshot | None) -> GroundingSet | None:
    # Stop-paused lists only come back through an explicit return phrase.
    if snapshot is None or snapshot.paused_reason is PauseReason.STOP or not snapshot.options:
        return None
    return GroundingSet(
        source_kind=GroundingSourceKind.PAUSED_SNAPSHOT,
        candidates=tuple(
            GroundingCandidate(
                id=option.id,
                label=option.label,
                type=CandidateType.OPTION,
                source=GroundingSourceKind.PAUSED_SNAPSHOT,
            )
            for option in snapshot.options
        )[:LIST_CANDIDATE_CAP],
        is_list=True,
        label=snapshot.original_intent,
    )


def _ordered_widgets(widgets: Sequence[OpenWidget], latched_surface_id: str | None) -> list[OpenWidget]:
    with_items = [widget for widget in widgets if widget.has_items]
    latched = [widget for widget in with_items if widget.surface_id == latched_surface_id]
    others = [widget for widget in with_items if widget.surface_id != latched_surface_id]
    return latched + others
