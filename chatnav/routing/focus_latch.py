"""Focus latch: which registered widget surface the user is working in.

none -> pending(awaited_ref) -> resolved(surface_id), with suspended and
cleared side transitions. ``pending`` exists because the chat layer can open a
panel before the panel's widget has registered its items.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from chatnav.routing.types import FocusLatchState, LatchKind, OpenWidget

NO_LATCH = FocusLatchState()


def latch_pending(awaited_ref: str, label: str | None = None) -> FocusLatchState:
    return FocusLatchState(kind=LatchKind.PENDING, awaited_ref=awaited_ref, label=label)


def latch_resolved(surface_id: str, label: str | None = None) -> FocusLatchState:
    return FocusLatchState(kind=LatchKind.RESOLVED, surface_id=surface_id, label=label)


def latch_for_opened_panel(widget: OpenWidget | None, *, awaited_ref: str, label: str) -> FocusLatchState:
    if widget is not None and widget.has_items:
        return latch_resolved(widget.surface_id, label=widget.title)
    return latch_pending(awaited_ref, label=label)


def suspend(latch: FocusLatchState) -> FocusLatchState:
    if latch.kind is LatchKind.NONE or latch.suspended:
        return latch
    return replace(latch, suspended=True)


def resume(latch: FocusLatchState) -> FocusLatchState:
    if not latch.suspended:
        return latch
    return replace(latch, suspended=False)


def on_register(latch: FocusLatchState, surface_id: str, stable_ref: str | None) -> FocusLatchState:
    """Upgrade a pending latch when its awaited surface registers."""
    if latch.kind is not LatchKind.PENDING:
        return latch
    if latch.awaited_ref not in {stable_ref, surface_id}:
        return latch
    return FocusLatchState(
        kind=LatchKind.RESOLVED,
        surface_id=surface_id,
        label=latch.label,
        suspended=latch.suspended,
    )


def on_unregister(latch: FocusLatchState, surface_id: str) -> FocusLatchState:
    if latch.kind is LatchKind.RESOLVED and latch.surface_id == surface_id:
        return NO_LATCH
    return latch


def reconcile_with_widgets(latch: FocusLatchState, widgets: Sequence[OpenWidget]) -> FocusLatchState:
    """Apply registrations visible in this turn's UI context."""
    if latch.kind is LatchKind.PENDING:
        for widget in widgets:
            upgraded = on_register(latch, widget.surface_id, widget.stable_ref)
            if upgraded is not latch:
                return upgraded
        return latch
    if latch.kind is LatchKind.RESOLVED:
        if not any(widget.surface_id == latch.surface_id for widget in widgets):
            return NO_LATCH
    return latch


def blocks_stale_chat(latch: FocusLatchState, *, enabled: bool) -> bool:
    return enabled and latch.kind is not LatchKind.NONE and not latch.suspended


def latched_widget(latch: FocusLatchState, widgets: Sequence[OpenWidget]) -> OpenWidget | None:
    if latch.kind is not LatchKind.RESOLVED:
        return None
    for widget in widgets:
        if widget.surface_id == latch.surface_id:
            return widget
    return None
