from __future__ import annotations

from chatnav.routing.focus_latch import (
    NO_LATCH,
    blocks_stale_chat,
    latch_for_opened_panel,
    latch_pending,
    latch_resolved,
    latched_widget,
    on_register,
    on_unregister,
    reconcile_with_widgets,
    resume,
    suspend,
)
from chatnav.routing.types import LatchKind, OpenWidget, WidgetItem

_LOADED = OpenWidget(
    surface_id="w-recent",
    title="Recent",
    items=(WidgetItem(id="i1", label="Budget"),),
    stable_ref="panel:recent",
)
_EMPTY = OpenWidget(surface_id="w-links", title="Links", stable_ref="panel:links")


def test_opening_a_loaded_panel_resolves_immediately() -> None:
    latch = latch_for_opened_panel(_LOADED, awaited_ref="panel:recent", label="Recent")
    assert latch.kind is LatchKind.RESOLVED
    assert latch.surface_id == "w-recent"


def test_opening_an_unregistered_panel_is_pending() -> None:
    latch = latch_for_opened_panel(_EMPTY, awaited_ref="panel:links", label="Links")
    assert latch.kind is LatchKind.PENDING
    assert latch.awaited_ref == "panel:links"
    assert latch_for_opened_panel(None, awaited_ref="panel:x", label="X").kind is LatchKind.PENDING


def test_registration_upgrades_a_matching_pending_latch() -> None:
    pending = latch_pending("panel:recent", label="Recent")
    resolved = on_register(pending, "w-recent", "panel:recent")
    assert resolved.kind is LatchKind.RESOLVED
    assert resolved.surface_id == "w-recent"
    assert resolved.label == "Recent"
    assert on_register(pending, "w-other", "panel:other") is pending
    assert on_register(latch_resolved("w1"), "w2", "panel:x") == latch_resolved("w1")


def test_suspended_state_survives_registration() -> None:
    pending = suspend(latch_pending("panel:recent"))
    assert on_register(pending, "w-recent", "panel:recent").suspended


def test_unregister_clears_only_the_latched_surface() -> None:
    latch = latch_resolved("w-recent")
    assert on_unregister(latch, "w-other") == latch
    assert on_unregister(latch, "w-recent") == NO_LATCH


def test_reconcile_with_visible_widgets() -> None:
    pending = latch_pending("panel:recent")
    assert reconcile_with_widgets(pending, [_EMPTY, _LOADED]).kind is LatchKind.RESOLVED
    assert reconcile_with_widgets(pending, [_EMPTY]) is pending
    gone = latch_resolved("w-closed")
    assert reconcile_with_widgets(gone, [_LOADED]) == NO_LATCH
    assert reconcile_with_widgets(gone, []) == NO_LATCH


def test_suspend_resume_and_blocking() -> None:
    latch = latch_resolved("w-recent")
    assert blocks_stale_chat(latch, enabled=True)
    assert not blocks_stale_chat(latch, enabled=False)
    assert not blocks_stale_chat(suspend(latch), enabled=True)
    assert resume(suspend(latch)) == latch
    assert suspend(NO_LATCH) == NO_LATCH
    assert not blocks_stale_chat(NO_LATCH, enabled=True)


def test_latched_widget_lookup() -> None:
    assert latched_widget(latch_resolved("w-recent"), [_EMPTY, _LOADED]) is _LOADED
    assert latched_widget(latch_pending("panel:recent"), [_LOADED]) is None
