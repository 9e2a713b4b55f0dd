"""Per-turn context shared by the tiers and the outcome type they return.

A tier either fires (returns a decision plus the mutations it wants applied),
passes through (returns mutations only, later tiers then see the mutated
view), or declines (returns ``DECLINE``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from chatnav.cognition.constrained_llm import CancellationToken, ConstrainedLLMClient, LabeledCandidate
from chatnav.cognition.llm_contract import LLMOutcome, LLMStatus, TaskKind
from chatnav.config.settings import RoutingSettings
from chatnav.routing import telemetry
from chatnav.routing.decisions import Decision
from chatnav.routing.focus_latch import blocks_stale_chat, latched_widget
from chatnav.routing.grounding import GroundingContext, build_grounding_sets
from chatnav.routing.matchers.normalize import normalize_ordinal_typos, normalize_text
from chatnav.routing.state import (
    RecordReferent,
    ReplaceActiveOptions,
    ReplaceRepairMemory,
    SessionState,
    SetCounter,
    StateMutation,
    apply_mutations,
)
from chatnav.routing.types import (
    ActiveOptionSet,
    ClarificationOption,
    GroundingSet,
    OpenWidget,
    Referent,
    RepairMemory,
    TurnInput,
)


@dataclass(frozen=True)
class TierOutcome:
    decision: Decision | None = None
    mutations: tuple[StateMutation, ...] = ()

    @property
    def fired(self) -> bool:
        return self.decision is not None


DECLINE = TierOutcome()


def fire(decision: Decision, mutations: Sequence[StateMutation] = ()) -> TierOutcome:
    return TierOutcome(decision=decision, mutations=tuple(mutations))


def pass_through(mutations: Sequence[StateMutation]) -> TierOutcome:
    return TierOutcome(decision=None, mutations=tuple(mutations))


@dataclass
class TurnContext:
    turn: TurnInput
    state: SessionState
    settings: RoutingSettings
    llm: ConstrainedLLMClient | None = None
    cancel_token: CancellationToken | None = None
    session_id: str | None = None
    informational: bool = False
    command_bypass: bool = False
    llm_calls: int = 0
    carried: list[StateMutation] = field(default_factory=list)
    text: str = field(init=False)
    normalized: str = field(init=False)
    ordinal_text: str = field(init=False)

    def __post_init__(self) -> None:
        self.text = str(self.turn.raw_text or "").strip()
        self.normalized = normalize_text(self.text)
        self.ordinal_text = normalize_ordinal_typos(self.text)

    @property
    def correlation_id(self) -> str | None:
        return self.turn.correlation_id

    @property
    def widgets(self) -> tuple[OpenWidget, ...]:
        return self.turn.ui.open_widgets

    @property
    def widget_lists(self) -> tuple[OpenWidget, ...]:
        return self.turn.ui.widget_lists

    @property
    def show_badges(self) -> bool:
        return self.turn.ui.show_badges

    @property
    def latch_enabled(self) -> bool:
        return self.settings.latch_enabled and self.turn.flags.latch_enabled

    @property
    def llm_enabled(self) -> bool:
        return self.llm is not None and self.settings.llm_enabled and self.turn.flags.llm_enabled

    @property
    def latch_blocks(self) -> bool:
        return blocks_stale_chat(self.state.latch, enabled=self.latch_enabled)

    @property
    def latched_widget(self) -> OpenWidget | None:
        if not self.latch_enabled:
            return None
        return latched_widget(self.state.latch, self.widgets)

    @property
    def selectable_active(self) -> ActiveOptionSet | None:
        """The active list, unless the UI reports a different list on screen."""
        active = self.state.active
        if active is None or not active.options:
            return None
        shown = self.turn.ui.active_option_set_id
        if shown is not None and shown != active.set_id:
            return None
        return active

    def absorb(self, mutations: Sequence[StateMutation]) -> None:
        """Apply pass-through mutations to the view later tiers read."""
        if not mutations:
            return
        self.carried.extend(mutations)
        self.state = apply_mutations(self.state, list(mutations))

    def grounding_sets(self, *, include_capabilities: bool = True) -> list[GroundingSet]:
        latched = self.latched_widget
        return build_grounding_sets(
            GroundingContext(
                active=self.selectable_active,
                widgets=self.widgets,
                latched_surface_id=latched.surface_id if latched else None,
                snapshot=self.state.snapshot,
                referents=self.state.recent_referents,
                paused_first=self.settings.paused_list_first,
                include_capabilities=include_capabilities,
            )
        )

    def classify(
        self,
        input_text: str,
        candidates: Sequence[LabeledCandidate],
        task_kind: TaskKind,
        *,
        tier: int,
        min_confidence: float | None = None,
    ) -> LLMOutcome:
        if not self.llm_enabled or self.llm is None:
            return LLMOutcome(status=LLMStatus.SKIPPED)
        outcome = self.llm.classify(
            input_text,
            candidates,
            task_kind,
            cancel_token=self.cancel_token,
            min_confidence=min_confidence,
        )
        if outcome.status is not LLMStatus.SKIPPED:
            self.llm_calls += 1
        telemetry.llm_outcome(
            task_kind=task_kind,
            outcome=outcome,
            candidate_count=len(candidates),
            tier=tier,
            correlation_id=self.correlation_id,
        )
        return outcome

    @property
    def superseded(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.cancelled


def selection_mutations(
    option: ClarificationOption,
    shown: Sequence[ClarificationOption],
    *,
    clear_active: bool,
) -> list[StateMutation]:
    """Bookkeeping shared by every tier that resolves a chat option."""
    mutations: list[StateMutation] = []
    if clear_active:
        mutations.append(ReplaceActiveOptions(None))
    mutations.extend(
        [
            ReplaceRepairMemory(RepairMemory(last_choice_id=option.id, options=tuple(shown))),
            RecordReferent(Referent(id=option.id, label=option.label)),
            SetCounter("offmenu_attempts", 0),
            SetCounter("exit_count", 0),
        ]
    )
    return mutations


def widget_item_options(widget: OpenWidget) -> tuple[ClarificationOption, ...]:
    """Widget items re-shown as chat options; ``data`` routes a pick back to the widget."""
    return tuple(
        ClarificationOption(
            id=item.id,
            label=item.label,
            data={
                "action": "select_widget_item",
                "surface_id": widget.surface_id,
            },
        )
        for item in widget.items
    )
