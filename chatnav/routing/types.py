from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OptionKind(str, Enum):
    EXECUTABLE = "executable"
    DESCRIPTIVE = "descriptive"


class PauseReason(str, Enum):
    INTERRUPT = "interrupt"
    STOP = "stop"


class LatchKind(str, Enum):
    NONE = "none"
    PENDING = "pending"
    RESOLVED = "resolved"


class ConfirmKind(str, Enum):
    EXIT = "exit"
    RETURN = "return"


class CandidateType(str, Enum):
    OPTION = "option"
    WIDGET_OPTION = "widget_option"
    REFERENT = "referent"
    CAPABILITY = "capability"


class GroundingSourceKind(str, Enum):
    ACTIVE_OPTIONS = "active_options"
    WIDGET_LIST = "widget_list"
    PAUSED_SNAPSHOT = "paused_snapshot"
    RECENT_REFERENTS = "recent_referents"
    CAPABILITY = "capability"


@dataclass(frozen=True)
class ClarificationOption:
    id: str
    label: str
    kind: OptionKind = OptionKind.EXECUTABLE
    data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class WidgetItem:
    id: str
    label: str


@dataclass(frozen=True)
class OpenWidget:
    surface_id: str
    title: str
    items: tuple[WidgetItem, ...] = ()
    stable_ref: str | None = None
    widget_type: str | None = None

    @property
    def has_items(self) -> bool:
        return bool(self.items)


@dataclass(frozen=True)
class UiContext:
    open_widgets: tuple[OpenWidget, ...] = ()
    mode: str = "dashboard"
    show_badges: bool = False
    active_option_set_id: str | None = None

    @property
    def widget_lists(self) -> tuple[OpenWidget, ...]:
        return tuple(widget for widget in self.open_widgets if widget.has_items)

    def widget_by_id(self, surface_id: str | None) -> OpenWidget | None:
        if not surface_id:
            return None
        for widget in self.open_widgets:
            if widget.surface_id == surface_id:
                return widget
        return None


@dataclass(frozen=True)
class SessionFlags:
    latch_enabled: bool = True
    llm_enabled: bool = True


@dataclass(frozen=True)
class TurnInput:
    raw_text: str
    ui: UiContext = field(default_factory=UiContext)
    flags: SessionFlags = field(default_factory=SessionFlags)
    turn_id: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True)
class ActiveOptionSet:
    set_id: str
    options: tuple[ClarificationOption, ...]
    original_intent: str
    prompt: str = ""

    def option_by_id(self, option_id: str) -> ClarificationOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


@dataclass(frozen=True)
class ClarificationSnapshot:
    set_id: str
    options: tuple[ClarificationOption, ...]
    original_intent: str
    type: str = "option_selection"
    turns_since_set: int = 0
    paused_reason: PauseReason | None = None


@dataclass(frozen=True)
class FocusLatchState:
    kind: LatchKind = LatchKind.NONE
    surface_id: str | None = None
    awaited_ref: str | None = None
    label: str | None = None
    turns_unresolved: int = 0
    suspended: bool = False


@dataclass(frozen=True)
class PendingConfirm:
    kind: ConfirmKind
    prompt: str


@dataclass(frozen=True)
class RepairMemory:
    last_choice_id: str
    options: tuple[ClarificationOption, ...]
    turns_since_set: int = 0


@dataclass(frozen=True)
class Referent:
    id: str
    label: str
    action_hint: str = "open"


@dataclass(frozen=True)
class GroundingCandidate:
    id: str
    label: str
    type: CandidateType
    source: GroundingSourceKind
    action_hint: str | None = None
    surface_id: str | None = None


@dataclass(frozen=True)
class GroundingSet:
    source_kind: GroundingSourceKind
    candidates: tuple[GroundingCandidate, ...]
    is_list: bool
    surface_id: str | None = None
    label: str | None = None
