from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from chatnav.routing.state import StateMutation
from chatnav.routing.types import ClarificationOption, GroundingCandidate


class ActionKind(str, Enum):
    OPEN_PANEL = "open_panel"
    SELECT_WIDGET_ITEM = "select_widget_item"
    OPEN_REFERENT = "open_referent"
    CAPABILITY = "capability"
    SHOW_FULL_LIST = "show_full_list"
    EXIT_SCOPE = "exit_scope"
    ACKNOWLEDGE = "acknowledge"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    target_id: str | None = None
    label: str | None = None
    surface_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Execute:
    action: Action
    message: str = ""


@dataclass(frozen=True)
class Select:
    option: ClarificationOption
    source: str
    message: str = ""


@dataclass(frozen=True)
class AskClarify:
    prompt: str
    options: tuple[ClarificationOption, ...] = ()


@dataclass(frozen=True)
class Ambiguous:
    prompt: str
    candidates: tuple[GroundingCandidate, ...]


@dataclass(frozen=True)
class DeferToRetrieval:
    query: str
    reason: str = "unresolved"


Decision = Union[Execute, Select, AskClarify, Ambiguous, DeferToRetrieval]


def decision_kind(decision: Decision) -> str:
    if isinstance(decision, Execute):
        return "execute"
    if isinstance(decision, Select):
        return "select"
    if isinstance(decision, AskClarify):
        return "ask_clarify"
    if isinstance(decision, Ambiguous):
        return "ambiguous"
    return "defer_to_retrieval"


def decision_to_dict(decision: Decision) -> dict[str, Any]:
    kind = decision_kind(decision)
    if isinstance(decision, Execute):
        action = decision.action
        return {
            "kind": kind,
            "message": decision.message,
            "action": {
                "kind": action.kind.value,
                "target_id": action.target_id,
                "label": action.label,
                "surface_id": action.surface_id,
                "data": dict(action.data),
            },
        }
    if isinstance(decision, Select):
        return {
            "kind": kind,
            "message": decision.message,
            "source": decision.source,
            "option": _option_to_dict(decision.option),
        }
    if isinstance(decision, AskClarify):
        return {
            "kind": kind,
            "prompt": decision.prompt,
            "options": [_option_to_dict(option) for option in decision.options],
        }
    if isinstance(decision, Ambiguous):
        return {
            "kind": kind,
            "prompt": decision.prompt,
            "candidates": [
                {
                    "id": candidate.id,
                    "label": candidate.label,
                    "type": candidate.type.value,
                    "source": candidate.source.value,
                    "surface_id": candidate.surface_id,
                }
                for candidate in decision.candidates
            ],
        }
    return {"kind": kind, "query": decision.query, "reason": decision.reason}


def _option_to_dict(option: ClarificationOption) -> dict[str, Any]:
    return {
        "id": option.id,
        "label": option.label,
        "kind": option.kind.value,
        "data": dict(option.data),
    }


@dataclass(frozen=True)
class DispatchResult:
    """One turn's decision plus the state mutations the caller must apply."""

    decision: Decision
    mutations: tuple[StateMutation, ...] = ()
    handled_by_tier: int = 6
    tier_label: str = "retrieval"
    llm_calls: int = 0
    superseded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": decision_to_dict(self.decision),
            "handled_by_tier": self.handled_by_tier,
            "tier_label": self.tier_label,
            "llm_calls": self.llm_calls,
            "superseded": self.superseded,
        }
