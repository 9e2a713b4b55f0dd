from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_LLM_ENABLED = True
DEFAULT_LLM_TIMEOUT_MS = 800
DEFAULT_LLM_MIN_CONFIDENCE = 0.4
DEFAULT_RETURN_CUE_MIN_CONFIDENCE = 0.6
DEFAULT_STOP_SUPPRESSION_TURNS = 2
DEFAULT_LATCH_ENABLED = True
DEFAULT_LATCH_PENDING_TURNS = 2
DEFAULT_REPAIR_MEMORY_TURNS = 2
DEFAULT_OFFMENU_MAX_ATTEMPTS = 3
DEFAULT_PAUSED_LIST_PRECEDENCE = "widget_first"
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8000

_MIN_LLM_TIMEOUT_MS = 50
_MAX_LLM_TIMEOUT_MS = 5000
_PRECEDENCE_POLICIES = {"widget_first", "paused_first"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RoutingSettings:
    llm_enabled: bool = DEFAULT_LLM_ENABLED
    llm_timeout_ms: int = DEFAULT_LLM_TIMEOUT_MS
    llm_min_confidence: float = DEFAULT_LLM_MIN_CONFIDENCE
    return_cue_min_confidence: float = DEFAULT_RETURN_CUE_MIN_CONFIDENCE
    stop_suppression_turns: int = DEFAULT_STOP_SUPPRESSION_TURNS
    latch_enabled: bool = DEFAULT_LATCH_ENABLED
    latch_pending_turns: int = DEFAULT_LATCH_PENDING_TURNS
    repair_memory_turns: int = DEFAULT_REPAIR_MEMORY_TURNS
    offmenu_max_attempts: int = DEFAULT_OFFMENU_MAX_ATTEMPTS
    paused_list_precedence: str = DEFAULT_PAUSED_LIST_PRECEDENCE

    @property
    def paused_list_first(self) -> bool:
        return self.paused_list_precedence == "paused_first"


def load_routing_settings() -> RoutingSettings:
    return RoutingSettings(
        llm_enabled=get_llm_enabled(),
        llm_timeout_ms=get_llm_timeout_ms(),
        llm_min_confidence=get_llm_min_confidence(),
        return_cue_min_confidence=get_return_cue_min_confidence(),
        stop_suppression_turns=get_stop_suppression_turns(),
        latch_enabled=get_latch_enabled(),
        latch_pending_turns=get_latch_pending_turns(),
        repair_memory_turns=get_repair_memory_turns(),
        offmenu_max_attempts=get_offmenu_max_attempts(),
        paused_list_precedence=get_paused_list_precedence(),
    )


def get_llm_enabled() -> bool:
    return _get_bool("CHATNAV_LLM_ENABLED", DEFAULT_LLM_ENABLED)


def get_llm_timeout_ms() -> int:
    value = _get_int("CHATNAV_LLM_TIMEOUT_MS", DEFAULT_LLM_TIMEOUT_MS)
    return min(max(value, _MIN_LLM_TIMEOUT_MS), _MAX_LLM_TIMEOUT_MS)


def get_llm_min_confidence() -> float:
    return _get_unit_float("CHATNAV_LLM_MIN_CONFIDENCE", DEFAULT_LLM_MIN_CONFIDENCE)


def get_return_cue_min_confidence() -> float:
    return _get_unit_float(
        "CHATNAV_RETURN_CUE_MIN_CONFIDENCE", DEFAULT_RETURN_CUE_MIN_CONFIDENCE
    )


def get_stop_suppression_turns() -> int:
    return max(_get_int("CHATNAV_STOP_SUPPRESSION_TURNS", DEFAULT_STOP_SUPPRESSION_TURNS), 0)


def get_latch_enabled() -> bool:
    return _get_bool("CHATNAV_LATCH_ENABLED", DEFAULT_LATCH_ENABLED)


def get_latch_pending_turns() -> int:
    return max(_get_int("CHATNAV_LATCH_PENDING_TURNS", DEFAULT_LATCH_PENDING_TURNS), 1)


def get_repair_memory_turns() -> int:
    return max(_get_int("CHATNAV_REPAIR_MEMORY_TURNS", DEFAULT_REPAIR_MEMORY_TURNS), 0)


def get_offmenu_max_attempts() -> int:
    return max(_get_int("CHATNAV_OFFMENU_MAX_ATTEMPTS", DEFAULT_OFFMENU_MAX_ATTEMPTS), 1)


def get_paused_list_precedence() -> str:
    configured = str(os.getenv("CHATNAV_PAUSED_LIST_PRECEDENCE") or "").strip().lower()
    if configured in _PRECEDENCE_POLICIES:
        return configured
    return DEFAULT_PAUSED_LIST_PRECEDENCE


def get_api_host() -> str:
    configured = str(os.getenv("CHATNAV_API_HOST") or "").strip()
    return configured or DEFAULT_API_HOST


def get_api_port() -> int:
    value = _get_int("CHATNAV_API_PORT", DEFAULT_API_PORT)
    if 0 < value < 65536:
        return value
    return DEFAULT_API_PORT


def get_telemetry_path() -> str | None:
    configured = os.getenv("CHATNAV_TELEMETRY_PATH")
    if isinstance(configured, str) and configured.strip():
        return configured.strip()
    return None


def _get_bool(name: str, default: bool) -> bool:
    configured = str(os.getenv(name) or "").strip().lower()
    if configured in _TRUE_VALUES:
        return True
    if configured in _FALSE_VALUES:
        return False
    return default


def _get_int(name: str, default: int) -> int:
    configured = os.getenv(name)
    if configured is None:
        return default
    try:
        return int(configured)
    except (TypeError, ValueError):
        return default


def _get_unit_float(name: str, default: float) -> float:
    configured = os.getenv(name)
    if configured is None:
        return default
    try:
        value = float(configured)
    except (TypeError, ValueError):
        return default
    return min(max(value, 0.0), 1.0)
