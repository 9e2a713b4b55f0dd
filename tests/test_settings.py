from __future__ import annotations

import pytest

from chatnav.config.settings import (
    RoutingSettings,
    get_api_host,
    get_api_port,
    get_llm_timeout_ms,
    get_telemetry_path,
    load_routing_settings,
)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHATNAV_LLM_ENABLED", raising=False)
    settings = load_routing_settings()
    assert settings == RoutingSettings()
    assert settings.llm_enabled
    assert not settings.paused_list_first


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATNAV_LLM_MIN_CONFIDENCE", "0.7")
    monkeypatch.setenv("CHATNAV_STOP_SUPPRESSION_TURNS", "4")
    monkeypatch.setenv("CHATNAV_LATCH_ENABLED", "off")
    monkeypatch.setenv("CHATNAV_PAUSED_LIST_PRECEDENCE", "Paused_First")
    settings = load_routing_settings()
    assert not settings.llm_enabled
    assert settings.llm_min_confidence == 0.7
    assert settings.stop_suppression_turns == 4
    assert not settings.latch_enabled
    assert settings.paused_list_first


def test_invalid_values_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATNAV_LLM_ENABLED", "sometimes")
    monkeypatch.setenv("CHATNAV_OFFMENU_MAX_ATTEMPTS", "three")
    monkeypatch.setenv("CHATNAV_RETURN_CUE_MIN_CONFIDENCE", "7")
    monkeypatch.setenv("CHATNAV_PAUSED_LIST_PRECEDENCE", "newest")
    monkeypatch.setenv("CHATNAV_LATCH_PENDING_TURNS", "0")
    settings = load_routing_settings()
    assert settings.llm_enabled
    assert settings.offmenu_max_attempts == 3
    assert settings.return_cue_min_confidence == 1.0
    assert settings.paused_list_precedence == "widget_first"
    assert settings.latch_pending_turns == 1


@pytest.mark.parametrize(("raw", "expected"), [("10", 50), ("1200", 1200), ("60000", 5000), ("fast", 800)])
def test_llm_timeout_is_clamped(monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("CHATNAV_LLM_TIMEOUT_MS", raw)
    assert get_llm_timeout_ms() == expected


def test_telemetry_path(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_telemetry_path() is None
    monkeypatch.setenv("CHATNAV_TELEMETRY_PATH", "  /tmp/routing.jsonl ")
    assert get_telemetry_path() == "/tmp/routing.jsonl"
    monkeypatch.setenv("CHATNAV_TELEMETRY_PATH", "   ")
    assert get_telemetry_path() is None


def test_api_bind_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHATNAV_API_HOST", raising=False)
    monkeypatch.delenv("CHATNAV_API_PORT", raising=False)
    assert (get_api_host(), get_api_port()) == ("127.0.0.1", 8000)
    monkeypatch.setenv("CHATNAV_API_HOST", "0.0.0.0")
    monkeypatch.setenv("CHATNAV_API_PORT", "9090")
    assert (get_api_host(), get_api_port()) == ("0.0.0.0", 9090)
    monkeypatch.setenv("CHATNAV_API_PORT", "70000")
    assert get_api_port() == 8000
