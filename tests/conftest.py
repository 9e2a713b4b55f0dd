from __future__ import annotations

import pytest

from chatnav.observability.store import clear_event_listeners


@pytest.fixture(autouse=True)
def _pin_routing_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Tests that need a model build their own ConstrainedLLMClient around a fake;
    # anything built from the environment must never reach a provider.
    monkeypatch.setenv("CHATNAV_LLM_ENABLED", "false")
    monkeypatch.setenv("CHATNAV_LLM_PROVIDER", "ollama")
    monkeypatch.delenv("CHATNAV_TELEMETRY_PATH", raising=False)
    monkeypatch.delenv("CHATNAV_PAUSED_LIST_PRECEDENCE", raising=False)
    monkeypatch.delenv("CHATNAV_LLM_TIMEOUT_MS", raising=False)
    clear_event_listeners()
    yield
    clear_event_listeners()
