from __future__ import annotations

import pytest

from chatnav.cognition.providers.factory import build_llm_client
from chatnav.cognition.providers.ollama import OllamaClient
from chatnav.cognition.providers.openai import OpenAIClient


@pytest.mark.parametrize("provider", ["ollama", "OLLAMA", "unknown"])
def test_build_llm_client_defaults_to_ollama(
    monkeypatch: pytest.MonkeyPatch,
    provider: str,
) -> None:
    monkeypatch.setenv("CHATNAV_LLM_PROVIDER", provider)
    client = build_llm_client()
    assert isinstance(client, OllamaClient)


@pytest.mark.parametrize("provider", ["openai", "OpenAI"])
def test_build_llm_client_supports_openai(
    monkeypatch: pytest.MonkeyPatch,
    provider: str,
) -> None:
    monkeypatch.setenv("CHATNAV_LLM_PROVIDER", provider)
    monkeypatch.setenv("OPENAI_MODEL", "gpt-test")
    client = build_llm_client()
    assert isinstance(client, OpenAIClient)
    assert client.model == "gpt-test"


def test_ollama_settings_come_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama.local:11434")
    monkeypatch.setenv("CHATNAV_LLM_MODEL", "qwen2.5:3b")
    monkeypatch.setenv("CHATNAV_LLM_HTTP_TIMEOUT_SECONDS", "not-a-number")
    client = build_llm_client()
    assert client.base_url == "http://ollama.local:11434"
    assert client.model == "qwen2.5:3b"
    assert client.timeout == 10.0


def test_openai_client_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHATNAV_TEST_MISSING_KEY", raising=False)
    client = OpenAIClient(api_key_env="CHATNAV_TEST_MISSING_KEY")
    with pytest.raises(ValueError):
        client.complete(system_prompt="s", user_prompt="u")


def test_ollama_client_posts_chat_request(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    class _FakeResponse:
        def raise_for_status(self) -> None:
            return None

        def json(self) -> dict[str, object]:
            return {"message": {"content": '{"decision": "abstain"}'}}

    def _fake_post(url: str, json: dict[str, object], timeout: float) -> _FakeResponse:
        captured["url"] = url
        captured["payload"] = json
        captured["timeout"] = timeout
        return _FakeResponse()

    monkeypatch.setattr("chatnav.cognition.providers.ollama.requests.post", _fake_post)
    client = OllamaClient(base_url="http://ollama.local", model="m", timeout=3)
    assert client.complete(system_prompt="sys", user_prompt="usr") == '{"decision": "abstain"}'
    assert captured["url"] == "http://ollama.local/api/chat"
    assert captured["timeout"] == 3
    payload = captured["payload"]
    assert payload["format"] == "json"
    assert payload["messages"][1] == {"role": "user", "content": "usr"}


class _JsonResponse:
    def __init__(self, body: object) -> None:
        self.body = body

    def raise_for_status(self) -> None:
        return None

    def json(self) -> object:
        return self.body


def test_openai_client_posts_json_mode_request(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def _fake_post(url: str, **kwargs: object) -> _JsonResponse:
        captured["url"] = url
        captured.update(kwargs)
        return _JsonResponse({"choices": [{"message": {"content": "{}"}}]})

    monkeypatch.setenv("CHATNAV_TEST_KEY", "sk-test")
    monkeypatch.setattr("chatnav.cognition.providers.openai.requests.post", _fake_post)
    client = OpenAIClient(base_url="http://proxy.local/v1/", api_key_env="CHATNAV_TEST_KEY")
    assert client.complete(system_prompt="s", user_prompt="u") == "{}"
    assert captured["url"] == "http://proxy.local/v1/chat/completions"
    assert captured["headers"] == {"Authorization": "Bearer sk-test"}
    assert captured["json"]["response_format"] == {"type": "json_object"}


def test_ollama_response_without_content_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "chatnav.cognition.providers.ollama.requests.post",
        lambda url, **kwargs: _JsonResponse({"error": "model not found"}),
    )
    with pytest.raises(ValueError):
        OllamaClient().complete(system_prompt="s", user_prompt="u")
