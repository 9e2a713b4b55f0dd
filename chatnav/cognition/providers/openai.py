from __future__ import annotations

import os

import requests

from chatnav.cognition.providers._chat import chat_messages, post_json, require_text


class OpenAIClient:
    """OpenAI-compatible chat completions client in JSON object mode.

    The API key is read from ``api_key_env`` on every call so a rotated key
    does not need a rebuilt client.
    """

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        api_key_env: str = "OPENAI_API_KEY",
        timeout: float = 10,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key_env = api_key_env
        self.timeout = timeout

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        api_key = os.getenv(self.api_key_env)
        if not api_key:
            raise ValueError(f"Missing API key in {self.api_key_env}.")
        body = post_json(
            requests.post,
            f"{self.base_url}/chat/completions",
            payload={
                "model": self.model,
                "messages": chat_messages(system_prompt, user_prompt),
                "response_format": {"type": "json_object"},
                "temperature": 0,
            },
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        choices = body.get("choices") if isinstance(body, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return require_text(content, provider="openai")
