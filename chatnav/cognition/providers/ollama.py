from __future__ import annotations

import requests

from chatnav.cognition.providers._chat import chat_messages, post_json, require_text


class OllamaClient:
    """Ollama ``/api/chat`` client constrained to JSON output."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "mistral:7b-instruct",
        timeout: float = 10,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        body = post_json(
            requests.post,
            f"{self.base_url}/api/chat",
            payload={
                "model": self.model,
                "messages": chat_messages(system_prompt, user_prompt),
                "format": "json",
                "options": {"temperature": 0},
                "stream": False,
            },
            timeout=self.timeout,
        )
        message = body.get("message") if isinstance(body, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return require_text(content, provider="ollama")
