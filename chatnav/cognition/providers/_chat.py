from __future__ import annotations

import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


def chat_messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def post_json(
    post: Any,
    url: str,
    *,
    payload: dict[str, Any],
    timeout: float,
    headers: dict[str, str] | None = None,
) -> Any:
    """POST a chat request and return the decoded body.

    ``post`` is the module-level ``requests.post`` of the calling provider so
    tests can patch it per provider.
    """
    started = time.monotonic()
    kwargs: dict[str, Any] = {"json": payload, "timeout": timeout}
    if headers:
        kwargs["headers"] = headers
    response = post(url, **kwargs)
    response.raise_for_status()
    logger.debug(
        "llm request done url=%s model=%s elapsed_ms=%s",
        url,
        payload.get("model"),
        int((time.monotonic() - started) * 1000),
    )
    return response.json()


def require_text(value: Any, *, provider: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{provider} response has no message content.")
    return value
