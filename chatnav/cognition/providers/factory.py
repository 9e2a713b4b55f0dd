from __future__ import annotations

import logging
import os
from typing import Any

from chatnav.cognition.providers.ollama import OllamaClient
from chatnav.cognition.providers.openai import OpenAIClient

logger = logging.getLogger(__name__)


def build_llm_client() -> Any:
    provider = str(os.getenv("CHATNAV_LLM_PROVIDER", "ollama")).strip().lower()
    if provider == "openai":
        return _build_openai_client()
    if provider != "ollama":
        logger.warning("unknown llm provider provider=%s fallback=ollama", provider)
    return _build_ollama_client()


def _build_ollama_client() -> OllamaClient:
    base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    model = os.getenv("CHATNAV_LLM_MODEL", "mistral:7b-instruct")
    timeout_seconds = _parse_float(os.getenv("CHATNAV_LLM_HTTP_TIMEOUT_SECONDS"), default=10.0)
    return OllamaClient(
        base_url=base_url,
        model=model,
        timeout=timeout_seconds,
    )


def _build_openai_client() -> OpenAIClient:
    base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    timeout_seconds = _parse_float(os.getenv("CHATNAV_LLM_HTTP_TIMEOUT_SECONDS"), default=10.0)
    return OpenAIClient(
        base_url=base_url,
        model=model,
        api_key_env=os.getenv("OPENAI_API_KEY_ENV", "OPENAI_API_KEY"),
        timeout=timeout_seconds,
    )


def _parse_float(raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default
