from chatnav.cognition.providers.factory import build_llm_client
from chatnav.cognition.providers.ollama import OllamaClient
from chatnav.cognition.providers.openai import OpenAIClient

__all__ = [
    "build_llm_client",
    "OllamaClient",
    "OpenAIClient",
]
