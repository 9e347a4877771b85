"""Lightweight OpenAI client helper.

Centralises API-key handling so the reporting code can simply do:

    from survey_chatbot.openai_client import chat_completion

OpenAI is only used for the optional AI insights in analytics reports; the
survey flow itself never calls it.
"""
from __future__ import annotations

import os
import threading
import types
from typing import Any, Dict, List, Optional


class OpenAIClientError(RuntimeError):
    """Raised when client configuration is invalid (e.g., missing API key)."""


_DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")

_client: Optional[Any] = None
_client_lock = threading.Lock()


def _load_openai() -> types.ModuleType:
    """Import ``openai`` lazily so the package imports without it configured."""

    import importlib

    return importlib.import_module("openai")


def _ensure_api_key_present() -> str:
    """Return the ``OPENAI_API_KEY`` env var or raise.

    Raises
    ------
    OpenAIClientError
        If the env var is missing or empty.
    """

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise OpenAIClientError("OPENAI_API_KEY environment variable is not set.")
    return api_key


def is_configured() -> bool:
    """Return *True* if an API key is available."""
    return bool(os.getenv("OPENAI_API_KEY"))


def get_openai_client() -> Any:
    """Return a shared ``openai.OpenAI`` client, creating it on first use."""

    global _client
    with _client_lock:
        if _client is None:
            openai = _load_openai()
            _client = openai.OpenAI(
                api_key=_ensure_api_key_present(),
                organization=os.getenv("OPENAI_ORG") or None,
            )
        return _client


def reset_client() -> None:
    """Drop the cached client (used after key rotation and in tests)."""
    global _client
    with _client_lock:
        _client = None


def chat_completion(
    messages: List[Dict[str, str]],
    *,
    model: str = _DEFAULT_MODEL,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Wrapper around ``client.chat.completions.create`` with sane defaults.

    Returns a plain ``dict`` with at least
    ``{"choices": [{"message": {"content": ...}}], "model": ...}`` so callers
    and tests do not depend on the SDK's response classes.
    """

    client = get_openai_client()
    completion = client.chat.completions.create(model=model, messages=messages, **kwargs)
    choices = [
        {"message": {"content": choice.message.content}}
        for choice in completion.choices
    ]
    return {"choices": choices, "model": completion.model}
