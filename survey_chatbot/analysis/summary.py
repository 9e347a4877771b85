"""Generate a short narrative summary of survey results using OpenAI."""
from __future__ import annotations

import logging
from typing import List

from survey_chatbot.openai_client import chat_completion

_logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a helpful assistant summarizing product survey results from "
    "employees, stakeholders and customers. Write a concise summary (<=120 "
    "words, neutral tone) of the overall sentiment, recurring themes and key "
    "takeaways. Do not quote respondents or repeat raw counts."
)


def _build_user_prompt(answers: List[str], themes: List[str], headline: str) -> str:
    theme_lines = (
        "\n".join(f"- {t}" for t in themes) if themes else "(no explicit themes)"
    )
    answers_block = "\n".join(f'"{a}"' for a in answers)
    return (
        f"Headline figures: {headline}\n\n"
        "Themes:\n"
        f"{theme_lines}\n\n"
        "Free-text answers:\n"
        f"{answers_block}\n\n"
        "Please produce the summary paragraph."
    )


def generate_summary(
    answers: List[str],
    themes: List[str] | None = None,
    *,
    headline: str = "",
    max_tokens: int = 250,
    temperature: float = 0.4,
    max_length_chars: int = 900,
) -> str:
    """Summarize *answers* guided by *themes* and a *headline* of key figures.

    Returns an empty string if *answers* is empty.
    Raises RuntimeError after two failed attempts.
    """

    if not answers:
        return ""

    messages = [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": _build_user_prompt(answers, themes or [], headline)},
    ]

    attempts = 0
    while attempts < 2:
        attempts += 1
        try:
            resp = chat_completion(
                messages, temperature=temperature, max_tokens=max_tokens
            )
            content: str = resp["choices"][0]["message"]["content"].strip()
            if len(content) > max_length_chars:
                content = content[:max_length_chars].rstrip() + "…"
            return content
        except Exception as exc:  # noqa: BLE001
            _logger.warning("Summary generation attempt %d failed: %s", attempts, exc)
            if attempts >= 2:
                raise RuntimeError("OpenAI summary generation failed") from exc
    return ""
