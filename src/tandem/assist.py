from __future__ import annotations

import re
from dataclasses import dataclass

EXPLAIN_TEMPERATURE = 0.7
IMPROVE_TEMPERATURE = 0.8

CLAUDE_ENDPOINT = "/api/claude"
CHATGPT_ENDPOINT = "/api/chatgpt"
CLAUDE_MODEL_NAME = "claude-sonnet-4-5-20250929"
CHATGPT_MODEL_NAME = "gpt-4"

# Translation-only models have no chat endpoint.
_CHAT_FALLBACKS = {"kazllm": "chatgpt"}

_NUMBERED_SPLIT = re.compile(r"\n(?=\s*\d+\.)")
_NUMBER_PREFIX = re.compile(r"^\s*\d+\.\s*")
_QUOTE_CHARS = "\"'“”«»„‘’"


@dataclass(frozen=True, slots=True)
class ChatRoute:
    endpoint: str
    model_name: str


def resolve_chat_route(model: str) -> ChatRoute:
    family = _CHAT_FALLBACKS.get(model, model)
    if family == "claude":
        return ChatRoute(endpoint=CLAUDE_ENDPOINT, model_name=CLAUDE_MODEL_NAME)
    return ChatRoute(endpoint=CHATGPT_ENDPOINT, model_name=CHATGPT_MODEL_NAME)


def build_explain_prompt(
    original_text: str,
    translated_text: str,
    *,
    source_language: str = "English",
    target_language: str = "Kazakh",
) -> str:
    return (
        "Briefly explain this translation (3-4 sentences at most):\n\n"
        f'Original ({source_language}): "{original_text}"\n'
        f'Translation ({target_language}): "{translated_text}"\n\n'
        "Explain why these words were chosen and the main nuances. Be concise."
    )


def build_improve_prompt(
    original_text: str,
    translated_text: str,
    request: str,
    *,
    source_language: str = "English",
    target_language: str = "Kazakh",
) -> str:
    return (
        "Improve the translation according to the request:\n\n"
        f'Original ({source_language}): "{original_text}"\n'
        f'Current translation ({target_language}): "{translated_text}"\n'
        f"Request: {request}\n\n"
        f"Give from 1 to 5 improved translation variants in {target_language}. "
        "Start each variant on a new line with its number (1., 2., etc.). "
        "No explanations, only the translation variants."
    )


def _strip_quotes(text: str) -> str:
    stripped = text.strip()
    while len(stripped) >= 2 and stripped[0] in _QUOTE_CHARS and stripped[-1] in _QUOTE_CHARS:
        stripped = stripped[1:-1].strip()
    return stripped


def parse_candidates(message: str) -> list[str]:
    """
    Split a numbered model reply into replacement candidates.

    Each candidate runs from a line starting with ``N.`` up to the next such
    line. Text before the first numbered line is treated as preamble. A reply
    without any numbered line is returned whole as a single candidate.
    """
    text = (message or "").strip()
    if not text:
        return []
    chunks = _NUMBERED_SPLIT.split(text)
    numbered = [chunk for chunk in chunks if _NUMBER_PREFIX.match(chunk)]
    if not numbered:
        single = _strip_quotes(text)
        return [single] if single else []
    candidates: list[str] = []
    for chunk in numbered:
        candidate = _strip_quotes(_NUMBER_PREFIX.sub("", chunk, count=1))
        if candidate:
            candidates.append(candidate)
    return candidates


__all__ = [
    "CHATGPT_ENDPOINT",
    "CLAUDE_ENDPOINT",
    "ChatRoute",
    "EXPLAIN_TEMPERATURE",
    "IMPROVE_TEMPERATURE",
    "build_explain_prompt",
    "build_improve_prompt",
    "parse_candidates",
    "resolve_chat_route",
]
