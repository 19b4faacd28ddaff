from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

ADDED = "added"
REMOVED = "removed"
UNCHANGED = "unchanged"

DEFAULT_LOOKAHEAD = 5

_WHITESPACE_RUN = re.compile(r"(\s+)")


@dataclass(frozen=True, slots=True)
class DiffPart:
    kind: str
    token: str


def tokenize(text: str) -> list[str]:
    """
    Split ``text`` into words and the whitespace runs between them.

    Whitespace is kept as its own token so that joining the tokens gives the
    input back unchanged.
    """
    if not text:
        return []
    return [piece for piece in _WHITESPACE_RUN.split(text) if piece]


def _find_within(tokens: Sequence[str], target: str, start: int, stop: int) -> int | None:
    for index in range(start, min(stop, len(tokens))):
        if tokens[index] == target:
            return index
    return None


def diff_tokens(
    old: Sequence[str],
    new: Sequence[str],
    *,
    lookahead: int = DEFAULT_LOOKAHEAD,
) -> list[DiffPart]:
    """
    Greedy two-cursor word diff.

    On a mismatch the next ``lookahead - 1`` tokens of ``new`` are searched for
    the current old token first (an insertion), then the next tokens of ``old``
    for the current new token (a deletion). When neither matches the pair is
    reported as a substitution. The result is readable rather than minimal.
    """
    if lookahead < 1:
        raise ValueError("lookahead must be at least 1")
    parts: list[DiffPart] = []
    i = 0
    j = 0
    old_len = len(old)
    new_len = len(new)
    while i < old_len or j < new_len:
        if i >= old_len:
            parts.extend(DiffPart(ADDED, token) for token in new[j:])
            break
        if j >= new_len:
            parts.extend(DiffPart(REMOVED, token) for token in old[i:])
            break
        if old[i] == new[j]:
            parts.append(DiffPart(UNCHANGED, old[i]))
            i += 1
            j += 1
            continue
        match = _find_within(new, old[i], j + 1, j + lookahead)
        if match is not None:
            parts.extend(DiffPart(ADDED, token) for token in new[j:match])
            j = match
            continue
        match = _find_within(old, new[j], i + 1, i + lookahead)
        if match is not None:
            parts.extend(DiffPart(REMOVED, token) for token in old[i:match])
            i = match
            continue
        parts.append(DiffPart(REMOVED, old[i]))
        parts.append(DiffPart(ADDED, new[j]))
        i += 1
        j += 1
    return parts


def diff_words(
    old_text: str,
    new_text: str,
    *,
    lookahead: int = DEFAULT_LOOKAHEAD,
) -> list[DiffPart]:
    return diff_tokens(tokenize(old_text), tokenize(new_text), lookahead=lookahead)


def old_text_of(parts: Iterable[DiffPart]) -> str:
    return "".join(part.token for part in parts if part.kind != ADDED)


def new_text_of(parts: Iterable[DiffPart]) -> str:
    return "".join(part.token for part in parts if part.kind != REMOVED)


def has_changes(parts: Iterable[DiffPart]) -> bool:
    return any(part.kind != UNCHANGED for part in parts)


__all__ = [
    "ADDED",
    "DEFAULT_LOOKAHEAD",
    "DiffPart",
    "REMOVED",
    "UNCHANGED",
    "diff_tokens",
    "diff_words",
    "has_changes",
    "new_text_of",
    "old_text_of",
    "tokenize",
]
