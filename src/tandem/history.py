from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Mapping

from .diffing import DEFAULT_LOOKAHEAD, UNCHANGED, DiffPart, diff_words, tokenize

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class Version:
    """One saved text of a sentence translation."""

    text: str
    timestamp: int
    model: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {"text": self.text, "timestamp": self.timestamp, "model": self.model}

    @classmethod
    def from_payload(cls, entry: Mapping[str, object]) -> "Version | None":
        if not isinstance(entry, Mapping):
            return None
        text = entry.get("text")
        if not isinstance(text, str):
            return None
        timestamp = entry.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            timestamp = 0
        model = entry.get("model")
        if not isinstance(model, str) or not model:
            model = None
        return cls(text=text, timestamp=int(timestamp), model=model)


class VersionHistory:
    """Append-only list of versions for a single sentence."""

    def __init__(self, sentence_id: str) -> None:
        self.sentence_id = sentence_id
        self._versions: list[Version] = []

    def append(self, version: Version) -> Version:
        self._versions.append(version)
        return version

    def latest(self) -> Version | None:
        return self._versions[-1] if self._versions else None

    def __len__(self) -> int:
        return len(self._versions)

    def __getitem__(self, index: int) -> Version:
        return self._versions[index]

    def __iter__(self) -> Iterator[Version]:
        return iter(self._versions)

    def __bool__(self) -> bool:
        return bool(self._versions)

    def snapshot(self) -> tuple[Version, ...]:
        return tuple(self._versions)


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    index: int
    version: Version
    parts: list[DiffPart]
    is_latest: bool


class VersionLedger:
    """
    Per-sentence version log shared by every page of an open document.

    Versions are only ever appended. ``diff`` compares a version with the one
    recorded right before it; the first version has no predecessor and is
    reported as entirely unchanged.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], int] = _now_ms,
        lookahead: int = DEFAULT_LOOKAHEAD,
    ) -> None:
        self._clock = clock
        self._lookahead = lookahead
        self._histories: dict[str, VersionHistory] = {}

    def history(self, sentence_id: str) -> VersionHistory:
        existing = self._histories.get(sentence_id)
        if existing is None:
            existing = VersionHistory(sentence_id)
            self._histories[sentence_id] = existing
        return existing

    def append(
        self,
        sentence_id: str,
        text: str,
        model: str | None = None,
        *,
        timestamp: int | None = None,
    ) -> Version:
        version = Version(
            text=text,
            timestamp=self._clock() if timestamp is None else int(timestamp),
            model=model,
        )
        return self.history(sentence_id).append(version)

    def versions(self, sentence_id: str) -> tuple[Version, ...]:
        existing = self._histories.get(sentence_id)
        return existing.snapshot() if existing is not None else ()

    def count(self, sentence_id: str) -> int:
        existing = self._histories.get(sentence_id)
        return len(existing) if existing is not None else 0

    def latest(self, sentence_id: str) -> Version | None:
        existing = self._histories.get(sentence_id)
        return existing.latest() if existing is not None else None

    def get(self, sentence_id: str, index: int) -> Version:
        versions = self.versions(sentence_id)
        try:
            return versions[index]
        except IndexError:
            raise IndexError(
                f"Sentence {sentence_id!r} has {len(versions)} version(s); no index {index}"
            ) from None

    def diff(self, sentence_id: str, index: int) -> list[DiffPart]:
        versions = self.versions(sentence_id)
        if index < 0:
            index += len(versions)
        current = self.get(sentence_id, index)
        if index == 0:
            return [DiffPart(UNCHANGED, token) for token in tokenize(current.text)]
        previous = versions[index - 1]
        return diff_words(previous.text, current.text, lookahead=self._lookahead)

    def timeline(self, sentence_id: str) -> Iterator[TimelineEntry]:
        versions = self.versions(sentence_id)
        last = len(versions) - 1
        for index, version in enumerate(versions):
            yield TimelineEntry(
                index=index,
                version=version,
                parts=self.diff(sentence_id, index),
                is_latest=index == last,
            )

    def load(self, payload: Mapping[str, object]) -> int:
        """Append versions from a backend ``versions`` mapping; returns how many were loaded."""
        loaded = 0
        if not isinstance(payload, Mapping):
            return loaded
        for sentence_id, entries in payload.items():
            if not isinstance(sentence_id, str) or not isinstance(entries, Iterable):
                continue
            parsed = [Version.from_payload(entry) for entry in entries]
            valid = [version for version in parsed if version is not None]
            if len(valid) != len(parsed):
                logger.debug(
                    "Dropped %d malformed version(s) for sentence %s",
                    len(parsed) - len(valid),
                    sentence_id,
                )
            valid.sort(key=lambda version: version.timestamp)
            history = self.history(sentence_id)
            for version in valid:
                history.append(version)
                loaded += 1
        return loaded

    def to_payload(self) -> dict[str, list[dict[str, object]]]:
        return {
            sentence_id: [version.to_payload() for version in history]
            for sentence_id, history in self._histories.items()
            if history
        }


__all__ = ["TimelineEntry", "Version", "VersionHistory", "VersionLedger"]
