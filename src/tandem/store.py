from __future__ import annotations

from dataclasses import dataclass

from .history import VersionHistory


@dataclass(slots=True)
class Translation:
    sentence_id: str
    text: str
    page_index: int
    history: VersionHistory
    approved: bool = False
    # Index of the version the current text was restored from.
    restored_index: int | None = None

    @property
    def version_count(self) -> int:
        return len(self.history)

    @property
    def is_restored(self) -> bool:
        return self.restored_index is not None


class TranslationStore:
    """In-memory map of translated sentences for one open document."""

    def __init__(self) -> None:
        self._records: dict[str, Translation] = {}

    def __contains__(self, sentence_id: object) -> bool:
        return sentence_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, sentence_id: str) -> Translation | None:
        return self._records.get(sentence_id)

    def ids(self) -> list[str]:
        return list(self._records)

    def record(
        self,
        sentence_id: str,
        text: str,
        page_index: int,
        history: VersionHistory,
    ) -> Translation:
        if not history:
            raise ValueError(f"Sentence {sentence_id!r} has no recorded versions")
        existing = self._records.get(sentence_id)
        if existing is not None:
            existing.text = text
            existing.page_index = page_index
            existing.history = history
            existing.restored_index = None
            return existing
        created = Translation(
            sentence_id=sentence_id,
            text=text,
            page_index=page_index,
            history=history,
        )
        self._records[sentence_id] = created
        return created

    def set_text(self, sentence_id: str, text: str) -> Translation:
        record = self._require(sentence_id)
        record.text = text
        return record

    def restore(self, sentence_id: str, version_index: int, text: str) -> Translation:
        """Point the current text at an earlier version and drop approval."""
        record = self._require(sentence_id)
        record.text = text
        record.restored_index = version_index
        record.approved = False
        return record

    def set_approved(self, sentence_id: str, value: bool) -> Translation:
        record = self._require(sentence_id)
        record.approved = bool(value)
        return record

    def is_approved(self, sentence_id: str) -> bool:
        record = self._records.get(sentence_id)
        return bool(record and record.approved)

    def for_page(self, page_index: int) -> dict[str, str]:
        return {
            sentence_id: record.text
            for sentence_id, record in self._records.items()
            if record.page_index == page_index
        }

    def approved_ids(self) -> set[str]:
        return {sentence_id for sentence_id, record in self._records.items() if record.approved}

    def _require(self, sentence_id: str) -> Translation:
        record = self._records.get(sentence_id)
        if record is None:
            raise KeyError(sentence_id)
        return record


__all__ = ["Translation", "TranslationStore"]
