from __future__ import annotations


class TandemError(RuntimeError):
    """Base class for errors raised by the annotation engine."""


class TranslationServiceError(TandemError):
    """Raised when the translation or chat model cannot produce a result."""


class PersistenceError(TandemError):
    """Raised when a save or approval cannot be stored by the backend."""


class LoadError(TandemError):
    """Raised when a book cannot be fetched or contains no pages."""


class NotFoundError(TandemError, LookupError):
    """Raised when a sentence id has no matching fragment in the loaded pages."""


class SentenceBusyError(TandemError):
    """Raised when a translation is requested for a sentence already in flight."""

    def __init__(self, sentence_id: str) -> None:
        super().__init__(f"Sentence {sentence_id!r} is already being translated")
        self.sentence_id = sentence_id


class LifecycleError(TandemError):
    """Raised when an operation does not apply to the sentence's current state."""


__all__ = [
    "LifecycleError",
    "LoadError",
    "NotFoundError",
    "PersistenceError",
    "SentenceBusyError",
    "TandemError",
    "TranslationServiceError",
]
