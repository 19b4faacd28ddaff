from .diffing import DiffPart, diff_words
from .errors import (
    LifecycleError,
    LoadError,
    NotFoundError,
    PersistenceError,
    SentenceBusyError,
    TandemError,
    TranslationServiceError,
)
from .history import Version, VersionLedger
from .hover import HoverSynchronizer, Pane, Rect
from .lifecycle import SentenceStatus, TranslationLifecycle, sentence_status
from .projection import ProjectedPage, project_page
from .session import DocumentSession, open_document
from .store import Translation, TranslationStore

__all__ = [
    "DiffPart",
    "diff_words",
    "Version",
    "VersionLedger",
    "Translation",
    "TranslationStore",
    "HoverSynchronizer",
    "Pane",
    "Rect",
    "ProjectedPage",
    "project_page",
    "DocumentSession",
    "open_document",
    "SentenceStatus",
    "TranslationLifecycle",
    "sentence_status",
    "TandemError",
    "TranslationServiceError",
    "PersistenceError",
    "NotFoundError",
    "LoadError",
    "SentenceBusyError",
    "LifecycleError",
]
