from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .client import BookPayload, BookTranslation
from .config import TRANSLATION_MODELS, ViewerConfig
from .history import VersionLedger
from .hover import HoverSynchronizer, Pane, Rect, Scheduler
from .markup import SentenceLocation, build_sentence_index
from .projection import ProjectedPage, project_page
from .store import TranslationStore

logger = logging.getLogger(__name__)


class BookSource(Protocol):
    async def fetch_book(self, book_id: int | str) -> BookPayload: ...


@dataclass(slots=True)
class EditorState:
    sentence_id: str
    draft: str
    explanation: str = ""
    candidates: list[str] = field(default_factory=list)
    show_history: bool = False


class DocumentSession:
    """
    Everything the engine knows about one open document.

    Passed explicitly to every lifecycle operation; there is no module-level
    state. The store, ledger and busy set are shared by all pages.
    """

    def __init__(
        self,
        book_id: int | str,
        pages: list[str],
        *,
        config: ViewerConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        if not pages:
            raise ValueError("A document needs at least one page")
        self.book_id = book_id
        self.config = config or ViewerConfig()
        self.pages = list(pages)
        self.index: dict[str, SentenceLocation] = build_sentence_index(self.pages)
        self.store = TranslationStore()
        self.ledger = VersionLedger(lookahead=self.config.diff_lookahead)
        self.busy: set[str] = set()
        self.model = self.config.model
        self.current_page = 0
        self.editor: EditorState | None = None
        self.closed = False
        self._generation = 0
        self._epochs: dict[str, int] = {}
        self.hover = HoverSynchronizer(
            has_translation=self.store.__contains__,
            scheduler=scheduler,
            clear_delay=self.config.clear_delay,
            affordance_offset_x=self.config.affordance_offset_x,
        )
        self.projection: ProjectedPage | None = None
        self.hover.subscribe(lambda _sync: self.refresh())
        self.refresh()

    @classmethod
    def from_payload(
        cls,
        book_id: int | str,
        payload: BookPayload,
        *,
        config: ViewerConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> "DocumentSession":
        session = cls(book_id, payload.pages, config=config, scheduler=scheduler)
        session._load_translations(payload)
        session.refresh()
        return session

    def _load_translations(self, payload: BookPayload) -> None:
        accepted: dict[str, BookTranslation] = {}
        skipped: list[str] = []
        for sentence_id, entry in payload.translations.items():
            location = self.index.get(sentence_id)
            if location is None or location.page_index != entry.page_index:
                skipped.append(sentence_id)
                continue
            accepted[sentence_id] = entry
        # Only translations that match the markup bring their history.
        self.ledger.load(
            {
                sentence_id: entries
                for sentence_id, entries in payload.versions.items()
                if sentence_id in accepted
            }
        )
        for sentence_id, entry in accepted.items():
            history = self.ledger.history(sentence_id)
            if not history:
                # Keep "translated implies at least one version" for records
                # the backend stored without history.
                self.ledger.append(sentence_id, entry.text, None, timestamp=0)
            self.store.record(sentence_id, entry.text, entry.page_index, history)
            if entry.approved:
                self.store.set_approved(sentence_id, True)
        if skipped:
            logger.warning(
                "Book %s: %d translation(s) have no matching sentence in the markup: %s",
                self.book_id,
                len(skipped),
                ", ".join(sorted(skipped)),
            )

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def location(self, sentence_id: str) -> SentenceLocation | None:
        return self.index.get(sentence_id)

    def original_text(self, sentence_id: str) -> str | None:
        location = self.index.get(sentence_id)
        return location.original_text if location is not None else None

    def set_model(self, model: str) -> None:
        if model not in TRANSLATION_MODELS:
            raise ValueError(f"Unknown model {model!r}; expected one of {', '.join(TRANSLATION_MODELS)}")
        self.model = model

    def epoch(self, sentence_id: str) -> tuple[int, int]:
        return self._generation, self._epochs.get(sentence_id, 0)

    def bump_epoch(self, sentence_id: str) -> None:
        self._epochs[sentence_id] = self._epochs.get(sentence_id, 0) + 1

    def refresh(self) -> ProjectedPage:
        self.projection = project_page(
            self.pages[self.current_page],
            self.current_page,
            self.store,
            active_ids=self.hover.highlighted_ids(),
        )
        return self.projection

    def go_to_page(self, page_index: int) -> ProjectedPage:
        if not 0 <= page_index < len(self.pages):
            raise IndexError(f"Page {page_index} is out of range (0-{len(self.pages) - 1})")
        self.current_page = page_index
        self.editor = None
        self.hover.reset()
        return self.refresh()

    def click(self, sentence_id: str) -> EditorState | None:
        record = self.store.get(sentence_id)
        if record is None:
            return None
        self.editor = EditorState(sentence_id=sentence_id, draft=record.text)
        return self.editor

    def close_editor(self) -> None:
        self.editor = None

    def hover_enter(self, sentence_id: str, pane: Pane | str, rect: Rect | None = None) -> None:
        self.hover.enter(sentence_id, pane, rect)

    def hover_leave(self, sentence_id: str | None = None) -> None:
        self.hover.leave(sentence_id)

    def affordance_enter(self) -> None:
        self.hover.affordance_enter()

    def affordance_leave(self) -> None:
        self.hover.affordance_leave()

    def close(self) -> None:
        self._generation += 1
        self.closed = True
        self.editor = None
        self.hover.reset()


async def open_document(
    source: BookSource,
    book_id: int | str,
    *,
    config: ViewerConfig | None = None,
    scheduler: Scheduler | None = None,
) -> DocumentSession:
    """Fetch a book and build its session; LoadError propagates with nothing created."""
    payload = await source.fetch_book(book_id)
    session = DocumentSession.from_payload(book_id, payload, config=config, scheduler=scheduler)
    logger.info(
        "Opened book %s: %d page(s), %d sentence(s), %d translated",
        book_id,
        session.page_count,
        len(session.index),
        len(session.store),
    )
    return session


__all__ = ["BookSource", "DocumentSession", "EditorState", "open_document"]
