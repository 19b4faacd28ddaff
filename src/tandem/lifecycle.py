from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from .assist import (
    EXPLAIN_TEMPERATURE,
    IMPROVE_TEMPERATURE,
    build_explain_prompt,
    build_improve_prompt,
    parse_candidates,
    resolve_chat_route,
)
from .errors import (
    LifecycleError,
    NotFoundError,
    PersistenceError,
    SentenceBusyError,
)
from .history import Version
from .markup import SentenceLocation
from .session import DocumentSession
from .store import Translation

logger = logging.getLogger(__name__)


class SentenceStatus(str, Enum):
    UNTRANSLATED = "untranslated"
    TRANSLATED = "translated"
    EDITED = "edited"
    APPROVED = "approved"


class TranslationBackend(Protocol):
    async def translate(self, text: str, model: str) -> str: ...

    async def save_translation(
        self,
        *,
        book_id: int | str,
        page_number: int,
        sentence_id: str,
        original_text: str,
        translation: str,
        model: str,
    ) -> None: ...

    async def approve_translation(self, *, book_id: int | str, sentence_id: str) -> None: ...

    async def chat(self, endpoint: str, message: str, model: str, temperature: float) -> str: ...


def sentence_status(ctx: DocumentSession, sentence_id: str) -> SentenceStatus:
    record = ctx.store.get(sentence_id)
    if record is None:
        return SentenceStatus.UNTRANSLATED
    if record.approved:
        return SentenceStatus.APPROVED
    if record.version_count > 1 and not record.is_restored:
        return SentenceStatus.EDITED
    return SentenceStatus.TRANSLATED


class TranslationLifecycle:
    """
    Translate, edit, approve and restore sentences of an open document.

    Translation and chat failures reach the caller and leave the document
    untouched. Save and approval failures are only logged: the local state is
    committed before the backend is contacted.
    """

    def __init__(self, backend: TranslationBackend) -> None:
        self.backend = backend

    def _require_sentence(self, ctx: DocumentSession, sentence_id: str) -> SentenceLocation:
        if ctx.closed:
            raise LifecycleError(f"Book {ctx.book_id} is closed")
        location = ctx.location(sentence_id)
        if location is None:
            raise NotFoundError(f"Sentence {sentence_id!r} is not part of book {ctx.book_id}")
        return location

    def _require_translation(self, ctx: DocumentSession, sentence_id: str) -> Translation:
        self._require_sentence(ctx, sentence_id)
        record = ctx.store.get(sentence_id)
        if record is None:
            raise LifecycleError(f"Sentence {sentence_id!r} has no translation yet")
        return record

    def _commit(self, ctx: DocumentSession, sentence_id: str, text: str, model: str) -> Version:
        location = self._require_sentence(ctx, sentence_id)
        version = ctx.ledger.append(sentence_id, text, model)
        ctx.store.record(
            sentence_id,
            text,
            location.page_index,
            ctx.ledger.history(sentence_id),
        )
        if ctx.editor is not None and ctx.editor.sentence_id == sentence_id:
            ctx.editor.draft = text
        ctx.refresh()
        return version

    async def _persist(self, ctx: DocumentSession, sentence_id: str, text: str, model: str) -> None:
        location = self._require_sentence(ctx, sentence_id)
        try:
            await self.backend.save_translation(
                book_id=ctx.book_id,
                page_number=location.page_index + 1,
                sentence_id=sentence_id,
                original_text=location.original_text,
                translation=text,
                model=model,
            )
        except PersistenceError as exc:
            logger.warning("Saving translation for %s failed: %s", sentence_id, exc)

    async def translate(
        self,
        ctx: DocumentSession,
        sentence_id: str,
        source_text: str | None = None,
        model: str | None = None,
    ) -> Version | None:
        """
        Machine-translate a sentence and record the result as a new version.

        Returns ``None`` when the result arrived after the sentence was saved,
        restored or the document closed; such results are discarded.
        """
        if sentence_id in ctx.busy:
            raise SentenceBusyError(sentence_id)
        location = self._require_sentence(ctx, sentence_id)
        model = model or ctx.model
        text = location.original_text if source_text is None else source_text
        ctx.busy.add(sentence_id)
        ctx.hover.mark_busy(sentence_id)
        epoch = ctx.epoch(sentence_id)
        resolved = False
        try:
            translated = await self.backend.translate(text, model)
            resolved = True
        finally:
            ctx.busy.discard(sentence_id)
            ctx.hover.mark_idle(sentence_id, resolved=resolved)
        if ctx.epoch(sentence_id) != epoch:
            logger.info("Discarding stale translation for %s", sentence_id)
            return None
        version = self._commit(ctx, sentence_id, translated, model)
        await self._persist(ctx, sentence_id, translated, model)
        return version

    async def save(
        self,
        ctx: DocumentSession,
        sentence_id: str,
        text: str,
        model: str | None = None,
    ) -> Version:
        self._require_sentence(ctx, sentence_id)
        model = model or ctx.model
        ctx.bump_epoch(sentence_id)
        version = self._commit(ctx, sentence_id, text, model)
        await self._persist(ctx, sentence_id, text, model)
        return version

    async def approve(self, ctx: DocumentSession, sentence_id: str) -> bool:
        record = self._require_translation(ctx, sentence_id)
        if record.approved:
            return False
        ctx.store.set_approved(sentence_id, True)
        ctx.refresh()
        try:
            await self.backend.approve_translation(book_id=ctx.book_id, sentence_id=sentence_id)
        except PersistenceError as exc:
            logger.warning("Approving translation for %s failed: %s", sentence_id, exc)
        return True

    def restore_version(self, ctx: DocumentSession, sentence_id: str, version_index: int) -> Version:
        """Point the current text at an earlier version; no version is added."""
        self._require_translation(ctx, sentence_id)
        if version_index < 0:
            raise IndexError(f"Version index must not be negative, got {version_index}")
        version = ctx.ledger.get(sentence_id, version_index)
        ctx.bump_epoch(sentence_id)
        ctx.store.restore(sentence_id, version_index, version.text)
        if ctx.editor is not None and ctx.editor.sentence_id == sentence_id:
            ctx.editor.draft = version.text
        ctx.refresh()
        return version

    async def _chat(self, message: str, model: str, temperature: float) -> str:
        route = resolve_chat_route(model)
        return await self.backend.chat(route.endpoint, message, route.model_name, temperature)

    async def explain(
        self,
        ctx: DocumentSession,
        sentence_id: str,
        translated_text: str | None = None,
        model: str | None = None,
    ) -> str:
        record = self._require_translation(ctx, sentence_id)
        translated = record.text if translated_text is None else translated_text
        message = build_explain_prompt(
            ctx.original_text(sentence_id) or "",
            translated,
            source_language=ctx.config.source_language,
            target_language=ctx.config.target_language,
        )
        explanation = await self._chat(message, model or ctx.model, EXPLAIN_TEMPERATURE)
        if ctx.editor is not None and ctx.editor.sentence_id == sentence_id:
            ctx.editor.explanation = explanation
        return explanation

    async def improve(
        self,
        ctx: DocumentSession,
        sentence_id: str,
        request: str,
        translated_text: str | None = None,
        model: str | None = None,
    ) -> list[str]:
        if not request or not request.strip():
            raise ValueError("An improvement request is required")
        record = self._require_translation(ctx, sentence_id)
        translated = record.text if translated_text is None else translated_text
        message = build_improve_prompt(
            ctx.original_text(sentence_id) or "",
            translated,
            request.strip(),
            source_language=ctx.config.source_language,
            target_language=ctx.config.target_language,
        )
        reply = await self._chat(message, model or ctx.model, IMPROVE_TEMPERATURE)
        candidates = parse_candidates(reply)
        if ctx.editor is not None and ctx.editor.sentence_id == sentence_id:
            ctx.editor.candidates = candidates
        return candidates

    async def apply_candidate(
        self,
        ctx: DocumentSession,
        sentence_id: str,
        candidate: str,
        model: str | None = None,
    ) -> Version:
        version = await self.save(ctx, sentence_id, candidate, model)
        if ctx.editor is not None and ctx.editor.sentence_id == sentence_id:
            ctx.editor.candidates = []
        return version


__all__ = ["SentenceStatus", "TranslationBackend", "TranslationLifecycle", "sentence_status"]
