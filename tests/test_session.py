from __future__ import annotations

import asyncio
import logging

import pytest

from tandem.client import BookPayload, BookTranslation
from tandem.config import ViewerConfig
from tandem.errors import LoadError
from tandem.hover import Pane, Rect
from tandem.lifecycle import TranslationLifecycle
from tandem.session import DocumentSession, open_document

from conftest import PAGE_ONE, PAGE_TWO


def test_empty_document_is_rejected() -> None:
    with pytest.raises(ValueError):
        DocumentSession(1, [])


def test_from_payload_loads_translations_and_versions(translated_payload, scheduler) -> None:
    session = DocumentSession.from_payload(5, translated_payload, scheduler=scheduler)

    assert session.page_count == 2
    assert session.store.get("s2").approved is True
    assert session.ledger.count("s2") == 1
    assert session.ledger.latest("s2").timestamp == 0
    assert session.ledger.count("s3") == 2
    assert session.store.get("s3").text == "Иттер үреді."
    assert "Ол бақытты болды." in session.projection.translated
    assert "Иттер үреді." not in session.projection.translated


def test_translations_without_matching_markup_are_skipped(scheduler, caplog) -> None:
    payload = BookPayload(
        pages=[PAGE_ONE, PAGE_TWO],
        translations={
            "ghost": BookTranslation(page_index=0, text="Елес."),
            "s3": BookTranslation(page_index=0, text="Иттер үреді."),
            "s1": BookTranslation(page_index=0, text="Мысық отырды."),
        },
        versions={"ghost": [{"text": "Елес.", "timestamp": 1}]},
    )
    with caplog.at_level(logging.WARNING, logger="tandem.session"):
        session = DocumentSession.from_payload(1, payload, scheduler=scheduler)

    assert session.store.ids() == ["s1"]
    assert session.ledger.count("ghost") == 0
    assert "ghost, s3" in caplog.text


def test_skipped_translation_leaves_no_history(backend, scheduler) -> None:
    payload = BookPayload(
        pages=[PAGE_ONE, PAGE_TWO],
        translations={"s1": BookTranslation(page_index=1, text="Мысық отырды.")},
        versions={"s1": [{"text": "Мысық отырды.", "timestamp": 1000, "model": "kazllm"}]},
    )
    session = DocumentSession.from_payload(1, payload, scheduler=scheduler)
    assert session.ledger.count("s1") == 0

    asyncio.run(TranslationLifecycle(backend).translate(session, "s1"))

    assert session.ledger.count("s1") == 1
    assert session.store.get("s1").version_count == 1


def test_open_document_fetches_from_source(backend, book_payload, scheduler) -> None:
    backend.book = book_payload
    session = asyncio.run(open_document(backend, 3, scheduler=scheduler))

    assert backend.calls_named("fetch_book") == [{"book_id": 3}]
    assert session.location("s3").page_index == 1
    assert session.original_text("s1") == "The cat sat."
    assert session.original_text("nope") is None


def test_open_document_propagates_load_error(backend, scheduler) -> None:
    with pytest.raises(LoadError):
        asyncio.run(open_document(backend, 3, scheduler=scheduler))


def test_set_model_validates_name(book_payload, scheduler) -> None:
    session = DocumentSession.from_payload(1, book_payload, scheduler=scheduler)
    session.set_model("claude")
    assert session.model == "claude"
    with pytest.raises(ValueError):
        session.set_model("m1")


def test_config_sets_default_model(book_payload, scheduler) -> None:
    config = ViewerConfig(model="chatgpt", clear_delay=0.5)
    session = DocumentSession.from_payload(1, book_payload, config=config, scheduler=scheduler)
    assert session.model == "chatgpt"
    assert session.hover.clear_delay == 0.5


def test_hover_changes_refresh_projection(book_payload, scheduler) -> None:
    session = DocumentSession.from_payload(1, book_payload, scheduler=scheduler)
    session.hover_enter("s1", Pane.ORIGINAL, Rect(0, 0, 50, 10))

    assert "active-sentence" in session.projection.original
    assert session.hover.affordance.x == 60

    session.hover_leave("s1")
    scheduler.advance(0.025)
    assert "active-sentence" not in session.projection.original


def test_page_navigation_resets_hover_and_editor(translated_payload, scheduler) -> None:
    session = DocumentSession.from_payload(1, translated_payload, scheduler=scheduler)
    session.hover_enter("s2", Pane.TRANSLATED)
    assert session.click("s2") is not None

    session.go_to_page(1)

    assert session.current_page == 1
    assert session.editor is None
    assert session.hover.active_id is None
    assert "Иттер үреді." in session.projection.translated
    with pytest.raises(IndexError):
        session.go_to_page(2)


def test_click_opens_editor_only_for_translated(translated_payload, scheduler) -> None:
    session = DocumentSession.from_payload(1, translated_payload, scheduler=scheduler)
    assert session.click("s1") is None
    editor = session.click("s2")
    assert editor.draft == "Ол бақытты болды."
    session.close_editor()
    assert session.editor is None


def test_close_invalidates_epochs(book_payload, scheduler) -> None:
    session = DocumentSession.from_payload(1, book_payload, scheduler=scheduler)
    before = session.epoch("s1")
    session.close()
    assert session.closed
    assert session.epoch("s1") != before
