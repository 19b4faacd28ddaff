from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from tandem.client import BookPayload, BookTranslation
from tandem.errors import LoadError, PersistenceError, TranslationServiceError

PAGE_ONE = (
    '<p><span class="sentence" data-sentence-id="s1">The cat sat.</span> '
    '<span class="sentence" data-sentence-id="s2">It was <em>happy</em>.</span></p>'
)
PAGE_TWO = '<p><span class="sentence" data-sentence-id="s3">Dogs bark.</span></p>'


class _Timer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Stands in for the event loop's ``call_later`` with a hand-driven clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[_Timer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[_Timer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        while True:
            due = [timer for timer in self.pending() if timer.due <= self.now]
            if not due:
                return
            timer = min(due, key=lambda item: item.due)
            self.timers.remove(timer)
            timer.callback()


class FakeBackend:
    def __init__(self) -> None:
        self.translations: dict[str, str] = {}
        self.chat_reply = "1. Option one\n2. Option two"
        self.book: BookPayload | None = None
        self.fail_translate = False
        self.fail_persist = False
        self.fail_chat = False
        self.gate: asyncio.Event | None = None
        self.book_gate: asyncio.Event | None = None
        self.calls: list[tuple[str, dict[str, object]]] = []

    async def fetch_book(self, book_id):
        self.calls.append(("fetch_book", {"book_id": book_id}))
        if self.book_gate is not None:
            await self.book_gate.wait()
        if self.book is None:
            raise LoadError("no such book")
        return self.book

    async def translate(self, text: str, model: str) -> str:
        self.calls.append(("translate", {"text": text, "model": model}))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_translate:
            raise TranslationServiceError("model offline")
        return self.translations.get(text, f"<{text}>")

    async def save_translation(self, **fields: object) -> None:
        self.calls.append(("save", dict(fields)))
        if self.fail_persist:
            raise PersistenceError("backend down")

    async def approve_translation(self, **fields: object) -> None:
        self.calls.append(("approve", dict(fields)))
        if self.fail_persist:
            raise PersistenceError("backend down")

    async def chat(self, endpoint: str, message: str, model: str, temperature: float) -> str:
        self.calls.append(
            (
                "chat",
                {"endpoint": endpoint, "message": message, "model": model, "temperature": temperature},
            )
        )
        if self.fail_chat:
            raise TranslationServiceError("chat offline")
        return self.chat_reply

    def calls_named(self, name: str) -> list[dict[str, object]]:
        return [fields for call, fields in self.calls if call == name]


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def book_payload() -> BookPayload:
    return BookPayload(pages=[PAGE_ONE, PAGE_TWO])


@pytest.fixture
def translated_payload() -> BookPayload:
    return BookPayload(
        pages=[PAGE_ONE, PAGE_TWO],
        translations={
            "s2": BookTranslation(page_index=0, text="Ол бақытты болды.", approved=True),
            "s3": BookTranslation(page_index=1, text="Иттер үреді."),
        },
        versions={
            "s3": [
                {"text": "Ит үреді.", "timestamp": 1000, "model": "kazllm"},
                {"text": "Иттер үреді.", "timestamp": 2000, "model": "claude"},
            ]
        },
    )
