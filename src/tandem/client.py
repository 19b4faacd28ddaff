from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Mapping, TypeVar

import requests

from .config import DEFAULT_API_URL
from .errors import LoadError, PersistenceError, TranslationServiceError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(slots=True)
class BookTranslation:
    page_index: int
    text: str
    approved: bool = False


@dataclass(slots=True)
class BookPayload:
    pages: list[str]
    translations: dict[str, BookTranslation] = field(default_factory=dict)
    versions: dict[str, list[Mapping[str, object]]] = field(default_factory=dict)


def parse_book_payload(raw: object) -> BookPayload:
    """
    Validate a ``GET /api/books/{id}`` response.

    Backend page numbers are 1-based and converted to page indices here.
    Malformed translation and version entries are dropped; a book without
    pages is a LoadError.
    """
    if not isinstance(raw, Mapping):
        raise LoadError("Book response is not a JSON object")
    pages_raw = raw.get("pages")
    if not isinstance(pages_raw, list):
        raise LoadError("Book response has no pages")
    pages = [page if isinstance(page, str) else "" for page in pages_raw]
    if not pages:
        raise LoadError("Book contains no pages")

    translations: dict[str, BookTranslation] = {}
    translations_raw = raw.get("translations")
    if isinstance(translations_raw, Mapping):
        for sentence_id, entry in translations_raw.items():
            if not isinstance(sentence_id, str) or not isinstance(entry, Mapping):
                continue
            page_number = entry.get("page_number")
            if isinstance(page_number, bool) or not isinstance(page_number, int):
                continue
            text = entry.get("current_translation")
            if not isinstance(text, str):
                continue
            page_index = page_number - 1
            if not 0 <= page_index < len(pages):
                logger.warning(
                    "Translation for %s points at page %d of %d; skipped",
                    sentence_id,
                    page_number,
                    len(pages),
                )
                continue
            translations[sentence_id] = BookTranslation(
                page_index=page_index,
                text=text,
                approved=entry.get("is_approved") is True,
            )

    versions: dict[str, list[Mapping[str, object]]] = {}
    versions_raw = raw.get("versions")
    if isinstance(versions_raw, Mapping):
        for sentence_id, entries in versions_raw.items():
            if not isinstance(sentence_id, str) or not isinstance(entries, list):
                continue
            versions[sentence_id] = [entry for entry in entries if isinstance(entry, Mapping)]

    return BookPayload(pages=pages, translations=translations, versions=versions)


class BackendClient:
    """
    Thin wrapper around the book/translation HTTP API.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = requests.Session()

    def _headers(self, *, auth: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _post_json(
        self,
        path: str,
        payload: Mapping[str, object],
        error_cls: type[Exception],
        *,
        auth: bool = True,
    ) -> object:
        try:
            resp = self._session.post(
                f"{self.base_url}{path}",
                json=dict(payload),
                headers=self._headers(auth=auth),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise error_cls(f"Failed to contact backend at {self.base_url}{path}") from exc
        if resp.status_code != 200:
            raise error_cls(f"{path} failed with status {resp.status_code}: {resp.text}")
        try:
            return resp.json()
        except (json.JSONDecodeError, ValueError):
            return None

    def fetch_book(self, book_id: int | str) -> BookPayload:
        path = f"/api/books/{book_id}"
        try:
            resp = self._session.get(
                f"{self.base_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise LoadError(f"Failed to contact backend at {self.base_url}{path}") from exc
        if resp.status_code != 200:
            raise LoadError(f"{path} failed with status {resp.status_code}: {resp.text}")
        try:
            raw = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise LoadError(f"Backend returned invalid JSON for {path}") from exc
        return parse_book_payload(raw)

    def translate(self, text: str, model: str) -> str:
        data = self._post_json(
            "/api/translate",
            {"text": text, "model": model},
            TranslationServiceError,
            auth=False,
        )
        translated = data.get("text") if isinstance(data, Mapping) else None
        if not isinstance(translated, str):
            raise TranslationServiceError("/api/translate returned no text")
        return translated

    def save_translation(
        self,
        *,
        book_id: int | str,
        page_number: int,
        sentence_id: str,
        original_text: str,
        translation: str,
        model: str,
    ) -> None:
        self._post_json(
            "/api/books/translation/save",
            {
                "book_id": book_id,
                "page_number": page_number,
                "sentence_id": sentence_id,
                "original_text": original_text,
                "translation": translation,
                "model": model,
            },
            PersistenceError,
        )

    def approve_translation(self, *, book_id: int | str, sentence_id: str) -> None:
        self._post_json(
            "/api/books/translation/approve",
            {"book_id": book_id, "sentence_id": sentence_id},
            PersistenceError,
        )

    def chat(self, endpoint: str, message: str, model: str, temperature: float) -> str:
        data = self._post_json(
            endpoint,
            {"message": message, "model": model, "temperature": temperature},
            TranslationServiceError,
            auth=False,
        )
        reply = data.get("message") if isinstance(data, Mapping) else None
        if not isinstance(reply, str):
            raise TranslationServiceError(f"{endpoint} returned no message")
        return reply

    def close(self) -> None:
        self._session.close()


class AsyncBackend:
    """Run a blocking ``BackendClient`` off the event loop."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def _run(self, func: Callable[..., _T], *args: object, **kwargs: object) -> _T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def fetch_book(self, book_id: int | str) -> BookPayload:
        return await self._run(self.client.fetch_book, book_id)

    async def translate(self, text: str, model: str) -> str:
        return await self._run(self.client.translate, text, model)

    async def save_translation(self, **fields: object) -> None:
        await self._run(self.client.save_translation, **fields)

    async def approve_translation(self, **fields: object) -> None:
        await self._run(self.client.approve_translation, **fields)

    async def chat(self, endpoint: str, message: str, model: str, temperature: float) -> str:
        return await self._run(self.client.chat, endpoint, message, model, temperature)

    def close(self) -> None:
        self.client.close()


__all__ = [
    "AsyncBackend",
    "BackendClient",
    "BookPayload",
    "BookTranslation",
    "parse_book_payload",
]
