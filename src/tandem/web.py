from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Awaitable, Callable, TypeVar

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import JSONResponse

from .client import AsyncBackend, BackendClient
from .config import ViewerConfig
from .errors import (
    LifecycleError,
    LoadError,
    NotFoundError,
    SentenceBusyError,
    TranslationServiceError,
)
from .history import Version
from .hover import Pane, Rect, Scheduler
from .lifecycle import TranslationLifecycle, sentence_status
from .session import DocumentSession, open_document

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _version_payload(index: int, version: Version) -> dict[str, object]:
    payload = version.to_payload()
    payload["index"] = index
    return payload


def _state_payload(session: DocumentSession) -> dict[str, object]:
    hover = session.hover
    affordance = hover.affordance
    projection = session.projection or session.refresh()
    return {
        "book_id": session.book_id,
        "page": session.current_page,
        "page_count": session.page_count,
        "model": session.model,
        "panes": projection.to_payload(),
        "active_id": hover.active_id,
        "highlighted": sorted(hover.highlighted_ids()),
        "busy": sorted(session.busy),
        "affordance": asdict(affordance) if affordance is not None else None,
        "editor": _editor_payload(session),
    }


def _editor_payload(session: DocumentSession) -> dict[str, object] | None:
    editor = session.editor
    if editor is None:
        return None
    record = session.store.get(editor.sentence_id)
    return {
        "sentence_id": editor.sentence_id,
        "original": session.original_text(editor.sentence_id),
        "draft": editor.draft,
        "approved": bool(record and record.approved),
        "status": sentence_status(session, editor.sentence_id).value,
        "versions": record.version_count if record else 0,
        "explanation": editor.explanation,
        "candidates": list(editor.candidates),
    }


def _history_payload(session: DocumentSession, sentence_id: str) -> dict[str, object]:
    record = session.store.get(sentence_id)
    entries = []
    for entry in session.ledger.timeline(sentence_id):
        payload = _version_payload(entry.index, entry.version)
        payload["is_latest"] = entry.is_latest
        payload["diff"] = [{"kind": part.kind, "token": part.token} for part in entry.parts]
        entries.append(payload)
    return {
        "sentence_id": sentence_id,
        "current": record.text if record else None,
        "restored_index": record.restored_index if record else None,
        "approved": bool(record and record.approved),
        "versions": entries,
    }


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (SentenceBusyError, LifecycleError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (TranslationServiceError, LoadError)):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, (ValueError, IndexError)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _require_text(payload: dict[str, object], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise HTTPException(status_code=400, detail=f"{key} is required.")
    return value


def _optional_text(payload: dict[str, object], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{key} must be a string or null.")
    return value


def _parse_rect(value: object) -> Rect | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise HTTPException(status_code=400, detail="rect must be an object.")
    try:
        return Rect(
            top=float(value["top"]),
            left=float(value["left"]),
            right=float(value["right"]),
            bottom=float(value["bottom"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=400, detail="rect needs numeric top, left, right and bottom."
        ) from exc


def create_app(
    config: ViewerConfig,
    *,
    backend: AsyncBackend | None = None,
    scheduler: Scheduler | None = None,
) -> FastAPI:
    if backend is None:
        backend = AsyncBackend(
            BackendClient(config.api_url, token=config.token, timeout=config.timeout)
        )

    # Every route is a coroutine so session state is only touched on the event loop.
    app = FastAPI(title="tandem")
    app.state.config = config
    app.state.backend = backend
    lifecycle = TranslationLifecycle(backend)
    sessions: dict[str, DocumentSession] = {}
    app.state.sessions = sessions

    def _session(book_id: str) -> DocumentSession:
        session = sessions.get(book_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Document is not open")
        return session

    async def _guard(action: Awaitable[_T]) -> _T:
        try:
            return await action
        except HTTPException:
            raise
        except Exception as exc:
            raise _http_error(exc) from exc

    def _guard_sync(action: Callable[[], _T]) -> _T:
        try:
            return action()
        except HTTPException:
            raise
        except Exception as exc:
            raise _http_error(exc) from exc

    @app.post("/api/sessions/{book_id}")
    async def api_open(book_id: str) -> JSONResponse:
        existing = sessions.get(book_id)
        if existing is not None:
            return JSONResponse(_state_payload(existing))
        session = await _guard(
            open_document(backend, book_id, config=config, scheduler=scheduler)
        )
        # A concurrent open of the same book may have finished first.
        existing = sessions.get(book_id)
        if existing is not None:
            session.close()
            return JSONResponse(_state_payload(existing))
        sessions[book_id] = session
        return JSONResponse(_state_payload(session))

    @app.delete("/api/sessions/{book_id}")
    async def api_close(book_id: str) -> JSONResponse:
        session = sessions.pop(book_id, None)
        if session is None:
            raise HTTPException(status_code=404, detail="Document is not open")
        session.close()
        logger.info("Closed book %s", book_id)
        return JSONResponse({"closed": True, "book_id": book_id})

    @app.get("/api/sessions/{book_id}")
    async def api_state(book_id: str) -> JSONResponse:
        return JSONResponse(_state_payload(_session(book_id)))

    @app.post("/api/sessions/{book_id}/page")
    async def api_page(book_id: str, payload: dict[str, object] = Body(...)) -> JSONResponse:
        session = _session(book_id)
        page = payload.get("page")
        if isinstance(page, bool) or not isinstance(page, int):
            raise HTTPException(status_code=400, detail="page must be an integer.")
        _guard_sync(lambda: session.go_to_page(page))
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/model")
    async def api_model(book_id: str, payload: dict[str, object] = Body(...)) -> JSONResponse:
        session = _session(book_id)
        model = _require_text(payload, "model")
        _guard_sync(lambda: session.set_model(model))
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/hover")
    async def api_hover(book_id: str, payload: dict[str, object] = Body(...)) -> JSONResponse:
        session = _session(book_id)
        sentence_id = _require_text(payload, "sentence_id")
        pane_value = payload.get("pane", Pane.ORIGINAL.value)
        try:
            pane = Pane(pane_value)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="pane must be original or translated.") from exc
        rect = _parse_rect(payload.get("rect"))
        session.hover_enter(sentence_id, pane, rect)
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/leave")
    async def api_leave(book_id: str, payload: dict[str, object] = Body(default={})) -> JSONResponse:
        session = _session(book_id)
        session.hover_leave(_optional_text(payload, "sentence_id"))
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/affordance")
    async def api_affordance(book_id: str, payload: dict[str, object] = Body(...)) -> JSONResponse:
        session = _session(book_id)
        hovered = payload.get("hovered")
        if not isinstance(hovered, bool):
            raise HTTPException(status_code=400, detail="hovered must be a boolean.")
        if hovered:
            session.affordance_enter()
        else:
            session.affordance_leave()
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/click")
    async def api_click(book_id: str, sentence_id: str) -> JSONResponse:
        session = _session(book_id)
        session.click(sentence_id)
        return JSONResponse(_state_payload(session))

    @app.delete("/api/sessions/{book_id}/editor")
    async def api_close_editor(book_id: str) -> JSONResponse:
        session = _session(book_id)
        session.close_editor()
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/translate")
    async def api_translate(
        book_id: str,
        sentence_id: str,
        payload: dict[str, object] = Body(default={}),
    ) -> JSONResponse:
        session = _session(book_id)
        model = _optional_text(payload, "model")
        version = await _guard(lifecycle.translate(session, sentence_id, model=model))
        body = _state_payload(session)
        body["discarded"] = version is None
        return JSONResponse(body)

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/save")
    async def api_save(
        book_id: str,
        sentence_id: str,
        payload: dict[str, object] = Body(...),
    ) -> JSONResponse:
        session = _session(book_id)
        text = _require_text(payload, "text")
        model = _optional_text(payload, "model")
        await _guard(lifecycle.save(session, sentence_id, text, model))
        return JSONResponse(_state_payload(session))

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/approve")
    async def api_approve(book_id: str, sentence_id: str) -> JSONResponse:
        session = _session(book_id)
        changed = await _guard(lifecycle.approve(session, sentence_id))
        # Approving from the editor closes it.
        if session.editor is not None and session.editor.sentence_id == sentence_id:
            session.close_editor()
        body = _state_payload(session)
        body["changed"] = changed
        return JSONResponse(body)

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/restore")
    async def api_restore(
        book_id: str,
        sentence_id: str,
        payload: dict[str, object] = Body(...),
    ) -> JSONResponse:
        session = _session(book_id)
        index = payload.get("index")
        if isinstance(index, bool) or not isinstance(index, int):
            raise HTTPException(status_code=400, detail="index must be an integer.")
        _guard_sync(lambda: lifecycle.restore_version(session, sentence_id, index))
        return JSONResponse(_state_payload(session))

    @app.get("/api/sessions/{book_id}/sentences/{sentence_id}/history")
    async def api_history(book_id: str, sentence_id: str) -> JSONResponse:
        session = _session(book_id)
        if session.location(sentence_id) is None:
            raise HTTPException(status_code=404, detail="Sentence not found")
        return JSONResponse(_history_payload(session, sentence_id))

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/explain")
    async def api_explain(
        book_id: str,
        sentence_id: str,
        payload: dict[str, object] = Body(default={}),
    ) -> JSONResponse:
        session = _session(book_id)
        text = _optional_text(payload, "text")
        explanation = await _guard(lifecycle.explain(session, sentence_id, text))
        return JSONResponse({"sentence_id": sentence_id, "explanation": explanation})

    @app.post("/api/sessions/{book_id}/sentences/{sentence_id}/improve")
    async def api_improve(
        book_id: str,
        sentence_id: str,
        payload: dict[str, object] = Body(...),
    ) -> JSONResponse:
        session = _session(book_id)
        request = _require_text(payload, "request")
        text = _optional_text(payload, "text")
        candidates = await _guard(lifecycle.improve(session, sentence_id, request, text))
        return JSONResponse({"sentence_id": sentence_id, "candidates": candidates})

    return app


__all__ = ["create_app"]
