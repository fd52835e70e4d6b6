from __future__ import annotations

import io
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, StreamingResponse

from varianceqa.analysis.controller import FormController
from varianceqa.api.demo_ui import render_form_html
from varianceqa.api.public_views import public_session_payload
from varianceqa.api.schemas import (
    HealthPublicResponse,
    QueryRequest,
    SessionPublicResponse,
    TranscriptUpdateRequest,
)
from varianceqa.core.config import AppConfig, config
from varianceqa.core.errors import BusyError
from varianceqa.core.samples import SAMPLE_TRANSCRIPT
from varianceqa.core.stores import InMemorySessionStore
from varianceqa.core.version import __version__
from varianceqa.exporters.excel_builder import build_xlsx_from_commentary

logger = logging.getLogger(__name__)


def _store(request: Request) -> InMemorySessionStore:
    return request.app.state.sessions


def _get_session(request: Request, session_id: str) -> FormController:
    controller = _store(request).get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


def _busy(exc: BusyError) -> HTTPException:
    return HTTPException(status_code=409, detail=exc.message)


def _health_diagnostics(request: Request) -> Dict[str, Any]:
    cfg: AppConfig = request.app.state.config
    return {
        "generation": {
            "api_key_configured": cfg.gemini.configured,
            "model": cfg.gemini.model,
        },
        "identity": {
            "provider_configured": cfg.identity.enabled,
            "custom_token": bool(cfg.identity.initial_auth_token),
        },
        "sessions": {"active": len(_store(request))},
        "app_id": cfg.app_id,
    }


def create_app(
    settings: Optional[AppConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    cfg = settings or config
    sessions = InMemorySessionStore(idle_ttl_s=cfg.session_idle_ttl_s)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        sessions.close_all()

    app = FastAPI(
        title="VarianceQA API",
        description="Variance commentary extraction and Q&A over the Gemini API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.sessions = sessions
    app.state.transport = transport

    @app.get("/", response_class=HTMLResponse)
    def form_page():
        return HTMLResponse(render_form_html())

    @app.get("/health", response_model=HealthPublicResponse)
    def health_check(request: Request):
        return {"status": "healthy", "version": __version__, "diagnostics": _health_diagnostics(request)}

    @app.get("/sample")
    def sample_transcript():
        return {"transcript": SAMPLE_TRANSCRIPT}

    @app.post("/sessions", response_model=SessionPublicResponse, status_code=201)
    async def create_session(request: Request, background_tasks: BackgroundTasks):
        controller = FormController(
            uuid.uuid4().hex,
            request.app.state.config,
            transport=request.app.state.transport,
        )
        _store(request).add(controller)
        background_tasks.add_task(controller.bootstrap)
        logger.info("Page session created (session_id=%s)", controller.state.session_id)
        return public_session_payload(controller)

    @app.get("/sessions/{session_id}", response_model=SessionPublicResponse)
    async def get_session(session_id: str, request: Request):
        return public_session_payload(_get_session(request, session_id))

    @app.delete("/sessions/{session_id}")
    async def close_session(session_id: str, request: Request):
        controller = _store(request).pop(session_id)
        if controller is None:
            raise HTTPException(status_code=404, detail="Session not found")
        controller.close()
        return {"status": "closed", "session_id": session_id}

    @app.put("/sessions/{session_id}/transcript", response_model=SessionPublicResponse)
    async def update_transcript(session_id: str, req: TranscriptUpdateRequest, request: Request):
        controller = _get_session(request, session_id)
        try:
            controller.set_transcript(req.transcript)
        except BusyError as exc:
            raise _busy(exc) from exc
        return public_session_payload(controller)

    @app.post("/sessions/{session_id}/sample", response_model=SessionPublicResponse)
    async def load_sample(session_id: str, request: Request):
        controller = _get_session(request, session_id)
        try:
            controller.load_sample()
        except BusyError as exc:
            raise _busy(exc) from exc
        return public_session_payload(controller)

    @app.post("/sessions/{session_id}/reset", response_model=SessionPublicResponse)
    async def reset_session(session_id: str, request: Request):
        controller = _get_session(request, session_id)
        try:
            controller.reset()
        except BusyError as exc:
            raise _busy(exc) from exc
        return public_session_payload(controller)

    @app.post("/sessions/{session_id}/process", response_model=SessionPublicResponse)
    async def process_transcript(session_id: str, request: Request):
        controller = _get_session(request, session_id)
        try:
            await controller.process_transcript()
        except BusyError as exc:
            raise _busy(exc) from exc
        return public_session_payload(controller)

    @app.post("/sessions/{session_id}/query", response_model=SessionPublicResponse)
    async def ask_question(session_id: str, req: QueryRequest, request: Request):
        controller = _get_session(request, session_id)
        if req.query is not None:
            controller.set_query(req.query)
        try:
            await controller.ask()
        except BusyError as exc:
            raise _busy(exc) from exc
        return public_session_payload(controller)

    @app.get("/sessions/{session_id}/export")
    def export_commentary(session_id: str, request: Request):
        controller = _get_session(request, session_id)
        if controller.state.commentary is None:
            raise HTTPException(status_code=409, detail="No structured commentary to export")
        try:
            xlsx_bytes = build_xlsx_from_commentary(
                controller.commentary_items(),
                transcript=controller.state.transcript,
            )
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return StreamingResponse(
            io.BytesIO(xlsx_bytes),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": "attachment; filename=variance_analysis.xlsx"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.api_host, port=config.api_port)
