from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from fastapi import BackgroundTasks, Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from scriptorium.application.services.command_service import build_command_service
from scriptorium.application.services.project_service import ProjectService
from scriptorium.core.config import AppPaths, Settings, load_settings
from scriptorium.core.errors import ArtifactMissingError, EntryNotFoundError
from scriptorium.domain.models.commands import PageModel, parse_command
from scriptorium.infrastructure.http.fetcher import build_http_client

logger = logging.getLogger(__name__)


class ObservedResponseRequest(BaseModel):
    page_id: str
    url: str
    content_type: str = ""
    content_disposition: str = ""
    resource_type: str = "main_frame"


class PageClosedRequest(BaseModel):
    page_id: str


def create_app(
    paths: AppPaths,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    app = FastAPI(title="Scriptorium", version="0.1.0")
    settings = settings or load_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    project_service = ProjectService(paths)
    project_service.init_project()

    client = build_http_client(settings, transport=transport)
    service = build_command_service(paths, settings, client)
    app.state.command_service = service

    @app.on_event("shutdown")
    async def _close_http_client() -> None:
        await client.aclose()

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return {
            "ok": True,
            "db_path": str(paths.db_path),
            "entries": service.entry_repo.count(),
        }

    @app.post("/api/commands")
    async def run_command(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        try:
            command = parse_command(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=json.loads(exc.json(include_url=False))) from exc
        response = await service.handle(command)
        return response.model_dump()

    @app.post("/api/events/response")
    def observe_response(req: ObservedResponseRequest) -> dict[str, Any]:
        captured = service.observe_response(
            req.page_id,
            req.url,
            content_type=req.content_type,
            content_disposition=req.content_disposition,
            resource_type=req.resource_type,
        )
        return {"ok": True, "captured": captured}

    @app.post("/api/events/navigation")
    def navigation_complete(page: PageModel, background_tasks: BackgroundTasks) -> dict[str, Any]:
        background_tasks.add_task(service.navigation_complete, page.to_context())
        logger.debug("Queued auto-detect for %s", page.url)
        return {"ok": True, "accepted": True}

    @app.post("/api/events/page-closed")
    def page_closed(req: PageClosedRequest) -> dict[str, Any]:
        service.page_closed(req.page_id)
        return {"ok": True}

    @app.get("/api/entries/{digest}/transcript")
    def download_transcript(digest: str) -> PlainTextResponse:
        try:
            entry = service.require_entry(digest)
            text = service.transcript_text(digest)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ArtifactMissingError as exc:
            raise HTTPException(status_code=410, detail=str(exc)) from exc
        filename = f"{entry.display_name or digest}.md".replace('"', "")
        return PlainTextResponse(
            text,
            media_type="text/markdown; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{_ascii_filename(filename)}"'},
        )

    return app


def _ascii_filename(name: str) -> str:
    return name.encode("ascii", errors="replace").decode("ascii").replace("?", "_")
