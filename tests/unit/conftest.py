from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import Any

import httpx
import pytest

from scriptorium.application.services.command_service import build_command_service
from scriptorium.application.services.project_service import ProjectService
from scriptorium.core.config import AppPaths, Settings
from scriptorium.infrastructure.http.fetcher import build_http_client

OCR_HOST = "api.mistral.ai"
FAKE_JPEG = b"\xff\xd8\xff\xe0" + b"fake-jpeg-body"


def make_pdf(title: str | None = "Quarterly Report", body: bytes = b"") -> bytes:
    info = b""
    if title is not None:
        info = b"1 0 obj\n<< /Title (" + title.encode("latin-1") + b") >>\nendobj\n"
    return b"%PDF-1.4\n" + info + body + b"\n%%EOF\n"


class FakeWeb:
    """Routes for the mock transport plus a scripted OCR backend."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, bytes, dict[str, str]]] = {}
        self.requests: list[httpx.Request] = []
        self.ocr_pages: list[dict[str, Any]] = [
            {
                "index": 0,
                "markdown": "# Page one\n\n![img-0.jpeg](img-0.jpeg)",
                "images": [
                    {
                        "id": "img-0.jpeg",
                        "image_base64": "data:image/jpeg;base64,"
                        + base64.b64encode(FAKE_JPEG).decode("ascii"),
                    }
                ],
            },
            {"index": 1, "markdown": "Second page", "images": []},
        ]
        self.fail_ocr_status: int | None = None

    def add(
        self,
        url: str,
        *,
        status: int = 200,
        content: bytes = b"",
        headers: dict[str, str] | None = None,
        method: str = "GET",
    ) -> None:
        self.routes[(method, url)] = (status, content, dict(headers or {}))

    def add_pdf(self, url: str, content: bytes, **headers: str) -> None:
        merged = {"content-type": "application/pdf"}
        merged.update({key.replace("_", "-"): value for key, value in headers.items()})
        self.add(url, content=content, headers=merged)

    def add_html(self, url: str, html: str) -> None:
        self.add(url, content=html.encode("utf-8"), headers={"content-type": "text/html; charset=utf-8"})

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == OCR_HOST:
            # Yield so concurrent callers interleave with an outstanding backend call.
            await asyncio.sleep(0)
            if request.url.path.endswith("/files"):
                return httpx.Response(200, json={"id": "file-1"})
            if request.url.path.endswith("/ocr"):
                if self.fail_ocr_status is not None:
                    return httpx.Response(self.fail_ocr_status, text="backend unavailable")
                return httpx.Response(
                    200,
                    json={"model": "mistral-ocr-latest", "pages": self.ocr_pages},
                )
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, text="not found")
        status, content, headers = route
        return httpx.Response(status, content=content, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def backend_calls(self, suffix: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.url.host == OCR_HOST and (suffix is None or request.url.path.endswith(suffix))
        ]


@pytest.fixture
def fake_web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppPaths:
    monkeypatch.delenv("SCRIPTORIUM_HOME", raising=False)
    home = tmp_path / ".scriptorium"
    app_paths = AppPaths(
        project_root=tmp_path,
        home_dir=home,
        db_path=home / "scriptorium.db",
        artifacts_dir=home / "artifacts",
    )
    ProjectService(app_paths).init_project()
    return app_paths


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def run_with_service(paths: AppPaths, fake_web: FakeWeb):
    """Run ``action(service)`` on a command service wired to the fake web."""

    def runner(action, settings: Settings | None = None):
        effective = settings or Settings(api_key="sk-test")

        async def main():
            async with build_http_client(effective, transport=fake_web.transport()) as client:
                return await action(build_command_service(paths, effective, client))

        return asyncio.run(main())

    return runner
