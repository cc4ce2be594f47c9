from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from scriptorium.core.document_titles import sanitize_export_name
from scriptorium.core.errors import OfficeExportError
from scriptorium.infrastructure.http.fetcher import ContentFetcher

logger = logging.getLogger(__name__)

OFFICE_HOST = "docs.google.com"


@dataclass(frozen=True, slots=True)
class OfficeFamily:
    name: str
    path_prefix: str
    export_suffix: str
    fallback_title: str


OFFICE_FAMILIES: tuple[OfficeFamily, ...] = (
    OfficeFamily("word_processor", "document", "/export?format=pdf", "document"),
    OfficeFamily("presentation", "presentation", "/export/pdf", "slides"),
    OfficeFamily("spreadsheet", "spreadsheets", "/export?format=pdf", "sheet"),
)


@dataclass(frozen=True, slots=True)
class OfficeDocumentRef:
    family: OfficeFamily
    document_id: str

    @property
    def base_url(self) -> str:
        return f"https://{OFFICE_HOST}/{self.family.path_prefix}/d/{self.document_id}"

    @property
    def export_url(self) -> str:
        return self.base_url + self.family.export_suffix


@dataclass(slots=True)
class ExportedDocument:
    ref: OfficeDocumentRef
    content: bytes
    name: str


def match_office_document(url: str | None) -> OfficeDocumentRef | None:
    try:
        parts = urlsplit(url or "")
    except ValueError:
        return None
    if parts.hostname != OFFICE_HOST:
        return None
    for family in OFFICE_FAMILIES:
        match = re.match(rf"^/{family.path_prefix}/d/([^/]+)", parts.path)
        if match:
            return OfficeDocumentRef(family=family, document_id=match.group(1))
    return None


class OfficeSuiteExporter:
    """Exports word-processor, presentation and spreadsheet pages as PDF.

    Attempts, in order: the export URL with redirects followed, the ``Location``
    of a non-successful answer, and one last bounded retry for exports that are
    still being rendered server-side.
    """

    def __init__(self, fetcher: ContentFetcher, timeout_seconds: float = 15.0) -> None:
        self.fetcher = fetcher
        self.timeout_seconds = timeout_seconds

    async def export(self, ref: OfficeDocumentRef, page_title: str | None = None) -> ExportedDocument:
        name = sanitize_export_name(page_title, fallback=ref.family.fallback_title)
        export_url = ref.export_url

        try:
            response = await self.fetcher.fetch_credentialed(export_url)
            if response.is_success:
                return ExportedDocument(ref=ref, content=response.content, name=name)
            location = response.headers.get("location")
            if location:
                followed = await self.fetcher.fetch_credentialed(location)
                if followed.is_success:
                    return ExportedDocument(ref=ref, content=followed.content, name=name)
        except httpx.HTTPError as exc:
            logger.debug("Direct export of %s failed: %s", export_url, exc)

        try:
            response = await asyncio.wait_for(
                self.fetcher.fetch_credentialed(export_url),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise OfficeExportError(
                f"Timed out exporting {ref.base_url} as PDF",
                url=export_url,
            ) from exc
        except httpx.HTTPError as exc:
            raise OfficeExportError(
                f"Could not export {ref.base_url} as PDF: {exc}",
                url=export_url,
            ) from exc
        if not response.is_success:
            raise OfficeExportError(
                f"Could not export {ref.base_url} as PDF. HTTP {response.status_code}",
                url=export_url,
                status_code=response.status_code,
            )
        return ExportedDocument(ref=ref, content=response.content, name=name)
