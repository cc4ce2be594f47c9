from __future__ import annotations

import logging
from typing import Awaitable, Callable
from urllib.parse import parse_qs, unquote, urlsplit, urlunsplit

import httpx

from scriptorium.core.document_titles import (
    filename_from_url,
    last_path_segment,
    parse_content_disposition_filename,
)
from scriptorium.core.errors import FetchError
from scriptorium.core.media_types import IMAGE_EXTENSIONS, PDF_EXTENSION, is_pdf_content_type
from scriptorium.domain.models.resource import (
    FetchedContent,
    PageContext,
    ResolvedResource,
    ResourceKind,
)
from scriptorium.infrastructure.http.fetcher import ContentFetcher
from scriptorium.infrastructure.http.viewer_cache import ViewerResponseCache
from scriptorium.infrastructure.office.export import OfficeSuiteExporter, match_office_document
from scriptorium.infrastructure.parsers.embedded_documents import find_single_embedded_document
from scriptorium.infrastructure.parsers.pdf_metadata import extract_pdf_title, looks_like_pdf

logger = logging.getLogger(__name__)

BUILTIN_PDF_VIEWER_ID = "mhjfbmdgcfjbbpaeojofohoefgiehjai"
SECURE_VIEWER_PATH = "/viewer/secure/pdf"
DEFAULT_DOCUMENT_NAME = "document.pdf"
DEFAULT_IMAGE_NAME = "image"

# Helper failures that only mean "this strategy found nothing".
_STRATEGY_MISSES = (ValueError, UnicodeError, httpx.HTTPError, FetchError)


def is_builtin_viewer_url(url: str | None) -> bool:
    try:
        parts = urlsplit(url or "")
    except ValueError:
        return False
    return parts.scheme == "chrome-extension" and parts.netloc == BUILTIN_PDF_VIEWER_ID


def primary_url(page_url: str) -> str:
    """Follow an embedded-viewer ``?src=`` indirection when present."""
    try:
        src = parse_qs(urlsplit(page_url).query).get("src")
    except ValueError:
        return page_url
    if src and src[0].strip():
        return src[0].strip()
    return page_url


def classify_url(url: str) -> ResourceKind | None:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    path = unquote(parts.path).lower()
    if path.endswith(PDF_EXTENSION) or SECURE_VIEWER_PATH in path:
        return ResourceKind.DOCUMENT
    if path.endswith(IMAGE_EXTENSIONS):
        return ResourceKind.IMAGE
    return None


def suffix_probe_url(url: str) -> str | None:
    """``url`` with ``.pdf`` appended to its path, or ``None`` if it already ends in ``.pdf``."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    if parts.path.lower().endswith(PDF_EXTENSION):
        return None
    return urlunsplit(parts._replace(path=parts.path + PDF_EXTENSION))


def _resource_from_url(url: str, strategy: str) -> ResolvedResource | None:
    kind = classify_url(url)
    if kind is None:
        return None
    default_name = DEFAULT_DOCUMENT_NAME if kind is ResourceKind.DOCUMENT else DEFAULT_IMAGE_NAME
    return ResolvedResource(
        url=url,
        name_hint=last_path_segment(url) or default_name,
        kind=kind,
        strategy=strategy,
    )


class ResourceResolver:
    """Decides which document or image, if any, the active page exposes.

    Strategies run in a fixed priority order and the first hit wins:
    viewer-cache match, office-suite export, direct URL match, ``.pdf`` suffix
    probe and finally a single embedded document.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        viewer_cache: ViewerResponseCache,
        office_exporter: OfficeSuiteExporter,
    ) -> None:
        self.fetcher = fetcher
        self.viewer_cache = viewer_cache
        self.office_exporter = office_exporter

    async def resolve(
        self,
        page: PageContext,
        *,
        use_viewer_cache: bool = True,
        export_office: bool = True,
    ) -> ResolvedResource | None:
        strategies: list[tuple[str, Callable[[], Awaitable[ResolvedResource | None]]]] = []
        if use_viewer_cache:
            strategies.append(("viewer_cache", lambda: self._from_viewer_cache(page)))
        strategies.extend(
            [
                ("office_export", lambda: self._from_office_suite(page, export_office)),
                ("direct", lambda: self._from_direct_url(page)),
                ("suffix_probe", lambda: self._from_suffix_probe(page)),
                ("embedded", lambda: self._from_embedded_document(page)),
            ]
        )

        for name, strategy in strategies:
            try:
                resolved = await strategy()
            except _STRATEGY_MISSES as exc:
                logger.debug("Strategy %s failed for %s: %s", name, page.url, exc)
                continue
            if resolved is not None:
                logger.debug("Strategy %s resolved %s -> %s", name, page.url, resolved.url)
                return resolved
        logger.info("No OCR-able resource found on %s", page.url)
        return None

    async def _from_viewer_cache(self, page: PageContext) -> ResolvedResource | None:
        if not is_builtin_viewer_url(page.url):
            return None
        cached = self.viewer_cache.latest(page.page_id)
        if cached is None:
            return None
        guessed = _resource_from_url(cached.url, "viewer_cache")
        name = DEFAULT_DOCUMENT_NAME
        if guessed is not None and guessed.kind is ResourceKind.DOCUMENT:
            name = guessed.name_hint
        return ResolvedResource(
            url=cached.url,
            name_hint=name,
            kind=ResourceKind.DOCUMENT,
            strategy="viewer_cache",
            content_type=cached.content_type,
            content_disposition=cached.content_disposition,
        )

    async def _from_office_suite(self, page: PageContext, export: bool) -> ResolvedResource | None:
        ref = match_office_document(page.url)
        if ref is None:
            return None
        if not export:
            return ResolvedResource(
                url=ref.base_url,
                name_hint=DEFAULT_DOCUMENT_NAME,
                kind=ResourceKind.DOCUMENT,
                strategy="office_export",
            )
        exported = await self.office_exporter.export(ref, page.title)
        return ResolvedResource(
            url=ref.base_url,
            name_hint=exported.name,
            kind=ResourceKind.DOCUMENT,
            strategy="office_export",
            content=exported.content,
            content_type="application/pdf",
        )

    async def _from_direct_url(self, page: PageContext) -> ResolvedResource | None:
        return _resource_from_url(primary_url(page.url), "direct")

    async def _from_suffix_probe(self, page: PageContext) -> ResolvedResource | None:
        probed = await self.probe_pdf(primary_url(page.url))
        if probed is None:
            return None
        resolved = _resource_from_url(probed.url, "suffix_probe")
        if resolved is None or resolved.kind is not ResourceKind.DOCUMENT:
            return None
        resolved.content = probed.content
        resolved.content_type = probed.content_type
        resolved.content_disposition = probed.content_disposition
        return resolved

    async def _from_embedded_document(self, page: PageContext) -> ResolvedResource | None:
        html = page.html
        if html is None:
            if urlsplit(page.url).scheme not in ("http", "https"):
                return None
            html = await self.fetcher.fetch_text(page.url)
        embedded = find_single_embedded_document(html, page.url)
        if embedded is None:
            return None
        resolved = _resource_from_url(embedded, "embedded")
        if resolved is None or resolved.kind is not ResourceKind.DOCUMENT:
            return None
        return resolved

    async def probe_pdf(self, url: str) -> FetchedContent | None:
        probe_url = suffix_probe_url(url)
        if probe_url is None:
            return None
        response = await self.fetcher.fetch_credentialed(probe_url)
        if not response.is_success:
            return None
        content_type = response.headers.get("content-type", "")
        if not is_pdf_content_type(content_type) and not looks_like_pdf(response.content):
            return None
        return FetchedContent(
            url=probe_url,
            content=response.content,
            content_type=content_type,
            content_disposition=response.headers.get("content-disposition", ""),
        )

    @staticmethod
    def display_name_for(resource: ResolvedResource, fetched: FetchedContent) -> str:
        """Best human-readable name for a resolved resource once its bytes are known."""
        if resource.kind is not ResourceKind.DOCUMENT or resource.title_is_final:
            return resource.name_hint
        title = extract_pdf_title(fetched.content)
        if title:
            return title
        disposition = fetched.content_disposition or resource.content_disposition
        from_header = parse_content_disposition_filename(disposition)
        if from_header:
            return from_header
        return filename_from_url(resource.url) or resource.name_hint
