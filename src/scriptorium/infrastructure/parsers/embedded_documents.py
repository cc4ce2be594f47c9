from __future__ import annotations

from html.parser import HTMLParser
from urllib.parse import parse_qs, urljoin, urlsplit

from scriptorium.core.media_types import PDF_EXTENSION, PDF_MIME_TYPES

_MIME_PARAM_KEYS = ("mime", "mimeType", "contentType")


def is_pdf_like_url(url: str, base_url: str | None = None) -> bool:
    try:
        parts = urlsplit(urljoin(base_url, url) if base_url else url)
        query = parse_qs(parts.query)
    except ValueError:
        return False
    if parts.path.lower().endswith(PDF_EXTENSION):
        return True
    formats = query.get("format")
    if formats and formats[0].lower() == "pdf":
        return True
    for key in _MIME_PARAM_KEYS:
        values = query.get(key)
        if values and values[0].lower() in PDF_MIME_TYPES:
            return True
    return False


class _EmbeddedDocumentCollector(HTMLParser):
    _URL_ATTRS = {"embed": "src", "object": "data", "iframe": "src"}

    def __init__(self, base_url: str) -> None:
        super().__init__(convert_charrefs=True)
        self.base_url = base_url
        self.candidates: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        url_attr = self._URL_ATTRS.get(tag)
        if url_attr is None:
            return
        values = {name.lower(): (value or "") for name, value in attrs}
        raw_url = values.get(url_attr, "").strip()
        if not raw_url:
            return
        declared_pdf = values.get("type", "").strip().lower() in PDF_MIME_TYPES
        # iframes carry no type attribute worth trusting; only the URL counts.
        qualifies = is_pdf_like_url(raw_url, self.base_url)
        if tag != "iframe":
            qualifies = qualifies or declared_pdf
        if not qualifies:
            return
        try:
            absolute = urljoin(self.base_url, raw_url)
        except ValueError:
            return
        if urlsplit(absolute).scheme in ("http", "https"):
            self.candidates.append(absolute)

    handle_startendtag = handle_starttag


def find_embedded_document_urls(html: str, base_url: str) -> list[str]:
    """Unique PDF-looking embed/object/iframe URLs in document order."""
    collector = _EmbeddedDocumentCollector(base_url)
    collector.feed(html)
    collector.close()
    return list(dict.fromkeys(collector.candidates))


def find_single_embedded_document(html: str, base_url: str) -> str | None:
    """Return the embedded document URL only when the page has exactly one."""
    unique = find_embedded_document_urls(html, base_url)
    if len(unique) == 1:
        return unique[0]
    return None
