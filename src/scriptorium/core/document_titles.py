from __future__ import annotations

import re
from urllib.parse import parse_qs, unquote, urlsplit

MAX_TITLE_CHARS = 200
MAX_EXPORT_NAME_CHARS = 100

_CONTROL_RE = re.compile(r"[\x00-\x1f]+")
_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_PLACEHOLDER_TITLES = frozenset({"untitled", "document", "unknown"})
_EXTENDED_FILENAME_RE = re.compile(r"filename\*\s*=\s*([^;]+)", flags=re.IGNORECASE)
_PLAIN_FILENAME_RE = re.compile(r'filename\s*=\s*("([^"]+)"|([^;]+))', flags=re.IGNORECASE)
_RFC5987_RE = re.compile(r"^([^']*)'[^']*'(.*)$")
_URL_FILENAME_KEYS = ("filename", "file", "name", "title", "download", "attname")


def normalize_title_candidate(value: str | None) -> str | None:
    """Return a display-worthy title or ``None`` for empty and placeholder titles.

    Control characters become spaces, whitespace runs collapse to one space and
    the result is capped at :data:`MAX_TITLE_CHARS`. Already-normalized input is
    returned unchanged.
    """
    raw = _CONTROL_RE.sub(" ", str(value or ""))
    cleaned = _WHITESPACE_RE.sub(" ", raw).strip()
    cleaned = cleaned[:MAX_TITLE_CHARS].rstrip()
    if not cleaned:
        return None
    if cleaned.lower() in _PLACEHOLDER_TITLES:
        return None
    return cleaned


def sanitize_export_name(page_title: str | None, fallback: str = "document") -> str:
    name = (page_title or "").strip() or fallback
    name = _UNSAFE_FILENAME_RE.sub(" ", name)
    name = _WHITESPACE_RE.sub(" ", name)[:MAX_EXPORT_NAME_CHARS]
    if not name.lower().endswith(".pdf"):
        name += ".pdf"
    return name


def parse_content_disposition_filename(header: str | None) -> str | None:
    if not header:
        return None

    match = _EXTENDED_FILENAME_RE.search(header)
    if match:
        value = match.group(1).strip().strip('"')
        encoded = _RFC5987_RE.match(value)
        if encoded:
            charset = encoded.group(1) or "utf-8"
            try:
                value = unquote(encoded.group(2), encoding=charset, errors="replace")
            except LookupError:
                value = unquote(encoded.group(2), errors="replace")
        return value.strip() or None

    match = _PLAIN_FILENAME_RE.search(header)
    if match:
        value = (match.group(2) or match.group(3) or "").strip()
        return value or None
    return None


def last_path_segment(url: str, *, decode: bool = False) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    segment = path.rsplit("/", 1)[-1].strip()
    return unquote(segment).strip() if decode else segment


def filename_from_url(url: str | None) -> str | None:
    """Best-effort filename from filename-like query parameters or the last path segment."""
    if not url:
        return None
    try:
        query = parse_qs(urlsplit(url).query, keep_blank_values=False)
    except ValueError:
        return None
    for key in _URL_FILENAME_KEYS:
        values = query.get(key)
        if values and values[0].strip():
            return values[0].strip()
    return last_path_segment(url, decode=True) or None
