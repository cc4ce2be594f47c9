from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ResourceKind(str, Enum):
    DOCUMENT = "document"
    IMAGE = "image"


@dataclass(slots=True)
class PageContext:
    """The page a user is looking at, as reported by the UI."""

    page_id: str
    url: str
    title: str | None = None
    html: str | None = None


@dataclass(slots=True)
class FetchedContent:
    url: str
    content: bytes
    content_type: str = ""
    content_disposition: str = ""


@dataclass(slots=True)
class ViewerResponse:
    url: str
    observed_at: float
    content_type: str = ""
    content_disposition: str = ""


@dataclass(slots=True)
class ResolvedResource:
    url: str
    name_hint: str
    kind: ResourceKind
    strategy: str
    content: bytes | None = field(default=None, repr=False)
    content_type: str = ""
    content_disposition: str = ""

    @property
    def title_is_final(self) -> bool:
        return self.strategy == "office_export"
