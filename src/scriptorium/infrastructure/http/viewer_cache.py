from __future__ import annotations

import logging
import time
from typing import Callable

from cachetools import TTLCache

from scriptorium.core.media_types import is_pdf_content_type
from scriptorium.domain.models.resource import ViewerResponse

logger = logging.getLogger(__name__)


class ViewerResponseCache:
    """Most recent main-frame PDF response per page, bounded by size and age."""

    def __init__(
        self,
        maxsize: int = 256,
        ttl_seconds: float = 3600.0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timer = timer
        self._entries: TTLCache[str, ViewerResponse] = TTLCache(
            maxsize=maxsize,
            ttl=ttl_seconds,
            timer=timer,
        )

    def observe(
        self,
        page_id: str,
        url: str,
        *,
        content_type: str = "",
        content_disposition: str = "",
        resource_type: str = "main_frame",
    ) -> bool:
        if resource_type != "main_frame" or not is_pdf_content_type(content_type):
            return False
        self._entries[page_id] = ViewerResponse(
            url=url,
            observed_at=self._timer(),
            content_type=content_type,
            content_disposition=content_disposition,
        )
        logger.debug("Captured PDF response for page %s: %s", page_id, url)
        return True

    def latest(self, page_id: str) -> ViewerResponse | None:
        return self._entries.get(page_id)

    def forget(self, page_id: str) -> None:
        self._entries.pop(page_id, None)

    def __len__(self) -> int:
        return len(self._entries)
