from __future__ import annotations

import logging

import httpx

from scriptorium.application.services.resolution_service import ResourceResolver
from scriptorium.application.services.transcription_service import content_for
from scriptorium.core.errors import ScriptoriumError
from scriptorium.core.hashing import compute_bytes_digest
from scriptorium.core.time import now_utc_iso
from scriptorium.domain.models.prompt import PendingPrompt
from scriptorium.domain.models.resource import PageContext
from scriptorium.infrastructure.db.repos.entry_repo import EntryRepo
from scriptorium.infrastructure.db.repos.prompt_repo import PromptRepo
from scriptorium.infrastructure.http.fetcher import ContentFetcher

logger = logging.getLogger(__name__)


class AutoDetectService:
    """Flags pages whose resource has already been transcribed.

    Read-only with respect to the index and never talks to the OCR backend:
    a miss simply records nothing.
    """

    def __init__(
        self,
        *,
        resolver: ResourceResolver,
        fetcher: ContentFetcher,
        entry_repo: EntryRepo,
        prompt_repo: PromptRepo,
    ) -> None:
        self.resolver = resolver
        self.fetcher = fetcher
        self.entry_repo = entry_repo
        self.prompt_repo = prompt_repo

    async def on_navigation_complete(self, page: PageContext) -> PendingPrompt | None:
        try:
            digest = await self._detect_existing_digest(page)
        except (ScriptoriumError, httpx.HTTPError, ValueError) as exc:
            logger.debug("Auto-detect skipped for %s: %s", page.url, exc)
            return None
        if digest is None:
            return None

        prompt = PendingPrompt(
            digest_sha256=digest,
            page_id=page.page_id,
            page_url=page.url,
            created_at=now_utc_iso(),
        )
        self.prompt_repo.record(prompt)
        logger.info("Page %s already has transcription %s", page.url, digest)
        return prompt

    async def _detect_existing_digest(self, page: PageContext) -> str | None:
        resource = await self.resolver.resolve(page, use_viewer_cache=False)
        if resource is None:
            return None

        if resource.content is None:
            hinted = self.entry_repo.digest_for_url(resource.url)
            if hinted is not None and self.entry_repo.lookup(hinted) is not None:
                return hinted

        fetched = await content_for(resource, self.fetcher)
        digest = compute_bytes_digest(fetched.content)
        if self.entry_repo.lookup(digest) is None:
            return None
        return digest
