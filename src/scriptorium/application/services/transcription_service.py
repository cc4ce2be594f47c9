from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from scriptorium.application.services.artifact_service import ArtifactPersister
from scriptorium.application.services.ocr_service import OcrOrchestrator
from scriptorium.application.services.resolution_service import ResourceResolver
from scriptorium.core.errors import ConfigurationError
from scriptorium.core.hashing import compute_bytes_digest
from scriptorium.domain.models.entry import Entry
from scriptorium.domain.models.resource import FetchedContent, PageContext, ResolvedResource
from scriptorium.infrastructure.db.repos.entry_repo import EntryRepo
from scriptorium.infrastructure.db.repos.preference_repo import PreferenceRepo
from scriptorium.infrastructure.http.fetcher import ContentFetcher

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"


@dataclass(slots=True)
class RunOutcome:
    status: RunStatus
    digest_sha256: str | None = None
    entry: Entry | None = None
    resource: ResolvedResource | None = None


async def content_for(resource: ResolvedResource, fetcher: ContentFetcher) -> FetchedContent:
    if resource.content is not None:
        return FetchedContent(
            url=resource.url,
            content=resource.content,
            content_type=resource.content_type,
            content_disposition=resource.content_disposition,
        )
    return await fetcher.fetch(resource.url)


class TranscriptionService:
    """Resolve, fetch, dedupe, transcribe and persist, at most once per digest.

    The in-flight map guarantees a single outstanding backend invocation per
    digest: callers arriving while a transcription runs await that same task.
    """

    def __init__(
        self,
        *,
        resolver: ResourceResolver,
        fetcher: ContentFetcher,
        entry_repo: EntryRepo,
        preference_repo: PreferenceRepo,
        persister: ArtifactPersister,
        orchestrator_factory: Callable[[str], OcrOrchestrator],
        api_key: str | None = None,
    ) -> None:
        self.resolver = resolver
        self.fetcher = fetcher
        self.entry_repo = entry_repo
        self.preference_repo = preference_repo
        self.persister = persister
        self.orchestrator_factory = orchestrator_factory
        self.api_key = api_key
        self._inflight: dict[str, asyncio.Task[Entry]] = {}

    def credential(self) -> str | None:
        return self.api_key or self.preference_repo.api_key()

    def require_credential(self) -> str:
        api_key = self.credential()
        if not api_key:
            raise ConfigurationError(
                "No OCR API key configured. Set SCRIPTORIUM_API_KEY or run 'scriptorium config set-key'."
            )
        return api_key

    async def run_for_page(self, page: PageContext) -> RunOutcome:
        api_key = self.require_credential()
        include_images = self.preference_repo.include_images()

        resource = await self.resolver.resolve(page)
        if resource is None:
            return RunOutcome(status=RunStatus.NOT_FOUND)

        fetched = await content_for(resource, self.fetcher)
        return await self.run_for_content(
            resource,
            fetched,
            api_key=api_key,
            include_images=include_images,
        )

    async def run_for_content(
        self,
        resource: ResolvedResource,
        fetched: FetchedContent,
        *,
        api_key: str,
        include_images: bool,
    ) -> RunOutcome:
        digest = compute_bytes_digest(fetched.content)

        existing = self.entry_repo.lookup(digest)
        if existing is not None:
            logger.info("Transcription already exists for %s (%s)", resource.url, digest)
            entry = self.entry_repo.touch(resource.url, digest) or existing
            return RunOutcome(RunStatus.ALREADY_EXISTS, digest, entry, resource)

        inflight = self._inflight.get(digest)
        if inflight is not None:
            logger.info("Waiting for in-flight transcription of %s", digest)
            await asyncio.shield(inflight)
            entry = self.entry_repo.touch(resource.url, digest)
            return RunOutcome(RunStatus.ALREADY_EXISTS, digest, entry, resource)

        task = asyncio.create_task(
            self._transcribe_and_store(resource, fetched, digest, api_key, include_images)
        )
        self._inflight[digest] = task
        task.add_done_callback(lambda done, key=digest: self._release(key, done))
        entry = await asyncio.shield(task)
        return RunOutcome(RunStatus.CREATED, digest, entry, resource)

    def is_inflight(self, digest_sha256: str) -> bool:
        return digest_sha256 in self._inflight

    def _release(self, digest_sha256: str, task: asyncio.Task[Entry]) -> None:
        if self._inflight.get(digest_sha256) is task:
            del self._inflight[digest_sha256]

    async def _transcribe_and_store(
        self,
        resource: ResolvedResource,
        fetched: FetchedContent,
        digest: str,
        api_key: str,
        include_images: bool,
    ) -> Entry:
        orchestrator = self.orchestrator_factory(api_key)
        display_name = self.resolver.display_name_for(resource, fetched)
        result = await orchestrator.transcribe(
            fetched.content,
            resource.kind,
            resource.name_hint,
            include_images,
        )
        entry = self.persister.persist(
            result,
            digest,
            display_name=display_name or resource.name_hint,
            source_url=resource.url,
            kind=resource.kind,
        )
        stored = self.entry_repo.put(digest, entry)
        return self.entry_repo.touch(resource.url, digest) or stored
