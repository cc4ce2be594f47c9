from __future__ import annotations

import logging
import shutil

import httpx

from scriptorium.application.services.artifact_service import ArtifactPersister
from scriptorium.application.services.autodetect_service import AutoDetectService
from scriptorium.application.services.ocr_service import OcrOrchestrator
from scriptorium.application.services.resolution_service import ResourceResolver
from scriptorium.application.services.transcription_service import TranscriptionService
from scriptorium.core.config import AppPaths, Settings
from scriptorium.core.errors import ArtifactMissingError, EntryNotFoundError, ScriptoriumError
from scriptorium.domain.models.commands import (
    AckResponse,
    ClearAutoPromptCommand,
    CommandResponse,
    DeleteEntryCommand,
    DeleteEntryResponse,
    EntrySummary,
    ErrorResponse,
    ExistingHint,
    GetTranscriptTextCommand,
    InitCommand,
    InitResponse,
    ListEntriesCommand,
    ListEntriesResponse,
    OpenArtifactCommand,
    OpenArtifactResponse,
    PromptInfo,
    ResourceInfo,
    RunOcrCommand,
    RunOcrResponse,
    SetCredentialCommand,
    SetImageInclusionPreferenceCommand,
    TranscriptTextResponse,
)
from scriptorium.domain.models.entry import Entry
from scriptorium.domain.models.prompt import PendingPrompt
from scriptorium.domain.models.resource import PageContext
from scriptorium.infrastructure.archive.store import ArtifactStore
from scriptorium.infrastructure.db.repos.entry_repo import EntryRepo
from scriptorium.infrastructure.db.repos.preference_repo import PreferenceRepo
from scriptorium.infrastructure.db.repos.prompt_repo import PromptRepo
from scriptorium.infrastructure.http.fetcher import ContentFetcher, credential_headers_from_settings
from scriptorium.infrastructure.http.viewer_cache import ViewerResponseCache
from scriptorium.infrastructure.ocr.mistral_client import MistralOcrClient
from scriptorium.infrastructure.office.export import OfficeSuiteExporter

logger = logging.getLogger(__name__)


class CommandService:
    """Single dispatch point for UI commands and browser events.

    Commands return a response model; failures inside a command become an
    :class:`ErrorResponse` rather than propagating to the caller.
    """

    def __init__(
        self,
        *,
        resolver: ResourceResolver,
        transcription: TranscriptionService,
        autodetect: AutoDetectService,
        viewer_cache: ViewerResponseCache,
        entry_repo: EntryRepo,
        preference_repo: PreferenceRepo,
        prompt_repo: PromptRepo,
        store: ArtifactStore,
    ) -> None:
        self.resolver = resolver
        self.transcription = transcription
        self.autodetect = autodetect
        self.viewer_cache = viewer_cache
        self.entry_repo = entry_repo
        self.preference_repo = preference_repo
        self.prompt_repo = prompt_repo
        self.store = store

    async def handle(self, command) -> CommandResponse:
        try:
            return await self._dispatch(command)
        except ScriptoriumError as exc:
            logger.warning("Command %s failed: %s", command.command, exc)
            return ErrorResponse(
                command=command.command,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _dispatch(self, command) -> CommandResponse:
        match command:
            case InitCommand(page=page):
                return await self.init(page.to_context())
            case RunOcrCommand(page=page):
                return await self.run_ocr(page.to_context())
            case OpenArtifactCommand(digest=digest, reveal=reveal):
                return self.open_artifact(digest, reveal=reveal)
            case ListEntriesCommand(limit=limit):
                return ListEntriesResponse(entries=self.list_entries(limit))
            case DeleteEntryCommand(digest=digest, purge_files=purge_files):
                return DeleteEntryResponse(deleted=self.delete_entry(digest, purge_files=purge_files))
            case GetTranscriptTextCommand(digest=digest):
                return TranscriptTextResponse(digest=digest, text=self.transcript_text(digest))
            case SetImageInclusionPreferenceCommand(value=value):
                self.preference_repo.set_include_images(value)
                return AckResponse(command=command.command)
            case ClearAutoPromptCommand(page_url=page_url):
                cleared = self.prompt_repo.clear(page_url)
                logger.debug("Cleared %d pending prompt(s)", cleared)
                return AckResponse(command=command.command)
            case SetCredentialCommand(api_key=api_key):
                self.preference_repo.set_api_key(api_key)
                return AckResponse(command=command.command)
            case _:
                raise TypeError(f"Unsupported command: {command!r}")

    async def init(self, page: PageContext) -> InitResponse:
        resource = await self.resolver.resolve(page, export_office=False)

        existing = ExistingHint()
        if resource is not None:
            hinted = self.entry_repo.digest_for_url(resource.url)
            if hinted is not None and self.entry_repo.lookup(hinted) is not None:
                existing = ExistingHint(found=True, digest=hinted)

        prompt = self.prompt_repo.get_for_page(page.url)
        if prompt is not None and self.entry_repo.lookup(prompt.digest_sha256) is None:
            self.prompt_repo.clear(page.url)
            prompt = None

        return InitResponse(
            resource=ResourceInfo.from_resource(resource) if resource is not None else None,
            existing=existing,
            entries=self.list_entries(),
            has_credential=self.transcription.credential() is not None,
            pending_prompt=PromptInfo.from_prompt(prompt) if prompt is not None else None,
            include_images=self.preference_repo.include_images(),
        )

    async def run_ocr(self, page: PageContext) -> RunOcrResponse:
        outcome = await self.transcription.run_for_page(page)
        if outcome.digest_sha256 is not None:
            self.prompt_repo.clear(page.url)
        return RunOcrResponse(
            status=outcome.status.value,
            digest=outcome.digest_sha256,
            entry=EntrySummary.from_entry(outcome.entry) if outcome.entry is not None else None,
        )

    def open_artifact(self, digest_sha256: str, *, reveal: bool = False) -> OpenArtifactResponse:
        entry = self.require_entry(digest_sha256)
        transcript = self.store.locate(entry.files.transcript)
        if transcript is None:
            raise ArtifactMissingError(
                f"Transcript for {digest_sha256} is missing from {self.store.base_dir}"
            )
        if not self.store.verify_integrity(transcript, entry.files.transcript):
            logger.warning("Transcript %s no longer matches its recorded digest", transcript)
        revealed = self.store.reveal(transcript) if reveal else False
        return OpenArtifactResponse(
            folder=str(transcript.parent),
            transcript_path=str(transcript),
            revealed=revealed,
        )

    def list_entries(self, limit: int | None = None) -> list[EntrySummary]:
        return [EntrySummary.from_entry(entry) for entry in self.entry_repo.list_entries(limit)]

    def delete_entry(self, digest_sha256: str, *, purge_files: bool = False) -> bool:
        folder = self.store.folder_abspath_for_digest(digest_sha256)
        deleted = self.entry_repo.remove(digest_sha256)
        self.prompt_repo.clear_for_digest(digest_sha256)
        if deleted and purge_files and folder.is_dir():
            shutil.rmtree(folder)
            logger.info("Removed artifact folder %s", folder)
        if deleted:
            logger.info("Deleted entry %s", digest_sha256)
        return deleted

    def transcript_text(self, digest_sha256: str) -> str:
        entry = self.require_entry(digest_sha256)
        if entry.transcript_text:
            return entry.transcript_text
        transcript = self.store.locate(entry.files.transcript)
        if transcript is None:
            raise ArtifactMissingError(f"No transcript content stored for {digest_sha256}")
        return transcript.read_text(encoding="utf-8")

    def require_entry(self, digest_sha256: str) -> Entry:
        entry = self.entry_repo.lookup(digest_sha256)
        if entry is None:
            raise EntryNotFoundError(f"No transcription with digest {digest_sha256}")
        return entry

    def observe_response(
        self,
        page_id: str,
        url: str,
        *,
        content_type: str = "",
        content_disposition: str = "",
        resource_type: str = "main_frame",
    ) -> bool:
        return self.viewer_cache.observe(
            page_id,
            url,
            content_type=content_type,
            content_disposition=content_disposition,
            resource_type=resource_type,
        )

    async def navigation_complete(self, page: PageContext) -> PendingPrompt | None:
        return await self.autodetect.on_navigation_complete(page)

    def page_closed(self, page_id: str) -> None:
        self.viewer_cache.forget(page_id)


def build_command_service(
    paths: AppPaths,
    settings: Settings,
    client: httpx.AsyncClient,
) -> CommandService:
    entry_repo = EntryRepo(paths.db_path)
    preference_repo = PreferenceRepo(paths.db_path)
    prompt_repo = PromptRepo(paths.db_path)
    store = ArtifactStore(paths.artifacts_dir)

    fetcher = ContentFetcher(client, credential_headers_from_settings(settings))
    viewer_cache = ViewerResponseCache(
        maxsize=settings.viewer_cache_size,
        ttl_seconds=settings.viewer_cache_ttl_seconds,
    )
    resolver = ResourceResolver(
        fetcher,
        viewer_cache,
        OfficeSuiteExporter(fetcher, timeout_seconds=settings.export_timeout_seconds),
    )

    def orchestrator_for(api_key: str) -> OcrOrchestrator:
        ocr_client = MistralOcrClient(
            client,
            api_key,
            api_base=settings.api_base,
            model=settings.ocr_model,
        )
        return OcrOrchestrator(ocr_client, jpeg_quality=settings.jpeg_quality)

    transcription = TranscriptionService(
        resolver=resolver,
        fetcher=fetcher,
        entry_repo=entry_repo,
        preference_repo=preference_repo,
        persister=ArtifactPersister(store),
        orchestrator_factory=orchestrator_for,
        api_key=settings.api_key,
    )
    autodetect = AutoDetectService(
        resolver=resolver,
        fetcher=fetcher,
        entry_repo=entry_repo,
        prompt_repo=prompt_repo,
    )
    return CommandService(
        resolver=resolver,
        transcription=transcription,
        autodetect=autodetect,
        viewer_cache=viewer_cache,
        entry_repo=entry_repo,
        preference_repo=preference_repo,
        prompt_repo=prompt_repo,
        store=store,
    )
