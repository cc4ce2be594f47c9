"""Request/response pairs of the UI-facing command surface.

Every request carries a ``command`` tag; :data:`Command` is the closed union
the dispatcher matches on.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from scriptorium.domain.models.entry import Entry
from scriptorium.domain.models.prompt import PendingPrompt
from scriptorium.domain.models.resource import PageContext, ResolvedResource

Digest = Annotated[str, Field(pattern=r"^[0-9a-f]{64}$")]


class PageModel(BaseModel):
    page_id: str
    url: str
    title: str | None = None
    html: str | None = None

    def to_context(self) -> PageContext:
        return PageContext(page_id=self.page_id, url=self.url, title=self.title, html=self.html)


class InitCommand(BaseModel):
    command: Literal["init"] = "init"
    page: PageModel


class RunOcrCommand(BaseModel):
    command: Literal["run_ocr"] = "run_ocr"
    page: PageModel


class OpenArtifactCommand(BaseModel):
    command: Literal["open_artifact"] = "open_artifact"
    digest: Digest
    reveal: bool = False


class ListEntriesCommand(BaseModel):
    command: Literal["list_entries"] = "list_entries"
    limit: int | None = Field(default=None, ge=1)


class DeleteEntryCommand(BaseModel):
    command: Literal["delete_entry"] = "delete_entry"
    digest: Digest
    purge_files: bool = False


class GetTranscriptTextCommand(BaseModel):
    command: Literal["get_transcript_text"] = "get_transcript_text"
    digest: Digest


class SetImageInclusionPreferenceCommand(BaseModel):
    command: Literal["set_image_inclusion_preference"] = "set_image_inclusion_preference"
    value: bool


class ClearAutoPromptCommand(BaseModel):
    command: Literal["clear_auto_prompt"] = "clear_auto_prompt"
    page_url: str | None = None


class SetCredentialCommand(BaseModel):
    command: Literal["set_credential"] = "set_credential"
    api_key: str = Field(min_length=1)


Command = Annotated[
    Union[
        InitCommand,
        RunOcrCommand,
        OpenArtifactCommand,
        ListEntriesCommand,
        DeleteEntryCommand,
        GetTranscriptTextCommand,
        SetImageInclusionPreferenceCommand,
        ClearAutoPromptCommand,
        SetCredentialCommand,
    ],
    Field(discriminator="command"),
]

_COMMAND_ADAPTER: TypeAdapter[Any] = TypeAdapter(Command)


def parse_command(payload: Any) -> Any:
    """Validate a raw mapping into one of the :data:`Command` variants."""
    return _COMMAND_ADAPTER.validate_python(payload)


class EntrySummary(BaseModel):
    digest: str
    display_name: str
    source_url: str
    kind: str
    created_at: str
    updated_at: str
    page_count: int
    image_count: int
    storage_folder: str
    transcript_path: str

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntrySummary":
        return cls(
            digest=entry.digest_sha256,
            display_name=entry.display_name,
            source_url=entry.source_url,
            kind=entry.kind,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            page_count=entry.page_count,
            image_count=entry.image_count,
            storage_folder=entry.storage_folder,
            transcript_path=entry.files.transcript.path,
        )


class ResourceInfo(BaseModel):
    url: str
    name: str
    kind: str
    strategy: str
    is_ocrable: bool = True

    @classmethod
    def from_resource(cls, resource: ResolvedResource) -> "ResourceInfo":
        return cls(
            url=resource.url,
            name=resource.name_hint,
            kind=resource.kind.value,
            strategy=resource.strategy,
        )


class ExistingHint(BaseModel):
    found: bool = False
    digest: str | None = None


class PromptInfo(BaseModel):
    digest: str
    page_id: str
    page_url: str
    created_at: str

    @classmethod
    def from_prompt(cls, prompt: PendingPrompt) -> "PromptInfo":
        return cls(
            digest=prompt.digest_sha256,
            page_id=prompt.page_id,
            page_url=prompt.page_url,
            created_at=prompt.created_at,
        )


class CommandResponse(BaseModel):
    ok: bool = True
    command: str


class InitResponse(CommandResponse):
    command: str = "init"
    resource: ResourceInfo | None = None
    existing: ExistingHint = Field(default_factory=ExistingHint)
    entries: list[EntrySummary] = Field(default_factory=list)
    has_credential: bool = False
    pending_prompt: PromptInfo | None = None
    include_images: bool = True


class RunOcrResponse(CommandResponse):
    command: str = "run_ocr"
    status: Literal["created", "already_exists", "not_found"]
    digest: str | None = None
    entry: EntrySummary | None = None


class OpenArtifactResponse(CommandResponse):
    command: str = "open_artifact"
    folder: str
    transcript_path: str
    revealed: bool = False


class ListEntriesResponse(CommandResponse):
    command: str = "list_entries"
    entries: list[EntrySummary]


class DeleteEntryResponse(CommandResponse):
    command: str = "delete_entry"
    deleted: bool


class TranscriptTextResponse(CommandResponse):
    command: str = "get_transcript_text"
    digest: str
    text: str


class AckResponse(CommandResponse):
    pass


class ErrorResponse(CommandResponse):
    ok: bool = False
    error: str
    error_type: str
