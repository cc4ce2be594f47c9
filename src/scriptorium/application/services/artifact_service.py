from __future__ import annotations

import logging
import re

from scriptorium.core.time import now_utc_iso
from scriptorium.domain.models.entry import Entry, EntryFiles, FileHandle
from scriptorium.domain.models.resource import ResourceKind
from scriptorium.domain.models.transcription import TranscribedPage, TranscriptionResult
from scriptorium.infrastructure.archive.store import TRANSCRIPT_FILENAME, ArtifactStore

logger = logging.getLogger(__name__)

_MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")


def markdown_image_names(markdown: str) -> list[str]:
    return [match.group(1).strip() for match in _MARKDOWN_IMAGE_RE.finditer(markdown)]


def build_transcript(result: TranscriptionResult) -> str:
    return "".join(f"{page.markdown}\n\n" for page in result.pages)


def pick_image_filename(page: TranscribedPage, position: int, names_from_markdown: list[str]) -> str:
    if position < len(names_from_markdown) and names_from_markdown[position]:
        return names_from_markdown[position]
    image = page.images[position]
    if image.image_id:
        return image.image_id
    return f"img-{page.index}-{position}.jpeg"


class ArtifactPersister:
    """Writes a transcription under its digest folder and builds the Entry."""

    def __init__(self, store: ArtifactStore) -> None:
        self.store = store

    def persist(
        self,
        result: TranscriptionResult,
        digest_sha256: str,
        *,
        display_name: str,
        source_url: str,
        kind: ResourceKind = ResourceKind.DOCUMENT,
    ) -> Entry:
        transcript = build_transcript(result)
        transcript_handle = self.store.write_artifact(
            digest_sha256,
            TRANSCRIPT_FILENAME,
            transcript.encode("utf-8"),
        )

        image_handles: list[FileHandle] = []
        if result.include_images:
            for page in result.pages:
                names = markdown_image_names(page.markdown)
                for position, image in enumerate(page.images):
                    if not image.data:
                        continue
                    filename = pick_image_filename(page, position, names)
                    if not self.store.safe_filename(filename) or filename == TRANSCRIPT_FILENAME:
                        filename = f"img-{page.index}-{position}.jpeg"
                    image_handles.append(self.store.write_artifact(digest_sha256, filename, image.data))

        now = now_utc_iso()
        entry = Entry(
            digest_sha256=digest_sha256,
            display_name=display_name,
            source_url=source_url,
            kind=kind.value,
            created_at=now,
            updated_at=now,
            page_count=len(result.pages),
            image_count=len(image_handles),
            storage_folder=self.store.folder_relpath_for_digest(digest_sha256),
            files=EntryFiles(transcript=transcript_handle, images=image_handles),
            transcript_text=transcript,
        )
        logger.info(
            "Persisted %s: %d page(s), %d image(s)",
            digest_sha256,
            entry.page_count,
            entry.image_count,
        )
        return entry
