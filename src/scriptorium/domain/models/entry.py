from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field


@dataclass(slots=True)
class FileHandle:
    path: str
    external_id: str | None = None


@dataclass(slots=True)
class EntryFiles:
    transcript: FileHandle
    images: list[FileHandle] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=True)

    @classmethod
    def from_json(cls, raw: str) -> "EntryFiles":
        payload = json.loads(raw)
        return cls(
            transcript=FileHandle(**payload["transcript"]),
            images=[FileHandle(**item) for item in payload.get("images", [])],
        )


@dataclass(slots=True)
class Entry:
    digest_sha256: str
    display_name: str
    source_url: str
    kind: str
    created_at: str
    updated_at: str
    page_count: int
    image_count: int
    storage_folder: str
    files: EntryFiles
    transcript_text: str
