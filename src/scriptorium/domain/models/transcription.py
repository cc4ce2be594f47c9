from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class ExtractedImage:
    image_id: str | None
    data: bytes | None


@dataclass(slots=True)
class TranscribedPage:
    index: int
    markdown: str
    images: list[ExtractedImage] = field(default_factory=list)


@dataclass(slots=True)
class TranscriptionResult:
    pages: list[TranscribedPage]
    model: str | None = None
    include_images: bool = True
