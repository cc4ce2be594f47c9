from __future__ import annotations

import binascii
import logging
from typing import Any

from scriptorium.core.errors import ContentDecodeError
from scriptorium.domain.models.resource import ResourceKind
from scriptorium.domain.models.transcription import (
    ExtractedImage,
    TranscribedPage,
    TranscriptionResult,
)
from scriptorium.infrastructure.ocr.image_codec import (
    DEFAULT_JPEG_QUALITY,
    IMAGE_DECODE_ERRORS,
    decode_inline_image,
    jpeg_data_url,
    to_jpeg_bytes,
)
from scriptorium.infrastructure.ocr.mistral_client import MistralOcrClient

logger = logging.getLogger(__name__)


class OcrOrchestrator:
    def __init__(self, client: MistralOcrClient, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> None:
        self.client = client
        self.jpeg_quality = jpeg_quality

    async def transcribe(
        self,
        content: bytes,
        kind: ResourceKind,
        name_hint: str,
        include_images: bool,
    ) -> TranscriptionResult:
        if kind is ResourceKind.DOCUMENT:
            file_id = await self.client.upload_file(content, name_hint or "document.pdf")
            payload = await self.client.ocr_file(file_id, include_images)
        else:
            try:
                jpeg = to_jpeg_bytes(content, quality=self.jpeg_quality)
            except IMAGE_DECODE_ERRORS as exc:
                raise ContentDecodeError(f"Could not decode image {name_hint}: {exc}") from exc
            payload = await self.client.ocr_image(jpeg_data_url(jpeg), include_images)
        result = parse_ocr_payload(payload, include_images=include_images)
        logger.info("OCR returned %d page(s) for %s", len(result.pages), name_hint)
        return result


def parse_ocr_payload(payload: dict[str, Any], *, include_images: bool = True) -> TranscriptionResult:
    pages: list[TranscribedPage] = []
    for position, raw_page in enumerate(payload.get("pages") or []):
        if not isinstance(raw_page, dict):
            continue
        index = raw_page.get("index")
        images = [_parse_image(raw) for raw in raw_page.get("images") or [] if isinstance(raw, dict)]
        pages.append(
            TranscribedPage(
                index=index if isinstance(index, int) else position,
                markdown=str(raw_page.get("markdown") or ""),
                images=images,
            )
        )
    return TranscriptionResult(
        pages=pages,
        model=payload.get("model"),
        include_images=include_images,
    )


def _parse_image(raw: dict[str, Any]) -> ExtractedImage:
    encoded = raw.get("image_base64") or raw.get("imageBase64")
    data: bytes | None = None
    if isinstance(encoded, str) and encoded:
        try:
            data = decode_inline_image(encoded)
        except (binascii.Error, ValueError):
            logger.warning("Discarding undecodable image %s", raw.get("id"))
    image_id = raw.get("id")
    return ExtractedImage(image_id=str(image_id) if image_id else None, data=data)
