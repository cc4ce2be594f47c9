from __future__ import annotations

import logging
from typing import Any

import httpx

from scriptorium.core.errors import BackendError, BackendProtocolError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.mistral.ai/v1"
DEFAULT_OCR_MODEL = "mistral-ocr-latest"


class MistralOcrClient:
    """Thin async client for the ``/files`` and ``/ocr`` endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        model: str = DEFAULT_OCR_MODEL,
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.model = model

    async def upload_file(self, content: bytes, filename: str) -> str:
        response = await self._post(
            "files",
            "File upload",
            data={"purpose": "ocr"},
            files={"file": (filename, content, "application/pdf")},
        )
        payload = self._json_or_raise(response, "File upload")
        file_id = payload.get("id") if isinstance(payload, dict) else None
        if not file_id:
            raise BackendProtocolError(
                "File upload response did not include a file id.",
                status_code=response.status_code,
                body=response.text,
            )
        logger.debug("Uploaded %s (%d bytes) as file %s", filename, len(content), file_id)
        return str(file_id)

    async def ocr_file(self, file_id: str, include_images: bool) -> dict[str, Any]:
        return await self._ocr({"file_id": file_id}, include_images)

    async def ocr_image(self, image_data_url: str, include_images: bool) -> dict[str, Any]:
        return await self._ocr({"type": "image_url", "image_url": image_data_url}, include_images)

    async def _ocr(self, document: dict[str, Any], include_images: bool) -> dict[str, Any]:
        body = {
            "document": document,
            "model": self.model,
            "include_image_base64": bool(include_images),
        }
        response = await self._post("ocr", "OCR", json=body)
        payload = self._json_or_raise(response, "OCR")
        if not isinstance(payload, dict) or not isinstance(payload.get("pages"), list):
            raise BackendProtocolError(
                "OCR response did not include a pages list.",
                status_code=response.status_code,
                body=response.text,
            )
        return payload

    async def _post(self, endpoint: str, operation: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.post(
                f"{self.api_base}/{endpoint}",
                headers=self._auth_headers(),
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise BackendError(f"{operation} request failed: {exc}") from exc

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    @staticmethod
    def _json_or_raise(response: httpx.Response, operation: str) -> Any:
        if not response.is_success:
            raise BackendError(
                f"{operation} request failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise BackendProtocolError(
                f"{operation} response was not valid JSON.",
                status_code=response.status_code,
                body=response.text,
            ) from exc
