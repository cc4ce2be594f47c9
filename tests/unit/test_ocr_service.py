import asyncio
import base64
import io
import json

import httpx
import pytest
from PIL import Image

from scriptorium.application.services.ocr_service import OcrOrchestrator, parse_ocr_payload
from scriptorium.core.errors import BackendError, BackendProtocolError, ContentDecodeError
from scriptorium.domain.models.resource import ResourceKind
from scriptorium.infrastructure.ocr.mistral_client import MistralOcrClient


def _client(fake_web) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=fake_web.transport())


def test_document_is_uploaded_then_transcribed(fake_web, pdf_factory) -> None:
    async def scenario():
        async with _client(fake_web) as client:
            orchestrator = OcrOrchestrator(MistralOcrClient(client, "sk-test"))
            return await orchestrator.transcribe(pdf_factory(), ResourceKind.DOCUMENT, "doc.pdf", True)

    result = asyncio.run(scenario())

    upload, ocr = fake_web.backend_calls()
    assert upload.url.path == "/v1/files"
    assert upload.headers["authorization"] == "Bearer sk-test"
    assert b'name="purpose"' in upload.content and b"ocr" in upload.content
    body = json.loads(ocr.content)
    assert body == {
        "document": {"file_id": "file-1"},
        "model": "mistral-ocr-latest",
        "include_image_base64": True,
    }
    assert [page.index for page in result.pages] == [0, 1]
    assert result.pages[0].images[0].data.startswith(b"\xff\xd8\xff")
    assert result.model == "mistral-ocr-latest"


def test_image_is_sent_inline_as_jpeg(fake_web) -> None:
    png = io.BytesIO()
    Image.new("RGB", (2, 2), (255, 0, 0)).save(png, format="PNG")

    async def scenario():
        async with _client(fake_web) as client:
            orchestrator = OcrOrchestrator(MistralOcrClient(client, "sk-test"))
            return await orchestrator.transcribe(png.getvalue(), ResourceKind.IMAGE, "scan.png", False)

    asyncio.run(scenario())

    calls = fake_web.backend_calls()
    assert [call.url.path for call in calls] == ["/v1/ocr"]
    body = json.loads(calls[0].content)
    assert body["document"]["type"] == "image_url"
    prefix = "data:image/jpeg;base64,"
    assert body["document"]["image_url"].startswith(prefix)
    assert base64.b64decode(body["document"]["image_url"][len(prefix):]).startswith(b"\xff\xd8\xff")
    assert body["include_image_base64"] is False


def test_backend_rejection_raises_backend_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, text="Unauthorized"))

    async def scenario():
        async with httpx.AsyncClient(transport=transport) as client:
            await MistralOcrClient(client, "bad").upload_file(b"%PDF", "doc.pdf")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code == 401
    assert excinfo.value.body == "Unauthorized"


def test_missing_fields_raise_protocol_errors() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"object": "file"}))

    async def upload():
        async with httpx.AsyncClient(transport=transport) as client:
            await MistralOcrClient(client, "sk").upload_file(b"%PDF", "doc.pdf")

    async def ocr():
        async with httpx.AsyncClient(transport=transport) as client:
            await MistralOcrClient(client, "sk").ocr_file("file-1", True)

    with pytest.raises(BackendProtocolError):
        asyncio.run(upload())
    with pytest.raises(BackendProtocolError):
        asyncio.run(ocr())


def test_parse_payload_tolerates_camel_case_and_missing_fields() -> None:
    payload = {
        "pages": [
            {"markdown": "first", "images": [{"id": "a.jpeg", "imageBase64": base64.b64encode(b"A").decode()}]},
            {"index": 7, "images": [{"id": "b.jpeg"}, {"id": "c.jpeg", "image_base64": "abc"}]},
            "garbage",
        ]
    }
    result = parse_ocr_payload(payload, include_images=False)

    assert [page.index for page in result.pages] == [0, 7]
    assert result.pages[0].images[0].data == b"A"
    assert result.pages[1].markdown == ""
    assert [image.data for image in result.pages[1].images] == [None, None]
    assert result.include_images is False


def test_undecodable_image_raises_before_backend_call(fake_web) -> None:
    async def scenario():
        async with _client(fake_web) as client:
            orchestrator = OcrOrchestrator(MistralOcrClient(client, "sk-test"))
            await orchestrator.transcribe(b"<html>not an image</html>", ResourceKind.IMAGE, "x.png", True)

    with pytest.raises(ContentDecodeError):
        asyncio.run(scenario())
    assert fake_web.backend_calls() == []


def test_transport_failure_is_reported_as_backend_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await MistralOcrClient(client, "sk").ocr_file("file-1", True)

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code is None


def test_oversized_image_is_reported_as_decode_error(fake_web, monkeypatch: pytest.MonkeyPatch) -> None:
    buf = io.BytesIO()
    Image.new("RGB", (64, 64), (10, 20, 30)).save(buf, format="PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    async def scenario():
        async with _client(fake_web) as client:
            orchestrator = OcrOrchestrator(MistralOcrClient(client, "sk-test"))
            await orchestrator.transcribe(buf.getvalue(), ResourceKind.IMAGE, "huge.png", True)

    with pytest.raises(ContentDecodeError):
        asyncio.run(scenario())
    assert fake_web.backend_calls() == []
