import base64
import io

from PIL import Image

from scriptorium.infrastructure.ocr.image_codec import (
    decode_inline_image,
    is_jpeg,
    jpeg_data_url,
    to_jpeg_bytes,
)


def _png(mode: str = "RGBA") -> bytes:
    color = (10, 20, 30, 0) if mode == "RGBA" else (10, 20, 30)
    image = Image.new(mode, (4, 3), color)
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


def test_jpeg_input_passes_through_unchanged() -> None:
    data = b"\xff\xd8\xff\xe0already-jpeg"
    assert to_jpeg_bytes(data) is data


def test_transparent_png_is_flattened_onto_white() -> None:
    converted = to_jpeg_bytes(_png("RGBA"))
    assert is_jpeg(converted)
    with Image.open(io.BytesIO(converted)) as image:
        assert image.format == "JPEG"
        assert image.size == (4, 3)
        red, green, blue = image.convert("RGB").getpixel((0, 0))
        assert min(red, green, blue) > 240


def test_opaque_png_is_reencoded() -> None:
    assert is_jpeg(to_jpeg_bytes(_png("RGB"), quality=80))


def test_data_url_round_trip() -> None:
    url = jpeg_data_url(b"\xff\xd8\xffabc")
    assert url.startswith("data:image/jpeg;base64,")
    assert decode_inline_image(url) == b"\xff\xd8\xffabc"
    assert decode_inline_image(base64.b64encode(b"raw").decode("ascii")) == b"raw"
