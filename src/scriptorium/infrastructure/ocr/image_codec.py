from __future__ import annotations

import base64
import io

from PIL import Image

JPEG_SIGNATURE = b"\xff\xd8\xff"
DEFAULT_JPEG_QUALITY = 92
IMAGE_DECODE_ERRORS = (OSError, Image.DecompressionBombError)


def is_jpeg(data: bytes) -> bool:
    return data.startswith(JPEG_SIGNATURE)


def to_jpeg_bytes(data: bytes, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Return ``data`` unchanged when it is already JPEG, otherwise re-encode it."""
    if is_jpeg(data):
        return data
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.split()[-1])
        elif image.mode != "RGB":
            flattened = image.convert("RGB")
        else:
            flattened = image
        out = io.BytesIO()
        flattened.save(out, format="JPEG", quality=quality)
    return out.getvalue()


def jpeg_data_url(data: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(data).decode("ascii")


def decode_inline_image(payload: str) -> bytes:
    """Decode bare base64 or a ``data:...;base64,`` URL."""
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    return base64.b64decode(payload)
