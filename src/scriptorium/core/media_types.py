from __future__ import annotations

PDF_MIME_TYPES = ("application/pdf", "application/x-pdf")
PDF_EXTENSION = ".pdf"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


def is_pdf_content_type(content_type: str | None) -> bool:
    lowered = (content_type or "").lower()
    return any(mime in lowered for mime in PDF_MIME_TYPES)
