from __future__ import annotations

import html
from typing import Iterator

from scriptorium.core.document_titles import normalize_title_candidate

PDF_SIGNATURE = b"%PDF"

_WHITESPACE = b"\x00\t\n\x0c\r "
_DELIMITERS = b"()<>[]{}/%"
_HEX_DIGITS = b"0123456789abcdefABCDEF"
_LITERAL_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}


def looks_like_pdf(data: bytes) -> bool:
    return data[:4] == PDF_SIGNATURE


def extract_pdf_title(data: bytes) -> str | None:
    return PdfTitleScanner(data).title()


def decode_pdf_text_string(raw: bytes, *, prefer_utf8: bool = False) -> str:
    if raw[:2] == b"\xfe\xff":
        return raw[2:].decode("utf-16-be", errors="replace")
    if raw[:2] == b"\xff\xfe":
        return raw[2:].decode("utf-16-le", errors="replace")
    if raw[:3] == b"\xef\xbb\xbf":
        return raw[3:].decode("utf-8", errors="replace")
    if prefer_utf8:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            pass
    return raw.decode("latin-1")


class PdfTitleScanner:
    """Reads a document title out of raw PDF bytes without a full PDF parser.

    Looks at the XMP packet (``dc:title``) first and then every ``/Title`` key
    of an Info dictionary, in file order. Literal strings are parsed with
    balanced parentheses and escape handling; hex strings are decoded with
    BOM-aware UTF-16 support.
    """

    def __init__(self, data: bytes) -> None:
        self.data = data

    def title(self) -> str | None:
        for candidate in self.candidates():
            normalized = normalize_title_candidate(candidate)
            if normalized:
                return normalized
        return None

    def candidates(self) -> Iterator[str]:
        xmp = self.xmp_title()
        if xmp is not None:
            yield xmp
        yield from self.info_titles()

    def xmp_title(self) -> str | None:
        data = self.data
        start = data.find(b"<dc:title")
        if start == -1:
            return None
        block_end = data.find(b"</dc:title>", start)
        alt = data.find(b"<rdf:Alt", start)
        if alt == -1:
            return None
        item = data.find(b"<rdf:li", alt)
        if item == -1 or (block_end != -1 and item > block_end):
            return None
        tag_end = data.find(b">", item)
        if tag_end == -1 or data[tag_end - 1 : tag_end] == b"/":
            return None
        close = data.find(b"</rdf:li>", tag_end)
        if close == -1:
            return None
        raw = data[tag_end + 1 : close]
        return html.unescape(raw.decode("utf-8", errors="replace"))

    def info_titles(self) -> Iterator[str]:
        data = self.data
        key = b"/Title"
        pos = data.find(key)
        while pos != -1:
            cursor = pos + len(key)
            if cursor < len(data) and data[cursor] not in _WHITESPACE and data[cursor] not in _DELIMITERS:
                # A longer name such as /TitleFoo.
                pos = data.find(key, cursor)
                continue
            cursor = self._skip_whitespace(cursor)
            marker = data[cursor : cursor + 1]
            value: str | None = None
            if marker == b"(":
                value = decode_pdf_text_string(self._read_literal(cursor))
            elif marker == b"<" and data[cursor + 1 : cursor + 2] != b"<":
                raw = self._read_hex(cursor)
                if raw is not None:
                    value = decode_pdf_text_string(raw, prefer_utf8=True)
            if value is not None:
                yield value
            pos = data.find(key, cursor)

    def _skip_whitespace(self, cursor: int) -> int:
        data = self.data
        while cursor < len(data) and data[cursor] in _WHITESPACE:
            cursor += 1
        return cursor

    def _read_literal(self, start: int) -> bytes:
        data = self.data
        out = bytearray()
        depth = 1
        i = start + 1
        while i < len(data):
            c = data[i]
            if c == 0x5C:  # backslash
                i += 1
                if i >= len(data):
                    break
                n = data[i]
                if n in _LITERAL_ESCAPES:
                    out += _LITERAL_ESCAPES[n]
                elif 0x30 <= n <= 0x37:
                    digits = bytes([n])
                    while len(digits) < 3 and i + 1 < len(data) and 0x30 <= data[i + 1] <= 0x37:
                        i += 1
                        digits += bytes([data[i]])
                    out.append(int(digits, 8) & 0xFF)
                elif n == 0x0D:
                    # Line continuation; swallow an optional LF after CR.
                    if i + 1 < len(data) and data[i + 1] == 0x0A:
                        i += 1
                elif n == 0x0A:
                    pass
                else:
                    out.append(n)
            elif c == 0x28:  # (
                depth += 1
                out.append(c)
            elif c == 0x29:  # )
                depth -= 1
                if depth == 0:
                    break
                out.append(c)
            else:
                out.append(c)
            i += 1
        return bytes(out)

    def _read_hex(self, start: int) -> bytes | None:
        data = self.data
        end = data.find(b">", start + 1)
        if end == -1:
            return None
        body = data[start + 1 : end]
        digits = bytes(b for b in body if b in _HEX_DIGITS)
        if any(b not in _HEX_DIGITS and b not in _WHITESPACE for b in body):
            return None
        if len(digits) < 2:
            return None
        if len(digits) % 2:
            digits += b"0"
        return bytes.fromhex(digits.decode("ascii"))
