from scriptorium.core.document_titles import (
    MAX_TITLE_CHARS,
    filename_from_url,
    normalize_title_candidate,
    parse_content_disposition_filename,
    sanitize_export_name,
)


def test_normalize_title_collapses_whitespace_and_control_characters() -> None:
    assert normalize_title_candidate("  Annual\x00Report\n\t2024  ") == "Annual Report 2024"


def test_normalize_title_is_idempotent() -> None:
    samples = ["  Annual\x00Report\n\t2024  ", "x" * 500 + " tail", "Bericht über\r\nDinge"]
    for sample in samples:
        once = normalize_title_candidate(sample)
        assert once is not None
        assert normalize_title_candidate(once) == once


def test_normalize_title_rejects_placeholders_and_blank_values() -> None:
    assert normalize_title_candidate("Untitled") is None
    assert normalize_title_candidate("  UNKNOWN ") is None
    assert normalize_title_candidate("document") is None
    assert normalize_title_candidate("\x01\x02  ") is None
    assert normalize_title_candidate(None) is None


def test_normalize_title_caps_length() -> None:
    title = normalize_title_candidate("a" * 250)
    assert title is not None
    assert len(title) == MAX_TITLE_CHARS


def test_sanitize_export_name_replaces_unsafe_characters() -> None:
    assert sanitize_export_name('Budget: 2024/25 "draft"') == "Budget 2024 25 draft .pdf"
    assert sanitize_export_name(None, fallback="slides") == "slides.pdf"
    assert sanitize_export_name("notes.PDF") == "notes.PDF"


def test_sanitize_export_name_caps_length_before_extension() -> None:
    name = sanitize_export_name("b" * 300)
    assert name == "b" * 100 + ".pdf"


def test_content_disposition_prefers_extended_filename() -> None:
    header = "attachment; filename=\"fallback.pdf\"; filename*=UTF-8''Caf%C3%A9%20menu.pdf"
    assert parse_content_disposition_filename(header) == "Café menu.pdf"


def test_content_disposition_plain_filename() -> None:
    assert parse_content_disposition_filename('inline; filename="report.pdf"') == "report.pdf"
    assert parse_content_disposition_filename("attachment; filename=plain.pdf") == "plain.pdf"
    assert parse_content_disposition_filename("inline") is None
    assert parse_content_disposition_filename(None) is None


def test_filename_from_url_checks_query_keys_then_path() -> None:
    assert filename_from_url("https://x.test/get?id=7&filename=minutes.pdf") == "minutes.pdf"
    assert filename_from_url("https://x.test/files/annual%20report.pdf") == "annual report.pdf"
    assert filename_from_url("https://x.test/") is None
