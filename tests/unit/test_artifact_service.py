from pathlib import Path

from scriptorium.application.services.artifact_service import (
    ArtifactPersister,
    build_transcript,
    markdown_image_names,
)
from scriptorium.domain.models.resource import ResourceKind
from scriptorium.domain.models.transcription import (
    ExtractedImage,
    TranscribedPage,
    TranscriptionResult,
)
from scriptorium.infrastructure.archive.store import ArtifactStore


def _result(include_images: bool = True) -> TranscriptionResult:
    return TranscriptionResult(
        pages=[
            TranscribedPage(
                index=0,
                markdown="# Title\n\n![chart](chart.jpeg)",
                images=[ExtractedImage(image_id="img-0.jpeg", data=b"\xff\xd8\xffchart")],
            ),
            TranscribedPage(
                index=1,
                markdown="Body",
                images=[
                    ExtractedImage(image_id=None, data=b"\xff\xd8\xffanon"),
                    ExtractedImage(image_id="empty.jpeg", data=None),
                ],
            ),
        ],
        include_images=include_images,
    )


def test_transcript_joins_pages_with_blank_lines() -> None:
    assert build_transcript(_result()) == "# Title\n\n![chart](chart.jpeg)\n\nBody\n\n"


def test_markdown_image_names_in_order() -> None:
    assert markdown_image_names("![a](one.jpeg) text ![](two.png)") == ["one.jpeg", "two.png"]


def test_persist_writes_transcript_and_images(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "artifacts")
    entry = ArtifactPersister(store).persist(
        _result(),
        "a" * 64,
        display_name="Report",
        source_url="https://x.test/report.pdf",
    )

    folder = tmp_path / "artifacts" / ("a" * 64)
    assert (folder / "transcription.md").read_text(encoding="utf-8") == entry.transcript_text
    assert (folder / "chart.jpeg").read_bytes() == b"\xff\xd8\xffchart"
    assert (folder / "img-1-0.jpeg").read_bytes() == b"\xff\xd8\xffanon"
    assert not (folder / "empty.jpeg").exists()

    assert entry.digest_sha256 == "a" * 64
    assert entry.kind == "document"
    assert entry.page_count == 2
    assert entry.image_count == 2
    assert entry.storage_folder == "a" * 64 + "/"
    assert entry.created_at == entry.updated_at
    assert [handle.path for handle in entry.files.images] == [
        f"{'a' * 64}/chart.jpeg",
        f"{'a' * 64}/img-1-0.jpeg",
    ]


def test_persist_skips_images_when_excluded(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "artifacts")
    entry = ArtifactPersister(store).persist(
        _result(include_images=False),
        "b" * 64,
        display_name="Scan",
        source_url="https://x.test/scan.png",
        kind=ResourceKind.IMAGE,
    )

    files = sorted(p.name for p in (tmp_path / "artifacts" / ("b" * 64)).iterdir())
    assert files == ["transcription.md"]
    assert entry.image_count == 0
    assert entry.kind == "image"


def test_image_named_like_transcript_does_not_overwrite_it(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "artifacts")
    result = TranscriptionResult(
        pages=[
            TranscribedPage(
                index=3,
                markdown="![x](transcription.md)",
                images=[ExtractedImage(image_id=None, data=b"img")],
            )
        ]
    )
    entry = ArtifactPersister(store).persist(result, "c" * 64, display_name="X", source_url="https://x.test/x")

    folder = tmp_path / "artifacts" / ("c" * 64)
    assert (folder / "transcription.md").read_text(encoding="utf-8") == "![x](transcription.md)\n\n"
    assert (folder / "img-3-0.jpeg").read_bytes() == b"img"
    assert entry.image_count == 1
