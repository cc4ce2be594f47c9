from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path, PurePosixPath

from scriptorium.core.errors import InvalidDigestError
from scriptorium.core.files import ensure_directory, write_bytes_atomic
from scriptorium.core.hashing import compute_bytes_digest, compute_file_digest, is_sha256_hex
from scriptorium.domain.models.entry import FileHandle

logger = logging.getLogger(__name__)

TRANSCRIPT_FILENAME = "transcription.md"


class ArtifactStore:
    """Digest-named folders of transcription artifacts under a fixed root."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir

    def ensure_layout(self) -> None:
        ensure_directory(self.base_dir)

    @staticmethod
    def folder_relpath_for_digest(digest_sha256: str) -> str:
        return f"{digest_sha256}/"

    def folder_abspath_for_digest(self, digest_sha256: str) -> Path:
        if not is_sha256_hex(digest_sha256):
            raise InvalidDigestError(f"Not a SHA-256 digest: {digest_sha256!r}")
        return self.base_dir / digest_sha256

    def write_artifact(self, digest_sha256: str, filename: str, data: bytes) -> FileHandle:
        safe_name = self.safe_filename(filename)
        if not safe_name:
            raise ValueError(f"Unusable artifact filename: {filename!r}")
        self.ensure_layout()
        dst = self.folder_abspath_for_digest(digest_sha256) / safe_name
        write_bytes_atomic(dst, data)
        relpath = str(PurePosixPath(digest_sha256) / safe_name)
        logger.debug("Wrote artifact %s (%d bytes)", relpath, len(data))
        return FileHandle(path=relpath, external_id=compute_bytes_digest(data))

    def resolve(self, handle: FileHandle) -> Path:
        return self.base_dir / Path(*PurePosixPath(handle.path).parts)

    def locate(self, handle: FileHandle) -> Path | None:
        """Return the artifact path, searching the digest folder when the handle path is stale."""
        direct = self.resolve(handle)
        if direct.is_file():
            return direct
        folder = self.base_dir / PurePosixPath(handle.path).parts[0]
        wanted = PurePosixPath(handle.path).name
        if folder.is_dir():
            for candidate in folder.rglob(wanted):
                if candidate.is_file():
                    return candidate
        return None

    @staticmethod
    def verify_integrity(path: Path, handle: FileHandle) -> bool:
        if not path.exists():
            return False
        if handle.external_id is None:
            return True
        return compute_file_digest(path, "sha256") == handle.external_id

    @staticmethod
    def safe_filename(name: str) -> str:
        candidate = PurePosixPath(name.replace("\\", "/")).name.strip()
        if candidate in {"", ".", ".."}:
            return ""
        return candidate

    @staticmethod
    def reveal(path: Path) -> bool:
        """Open ``path`` in the platform file manager."""
        target = path if path.is_dir() else path.parent
        if sys.platform == "darwin":
            command = ["open", str(target)]
        elif os.name == "nt":
            command = ["explorer", str(target)]
        else:
            command = ["xdg-open", str(target)]
        try:
            subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            logger.warning("Could not open file manager for %s: %s", target, exc)
            return False
        return True
