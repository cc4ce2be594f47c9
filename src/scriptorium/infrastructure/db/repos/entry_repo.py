from __future__ import annotations

from pathlib import Path
from typing import Callable

from scriptorium.core.time import now_utc_iso
from scriptorium.domain.models.entry import Entry, EntryFiles
from scriptorium.infrastructure.db.sqlite import get_connection


class EntryRepo:
    """Content-addressed index of transcriptions.

    Two mappings live here: ``entries`` (digest -> Entry, one row per digest) and
    ``url_digests`` (url -> digest, last write wins). The url mapping is only a
    hint; content identity is always the digest.
    """

    def __init__(self, db_path: Path, clock: Callable[[], str] = now_utc_iso) -> None:
        self.db_path = db_path
        self._clock = clock

    def lookup(self, digest_sha256: str) -> Entry | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM entries WHERE digest_sha256 = ?",
                (digest_sha256,),
            ).fetchone()
        return self._to_model(row) if row else None

    def put(self, digest_sha256: str, entry: Entry) -> Entry:
        """Insert ``entry`` unless one already exists; return the stored entry."""
        if entry.digest_sha256 != digest_sha256:
            raise ValueError(
                f"Entry digest {entry.digest_sha256} does not match index key {digest_sha256}"
            )
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO entries (
                    digest_sha256,
                    display_name,
                    source_url,
                    kind,
                    created_at,
                    updated_at,
                    page_count,
                    image_count,
                    storage_folder,
                    files_json,
                    transcript_text
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(digest_sha256) DO NOTHING
                """,
                (
                    entry.digest_sha256,
                    entry.display_name,
                    entry.source_url,
                    entry.kind,
                    entry.created_at,
                    entry.updated_at,
                    entry.page_count,
                    entry.image_count,
                    entry.storage_folder,
                    entry.files.to_json(),
                    entry.transcript_text,
                ),
            )
            conn.commit()
            inserted = cursor.rowcount == 1
        if inserted:
            return entry
        existing = self.lookup(digest_sha256)
        return existing if existing is not None else entry

    def touch(self, url: str, digest_sha256: str) -> Entry | None:
        now = self._clock()
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO url_digests (url, digest_sha256, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    digest_sha256 = excluded.digest_sha256,
                    updated_at = excluded.updated_at
                """,
                (url, digest_sha256, now),
            )
            conn.execute(
                """
                UPDATE entries
                SET updated_at = ?, source_url = ?
                WHERE digest_sha256 = ?
                """,
                (now, url, digest_sha256),
            )
            conn.commit()
        return self.lookup(digest_sha256)

    def remove(self, digest_sha256: str) -> bool:
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM entries WHERE digest_sha256 = ?",
                (digest_sha256,),
            )
            conn.execute(
                "DELETE FROM url_digests WHERE digest_sha256 = ?",
                (digest_sha256,),
            )
            conn.commit()
            return cursor.rowcount > 0

    def digest_for_url(self, url: str) -> str | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT digest_sha256 FROM url_digests WHERE url = ?",
                (url,),
            ).fetchone()
        return row["digest_sha256"] if row else None

    def urls_for_digest(self, digest_sha256: str) -> list[str]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT url FROM url_digests WHERE digest_sha256 = ? ORDER BY updated_at DESC",
                (digest_sha256,),
            ).fetchall()
        return [row["url"] for row in rows]

    def list_entries(self, limit: int | None = None) -> list[Entry]:
        query = "SELECT * FROM entries ORDER BY updated_at DESC, created_at DESC"
        params: tuple[int, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with get_connection(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._to_model(row) for row in rows]

    def count(self) -> int:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM entries").fetchone()
        return int(row["n"])

    @staticmethod
    def _to_model(row) -> Entry:
        return Entry(
            digest_sha256=row["digest_sha256"],
            display_name=row["display_name"],
            source_url=row["source_url"],
            kind=row["kind"] if "kind" in row.keys() else "document",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            page_count=row["page_count"],
            image_count=row["image_count"],
            storage_folder=row["storage_folder"],
            files=EntryFiles.from_json(row["files_json"]),
            transcript_text=row["transcript_text"],
        )
