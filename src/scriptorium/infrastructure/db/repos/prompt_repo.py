from __future__ import annotations

from pathlib import Path

from scriptorium.domain.models.prompt import PendingPrompt
from scriptorium.infrastructure.db.sqlite import get_connection


class PromptRepo:
    """Pending "already transcribed" notifications, one per page URL."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def record(self, prompt: PendingPrompt) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO auto_prompts (page_url, page_id, digest_sha256, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(page_url) DO UPDATE SET
                    page_id = excluded.page_id,
                    digest_sha256 = excluded.digest_sha256,
                    created_at = excluded.created_at
                """,
                (prompt.page_url, prompt.page_id, prompt.digest_sha256, prompt.created_at),
            )
            conn.commit()

    def get_for_page(self, page_url: str) -> PendingPrompt | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM auto_prompts WHERE page_url = ?",
                (page_url,),
            ).fetchone()
        return self._to_model(row) if row else None

    def clear(self, page_url: str | None = None) -> int:
        with get_connection(self.db_path) as conn:
            if page_url is None:
                cursor = conn.execute("DELETE FROM auto_prompts")
            else:
                cursor = conn.execute("DELETE FROM auto_prompts WHERE page_url = ?", (page_url,))
            conn.commit()
            return cursor.rowcount

    def clear_for_digest(self, digest_sha256: str) -> int:
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM auto_prompts WHERE digest_sha256 = ?",
                (digest_sha256,),
            )
            conn.commit()
            return cursor.rowcount

    @staticmethod
    def _to_model(row) -> PendingPrompt:
        return PendingPrompt(
            digest_sha256=row["digest_sha256"],
            page_id=row["page_id"],
            page_url=row["page_url"],
            created_at=row["created_at"],
        )
