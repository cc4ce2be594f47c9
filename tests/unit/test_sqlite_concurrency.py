from __future__ import annotations

import sqlite3
import threading
import time
from pathlib import Path

from scriptorium.infrastructure.db.sqlite import default_schema_path, get_connection, initialize_schema


def test_connection_enables_wal_and_busy_timeout(tmp_path: Path) -> None:
    db_path = tmp_path / "scriptorium.db"
    initialize_schema(db_path=db_path, schema_path=default_schema_path())

    with get_connection(db_path) as conn:
        journal_mode = conn.execute("PRAGMA journal_mode;").fetchone()[0]
        busy_timeout = conn.execute("PRAGMA busy_timeout;").fetchone()[0]
        foreign_keys = conn.execute("PRAGMA foreign_keys;").fetchone()[0]

    assert str(journal_mode).lower() == "wal"
    assert int(busy_timeout) >= 30_000
    assert int(foreign_keys) == 1


def test_initialize_schema_is_repeatable(tmp_path: Path) -> None:
    db_path = tmp_path / "scriptorium.db"
    initialize_schema(db_path)
    initialize_schema(db_path)

    with get_connection(db_path) as conn:
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(entries)").fetchall()}
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        }
    assert {"digest_sha256", "kind", "files_json", "transcript_text"} <= columns
    assert {"entries", "url_digests", "preferences", "auto_prompts"} <= tables


def test_write_waits_for_lock_instead_of_failing_immediately(tmp_path: Path) -> None:
    db_path = tmp_path / "scriptorium.db"
    initialize_schema(db_path=db_path, schema_path=default_schema_path())

    writer_1 = get_connection(db_path)
    writer_1.execute("BEGIN IMMEDIATE;")
    writer_1.execute(
        "INSERT INTO url_digests (url, digest_sha256, updated_at) VALUES (?, ?, ?)",
        ("https://x.test/first.pdf", "a" * 64, "2024-01-01T00:00:00Z"),
    )

    out: dict[str, object] = {}

    def _writer_2() -> None:
        started = time.perf_counter()
        try:
            with get_connection(db_path) as conn_2:
                conn_2.execute(
                    "INSERT INTO url_digests (url, digest_sha256, updated_at) VALUES (?, ?, ?)",
                    ("https://x.test/second.pdf", "b" * 64, "2024-01-01T00:00:01Z"),
                )
                conn_2.commit()
            out["ok"] = True
        except sqlite3.OperationalError as exc:  # pragma: no cover
            out["ok"] = False
            out["error"] = str(exc)
        finally:
            out["elapsed"] = time.perf_counter() - started

    t = threading.Thread(target=_writer_2)
    t.start()
    time.sleep(0.25)
    writer_1.commit()
    writer_1.close()
    t.join(timeout=5)

    assert out.get("ok") is True, str(out.get("error"))
    assert float(out.get("elapsed", 0.0)) >= 0.2

    with get_connection(db_path) as conn:
        count = conn.execute("SELECT COUNT(*) FROM url_digests").fetchone()[0]
    assert int(count) == 2
