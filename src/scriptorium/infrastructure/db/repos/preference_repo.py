from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from scriptorium.core.time import now_utc_iso
from scriptorium.infrastructure.db.sqlite import get_connection

INCLUDE_IMAGES_KEY = "include_images"
API_KEY_KEY = "api_key"


class PreferenceRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get(self, key: str, default: Any = None) -> Any:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT value_json FROM preferences WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value_json"])
        except json.JSONDecodeError:
            return default

    def set(self, key: str, value: Any) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO preferences (key, value_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value_json = excluded.value_json,
                    updated_at = excluded.updated_at
                """,
                (key, json.dumps(value), now_utc_iso()),
            )
            conn.commit()

    def include_images(self) -> bool:
        # Images are included unless explicitly switched off.
        return self.get(INCLUDE_IMAGES_KEY, True) is not False

    def set_include_images(self, value: bool) -> None:
        self.set(INCLUDE_IMAGES_KEY, bool(value))

    def api_key(self) -> str | None:
        value = self.get(API_KEY_KEY)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def set_api_key(self, value: str) -> None:
        self.set(API_KEY_KEY, value.strip())
