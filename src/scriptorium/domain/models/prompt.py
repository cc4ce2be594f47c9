from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class PendingPrompt:
    digest_sha256: str
    page_id: str
    page_url: str
    created_at: str
