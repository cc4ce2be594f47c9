from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppPaths:
    project_root: Path
    home_dir: Path
    db_path: Path
    artifacts_dir: Path


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    api_base: str = "https://api.mistral.ai/v1"
    ocr_model: str = "mistral-ocr-latest"
    http_timeout_seconds: float = 120.0
    export_timeout_seconds: float = 15.0
    viewer_cache_size: int = 256
    viewer_cache_ttl_seconds: float = 3600.0
    jpeg_quality: int = 92
    fetch_cookie: str | None = None


DEFAULT_HOME_DIRNAME = ".scriptorium"


def load_paths(project_root: Path | None = None) -> AppPaths:
    root = (project_root or Path.cwd()).expanduser().resolve()

    home_raw = os.getenv("SCRIPTORIUM_HOME")
    if home_raw:
        home_dir = Path(home_raw).expanduser().resolve()
    else:
        home_dir = root / DEFAULT_HOME_DIRNAME

    return AppPaths(
        project_root=root,
        home_dir=home_dir,
        db_path=home_dir / "scriptorium.db",
        artifacts_dir=home_dir / "artifacts",
    )


def _read_str_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_settings() -> Settings:
    defaults = Settings()
    quality = _read_int_env("SCRIPTORIUM_JPEG_QUALITY", defaults.jpeg_quality)
    return Settings(
        api_key=_read_str_env("SCRIPTORIUM_API_KEY"),
        api_base=(_read_str_env("SCRIPTORIUM_API_BASE") or defaults.api_base).rstrip("/"),
        ocr_model=_read_str_env("SCRIPTORIUM_OCR_MODEL") or defaults.ocr_model,
        http_timeout_seconds=_read_float_env(
            "SCRIPTORIUM_HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds
        ),
        export_timeout_seconds=_read_float_env(
            "SCRIPTORIUM_EXPORT_TIMEOUT_SECONDS", defaults.export_timeout_seconds
        ),
        viewer_cache_size=_read_int_env("SCRIPTORIUM_VIEWER_CACHE_SIZE", defaults.viewer_cache_size),
        viewer_cache_ttl_seconds=_read_float_env(
            "SCRIPTORIUM_VIEWER_CACHE_TTL_SECONDS", defaults.viewer_cache_ttl_seconds
        ),
        jpeg_quality=min(quality, 100),
        fetch_cookie=_read_str_env("SCRIPTORIUM_FETCH_COOKIE"),
    )
