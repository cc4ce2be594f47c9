from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from scriptorium.core.config import AppPaths
from scriptorium.core.errors import ProjectNotInitializedError
from scriptorium.core.files import ensure_directory
from scriptorium.infrastructure.db.sqlite import default_schema_path, initialize_schema


@dataclass(slots=True)
class InitResult:
    paths_created: list[Path]
    db_path: Path


class ProjectService:
    def __init__(self, paths: AppPaths) -> None:
        self.paths = paths

    def init_project(self) -> InitResult:
        paths_created: list[Path] = []

        for path in (self.paths.home_dir, self.paths.artifacts_dir):
            if not path.exists():
                paths_created.append(path)
            ensure_directory(path)

        initialize_schema(self.paths.db_path, default_schema_path())

        return InitResult(paths_created=paths_created, db_path=self.paths.db_path)

    def is_initialized(self) -> bool:
        return self.paths.db_path.exists()

    def require_initialized(self) -> None:
        if not self.is_initialized():
            raise ProjectNotInitializedError(
                f"Project is not initialized. Run 'scriptorium init' first in {self.paths.project_root}"
            )
