from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from rich.console import Console

from scriptorium.application.services.command_service import CommandService, build_command_service
from scriptorium.application.services.project_service import ProjectService
from scriptorium.core.config import AppPaths, Settings
from scriptorium.infrastructure.http.fetcher import build_http_client

T = TypeVar("T")


@dataclass(slots=True)
class CLIContext:
    paths: AppPaths
    console: Console
    settings: Settings

    def require_project(self) -> None:
        ProjectService(self.paths).require_initialized()

    def run_with_service(self, action: Callable[[CommandService], Awaitable[T]]) -> T:
        """Run ``action`` on a fully wired command service inside a fresh event loop."""

        async def _main() -> T:
            async with build_http_client(self.settings) as client:
                return await action(build_command_service(self.paths, self.settings, client))

        return asyncio.run(_main())
