# plexus_sessions/cli/utils_cli.py
import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import typer

from ..settings import SessionSettings
from ..sessions import AbstractSessionStore, get_session_store

T = TypeVar("T")


def load_cli_settings() -> SessionSettings:
    """Fresh settings per invocation so environment overrides always apply."""
    return SessionSettings()


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, sort_keys=True, default=str))


def run_with_store(
    settings: SessionSettings,
    operation: Callable[[AbstractSessionStore], Awaitable[T]],
) -> T:
    """
    Runs an async operation against the configured store, handling its lifecycle.

    Warns when the backend is process-local, since the CLI then sees an empty store.
    """
    if settings.storage_backend == "memory":
        typer.secho(
            "CLI: Warning - storage_backend is 'memory'; the CLI cannot see a server's in-process sessions.",
            fg=typer.colors.YELLOW,
        )

    async def _run() -> T:
        store = get_session_store(settings)
        await store.initialize()
        try:
            return await operation(store)
        finally:
            await store.teardown()

    return asyncio.run(_run())
