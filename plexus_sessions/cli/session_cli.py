# plexus_sessions/cli/session_cli.py
import typer
from typing import Optional
from typing_extensions import Annotated

from ..sessions import MalformedSessionRecord, StorageFailure, decode_session
from ..sessions.codec import session_to_record
from ..utils.security import generate_session_id
from .utils_cli import echo_json, load_cli_settings, run_with_store

app = typer.Typer(
    name="session",
    help="Inspect and manage stored sessions.",
    no_args_is_help=True
)


@app.command("get")
def get_session(
    session_id: Annotated[str, typer.Argument(help="The session id (cookie value) to look up.")]
):
    """Print a stored session record as JSON."""
    settings = load_cli_settings()
    key = settings.store_key(session_id)

    try:
        raw: Optional[bytes] = run_with_store(settings, lambda store: store.get(key))
    except StorageFailure as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=2)

    if raw is None:
        typer.secho(f"No session stored under key '{key}'.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        session = decode_session(raw)
    except MalformedSessionRecord as e:
        typer.secho(f"Stored record under '{key}' is malformed: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    echo_json(session_to_record(session))


@app.command("delete")
def delete_session(
    session_id: Annotated[str, typer.Argument(help="The session id (cookie value) to remove.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
):
    """Delete a stored session record."""
    settings = load_cli_settings()
    key = settings.store_key(session_id)
    if not yes:
        typer.confirm(f"Delete session record '{key}'?", abort=True)

    try:
        run_with_store(settings, lambda store: store.delete(key))
    except StorageFailure as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=2)

    typer.secho(f"Deleted session record '{key}'.", fg=typer.colors.GREEN)


@app.command("new-id")
def new_session_id(
    length: Annotated[
        Optional[int],
        typer.Option("--length", help="Id length; defaults to the configured id_length.", min=16)
    ] = None
):
    """Print a freshly generated session id."""
    settings = load_cli_settings()
    typer.echo(generate_session_id(length or settings.id_length))
