# plexus_sessions/cli/main_cli.py
import typer
from typing_extensions import Annotated

from . import config_cli
from . import session_cli

# Main CLI application with help enabled when no arguments are provided
app = typer.Typer(
    name="plexus-sessions",
    help="Plexus Sessions Command Line Interface.",
    no_args_is_help=True
)

app.add_typer(config_cli.app, name="config")
app.add_typer(session_cli.app, name="session")


@app.callback()
def main_callback():
    """
    Plexus Sessions CLI.
    Use 'plexus-sessions session --help' for session commands.
    """
    pass


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8080,
    reload: Annotated[bool, typer.Option(help="Reload on code changes.")] = False,
):
    """Run the demo session application under uvicorn."""
    import uvicorn

    uvicorn.run("plexus_sessions.main:create_app", factory=True, host=host, port=port, reload=reload)


def cli_entry_point():
    """Entry point function for console script registration in pyproject.toml"""
    app()


if __name__ == "__main__":
    cli_entry_point()
