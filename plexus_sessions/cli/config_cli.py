# plexus_sessions/cli/config_cli.py
import typer

from .utils_cli import echo_json, load_cli_settings

app = typer.Typer(
    name="config",
    help="Inspect session configuration.",
    no_args_is_help=True
)


@app.command("show")
def show_config():
    """Print the effective session settings (secrets masked)."""
    echo_json(load_cli_settings().masked_dump())
