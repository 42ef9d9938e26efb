"""studybuddy serve — run the REST API server under uvicorn.

Start: studybuddy serve
       studybuddy serve --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import typer
from rich.console import Console

console = Console()


def serve_command(
    host: str = typer.Option(None, "--host", "-H", help="Bind address (overrides config)."),  # noqa: B008
    port: int = typer.Option(None, "--port", "-p", help="Bind port (overrides config)."),  # noqa: B008
) -> None:
    """Start the Study Buddy REST API server."""
    from studybuddy.api import is_available

    if not is_available():
        console.print(
            "[red]API dependencies not installed.[/red]\n"
            "Install with: [bold]pip install studybuddy[/bold]"
        )
        raise typer.Exit(1)

    from studybuddy.cli.app import state
    from studybuddy.config import get_config_path, load_config

    config_path = state.config_path or get_config_path()
    config = load_config(config_path)

    bind_host = host or config.gateway.host
    bind_port = port or config.gateway.port

    limits = config.rate_limits
    console.print(
        f"[bold cyan]Study Buddy API[/bold cyan] starting on {bind_host}:{bind_port}\n"
        f"[dim]config: {config_path}[/dim]\n"
        f"[dim]chat: {limits.chat.max_requests} req / {limits.chat.window_seconds:g}s, "
        f"parse: {limits.parse.max_requests} req / {limits.parse.window_seconds:g}s[/dim]"
    )

    import uvicorn

    from studybuddy.api.app import create_api_app

    app = create_api_app(config, config_path)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level="warning",
        access_log=False,
    )
