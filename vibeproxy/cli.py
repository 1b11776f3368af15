"""Command line entry point for the vibeproxy service."""

import sys
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vibeproxy.config import Config
from vibeproxy.constants import SERVICE_VERSION
from vibeproxy.llm import LLM
from vibeproxy.utils.logging import configure_logging

app = typer.Typer(help="vibeproxy - AI code generation service for VibeCode projects")
console = Console()


def _load_config(env_file: Optional[Path]) -> Config:
    try:
        return Config.load(env_file)
    except ValueError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HOST or 0.0.0.0)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: PORT or 8001)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to a .env file"),
) -> None:
    """Run the HTTP service."""
    config = _load_config(env_file)
    if host:
        config.host = host
    if port:
        config.port = port

    errors = config.validate()
    if errors:
        console.print("[red]Configuration errors:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        sys.exit(1)

    configure_logging(config.log_level)

    console.print(Panel.fit(
        f"[bold cyan]vibeproxy[/bold cyan] v{SERVICE_VERSION}\n"
        f"Listening on http://{config.host}:{config.port}\n"
        f"Model: {config.default_model}\n"
        f"Chat sessions: {'supabase' if config.has_database else 'in-memory'}",
        border_style="cyan"
    ))

    uvicorn.run(
        "vibeproxy.server:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=reload,
        log_config=None,
    )


@app.command("config")
def show_config(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to a .env file"),
) -> None:
    """Show the effective configuration."""
    config = _load_config(env_file)
    console.print(Panel(
        "\n".join(f"{k}: {v}" for k, v in config.to_dict().items()),
        title="Configuration",
        border_style="blue"
    ))

    errors = config.validate()
    for error in errors:
        console.print(f"[yellow]Warning: {error}[/yellow]")


@app.command()
def models() -> None:
    """List supported model aliases."""
    table = Table(title="Supported models")
    table.add_column("Alias", style="cyan")
    table.add_column("Upstream model")
    table.add_column("Context window", justify="right")
    table.add_column("Max output tokens", justify="right")

    for alias, info in LLM.describe_models().items():
        table.add_row(alias, info["name"], str(info["n_ctx"]), str(info["max_output_tokens"]))

    console.print(table)


if __name__ == "__main__":
    app()
