"""
Versioned API demo CLI

Command-line interface for running the service and inspecting its
versioned routes and OpenAPI documents.

Usage:
    apidemo serve              - Start the server
    apidemo routes             - Show the versioned route table
    apidemo openapi v1         - Print or export a version's OpenAPI document
"""
import json
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from app import __version__
from app.config import Settings, get_settings
from app.core.versioning import format_version, parse_version

console = Console()


def load_settings(env_file: str | None) -> Settings:
    """Load settings, exiting with a readable message when they are invalid."""
    if env_file:
        load_dotenv(env_file, override=True)
        get_settings.cache_clear()

    try:
        return get_settings()
    except ValidationError as e:
        console.print("[red]✗ Invalid configuration[/red]")
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "settings"
            console.print(f"  [yellow]{location}[/yellow]: {error['msg']}")
        console.print("\nSet ServiceName (or SERVICE_NAME) in the environment or .env:")
        console.print("[yellow]echo \"SERVICE_NAME=My Service\" >> .env[/yellow]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="apidemo")
@click.option("--env-file", default=None, help="Load environment variables from this file")
@click.pass_context
def main(ctx: click.Context, env_file: str | None):
    """
    Versioned API demo - OpenAPI, API versioning and JWT bearer auth.
    """
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@main.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=8000, help="Port to run server on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """
    Start the server.

    Example:
        apidemo serve --port 8000
    """
    import uvicorn

    settings = load_settings(ctx.obj["env_file"])

    lines = [
        f"[bold green]Starting {settings.SERVICE_NAME}[/bold green]\n",
        f"API: [cyan]http://{host}:{port}/api/{format_version(settings.DEFAULT_API_VERSION)}[/cyan]",
    ]
    if settings.DOCS_ENABLED:
        lines.append(f"API Docs: [cyan]http://{host}:{port}/scalar[/cyan]")
    lines.append("\n[dim]Press Ctrl+C to stop[/dim]")
    console.print(Panel("\n".join(lines), border_style="green"))

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


@main.command()
@click.pass_context
def routes(ctx: click.Context):
    """
    Show the versioned route table.

    Example:
        apidemo routes
    """
    from app.main import create_app

    app = create_app(load_settings(ctx.obj["env_file"]))

    table = Table(title="Versioned routes", show_header=True, header_style="bold cyan")
    table.add_column("Method", style="green")
    table.add_column("Path")
    table.add_column("Version", justify="center")
    table.add_column("Group")
    table.add_column("Auth", justify="center")

    for spec in app.state.route_table.routes:
        table.add_row(
            spec.method,
            spec.path,
            format_version(spec.version),
            spec.group,
            "[yellow]Bearer[/yellow]" if spec.requires_auth else "[dim]public[/dim]",
        )

    console.print(table)


@main.command()
@click.argument("version")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to this file")
@click.pass_context
def openapi(ctx: click.Context, version: str, output: str | None):
    """
    Print or export the OpenAPI document of a version.

    Example:
        apidemo openapi v1 --output openapi-v1.json
    """
    from app.main import create_app

    app = create_app(load_settings(ctx.obj["env_file"]))
    registry = app.state.documents

    number = parse_version(version)
    if number is None and version.isdigit():
        number = int(version)
    if number is None or number not in registry.versions:
        available = ", ".join(format_version(v) for v in registry.versions)
        console.print(f"[red]✗ Unknown API version {version}[/red] (available: {available})")
        sys.exit(1)

    content = json.dumps(registry.get(number), indent=2)
    if output:
        Path(output).write_text(content + "\n", encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {format_version(number)} document to [cyan]{output}[/cyan]")
    else:
        console.print_json(content)


if __name__ == "__main__":
    main()
