"""livedir CLI entry point."""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from livedir.config import DEFAULT_EXCLUDED_DIRS, DEFAULT_HOST, DEFAULT_PORT, ServerConfig
from livedir.db import MEMORY, Database
from livedir.watch import (
    ChangeLedger,
    ContentFingerprinter,
    DirectoryScanner,
    PathClassifier,
    WatchService,
    WatchSetupError,
)

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


root_argument = click.argument(
    "root", default=".", type=click.Path(file_okay=False, path_type=Path)
)
exclude_option = click.option(
    "--exclude-dir",
    "exclude_dirs",
    multiple=True,
    help=f"Directory name to ignore, in addition to dot-directories and {', '.join(DEFAULT_EXCLUDED_DIRS)}",
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """livedir - serve a directory and reload the browser when files change."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


async def run_server(config: ServerConfig) -> None:
    """Scan, start watching, and serve until interrupted."""
    import uvicorn

    from livedir.api import create_app
    from livedir.events import ReloadHub

    db = Database(config.ledger_path or MEMORY)
    await db.connect()
    hub = ReloadHub()
    service = WatchService(
        config.root,
        ChangeLedger(db),
        hub,
        debounce_seconds=config.debounce_seconds,
        excluded_dirs=config.excluded_dirs,
    )

    try:
        stats = await service.start()
        console.print(f"Tracking [bold]{stats.tracked}[/bold] files under {config.root}")

        app = create_app(config.root, hub)
        server = uvicorn.Server(uvicorn.Config(app, host=config.host, port=config.port))
        console.print(
            f"[bold green]Serving {config.root} on http://{config.host}:{config.port}[/bold green]"
        )
        await server.serve()
    finally:
        await service.stop()
        await db.disconnect()


@cli.command()
@root_argument
@click.option("--host", default=DEFAULT_HOST, help="Host to bind to")
@click.option("--port", default=DEFAULT_PORT, help="Port to bind to")
@exclude_option
@click.option(
    "--ledger",
    "ledger_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Keep the fingerprint ledger in this SQLite file instead of memory",
)
def serve(
    root: Path,
    host: str,
    port: int,
    exclude_dirs: tuple[str, ...],
    ledger_path: Path | None,
) -> None:
    """Serve ROOT (default: current directory) with live reload."""
    config = ServerConfig(
        root=root,
        host=host,
        port=port,
        excluded_dirs=DEFAULT_EXCLUDED_DIRS + exclude_dirs,
        ledger_path=ledger_path,
    )

    try:
        asyncio.run(run_server(config))
    except WatchSetupError as e:
        console.print(f"[red]✗[/red] {e}")
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


@cli.command()
@root_argument
@exclude_option
def scan(root: Path, exclude_dirs: tuple[str, ...]) -> None:
    """Show the files under ROOT that would be tracked for changes."""
    config = ServerConfig(root=root, excluded_dirs=DEFAULT_EXCLUDED_DIRS + exclude_dirs)
    if not config.root.is_dir():
        console.print(f"[red]✗[/red] {WatchSetupError(config.root, 'not an existing directory')}")
        raise SystemExit(1)

    async def do_scan() -> None:
        db = Database(MEMORY)
        await db.connect()
        try:
            ledger = ChangeLedger(db)
            scanner = DirectoryScanner(
                PathClassifier(config.root, config.excluded_dirs),
                ContentFingerprinter(),
                ledger,
            )
            stats = await scanner.scan(config.root)
            entries = await ledger.entries()
        finally:
            await db.disconnect()

        table = Table(title=f"Tracked files in {config.root}")
        table.add_column("Path", style="cyan")
        table.add_column("Fingerprint", style="green")

        for entry in entries:
            table.add_row(str(entry.path.relative_to(config.root)), entry.fingerprint[:12])

        console.print(table)
        console.print(
            f"Tracked: {stats.tracked}, skipped: {stats.skipped}, failed: {stats.failed}"
        )

    asyncio.run(do_scan())


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
