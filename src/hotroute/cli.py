"""hotroute CLI entry point."""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hotroute.config import ConfigError, HotReloadConfig, load_config
from hotroute.events import Event, EventBus, EventType
from hotroute.reload import FileChangeWatcher, HotReloadCoordinator
from hotroute.routes import RouteRegistry

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


def config_options(func):
    """Options shared by every command that needs a configuration."""
    func = click.option(
        "--project-root",
        type=click.Path(file_okay=False, path_type=Path),
        help="Project root (defaults to the config file's directory)",
    )(func)
    func = click.option("--api-prefix", help="URL prefix for API routes")(func)
    func = click.option(
        "--api-dir",
        type=click.Path(file_okay=False, path_type=Path),
        help="Directory holding route modules",
    )(func)
    func = click.option(
        "-c",
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="hotroute.toml or pyproject.toml to read",
    )(func)
    return func


def build_config(
    config_path: Path | None,
    api_dir: Path | None,
    api_prefix: str | None,
    project_root: Path | None,
) -> HotReloadConfig:
    try:
        return load_config(
            config_path,
            api_dir=api_dir,
            api_prefix=api_prefix,
            project_root=project_root,
        )
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def build_watcher(config: HotReloadConfig) -> FileChangeWatcher:
    return FileChangeWatcher(config.watch_dirs, patterns=config.watch_patterns)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """hotroute - Hot-reload coordination for API routes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@config_options
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8765, help="Port to bind to")
def serve(
    config_path: Path | None,
    api_dir: Path | None,
    api_prefix: str | None,
    project_root: Path | None,
    host: str,
    port: int,
) -> None:
    """Watch for changes and serve reload notifications and diagnostics."""
    import uvicorn

    from hotroute.api import create_app

    config = build_config(config_path, api_dir, api_prefix, project_root)
    coordinator = HotReloadCoordinator.from_config(config, event_bus=EventBus())
    app = create_app(
        coordinator,
        watcher=build_watcher(config),
        poll_interval=config.poll_interval,
    )

    console.print(f"[bold green]Starting hotroute server on {host}:{port}[/bold green]")
    console.print(f"Routes: {len(coordinator.registry)} under {config.api_dir}")

    uvicorn.run(app, host=host, port=port)


def _print_event(event: Event) -> None:
    data = event.data
    if event.type == EventType.ROUTE_UPDATED:
        console.print(f"[green]Route updated[/green] {data['routePath']}")
    elif event.type == EventType.DEPENDENCY_UPDATED:
        routes = ", ".join(data["affectedRoutes"])
        console.print(f"[green]Dependency updated[/green] {data['dependency']} -> {routes}")
    elif event.type == EventType.RELOAD_ERROR:
        console.print(f"[red]Reload failed[/red] {data['filePath']}: {data['error']}")
    else:
        restart = " (restart required)" if data["requiresRestart"] else ""
        console.print(f"[yellow]{event.type.value}[/yellow] {data['filePath']}{restart}")


@cli.command()
@config_options
def watch(
    config_path: Path | None,
    api_dir: Path | None,
    api_prefix: str | None,
    project_root: Path | None,
) -> None:
    """Watch for changes and reload routes in this process."""
    config = build_config(config_path, api_dir, api_prefix, project_root)

    async def run_watch() -> None:
        bus = EventBus()
        bus.add_callback(_print_event)
        coordinator = HotReloadCoordinator.from_config(config, event_bus=bus)
        watcher = build_watcher(config)

        console.print(
            f"[bold green]Watching {len(config.watch_dirs)} directories "
            f"({len(coordinator.registry)} routes)[/bold green]"
        )
        try:
            await watcher.watch_loop(
                lambda change: coordinator.on_file_changed(change.path),
                poll_interval=config.poll_interval,
            )
        finally:
            watcher.stop()
            await coordinator.close()

    try:
        asyncio.run(run_watch())
    except KeyboardInterrupt:
        console.print("\n[yellow]Watcher stopped[/yellow]")


@cli.command()
@config_options
@click.option("--file", "file_path", type=click.Path(path_type=Path), help="Show one file's edges")
def graph(
    config_path: Path | None,
    api_dir: Path | None,
    api_prefix: str | None,
    project_root: Path | None,
    file_path: Path | None,
) -> None:
    """Show the import graph of the project."""
    config = build_config(config_path, api_dir, api_prefix, project_root)
    coordinator = HotReloadCoordinator.from_config(config)
    tracker = coordinator.tracker

    if file_path is not None:
        target = str(file_path.resolve())
        table = Table(title=f"Dependencies of {file_path}")
        table.add_column("Import", style="cyan")
        table.add_column("Kind")
        table.add_column("External")
        for edge in sorted(tracker.get_dependencies(target), key=lambda e: e.path):
            table.add_row(edge.path, edge.kind.value, "yes" if edge.is_external_package else "")
        console.print(table)

        dependents = tracker.get_transitive_dependents(target)
        routes = [coordinator.route_path_for(p) for p in dependents if p in coordinator.registry]
        console.print(f"Transitive dependents: {len(dependents)}")
        console.print(f"Affected routes: {', '.join(routes) or 'none'}")
        return

    table = Table(title="Dependency Graph")
    table.add_column("File", style="cyan")
    table.add_column("Imports", justify="right")
    table.add_column("Imported by", justify="right", style="green")

    root = config.project_root
    for path in sorted(tracker.files):
        try:
            label = str(Path(path).relative_to(root))
        except ValueError:
            label = path
        table.add_row(
            label,
            str(len(tracker.get_dependencies(path))),
            str(len(tracker.get_dependents(path))),
        )

    console.print(table)

    stats = tracker.stats()
    console.print(
        f"{stats['totalFiles']} files, {stats['totalDependencies']} imports "
        f"({stats['externalDependencies']} external)"
    )


@cli.command()
@config_options
def routes(
    config_path: Path | None,
    api_dir: Path | None,
    api_prefix: str | None,
    project_root: Path | None,
) -> None:
    """List discovered API routes."""
    config = build_config(config_path, api_dir, api_prefix, project_root)

    registry = RouteRegistry(config.api_dir, config.api_prefix)
    registry.discover()

    if not registry:
        console.print(f"[yellow]No routes found under {config.api_dir}[/yellow]")
        return

    table = Table(title="API Routes")
    table.add_column("Route", style="cyan")
    table.add_column("File")

    for path in registry:
        table.add_row(registry.file_path_to_route(path), str(Path(path).relative_to(config.api_dir)))

    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
