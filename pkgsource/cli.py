"""Thin CLI wrapper for pkgsource.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from functools import partial
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from pkgsource import __version__
from pkgsource.config import Settings, get_settings, print_settings_json
from pkgsource.package_id import InvalidPackageIdError, PackageId
from pkgsource.sources.errors import PackageSourceError
from pkgsource.sources.fetch import fetch_git
from pkgsource.sources.package import PackageSource
from pkgsource.types import OutputType

app = typer.Typer(
    name="pkgsource",
    help="pkgsource - locate, discover and build package sources",
    no_args_is_help=True,
)
console = Console()

WorkspaceOption = Annotated[
    Path | None,
    typer.Option(
        "--workspace",
        "-w",
        help="Workspace root (defaults to the current directory)",
    ),
]
HackOption = Annotated[
    bool,
    typer.Option("--hack", help="Treat the workspace itself as the package source"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"pkgsource version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Route log records through Rich at the given level."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """pkgsource - locate, discover and build package sources."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


def _parse_id(text: str) -> PackageId:
    try:
        return PackageId.parse(text)
    except InvalidPackageIdError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None


def _resolve(
    settings: Settings,
    package: str,
    workspace: Path | None,
    hack: bool,
    discover: bool = True,
) -> PackageSource:
    """Resolve a package and optionally discover its units, exiting on error."""
    pkg_id = _parse_id(package)
    use_path_hack = hack or settings.use_path_hack
    root = (workspace or Path.cwd()).resolve()

    try:
        src = PackageSource.resolve(
            root,
            pkg_id,
            use_path_hack,
            search_path=settings.search_path,
            fetch=partial(
                fetch_git, tmp_dir=settings.tmp_dir, git=settings.git_executable
            ),
        )
        if discover:
            src.find_units()
    except PackageSourceError as e:
        console.print(f"[red]Error ({e.code}): {e}[/red]")
        raise typer.Exit(code=1) from None
    return src


@app.command()
def config(json_output: JsonOption = False) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    tmp_dir_display = str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
    search_display = ", ".join(str(p) for p in settings.search_path) or "(empty)"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Default workspace:   {settings.default_workspace}")
    console.print(f"  Search path:         {search_display}")
    console.print(f"  Database URL:        {settings.db_url}")
    console.print(f"  Temp directory:      {tmp_dir_display}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Hack mode:           {settings.use_path_hack}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print()
    console.print("[bold]Tools:[/bold]")
    console.print(f"  git:                 {settings.git_executable}")
    console.print(f"  Compiler:            {settings.compiler_executable}")


@app.command()
def locate(
    package: Annotated[str, typer.Argument(help="Package id, e.g. github.com/u/p#1.0")],
    workspace: WorkspaceOption = None,
    hack: HackOption = False,
    json_output: JsonOption = False,
) -> None:
    """Show where a package's source lives, fetching it if needed."""
    settings = get_settings()
    src = _resolve(settings, package, workspace, hack, discover=False)

    if json_output:
        output = {
            "package_id": str(src.pkg_id),
            "workspace": str(src.workspace),
            "start_dir": str(src.start_dir),
        }
        typer.echo(json.dumps(output, indent=2))
    else:
        console.print(f"[green]{src.pkg_id}[/green]")
        console.print(f"  Start dir: {src.start_dir}")
        console.print(f"  Workspace: {src.workspace}")


@app.command()
def units(
    package: Annotated[str, typer.Argument(help="Package id")],
    workspace: WorkspaceOption = None,
    hack: HackOption = False,
    json_output: JsonOption = False,
) -> None:
    """List the build units discovered in a package."""
    settings = get_settings()
    src = _resolve(settings, package, workspace, hack)

    if json_output:
        output = {
            kind.value: [str(u.file) for u in src.units(kind)] for kind in OutputType
        }
        typer.echo(json.dumps(output, indent=2))
        return

    console.print(f"[bold]Build units of {src.pkg_id}:[/bold]")
    for kind in OutputType:
        found = src.units(kind)
        if not found:
            continue
        console.print(f"  [bold]{kind.value}[/bold] ({len(found)})")
        for unit in found:
            console.print(f"    {unit.file}")


@app.command()
def build(
    package: Annotated[str, typer.Argument(help="Package id")],
    workspace: WorkspaceOption = None,
    hack: HackOption = False,
    cfgs: Annotated[
        list[str] | None,
        typer.Option("--cfg", help="Configuration tag (can be repeated)"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Force rebuild even if cached"),
    ] = False,
    json_output: JsonOption = False,
) -> None:
    """Build every unit of a package, reusing an identical earlier build."""
    from pkgsource.builds.compiler import BuildContext, CompilationError, RustcCompiler
    from pkgsource.builds.service import build_or_reuse
    from pkgsource.db import (
        create_all_tables,
        get_engine,
        get_session,
        get_session_factory,
    )
    from pkgsource.sources.workspace import default_workspace

    settings = get_settings()
    src = _resolve(settings, package, workspace, hack)
    use_path_hack = hack or settings.use_path_hack
    context = BuildContext(
        compiler=RustcCompiler(settings.compiler_executable),
        default_workspace=default_workspace(settings) if use_path_hack else None,
        use_path_hack=use_path_hack,
    )

    engine = get_engine(settings.db_url)
    create_all_tables(engine)
    factory = get_session_factory(engine)

    with get_session(factory) as session:
        try:
            record, cache_hit = build_or_reuse(
                session, src, context, cfgs=cfgs, force_rebuild=force
            )
        except (PackageSourceError, CompilationError) as e:
            # Keep the failed record
            session.commit()
            console.print(f"[red]Build failed ({e.code}): {e}[/red]")
            raise typer.Exit(code=1) from None

        if json_output:
            output = {
                "build_id": record.id,
                "package_id": record.package_id,
                "destination": record.destination,
                "cache_key": record.cache_key,
                "cache_hit": cache_hit,
            }
            typer.echo(json.dumps(output, indent=2))
        else:
            state = "[cyan]cached[/cyan]" if cache_hit else "[green]built[/green]"
            console.print(f"{state} {record.package_id} -> {record.destination}")


@app.command()
def builds(
    package: Annotated[
        str | None,
        typer.Option("--package", "-p", help="Filter by package id"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of records"),
    ] = 20,
    json_output: JsonOption = False,
) -> None:
    """List recorded builds, newest first."""
    from pkgsource.builds.service import list_builds
    from pkgsource.db import (
        create_all_tables,
        get_engine,
        get_session,
        get_session_factory,
    )

    settings = get_settings()
    engine = get_engine(settings.db_url)
    create_all_tables(engine)
    factory = get_session_factory(engine)

    with get_session(factory) as session:
        records = list_builds(session, package_id=package, limit=limit)

        if not records:
            if json_output:
                typer.echo("[]")
            else:
                console.print("[yellow]No builds found[/yellow]")
            return

        if json_output:
            output = [
                {
                    "build_id": r.id,
                    "package_id": r.package_id,
                    "status": r.status,
                    "destination": r.destination,
                    "cache_key": r.cache_key,
                    "error_message": r.error_message,
                }
                for r in records
            ]
            typer.echo(json.dumps(output, indent=2))
            return

        console.print(f"[bold]Found {len(records)} build(s):[/bold]")
        for r in records:
            color = {"succeeded": "green", "failed": "red"}.get(r.status, "yellow")
            console.print(f"  #{r.id} [{color}]{r.status}[/{color}] {r.package_id}")
            if r.error_message:
                console.print(f"    Error: {r.error_message}")


if __name__ == "__main__":
    app()
