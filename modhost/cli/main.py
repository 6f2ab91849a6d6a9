"""CLI for managing installed modules

Usage:
    modhost install <zip_path> [--dest DIR] [--by ACTOR] [--keep-staging]
    modhost validate <zip_path>
    modhost list [--enabled-only]
    modhost show <name>
    modhost enable <name>
    modhost disable <name>
"""

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from modhost import __version__
from modhost.config import load_settings
from modhost.core.modules import (
    ArchiveOpenError,
    ModuleArchive,
    ModuleInstaller,
    ModuleRegistry,
    RegistryError,
    REQUIRED_FILES_INSTALL,
)

logger = logging.getLogger(__name__)

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="modhost")
@click.option("--db", "db_path", type=click.Path(path_type=Path), help="Registry database path")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path, verbose):
    """modhost - install and manage module packages"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s"
    )
    settings = load_settings()
    if db_path is not None:
        settings.db_path = db_path
    ctx.obj = {"settings": settings}


def _registry(ctx) -> ModuleRegistry:
    return ModuleRegistry(ctx.obj["settings"].db_path)


@cli.command("install")
@click.argument("zip_path", type=click.Path(path_type=Path))
@click.option("--dest", type=click.Path(path_type=Path), help="Modules directory")
@click.option("--by", "installed_by", help="Actor recorded as installer")
@click.option("--keep-staging", is_flag=True, help="Keep the extracted staging directory")
@click.pass_context
def install_cmd(ctx, zip_path: Path, dest: Path, installed_by: str, keep_staging: bool):
    """Install a module package from a local zip file"""
    settings = ctx.obj["settings"]
    dest = dest or settings.manage_modules_path
    dest.mkdir(parents=True, exist_ok=True)

    try:
        installer = ModuleInstaller(
            zip_path,
            dest,
            registry=_registry(ctx),
            settings=settings,
        )
    except ArchiveOpenError as e:
        console.print(f"[red]Cannot open package:[/red] {escape(str(e))}")
        ctx.exit(1)

    report = installer.run(by=installed_by, keep_staging=keep_staging)

    if not report.success:
        console.print("[red]Installation failed[/red]")
        for message in report.messages:
            console.print(f"  - {escape(str(message))}")
        ctx.exit(1)

    installed = ", ".join(report.installed) or "-"
    console.print(f"[green]Installed:[/green] {installed}")


@cli.command("validate")
@click.argument("zip_path", type=click.Path(path_type=Path))
@click.pass_context
def validate_cmd(ctx, zip_path: Path):
    """Check a package's required files without installing"""
    try:
        with ModuleArchive.open(zip_path) as archive:
            errors = archive.validate_required(REQUIRED_FILES_INSTALL)
    except ArchiveOpenError as e:
        console.print(f"[red]Cannot open package:[/red] {escape(str(e))}")
        ctx.exit(1)

    if errors:
        console.print("[red]Package is invalid[/red]")
        for error in errors:
            console.print(f"  - {escape(error)}")
        ctx.exit(1)

    console.print("[green]Package is valid[/green]")


@cli.command("list")
@click.option("--enabled-only", is_flag=True, help="Show only enabled modules")
@click.pass_context
def list_cmd(ctx, enabled_only: bool):
    """List installed modules"""
    try:
        modules = _registry(ctx).list_modules(enabled_only=enabled_only)
    except RegistryError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        ctx.exit(1)

    if not modules:
        console.print("[yellow]No modules installed[/yellow]")
        return

    table = Table(title=f"Installed Modules ({len(modules)})", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version")
    table.add_column("Enabled", style="green")
    table.add_column("Path")
    table.add_column("Installed By", style="magenta")
    table.add_column("Created", style="dim")

    for module in modules:
        table.add_row(
            module.name,
            module.version,
            "Yes" if module.status else "No",
            module.path,
            module.installed_by or "-",
            module.created.isoformat(timespec="seconds") if module.created else "N/A",
        )

    console.print(table)


@cli.command("show")
@click.argument("name")
@click.pass_context
def show_cmd(ctx, name: str):
    """Show an installed module's record"""
    try:
        record = _registry(ctx).get(name)
    except RegistryError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        ctx.exit(1)
    if record is None:
        console.print(f"[red]Module not found:[/red] {escape(name)}")
        ctx.exit(1)

    data = record.model_dump(mode="json")
    for key in ("menu", "info", "settings"):
        data[key] = json.loads(data[key])
    console.print_json(json.dumps(data))


def _set_enabled(ctx, name: str, enabled: bool) -> None:
    try:
        _registry(ctx).set_enabled(name, enabled)
    except RegistryError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        ctx.exit(1)
    console.print(f"[green]Module {name} {'enabled' if enabled else 'disabled'}[/green]")


@cli.command("enable")
@click.argument("name")
@click.pass_context
def enable_cmd(ctx, name: str):
    """Enable an installed module"""
    _set_enabled(ctx, name, True)


@cli.command("disable")
@click.argument("name")
@click.pass_context
def disable_cmd(ctx, name: str):
    """Disable an installed module"""
    _set_enabled(ctx, name, False)


if __name__ == "__main__":
    cli()
