#!/usr/bin/env python3
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "typer",
#     "rich",
#     "platformdirs",
#     "readchar",
#     "httpx",
#     "truststore>=0.10.4",
#     "PyYAML",
# ]
# ///
"""
at3t - migrate existing Node.js projects to the AT3 stack

Usage:
    at3t [project-path]
    at3t migrate [project-path]
    at3t detect [project-path] --check-latest
    at3t rollback [project-path]
    at3t check

Or install globally:
    uv tool install --from . at3-toolkit
    at3t --interactive --update-versions
"""

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from .backup import list_backups
from .config import ToolkitConfig, load_config
from .detector import detect_project, get_at3_score, get_recommendations
from .errors import At3Error, NoBackupError, StepFailedError
from .integration import workflow_recommendations
from .logger import Logger
from .models import MigrationOptions, MigrationResult, ProjectType
from .registry import NpmRegistry
from .runner import MigrationRunner
from .shell import check_tool
from .ui import DefaultCommandGroup, StepTracker, console, error_panel, render_project_panel, show_banner

__version__ = "0.3.0"

PHASES = [
    ("detect", "Analyze project"),
    ("plan", "Create migration plan"),
    ("backup", "Back up configuration"),
    ("execute", "Execute migration steps"),
    ("install", "Install dependencies"),
    ("validate", "Validate migration"),
]

app = typer.Typer(
    name="at3t",
    help="Migrate existing Next.js and React projects to the AT3 stack",
    add_completion=False,
    cls=DefaultCommandGroup,
)


def _load_config_or_exit(config_path: Optional[Path]) -> ToolkitConfig:
    try:
        return load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(error_panel(str(e), title="Configuration Error"))
        raise typer.Exit(1)


def _detect_or_exit(project_path: Path, logger: Logger):
    try:
        return detect_project(project_path, logger)
    except At3Error as e:
        console.print(error_panel(f"{e}\n\nPlease check that the path exists and contains a valid Node.js project.", title="Detection Error"))
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(error_panel(f"package.json is not valid JSON: {e}", title="Detection Error"))
        raise typer.Exit(1)


def _render_result(result: MigrationResult, dry_run: bool):
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Files")
    for step in result.steps:
        status = "[green]ok[/green]" if step.success else f"[red]failed[/red] [dim]{step.error}[/dim]"
        files = "(dry run)" if dry_run else (", ".join(step.files_modified) or "-")
        table.add_row(step.step_id, status, files)
    if result.steps:
        console.print(table)

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    for error in result.errors:
        console.print(f"[red]Error:[/red] {error.message} [dim]({error.file or error.step})[/dim]")


@app.command()
def migrate(
    project_path: Path = typer.Argument(Path("."), help="Path to the project to migrate"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Show the migration plan and ask for confirmation"),
    overwrite: bool = typer.Option(False, "--overwrite", "-o", help="Overwrite existing configuration files instead of merging"),
    no_deps: bool = typer.Option(False, "--no-deps", help="Skip dependency installation"),
    update_versions: bool = typer.Option(False, "--update-versions", "-u", help="Update dependencies to the pinned AT3 versions"),
    replace_linting: bool = typer.Option(False, "--replace-linting", "-r", help="Replace ESLint/Prettier with Biome"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Show what would change without writing files"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip safety confirmations"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed progress output"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a toolkit config file (JSON or YAML)"),
    backup_dir: Optional[str] = typer.Option(None, "--backup-dir", help="Backup directory relative to the project"),
):
    """
    Migrate a project to the AT3 stack.

    Detects the project, backs up its configuration under .migration-backup/,
    rewrites Next.js, Tailwind, linting and TypeScript config, installs
    dependencies and validates the result.

    Examples:
        at3t
        at3t ./my-app --interactive --update-versions
        at3t migrate -r --no-deps --force
        at3t -d --verbose
    """
    show_banner()
    settings = _load_config_or_exit(config)
    logger = Logger(verbose)
    project_path = project_path.resolve()

    info = _detect_or_exit(project_path, logger)
    if not force and not dry_run:
        console.print(render_project_panel(info))

    options = MigrationOptions(
        project_path=project_path,
        interactive=interactive,
        overwrite=overwrite,
        skip_deps=no_deps or settings.skip_deps,
        update_versions=update_versions or settings.update_versions,
        replace_linting=replace_linting or settings.replace_linting,
        dry_run=dry_run,
        force=force,
        verbose=verbose,
        config_path=config,
        backup_dir=backup_dir,
    )

    if interactive:
        if not typer.confirm(f"Migrate {info.type.value} project to the AT3 stack?", default=True):
            console.print("[yellow]Migration cancelled.[/yellow]")
            raise typer.Exit(0)
        options.update_versions = typer.confirm("Update dependencies to the pinned AT3 versions?", default=options.update_versions)
        options.replace_linting = typer.confirm("Replace ESLint/Prettier with Biome?", default=options.replace_linting)
        options.skip_deps = typer.confirm("Skip dependency installation?", default=options.skip_deps)
    elif not force and not dry_run:
        if not typer.confirm("This will modify your project files. Continue?", default=False):
            console.print("[yellow]Migration cancelled.[/yellow]")
            raise typer.Exit(0)

    tracker = StepTracker("Migrate to AT3")
    for key, label in PHASES:
        tracker.add(key, label)

    def progress(phase: str, status: str):
        if status == "start":
            tracker.start(phase)
        elif status == "done":
            tracker.complete(phase)
        else:
            tracker.skip(phase, "dry run" if dry_run else "--no-deps")

    runner = MigrationRunner(logger, config=settings)
    result = None
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            result = runner.migrate(options, progress=progress)
        except StepFailedError as e:
            tracker.error("execute", e.step_id)
            failure = e
        except At3Error as e:
            failure = e
        else:
            failure = None

    console.print(tracker.render())

    if isinstance(failure, StepFailedError):
        _render_result(failure.result, dry_run)
        backup_note = f"\n\nBackup: [cyan]{failure.result.backup_path}[/cyan]\nRun [cyan]at3t rollback[/cyan] to restore it." if failure.result.backup_path else ""
        logger.error("Migration failed", failure.cause)
        console.print(error_panel(f"{failure}{backup_note}", title="Migration Failed"))
        raise typer.Exit(1)
    if failure is not None:
        console.print(error_panel(str(failure), title="Migration Failed"))
        raise typer.Exit(1)

    _render_result(result, dry_run)
    if not result.success:
        console.print(error_panel("Validation failed after migration. Run [cyan]at3t rollback[/cyan] to restore the backup.", title="Migration Failed"))
        raise typer.Exit(1)

    if dry_run:
        console.print(Panel("Dry run complete. No project files were modified.", border_style="yellow", padding=(1, 2)))
        return

    steps_lines = [f"• {line}" for line in workflow_recommendations(info, "migrate")]
    steps_lines.append("")
    steps_lines.append(f"Backup files are stored in [cyan]{result.backup_path}[/cyan]")
    console.print()
    console.print(Panel("\n".join(steps_lines), title="Migration Complete", border_style="green", padding=(1, 2)))


@app.command()
def detect(
    project_path: Path = typer.Argument(Path("."), help="Path to analyze"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed analysis"),
    check_latest: bool = typer.Option(False, "--check-latest", help="Look up the latest published version of each dependency"),
):
    """Analyze project structure and report AT3 compatibility."""
    show_banner()
    logger = Logger(verbose)
    settings = _load_config_or_exit(None)
    info = _detect_or_exit(project_path.resolve(), logger)

    console.print(render_project_panel(info))

    if check_latest and info.dependencies:
        registry = NpmRegistry(settings.registry_url, logger=logger)
        try:
            with console.status("[cyan]Checking npm registry...[/cyan]"):
                registry.annotate_latest(info.dependencies)
        finally:
            registry.close()

        deps_table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
        deps_table.add_column("Package")
        deps_table.add_column("Declared")
        deps_table.add_column("Installed")
        deps_table.add_column("Latest")
        for dep in info.dependencies:
            latest = dep.latest or "[dim]unknown[/dim]"
            if registry.is_outdated(dep):
                latest = f"[yellow]{dep.latest}[/yellow]"
            deps_table.add_row(dep.name, dep.version, dep.installed_version or "-", latest)
        console.print(deps_table)

    if verbose and info.config_files:
        console.print(Panel("\n".join(info.config_files), title="Configuration Files", border_style="bright_black", padding=(0, 2)))

    score = get_at3_score(info)
    lines = [f"AT3 score: [bold]{score['score']}/{score['max_score']}[/bold] ({score['percentage']}%, {score['level']})"]
    recommendations = get_recommendations(info)
    if recommendations:
        lines.append("")
        for rec in recommendations:
            lines.append(f"• [{rec['priority']}] [cyan]{rec['feature']}[/cyan] - {rec['reason']}")

    title = "AT3 Stack Detected" if info.type is ProjectType.AIT3E else "AT3 Compatibility"
    console.print(Panel("\n".join(lines), title=title, border_style="green" if info.type is ProjectType.AIT3E else "cyan", padding=(1, 2)))

    for line in workflow_recommendations(info, "detect"):
        console.print(f"[dim]→[/dim] {line}")


@app.command()
def rollback(
    project_path: Path = typer.Argument(Path("."), help="Path to the migrated project"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    backup_dir: Optional[str] = typer.Option(None, "--backup-dir", help="Backup directory relative to the project"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show each restored file"),
):
    """Restore configuration files from the most recent migration backup."""
    show_banner()
    settings = _load_config_or_exit(None)
    project_path = project_path.resolve()
    runs = list_backups(project_path, backup_dir or settings.backup_dir)

    if runs and not force:
        if not typer.confirm(f"Restore files from backup {runs[-1]}? This overwrites current configuration.", default=False):
            console.print("[yellow]Rollback cancelled.[/yellow]")
            raise typer.Exit(0)

    runner = MigrationRunner(Logger(verbose), config=settings)
    try:
        report = runner.rollback(project_path, force=True, backup_dir=backup_dir)
    except NoBackupError as e:
        console.print(error_panel(str(e), title="Rollback Failed"))
        raise typer.Exit(1)

    lines = [f"Restored {len(report.restored)} file(s) from [cyan]{report.timestamp}[/cyan]"]
    lines.extend(f"  • {rel}" for rel in report.restored)
    console.print(Panel("\n".join(lines), title="Rollback Complete", border_style="green", padding=(1, 2)))


def check_tool_for_tracker(tool: str, tracker: StepTracker) -> bool:
    """Check if a tool is installed and update tracker."""
    if check_tool(tool):
        tracker.complete(tool, "available")
        return True
    tracker.error(tool, "not found")
    return False


@app.command()
def check():
    """Check which package managers and tools are installed."""
    show_banner()
    console.print("[bold]Checking for installed tools...[/bold]\n")

    tracker = StepTracker("Check Available Tools")
    tracker.add("node", "Node.js runtime")
    tracker.add("git", "Git version control")
    tracker.add("npm", "npm")
    tracker.add("pnpm", "pnpm")
    tracker.add("yarn", "Yarn")
    tracker.add("bun", "Bun")

    node_ok = check_tool_for_tracker("node", tracker)
    git_ok = check_tool_for_tracker("git", tracker)
    managers_ok = [check_tool_for_tracker(pm, tracker) for pm in ("npm", "pnpm", "yarn", "bun")]

    console.print(tracker.render())
    console.print("\n[bold green]at3t is ready to use![/bold green]")

    if not node_ok:
        console.print("[dim]Tip: Install Node.js to build and run migrated projects[/dim]")
    if not git_ok:
        console.print("[dim]Tip: Install git to review migration changes[/dim]")
    if not any(managers_ok):
        console.print("[dim]Tip: Install a package manager, or use --no-deps when migrating[/dim]")


def main():
    try:
        app()
    except At3Error as e:
        console.print(error_panel(str(e)))
        sys.exit(1)


if __name__ == "__main__":
    main()
