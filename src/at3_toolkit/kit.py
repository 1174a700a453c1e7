"""
at3-kit - add AT3 features to an existing Next.js or React project

Usage:
    at3-kit                   # interactive feature picker
    at3-kit add supabase
    at3-kit detect
    at3-kit list
"""

import json
from pathlib import Path

import typer
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from .detector import detect_project, get_missing_features, is_compatible
from .errors import At3Error, UnknownFeatureError
from .features import FEATURES, FeatureResult, add_feature
from .integration import STACK_KIT, update_at3_config
from .logger import Logger
from .merger import ConfigMerger
from .shell import install_dependencies
from .ui import BannerGroup, StepTracker, console, error_panel, render_project_panel, select_many_with_arrows, show_banner

KIT_TAGLINE = "AT3 Stack Kit - add AI, auth, database and more to your project"

app = typer.Typer(
    name="at3-kit",
    help="Add AT3 features to an existing Next.js or React project",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def _detect_or_exit(project_path: Path, logger: Logger):
    try:
        return detect_project(project_path, logger)
    except At3Error as e:
        console.print(error_panel(str(e), title="Detection Error"))
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(error_panel(f"package.json is not valid JSON: {e}", title="Detection Error"))
        raise typer.Exit(1)


def apply_features(
    feature_ids: list[str],
    project_path: Path,
    package_manager: str,
    *,
    install: bool = True,
    dry_run: bool = False,
    logger: Logger | None = None,
) -> list[FeatureResult]:
    """Apply features in order under a live step tracker, then install once."""
    logger = logger or Logger()
    merger = ConfigMerger(logger)
    results: list[FeatureResult] = []

    tracker = StepTracker("Add AT3 Features")
    for feature_id in feature_ids:
        tracker.add(feature_id, FEATURES[feature_id].name)
    tracker.add("install", "Install dependencies")

    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        for feature_id in feature_ids:
            tracker.start(feature_id)
            result = add_feature(feature_id, project_path, merger, logger, dry_run=dry_run)
            tracker.complete(feature_id, f"{len(result.files_written)} file(s)")
            results.append(result)

        if dry_run:
            tracker.skip("install", "dry run")
        elif not install:
            tracker.skip("install", "--no-install")
        else:
            tracker.start("install", package_manager)
            try:
                install_dependencies(project_path, package_manager)
                tracker.complete("install", package_manager)
            except Exception as e:
                tracker.error("install", str(e))
                logger.warn(f"Dependency installation failed: {e}")

    console.print(tracker.render())

    if not dry_run:
        update_at3_config(project_path, "add", STACK_KIT, features=feature_ids, logger=logger)
    return results


def _summary_panel(results: list[FeatureResult], dry_run: bool) -> Panel:
    lines = []
    for result in results:
        verb = "would write" if dry_run else "wrote"
        lines.append(f"[cyan]{result.feature}[/cyan] {verb} {len(result.files_written)} file(s)")
        for rel in result.files_written:
            lines.append(f"  • [dim]{rel}[/dim]")
    return Panel("\n".join(lines) or "Nothing to do.", title="Features Added", border_style="green", padding=(1, 2))


@app.callback()
def callback(
    ctx: typer.Context,
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
    no_install: bool = typer.Option(False, "--no-install", help="Skip dependency installation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be added without writing files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
):
    """Pick features interactively when no subcommand is given."""
    if ctx.invoked_subcommand is not None:
        return

    show_banner(KIT_TAGLINE)
    logger = Logger(verbose)
    info = _detect_or_exit(path.resolve(), logger)
    console.print(render_project_panel(info))

    if not is_compatible(info):
        console.print(error_panel("at3-kit supports Next.js and React projects only.", title="Unsupported Project"))
        raise typer.Exit(1)

    missing = get_missing_features(info)
    if missing:
        console.print(f"[dim]Missing:[/dim] {', '.join(missing)}")

    choices = {feature_id: feature.description for feature_id, feature in FEATURES.items()}
    selected = select_many_with_arrows(choices, "Select features to add")
    if not selected:
        console.print("[yellow]No features selected.[/yellow]")
        raise typer.Exit(0)

    results = apply_features(
        selected, info.path, info.package_manager.value, install=not no_install, dry_run=dry_run, logger=logger
    )
    console.print(_summary_panel(results, dry_run))


@app.command()
def add(
    feature: str = typer.Argument(..., help=f"Feature to add: {', '.join(FEATURES)}"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
    no_install: bool = typer.Option(False, "--no-install", help="Skip dependency installation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be added without writing files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
):
    """Add a single feature to the project."""
    show_banner(KIT_TAGLINE)
    if feature not in FEATURES:
        console.print(error_panel(str(UnknownFeatureError(feature, list(FEATURES))), title="Unknown Feature"))
        raise typer.Exit(1)

    logger = Logger(verbose)
    info = _detect_or_exit(path.resolve(), logger)
    results = apply_features(
        [feature], info.path, info.package_manager.value, install=not no_install, dry_run=dry_run, logger=logger
    )
    console.print(_summary_panel(results, dry_run))


@app.command()
def detect(
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
):
    """Show detected features and what is missing."""
    show_banner(KIT_TAGLINE)
    info = _detect_or_exit(path.resolve(), Logger())
    console.print(render_project_panel(info))

    missing = get_missing_features(info)
    if missing:
        console.print(Panel("\n".join(f"• {m}" for m in missing), title="Missing Features", border_style="yellow", padding=(1, 2)))
    else:
        console.print("[bold green]All AT3 features are present.[/bold green]")


@app.command("list")
def list_features():
    """List the features at3-kit can add."""
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Feature", style="cyan")
    table.add_column("Name")
    table.add_column("Description", style="dim")
    for feature_id, feature in FEATURES.items():
        table.add_row(feature_id, feature.name, feature.description)
    console.print(table)


def main():
    app()


if __name__ == "__main__":
    main()
