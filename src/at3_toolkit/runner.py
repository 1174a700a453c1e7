"""Migration runner: detect, plan, back up, execute, install, validate."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Callable, Optional

from .backup import RestoreReport, create_backup, restore_backup
from .config import ToolkitConfig
from .detector import ProjectDetector
from .errors import StepFailedError
from .integration import TOOLKIT, update_at3_config
from .logger import Logger
from .merger import ConfigMerger
from .models import (
    MigrationError,
    MigrationOptions,
    MigrationResult,
    MigrationStep,
    MigrationStepResult,
    ProjectInfo,
)
from .planner import MigrationPlanner
from .shell import install_dependencies

TOTAL_PHASES = 6

Installer = Callable[[Path, str, Optional[float]], None]


class MigrationRunner:
    def __init__(
        self,
        logger: Logger | None = None,
        installer: Installer = install_dependencies,
        config: ToolkitConfig | None = None,
    ):
        self.logger = logger or Logger()
        self.installer = installer
        self.config = config or ToolkitConfig()
        self.detector = ProjectDetector(self.logger)
        self.merger = ConfigMerger(self.logger)
        self.planner = MigrationPlanner(self.merger, self.logger)

    def migrate(self, options: MigrationOptions, progress: Callable[[str, str], None] | None = None) -> MigrationResult:
        """Run all six phases against ``options.project_path``.

        ``progress(phase, status)`` is called with status ``start`` / ``done`` /
        ``skip`` so a CLI can render a step tracker. A failing required step
        raises StepFailedError after the backup is already in place.
        """
        notify = progress or (lambda phase, status: None)
        started = time.monotonic()
        project_path = Path(options.project_path)

        self.logger.step(1, TOTAL_PHASES, "Analyzing project...")
        notify("detect", "start")
        info = self.detector.detect_project(project_path)
        notify("detect", "done")

        self.logger.step(2, TOTAL_PHASES, "Creating migration plan...")
        notify("plan", "start")
        plan = self.planner.build_plan(info, options)
        self.logger.table({
            "Project type": info.type.value,
            "Package manager": info.package_manager.value,
            "Backup files": len(plan.backup_files),
        })
        self.logger.list(step.name if step.required else f"{step.name} (optional)" for step in plan.steps)
        notify("plan", "done")

        backup_path = None
        if options.dry_run:
            notify("backup", "skip")
        else:
            self.logger.step(3, TOTAL_PHASES, "Creating backup...")
            notify("backup", "start")
            _, backup_path = create_backup(
                project_path, options.backup_dir or self.config.backup_dir, logger=self.logger
            )
            notify("backup", "done")

        result = MigrationResult(success=False, backup_path=backup_path)

        self.logger.step(4, TOTAL_PHASES, "Executing migration...")
        notify("execute", "start")
        self.execute_steps(plan.steps, options, result)
        notify("execute", "done")

        if options.skip_deps or options.dry_run:
            notify("install", "skip")
        else:
            self.logger.step(5, TOTAL_PHASES, "Updating dependencies...")
            notify("install", "start")
            self.update_dependencies(options, info, result)
            notify("install", "done")

        self.logger.step(6, TOTAL_PHASES, "Validating migration...")
        notify("validate", "start")
        result.errors.extend(self.validate_migration(project_path))
        result.success = not any(e.severity == "error" for e in result.errors)
        notify("validate", "done")

        if result.success and not options.dry_run:
            update_at3_config(project_path, "migrate", TOOLKIT, logger=self.logger)

        self.logger.success(f"Migration completed in {(time.monotonic() - started) * 1000:.0f}ms")
        return result

    def execute_steps(self, steps: list[MigrationStep], options: MigrationOptions, result: MigrationResult):
        for step in steps:
            spinner = self.logger.spinner(f"Executing: {step.name}")
            started = time.monotonic()
            try:
                modified = [] if options.dry_run else (step.execute(options) or [])
            except Exception as exc:
                spinner.fail(step.name)
                result.steps.append(MigrationStepResult(
                    step_id=step.id,
                    success=False,
                    duration=time.monotonic() - started,
                    error=str(exc),
                ))
                if step.required:
                    raise StepFailedError(step.id, exc, result) from exc
                result.warnings.append(f"Optional step '{step.id}' failed: {exc}")
                continue

            spinner.succeed(step.name)
            result.steps.append(MigrationStepResult(
                step_id=step.id,
                success=True,
                duration=time.monotonic() - started,
                files_modified=modified,
            ))

    def update_dependencies(self, options: MigrationOptions, info: ProjectInfo, result: MigrationResult):
        spinner = self.logger.spinner("Installing dependencies...")
        try:
            self.installer(Path(options.project_path), info.package_manager.value, self.config.install_timeout)
        except Exception as exc:
            spinner.fail("Failed to update dependencies")
            self.logger.warn("You may need to run the package manager install command manually")
            result.warnings.append(f"Dependency installation failed: {exc}")
            return
        spinner.succeed("Dependencies updated successfully")

    def validate_migration(self, project_path: Path) -> list[MigrationError]:
        errors: list[MigrationError] = []
        package_json_path = project_path / "package.json"
        try:
            json.loads(package_json_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            errors.append(MigrationError(
                step="validation",
                message="Invalid package.json after migration",
                file="package.json",
                code=type(exc).__name__,
            ))
        return errors

    def rollback(self, project_path, force: bool = False, backup_dir: str | None = None) -> RestoreReport:
        self.logger.info("Starting rollback process...")
        if not force:
            self.logger.warn("Restoring files from the most recent backup")
        report = restore_backup(
            Path(project_path), backup_dir or self.config.backup_dir, logger=self.logger
        )
        self.logger.success("Rollback completed successfully")
        return report


def migrate_project(project_path, logger: Logger | None = None, installer: Installer = install_dependencies, **overrides) -> MigrationResult:
    options = MigrationOptions(project_path=Path(project_path), update_versions=True)
    for key, value in overrides.items():
        setattr(options, key, value)
    return MigrationRunner(logger, installer).migrate(options)


def rollback_project(project_path, force: bool = False, logger: Logger | None = None) -> RestoreReport:
    return MigrationRunner(logger).rollback(project_path, force)
