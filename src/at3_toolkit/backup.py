"""Timestamped pre-migration backups and rollback."""

from __future__ import annotations

import fnmatch
import json
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_BACKUP_DIR
from .errors import NoBackupError
from .logger import Logger
from .models import BackupInfo

BACKUP_INFO_FILENAME = "backup-info.json"
# same-millisecond runs get "-1", "-2", ... appended to the timestamp
RUN_SUFFIX_RE = re.compile(r"^(.*Z)-(\d+)$")

BACKUP_GLOBS = [
    "package.json",
    "next.config.*",
    "tailwind.config.*",
    "tsconfig.json",
    "biome.json",
    ".eslintrc.*",
    ".prettierrc*",
    "postcss.config.*",
    "src/app/globals.css",
]


@dataclass
class RestoreReport:
    timestamp: str
    backup_path: Path
    restored: list[str] = field(default_factory=list)


def backup_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC with ':' and '.' made path-safe, e.g. 2025-01-08T10-15-00-123Z."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def _run_sort_key(name: str) -> tuple[str, int]:
    match = RUN_SUFFIX_RE.match(name)
    if match:
        return match.group(1), int(match.group(2))
    return name, 0


def is_backed_up(rel: str, patterns: list[str] = BACKUP_GLOBS) -> bool:
    return any(fnmatch.fnmatchcase(rel, pattern) for pattern in patterns)


def collect_backup_files(project_path: Path, patterns: list[str] = BACKUP_GLOBS) -> list[str]:
    files: list[str] = []
    for pattern in patterns:
        for match in sorted(project_path.glob(pattern)):
            rel = match.relative_to(project_path).as_posix()
            if match.is_file() and rel not in files:
                files.append(rel)
    return files


def create_backup(
    project_path,
    backup_dir: str | None = None,
    *,
    now: datetime | None = None,
    logger: Logger | None = None,
) -> tuple[BackupInfo, Path]:
    """Copy every file matching BACKUP_GLOBS into <backup_dir>/<timestamp>/."""
    logger = logger or Logger()
    project_path = Path(project_path)
    timestamp = backup_timestamp(now)
    backup_root = project_path / (backup_dir or DEFAULT_BACKUP_DIR)

    run_dir = backup_root / timestamp
    suffix = 1
    while run_dir.exists():
        run_dir = backup_root / f"{timestamp}-{suffix}"
        suffix += 1
    run_dir.mkdir(parents=True)

    files = collect_backup_files(project_path)
    for rel in files:
        destination = run_dir / rel
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(project_path / rel, destination)
        logger.debug(f"Backed up: {rel}")

    info = BackupInfo(
        timestamp=run_dir.name,
        files=tuple(files),
        migration_id=f"migration-{run_dir.name}",
        can_rollback=True,
    )
    (run_dir / BACKUP_INFO_FILENAME).write_text(json.dumps(info.to_json(), indent=2) + "\n", encoding="utf-8")

    logger.success(f"Backup created: {run_dir.relative_to(project_path).as_posix()}")
    return info, run_dir


def list_backups(project_path, backup_dir: str | None = None) -> list[str]:
    """Backup run names, oldest first."""
    backup_root = Path(project_path) / (backup_dir or DEFAULT_BACKUP_DIR)
    if not backup_root.is_dir():
        return []
    return sorted((path.name for path in backup_root.iterdir() if path.is_dir()), key=_run_sort_key)


def read_backup_info(run_dir: Path) -> BackupInfo | None:
    info_path = run_dir / BACKUP_INFO_FILENAME
    if not info_path.is_file():
        return None
    return BackupInfo.from_json(json.loads(info_path.read_text(encoding="utf-8")))


def restore_backup(
    project_path,
    backup_dir: str | None = None,
    timestamp: str | None = None,
    *,
    logger: Logger | None = None,
) -> RestoreReport:
    """Copy a backup run back over the project.

    Restores the most recent run unless ``timestamp`` names one. Files created
    after the backup are left in place, and the backup itself is kept.
    """
    logger = logger or Logger()
    project_path = Path(project_path)
    backup_root = project_path / (backup_dir or DEFAULT_BACKUP_DIR)
    if not backup_root.is_dir():
        raise NoBackupError(f"No backup found to rollback from: {backup_root}")

    runs = list_backups(project_path, backup_dir)
    if timestamp is None:
        if not runs:
            raise NoBackupError(f"No backup runs found in {backup_root}")
        timestamp = runs[-1]
    elif timestamp not in runs:
        raise NoBackupError(f"Backup run not found: {timestamp}")

    run_dir = backup_root / timestamp
    info = read_backup_info(run_dir)
    if info is not None and not info.can_rollback:
        raise NoBackupError(f"Backup {timestamp} is marked as not restorable")

    if info is not None:
        files = list(info.files)
    else:
        files = sorted(
            p.relative_to(run_dir).as_posix()
            for p in run_dir.rglob("*")
            if p.is_file() and p.name != BACKUP_INFO_FILENAME
        )

    report = RestoreReport(timestamp=timestamp, backup_path=run_dir)
    for rel in files:
        source = run_dir / rel
        if not source.is_file():
            logger.warn(f"Backup is missing {rel}, skipping")
            continue
        target = project_path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        report.restored.append(rel)
        logger.debug(f"Restored: {rel}")

    logger.success(f"Rollback restored {len(report.restored)} file(s) from {timestamp}")
    return report
