"""Tests for the backup store."""
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from at3_toolkit.backup import (
    BACKUP_INFO_FILENAME,
    backup_timestamp,
    collect_backup_files,
    create_backup,
    list_backups,
    read_backup_info,
    restore_backup,
)
from at3_toolkit.errors import NoBackupError

T1 = datetime(2025, 1, 8, 10, 15, 0, 123000, tzinfo=timezone.utc)
T2 = datetime(2025, 1, 9, 8, 0, 0, tzinfo=timezone.utc)


def test_timestamp_is_path_safe() -> None:
    assert backup_timestamp(T1) == "2025-01-08T10-15-00-123Z"


def test_collect_matches_globs_only(nextjs_project) -> None:
    (nextjs_project / "README.md").write_text("hi")
    files = collect_backup_files(nextjs_project)
    assert files[0] == "package.json"
    assert {"next.config.js", "tailwind.config.js", "tsconfig.json", ".eslintrc.json", ".prettierrc",
            "postcss.config.js", "src/app/globals.css"} <= set(files)
    assert "README.md" not in files


def test_create_backup_layout(nextjs_project) -> None:
    info, run_dir = create_backup(nextjs_project, now=T1)

    assert run_dir == nextjs_project / ".migration-backup" / "2025-01-08T10-15-00-123Z"
    assert info.timestamp == run_dir.name
    assert info.can_rollback
    assert (run_dir / "src/app/globals.css").read_bytes() == (nextjs_project / "src/app/globals.css").read_bytes()

    data = json.loads((run_dir / BACKUP_INFO_FILENAME).read_text())
    assert set(data) == {"timestamp", "files", "migrationId", "canRollback"}
    assert data["files"] == list(info.files)
    assert read_backup_info(run_dir) == info


def test_same_timestamp_gets_suffix(nextjs_project) -> None:
    _, first = create_backup(nextjs_project, now=T1)
    _, second = create_backup(nextjs_project, now=T1)
    assert first != second
    assert second.name == first.name + "-1"


def test_list_backups_oldest_first(nextjs_project) -> None:
    create_backup(nextjs_project, now=T2)
    create_backup(nextjs_project, now=T1)
    assert list_backups(nextjs_project) == ["2025-01-08T10-15-00-123Z", "2025-01-09T08-00-00-000Z"]


def test_suffixed_runs_sort_numerically(nextjs_project) -> None:
    for _ in range(12):
        create_backup(nextjs_project, now=T1)

    runs = list_backups(nextjs_project)
    assert runs[0] == "2025-01-08T10-15-00-123Z"
    assert runs[1:3] == ["2025-01-08T10-15-00-123Z-1", "2025-01-08T10-15-00-123Z-2"]
    assert runs[-1] == "2025-01-08T10-15-00-123Z-11"
    assert restore_backup(nextjs_project).timestamp == "2025-01-08T10-15-00-123Z-11"


def test_restore_uses_most_recent_run(nextjs_project) -> None:
    pkg = nextjs_project / "package.json"
    original = pkg.read_bytes()
    create_backup(nextjs_project, now=T1)

    pkg.write_text('{"name": "second"}')
    create_backup(nextjs_project, now=T2)

    pkg.write_text('{"name": "third"}')
    report = restore_backup(nextjs_project)
    assert report.timestamp == "2025-01-09T08-00-00-000Z"
    assert pkg.read_text() == '{"name": "second"}'

    restore_backup(nextjs_project, timestamp="2025-01-08T10-15-00-123Z")
    assert pkg.read_bytes() == original


def test_restore_recreates_deleted_files(nextjs_project) -> None:
    css = nextjs_project / "src/app/globals.css"
    original = css.read_bytes()
    create_backup(nextjs_project, now=T1)
    css.unlink()
    css.parent.rmdir()

    report = restore_backup(nextjs_project)
    assert "src/app/globals.css" in report.restored
    assert css.read_bytes() == original


def test_restore_without_info_file_copies_everything(nextjs_project) -> None:
    _, run_dir = create_backup(nextjs_project, now=T1)
    (run_dir / BACKUP_INFO_FILENAME).unlink()
    (nextjs_project / "tsconfig.json").write_text("{}")

    report = restore_backup(nextjs_project)
    assert "tsconfig.json" in report.restored
    assert json.loads((nextjs_project / "tsconfig.json").read_text())["compilerOptions"]["strict"] is False


def test_restore_refuses_non_restorable_run(nextjs_project) -> None:
    _, run_dir = create_backup(nextjs_project, now=T1)
    info_path = run_dir / BACKUP_INFO_FILENAME
    data = json.loads(info_path.read_text())
    data["canRollback"] = False
    info_path.write_text(json.dumps(data))
    with pytest.raises(NoBackupError):
        restore_backup(nextjs_project)


def test_restore_errors(tmp_path: Path, nextjs_project) -> None:
    with pytest.raises(NoBackupError):
        restore_backup(tmp_path)

    (nextjs_project / ".migration-backup").mkdir()
    with pytest.raises(NoBackupError):
        restore_backup(nextjs_project)

    create_backup(nextjs_project, now=T1)
    with pytest.raises(NoBackupError):
        restore_backup(nextjs_project, timestamp="1999-01-01T00-00-00-000Z")


def test_backup_is_kept_after_restore(nextjs_project) -> None:
    _, run_dir = create_backup(nextjs_project, now=T1)
    restore_backup(nextjs_project)
    assert run_dir.is_dir()
    assert list_backups(nextjs_project) == [run_dir.name]
