"""The advisory ``.at3-config.json`` marker shared by the AT3 tools.

The marker records which tools touched a project so that each tool can avoid
suggesting the others twice. Nothing depends on it for correctness: a missing
or corrupt marker reads as ``None`` and write failures only log a warning.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .logger import Logger
from .models import ProjectInfo, ProjectType

AT3_CONFIG_FILENAME = ".at3-config.json"
AT3_CONFIG_VERSION = "0.1.0"

TOOLKIT = "at3-toolkit"
STACK_KIT = "at3-stack-kit"
CREATE_APP = "create-at3-app"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class At3Config:
    version: str
    created: str
    features: list[str] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    template: Optional[str] = None
    last_migration: Optional[str] = None
    last_toolkit_run: Optional[str] = None

    def to_json(self) -> dict:
        data = {
            "version": self.version,
            "created": self.created,
            "features": self.features,
            "toolsUsed": self.tools_used,
        }
        if self.template is not None:
            data["template"] = self.template
        if self.last_migration is not None:
            data["lastMigration"] = self.last_migration
        if self.last_toolkit_run is not None:
            data["lastToolkitRun"] = self.last_toolkit_run
        return data

    @classmethod
    def from_json(cls, data: dict) -> "At3Config":
        return cls(
            version=str(data.get("version", AT3_CONFIG_VERSION)),
            created=str(data.get("created", _now_iso())),
            features=list(data.get("features") or []),
            tools_used=list(data.get("toolsUsed") or []),
            template=data.get("template"),
            last_migration=data.get("lastMigration"),
            last_toolkit_run=data.get("lastToolkitRun"),
        )


def read_at3_config(project_path) -> At3Config | None:
    path = Path(project_path) / AT3_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    return At3Config.from_json(data)


def write_at3_config(project_path, config: At3Config, logger: Logger | None = None) -> bool:
    path = Path(project_path) / AT3_CONFIG_FILENAME
    try:
        path.write_text(json.dumps(config.to_json(), indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        (logger or Logger()).warn(f"Could not write {AT3_CONFIG_FILENAME}: {exc}")
        return False
    return True


def _merge_unique(existing: Iterable[str], extra: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for item in [*existing, *extra]:
        if item not in merged:
            merged.append(item)
    return merged


def create_at3_config(
    project_path,
    template: Optional[str],
    features: Iterable[str],
    tools_used: Iterable[str] = (),
    logger: Logger | None = None,
) -> At3Config:
    config = At3Config(
        version=AT3_CONFIG_VERSION,
        created=_now_iso(),
        template=template,
        features=_merge_unique([], features),
        tools_used=_merge_unique([CREATE_APP], tools_used),
    )
    write_at3_config(project_path, config, logger)
    return config


def update_at3_config(
    project_path,
    operation: str,
    tool: str = TOOLKIT,
    features: Iterable[str] = (),
    logger: Logger | None = None,
) -> At3Config:
    config = read_at3_config(project_path) or At3Config(version=AT3_CONFIG_VERSION, created=_now_iso())
    config.tools_used = _merge_unique(config.tools_used, [tool])
    config.features = _merge_unique(config.features, features)

    now = _now_iso()
    if tool == TOOLKIT:
        config.last_toolkit_run = now
    if operation == "migrate":
        config.last_migration = now

    write_at3_config(project_path, config, logger)
    return config


def suggest_tools(info: ProjectInfo) -> list[str]:
    suggestions: list[str] = []
    config = read_at3_config(info.path)
    tools_used = config.tools_used if config else []

    if CREATE_APP not in tools_used:
        suggestions.append("For new AT3 projects, use [cyan]create-at3-app[/cyan] to start with optimized templates")

    if info.type in (ProjectType.NEXTJS, ProjectType.REACT) and STACK_KIT not in tools_used:
        suggestions.append("Use [cyan]at3-kit[/cyan] to upgrade your project with AI, edge, and modern AT3 features")

    if info.type is not ProjectType.AIT3E:
        missing = []
        if not info.has_supabase:
            missing.append("Supabase")
        if not info.has_ai_support:
            missing.append("AI integration")
        if missing:
            suggestions.append(f"Consider adding {', '.join(missing)} with at3-kit")

    return suggestions


def workflow_recommendations(info: ProjectInfo, operation: str) -> list[str]:
    workflows: list[str] = []
    pm = info.package_manager.value

    if operation == "migrate":
        workflows.append("Review the migration changes and test your project")
        workflows.append(f"Run [cyan]{pm} run build[/cyan] to verify everything works")
        if info.has_supabase:
            workflows.append("Update your Supabase configuration if needed")
        if info.has_ai_support:
            workflows.append("Verify your AI provider configurations")
    elif operation == "detect":
        if info.type is ProjectType.AIT3E:
            workflows.append("Your project is already using the complete AT3 stack!")
            workflows.append("Use toolkit commands to maintain and optimize your setup")
        else:
            workflows.append("Consider migrating to AT3 stack for enhanced capabilities")
            workflows.append("Use [cyan]at3t migrate[/cyan] to start the migration process")
    elif operation == "rollback":
        workflows.append("Rollback completed - verify your project is in the expected state")
        workflows.append("You can re-run migration with different options if needed")

    config = read_at3_config(info.path)
    if config is None or len(config.tools_used) <= 1:
        workflows.extend(suggest_tools(info))

    return workflows
