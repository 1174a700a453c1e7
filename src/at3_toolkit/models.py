"""Data types shared by the detector, planner and migration runner."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional


class ProjectType(str, Enum):
    AIT3E = "ait3e"
    NEXTJS = "nextjs"
    REACT = "react"
    VUE = "vue"
    NUXT = "nuxt"
    VITE = "vite"
    WEBPACK = "webpack"
    NODE = "node"
    UNKNOWN = "unknown"


class PackageManager(str, Enum):
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"


class AuthProvider(str, Enum):
    SUPABASE = "supabase"
    CLERK = "clerk"
    BETTER_AUTH = "better-auth"
    NEXT_AUTH = "next-auth"
    LUCIA = "lucia"
    NONE = "none"


class DependencyKind(str, Enum):
    DEPENDENCY = "dependency"
    DEV = "devDependency"
    PEER = "peerDependency"


class Detection(str, Enum):
    """Outcome of a predicate that has to read file content."""

    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"

    def __bool__(self) -> bool:
        return self is Detection.YES


@dataclass
class DependencyInfo:
    name: str
    version: str
    kind: DependencyKind
    installed_version: Optional[str] = None
    latest: Optional[str] = None


@dataclass
class TestingSetup:
    unit: str = "none"  # vitest | jest | none
    e2e: str = "none"  # playwright | cypress | none


@dataclass
class ProjectInfo:
    """Fingerprint of a project, rebuilt from disk on every invocation."""

    path: Path
    type: ProjectType
    package_manager: PackageManager
    dependencies: list[DependencyInfo] = field(default_factory=list)
    config_files: list[str] = field(default_factory=list)
    has_typescript: bool = False
    has_nextjs: bool = False
    has_react: bool = False
    has_vue: bool = False
    has_tailwind: bool = False
    has_eslint: bool = False
    has_prettier: bool = False
    has_biome: bool = False
    has_ai_support: bool = False
    has_supabase: bool = False
    has_edge_runtime: bool = False
    has_vector_db: Detection = Detection.NO
    has_drizzle: bool = False
    has_prisma: bool = False
    has_trpc: bool = False
    has_pwa: bool = False
    has_i18n: bool = False
    testing: TestingSetup = field(default_factory=TestingSetup)
    auth_provider: AuthProvider = AuthProvider.NONE

    def has_dependency(self, name: str) -> bool:
        return any(dep.name == name for dep in self.dependencies)


@dataclass
class MigrationOptions:
    project_path: Path
    interactive: bool = False
    overwrite: bool = False
    skip_deps: bool = False
    update_versions: bool = False
    replace_linting: bool = False
    dry_run: bool = False
    force: bool = False
    verbose: bool = False
    config_path: Optional[Path] = None
    backup_dir: Optional[str] = None


@dataclass
class MigrationStep:
    id: str
    name: str
    description: str
    required: bool
    execute: Callable[[MigrationOptions], Optional[list[str]]]


@dataclass
class ConflictInfo:
    file: str
    type: str  # overwrite | merge | rename
    description: str
    resolution: str  # auto | manual | skip


@dataclass
class MigrationPlan:
    steps: list[MigrationStep] = field(default_factory=list)
    conflicts: list[ConflictInfo] = field(default_factory=list)
    backup_files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BackupInfo:
    timestamp: str
    files: tuple[str, ...]
    migration_id: str
    can_rollback: bool = True

    def to_json(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "files": list(self.files),
            "migrationId": self.migration_id,
            "canRollback": self.can_rollback,
        }

    @classmethod
    def from_json(cls, data: dict) -> "BackupInfo":
        return cls(
            timestamp=data["timestamp"],
            files=tuple(data.get("files", [])),
            migration_id=data.get("migrationId", f"migration-{data['timestamp']}"),
            can_rollback=bool(data.get("canRollback", True)),
        )


@dataclass
class MigrationStepResult:
    step_id: str
    success: bool
    duration: float
    files_modified: list[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class MigrationError:
    step: str
    message: str
    severity: str = "error"  # error | warning
    file: Optional[str] = None
    code: Optional[str] = None


@dataclass
class MigrationResult:
    success: bool
    steps: list[MigrationStepResult] = field(default_factory=list)
    backup_path: Optional[Path] = None
    errors: list[MigrationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["backup_path"] = str(self.backup_path) if self.backup_path else None
        return data
