"""Migration plan builder and the steps it can schedule.

Step inclusion depends only on the detected fingerprint and the options, and
order is fixed: Next.js config, Tailwind config, linting, TypeScript config.
"""

from __future__ import annotations

from pathlib import Path

from .backup import BACKUP_GLOBS, is_backed_up
from .logger import Logger
from .merger import MERGE, OVERWRITE, ConfigMerger
from .models import DependencyKind, MigrationOptions, MigrationPlan, MigrationStep, ProjectInfo

AIT3E_VERSIONS = {
    "next": "^15.4.0",
    "react": "^19.1.0",
    "react-dom": "^19.1.0",
    "tailwindcss": "^4.1.0",
    "@tailwindcss/postcss": "^4.1.0",
    "typescript": "^5.9.0",
    "@biomejs/biome": "^2.1.0",
}

NEXT_CONFIG_TEMPLATE = """import type { NextConfig } from "next";

const nextConfig: NextConfig = {
  reactStrictMode: true,
  experimental: {
    typedRoutes: true,
  },
};

export default nextConfig;
"""

POSTCSS_CONFIG_TEMPLATE = """const config = {
  plugins: {
    "@tailwindcss/postcss": {},
  },
};

export default config;
"""

TAILWIND_CSS_IMPORT = '@import "tailwindcss";'

BIOME_CONFIG = {
    "$schema": "https://biomejs.dev/schemas/2.1.0/schema.json",
    "vcs": {"enabled": True, "clientKind": "git", "useIgnoreFile": True},
    "formatter": {"enabled": True, "indentStyle": "space", "indentWidth": 2, "lineWidth": 100},
    "linter": {"enabled": True, "rules": {"recommended": True}},
    "javascript": {"formatter": {"quoteStyle": "double", "semicolons": "always"}},
}

LEGACY_LINT_FILES = [
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
    "eslint.config.js",
    "eslint.config.mjs",
    ".eslintignore",
    ".prettierrc",
    ".prettierrc.js",
    ".prettierrc.json",
    ".prettierrc.yaml",
    "prettier.config.js",
    ".prettierignore",
]
LEGACY_LINT_PREFIXES = ("eslint", "prettier", "@typescript-eslint/", "@eslint/")

TSCONFIG_COMPILER_OPTIONS = {
    "target": "ES2022",
    "lib": ["dom", "dom.iterable", "esnext"],
    "module": "esnext",
    "moduleResolution": "bundler",
    "strict": True,
    "noEmit": True,
    "esModuleInterop": True,
    "skipLibCheck": True,
    "resolveJsonModule": True,
    "isolatedModules": True,
    "jsx": "preserve",
    "incremental": True,
    "plugins": [{"name": "next"}],
    "paths": {"@/*": ["./src/*"]},
}


def _section_for(info: ProjectInfo, name: str, default: str) -> str:
    for dep in info.dependencies:
        if dep.name == name and dep.kind is DependencyKind.DEPENDENCY:
            return "dependencies"
        if dep.name == name and dep.kind is DependencyKind.DEV:
            return "devDependencies"
    return default


def _pinned(info: ProjectInfo, names: list[str], default_section: str) -> dict:
    updates: dict = {}
    for name in names:
        section = _section_for(info, name, default_section)
        updates.setdefault(section, {})[name] = AIT3E_VERSIONS[name]
    return updates


class MigrationPlanner:
    def __init__(self, merger: ConfigMerger | None = None, logger: Logger | None = None):
        self.logger = logger or Logger()
        self.merger = merger or ConfigMerger(self.logger)

    def build_plan(self, info: ProjectInfo, options: MigrationOptions) -> MigrationPlan:
        steps: list[MigrationStep] = []

        if info.has_nextjs:
            steps.append(MigrationStep(
                id="next-config",
                name="Update Next.js Configuration",
                description="Migrate to Next.js 15.4 with modern features",
                required=True,
                execute=lambda opts: self.migrate_next_config(info, opts),
            ))

        if info.has_tailwind or options.update_versions:
            steps.append(MigrationStep(
                id="tailwind-config",
                name="Update Tailwind CSS Configuration",
                description="Migrate to Tailwind CSS 4.x CSS-first configuration",
                required=True,
                execute=lambda opts: self.migrate_tailwind_config(info, opts),
            ))

        if options.replace_linting and (info.has_eslint or info.has_prettier):
            steps.append(MigrationStep(
                id="linting-config",
                name="Replace ESLint/Prettier with Biome",
                description="Modern unified linting and formatting",
                required=False,
                execute=lambda opts: self.migrate_linting_config(info, opts),
            ))

        if info.has_typescript:
            steps.append(MigrationStep(
                id="typescript-config",
                name="Update TypeScript Configuration",
                description="Modern TypeScript 5.9+ configuration",
                required=True,
                execute=lambda opts: self.migrate_typescript_config(info, opts),
            ))

        # TODO: populate conflicts by comparing each step's target files against existing user edits
        return MigrationPlan(steps=steps, conflicts=[], backup_files=list(BACKUP_GLOBS))

    def migrate_next_config(self, info: ProjectInfo, options: MigrationOptions) -> list[str]:
        root = Path(options.project_path)
        modified: list[str] = []

        existing = sorted(root.glob("next.config.*"))
        if not existing or options.overwrite:
            for old in existing:
                if old.name != "next.config.ts":
                    old.unlink()
                    modified.append(old.name)
            self.merger.merge_text_config(root / "next.config.ts", NEXT_CONFIG_TEMPLATE, OVERWRITE)
            modified.append("next.config.ts")
        else:
            self.logger.debug(f"Keeping existing {existing[0].name}")

        if options.update_versions:
            self.merger.merge_package_json(
                root / "package.json", _pinned(info, ["next", "react", "react-dom"], "dependencies")
            )
            modified.append("package.json")
        return modified

    def migrate_tailwind_config(self, info: ProjectInfo, options: MigrationOptions) -> list[str]:
        root = Path(options.project_path)
        modified: list[str] = []

        css_rel = "src/app/globals.css"
        if not (root / css_rel).exists() and (root / "app" / "globals.css").exists():
            css_rel = "app/globals.css"
        strategy = OVERWRITE if options.overwrite else MERGE
        self.merger.merge_text_config(root / css_rel, TAILWIND_CSS_IMPORT + "\n", strategy)
        modified.append(css_rel)

        postcss_configs = sorted(root.glob("postcss.config.*"))
        up_to_date = any("@tailwindcss/postcss" in p.read_text(encoding="utf-8") for p in postcss_configs)
        if not up_to_date or options.overwrite:
            for old in postcss_configs:
                old.unlink()
                modified.append(old.name)
            self.merger.merge_text_config(root / "postcss.config.mjs", POSTCSS_CONFIG_TEMPLATE, OVERWRITE)
            modified.append("postcss.config.mjs")

        updates = _pinned(info, ["tailwindcss", "@tailwindcss/postcss"], "devDependencies")
        updates["removeDependencies"] = ["autoprefixer"]
        self.merger.merge_package_json(root / "package.json", updates)
        modified.append("package.json")
        return modified

    def migrate_linting_config(self, info: ProjectInfo, options: MigrationOptions) -> list[str]:
        root = Path(options.project_path)
        modified: list[str] = []

        strategy = OVERWRITE if options.overwrite else MERGE
        self.merger.merge_json_config(root / "biome.json", BIOME_CONFIG, strategy)
        modified.append("biome.json")

        for name in LEGACY_LINT_FILES:
            path = root / name
            if path.is_file():
                path.unlink()
                modified.append(name)
                if is_backed_up(name):
                    self.logger.debug(f"Removed {name}")
                else:
                    self.logger.warn(f"Removed {name}; it is not in the backup and rollback will not restore it")

        legacy = [dep.name for dep in info.dependencies if dep.name.startswith(LEGACY_LINT_PREFIXES)]
        self.merger.merge_package_json(root / "package.json", {
            "devDependencies": {"@biomejs/biome": AIT3E_VERSIONS["@biomejs/biome"]},
            "scripts": {"lint": "biome check .", "format": "biome format --write ."},
            "removeDependencies": legacy,
        })
        modified.append("package.json")
        return modified

    def migrate_typescript_config(self, info: ProjectInfo, options: MigrationOptions) -> list[str]:
        root = Path(options.project_path)
        strategy = OVERWRITE if options.overwrite else MERGE

        compiler_options = dict(TSCONFIG_COMPILER_OPTIONS)
        if not (root / "src").is_dir():
            compiler_options["paths"] = {"@/*": ["./*"]}

        self.merger.merge_json_config(
            root / "tsconfig.json",
            {
                "compilerOptions": compiler_options,
                "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"],
                "exclude": ["node_modules"],
            },
            strategy,
        )
        modified = ["tsconfig.json"]

        if options.update_versions:
            self.merger.merge_package_json(root / "package.json", _pinned(info, ["typescript"], "devDependencies"))
            modified.append("package.json")
        return modified


def build_plan(
    info: ProjectInfo,
    options: MigrationOptions,
    merger: ConfigMerger | None = None,
    logger: Logger | None = None,
) -> MigrationPlan:
    return MigrationPlanner(merger, logger).build_plan(info, options)

