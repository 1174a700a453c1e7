"""Project fingerprinting: framework type, package manager and feature flags."""

from __future__ import annotations

import json
import re
from pathlib import Path

from .errors import InvalidProjectError, NotFoundError
from .logger import Logger
from .models import (
    AuthProvider,
    DependencyInfo,
    DependencyKind,
    Detection,
    PackageManager,
    ProjectInfo,
    ProjectType,
    TestingSetup,
)

LOCKFILES = {
    "pnpm-lock.yaml": PackageManager.PNPM,
    "yarn.lock": PackageManager.YARN,
    "bun.lockb": PackageManager.BUN,
    "bun.lock": PackageManager.BUN,
    "package-lock.json": PackageManager.NPM,
}

CONFIG_FILE_CATALOG = [
    # TypeScript
    "tsconfig.json",
    "tsconfig.build.json",
    "tsconfig.test.json",
    # Next.js
    "next.config.js",
    "next.config.ts",
    "next.config.mjs",
    "next-env.d.ts",
    # Tailwind
    "tailwind.config.js",
    "tailwind.config.ts",
    "tailwind.config.mjs",
    "postcss.config.js",
    "postcss.config.mjs",
    # Linting
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
    "eslint.config.js",
    "eslint.config.mjs",
    ".prettierrc",
    ".prettierrc.js",
    ".prettierrc.json",
    ".prettierrc.yaml",
    "prettier.config.js",
    "biome.json",
    "biome.jsonc",
    # Testing
    "vitest.config.ts",
    "vitest.config.js",
    "vitest.config.mts",
    "jest.config.js",
    "jest.config.ts",
    "playwright.config.ts",
    "cypress.config.js",
    "cypress.config.ts",
    # Build tools
    "vite.config.ts",
    "vite.config.js",
    "webpack.config.js",
    "rollup.config.js",
    "turbo.json",
    # Database
    "drizzle.config.ts",
    "drizzle.config.js",
    "prisma/schema.prisma",
    "supabase/config.toml",
    # Environment
    ".env",
    ".env.local",
    ".env.example",
    ".env.development",
    ".env.production",
    # PWA / i18n
    "public/manifest.json",
    "i18n.ts",
    "src/i18n.ts",
    # Other
    ".gitignore",
    "README.md",
    "package.json",
    "pnpm-workspace.yaml",
    "vercel.json",
    "netlify.toml",
    ".at3-config.json",
]

AI_PACKAGES = [
    "ai",
    "@ai-sdk/openai",
    "@ai-sdk/anthropic",
    "@ai-sdk/google",
    "@ai-sdk/azure",
    "@ai-sdk/mistral",
    "@ai-sdk/cohere",
    "openai",
    "@anthropic-ai/sdk",
    "@google/generative-ai",
    "langchain",
    "@langchain/core",
    "llamaindex",
]
# ait3e classification keeps to the Vercel AI SDK family
AIT3E_AI_PACKAGES = ["ai", "@ai-sdk/openai", "@ai-sdk/anthropic", "@ai-sdk/google"]
SUPABASE_PACKAGES = ["@supabase/supabase-js", "@supabase/ssr", "@supabase/auth-helpers-nextjs"]

MIDDLEWARE_FILES = ["middleware.ts", "middleware.js", "src/middleware.ts", "src/middleware.js"]
API_ROUTE_DIRS = ["app/api", "src/app/api", "pages/api"]
EDGE_RUNTIME_RE = re.compile(r"""export\s+const\s+runtime\s*=\s*['"]edge['"]""")
VECTOR_MARKERS = ("vector", "embedding", "pgvector")


def detect_package_manager(project_path: Path, package_json: dict | None = None) -> PackageManager:
    """Lockfile wins when exactly one manager is indicated; npm when ambiguous."""
    found = {pm for name, pm in LOCKFILES.items() if (project_path / name).exists()}
    if len(found) == 1:
        return found.pop()

    declared = (package_json or {}).get("packageManager")
    if isinstance(declared, str):
        name = declared.split("@", 1)[0]
        try:
            pm = PackageManager(name)
        except ValueError:
            pm = None
        if pm is not None and (not found or pm in found):
            return pm

    return PackageManager.NPM


def classify_project_type(package_json: dict, project_path: Path) -> ProjectType:
    if not isinstance(package_json, dict):
        return ProjectType.UNKNOWN

    deps = {**(package_json.get("dependencies") or {}), **(package_json.get("devDependencies") or {})}

    has_ai = any(name in deps for name in AIT3E_AI_PACKAGES)
    has_supabase = "@supabase/supabase-js" in deps or "@supabase/ssr" in deps
    has_tailwind = "tailwindcss" in deps
    has_typescript = "typescript" in deps or (project_path / "tsconfig.json").exists()

    if has_ai and has_supabase and "next" in deps and (has_tailwind or has_typescript):
        return ProjectType.AIT3E
    if "next" in deps:
        return ProjectType.NEXTJS
    if "nuxt" in deps or "@nuxt/core" in deps:
        return ProjectType.NUXT
    if "vue" in deps:
        return ProjectType.VUE
    if "react" in deps:
        return ProjectType.REACT
    if "vite" in deps:
        return ProjectType.VITE
    if "webpack" in deps:
        return ProjectType.WEBPACK
    return ProjectType.NODE


class ProjectDetector:
    def __init__(self, logger: Logger | None = None):
        self.logger = logger or Logger()

    def detect_project(self, project_path) -> ProjectInfo:
        project_path = Path(project_path).resolve()
        self.logger.debug(f"Detecting project at: {project_path}")

        if not project_path.exists():
            raise NotFoundError(project_path)

        package_json_path = project_path / "package.json"
        if not package_json_path.is_file():
            raise InvalidProjectError(project_path)

        package_json = json.loads(package_json_path.read_text(encoding="utf-8"))
        manifest = package_json if isinstance(package_json, dict) else {}

        dependencies = self.analyze_dependencies(manifest, project_path)

        def has(*names: str) -> bool:
            return any(dep.name in names for dep in dependencies)

        def exists(*rel_paths: str) -> bool:
            return any((project_path / rel).exists() for rel in rel_paths)

        info = ProjectInfo(
            path=project_path,
            type=classify_project_type(package_json, project_path),
            package_manager=detect_package_manager(project_path, manifest),
            dependencies=dependencies,
            config_files=self.find_config_files(project_path),
            has_typescript=exists("tsconfig.json") or has("typescript"),
            has_nextjs=has("next"),
            has_react=has("react"),
            has_vue=has("vue"),
            has_tailwind=has("tailwindcss"),
            has_eslint=has("eslint"),
            has_prettier=has("prettier"),
            has_biome=has("@biomejs/biome"),
            has_ai_support=has(*AI_PACKAGES),
            has_supabase=has(*SUPABASE_PACKAGES) or exists("supabase/config.toml"),
            has_edge_runtime=self.detect_edge_runtime(project_path),
            has_vector_db=self.detect_vector_db(project_path),
            has_drizzle=has("drizzle-orm", "drizzle-kit") or exists("drizzle.config.ts", "drizzle.config.js"),
            has_prisma=has("prisma", "@prisma/client") or exists("prisma/schema.prisma"),
            has_trpc=has("@trpc/server", "@trpc/client", "@trpc/react-query"),
            has_pwa=(
                has("@ducanh2912/next-pwa", "next-pwa", "workbox-webpack-plugin")
                or (exists("public/manifest.json") and exists("public/sw.js", "public/service-worker.js"))
            ),
            has_i18n=(
                has("next-intl", "next-i18next", "react-i18next", "i18next")
                or exists("messages", "locales", "public/locales")
            ),
            testing=self.detect_testing(dependencies),
            auth_provider=self.detect_auth_provider(dependencies, project_path),
        )
        self.logger.debug(f"Detected {info.type.value} project using {info.package_manager.value}")
        return info

    def analyze_dependencies(self, package_json: dict, project_path: Path) -> list[DependencyInfo]:
        deps: list[DependencyInfo] = []
        sections = [
            ("dependencies", DependencyKind.DEPENDENCY),
            ("devDependencies", DependencyKind.DEV),
            ("peerDependencies", DependencyKind.PEER),
        ]
        for section, kind in sections:
            for name, version in (package_json.get(section) or {}).items():
                installed = None
                if kind is not DependencyKind.PEER:
                    installed = self._installed_version(project_path, name)
                deps.append(DependencyInfo(name=name, version=str(version), kind=kind, installed_version=installed))
        return deps

    def _installed_version(self, project_path: Path, name: str) -> str | None:
        manifest = project_path / "node_modules" / name / "package.json"
        if not manifest.is_file():
            return None
        try:
            return json.loads(manifest.read_text(encoding="utf-8")).get("version")
        except (OSError, ValueError, AttributeError) as exc:
            self.logger.debug(f"Could not read installed version of {name}: {exc}")
            return None

    def find_config_files(self, project_path: Path) -> list[str]:
        return [name for name in CONFIG_FILE_CATALOG if (project_path / name).exists()]

    def detect_edge_runtime(self, project_path: Path) -> bool:
        if any((project_path / rel).exists() for rel in MIDDLEWARE_FILES):
            return True

        for rel in API_ROUTE_DIRS:
            api_dir = project_path / rel
            if not api_dir.is_dir():
                continue
            for source in sorted(api_dir.rglob("*")):
                if source.suffix not in {".ts", ".js"} or not source.is_file():
                    continue
                try:
                    content = source.read_text(encoding="utf-8", errors="replace")
                except OSError as exc:
                    self.logger.debug(f"Skipping unreadable route {source}: {exc}")
                    continue
                if EDGE_RUNTIME_RE.search(content):
                    return True
        return False

    def detect_vector_db(self, project_path: Path) -> Detection:
        """Substring scan of Supabase SQL migrations; unreadable input yields UNKNOWN."""
        migrations = project_path / "supabase" / "migrations"
        if not migrations.is_dir():
            return Detection.NO

        try:
            sql_files = sorted(p for p in migrations.iterdir() if p.suffix == ".sql")
        except OSError as exc:
            self.logger.debug(f"Could not list {migrations}: {exc}")
            return Detection.UNKNOWN

        unreadable = False
        for sql_file in sql_files:
            try:
                content = sql_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.debug(f"Could not read {sql_file.name}: {exc}")
                unreadable = True
                continue
            if any(marker in content for marker in VECTOR_MARKERS):
                return Detection.YES

        return Detection.UNKNOWN if unreadable else Detection.NO

    @staticmethod
    def detect_testing(dependencies: list[DependencyInfo]) -> TestingSetup:
        names = {dep.name for dep in dependencies}
        unit = "vitest" if "vitest" in names else "jest" if "jest" in names else "none"
        if "@playwright/test" in names or "playwright" in names:
            e2e = "playwright"
        elif "cypress" in names:
            e2e = "cypress"
        else:
            e2e = "none"
        return TestingSetup(unit=unit, e2e=e2e)

    @staticmethod
    def detect_auth_provider(dependencies: list[DependencyInfo], project_path: Path) -> AuthProvider:
        names = {dep.name for dep in dependencies}

        if names & {"@supabase/auth-helpers-nextjs", "@supabase/ssr"}:
            if (project_path / "src/lib/supabase").exists() or (project_path / "lib/supabase").exists():
                return AuthProvider.SUPABASE
        if names & {"@clerk/nextjs", "@clerk/clerk-react"}:
            return AuthProvider.CLERK
        if "better-auth" in names:
            return AuthProvider.BETTER_AUTH
        if names & {"next-auth", "@auth/core"}:
            return AuthProvider.NEXT_AUTH
        if "lucia" in names:
            return AuthProvider.LUCIA
        return AuthProvider.NONE


def detect_project(project_path, logger: Logger | None = None) -> ProjectInfo:
    return ProjectDetector(logger).detect_project(project_path)


def get_missing_features(info: ProjectInfo) -> list[str]:
    missing = []
    if not (info.has_supabase or info.has_drizzle or info.has_prisma):
        missing.append("database")
    if not info.has_ai_support:
        missing.append("ai")
    if not info.has_pwa:
        missing.append("pwa")
    if not info.has_i18n:
        missing.append("i18n")
    if info.testing.unit == "none":
        missing.append("testing")
    if not info.has_tailwind:
        missing.append("tailwind")
    if not info.has_typescript:
        missing.append("typescript")
    if info.auth_provider is AuthProvider.NONE:
        missing.append("auth")
    return missing


def is_compatible(info: ProjectInfo) -> bool:
    """The feature installers target Next.js or React projects."""
    return info.has_nextjs or info.has_react


def get_recommendations(info: ProjectInfo) -> list[dict]:
    recommendations = []

    def add(priority: str, feature: str, reason: str):
        recommendations.append({"priority": priority, "feature": feature, "reason": reason})

    if not info.has_typescript:
        add("high", "typescript", "TypeScript provides better development experience and type safety")
    if not info.has_tailwind:
        add("high", "tailwind", "Tailwind CSS is essential for AT3 stack styling")
    if not (info.has_supabase or info.has_drizzle or info.has_prisma):
        add("high", "database", "A database solution is needed for most applications")
    if info.auth_provider is AuthProvider.NONE:
        add("medium", "auth", "Authentication is essential for user management")
    if not info.has_ai_support:
        add("medium", "ai", "AI integration is a core feature of AT3 stack")
    if info.testing.unit == "none":
        add("low", "testing", "Comprehensive testing improves code quality")
    if not info.has_biome and (info.has_eslint or info.has_prettier):
        add("low", "biome", "Biome provides faster linting and formatting than ESLint/Prettier")

    return recommendations


def get_at3_score(info: ProjectInfo) -> dict:
    max_score = 10
    score = 0
    score += info.has_nextjs
    score += info.has_typescript
    score += info.has_tailwind
    score += info.has_supabase or info.has_drizzle or info.has_prisma
    score += info.auth_provider is not AuthProvider.NONE
    score += 2 if info.has_ai_support else 0
    score += info.has_edge_runtime
    score += info.testing.unit != "none"
    score += info.has_biome

    percentage = round(score / max_score * 100)
    if percentage == 0:
        level = "none"
    elif percentage < 30:
        level = "basic"
    elif percentage < 60:
        level = "intermediate"
    elif percentage < 90:
        level = "advanced"
    else:
        level = "full"

    return {"score": int(score), "max_score": max_score, "percentage": percentage, "level": level}
