"""Tests for project fingerprinting."""
import json
import os
from pathlib import Path

import pytest

from at3_toolkit.detector import (
    classify_project_type,
    detect_package_manager,
    detect_project,
    get_at3_score,
    get_missing_features,
    get_recommendations,
    is_compatible,
)
from at3_toolkit.errors import InvalidProjectError, NotFoundError
from at3_toolkit.models import AuthProvider, DependencyKind, Detection, PackageManager, ProjectType


def test_next_dependency_classifies_as_nextjs(make_project) -> None:
    root = make_project({"dependencies": {"next": "14.0.0", "react": "18.0.0"}})
    info = detect_project(root)
    assert info.type is ProjectType.NEXTJS
    assert info.has_nextjs and info.has_react


def test_ait3e_scenario(make_project) -> None:
    """next + ai + supabase + tailwind + typescript is the full AT3 stack."""
    root = make_project(
        {
            "dependencies": {
                "next": "15.4.0",
                "react": "19.1.0",
                "ai": "5.0.0",
                "@ai-sdk/openai": "2.0.0",
                "@supabase/supabase-js": "2.46.0",
            },
            "devDependencies": {"tailwindcss": "4.1.0", "typescript": "5.9.0"},
        },
        files={"tsconfig.json": {"compilerOptions": {}}},
    )
    info = detect_project(root)
    assert info.type is ProjectType.AIT3E
    assert info.has_ai_support
    assert info.has_supabase
    assert info.has_tailwind
    assert info.has_typescript


def test_ait3e_requires_next(make_project) -> None:
    root = make_project({"dependencies": {"react": "19.0.0", "ai": "5.0.0", "@supabase/supabase-js": "2.0.0", "tailwindcss": "4.0.0"}})
    assert detect_project(root).type is ProjectType.REACT


@pytest.mark.parametrize(
    "deps, expected",
    [
        ({"nuxt": "3.0.0", "vue": "3.0.0"}, ProjectType.NUXT),
        ({"vue": "3.0.0"}, ProjectType.VUE),
        ({"vite": "5.0.0"}, ProjectType.VITE),
        ({"webpack": "5.0.0"}, ProjectType.WEBPACK),
        ({"express": "4.0.0"}, ProjectType.NODE),
        ({}, ProjectType.NODE),
    ],
)
def test_classification_precedence(deps, expected, tmp_path: Path) -> None:
    assert classify_project_type({"dependencies": deps}, tmp_path) is expected


def test_non_object_package_json_is_unknown(make_project) -> None:
    root = make_project("[1, 2, 3]")
    info = detect_project(root)
    assert info.type is ProjectType.UNKNOWN
    assert info.dependencies == []


def test_missing_path_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        detect_project(tmp_path / "nope")


def test_missing_package_json_raises_invalid_project(tmp_path: Path) -> None:
    with pytest.raises(InvalidProjectError) as exc_info:
        detect_project(tmp_path)
    assert "No package.json found" in str(exc_info.value)


def test_corrupt_package_json_propagates_parse_error(make_project) -> None:
    root = make_project("{not json")
    with pytest.raises(json.JSONDecodeError):
        detect_project(root)


@pytest.mark.parametrize(
    "lockfiles, expected",
    [
        (["pnpm-lock.yaml"], PackageManager.PNPM),
        (["yarn.lock"], PackageManager.YARN),
        (["bun.lockb"], PackageManager.BUN),
        (["bun.lock"], PackageManager.BUN),
        (["package-lock.json"], PackageManager.NPM),
        ([], PackageManager.NPM),
        (["yarn.lock", "pnpm-lock.yaml"], PackageManager.NPM),
    ],
)
def test_package_manager_from_lockfiles(lockfiles, expected, tmp_path: Path) -> None:
    for name in lockfiles:
        (tmp_path / name).write_text("")
    assert detect_package_manager(tmp_path, {}) is expected


def test_package_manager_field_breaks_lockfile_tie(tmp_path: Path) -> None:
    (tmp_path / "yarn.lock").write_text("")
    (tmp_path / "pnpm-lock.yaml").write_text("")
    assert detect_package_manager(tmp_path, {"packageManager": "pnpm@9.1.0"}) is PackageManager.PNPM


def test_package_manager_field_without_lockfile(tmp_path: Path) -> None:
    assert detect_package_manager(tmp_path, {"packageManager": "bun@1.1.0"}) is PackageManager.BUN
    assert detect_package_manager(tmp_path, {"packageManager": "deno@2"}) is PackageManager.NPM


def test_dependency_kinds_and_installed_versions(make_project) -> None:
    root = make_project(
        {
            "dependencies": {"next": "^14.0.0"},
            "devDependencies": {"typescript": "^5.0.0"},
            "peerDependencies": {"react": ">=18"},
        },
        files={"node_modules/next/package.json": {"name": "next", "version": "14.2.3"}},
    )
    info = detect_project(root)
    by_name = {dep.name: dep for dep in info.dependencies}
    assert by_name["next"].kind is DependencyKind.DEPENDENCY
    assert by_name["next"].installed_version == "14.2.3"
    assert by_name["typescript"].kind is DependencyKind.DEV
    assert by_name["typescript"].installed_version is None
    assert by_name["react"].kind is DependencyKind.PEER


def test_unreadable_installed_manifest_yields_none(make_project) -> None:
    root = make_project(
        {"dependencies": {"next": "14.0.0"}},
        files={"node_modules/next/package.json": "{broken"},
    )
    info = detect_project(root)
    assert info.dependencies[0].installed_version is None


def test_config_files_are_listed(nextjs_project) -> None:
    info = detect_project(nextjs_project)
    for name in ["package.json", "next.config.js", "tsconfig.json", "tailwind.config.js", ".eslintrc.json"]:
        assert name in info.config_files
    assert "biome.json" not in info.config_files


def test_edge_runtime_from_middleware(make_project) -> None:
    root = make_project({"dependencies": {"next": "15.0.0"}}, files={"src/middleware.ts": "export function middleware() {}\n"})
    assert detect_project(root).has_edge_runtime


def test_edge_runtime_from_route_export(make_project) -> None:
    root = make_project(
        {"dependencies": {"next": "15.0.0"}},
        files={"app/api/chat/route.ts": "export const runtime = 'edge';\nexport async function POST() {}\n"},
    )
    assert detect_project(root).has_edge_runtime


def test_no_edge_runtime_for_node_routes(make_project) -> None:
    root = make_project(
        {"dependencies": {"next": "15.0.0"}},
        files={"app/api/chat/route.ts": "export const runtime = 'nodejs';\n"},
    )
    assert not detect_project(root).has_edge_runtime


def test_vector_db_detected_in_migrations(make_project) -> None:
    root = make_project(
        {"dependencies": {}},
        files={"supabase/migrations/001_init.sql": "create extension if not exists vector;\n"},
    )
    assert detect_project(root).has_vector_db is Detection.YES


def test_vector_db_absent(make_project) -> None:
    root = make_project({"dependencies": {}}, files={"supabase/migrations/001_init.sql": "create table t (id int);\n"})
    assert detect_project(root).has_vector_db is Detection.NO
    assert detect_project(make_project({}, name="bare")).has_vector_db is Detection.NO


def test_vector_db_unknown_when_sql_is_not_utf8(make_project) -> None:
    root = make_project({"dependencies": {}}, files={"supabase/migrations/001_init.sql": ""})
    (root / "supabase/migrations/001_init.sql").write_bytes(b"\xff\xfe vector")
    result = detect_project(root).has_vector_db
    assert result is Detection.UNKNOWN
    assert not result


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions enforced for the current user")
def test_vector_db_unknown_when_unreadable(make_project) -> None:
    root = make_project({"dependencies": {}}, files={"supabase/migrations/001_init.sql": "select 1;\n"})
    sql = root / "supabase/migrations/001_init.sql"
    sql.chmod(0)
    try:
        result = detect_project(root).has_vector_db
    finally:
        sql.chmod(0o644)
    assert result is Detection.UNKNOWN
    assert not result


def test_feature_flags_are_independent(make_project) -> None:
    root = make_project(
        {
            "dependencies": {
                "react": "18.0.0",
                "drizzle-orm": "0.36.0",
                "@trpc/server": "11.0.0",
                "next-intl": "4.0.0",
                "@clerk/nextjs": "6.0.0",
            },
            "devDependencies": {"vitest": "4.0.0", "@playwright/test": "1.57.0", "@biomejs/biome": "2.1.0"},
        }
    )
    info = detect_project(root)
    assert info.has_drizzle and info.has_trpc and info.has_i18n and info.has_biome
    assert not info.has_prisma and not info.has_pwa and not info.has_nextjs
    assert info.testing.unit == "vitest"
    assert info.testing.e2e == "playwright"
    assert info.auth_provider is AuthProvider.CLERK


def test_supabase_auth_needs_client_directory(make_project) -> None:
    pkg = {"dependencies": {"next": "15.0.0", "@supabase/ssr": "0.5.0"}}
    without_dir = make_project(pkg, name="a")
    with_dir = make_project(pkg, files={"src/lib/supabase/client.ts": "export {};\n"}, name="b")
    assert detect_project(without_dir).auth_provider is AuthProvider.NONE
    assert detect_project(with_dir).auth_provider is AuthProvider.SUPABASE


def test_missing_features_and_recommendations(nextjs_project) -> None:
    info = detect_project(nextjs_project)
    missing = get_missing_features(info)
    assert "ai" in missing and "database" in missing and "auth" in missing
    assert "typescript" not in missing and "tailwind" not in missing

    features = [rec["feature"] for rec in get_recommendations(info)]
    assert "biome" in features
    assert "typescript" not in features
    assert is_compatible(info)


def test_at3_score_levels(make_project, nextjs_project) -> None:
    empty = detect_project(make_project({"dependencies": {}}, name="empty"))
    assert get_at3_score(empty) == {"score": 0, "max_score": 10, "percentage": 0, "level": "none"}

    score = get_at3_score(detect_project(nextjs_project))
    assert score["score"] == 3
    assert score["level"] == "intermediate"
