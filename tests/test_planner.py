"""Tests for migration plan building and the individual migration steps."""
import io
import json
from pathlib import Path

from rich.console import Console

from at3_toolkit.backup import BACKUP_GLOBS, is_backed_up
from at3_toolkit.detector import detect_project
from at3_toolkit.logger import Logger
from at3_toolkit.models import MigrationOptions
from at3_toolkit.planner import AIT3E_VERSIONS, build_plan


def _step_ids(plan):
    return [step.id for step in plan.steps]


def test_full_plan_order(nextjs_project) -> None:
    info = detect_project(nextjs_project)
    plan = build_plan(info, MigrationOptions(project_path=nextjs_project, replace_linting=True))
    assert _step_ids(plan) == ["next-config", "tailwind-config", "linting-config", "typescript-config"]
    assert [step.required for step in plan.steps] == [True, True, False, True]
    assert plan.conflicts == []
    assert plan.backup_files == BACKUP_GLOBS


def test_linting_step_needs_flag(nextjs_project) -> None:
    info = detect_project(nextjs_project)
    plan = build_plan(info, MigrationOptions(project_path=nextjs_project))
    assert "linting-config" not in _step_ids(plan)


def test_plain_node_project_has_empty_plan(make_project) -> None:
    root = make_project({"dependencies": {"express": "4.0.0"}})
    info = detect_project(root)
    assert _step_ids(build_plan(info, MigrationOptions(project_path=root))) == []
    assert _step_ids(build_plan(info, MigrationOptions(project_path=root, update_versions=True))) == ["tailwind-config"]


def test_building_a_plan_writes_nothing(nextjs_project) -> None:
    before = {p: p.read_bytes() for p in nextjs_project.rglob("*") if p.is_file()}
    build_plan(detect_project(nextjs_project), MigrationOptions(project_path=nextjs_project, replace_linting=True))
    after = {p: p.read_bytes() for p in nextjs_project.rglob("*") if p.is_file()}
    assert before == after


def _run(plan, step_id, options):
    step = next(step for step in plan.steps if step.id == step_id)
    return step.execute(options)


def test_next_config_keeps_existing_without_overwrite(nextjs_project, read_json) -> None:
    options = MigrationOptions(project_path=nextjs_project, update_versions=True)
    plan = build_plan(detect_project(nextjs_project), options)
    modified = _run(plan, "next-config", options)

    assert (nextjs_project / "next.config.js").exists()
    assert not (nextjs_project / "next.config.ts").exists()
    assert modified == ["package.json"]
    deps = read_json(nextjs_project / "package.json")["dependencies"]
    assert deps["next"] == AIT3E_VERSIONS["next"]
    assert deps["react"] == AIT3E_VERSIONS["react"]


def test_next_config_overwrite_replaces_js_config(nextjs_project) -> None:
    options = MigrationOptions(project_path=nextjs_project, overwrite=True)
    plan = build_plan(detect_project(nextjs_project), options)
    modified = _run(plan, "next-config", options)

    assert not (nextjs_project / "next.config.js").exists()
    assert "NextConfig" in (nextjs_project / "next.config.ts").read_text()
    assert modified == ["next.config.js", "next.config.ts"]


def test_tailwind_step_moves_to_css_first_config(nextjs_project, read_json) -> None:
    options = MigrationOptions(project_path=nextjs_project)
    plan = build_plan(detect_project(nextjs_project), options)
    _run(plan, "tailwind-config", options)

    css = (nextjs_project / "src/app/globals.css").read_text()
    assert css.startswith('@import "tailwindcss";')
    assert "@tailwind" not in css
    assert "body { margin: 0; }" in css

    assert not (nextjs_project / "postcss.config.js").exists()
    assert "@tailwindcss/postcss" in (nextjs_project / "postcss.config.mjs").read_text()

    pkg = read_json(nextjs_project / "package.json")
    assert "autoprefixer" not in pkg["devDependencies"]
    assert pkg["devDependencies"]["tailwindcss"] == AIT3E_VERSIONS["tailwindcss"]
    assert pkg["devDependencies"]["@tailwindcss/postcss"] == AIT3E_VERSIONS["@tailwindcss/postcss"]


def test_tailwind_step_creates_stylesheet_when_missing(make_project) -> None:
    root = make_project({"dependencies": {"next": "15.0.0"}})
    options = MigrationOptions(project_path=root, update_versions=True)
    plan = build_plan(detect_project(root), options)
    modified = _run(plan, "tailwind-config", options)
    assert (root / "src/app/globals.css").read_text() == '@import "tailwindcss";\n'
    assert "src/app/globals.css" in modified


def test_linting_step_replaces_eslint_and_prettier(nextjs_project, read_json) -> None:
    options = MigrationOptions(project_path=nextjs_project, replace_linting=True)
    plan = build_plan(detect_project(nextjs_project), options)
    modified = _run(plan, "linting-config", options)

    assert (nextjs_project / "biome.json").exists()
    assert not (nextjs_project / ".eslintrc.json").exists()
    assert not (nextjs_project / ".prettierrc").exists()
    assert {"biome.json", ".eslintrc.json", ".prettierrc", "package.json"} <= set(modified)

    pkg = read_json(nextjs_project / "package.json")
    assert "eslint" not in pkg["devDependencies"]
    assert "eslint-config-next" not in pkg["devDependencies"]
    assert "prettier" not in pkg["devDependencies"]
    assert pkg["devDependencies"]["@biomejs/biome"] == AIT3E_VERSIONS["@biomejs/biome"]
    assert pkg["scripts"]["lint"] == "biome check ."


def test_linting_step_warns_about_files_rollback_cannot_restore(nextjs_project) -> None:
    (nextjs_project / "eslint.config.mjs").write_text("export default [];\n")
    out = io.StringIO()
    logger = Logger(verbose=True, console=Console(file=out, width=300))
    options = MigrationOptions(project_path=nextjs_project, replace_linting=True)
    plan = build_plan(detect_project(nextjs_project), options, logger=logger)
    modified = _run(plan, "linting-config", options)

    assert not (nextjs_project / "eslint.config.mjs").exists()
    assert "eslint.config.mjs" in modified
    warnings = [line for line in out.getvalue().splitlines() if "[WARNING]" in line]
    assert len(warnings) == 1
    assert "eslint.config.mjs" in warnings[0]


def test_is_backed_up() -> None:
    assert is_backed_up(".eslintrc.json")
    assert is_backed_up(".prettierrc")
    assert is_backed_up("src/app/globals.css")
    assert not is_backed_up("eslint.config.mjs")
    assert not is_backed_up(".prettierignore")


def test_typescript_step_merges_compiler_options(nextjs_project, read_json) -> None:
    options = MigrationOptions(project_path=nextjs_project)
    plan = build_plan(detect_project(nextjs_project), options)
    _run(plan, "typescript-config", options)

    tsconfig = read_json(nextjs_project / "tsconfig.json")
    assert tsconfig["compilerOptions"]["strict"] is True
    assert tsconfig["compilerOptions"]["lib"] == ["dom", "dom.iterable", "esnext"]
    assert tsconfig["compilerOptions"]["paths"] == {"@/*": ["./src/*"]}
    assert tsconfig["include"][0] == "**/*.ts"


def test_typescript_paths_without_src_dir(make_project, read_json) -> None:
    root = make_project({"devDependencies": {"typescript": "5.0.0"}})
    options = MigrationOptions(project_path=root)
    plan = build_plan(detect_project(root), options)
    _run(plan, "typescript-config", options)
    assert read_json(root / "tsconfig.json")["compilerOptions"]["paths"] == {"@/*": ["./*"]}


def test_steps_are_idempotent(nextjs_project) -> None:
    options = MigrationOptions(project_path=nextjs_project, update_versions=True, replace_linting=True)
    for step in build_plan(detect_project(nextjs_project), options).steps:
        step.execute(options)
    snapshot = {p: p.read_bytes() for p in Path(nextjs_project).rglob("*") if p.is_file()}

    for step in build_plan(detect_project(nextjs_project), options).steps:
        step.execute(options)
    assert {p: p.read_bytes() for p in Path(nextjs_project).rglob("*") if p.is_file()} == snapshot
    assert json.loads((nextjs_project / "package.json").read_text())["name"] == "legacy-app"
