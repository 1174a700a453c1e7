"""
create-at3-app - scaffold a new AT3 project

Usage:
    create-at3-app                                   # interactive
    create-at3-app my-app --template t3-ai-vercel
    create-at3-app my-app --database drizzle --auth clerk --pm pnpm --no-install
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich.live import Live
from rich.panel import Panel

from .errors import At3Error, InvalidProjectNameError
from .features import add_feature
from .integration import create_at3_config
from .logger import Logger
from .merger import ConfigMerger, dump_json
from .planner import (
    AIT3E_VERSIONS,
    BIOME_CONFIG,
    NEXT_CONFIG_TEMPLATE,
    POSTCSS_CONFIG_TEMPLATE,
    TAILWIND_CSS_IMPORT,
    TSCONFIG_COMPILER_OPTIONS,
)
from .shell import check_tool, init_git_repo, install_dependencies, is_git_repo
from .ui import StepTracker, console, error_panel, select_with_arrows, show_banner

CREATE_TAGLINE = "create-at3-app - AI + T3 + Edge in a single command"

NAME_MAX_LENGTH = 214
NAME_RE = re.compile(r"^[a-z0-9~-][a-z0-9._~-]*$")
RESERVED_NAMES = {"node_modules", "favicon.ico"}


@dataclass(frozen=True)
class Template:
    name: str
    description: str
    features: tuple[str, ...]
    installers: tuple[str, ...] = ()


TEMPLATES = {
    "t3": Template(
        "T3 Base",
        "Classic T3 stack: Next.js + TypeScript + Tailwind + tRPC",
        ("nextjs", "typescript", "tailwind", "trpc"),
    ),
    "t3-edge": Template(
        "T3 + Edge",
        "T3 stack + Supabase for edge-first deployment",
        ("nextjs", "typescript", "tailwind", "supabase", "edge"),
        ("supabase",),
    ),
    "t3-ai-custom": Template(
        "T3 + AI (Custom)",
        "T3 + custom AI integration with multiple providers",
        ("nextjs", "typescript", "tailwind", "custom-ai", "openai", "anthropic"),
        ("ai-custom",),
    ),
    "t3-ai-vercel": Template(
        "T3 + AI (Vercel SDK)",
        "T3 + Vercel AI SDK integration",
        ("nextjs", "typescript", "tailwind", "vercel-ai", "streaming"),
        ("ai-vercel",),
    ),
    "t3-ai-both": Template(
        "T3 + AI (Both)",
        "T3 + both custom AI and Vercel SDK integration",
        ("nextjs", "typescript", "tailwind", "custom-ai", "vercel-ai", "streaming"),
        ("ai-custom", "ai-vercel"),
    ),
    "suggested": Template(
        "AT3 Suggested",
        "Everything included: T3 + Supabase + AI + PWA + i18n + testing",
        ("nextjs", "typescript", "tailwind", "supabase", "custom-ai", "vercel-ai", "pwa", "i18n", "testing", "edge"),
        ("supabase", "ai-custom", "ai-vercel", "pwa", "i18n", "testing"),
    ),
    "83-flavor": Template(
        "83 Flavor",
        "Signature stack: T3 + Supabase/Vercel Edge + Vercel AI SDK",
        ("nextjs", "typescript", "tailwind", "supabase", "vercel-edge", "vercel-ai", "streaming"),
        ("supabase", "ai-vercel"),
    ),
}

DATABASE_CHOICES = {"supabase": "supabase", "drizzle": "drizzle", "none": None}
AUTH_CHOICES = {"supabase": "supabase", "clerk": "clerk", "better-auth": "better-auth", "none": None}
PACKAGE_MANAGERS = ("npm", "pnpm", "yarn", "bun")

TRPC_DEPENDENCIES = {
    "@trpc/server": "^11.0.0",
    "@trpc/client": "^11.0.0",
    "@trpc/react-query": "^11.0.0",
    "@tanstack/react-query": "^5.62.0",
    "zod": "^3.24.0",
}

BASE_ENV = """# App
NEXT_PUBLIC_APP_URL=http://localhost:3000
"""

GITIGNORE = """node_modules
.next
out
dist
.env
.env.local
.migration-backup
*.tsbuildinfo
next-env.d.ts
"""

LAYOUT_TSX = """import type { Metadata } from "next";
import "./globals.css";

export const metadata: Metadata = {
  title: "{title}",
  description: "Created with create-at3-app",
};

export default function RootLayout({ children }: { children: React.ReactNode }) {
  return (
    <html lang="en">
      <body>{children}</body>
    </html>
  );
}
"""

PAGE_TSX = """export default function Home() {
  return (
    <main className="flex min-h-screen flex-col items-center justify-center gap-4 p-24">
      <h1 className="text-4xl font-bold">{title}</h1>
      <p className="text-lg text-gray-600">Edit src/app/page.tsx to get started.</p>
    </main>
  );
}
"""


def validate_project_name(name: str) -> None:
    problems = []
    if not name:
        problems.append("name is required")
    else:
        if len(name) > NAME_MAX_LENGTH:
            problems.append(f"name can be no longer than {NAME_MAX_LENGTH} characters")
        if name.startswith((".", "_")):
            problems.append("name cannot start with a period or underscore")
        if name.strip() != name:
            problems.append("name cannot contain leading or trailing spaces")
        if name.lower() != name:
            problems.append("name cannot contain capital letters")
        if name in RESERVED_NAMES:
            problems.append(f"{name} is a reserved name")
        if not problems and not NAME_RE.match(name):
            problems.append("name can only contain lowercase letters, digits, '-', '.', '_' and '~'")
    if problems:
        raise InvalidProjectNameError(name, problems)


def resolve_installers(template: str, database: str = "none", auth: str = "none", ai: bool = False) -> list[str]:
    """Feature installers for a template plus the --database/--auth/--ai extras, deduplicated."""
    installers = list(TEMPLATES[template].installers)
    extras = [DATABASE_CHOICES.get(database), AUTH_CHOICES.get(auth), "ai-vercel" if ai else None]
    for extra in extras:
        if extra and extra not in installers:
            installers.append(extra)
    return installers


def base_package_json(name: str, template: Template) -> dict:
    dependencies = {key: AIT3E_VERSIONS[key] for key in ("next", "react", "react-dom")}
    if "trpc" in template.features:
        dependencies.update(TRPC_DEPENDENCIES)

    return {
        "name": name,
        "version": "0.1.0",
        "private": True,
        "type": "module",
        "scripts": {
            "dev": "next dev --turbopack",
            "build": "next build",
            "start": "next start",
            "lint": "biome check .",
            "format": "biome format --write .",
            "typecheck": "tsc --noEmit",
        },
        "dependencies": dependencies,
        "devDependencies": {
            "typescript": AIT3E_VERSIONS["typescript"],
            "tailwindcss": AIT3E_VERSIONS["tailwindcss"],
            "@tailwindcss/postcss": AIT3E_VERSIONS["@tailwindcss/postcss"],
            "@biomejs/biome": AIT3E_VERSIONS["@biomejs/biome"],
            "@types/node": "^22.10.0",
            "@types/react": "^19.1.0",
            "@types/react-dom": "^19.1.0",
        },
    }


def write_base_skeleton(project_path: Path, name: str, template: Template) -> list[str]:
    package_json = base_package_json(name, template)
    title = name.replace("-", " ").title()
    files = {
        "package.json": dump_json(package_json),
        "tsconfig.json": dump_json({
            "compilerOptions": TSCONFIG_COMPILER_OPTIONS,
            "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"],
            "exclude": ["node_modules"],
        }),
        "next.config.ts": NEXT_CONFIG_TEMPLATE,
        "postcss.config.mjs": POSTCSS_CONFIG_TEMPLATE,
        "biome.json": dump_json(BIOME_CONFIG),
        ".gitignore": GITIGNORE,
        "src/app/globals.css": TAILWIND_CSS_IMPORT + "\n",
        "src/app/layout.tsx": LAYOUT_TSX.replace("{title}", title),
        "src/app/page.tsx": PAGE_TSX.replace("{title}", title),
    }
    for rel, content in files.items():
        target = project_path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return list(files)


def create_app(
    name: str,
    parent_dir: Path,
    template: str = "t3",
    package_manager: str = "pnpm",
    database: str = "none",
    auth: str = "none",
    ai: bool = False,
    install: bool = True,
    git: bool = True,
    logger: Optional[Logger] = None,
    tracker: Optional[StepTracker] = None,
    installer=install_dependencies,
) -> Path:
    """Scaffold ``parent_dir/name``. Install and git failures are recorded, not raised."""
    logger = logger or Logger()
    validate_project_name(name)
    if template not in TEMPLATES:
        raise At3Error(f"Unknown template: {template}. Valid templates: {', '.join(TEMPLATES)}")
    if package_manager not in PACKAGE_MANAGERS:
        raise At3Error(f"Unknown package manager: {package_manager}. Use one of: {', '.join(PACKAGE_MANAGERS)}")

    project_path = Path(parent_dir) / name
    if project_path.exists():
        raise At3Error(f"Directory '{name}' already exists. Please choose a different project name or remove the existing directory.")

    tracker = tracker or StepTracker("Create AT3 App")
    chosen = TEMPLATES[template]
    installers = resolve_installers(template, database, auth, ai)
    for key, label in [("skeleton", "Write project skeleton"), ("features", "Add features"), ("config", "Write AT3 config"), ("git", "Initialize git repository"), ("install", "Install dependencies")]:
        tracker.add(key, label)

    tracker.start("skeleton")
    project_path.mkdir(parents=True)
    written = write_base_skeleton(project_path, name, chosen)
    tracker.complete("skeleton", f"{len(written)} files")

    tracker.start("features")
    merger = ConfigMerger(logger)
    for feature_id in installers:
        add_feature(feature_id, project_path, merger, logger)
    merger.append_env_vars(project_path / ".env.example", BASE_ENV, "NEXT_PUBLIC_APP_URL")
    tracker.complete("features", ", ".join(installers) or "base only")

    tracker.start("config")
    create_at3_config(project_path, template, [*chosen.features, *installers], logger=logger)
    tracker.complete("config", ".at3-config.json")

    if not git:
        tracker.skip("git", "--no-git flag")
    elif not check_tool("git"):
        tracker.skip("git", "git not available")
    elif is_git_repo(project_path.parent):
        tracker.skip("git", "existing repo detected")
    else:
        tracker.start("git")
        if init_git_repo(project_path, quiet=True):
            tracker.complete("git", "initialized")
        else:
            tracker.error("git", "init failed")
            logger.warn("Git initialization failed; you can run git init manually")

    if not install:
        tracker.skip("install", "--no-install flag")
    else:
        tracker.start("install", package_manager)
        try:
            installer(project_path, package_manager, None)
            tracker.complete("install", package_manager)
        except Exception as e:
            tracker.error("install", str(e))
            logger.warn(f"Dependency installation failed: {e}")

    return project_path


app = typer.Typer(
    name="create-at3-app",
    help="Create AT3 (AI + T3 + Edge) apps with a single command",
    add_completion=False,
)


@app.command()
def create(
    project_name: str = typer.Argument(None, help="Name for your new project directory"),
    template: str = typer.Option(None, "--template", "-t", help=f"Template to use: {', '.join(TEMPLATES)}"),
    pm: str = typer.Option("pnpm", "--pm", help="Package manager to use: npm, pnpm, yarn or bun"),
    database: str = typer.Option("none", "--database", help="Database: supabase, drizzle or none"),
    auth: str = typer.Option("none", "--auth", help="Auth provider: supabase, clerk, better-auth or none"),
    ai: bool = typer.Option(False, "--ai", help="Add the Vercel AI SDK"),
    no_install: bool = typer.Option(False, "--no-install", help="Skip installing dependencies"),
    no_git: bool = typer.Option(False, "--no-git", help="Skip git repository initialization"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
):
    """
    Create a new AT3 project.

    Examples:
        create-at3-app my-app
        create-at3-app my-app --template suggested --pm npm
        create-at3-app my-app --database drizzle --auth clerk --ai
    """
    show_banner(CREATE_TAGLINE)

    if not project_name:
        project_name = typer.prompt("What is your project named?", default="my-at3-app")
    if template is None:
        template = select_with_arrows(
            {key: t.description for key, t in TEMPLATES.items()}, "Choose a template", "t3"
        )
    if database not in DATABASE_CHOICES:
        console.print(error_panel(f"Invalid --database '{database}'. Use one of: {', '.join(DATABASE_CHOICES)}"))
        raise typer.Exit(1)
    if auth not in AUTH_CHOICES:
        console.print(error_panel(f"Invalid --auth '{auth}'. Use one of: {', '.join(AUTH_CHOICES)}"))
        raise typer.Exit(1)

    setup_lines = [
        "[cyan]create-at3-app[/cyan]",
        "",
        f"{'Project':<15} [green]{project_name}[/green]",
        f"{'Template':<15} [yellow]{template}[/yellow]",
        f"{'Package Mgr':<15} {pm}",
        f"{'Target Path':<15} [dim]{Path.cwd() / project_name}[/dim]",
    ]
    console.print(Panel("\n".join(setup_lines), border_style="cyan", padding=(1, 2)))

    logger = Logger(verbose)
    tracker = StepTracker("Create AT3 App")
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            project_path = create_app(
                project_name,
                Path.cwd(),
                template=template,
                package_manager=pm,
                database=database,
                auth=auth,
                ai=ai,
                install=not no_install,
                git=not no_git,
                logger=logger,
                tracker=tracker,
            )
        except At3Error as e:
            failure = e
        else:
            failure = None

    if failure is not None:
        console.print(error_panel(str(failure), title="Create Failed"))
        raise typer.Exit(1)

    console.print(tracker.render())
    console.print("\n[bold green]Project ready.[/bold green]")

    steps_lines = [f"1. Go to the project folder: [cyan]cd {project_path.name}[/cyan]"]
    step_num = 2
    if no_install:
        steps_lines.append(f"{step_num}. Install dependencies: [cyan]{pm} install[/cyan]")
        step_num += 1
    steps_lines.append(f"{step_num}. Copy [cyan].env.example[/cyan] to [cyan].env.local[/cyan] and fill in your keys")
    steps_lines.append(f"{step_num + 1}. Start the dev server: [cyan]{pm} run dev[/cyan]")
    steps_lines.append(f"{step_num + 2}. Add more features later with [cyan]at3-kit[/cyan]")
    console.print()
    console.print(Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2)))


def main():
    app()


if __name__ == "__main__":
    main()
