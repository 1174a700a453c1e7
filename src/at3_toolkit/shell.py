"""Subprocess helpers: package-manager installs, git, tool discovery."""

import shutil
import subprocess
from pathlib import Path
from typing import Optional

from .ui import console

INSTALL_COMMANDS = {
    "npm": ["npm", "install"],
    "pnpm": ["pnpm", "install"],
    "yarn": ["yarn", "install"],
    "bun": ["bun", "install"],
}


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    check_return: bool = True,
    capture: bool = False,
    timeout: Optional[float] = None,
) -> Optional[str]:
    """Run a command and optionally capture output."""
    try:
        if capture:
            result = subprocess.run(cmd, cwd=cwd, check=check_return, capture_output=True, text=True, timeout=timeout)
            return result.stdout.strip()
        else:
            subprocess.run(cmd, cwd=cwd, check=check_return, timeout=timeout)
            return None
    except subprocess.CalledProcessError as e:
        if check_return:
            console.print(f"[red]Error running command:[/red] {' '.join(cmd)}")
            console.print(f"[red]Exit code:[/red] {e.returncode}")
            if hasattr(e, 'stderr') and e.stderr:
                console.print(f"[red]Error output:[/red] {e.stderr}")
            raise
        return None


def install_command(package_manager: str) -> list[str]:
    return list(INSTALL_COMMANDS.get(package_manager, INSTALL_COMMANDS["npm"]))


def install_dependencies(project_path: Path, package_manager: str, timeout: Optional[float] = None) -> None:
    run_command(install_command(package_manager), cwd=project_path, capture=True, timeout=timeout)


def check_tool(tool: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(tool) is not None


def is_git_repo(path: Path = None) -> bool:
    """Check if the specified path is inside a git repository."""
    if path is None:
        path = Path.cwd()

    if not path.is_dir():
        return False

    try:
        subprocess.run(
            ["git", "rev-parse", "--is-inside-work-tree"],
            check=True,
            capture_output=True,
            cwd=path,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


def init_git_repo(project_path: Path, quiet: bool = False) -> bool:
    """Initialize a git repository with an initial commit.
    quiet: if True suppress console output (tracker handles status)
    """
    try:
        if not quiet:
            console.print("[cyan]Initializing git repository...[/cyan]")
        subprocess.run(["git", "init"], check=True, capture_output=True, cwd=project_path)
        subprocess.run(["git", "add", "."], check=True, capture_output=True, cwd=project_path)
        subprocess.run(
            ["git", "commit", "-m", "Initial commit from create-at3-app"],
            check=True,
            capture_output=True,
            cwd=project_path,
        )
        if not quiet:
            console.print("[green]✓[/green] Git repository initialized")
        return True
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        if not quiet:
            console.print(f"[red]Error initializing git repository:[/red] {e}")
        return False
