"""Terminal rendering shared by the at3t, at3-kit and create-at3-app CLIs."""

import readchar
import typer
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree
from typer.core import TyperGroup

from .models import Detection, ProjectInfo

console = Console()

BANNER = """
 █████╗ ████████╗██████╗
██╔══██╗╚══██╔══╝╚════██╗
███████║   ██║    █████╔╝
██╔══██║   ██║    ╚═══██╗
██║  ██║   ██║   ██████╔╝
╚═╝  ╚═╝   ╚═╝   ╚═════╝
"""

TAGLINE = "AT3 Toolset - AI + T3 + Edge for Next.js projects"


STEP_SYMBOLS = {
    "done": "[green]●[/green]",
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "error": "[red]●[/red]",
    "skipped": "[yellow]○[/yellow]",
}


class StepTracker:
    """Tree of named phases, repainted through an attached callback while a Live display is open.

    Keys unknown to ``add`` are appended on first update, labelled with the key itself.
    """

    def __init__(self, title: str):
        self.title = title
        self.steps = []  # {key, label, status, detail}
        self._refresh_cb = None

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if all(s["key"] != key for s in self.steps):
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def start(self, key: str, detail: str = ""):
        self._update(key, "running", detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, "done", detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, "error", detail)

    def skip(self, key: str, detail: str = ""):
        self._update(key, "skipped", detail)

    def _update(self, key: str, status: str, detail: str):
        step = next((s for s in self.steps if s["key"] == key), None)
        if step is None:
            step = {"key": key, "label": key, "status": status, "detail": ""}
            self.steps.append(step)
        step["status"] = status
        if detail:
            step["detail"] = detail
        self._maybe_refresh()

    def _maybe_refresh(self):
        if self._refresh_cb:
            try:
                self._refresh_cb()
            except Exception:
                pass

    def render(self):
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            symbol = STEP_SYMBOLS.get(step["status"], " ")
            detail = (step["detail"] or "").strip()
            suffix = f" ({detail})" if detail else ""
            if step["status"] == "pending":
                tree.add(f"{symbol} [bright_black]{step['label']}{suffix}[/bright_black]")
            else:
                tree.add(f"{symbol} [white]{step['label']}[/white][bright_black]{suffix}[/bright_black]")
        return tree


def show_banner(tagline: str = TAGLINE):
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip().split('\n')
    colors = ["bright_blue", "blue", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        color = colors[i % len(colors)]
        styled_banner.append(line + "\n", style=color)

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(tagline, style="italic bright_yellow")))
    console.print()


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


class DefaultCommandGroup(BannerGroup):
    """Banner group that sends anything other than a subcommand to ``default_command``."""

    default_command = "migrate"

    def parse_args(self, ctx, args):
        if not args or (args[0] not in self.commands and args[0] not in ctx.help_option_names):
            args = [self.default_command, *args]
        return super().parse_args(ctx, args)


def error_panel(message: str, title: str = "Error") -> Panel:
    return Panel(message, title=f"[red]{title}[/red]", border_style="red", padding=(1, 2))


def get_key():
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP:
        return 'up'
    if key == readchar.key.DOWN:
        return 'down'
    if key == readchar.key.ENTER:
        return 'enter'
    if key == readchar.key.SPACE:
        return 'space'
    if key == readchar.key.ESC:
        return 'escape'
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


def _run_picker(render, on_key):
    """Drive a Live panel from key presses until ``on_key`` returns True."""
    console.print()
    with Live(render(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                key = 'escape'
            if key == 'escape':
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            if on_key(key):
                return
            live.update(render(), refresh=True)


def _option_panel(option_keys: list, options: dict, prompt_text: str, cursor: int, hint: str, chosen=None) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="left", width=3)
    if chosen is not None:
        table.add_column(style="cyan", justify="left", width=3)
    table.add_column(style="white", justify="left")

    blank = [""] * (2 if chosen is None else 3)
    for i, key in enumerate(option_keys):
        row = ["▶" if i == cursor else " "]
        if chosen is not None:
            row.append("[green]■[/green]" if key in chosen else "□")
        row.append(f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")
        table.add_row(*row)

    table.add_row(*blank)
    table.add_row(*blank[:-1], f"[dim]{hint}[/dim]")
    return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))


def select_with_arrows(options: dict, prompt_text: str = "Select an option", default_key: str = None) -> str:
    """
    Interactive selection using arrow keys with Rich Live display.

    Args:
        options: Dict with keys as option keys and values as descriptions
        prompt_text: Text to show above the options
        default_key: Default option key to start with

    Returns:
        Selected option key
    """
    option_keys = list(options)
    state = {"cursor": option_keys.index(default_key) if default_key in option_keys else 0}

    def on_key(key) -> bool:
        if key == 'up':
            state["cursor"] = (state["cursor"] - 1) % len(option_keys)
        elif key == 'down':
            state["cursor"] = (state["cursor"] + 1) % len(option_keys)
        return key == 'enter'

    _run_picker(
        lambda: _option_panel(option_keys, options, prompt_text, state["cursor"],
                              "Use ↑/↓ to navigate, Enter to select, Esc to cancel"),
        on_key,
    )
    return option_keys[state["cursor"]]


def select_many_with_arrows(options: dict, prompt_text: str = "Select options") -> list[str]:
    """Like select_with_arrows, but Space toggles entries and Enter confirms the set."""
    option_keys = list(options)
    state = {"cursor": 0}
    chosen: set[str] = set()

    def on_key(key) -> bool:
        if key == 'up':
            state["cursor"] = (state["cursor"] - 1) % len(option_keys)
        elif key == 'down':
            state["cursor"] = (state["cursor"] + 1) % len(option_keys)
        elif key == 'space':
            chosen.symmetric_difference_update({option_keys[state["cursor"]]})
        return key == 'enter'

    _run_picker(
        lambda: _option_panel(option_keys, options, prompt_text, state["cursor"],
                              "↑/↓ navigate, Space toggle, Enter confirm, Esc cancel", chosen),
        on_key,
    )
    return [key for key in option_keys if key in chosen]


def _flag(value) -> str:
    if isinstance(value, Detection) and value is Detection.UNKNOWN:
        return "[yellow]?[/yellow]"
    return "[green]✓[/green]" if value else "[bright_black]✗[/bright_black]"


def render_project_panel(info: ProjectInfo, title: str = "Project Analysis") -> Panel:
    table = Table.grid(padding=(0, 1))
    table.add_column(justify="left", style="yellow", width=18)
    table.add_column(justify="left", style="white")

    table.add_row("Path", f"[dim]{info.path}[/dim]")
    table.add_row("Project Type", info.type.value)
    table.add_row("Package Manager", info.package_manager.value)
    table.add_row("Dependencies", str(len(info.dependencies)))
    table.add_row("Auth", info.auth_provider.value)
    table.add_row("Testing", f"{info.testing.unit} / {info.testing.e2e}")

    features = Table.grid(padding=(0, 1))
    features.add_column(width=3)
    features.add_column(style="white")
    for label, value in [
        ("TypeScript", info.has_typescript),
        ("Next.js", info.has_nextjs),
        ("Tailwind CSS", info.has_tailwind),
        ("Supabase", info.has_supabase),
        ("AI SDK", info.has_ai_support),
        ("Edge Runtime", info.has_edge_runtime),
        ("Vector DB", info.has_vector_db),
        ("Biome", info.has_biome),
        ("ESLint", info.has_eslint),
        ("Prettier", info.has_prettier),
        ("Drizzle", info.has_drizzle),
        ("Prisma", info.has_prisma),
        ("tRPC", info.has_trpc),
        ("PWA", info.has_pwa),
        ("i18n", info.has_i18n),
    ]:
        features.add_row(_flag(value), label)

    panel_body = Table.grid()
    panel_body.add_row(table)
    panel_body.add_row("")
    panel_body.add_row("Features:")
    panel_body.add_row(features)
    return Panel(panel_body, title=title, border_style="cyan", padding=(1, 2))
