import shutil
from typing import Iterable, Tuple

import pyfiglet
from rich.align import Align
from rich.box import ROUNDED
from rich.console import Group
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from fedora_optimizer import APP_NAME, APP_SUBTITLE, VERSION
from fedora_optimizer.config import Context, NordColors
from fedora_optimizer.results import ResultKind, TaskResult


# ----------------------------------------------------------------
# Console Output Helpers
# ----------------------------------------------------------------
# The console handler of the run logger only shows INFO and above, so the
# echoes below go to the log file at DEBUG to avoid printing twice.
def print_message(
    ctx: Context, text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    ctx.console.print(f"[{style}]{prefix} {text}[/{style}]")
    ctx.logger.debug(text)


def print_step(ctx: Context, text: str) -> None:
    print_message(ctx, text, NordColors.FROST_3, "➜")


def print_success(ctx: Context, text: str) -> None:
    ctx.console.print(f"[{NordColors.GREEN}]✓ {text}[/{NordColors.GREEN}]")
    ctx.logger.debug(f"SUCCESS: {text}")


def print_warning(ctx: Context, text: str) -> None:
    ctx.console.print(f"[{NordColors.YELLOW}]⚠ {text}[/{NordColors.YELLOW}]")
    ctx.logger.debug(f"WARNING: {text}")


def print_error(ctx: Context, text: str) -> None:
    ctx.err_console.print(f"[{NordColors.RED}]✗ {text}[/{NordColors.RED}]")
    ctx.logger.debug(f"ERROR: {text}")


def print_section(ctx: Context, title: str) -> None:
    ctx.console.print()
    ctx.console.print(f"[bold {NordColors.FROST_1}]== {title.upper()} ==[/]")
    ctx.console.print(f"[{NordColors.FROST_3}]{'─' * 60}[/]")
    ctx.logger.debug(f"--- {title} ---")


def create_header() -> Panel:
    """
    Create an ASCII art header using Pyfiglet with a Nord-themed gradient.

    Returns:
        Panel: A Rich Panel containing the styled header.
    """
    term_width = shutil.get_terminal_size().columns
    adjusted_width = min(term_width - 10, 80)
    ascii_art = ""
    for font in ("slant", "small", "standard"):
        try:
            ascii_art = pyfiglet.Figlet(font=font, width=adjusted_width).renderText(
                APP_NAME
            )
            if ascii_art.strip():
                break
        except Exception:
            continue
    if not ascii_art.strip():
        ascii_art = f"=== {APP_NAME} ===\n"

    colors = [
        NordColors.FROST_1,
        NordColors.FROST_2,
        NordColors.FROST_3,
        NordColors.FROST_4,
    ]
    styled_text = ""
    for i, line in enumerate(line for line in ascii_art.splitlines() if line.strip()):
        escaped_line = line.replace("[", "\\[").replace("]", "\\]")
        styled_text += f"[bold {colors[i % len(colors)]}]{escaped_line}[/]\n"

    return Panel(
        Text.from_markup(styled_text),
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 2),
        box=ROUNDED,
        title=f"[bold {NordColors.SNOW_STORM_2}]v{VERSION}[/]",
        title_align="right",
        subtitle=f"[bold {NordColors.SNOW_STORM_1}]{APP_SUBTITLE}[/]",
        subtitle_align="center",
    )


_KIND_STYLE = {
    ResultKind.SUCCESS: (NordColors.GREEN, "✓"),
    ResultKind.SKIPPED: (NordColors.POLAR_NIGHT_4, "-"),
    ResultKind.RECOVERABLE: (NordColors.YELLOW, "⚠"),
    ResultKind.FATAL: (NordColors.RED, "✗"),
}


def status_report(ctx: Context, title: str, rows: Iterable[Tuple[str, TaskResult]]) -> None:
    """Display a table reporting the result of each step of a run."""
    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        box=ROUNDED,
        title=f"[bold {NordColors.FROST_2}]{title}[/]",
        title_justify="center",
        expand=True,
    )
    table.add_column("Task", style=f"bold {NordColors.FROST_2}")
    table.add_column("Status", justify="center")
    table.add_column("Message", style=NordColors.SNOW_STORM_1, ratio=3)

    counts = {kind: 0 for kind in ResultKind}
    for label, result in rows:
        color, icon = _KIND_STYLE[result.kind]
        counts[result.kind] += 1
        table.add_row(
            label,
            f"[bold {color}]{icon} {result.kind.value.upper()}[/]",
            result.message,
        )

    summary = Text()
    summary.append("Status Summary: ", style=f"bold {NordColors.FROST_3}")
    summary.append(f"{counts[ResultKind.SUCCESS]} Succeeded", style=f"bold {NordColors.GREEN}")
    summary.append(" | ")
    summary.append(f"{counts[ResultKind.RECOVERABLE]} Failed", style=f"bold {NordColors.YELLOW}")
    summary.append(" | ")
    summary.append(f"{counts[ResultKind.FATAL]} Fatal", style=f"bold {NordColors.RED}")
    summary.append(" | ")
    summary.append(
        f"{counts[ResultKind.SKIPPED]} Skipped", style=f"bold {NordColors.POLAR_NIGHT_4}"
    )

    ctx.console.print(
        Panel(
            Group(table, Align.center(summary)),
            border_style=Style(color=NordColors.FROST_4),
            padding=(0, 1),
            box=ROUNDED,
        )
    )
