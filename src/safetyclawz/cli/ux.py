"""
CLI UX utilities built on rich.

Environment handling:
- Colors only when writing to a terminal (rich detects TTY vs pipe)
- Respects NO_COLOR and FORCE_COLOR environment variables
- Errors go to stderr so piped output stays clean
"""

from __future__ import annotations

import os

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

SAFETYCLAWZ_THEME = Theme(
    {
        "info": "#88C0D0",  # light blue
        "success": "#A3BE8C",  # green
        "warning": "#EBCB8B",  # yellow
        "error": "#BF616A bold",  # red
        "blocked": "#BF616A bold",
        "allowed": "#A3BE8C bold",
        "highlight": "#B48EAD",  # purple
        "muted": "#D8DEE9",  # light grey
        "frost": "#81A1C1",  # blue
    }
)


def make_console(stderr: bool = False) -> Console:
    """Create a themed console honouring NO_COLOR and FORCE_COLOR."""
    # https://no-color.org/
    return Console(
        theme=SAFETYCLAWZ_THEME,
        stderr=stderr,
        force_terminal=True if os.environ.get("FORCE_COLOR") is not None else None,
        no_color=bool(os.environ.get("NO_COLOR")),
        highlight=False,
    )


console = make_console()
error_console = make_console(stderr=True)


# === Output Formatting ===


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✓ {message}[/success]")


def error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[error]✗ {message}[/error]")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[warning]⚠ {message}[/warning]")


def header(title: str) -> None:
    """Print a section header."""
    console.print()
    console.print(Panel(f"[bold]{title}[/bold]", border_style="frost"))


def print_table(
    title: str,
    columns: list[str],
    rows: list[list[str]],
) -> None:
    """Print a formatted table."""
    table = Table(title=title)

    for col in columns:
        table.add_column(col)

    for row in rows:
        table.add_row(*row)

    console.print(table)


def print_key_value(items: dict[str, str]) -> None:
    """Print key-value pairs."""
    for key, value in items.items():
        console.print(f"  [frost]{key}:[/frost] {value}")
