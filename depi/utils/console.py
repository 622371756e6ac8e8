"""
Console output utilities for depi using Rich.

User-facing output helpers for CLI commands. For diagnostic output use
:mod:`depi.utils.logger`.

Dependency renderers take a :class:`Palette` argument instead of reading a
global preference; commands choose the palette once per invocation.
"""

from __future__ import annotations

import os
import sys
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.markup import escape
from rich.table import Table
from rich.theme import Theme
from rich.console import Console

from depi.constants import DEFAULT_PALETTE, PALETTE_NAMES

# ---------------------------------------------------------------------------
# Theme configuration
# ---------------------------------------------------------------------------

DEPI_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "highlight": "bold magenta",
    }
)

# ---------------------------------------------------------------------------
# Palettes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Palette:
    """Styles used to render dependency names, versions and features.

    Attributes:
        name: Palette identifier.
        version: Style of resolved/new versions.
        old_version: Style of the previous version in update plans.
        features: Style of feature lists.
        split_version: Render only the second half of versions in
            ``version`` style.
    """

    name: str
    version: str = ""
    old_version: str = ""
    features: str = ""
    split_version: bool = False


PALETTES: Dict[str, Palette] = {
    "plain": Palette("plain"),
    "cool": Palette("cool", version="bold blue", old_version="blue", features="red"),
    "warm": Palette(
        "warm", version="bold yellow", old_version="yellow", features="red"
    ),
    "split": Palette(
        "split",
        version="bold red",
        old_version="red",
        features="red",
        split_version=True,
    ),
}


def get_palette(name: Optional[str] = None) -> Palette:
    """Return the palette called ``name``.

    ``"random"`` picks one of the colored palettes; unknown names fall back
    to ``"plain"``.
    """
    key = (name or DEFAULT_PALETTE).lower()
    if key == "random":
        return PALETTES[random.choice(("cool", "warm", "split"))]
    return PALETTES.get(key, PALETTES["plain"])


def is_known_palette(name: str) -> bool:
    return name.lower() in PALETTE_NAMES


def _styled(text: str, style: str) -> str:
    text = escape(text)
    return f"[{style}]{text}[/{style}]" if style else text


def format_version(version: str, palette: Palette, *, old: bool = False) -> str:
    """Return Rich markup for ``version`` in the palette's style."""
    style = palette.old_version if old else palette.version
    if palette.split_version and len(version) > 1:
        half = len(version) // 2
        return escape(version[:half]) + _styled(version[half:], style)
    return _styled(version, style)


def format_features(features: Optional[Sequence[str]], palette: Palette) -> str:
    """Return Rich markup for a feature list (``-`` when none selected)."""
    if features is None:
        return "-"
    if not features:
        return "[]"
    return _styled(", ".join(features), palette.features)


# ---------------------------------------------------------------------------
# Console lifecycle management
# ---------------------------------------------------------------------------

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                use_color = _should_use_color()
                _console = Console(
                    theme=DEPI_THEME,
                    no_color=not use_color,
                    highlight=use_color,
                )
    return _console


def reconfigure_console() -> None:
    """Reset the global console instance.

    Useful if environment variables (e.g. NO_COLOR) change at runtime.
    """
    global _console
    with _console_lock:
        _console = None


# ---------------------------------------------------------------------------
# Status message helpers
# ---------------------------------------------------------------------------


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    """Print a success message."""
    _get_console().print(f"{escape(prefix)} {message}", style="success")


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    """Print an error message."""
    _get_console().print(
        f"{escape(prefix)} {escape(message)}", style="error", highlight=False
    )


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    """Print a warning message."""
    _get_console().print(f"{escape(prefix)} {message}", style="warning")


def print_banner(title: str) -> None:
    """Print a command banner followed by a horizontal rule."""
    console = _get_console()
    console.print(f"[bold black on cyan] {escape(title.upper())} [/]")
    console.rule(style="cyan")


# ---------------------------------------------------------------------------
# Structured output
# ---------------------------------------------------------------------------


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    caption: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
    row_styler: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None,
    show_row_lines: bool = False,
) -> None:
    """Render structured data as a Rich table.

    Args:
        data: List of row dictionaries.
        headers: Column order. Defaults to keys of the first row.
        title: Optional table title.
        caption: Optional table caption.
        column_styles: Per-column style configuration.
        row_styler: Optional callback returning a row style.
        show_row_lines: Whether to draw horizontal lines between rows.
    """
    if not data:
        return

    if headers is None:
        headers = list(data[0].keys())

    table = Table(
        title=title,
        caption=caption,
        show_header=True,
        header_style="bold",
        show_lines=show_row_lines,
    )

    column_styles = column_styles or {}
    for header in headers:
        config = column_styles.get(header, {})
        table.add_column(
            header,
            style=config.get("style"),
            justify=config.get("justify", "default"),
            no_wrap=config.get("no_wrap", False),
            width=config.get("width"),
            overflow=config.get("overflow", "fold"),
        )

    for row in data:
        values = [str(row.get(h, "")) for h in headers]
        style = row_styler(row) if row_styler else None
        table.add_row(*values, style=style)

    _get_console().print(table)


def get_raw_console() -> Console:
    """Return the underlying Rich Console instance."""
    return _get_console()


def colorize_update_type(update_type: str) -> str:
    """Return a Rich-markup colored update type label."""
    color_map = {
        "major": "red",
        "minor": "yellow",
        "patch": "green",
        "new": "cyan",
        "downgrade": "red",
        "update": "yellow",
    }

    color = color_map.get(update_type.lower())
    return f"[{color}]{update_type}[/{color}]" if color else update_type
