"""
Shared context object for depi CLI commands.

This module defines the global Click context used to share configuration
and runtime options across CLI subcommands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from depi.config import DepiConfig
from depi.constants import DEFAULT_PALETTE


class DepiContext:
    """Global context object for depi CLI commands.

    An instance of this class is created once per CLI invocation and
    passed to commands using Click's context mechanism.

    Attributes:
        config_path: Path to the depi configuration file, if provided.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Loaded configuration (defaults when no file was found).
        palette: Palette name chosen for this invocation.
    """

    __slots__ = ("config_path", "verbose", "color", "config", "palette")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: DepiConfig = DepiConfig()
        self.palette: str = DEFAULT_PALETTE


#: Click decorator for injecting :class:`DepiContext` into commands.
pass_context = click.make_pass_decorator(DepiContext, ensure=True)
