"""
Command-line interface for depi.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from depi.config import load_config
from depi.__version__ import __version__
from depi.constants import PALETTE_NAMES
from depi.context import DepiContext
from depi.exceptions import ConfigError, DepiError
from depi.utils.logger import get_logger, level_for_verbosity, setup_logging
from depi.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="DEPI_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="DEPI_COLOR",
)
@click.option(
    "--palette",
    type=click.Choice(list(PALETTE_NAMES), case_sensitive=False),
    default=None,
    help="Color palette for versions and features.",
    envvar="DEPI_PALETTE",
)
@click.version_option(
    version=__version__,
    prog_name="depi",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
    palette: Optional[str],
) -> None:
    """depi — dependency manager for Cargo projects.

    \b
    Available commands:
      depi init / new NAME         Scaffold a project (with -D DEPS)
      depi add DEPS                Add dependencies to Cargo.toml
      depi remove NAMES            Remove dependencies from every section
      depi list                    List declared dependencies
      depi update                  Update everything to the latest release
      depi alias add|remove|list   Manage dependency aliases

    \b
    Examples:
      depi add serde@1.0.200:derive/tokio:full
      depi add rand!dev/cc!build/winapi!windows
      depi add +cli
      depi -v update --dry-run

    Use ``depi COMMAND --help`` for command-specific options.
    """
    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    _configure_logging(verbose)

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    depi_ctx = DepiContext()
    depi_ctx.config_path = config or (
        loaded_config.source_path if loaded_config.source_path else None
    )
    depi_ctx.color = color
    depi_ctx.verbose = verbose
    depi_ctx.config = loaded_config
    depi_ctx.palette = (palette or loaded_config.palette).lower()
    ctx.obj = depi_ctx

    logger.debug("depi v%s", __version__)
    logger.debug("Config path: %s", depi_ctx.config_path)
    if loaded_config.source_path:
        logger.debug("Loaded configuration: %s", loaded_config.to_log_dict())
    logger.debug(
        "Verbosity: %s | Color: %s | Palette: %s", verbose, color, depi_ctx.palette
    )


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose >= 2)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from depi.commands.add import add  # noqa: E402
from depi.commands.alias import alias  # noqa: E402
from depi.commands.init import init, new  # noqa: E402
from depi.commands.list import list_dependencies  # noqa: E402
from depi.commands.remove import remove  # noqa: E402
from depi.commands.update import update  # noqa: E402

cli.add_command(init)
cli.add_command(new)
cli.add_command(add)
cli.add_command(remove)
cli.add_command(list_dependencies)
cli.add_command(update)
cli.add_command(alias)


def main() -> int:
    """Main entry point for the depi CLI.

    Returns:
        Exit code:
            0   Success
            1   Unhandled or application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except click.exceptions.Exit as exc:
        return exc.exit_code

    except click.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except DepiError as exc:
        print_error(str(exc))
        logger.debug(
            "DepiError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
