"""List command implementation for depi.

Prints every registry dependency of the nearest ``Cargo.toml``, grouped by
section and sorted by name.
"""

from __future__ import annotations

import sys
from itertools import groupby

import click

from depi.context import DepiContext, pass_context
from depi.core.manifest import CargoManifest, read_tables
from depi.core.orchestrator import iter_dependencies
from depi.exceptions import DepiError
from depi.commands.common import context_palette, print_dependencies
from depi.utils import get_logger, print_banner, print_error, print_warning

logger = get_logger("commands.list")


@click.command(name="list")
@pass_context
def list_dependencies(ctx: DepiContext) -> None:
    """List the dependencies declared in Cargo.toml."""
    try:
        manifest = CargoManifest.find()
        tables = read_tables(manifest.read())
    except DepiError as exc:
        print_error(str(exc))
        sys.exit(1)

    grouped = [
        (kind, [dep for _, dep in pairs])
        for kind, pairs in groupby(iter_dependencies(tables), key=lambda p: p[0])
    ]
    if not grouped:
        print_warning(f"No dependencies in {manifest.path}")
        return

    print_banner("deps list")
    count = print_dependencies(grouped, context_palette(ctx))
    logger.info("Listed %d dependencies from %s", count, manifest.path)
