"""Remove command implementation for depi.

Deletes the named dependencies from every section of the nearest
``Cargo.toml`` (normal, dev, build and platform-specific).

Typical usage::

    $ depi remove serde,tokio
"""

from __future__ import annotations

import sys

import click

from depi.context import DepiContext, pass_context
from depi.core.manifest import CargoManifest, remove_names
from depi.exceptions import DepiError
from depi.commands.common import context_palette, print_dependencies
from depi.utils import (
    get_logger,
    print_banner,
    print_error,
    print_success,
    print_warning,
)

logger = get_logger("commands.remove")


@click.command()
@click.argument("names")
@pass_context
def remove(ctx: DepiContext, names: str) -> None:
    """Remove the comma-separated NAMES from every dependency section."""
    wanted = [n.strip() for n in names.split(",") if n.strip()]
    if not wanted:
        raise click.UsageError("No package names given")

    try:
        manifest = CargoManifest.find()
        document = manifest.read()
        removed = remove_names(document, wanted)

        if not removed:
            print_warning(f"None of {', '.join(wanted)} found in {manifest.path}")
            return

        manifest.write(document)
    except DepiError as exc:
        print_error(str(exc))
        sys.exit(1)

    found = {name for deps in removed.values() for name in deps}
    missing = [n for n in wanted if n not in found]

    print_banner("dep(s) rem")
    print_dependencies(
        [
            (kind, sorted(deps.values(), key=lambda d: d.name))
            for kind, deps in sorted(removed.items())
        ],
        context_palette(ctx),
    )
    if missing:
        print_warning(f"Not found: {', '.join(missing)}")
    print_success(f"Removed {len(found)} dependencies from {manifest.path}")
