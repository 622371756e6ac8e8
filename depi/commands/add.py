"""Add command implementation for depi.

Resolves a dependency specification against the registry and merges the
result into the nearest ``Cargo.toml``. The manifest is written once, only
after every token parsed and every package resolved.

Typical usage::

    $ depi add serde@1.0.200:derive/tokio:full
    $ depi add "+web!dev"
    $ depi add winapi!windows
"""

from __future__ import annotations

import click

from depi.context import DepiContext, pass_context
from depi.core.manifest import CargoManifest, apply_tables, read_tables
from depi.core.orchestrator import merge_batch
from depi.commands.common import (
    context_palette,
    print_dependencies,
    resolve_specification,
    run_async,
)
from depi.utils import get_logger, print_banner, print_success

logger = get_logger("commands.add")


@click.command()
@click.argument("deps")
@pass_context
def add(ctx: DepiContext, deps: str) -> None:
    """Add dependencies described by DEPS to Cargo.toml.

    \b
    DEPS is one or more tokens separated by '/':
      name[@version][:feature,feature][!kind]
    where kind is dev, build, or a platform condition (e.g. windows).
    '+group' expands a built-in macro group; aliases are expanded too.
    """
    run_async(_add_async(ctx, deps), command="add")


async def _add_async(ctx: DepiContext, deps: str) -> None:
    manifest = CargoManifest.find()
    document = manifest.read()
    tables = read_tables(document)

    batch = await resolve_specification(ctx, deps)

    merge_batch(tables, batch)
    apply_tables(document, tables, kinds=list(batch.groups))
    manifest.write(document)

    print_banner("dep(s) add")
    print_dependencies(batch.sorted_items(), context_palette(ctx))
    print_success(f"Added {len(batch)} dependencies to {manifest.path}")
