"""Project scaffolding commands for depi.

``depi init`` turns the current directory into a Cargo project named after
it; ``depi new NAME`` creates the directory first. Both accept ``-D`` with a
dependency specification that is resolved before anything touches the
disk, so a bad token or an unknown crate leaves no half-created project.

Typical usage::

    $ depi new hello -D "+cli/serde:derive"
    $ cd existing-dir && depi init -D tokio:full
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.markup import escape

from depi.context import DepiContext, pass_context
from depi.core.manifest import dumps, new_manifest
from depi.core.orchestrator import ResolutionBatch, merge_batch
from depi.models.dependency import ManifestTable
from depi.commands.common import (
    context_palette,
    print_dependencies,
    resolve_specification,
    run_async,
)
from depi.utils import (
    get_logger,
    get_raw_console,
    print_banner,
    print_success,
    print_warning,
    scaffold_project,
)

logger = get_logger("commands.init")

DEPS_OPTION = click.option(
    "--deps",
    "-D",
    default=None,
    metavar="SPEC",
    help="Dependencies to add, e.g. 'serde:derive/tokio@1.37.0!dev'.",
)


@click.command()
@DEPS_OPTION
@pass_context
def init(ctx: DepiContext, deps: Optional[str]) -> None:
    """Create a Cargo project in the current directory.

    The package is named after the directory. ``Cargo.toml`` and
    ``src/main.rs`` must not exist yet.
    """
    root = Path.cwd()
    run_async(_scaffold_async(ctx, root, root.name, deps), command="init")


@click.command()
@click.argument("name")
@DEPS_OPTION
@pass_context
def new(ctx: DepiContext, name: str, deps: Optional[str]) -> None:
    """Create a Cargo project in a new directory NAME."""
    root = Path(name)
    if root.exists() and not root.is_dir():
        raise click.UsageError(f"Destination '{name}' exists and is not a directory")
    if root.exists() and any(root.iterdir()):
        raise click.UsageError(f"Destination '{name}' already exists and is not empty")
    run_async(_scaffold_async(ctx, root, root.name, deps), command="new")


async def _scaffold_async(
    ctx: DepiContext,
    root: Path,
    project_name: str,
    deps: Optional[str],
) -> None:
    tables: ManifestTable = {}
    batch = ResolutionBatch()
    if deps:
        batch = await resolve_specification(ctx, deps)
        merge_batch(tables, batch)

    document = new_manifest(project_name, tables)
    git_output = scaffold_project(root, dumps(document))

    print_banner("init")
    if len(batch):
        print_dependencies(batch.sorted_items(), context_palette(ctx))

    if git_output is None:
        print_warning("git is not available; repository not initialized")
    else:
        get_raw_console().print(f"[bold]{escape(git_output)}[/bold]", highlight=False)

    print_success(f"Created project '{project_name}' in {root}")
    logger.info("Scaffolded %s with %d dependencies", project_name, len(batch))
