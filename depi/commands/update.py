"""Update command implementation for depi.

Re-resolves every registry dependency of the nearest ``Cargo.toml`` to the
latest published release and rewrites only the versions; feature
selections and other keys of each entry are kept.

The command is all-or-nothing:

1. **read_tables** — collects every dependency section (normal, dev,
   build and platform-specific).
2. **BatchOrchestrator.resolve_update** — fetches all sections
   concurrently; any failure aborts before the manifest is touched.
3. The manifest is written once, and only if at least one version moved
   forward.

Typical usage::

    # Update everything
    $ depi update

    # Preview changes without applying
    $ depi update --dry-run

    # Keep a timestamped copy of Cargo.toml first
    $ depi update --backup
"""

from __future__ import annotations

from typing import List

import click

from depi.context import DepiContext, pass_context
from depi.core.manifest import CargoManifest, apply_tables, read_tables
from depi.core.orchestrator import BatchOrchestrator, KindUpdate, UpdateReport
from depi.core.registry import RegistryClient
from depi.models.version import classify_change
from depi.commands.common import context_palette, make_http_client, run_async
from depi.utils import (
    colorize_update_type,
    get_logger,
    print_banner,
    print_success,
    print_table,
    print_warning,
)
from depi.utils.console import Palette, format_features, format_version

logger = get_logger("commands.update")


@click.command()
@click.option(
    "--dry-run",
    is_flag=True,
    help="Preview changes without applying them.",
)
@click.option(
    "--backup",
    is_flag=True,
    help="Create backup file before updating.",
)
@pass_context
def update(ctx: DepiContext, dry_run: bool, backup: bool) -> None:
    """Update every dependency in Cargo.toml to its latest release.

    Exits:
        0 if updates were applied or nothing needed updating,
        1 if an error occurred (the manifest is left untouched).
    """
    run_async(_update_async(ctx, dry_run, backup), command="update")


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _update_async(ctx: DepiContext, dry_run: bool, backup: bool) -> None:
    manifest = CargoManifest.find()
    document = manifest.read()
    tables = read_tables(document)

    total = sum(len(deps) for deps in tables.values())
    if total == 0:
        print_warning(f"No dependencies found in {manifest.path}")
        return

    logger.info("Checking %d dependencies in %s", total, manifest.path)

    async with make_http_client(ctx) as http:
        orchestrator = BatchOrchestrator(
            RegistryClient(http, ctx.config.registry_url)
        )
        report = await orchestrator.resolve_update(tables)

    if not report.has_changes:
        print_success("All dependencies are up to date!")
        return

    _display_update_plan(report, context_palette(ctx), dry_run)

    if dry_run:
        print_warning("Dry run mode - no changes applied")
        return

    if backup:
        backup_path = manifest.backup()
        logger.info("Created backup: %s", backup_path)

    changed: List[KindUpdate] = report.changed_kinds()
    for kind_update in changed:
        tables[kind_update.kind] = kind_update.dependencies()
    apply_tables(document, tables, kinds=[k.kind for k in changed])
    manifest.write(document)

    print_success(f"Updated {report.total_changed} dependencies in {manifest.path}")
    for kind_update in changed:
        for item in kind_update.upgrades:
            logger.debug(
                "  [%s] %s: %s -> %s",
                kind_update.kind.label,
                item.name,
                item.old_version,
                item.new_version,
            )


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _display_update_plan(report: UpdateReport, palette: Palette, dry_run: bool) -> None:
    """Print the upgrades of every section as one table.

    Example output::

        ┏━━━━━━━━┳━━━━━━━┳━━━━━━━━━┳━━━━━━━━━┳━━━━━━━━┳━━━━━━━━━━┓
        ┃ Kind   ┃ Name  ┃ Current ┃ New     ┃ Change ┃ Features ┃
        ┡━━━━━━━━╇━━━━━━━╇━━━━━━━━━╇━━━━━━━━━╇━━━━━━━━╇━━━━━━━━━━┩
        │ normal │ serde │ 1.0.100 │ 1.0.200 │ patch  │ derive   │
        │ dev    │ rand  │ 0.7.3   │ 0.8.5   │ minor  │ -        │
        └────────┴───────┴─────────┴─────────┴────────┴──────────┘
    """
    print_banner("deps up")

    data = []
    for kind_update in report.changed_kinds():
        for item in sorted(kind_update.upgrades, key=lambda u: u.name):
            change = classify_change(item.old_version, item.new_version)
            data.append(
                {
                    "Kind": kind_update.kind.label,
                    "Name": item.name,
                    "Current": format_version(item.old_version, palette, old=True),
                    "New": format_version(item.new_version, palette),
                    "Change": colorize_update_type(change),
                    "Features": format_features(item.dependency.features, palette),
                }
            )

    print_table(
        data,
        headers=["Kind", "Name", "Current", "New", "Change", "Features"],
        title="Update Plan (Dry Run)" if dry_run else "Update Plan",
        column_styles={"Name": {"style": "bold", "no_wrap": True}},
    )
