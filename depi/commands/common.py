"""Helpers shared by the depi CLI commands.

Builds the per-invocation registry session from the loaded configuration,
runs a command's async body with uniform error reporting, and renders
dependency tables with the chosen palette.
"""

from __future__ import annotations

import sys
import asyncio
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Tuple

from depi.context import DepiContext
from depi.exceptions import DepiError
from depi.core.alias_store import AliasStore, default_alias_path
from depi.core.orchestrator import BatchOrchestrator, ResolutionBatch
from depi.core.registry import RegistryClient
from depi.models.dependency import DependencyKind, ResolvedDependency
from depi.utils import (
    HTTPClient,
    get_logger,
    print_error,
    print_table,
)
from depi.utils.console import Palette, format_features, format_version, get_palette

logger = get_logger("commands.common")


def run_async(coro: Awaitable[Any], *, command: str) -> Any:
    """Run a command's coroutine, mapping failures to exit code 1."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except DepiError as exc:
        print_error(str(exc))
        logger.debug("%s failed: %s", command, exc.details or "<none>")
        sys.exit(1)


def load_aliases(ctx: DepiContext) -> Mapping[str, str]:
    store = AliasStore(default_alias_path(ctx.config.alias_file))
    return store.load()


def make_http_client(ctx: DepiContext) -> HTTPClient:
    config = ctx.config
    return HTTPClient(
        timeout=config.timeout,
        max_retries=config.max_retries,
        max_concurrency=config.max_concurrency,
    )


async def resolve_specification(ctx: DepiContext, text: str) -> ResolutionBatch:
    """Parse ``text`` and resolve it against the registry.

    Raises:
        SpecificationError: One or more tokens failed to parse; nothing was
            fetched.
        BatchFetchMismatchError: Any fetch failed.
        ResolutionError: A request could not be satisfied.
    """
    aliases = load_aliases(ctx)
    async with make_http_client(ctx) as http:
        orchestrator = BatchOrchestrator(
            RegistryClient(http, ctx.config.registry_url),
            aliases=aliases,
        )
        outcome = orchestrator.parse(text)
        outcome.raise_for_errors()
        return await orchestrator.resolve_new(outcome.requests)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def dependency_rows(
    groups: Iterable[Tuple[DependencyKind, Iterable[ResolvedDependency]]],
    palette: Palette,
) -> List[Dict[str, Any]]:
    rows = []
    for kind, dependencies in groups:
        for dependency in dependencies:
            rows.append(
                {
                    "Kind": kind.label,
                    "Name": dependency.name,
                    "Version": format_version(dependency.version, palette),
                    "Features": format_features(dependency.features, palette),
                }
            )
    return rows


def print_dependencies(
    groups: Iterable[Tuple[DependencyKind, Iterable[ResolvedDependency]]],
    palette: Palette,
    *,
    title: Optional[str] = None,
) -> int:
    """Print dependency groups as one table; returns the row count."""
    rows = dependency_rows(groups, palette)
    print_table(
        rows,
        headers=["Kind", "Name", "Version", "Features"],
        title=title,
        column_styles={"Name": {"style": "bold", "no_wrap": True}},
    )
    return len(rows)


def context_palette(ctx: DepiContext) -> Palette:
    """Palette for this invocation; ``random`` is drawn once here."""
    return get_palette(ctx.palette)
