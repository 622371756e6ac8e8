"""Batch orchestration for depi.

Fans resolver work out across every requested dependency, joins the
results, and turns them into per-kind diffs for the manifest.

Two batch operations exist:

* :meth:`BatchOrchestrator.resolve_new` — used by ``init``, ``new`` and
  ``add``: resolves freshly parsed requests.
* :meth:`BatchOrchestrator.resolve_update` — used by ``update``: re-resolves
  every existing manifest entry to the latest version.

Both are all-or-nothing: a single fetch or resolution failure aborts the
batch before anything is merged.

Typical usage::

    async with HTTPClient() as http:
        orchestrator = BatchOrchestrator(RegistryClient(http), aliases=aliases)
        outcome = orchestrator.parse("serde:derive/tokio!dev")
        outcome.raise_for_errors()
        batch = await orchestrator.resolve_new(outcome.requests)
    merge_batch(tables, batch)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from depi.constants import MACRO_GROUPS
from depi.core.parser import ParseOutcome, parse_dependencies
from depi.core.registry import RegistryClient, partition_results
from depi.core.resolver import resolve
from depi.exceptions import BatchFetchMismatchError
from depi.models.dependency import (
    DependencyKind,
    ManifestTable,
    ParsedRequest,
    ResolvedDependency,
)
from depi.models.version import try_parse_version
from depi.utils.logger import get_logger

logger = get_logger("core.orchestrator")

__all__ = [
    "BatchOrchestrator",
    "DependencyUpdate",
    "KindUpdate",
    "ResolutionBatch",
    "UpdateReport",
    "iter_dependencies",
    "merge_batch",
]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class ResolutionBatch:
    """Resolved dependencies of one batch, grouped by kind.

    Within a kind, the order is the order results were joined in, which
    callers should not rely on; use :meth:`sorted_items` for display.
    """

    groups: Dict[DependencyKind, List[ResolvedDependency]] = field(
        default_factory=dict
    )

    def add(self, kind: DependencyKind, dependency: ResolvedDependency) -> None:
        bucket = self.groups.setdefault(kind, [])
        # A later request for the same name in one kind overrides the earlier one
        bucket[:] = [d for d in bucket if d.name != dependency.name]
        bucket.append(dependency)

    def sorted_items(self) -> List[Tuple[DependencyKind, List[ResolvedDependency]]]:
        """Kinds in canonical order, dependencies sorted by name."""
        return [
            (kind, sorted(deps, key=lambda d: d.name))
            for kind, deps in sorted(self.groups.items())
        ]

    def __len__(self) -> int:
        return sum(len(deps) for deps in self.groups.values())


@dataclass(frozen=True)
class DependencyUpdate:
    """One manifest entry before and after re-resolution."""

    old_version: str
    dependency: ResolvedDependency

    @property
    def name(self) -> str:
        return self.dependency.name

    @property
    def new_version(self) -> str:
        return self.dependency.version

    @property
    def is_upgrade(self) -> bool:
        """True when the new version is strictly greater than the old one.

        An old version that cannot be parsed (for example a range such as
        ``">=1, <2"``) counts as upgraded whenever the text changes.
        """
        old = try_parse_version(self.old_version)
        new = try_parse_version(self.new_version)
        if old is None or new is None:
            return self.old_version != self.new_version
        return new > old


@dataclass
class KindUpdate:
    """Re-resolution result of one manifest section, in manifest order."""

    kind: DependencyKind
    updates: List[DependencyUpdate] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return sum(1 for u in self.updates if u.is_upgrade)

    @property
    def upgrades(self) -> List[DependencyUpdate]:
        return [u for u in self.updates if u.is_upgrade]

    def dependencies(self) -> Dict[str, ResolvedDependency]:
        """New table content for the section.

        Only upgrades take the registry version; an entry whose latest
        release is not newer keeps its current pin.
        """
        return {
            u.name: (
                u.dependency
                if u.is_upgrade
                else u.dependency.with_version(u.old_version)
            )
            for u in self.updates
        }


@dataclass
class UpdateReport:
    """Result of :meth:`BatchOrchestrator.resolve_update`."""

    kinds: List[KindUpdate] = field(default_factory=list)

    @property
    def total_changed(self) -> int:
        return sum(k.changed for k in self.kinds)

    @property
    def has_changes(self) -> bool:
        return self.total_changed > 0

    def changed_kinds(self) -> List[KindUpdate]:
        return [k for k in self.kinds if k.changed > 0]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class BatchOrchestrator:
    """Concurrent resolver for batches of dependencies.

    The alias table and macro groups are handed in once and are read-only
    for the lifetime of the orchestrator. No state is shared between
    batches.

    Args:
        registry: Client used to fetch registry snapshots.
        aliases: Alias name to expansion mapping.
        macros: Macro group name to canonical tokens mapping.
    """

    def __init__(
        self,
        registry: RegistryClient,
        *,
        aliases: Optional[Mapping[str, str]] = None,
        macros: Mapping[str, Sequence[str]] = MACRO_GROUPS,
    ) -> None:
        self.registry = registry
        self.aliases: Mapping[str, str] = dict(aliases or {})
        self.macros = macros

    def parse(self, text: str) -> ParseOutcome:
        """Parse a specification string with this orchestrator's aliases."""
        return parse_dependencies(text, self.aliases, self.macros)

    async def resolve_new(self, requests: Sequence[ParsedRequest]) -> ResolutionBatch:
        """Resolve a set of freshly parsed requests.

        One fetch is issued per distinct package name; all fetches run
        concurrently and are joined before any resolution happens.

        Raises:
            BatchFetchMismatchError: Any fetch failed.
            ResolutionError: A request could not be satisfied; the first
                failing request in input order is reported.
        """
        batch = ResolutionBatch()
        if not requests:
            return batch

        logger.info("Resolving %d request(s)", len(requests))
        snapshots = await self.registry.fetch_snapshots(r.name for r in requests)

        for request in requests:
            dependency = resolve(request, snapshots[request.name])
            batch.add(request.kind, dependency)

        logger.info("Resolved %d dependencies in %d kind(s)", len(batch), len(batch.groups))
        return batch

    async def resolve_update(self, tables: ManifestTable) -> UpdateReport:
        """Re-resolve every existing dependency to its latest version.

        Sections are processed concurrently, and so are the entries of each
        section. Existing feature selections and extra keys are kept; only
        the version changes.

        Raises:
            BatchFetchMismatchError: Any entry of any section failed. No
                section is reported in that case.
        """
        kinds = [(kind, deps) for kind, deps in sorted(tables.items()) if deps]
        results = await asyncio.gather(
            *(self._update_kind(kind, deps) for kind, deps in kinds),
            return_exceptions=True,
        )

        report = UpdateReport()
        failures: Dict[str, BaseException] = {}
        expected = 0
        for (kind, deps), result in zip(kinds, results):
            expected += len(deps)
            if isinstance(result, BatchFetchMismatchError):
                failures.update(
                    {f"{kind.section_name}.{n}": e for n, e in result.failures.items()}
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                report.kinds.append(result)

        if failures:
            raise BatchFetchMismatchError(
                failures,
                expected=expected,
                received=expected - len(failures),
                scope="update",
            )

        logger.info("%d dependencies can be upgraded", report.total_changed)
        return report

    async def _update_kind(
        self,
        kind: DependencyKind,
        dependencies: Mapping[str, ResolvedDependency],
    ) -> KindUpdate:
        current = list(dependencies.values())
        results = await asyncio.gather(
            *(self._latest(dep) for dep in current),
            return_exceptions=True,
        )

        resolved, failures = partition_results([d.name for d in current], list(results))
        if len(resolved) != len(current):
            raise BatchFetchMismatchError(
                failures,
                expected=len(current),
                received=len(resolved),
                scope=kind.section_name,
            )

        return KindUpdate(
            kind=kind,
            updates=[
                DependencyUpdate(old_version=dep.version, dependency=resolved[dep.name])
                for dep in current
            ],
        )

    async def _latest(self, dependency: ResolvedDependency) -> ResolvedDependency:
        # Renamed entries (`key = { package = "crate", ... }`) resolve the real crate
        crate = dependency.extras.get("package")
        if not isinstance(crate, str) or not crate:
            crate = dependency.name
        snapshot = await self.registry.fetch_snapshot(crate)
        latest = resolve(ParsedRequest(name=crate), snapshot)
        return dependency.with_version(latest.version)


def merge_batch(tables: ManifestTable, batch: ResolutionBatch) -> ManifestTable:
    """Merge a resolved batch into ``tables`` in place.

    Entries with the same name in the same kind are overwritten.

    Returns:
        ``tables``, for chaining.
    """
    for kind, dependencies in batch.groups.items():
        bucket = tables.setdefault(kind, {})
        for dependency in dependencies:
            bucket[dependency.name] = dependency
    return tables


def iter_dependencies(
    tables: ManifestTable,
) -> Iterable[Tuple[DependencyKind, ResolvedDependency]]:
    """Yield ``(kind, dependency)`` pairs sorted by kind, then name."""
    for kind in sorted(tables):
        for name in sorted(tables[kind]):
            yield kind, tables[kind][name]
