"""Registry client for depi.

Fetches the published versions of a crate, and the optional features each
version declares, from the crates.io API and turns the payload into a
:class:`~depi.models.RegistrySnapshot`.

Typical usage::

    from depi.utils.http import HTTPClient
    from depi.core.registry import RegistryClient

    async with HTTPClient() as http:
        registry = RegistryClient(http)
        snapshots = await registry.fetch_snapshots(["serde", "tokio"])
        print(snapshots["serde"].get_last_version())
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Tuple
from urllib.parse import quote

from depi.constants import DEFAULT_REGISTRY_URL
from depi.exceptions import (
    BatchFetchMismatchError,
    DepiError,
    NetworkError,
    RegistryError,
)
from depi.models.snapshot import RegistrySnapshot
from depi.utils.http import HTTPClient
from depi.utils.logger import get_logger

logger = get_logger("core.registry")

__all__ = ["RegistryClient", "snapshot_from_payload", "unique_names"]


class RegistryClient:
    """Thin async adapter over the registry's crate endpoint.

    Snapshots are not cached: every command invocation fetches fresh data,
    and within one batch each distinct name is requested exactly once.

    Args:
        http_client: A pre-configured :class:`HTTPClient` (owns the
            connection pool).
        registry_url: Base URL; the crate name is appended as a path
            segment.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        registry_url: str = DEFAULT_REGISTRY_URL,
    ) -> None:
        self.http_client = http_client
        self.registry_url = registry_url.rstrip("/")

    def url_for(self, name: str) -> str:
        return f"{self.registry_url}/{quote(name, safe='')}"

    async def fetch_snapshot(self, name: str) -> RegistrySnapshot:
        """Fetch the version/feature map of ``name``.

        Raises:
            RegistryError: The package does not exist or the registry
                could not be reached.
        """
        url = self.url_for(name)
        logger.debug("Fetching %s", url)

        try:
            payload = await self.http_client.get_json(url)
        except RegistryError as exc:
            raise RegistryError(
                f"Package '{name}' not found in the registry",
                package_name=name,
                url=url,
                status_code=exc.status_code,
            ) from exc
        except NetworkError as exc:
            raise RegistryError(
                f"Failed to fetch '{name}' from the registry: {exc.message}",
                package_name=name,
                url=url,
                status_code=exc.status_code,
            ) from exc

        snapshot = snapshot_from_payload(name, payload)
        logger.info("Fetched %s: %d version(s)", name, len(snapshot.versions))
        return snapshot

    async def fetch_snapshots(self, names: Iterable[str]) -> Dict[str, RegistrySnapshot]:
        """Fetch snapshots for many packages concurrently.

        Duplicate names are fetched once. All fetches are awaited; then
        successes and failures are partitioned, and any failure aborts the
        batch.

        Args:
            names: Package names, duplicates allowed.

        Returns:
            Mapping of package name to snapshot, in first-seen order.

        Raises:
            BatchFetchMismatchError: At least one fetch failed; lists every
                failing name with its error.
        """
        distinct = unique_names(names)
        results = await asyncio.gather(
            *(self.fetch_snapshot(name) for name in distinct),
            return_exceptions=True,
        )

        snapshots, failures = partition_results(distinct, results)
        if failures:
            raise BatchFetchMismatchError(
                failures,
                expected=len(distinct),
                received=len(snapshots),
            )
        return snapshots


def unique_names(names: Iterable[str]) -> List[str]:
    """Drop duplicate names, keeping the first occurrence's position."""
    return list(dict.fromkeys(names))


def partition_results(
    keys: List[str],
    results: List[Any],
) -> Tuple[Dict[str, Any], Dict[str, BaseException]]:
    """Split ``asyncio.gather(..., return_exceptions=True)`` output.

    Only :class:`DepiError` failures are collected; anything else (a bug
    or a cancellation) is re-raised.
    """
    oks: Dict[str, Any] = {}
    errors: Dict[str, BaseException] = {}
    for key, result in zip(keys, results):
        if isinstance(result, DepiError):
            logger.error("Failed to resolve %s: %s", key, result)
            errors[key] = result
        elif isinstance(result, BaseException):
            raise result
        else:
            oks[key] = result
    return oks, errors


def snapshot_from_payload(name: str, payload: Mapping[str, Any]) -> RegistrySnapshot:
    """Transform a crate API payload into a :class:`RegistrySnapshot`.

    Only the ``versions`` array matters. Each entry contributes
    ``num -> feature names``; an entry without a string ``num`` or
    without a ``features`` object is skipped entirely, not recorded as
    featureless.

    Example::

        >>> snapshot_from_payload("x", {"versions": [
        ...     {"num": "1.0.0", "features": {"std": [], "derive": ["std"]}},
        ...     {"num": "0.9.0"},
        ... ]}).versions
        {'1.0.0': frozenset({'std', 'derive'})}
    """
    versions: Dict[str, FrozenSet[str]] = {}
    entries = payload.get("versions")
    if not isinstance(entries, list):
        logger.debug("No versions array in payload for %s", name)
        return RegistrySnapshot(package_name=name, versions=versions)

    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        num = entry.get("num")
        if not isinstance(num, str):
            continue
        features = entry.get("features")
        if not isinstance(features, Mapping):
            logger.debug("Skipping %s %s: no feature map", name, num)
            continue
        versions[num] = frozenset(features.keys())

    return RegistrySnapshot(package_name=name, versions=versions)
