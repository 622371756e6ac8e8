"""
Registry snapshot model for depi.

A snapshot is the full ``version -> feature names`` map fetched for one
package. It is created once per command invocation and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Tuple

from depi.exceptions import EmptyRegistryResultError
from depi.utils.logger import get_logger
from depi.models.version import ParsedVersion, has_suffix, try_parse_version

logger = get_logger("models.snapshot")


@dataclass(frozen=True)
class RegistrySnapshot:
    """Published versions of one package and the features each declares.

    A snapshot with no versions is valid: the package exists but has
    nothing usable published.

    Attributes:
        package_name: Name the snapshot was fetched for.
        versions: Mapping of raw version string to its feature names.
    """

    package_name: str
    versions: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    def has_version(self, version: str) -> bool:
        return version in self.versions

    def get_features(self, version: str) -> Optional[FrozenSet[str]]:
        """Return the feature set of ``version``, or ``None`` if unrecorded."""
        return self.versions.get(version)

    def parsed_versions(self) -> List[Tuple[str, ParsedVersion]]:
        """Return ``(raw, parsed)`` pairs for every parseable version.

        Unparseable versions are skipped rather than treated as errors.
        """
        result: List[Tuple[str, ParsedVersion]] = []
        for raw in self.versions:
            parsed = try_parse_version(raw)
            if parsed is None:
                logger.debug(
                    "Skipping unparseable version %r of %s", raw, self.package_name
                )
                continue
            result.append((raw, parsed))
        return result

    def latest_key(self) -> str:
        """Return the raw registry key of the highest version.

        When a release and a pre-release reduce to the same triple, the
        release key wins.

        Raises:
            EmptyRegistryResultError: No version could be parsed.
        """
        candidates = self.parsed_versions()
        if not candidates:
            raise EmptyRegistryResultError(self.package_name)

        raw, _ = max(
            candidates,
            key=lambda item: (item[1], not has_suffix(item[0])),
        )
        return raw

    def get_last_version(self) -> str:
        """Return the highest version, normalized to ``major.minor.patch``.

        Example::

            >>> RegistrySnapshot("x", {"1.0.0": frozenset(), "2.0.0-beta": frozenset()}).get_last_version()
            '2.0.0'

        Raises:
            EmptyRegistryResultError: No version could be parsed.
        """
        return str(try_parse_version(self.latest_key()))
