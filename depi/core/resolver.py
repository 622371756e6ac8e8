"""Resolution of parsed requests against registry snapshots.

Decides the concrete version and feature list for one request. Matching is
exact: a requested version must be a published key, and every requested
feature must be declared by the chosen version.
"""

from __future__ import annotations

from typing import List, Optional

from depi.exceptions import (
    InconsistentRegistryDataError,
    InvalidFeatureError,
    InvalidVersionError,
)
from depi.models.dependency import ParsedRequest, ResolvedDependency
from depi.models.snapshot import RegistrySnapshot
from depi.utils.logger import get_logger

logger = get_logger("core.resolver")

__all__ = ["resolve"]


def resolve(request: ParsedRequest, snapshot: RegistrySnapshot) -> ResolvedDependency:
    """Resolve ``request`` against ``snapshot``.

    * No version constraint: the latest parseable version is chosen.
      Otherwise the constraint must be an exact published version.
    * No feature list: ``features`` is ``None``. Otherwise every feature
      must exist in the chosen version; the result keeps the requested
      order.

    Raises:
        EmptyRegistryResultError: Latest requested but no version parses.
        InvalidVersionError: The requested version is not published.
        InvalidFeatureError: A requested feature is not declared; names the
            first missing feature.
        InconsistentRegistryDataError: The chosen version has no feature
            record.
    """
    name = request.name

    if request.version_constraint:
        if not snapshot.has_version(request.version_constraint):
            raise InvalidVersionError(name, request.version_constraint)
        version = request.version_constraint
        registry_key = version
    else:
        registry_key = snapshot.latest_key()
        version = snapshot.get_last_version()

    features: Optional[List[str]] = None
    if request.feature_list:
        available = snapshot.get_features(registry_key)
        if available is None:
            raise InconsistentRegistryDataError(name, registry_key)

        features = []
        for feature in request.features:
            if feature not in available:
                raise InvalidFeatureError(name, version, feature)
            features.append(feature)

    logger.debug("Resolved %s -> %s %s", request, version, features)
    return ResolvedDependency(name=name, version=version, features=features)
