"""
Data models for depi.

Re-exports the core data structures so callers can write::

    from depi.models import ParsedRequest, ResolvedDependency
"""

from __future__ import annotations

from depi.models.dependency import (
    STANDARD_KINDS,
    DependencyKind,
    ManifestTable,
    ParsedRequest,
    ResolvedDependency,
)
from depi.models.snapshot import RegistrySnapshot
from depi.models.version import (
    InvalidVersionString,
    classify_change,
    ParsedVersion,
    parse_version,
    try_parse_version,
)

__all__ = [
    "DependencyKind",
    "STANDARD_KINDS",
    "ManifestTable",
    "ParsedRequest",
    "ResolvedDependency",
    "RegistrySnapshot",
    "ParsedVersion",
    "InvalidVersionString",
    "parse_version",
    "try_parse_version",
    "classify_change",
]
