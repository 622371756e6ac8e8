"""
Core functionality exports for depi.

This module provides convenient access to the core subsystems of depi:

    from depi.core import BatchOrchestrator, CargoManifest, parse_dependencies
"""

from __future__ import annotations

from depi.core.alias_store import AliasStore
from depi.core.manifest import CargoManifest, apply_tables, new_manifest, read_tables
from depi.core.orchestrator import BatchOrchestrator, ResolutionBatch, UpdateReport
from depi.core.parser import ParseOutcome, parse_dependencies, parse_token
from depi.core.registry import RegistryClient
from depi.core.resolver import resolve

__all__ = [
    "AliasStore",
    "BatchOrchestrator",
    "CargoManifest",
    "ParseOutcome",
    "RegistryClient",
    "ResolutionBatch",
    "UpdateReport",
    "apply_tables",
    "new_manifest",
    "parse_dependencies",
    "parse_token",
    "read_tables",
    "resolve",
]
