"""
depi — dependency manager for Cargo projects

depi compiles compact dependency specifications such as
``serde@1.0.200:derive/tokio:full!dev`` into ``Cargo.toml`` entries,
validating every version and feature against the crates.io registry.

Features include:
    • One-line dependency specs with versions, features and kinds
    • User-defined aliases and built-in macro groups
    • Concurrent registry resolution with all-or-nothing batches
    • Bulk update of every manifest section to the latest releases
"""

from __future__ import annotations

from depi.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "depi Contributors"
__license__ = "MIT"
__description__ = "Dependency manager for Cargo.toml manifests."

__all__ = [
    "__version__",
]
