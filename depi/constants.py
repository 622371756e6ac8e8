"""
Centralized constants for depi.

This module defines immutable configuration values used across depi,
including registry settings, manifest section names, built-in macro groups,
and logging formats. All values are intended to be treated as read-only.
"""

from typing import Final, Mapping, Sequence, Tuple

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests. crates.io rejects
#: requests without a descriptive User-Agent.
USER_AGENT_TEMPLATE: Final[str] = "depi/{version} (dependency manager for Cargo)"

# ---------------------------------------------------------------------------
# Registry endpoints
# ---------------------------------------------------------------------------

#: Base URL of the crates.io crate API. ``/{name}`` is appended per crate.
DEFAULT_REGISTRY_URL: Final[str] = "https://crates.io/api/v1/crates"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Retries for failed HTTP requests. Zero: the first hard failure wins.
DEFAULT_MAX_RETRIES: Final[int] = 0

#: Maximum number of registry requests in flight at once.
DEFAULT_MAX_CONCURRENCY: Final[int] = 10

# ---------------------------------------------------------------------------
# Manifest layout
# ---------------------------------------------------------------------------

#: Name of the manifest file searched for from the working directory upwards.
MANIFEST_FILE_NAME: Final[str] = "Cargo.toml"

SECTION_NORMAL: Final[str] = "dependencies"
SECTION_DEV: Final[str] = "dev-dependencies"
SECTION_BUILD: Final[str] = "build-dependencies"

#: Top-level table holding platform-conditional sections.
SECTION_TARGET: Final[str] = "target"

#: Key format of a platform-conditional table under ``[target]``.
TARGET_CFG_TEMPLATE: Final[str] = "cfg({condition})"

#: Values written into ``[package]`` for a freshly scaffolded project.
NEW_PROJECT_VERSION: Final[str] = "0.1.0"
NEW_PROJECT_EDITION: Final[str] = "2024"

#: Contents of ``src/main.rs`` for a freshly scaffolded project.
MAIN_RS_TEMPLATE: Final[str] = 'fn main() {\n    println!("Hello Depi!");\n}\n'

# ---------------------------------------------------------------------------
# Dependency specification syntax
# ---------------------------------------------------------------------------

#: Separates dependency tokens in one specification string.
TOKEN_SEPARATOR: Final[str] = "/"

#: Prefix marking a macro-group segment, e.g. ``+web`` or ``+web!dev``.
MACRO_PREFIX: Final[str] = "+"

#: Built-in macro groups: a shorthand name expanding to canonical tokens.
MACRO_GROUPS: Final[Mapping[str, Tuple[str, ...]]] = {
    "web": ("axum", "tokio:full", "serde:derive", "serde_json", "tower-http"),
    "cli": ("clap:derive", "anyhow"),
    "async": ("tokio:full", "futures"),
    "serde": ("serde:derive", "serde_json"),
    "log": ("log", "env_logger"),
    "test": ("pretty_assertions", "proptest"),
}

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

#: Directory name used under the per-user configuration root.
APP_DIR_NAME: Final[str] = "depi"

#: File holding user-defined aliases, as a JSON object.
ALIAS_FILE_NAME: Final[str] = "aliases.json"

#: Maximum allowed file size (in bytes) when reading manifests.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Console palettes
# ---------------------------------------------------------------------------

#: Palette used when none is configured.
DEFAULT_PALETTE: Final[str] = "warm"

#: Palette names accepted by ``--palette`` and the ``palette`` config key.
PALETTE_NAMES: Final[Sequence[str]] = ("plain", "cool", "warm", "split", "random")

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
