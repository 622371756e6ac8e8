"""Configuration file loader for depi.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``depi.toml`` — settings under ``[depi]`` table
- ``Cargo.toml`` — settings under ``[package.metadata.depi]`` table

Discovery order:

1. Explicit path from ``--config`` or ``DEPI_CONFIG``
2. ``depi.toml`` in current directory
3. ``Cargo.toml`` with ``[package.metadata.depi]`` section

Configuration precedence: defaults < config file < environment < CLI args.

Typical usage::

    config = load_config()  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``depi.toml``)::

    [depi]
    timeout = 10
    palette = "cool"
    alias_file = "~/dotfiles/depi-aliases.json"
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

from depi.exceptions import ConfigError
from depi.utils.logger import get_logger
from depi.utils.console import is_known_palette
from depi.constants import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PALETTE,
    DEFAULT_REGISTRY_URL,
    DEFAULT_TIMEOUT,
    MANIFEST_FILE_NAME,
    PALETTE_NAMES,
)

logger = get_logger("config")

CONFIG_FILE_NAME = "depi.toml"


@dataclass
class DepiConfig:
    """Parsed and validated depi configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        registry_url: Base URL of the crate API.
        timeout: HTTP timeout in seconds.
        max_concurrency: Registry requests in flight at once.
        max_retries: Retries for transient HTTP failures.
        palette: Console palette name.
        alias_file: Alias file location, or ``None`` for the default.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    registry_url: str = DEFAULT_REGISTRY_URL
    timeout: int = DEFAULT_TIMEOUT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    max_retries: int = DEFAULT_MAX_RETRIES
    palette: str = DEFAULT_PALETTE
    alias_file: Optional[Path] = None

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging."""
        return {
            "registry_url": self.registry_url,
            "timeout": self.timeout,
            "max_concurrency": self.max_concurrency,
            "max_retries": self.max_retries,
            "palette": self.palette,
            "alias_file": str(self.alias_file) if self.alias_file else None,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``DEPI_CONFIG``)
    2. ``depi.toml`` in current directory
    3. ``Cargo.toml`` with ``[package.metadata.depi]`` in current directory

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    depi_toml = cwd / CONFIG_FILE_NAME
    if depi_toml.is_file():
        logger.debug("Found %s: %s", CONFIG_FILE_NAME, depi_toml)
        return depi_toml

    cargo_toml = cwd / MANIFEST_FILE_NAME
    if cargo_toml.is_file() and _manifest_has_depi_section(cargo_toml):
        logger.debug("Found [package.metadata.depi] in %s", cargo_toml)
        return cargo_toml

    logger.debug("No configuration file found")
    return None


def _manifest_has_depi_section(path: Path) -> bool:
    """Check if a Cargo manifest contains ``[package.metadata.depi]``.

    A manifest that does not parse is not a config source; the command that
    reads it reports the problem.
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return _manifest_section(raw) is not None


def _manifest_section(raw: Dict[str, Any]) -> Optional[Any]:
    package = raw.get("package")
    if not isinstance(package, dict):
        return None
    metadata = package.get("metadata")
    if not isinstance(metadata, dict):
        return None
    return metadata.get("depi")


def load_config(config_path: Optional[Path] = None) -> DepiConfig:
    """Load and validate depi configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`DepiConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return DepiConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == MANIFEST_FILE_NAME:
        section = _manifest_section(raw) or {}
    else:
        section = raw.get("depi", {})

    if not section:
        logger.debug("Config file found but no depi section, using defaults")
        return DepiConfig(source_path=resolved)

    if not isinstance(section, dict):
        raise ConfigError(
            "The depi configuration section must be a table",
            config_path=str(resolved),
        )

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is invalid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _require_int(
    section: Dict[str, Any],
    option: str,
    *,
    minimum: int,
    config_path: str,
) -> int:
    val = section[option]
    # bool is an int subclass; reject it explicitly
    if isinstance(val, bool) or not isinstance(val, int):
        raise ConfigError(
            f"{option} must be an integer, got {type(val).__name__}",
            config_path=config_path,
            option=option,
        )
    if val < minimum:
        raise ConfigError(
            f"{option} must be >= {minimum}, got {val}",
            config_path=config_path,
            option=option,
        )
    return val


def _require_str(section: Dict[str, Any], option: str, *, config_path: str) -> str:
    val = section[option]
    if not isinstance(val, str) or not val.strip():
        raise ConfigError(
            f"{option} must be a non-empty string, got {type(val).__name__}",
            config_path=config_path,
            option=option,
        )
    return val.strip()


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> DepiConfig:
    """Parse and validate the depi configuration section.

    Rejects unknown keys and type mismatches.

    Args:
        section: Raw config dictionary from TOML file.
        config_path: Path string for error messages.

    Returns:
        Validated :class:`DepiConfig` with values from section and defaults.

    Raises:
        ConfigError: Unknown keys, incorrect types or out-of-range values.
    """
    config = DepiConfig()

    known_top = {
        "registry_url",
        "timeout",
        "max_concurrency",
        "max_retries",
        "palette",
        "alias_file",
    }

    unknown_top = set(section.keys()) - known_top
    if unknown_top:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown_top))}",
            config_path=config_path,
        )

    if "registry_url" in section:
        config.registry_url = _require_str(
            section, "registry_url", config_path=config_path
        )

    if "timeout" in section:
        config.timeout = _require_int(
            section, "timeout", minimum=1, config_path=config_path
        )

    if "max_concurrency" in section:
        config.max_concurrency = _require_int(
            section, "max_concurrency", minimum=1, config_path=config_path
        )

    if "max_retries" in section:
        config.max_retries = _require_int(
            section, "max_retries", minimum=0, config_path=config_path
        )

    if "palette" in section:
        palette = _require_str(section, "palette", config_path=config_path).lower()
        if not is_known_palette(palette):
            raise ConfigError(
                f"palette must be one of {', '.join(PALETTE_NAMES)}, got {palette!r}",
                config_path=config_path,
                option="palette",
            )
        config.palette = palette

    if "alias_file" in section:
        config.alias_file = Path(
            _require_str(section, "alias_file", config_path=config_path)
        ).expanduser()

    return config
