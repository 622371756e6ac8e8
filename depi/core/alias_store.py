"""Persistent user aliases for depi.

An alias is a short name standing for a whole specification string, e.g.
``web`` -> ``axum/tokio:full/serde:derive``. Aliases live in a JSON object
in the per-user configuration directory and are loaded once per command
invocation, then handed read-only to the parser.

Location, first match wins:

1. ``DEPI_ALIAS_FILE`` environment variable
2. ``alias_file`` from the configuration file
3. ``<user config dir>/depi/aliases.json``
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from depi.constants import ALIAS_FILE_NAME, TOKEN_SEPARATOR
from depi.exceptions import StorageError
from depi.utils.filesystem import safe_read_file, safe_write_file, user_config_dir
from depi.utils.logger import get_logger

logger = get_logger("core.alias_store")

__all__ = ["AliasStore", "default_alias_path"]

ALIAS_FILE_ENV = "DEPI_ALIAS_FILE"


def default_alias_path(configured: Optional[Path] = None) -> Path:
    """Return the alias file location (see module docstring for order)."""
    from_env = os.environ.get(ALIAS_FILE_ENV)
    if from_env:
        return Path(from_env).expanduser()
    if configured is not None:
        return Path(configured).expanduser()
    return user_config_dir() / ALIAS_FILE_NAME


class AliasStore:
    """Load, edit and save the alias table.

    Args:
        path: Alias file, used as given; defaults to
            :func:`default_alias_path`.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else default_alias_path()
        self._aliases: Dict[str, str] = {}
        self._loaded = False

    def __repr__(self) -> str:
        return f"AliasStore(path={str(self.path)!r}, aliases={len(self._aliases)})"

    @property
    def aliases(self) -> Mapping[str, str]:
        """Read-only view of the current table."""
        return MappingProxyType(self._aliases)

    def load(self) -> Mapping[str, str]:
        """Read the alias file. A missing file is an empty table.

        Raises:
            StorageError: The file is unreadable, not JSON, or not an object
                of string values.
        """
        self._loaded = True
        if not self.path.exists():
            logger.debug("No alias file at %s", self.path)
            self._aliases = {}
            return self.aliases

        content = safe_read_file(self.path)
        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as exc:
            raise StorageError(
                f"Alias file is not valid JSON: {exc}",
                file_path=str(self.path),
                operation="parse",
                original_error=exc,
            ) from exc

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise StorageError(
                "Alias file must contain a JSON object of strings",
                file_path=str(self.path),
                operation="parse",
            )

        self._aliases = dict(data)
        logger.debug("Loaded %d alias(es) from %s", len(self._aliases), self.path)
        return self.aliases

    def save(self) -> None:
        """Write the table back, creating the directory if needed."""
        content = json.dumps(self._aliases, indent=2, sort_keys=True) + "\n"
        safe_write_file(self.path, content)
        logger.info("Saved %d alias(es) to %s", len(self._aliases), self.path)

    def add(self, name: str, expansion: str) -> Optional[str]:
        """Set ``name`` to ``expansion``.

        Returns:
            The previous expansion, if ``name`` was already defined.

        Raises:
            ValueError: ``name`` is empty or contains the token separator,
                or ``expansion`` is empty.
        """
        self._ensure_loaded()
        name = name.strip()
        expansion = expansion.strip()
        if not name or TOKEN_SEPARATOR in name:
            raise ValueError(f"Invalid alias name: {name!r}")
        if not expansion:
            raise ValueError(f"Alias '{name}' needs a non-empty expansion")

        previous = self._aliases.get(name)
        self._aliases[name] = expansion
        return previous

    def remove(self, name: str) -> Optional[str]:
        """Delete ``name`` and return its expansion (``None`` if undefined)."""
        self._ensure_loaded()
        return self._aliases.pop(name.strip(), None)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()
