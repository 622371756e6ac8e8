"""Cargo manifest storage for depi.

Reads ``Cargo.toml`` into a plain nested dictionary, converts its dependency
sections to and from a :data:`~depi.models.ManifestTable`, and writes the
document back atomically. A command either writes the whole document once
on success or leaves the file untouched.

Sections handled::

    [dependencies]
    [dev-dependencies]
    [build-dependencies]
    [target.'cfg(<condition>)'.dependencies]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Tuple

import tomli as tomllib
import tomli_w

from depi.constants import (
    MANIFEST_FILE_NAME,
    NEW_PROJECT_EDITION,
    NEW_PROJECT_VERSION,
    SECTION_NORMAL,
    SECTION_TARGET,
)
from depi.exceptions import StorageError
from depi.models.dependency import (
    STANDARD_KINDS,
    DependencyKind,
    ManifestTable,
    ResolvedDependency,
)
from depi.utils.filesystem import (
    create_timestamped_backup,
    safe_read_file,
    safe_write_file,
)
from depi.utils.logger import get_logger

logger = get_logger("core.manifest")

__all__ = [
    "CargoManifest",
    "apply_tables",
    "dumps",
    "new_manifest",
    "read_tables",
    "remove_names",
]

Document = Dict[str, Any]


class CargoManifest:
    """A ``Cargo.toml`` file on disk.

    Args:
        path: Path to the manifest file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"CargoManifest({str(self.path)!r})"

    @classmethod
    def find(cls, start: Optional[Path] = None) -> "CargoManifest":
        """Locate the nearest ``Cargo.toml`` in ``start`` or its parents.

        Raises:
            StorageError: No manifest exists up to the filesystem root.
        """
        origin = (start or Path.cwd()).resolve()
        for directory in (origin, *origin.parents):
            candidate = directory / MANIFEST_FILE_NAME
            if candidate.is_file():
                logger.debug("Found manifest: %s", candidate)
                return cls(candidate)

        raise StorageError(
            f"{MANIFEST_FILE_NAME} not found in {origin} or any parent directory",
            file_path=str(origin),
            operation="find",
        )

    def read(self) -> Document:
        """Read and parse the manifest.

        Raises:
            StorageError: The file cannot be read or is not valid TOML.
        """
        content = safe_read_file(self.path)
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as exc:
            raise StorageError(
                f"Invalid TOML in {self.path.name}: {exc}",
                file_path=str(self.path),
                operation="parse",
                original_error=exc,
            ) from exc

    def write(self, document: Mapping[str, Any]) -> None:
        """Serialize ``document`` and replace the manifest atomically."""
        safe_write_file(self.path, dumps(document))
        logger.info("Wrote %s", self.path)

    def backup(self) -> Path:
        """Create a timestamped copy of the manifest next to it."""
        return create_timestamped_backup(self.path)


def dumps(document: Mapping[str, Any]) -> str:
    """Serialize a manifest document to TOML text."""
    try:
        return tomli_w.dumps(document)
    except (TypeError, ValueError) as exc:
        raise StorageError(
            f"Cannot serialize manifest: {exc}",
            operation="serialize",
            original_error=exc,
        ) from exc


# ---------------------------------------------------------------------------
# Document <-> ManifestTable
# ---------------------------------------------------------------------------


def _get_path(document: Mapping[str, Any], path: Tuple[str, ...]) -> Optional[Any]:
    node: Any = document
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]
    return node


def _platform_kinds(document: Mapping[str, Any]) -> List[DependencyKind]:
    targets = document.get(SECTION_TARGET)
    if not isinstance(targets, Mapping):
        return []

    kinds = []
    for key, body in targets.items():
        if not (key.startswith("cfg(") and key.endswith(")")):
            logger.debug("Skipping non-cfg target section %r", key)
            continue
        if isinstance(body, Mapping) and SECTION_NORMAL in body:
            kinds.append(DependencyKind.platform(key[4:-1]))
    return kinds


def document_kinds(document: Mapping[str, Any]) -> List[DependencyKind]:
    """Return every dependency kind that has a section in ``document``."""
    kinds = [k for k in STANDARD_KINDS if _get_path(document, k.section_path) is not None]
    return kinds + _platform_kinds(document)


def read_tables(document: Mapping[str, Any]) -> ManifestTable:
    """Extract the dependency sections of ``document``.

    Entries without a version (``path`` or ``git`` dependencies) cannot be
    resolved against the registry; they are skipped here and stay in the
    document untouched.

    Raises:
        StorageError: A section is not a table or an entry is malformed.
    """
    tables: ManifestTable = {}
    for kind in document_kinds(document):
        section = _get_path(document, kind.section_path)
        if not isinstance(section, Mapping):
            raise StorageError(
                f"Section [{kind.section_name}] is not a table",
                operation="parse",
            )

        entries: Dict[str, ResolvedDependency] = {}
        for name, value in section.items():
            if isinstance(value, Mapping) and "version" not in value:
                logger.warning(
                    "Skipping %s in [%s]: no registry version", name, kind.section_name
                )
                continue
            try:
                entries[name] = ResolvedDependency.from_toml(name, value)
            except ValueError as exc:
                raise StorageError(
                    f"Invalid entry in [{kind.section_name}]: {exc}",
                    operation="parse",
                    original_error=exc,
                ) from exc
        tables[kind] = entries

    return tables


def _section_for_write(
    document: MutableMapping[str, Any],
    path: Tuple[str, ...],
) -> MutableMapping[str, Any]:
    node = document
    for key in path:
        child = node.get(key)
        if not isinstance(child, MutableMapping):
            if child is not None:
                raise StorageError(
                    f"Cannot write dependencies: '{key}' is not a table",
                    operation="write",
                )
            child = {}
            node[key] = child
        node = child
    return node


def _drop_section(document: MutableMapping[str, Any], path: Tuple[str, ...]) -> None:
    """Remove the table at ``path`` and prune parents left empty."""
    parents: List[MutableMapping[str, Any]] = []
    node: Any = document
    for key in path[:-1]:
        if not isinstance(node, MutableMapping) or key not in node:
            return
        parents.append(node)
        node = node[key]
    if not isinstance(node, MutableMapping):
        return
    node.pop(path[-1], None)

    # Walk back up removing emptied intermediate tables
    for parent, key in zip(reversed(parents), reversed(path[:-1])):
        if parent.get(key) == {}:
            del parent[key]


def apply_tables(
    document: MutableMapping[str, Any],
    tables: ManifestTable,
    *,
    kinds: Optional[Iterable[DependencyKind]] = None,
) -> MutableMapping[str, Any]:
    """Write dependency tables back into ``document`` in place.

    Existing entries skipped by :func:`read_tables` (path or git
    dependencies) are preserved. Kinds whose table ends up empty have
    their section removed.

    Args:
        document: Manifest document to modify.
        tables: Dependency tables to write.
        kinds: Restrict the write to these kinds (default: all in
            ``tables``).

    Returns:
        ``document``, for chaining.
    """
    for kind in kinds if kinds is not None else list(tables):
        dependencies = tables.get(kind, {})
        existing = _get_path(document, kind.section_path)
        preserved: Dict[str, Any] = {}
        if isinstance(existing, Mapping):
            preserved = {
                name: value
                for name, value in existing.items()
                if isinstance(value, Mapping) and "version" not in value
            }

        if not dependencies and not preserved:
            _drop_section(document, kind.section_path)
            continue

        section = _section_for_write(document, kind.section_path)
        order = list(section.keys()) if section else []
        content: Dict[str, Any] = {}
        for name in order:
            if name in preserved:
                content[name] = preserved[name]
            elif name in dependencies:
                content[name] = dependencies[name].to_toml()[1]
        for name in sorted(dependencies):
            if name not in content:
                content[name] = dependencies[name].to_toml()[1]

        section.clear()
        section.update(content)

    return document


def remove_names(
    document: MutableMapping[str, Any],
    names: Iterable[str],
) -> ManifestTable:
    """Delete ``names`` from every dependency section of ``document``.

    Sections left empty are removed.

    Returns:
        The removed entries grouped by kind (kinds with no removal are
        omitted).
    """
    wanted = set(names)
    removed: ManifestTable = {}

    for kind in document_kinds(document):
        section = _get_path(document, kind.section_path)
        if not isinstance(section, MutableMapping):
            continue

        hits = [name for name in section if name in wanted]
        if not hits:
            continue

        removed[kind] = {}
        for name in hits:
            value = section.pop(name)
            try:
                removed[kind][name] = ResolvedDependency.from_toml(name, value)
            except ValueError:
                removed[kind][name] = ResolvedDependency(name=name, version="*")

        if not section:
            _drop_section(document, kind.section_path)

    return removed


def new_manifest(project_name: str, tables: Optional[ManifestTable] = None) -> Document:
    """Build the document of a freshly scaffolded project."""
    document: Document = {
        "package": {
            "name": project_name,
            "version": NEW_PROJECT_VERSION,
            "edition": NEW_PROJECT_EDITION,
        }
    }
    if tables:
        apply_tables(document, tables)
    return document
