"""
Filesystem utilities for depi.

Safe helpers for reading and atomically writing manifests and alias files,
creating backups, locating the per-user configuration directory, and
scaffolding new Cargo projects. All filesystem errors are normalized to
``StorageError``.
"""

from __future__ import annotations

import os
import sys
import shutil
import tempfile
import subprocess
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

from depi.utils.logger import get_logger
from depi.exceptions import StorageError
from depi.constants import (
    APP_DIR_NAME,
    MAIN_RS_TEMPLATE,
    MANIFEST_FILE_NAME,
    MAX_FILE_SIZE,
)


logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    if not path.exists():
        raise StorageError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise StorageError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def _atomic_write(target: Path, content: str) -> None:
    """Atomically write text to a file using a temporary file + replace."""
    temp_path: Optional[Path] = None

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())

        temp_path.replace(target)

    except Exception as exc:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
                logger.debug("Cleaned up temporary file: %s", temp_path)
            except OSError as cleanup_exc:
                logger.warning(
                    "Failed to clean up temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise StorageError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Read a text file, refusing files larger than ``max_size`` bytes."""
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise StorageError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise StorageError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def safe_write_file(file_path: PathLike, content: str) -> None:
    """Write text to a file using atomic replacement.

    The target either keeps its previous content or receives all of
    ``content``; a partially written manifest is never observable.
    """
    _atomic_write(Path(file_path), content)


def create_timestamped_backup(file_path: PathLike) -> Path:
    """Create a timestamped backup with format:
    ``{stem}.{timestamp}.backup{suffix}``.
    """
    path = Path(file_path)

    if not path.exists() or not path.is_file():
        raise StorageError(
            f"Cannot backup invalid file: {path}",
            file_path=str(path),
            operation="backup",
        )

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = path.parent / f"{path.stem}.{timestamp}.backup{path.suffix}"

    try:
        shutil.copy2(path, backup_path)
        logger.debug("Created timestamped backup: %s", backup_path)
        return backup_path
    except OSError as exc:
        raise StorageError(
            f"Failed to create backup: {exc}",
            file_path=str(path),
            operation="backup",
            original_error=exc,
        ) from exc


def user_config_dir() -> Path:
    """Return the per-user depi configuration directory (not created).

    ``%APPDATA%\\depi`` on Windows, ``$XDG_CONFIG_HOME/depi`` or
    ``~/.config/depi`` elsewhere.
    """
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_DIR_NAME
        return Path.home() / "AppData" / "Roaming" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / APP_DIR_NAME


def scaffold_project(root: PathLike, manifest_text: str) -> Optional[str]:
    """Create a minimal Cargo project in ``root`` and initialize git.

    Writes ``Cargo.toml`` and ``src/main.rs``. An existing manifest or
    ``src/main.rs`` is never overwritten.

    Args:
        root: Project directory; created if missing.
        manifest_text: Serialized ``Cargo.toml`` content.

    Returns:
        Output of ``git init``, or ``None`` if git is not available.

    Raises:
        StorageError: Files already exist or cannot be written.
    """
    root_path = Path(root)
    manifest = root_path / MANIFEST_FILE_NAME
    main_rs = root_path / "src" / "main.rs"

    for existing in (manifest, main_rs):
        if existing.exists():
            raise StorageError(
                f"Refusing to overwrite existing {existing.name}",
                file_path=str(existing),
                operation="scaffold",
            )

    try:
        root_path.mkdir(parents=True, exist_ok=True)
        main_rs.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(
            f"Failed to create project directory: {exc}",
            file_path=str(root_path),
            operation="scaffold",
            original_error=exc,
        ) from exc

    _atomic_write(manifest, manifest_text)
    _atomic_write(main_rs, MAIN_RS_TEMPLATE)
    logger.info("Scaffolded project in %s", root_path)

    return _git_init(root_path)


def _git_init(root: Path) -> Optional[str]:
    try:
        result = subprocess.run(
            ["git", "init"],
            cwd=str(root),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        logger.warning("git not found; skipping repository initialization")
        return None

    if result.returncode != 0:
        logger.warning("git init failed: %s", result.stderr.strip())
        return None
    return result.stdout.strip()
