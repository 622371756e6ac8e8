"""
Semantic version model for registry version strings.

Registry versions are reduced to a ``(major, minor, patch)`` triple and
ordered lexicographically. Pre-release and build suffixes are stripped
before parsing, so ``"2.0.0-beta"`` orders as ``2.0.0``.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

_NUMERIC = re.compile(r"[0-9]+")
_LEADING_NON_DIGITS = re.compile(r"^[^0-9]+")


class InvalidVersionString(ValueError):
    """Raised when a version string cannot be reduced to a triple."""


class ParsedVersion(NamedTuple):
    """A version as an ordered ``(major, minor, patch)`` triple."""

    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def strip_suffix(version: str) -> str:
    """Drop everything from the first ``-`` (pre-release) or ``+`` (build)."""
    for marker in ("-", "+"):
        version = version.split(marker, 1)[0]
    return version


def parse_version(version: str) -> ParsedVersion:
    """Parse a registry version string into a :class:`ParsedVersion`.

    Steps:

    1. Strip the pre-release/build suffix.
    2. Strip a leading run of non-digit characters (``v1.2`` → ``1.2``).
    3. Split on ``.`` and accept 1–3 ASCII-digit components, padding the
       missing trailing ones with ``0``.

    Examples::

        >>> parse_version("1.2.3")
        ParsedVersion(major=1, minor=2, patch=3)
        >>> str(parse_version("2.0.0-beta.1"))
        '2.0.0'
        >>> str(parse_version("v4"))
        '4.0.0'

    Raises:
        InvalidVersionString: Empty input, too many components, or a
            non-numeric component.
    """
    text = strip_suffix(version.strip())
    if text and text[0] not in "0123456789":
        text = _LEADING_NON_DIGITS.sub("", text)

    if not text:
        raise InvalidVersionString(f"Empty version string: {version!r}")

    parts = text.split(".")
    if not 1 <= len(parts) <= 3:
        raise InvalidVersionString(
            f"Invalid version {version!r}: expected 1-3 components, got {len(parts)}"
        )

    numbers = []
    for part in parts:
        if not _NUMERIC.fullmatch(part):
            raise InvalidVersionString(
                f"Invalid version {version!r}: component {part!r} is not a number"
            )
        numbers.append(int(part))

    return ParsedVersion(*numbers)


def try_parse_version(version: str) -> Optional[ParsedVersion]:
    """Like :func:`parse_version` but returns ``None`` on failure."""
    try:
        return parse_version(version)
    except InvalidVersionString:
        return None


def has_suffix(version: str) -> bool:
    """Return True if ``version`` carries a pre-release or build suffix."""
    return strip_suffix(version) != version


def classify_change(current: Optional[str], target: Optional[str]) -> str:
    """Classify the move from ``current`` to ``target``.

    Returns one of ``"new"``, ``"same"``, ``"downgrade"``, ``"major"``,
    ``"minor"``, ``"patch"``, ``"update"`` (same triple, different text)
    or ``"unknown"`` (missing or unparseable versions).

    Examples:
        >>> classify_change("1.0.0", "2.0.0")
        'major'
        >>> classify_change(None, "1.0.0")
        'new'
    """
    if target is None:
        return "unknown"
    if current is None:
        return "new"

    old = try_parse_version(current)
    new = try_parse_version(target)
    if old is None or new is None:
        return "unknown"

    if new < old:
        return "downgrade"
    if new == old:
        return "same" if current == target else "update"
    if new.major != old.major:
        return "major"
    if new.minor != old.minor:
        return "minor"
    return "patch"
