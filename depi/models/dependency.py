"""
Dependency data models for depi.

Defines the structured request compiled from a user token, the manifest
section a dependency belongs to, and the resolved dependency written back
to ``Cargo.toml``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from depi.constants import (
    SECTION_BUILD,
    SECTION_DEV,
    SECTION_NORMAL,
    SECTION_TARGET,
    TARGET_CFG_TEMPLATE,
)

TomlValue = Union[str, Dict[str, Any]]


@dataclass(frozen=True)
class ParsedRequest:
    """The structured result of compiling one dependency token.

    Attributes:
        name: Package name.
        version_constraint: Exact version requested; empty means latest.
        feature_list: Comma-separated feature names; empty means none.
        kind_tag: Raw kind tag after ``!``; empty means normal.
    """

    name: str
    version_constraint: str = ""
    feature_list: str = ""
    kind_tag: str = ""

    @property
    def features(self) -> List[str]:
        """Requested features in the order they were typed."""
        if not self.feature_list:
            return []
        return self.feature_list.split(",")

    @property
    def kind(self) -> "DependencyKind":
        return DependencyKind.from_tag(self.kind_tag)

    def __str__(self) -> str:
        text = self.name
        if self.version_constraint:
            text += f"@{self.version_constraint}"
        if self.feature_list:
            text += f":{self.feature_list}"
        if self.kind_tag:
            text += f"!{self.kind_tag}"
        return text


# Ordering of categories inside DependencyKind comparisons
_NORMAL, _DEV, _BUILD, _PLATFORM = 0, 1, 2, 3
_CATEGORY_LABELS = {_NORMAL: "normal", _DEV: "dev", _BUILD: "build"}
_CATEGORY_SECTIONS = {
    _NORMAL: SECTION_NORMAL,
    _DEV: SECTION_DEV,
    _BUILD: SECTION_BUILD,
}


@dataclass(frozen=True, order=True)
class DependencyKind:
    """The manifest section a dependency belongs to.

    One of normal, dev-only, build-only, or platform-conditional. Platform
    kinds carry the raw condition text (e.g. ``"windows"``) which is not
    validated. Instances are hashable and totally ordered so they can be
    used as grouping keys and sorted for display.

    Use the ``NORMAL``, ``DEV`` and ``BUILD`` class attributes,
    :meth:`platform` or :meth:`from_tag` rather than the constructor.
    """

    category: int
    condition: str = ""

    NORMAL = None  # type: DependencyKind
    DEV = None  # type: DependencyKind
    BUILD = None  # type: DependencyKind

    @classmethod
    def platform(cls, condition: str) -> "DependencyKind":
        return cls(_PLATFORM, condition)

    @classmethod
    def from_tag(cls, tag: str) -> "DependencyKind":
        """Map a token's kind tag to a kind.

        ``dev`` and ``build`` select those sections, ``normal`` or an empty
        tag the regular one; anything else is a platform condition. Tags
        are case-insensitive.
        """
        tag = tag.strip().lower()
        if not tag or tag == "normal":
            return cls.NORMAL
        if tag == "dev":
            return cls.DEV
        if tag == "build":
            return cls.BUILD
        return cls.platform(tag)

    @property
    def is_platform(self) -> bool:
        return self.category == _PLATFORM

    @property
    def label(self) -> str:
        """Short name: ``normal``, ``dev``, ``build`` or the condition."""
        if self.is_platform:
            return self.condition
        return _CATEGORY_LABELS[self.category]

    @property
    def section_path(self) -> Tuple[str, ...]:
        """Key path of this kind's table inside the manifest document."""
        if self.is_platform:
            return (
                SECTION_TARGET,
                TARGET_CFG_TEMPLATE.format(condition=self.condition),
                SECTION_NORMAL,
            )
        return (_CATEGORY_SECTIONS[self.category],)

    @property
    def section_name(self) -> str:
        """Dotted manifest header, e.g. ``target.'cfg(unix)'.dependencies``."""
        if self.is_platform:
            target, cfg, deps = self.section_path
            return f"{target}.'{cfg}'.{deps}"
        return self.section_path[0]

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        if self.is_platform:
            return f"DependencyKind.platform({self.condition!r})"
        return f"DependencyKind.{self.label.upper()}"


DependencyKind.NORMAL = DependencyKind(_NORMAL)
DependencyKind.DEV = DependencyKind(_DEV)
DependencyKind.BUILD = DependencyKind(_BUILD)

#: Kinds that live in fixed top-level sections.
STANDARD_KINDS: Tuple[DependencyKind, ...] = (
    DependencyKind.NORMAL,
    DependencyKind.DEV,
    DependencyKind.BUILD,
)


@dataclass
class ResolvedDependency:
    """A dependency with a concrete version and feature selection.

    Attributes:
        name: Package name.
        version: Concrete version string.
        features: ``None`` when no feature selection was requested (the
            manifest entry is a bare version string); a list, possibly
            empty, otherwise (the entry is a table with ``features``).
        extras: Additional manifest keys of an existing entry (such as
            ``optional`` or ``default-features``), preserved on rewrite.
    """

    name: str
    version: str
    features: Optional[List[str]] = None
    extras: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_toml(cls, name: str, value: Any) -> "ResolvedDependency":
        """Build a dependency from a manifest entry.

        Raises:
            ValueError: The entry has no string ``version`` or an invalid
                ``features`` value.
        """
        if isinstance(value, str):
            return cls(name=name, version=value)

        if not isinstance(value, Mapping):
            raise ValueError(
                f"dependency '{name}' must be a string or a table, "
                f"got {type(value).__name__}"
            )

        version = value.get("version")
        if not isinstance(version, str):
            raise ValueError(f"dependency '{name}' has no version")

        features: Optional[List[str]] = None
        if "features" in value:
            raw = value["features"]
            if not isinstance(raw, list) or not all(isinstance(f, str) for f in raw):
                raise ValueError(f"dependency '{name}' has invalid features")
            features = list(raw)

        extras = {k: v for k, v in value.items() if k not in ("version", "features")}
        return cls(name=name, version=version, features=features, extras=extras)

    def to_toml(self) -> Tuple[str, TomlValue]:
        """Return the ``(key, value)`` pair for the manifest table."""
        if self.features is None and not self.extras:
            return self.name, self.version

        body: Dict[str, Any] = {"version": self.version}
        if self.features is not None:
            body["features"] = list(self.features)
        body.update(self.extras)
        return self.name, body

    def with_version(self, version: str) -> "ResolvedDependency":
        """Return a copy pinned to ``version`` with features and extras kept."""
        return ResolvedDependency(
            name=self.name,
            version=version,
            features=None if self.features is None else list(self.features),
            extras=dict(self.extras),
        )


#: Dependencies of a manifest grouped by kind, then keyed by name.
ManifestTable = Dict[DependencyKind, Dict[str, ResolvedDependency]]
