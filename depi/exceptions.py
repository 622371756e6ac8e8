"""
Custom exception hierarchy for depi.

All exceptions inherit from :class:`DepiError` and carry optional structured
metadata via the ``details`` attribute, rendered after the message so that
every abort names the token, package, version or feature that failed.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence


class DepiError(Exception):
    """Base exception for all depi errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


# ---------------------------------------------------------------------------
# Specification parsing
# ---------------------------------------------------------------------------


class TokenParseError(DepiError):
    """Raised when a dependency token cannot be parsed.

    Carries the partially accumulated sections and the parser state at the
    point of failure so the user can see exactly where the token went wrong.

    Args:
        message: Error description.
        token: The raw token being parsed.
        state: Parser state when the error occurred (``name``, ``version``,
            ``features`` or ``target``).
        char: Offending character, if any.
        position: Zero-based index of ``char`` in ``token``.
        name: Name accumulated so far.
        version: Version accumulated so far.
        features: Features accumulated so far.
        target: Kind tag accumulated so far.
    """

    __slots__ = (
        "token",
        "state",
        "char",
        "position",
        "name",
        "version",
        "features",
        "target",
    )

    def __init__(
        self,
        message: str,
        *,
        token: Optional[str] = None,
        state: Optional[str] = None,
        char: Optional[str] = None,
        position: Optional[int] = None,
        name: str = "",
        version: str = "",
        features: str = "",
        target: str = "",
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "token", token)
        _add_if(details, "state", state)
        _add_if(details, "char", repr(char) if char is not None else None)
        _add_if(details, "position", position)
        for key, value in (
            ("name", name),
            ("version", version),
            ("features", features),
            ("target", target),
        ):
            if value:
                details[key] = value

        super().__init__(message, details)

        self.token = token
        self.state = state
        self.char = char
        self.position = position
        self.name = name
        self.version = version
        self.features = features
        self.target = target


class EmptyTokenError(TokenParseError):
    """Raised when a dependency token is empty after trimming whitespace."""

    __slots__ = ()

    def __init__(self, token: str = "") -> None:
        super().__init__("Empty dependency token", token=token)


class SpecificationError(DepiError):
    """Raised when one or more tokens of a specification failed to parse.

    Args:
        errors: Every token error collected while parsing.
    """

    __slots__ = ("errors",)

    def __init__(self, errors: Sequence[TokenParseError]) -> None:
        self.errors = list(errors)
        lines = [f"{len(self.errors)} dependency token(s) could not be parsed:"]
        lines.extend(f"  - {err}" for err in self.errors)
        super().__init__("\n".join(lines))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ResolutionError(DepiError):
    """Base class for failures validating a request against the registry.

    Args:
        message: Error description.
        package_name: Name of the package involved.
    """

    __slots__ = ("package_name",)

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        merged: Dict[str, Any] = {}
        _add_if(merged, "package", package_name)
        if details:
            merged.update(details)
        super().__init__(message, merged)
        self.package_name = package_name


class InvalidVersionError(ResolutionError):
    """Raised when a requested version is not published in the registry."""

    __slots__ = ("version",)

    def __init__(self, package_name: str, version: str) -> None:
        super().__init__(
            f"Version '{version}' of '{package_name}' does not exist in the registry",
            package_name=package_name,
        )
        self.version = version


class InvalidFeatureError(ResolutionError):
    """Raised when a requested feature is not declared by the chosen version."""

    __slots__ = ("feature", "version")

    def __init__(self, package_name: str, version: str, feature: str) -> None:
        super().__init__(
            f"Feature '{feature}' is not available in {package_name} {version}",
            package_name=package_name,
        )
        self.feature = feature
        self.version = version


class InconsistentRegistryDataError(ResolutionError):
    """Raised when a version present in the registry has no feature record."""

    __slots__ = ("version",)

    def __init__(self, package_name: str, version: str) -> None:
        super().__init__(
            f"Registry has no feature record for {package_name} {version}",
            package_name=package_name,
        )
        self.version = version


class EmptyRegistryResultError(ResolutionError):
    """Raised when no version of a package could be parsed."""

    __slots__ = ()

    def __init__(self, package_name: str) -> None:
        super().__init__(
            f"No usable version of '{package_name}' found in the registry",
            package_name=package_name,
        )


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class NetworkError(DepiError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class RegistryError(NetworkError):
    """Raised for failures related to the package registry API.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("package_name",)

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.package_name = package_name
        if package_name is not None:
            self.details["package"] = package_name


class BatchFetchMismatchError(DepiError):
    """Raised when a concurrent batch did not complete for every item.

    Args:
        failures: Mapping of failing item name to the exception it raised.
        expected: Number of items the batch was started with.
        received: Number of items that completed successfully.
        scope: Optional label of the batch (e.g. a manifest section).
    """

    __slots__ = ("failures", "expected", "received", "scope")

    def __init__(
        self,
        failures: Mapping[str, BaseException],
        *,
        expected: int,
        received: int,
        scope: Optional[str] = None,
    ) -> None:
        self.failures: Dict[str, BaseException] = dict(failures)
        self.expected = expected
        self.received = received
        self.scope = scope

        where = f" in {scope}" if scope else ""
        lines = [
            f"Failed to resolve {expected - received} of {expected} "
            f"dependencies{where}:"
        ]
        lines.extend(f"  - {name}: {exc}" for name, exc in self.failures.items())
        super().__init__("\n".join(lines))

    @property
    def failed_names(self) -> Iterable[str]:
        """Names of every failed item, in batch order."""
        return list(self.failures)


# ---------------------------------------------------------------------------
# Storage & configuration
# ---------------------------------------------------------------------------


class StorageError(DepiError):
    """Raised when manifest or alias storage cannot be read, parsed or written.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/parse/write/...).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class ConfigError(DepiError):
    """Raised when the configuration file is missing, malformed or invalid.

    Args:
        message: Error description.
        config_path: Path of the configuration file involved.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option
