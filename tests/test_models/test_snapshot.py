from __future__ import annotations

import pytest

from depi.exceptions import EmptyRegistryResultError
from depi.models.snapshot import RegistrySnapshot


def _snapshot(*versions: str) -> RegistrySnapshot:
    return RegistrySnapshot("demo", {v: frozenset() for v in versions})


@pytest.mark.unit
class TestRegistrySnapshot:
    """Tests for RegistrySnapshot queries."""

    def test_has_version(self) -> None:
        snapshot = _snapshot("1.0.0")

        assert snapshot.has_version("1.0.0")
        assert not snapshot.has_version("1.0")

    def test_get_features(self) -> None:
        snapshot = RegistrySnapshot("serde", {"1.0.0": frozenset({"derive", "std"})})

        assert snapshot.get_features("1.0.0") == {"derive", "std"}
        assert snapshot.get_features("2.0.0") is None

    def test_get_last_version_strips_prerelease(self) -> None:
        """Test the highest version wins even when it is a pre-release."""
        assert _snapshot("1.0.0", "2.0.0-beta", "1.5.2").get_last_version() == "2.0.0"

    def test_get_last_version_numeric_order(self) -> None:
        assert _snapshot("1.9.0", "1.10.0", "1.2.0").get_last_version() == "1.10.0"

    def test_get_last_version_normalizes(self) -> None:
        assert _snapshot("0.3").get_last_version() == "0.3.0"

    def test_unparseable_versions_are_skipped(self) -> None:
        assert _snapshot("not-a-version", "0.9.1").get_last_version() == "0.9.1"

    def test_latest_key_prefers_release_on_tie(self) -> None:
        """Test a release beats a pre-release of the same triple."""
        assert _snapshot("2.0.0-rc.1", "2.0.0", "1.0.0").latest_key() == "2.0.0"

    def test_latest_key_returns_raw_prerelease(self) -> None:
        assert _snapshot("1.0.0", "2.0.0-beta").latest_key() == "2.0.0-beta"

    def test_empty_snapshot_raises(self) -> None:
        with pytest.raises(EmptyRegistryResultError) as exc_info:
            _snapshot().get_last_version()

        assert exc_info.value.package_name == "demo"

    def test_only_unparseable_raises(self) -> None:
        with pytest.raises(EmptyRegistryResultError):
            _snapshot("nightly").latest_key()

    def test_parsed_versions(self) -> None:
        pairs = _snapshot("1.2.3", "x").parsed_versions()
        assert [raw for raw, _ in pairs] == ["1.2.3"]
