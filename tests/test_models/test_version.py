from __future__ import annotations

import pytest

from depi.models.version import (
    InvalidVersionString,
    ParsedVersion,
    classify_change,
    has_suffix,
    parse_version,
    strip_suffix,
    try_parse_version,
)


@pytest.mark.unit
class TestParseVersion:
    """Tests for parse_version."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1.2.3", (1, 2, 3)),
            ("0.1", (0, 1, 0)),
            ("7", (7, 0, 0)),
            ("v1.2.3", (1, 2, 3)),
            ("2.0.0-beta.1", (2, 0, 0)),
            ("1.0.0+build.5", (1, 0, 0)),
            ("  3.4.5  ", (3, 4, 5)),
            ("1.02.003", (1, 2, 3)),
        ],
    )
    def test_valid_versions(self, text: str, expected) -> None:
        assert parse_version(text) == ParsedVersion(*expected)

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "-beta", "1.2.3.4", "1..2", "1.x.3", "1.2.", "abc"],
    )
    def test_invalid_versions(self, text: str) -> None:
        with pytest.raises(InvalidVersionString):
            parse_version(text)

    def test_invalid_version_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_version("one.two")

    def test_ordering_is_lexicographic_on_triple(self) -> None:
        """Test versions compare numerically component by component."""
        assert parse_version("2.0.0") > parse_version("1.9.9") > parse_version("1.9.0")
        assert parse_version("1.10.0") > parse_version("1.9.9")

    def test_suffix_is_ignored_in_comparisons(self) -> None:
        assert parse_version("2.0.0-beta") == parse_version("2.0.0")

    def test_str_is_normalized(self) -> None:
        assert str(parse_version("v4")) == "4.0.0"

    def test_try_parse_version(self) -> None:
        assert try_parse_version("1.2") == ParsedVersion(1, 2, 0)
        assert try_parse_version(">=1, <2") is None


@pytest.mark.unit
class TestSuffixHelpers:
    def test_strip_suffix(self) -> None:
        assert strip_suffix("1.0.0-rc.1+meta") == "1.0.0"
        assert strip_suffix("1.0.0") == "1.0.0"

    def test_has_suffix(self) -> None:
        assert has_suffix("1.0.0-alpha")
        assert has_suffix("1.0.0+build")
        assert not has_suffix("1.0.0")


@pytest.mark.unit
class TestClassifyChange:
    """Tests for classify_change."""

    @pytest.mark.parametrize(
        "current, target, expected",
        [
            ("1.0.0", "2.0.0", "major"),
            ("1.0.0", "1.1.0", "minor"),
            ("1.0.0", "1.0.1", "patch"),
            ("1.0.0", "1.0.0", "same"),
            ("1.0", "1.0.0", "update"),
            ("2.0.0", "1.0.0", "downgrade"),
            (None, "1.0.0", "new"),
            ("1.0.0", None, "unknown"),
            ("*", "1.0.0", "unknown"),
        ],
    )
    def test_classification(self, current, target, expected: str) -> None:
        assert classify_change(current, target) == expected
