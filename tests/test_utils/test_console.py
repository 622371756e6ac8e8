from __future__ import annotations

import io
import sys
from typing import Generator
from unittest.mock import patch

import pytest
from rich.console import Console

from depi.utils.console import (
    DEPI_THEME,
    PALETTES,
    Palette,
    _get_console,
    _should_use_color,
    colorize_update_type,
    format_features,
    format_version,
    get_palette,
    is_known_palette,
    print_banner,
    print_error,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)


@pytest.fixture(autouse=True)
def reset_console() -> Generator[None, None, None]:
    """Reset console singleton before and after each test."""
    reconfigure_console()
    yield
    reconfigure_console()


@pytest.fixture
def recording_console() -> Generator[Console, None, None]:
    """Route console output to an in-memory, colorless console."""
    console = Console(
        file=io.StringIO(), theme=DEPI_THEME, no_color=True, width=120
    )
    with patch("depi.utils.console._get_console", return_value=console):
        yield console


def _output(console: Console) -> str:
    return console.file.getvalue()  # type: ignore[attr-defined]


@pytest.mark.unit
class TestShouldUseColor:
    """Tests for _should_use_color environment detection."""

    def test_no_color_env_disables_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test NO_COLOR wins over a TTY."""
        monkeypatch.setenv("NO_COLOR", "1")
        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is False

    def test_ci_env_disables_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test CI environments get plain output."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("CI", "true")
        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is False

    def test_tty_enables_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a TTY without overrides gets color."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("CI", raising=False)
        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is True


@pytest.mark.unit
class TestGetConsole:
    """Tests for the console singleton."""

    def test_singleton_returns_same_instance(self) -> None:
        assert _get_console() is _get_console()

    def test_reconfigure_creates_new_instance(self) -> None:
        first = _get_console()
        reconfigure_console()
        assert _get_console() is not first


@pytest.mark.unit
class TestPalettes:
    """Tests for palette lookup and version/feature rendering."""

    def test_default_palette_is_warm(self) -> None:
        assert get_palette().name == "warm"
        assert get_palette(None) is PALETTES["warm"]

    def test_lookup_is_case_insensitive(self) -> None:
        assert get_palette("COOL") is PALETTES["cool"]

    def test_unknown_name_falls_back_to_plain(self) -> None:
        assert get_palette("osetia") is PALETTES["plain"]

    def test_random_picks_a_colored_palette(self) -> None:
        """Test 'random' draws among the colored palettes only."""
        with patch("depi.utils.console.random.choice", return_value="split") as choice:
            palette = get_palette("random")

        assert palette is PALETTES["split"]
        assert "plain" not in choice.call_args.args[0]

    @pytest.mark.parametrize("name", ["plain", "cool", "warm", "split", "random"])
    def test_known_palette_names(self, name: str) -> None:
        assert is_known_palette(name)

    def test_unknown_palette_name(self) -> None:
        assert not is_known_palette("neon")

    def test_format_version_plain(self) -> None:
        assert format_version("1.2.3", PALETTES["plain"]) == "1.2.3"

    def test_format_version_styled(self) -> None:
        assert (
            format_version("1.2.3", PALETTES["cool"]) == "[bold blue]1.2.3[/bold blue]"
        )

    def test_format_version_old_style(self) -> None:
        assert format_version("1.2.3", PALETTES["warm"], old=True) == (
            "[yellow]1.2.3[/yellow]"
        )

    def test_format_version_split(self) -> None:
        """Test the split palette highlights only the second half."""
        assert format_version("1.2.3", PALETTES["split"]) == "1.[bold red]2.3[/bold red]"

    def test_format_features_none_selected(self) -> None:
        assert format_features(None, PALETTES["warm"]) == "-"

    def test_format_features_empty_list(self) -> None:
        assert format_features([], PALETTES["warm"]) == "[]"

    def test_format_features_keeps_order(self) -> None:
        assert format_features(["std", "derive"], PALETTES["plain"]) == "std, derive"

    def test_format_features_escapes_markup(self) -> None:
        palette = Palette("x")
        assert format_features(["[weird]"], palette) == "\\[weird]"


@pytest.mark.unit
class TestPrintHelpers:
    """Tests for status message and table output."""

    def test_print_success(self, recording_console: Console) -> None:
        print_success("Added 2 dependencies")
        assert "[OK] Added 2 dependencies" in _output(recording_console)

    def test_print_error_escapes_markup(self, recording_console: Console) -> None:
        """Test error text with brackets is printed literally."""
        print_error("bad token [a@]")
        assert "[ERROR] bad token [a@]" in _output(recording_console)

    def test_print_warning(self, recording_console: Console) -> None:
        print_warning("No aliases defined")
        assert "[WARNING] No aliases defined" in _output(recording_console)

    def test_print_banner_uppercases_title(self, recording_console: Console) -> None:
        print_banner("deps list")
        assert "DEPS LIST" in _output(recording_console)

    def test_print_table_renders_rows(self, recording_console: Console) -> None:
        print_table(
            [
                {"Name": "serde", "Version": "1.0.200"},
                {"Name": "tokio", "Version": "1.37.0"},
            ],
            title="Dependencies",
        )
        out = _output(recording_console)
        assert "Dependencies" in out
        assert "serde" in out and "1.0.200" in out
        assert "tokio" in out and "1.37.0" in out

    def test_print_table_empty_data(self, recording_console: Console) -> None:
        print_table([])
        assert _output(recording_console) == ""


@pytest.mark.unit
class TestColorizeUpdateType:
    @pytest.mark.parametrize(
        "update_type, color",
        [("major", "red"), ("minor", "yellow"), ("patch", "green"), ("new", "cyan")],
    )
    def test_known_types(self, update_type: str, color: str) -> None:
        assert colorize_update_type(update_type) == f"[{color}]{update_type}[/{color}]"

    def test_unknown_type_unstyled(self) -> None:
        assert colorize_update_type("same") == "same"
