from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, FrozenSet, List

import pytest
import tomli as tomllib
from click.testing import CliRunner

from depi.cli import cli, main
from depi.core.alias_store import ALIAS_FILE_ENV
from depi.core.registry import RegistryClient
from depi.exceptions import RegistryError
from depi.models.snapshot import RegistrySnapshot

REGISTRY: Dict[str, Dict[str, FrozenSet[str]]] = {
    "serde": {
        "1.0.100": frozenset({"derive", "std"}),
        "1.0.200": frozenset({"derive", "std"}),
    },
    "serde_json": {"1.0.117": frozenset({"std"})},
    "tokio": {"1.37.0": frozenset({"full", "macros"})},
    "rand": {"0.8.5": frozenset({"std"})},
    "cc": {"1.1.0": frozenset()},
    "clap": {"4.5.4": frozenset({"derive"})},
    "anyhow": {"1.0.86": frozenset()},
}

MANIFEST = """\
[package]
name = "demo"
version = "0.1.0"

[dependencies]
serde = { version = "1.0.100", features = ["derive"] }

[dev-dependencies]
rand = "0.8.5"
"""


@pytest.fixture
def fetched(monkeypatch) -> List[str]:
    """Serve registry snapshots from REGISTRY and record fetched names."""
    names: List[str] = []

    async def fake_fetch(self: RegistryClient, name: str) -> RegistrySnapshot:
        names.append(name)
        if name not in REGISTRY:
            raise RegistryError(
                f"Package '{name}' not found in the registry", package_name=name
            )
        return RegistrySnapshot(name, REGISTRY[name])

    monkeypatch.setattr(RegistryClient, "fetch_snapshot", fake_fetch)
    return names


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    """A temporary project directory holding MANIFEST as the working dir."""
    root = tmp_path / "demo"
    root.mkdir()
    (root / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")
    monkeypatch.chdir(root)
    return root


@pytest.fixture
def runner(tmp_path: Path, monkeypatch) -> CliRunner:
    monkeypatch.delenv("DEPI_CONFIG", raising=False)
    monkeypatch.delenv("DEPI_PALETTE", raising=False)
    return CliRunner(
        env={
            ALIAS_FILE_ENV: str(tmp_path / "aliases.json"),
            "COLUMNS": "200",
            "NO_COLOR": "1",
        }
    )


def _read(project: Path) -> dict:
    return tomllib.loads((project / "Cargo.toml").read_text(encoding="utf-8"))


@pytest.mark.integration
class TestCliGroup:
    """Tests for global options."""

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("init", "new", "add", "remove", "list", "update", "alias"):
            assert command in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("depi ")

    def test_invalid_config_exits_one(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "depi.toml"
        config.write_text("[depi]\nbogus = 1\n", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config), "alias", "list"])

        assert result.exit_code == 1
        assert "Unknown configuration keys" in result.output


@pytest.mark.integration
class TestAddCommand:
    """Tests for ``depi add``."""

    def test_add_writes_manifest(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        result = runner.invoke(cli, ["add", "tokio:full/cc!build/serde@1.0.200"])

        assert result.exit_code == 0, result.output
        assert "DEP(S) ADD" in result.output
        assert "Added 3 dependencies" in result.output

        document = _read(project)
        assert document["dependencies"]["tokio"] == {
            "version": "1.37.0",
            "features": ["full"],
        }
        assert document["dependencies"]["serde"] == "1.0.200"
        assert document["build-dependencies"] == {"cc": "1.1.0"}
        assert document["dev-dependencies"] == {"rand": "0.8.5"}

    def test_platform_kind(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        result = runner.invoke(cli, ["add", "rand!unix"])

        assert result.exit_code == 0, result.output
        assert _read(project)["target"]["cfg(unix)"]["dependencies"] == {
            "rand": "0.8.5"
        }

    def test_parse_errors_abort_before_fetch(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        """Test a bad token reports every error and fetches nothing."""
        result = runner.invoke(cli, ["add", "tokio/bad$/a@1@2"])

        assert result.exit_code == 1
        assert "bad$" in result.output
        assert fetched == []
        assert (project / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST

    def test_unknown_package_leaves_manifest(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        result = runner.invoke(cli, ["add", "tokio/nosuchcrate"])

        assert result.exit_code == 1
        assert "nosuchcrate" in result.output
        assert (project / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST

    def test_missing_feature(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        result = runner.invoke(cli, ["add", "tokio:nope"])

        assert result.exit_code == 1
        assert "nope" in result.output
        assert (project / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST

    def test_macro_group(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        result = runner.invoke(cli, ["add", "+cli"])

        assert result.exit_code == 0, result.output
        deps = _read(project)["dependencies"]
        assert deps["clap"] == {"version": "4.5.4", "features": ["derive"]}
        assert deps["anyhow"] == "1.0.86"

    def test_alias_expansion(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        assert runner.invoke(cli, ["alias", "add", "rt", "tokio:full,macros"]).exit_code == 0

        result = runner.invoke(cli, ["add", "rt"])

        assert result.exit_code == 0, result.output
        assert _read(project)["dependencies"]["tokio"]["features"] == [
            "full",
            "macros",
        ]

    def test_no_manifest(
        self, runner: CliRunner, tmp_path: Path, monkeypatch, fetched: List[str]
    ) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.chdir(empty)
        monkeypatch.setattr(Path, "is_file", lambda self: False)

        result = runner.invoke(cli, ["add", "tokio"])

        assert result.exit_code == 1
        assert "Cargo.toml not found" in result.output


@pytest.mark.integration
class TestRemoveCommand:
    """Tests for ``depi remove``."""

    def test_remove_from_all_sections(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(cli, ["remove", "rand,ghost"])

        assert result.exit_code == 0, result.output
        assert "DEP(S) REM" in result.output
        assert "Not found: ghost" in result.output
        assert "dev-dependencies" not in _read(project)

    def test_nothing_to_remove(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(cli, ["remove", "ghost"])

        assert result.exit_code == 0
        assert "None of ghost found" in result.output
        assert (project / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST

    def test_empty_names(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(cli, ["remove", " , "])
        assert result.exit_code == 2


@pytest.mark.integration
class TestListCommand:
    """Tests for ``depi list``."""

    def test_lists_dependencies(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(cli, ["list"])

        assert result.exit_code == 0, result.output
        assert "DEPS LIST" in result.output
        assert "serde" in result.output
        assert "rand" in result.output
        assert "derive" in result.output

    def test_no_dependencies(
        self, runner: CliRunner, tmp_path: Path, monkeypatch
    ) -> None:
        (tmp_path / "Cargo.toml").write_text("[package]\nname = 'x'\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "No dependencies" in result.output


@pytest.mark.integration
class TestUpdateCommand:
    """Tests for ``depi update``."""

    def test_update_applies_latest(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        result = runner.invoke(cli, ["update"])

        assert result.exit_code == 0, result.output
        assert "DEPS UP" in result.output
        assert "Updated 1 dependencies" in result.output
        assert _read(project)["dependencies"]["serde"] == {
            "version": "1.0.200",
            "features": ["derive"],
        }

    def test_up_to_date_does_not_write(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        manifest = project / "Cargo.toml"
        current = MANIFEST.replace("1.0.100", "1.0.200")
        manifest.write_text(current, encoding="utf-8")

        result = runner.invoke(cli, ["update"])

        assert result.exit_code == 0, result.output
        assert "All dependencies are up to date!" in result.output
        assert manifest.read_text(encoding="utf-8") == current

    def test_dry_run(self, runner: CliRunner, project: Path, fetched: List[str]) -> None:
        result = runner.invoke(cli, ["update", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Update Plan (Dry Run)" in result.output
        assert "Dry run mode" in result.output
        assert (project / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST

    def test_backup(self, runner: CliRunner, project: Path, fetched: List[str]) -> None:
        result = runner.invoke(cli, ["update", "--backup"])

        assert result.exit_code == 0, result.output
        backups = list(project.glob("Cargo.*.backup.toml"))
        assert len(backups) == 1
        assert backups[0].read_text(encoding="utf-8") == MANIFEST

    def test_failure_aborts_everything(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        """Test one unknown crate leaves every section untouched."""
        manifest = project / "Cargo.toml"
        broken = MANIFEST + '\n[build-dependencies]\nghost = "0.1.0"\n'
        manifest.write_text(broken, encoding="utf-8")

        result = runner.invoke(cli, ["update"])

        assert result.exit_code == 1
        assert "ghost" in result.output
        assert manifest.read_text(encoding="utf-8") == broken

    def test_never_downgrades_newer_pin(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        """Test a pin above the registry latest survives an update."""
        manifest = project / "Cargo.toml"
        manifest.write_text(
            MANIFEST.replace(
                "[dev-dependencies]", 'anyhow = "9.0.0"\n\n[dev-dependencies]'
            ),
            encoding="utf-8",
        )

        result = runner.invoke(cli, ["update"])

        assert result.exit_code == 0, result.output
        assert "Updated 1 dependencies" in result.output
        document = _read(project)
        assert document["dependencies"]["anyhow"] == "9.0.0"
        assert document["dependencies"]["serde"]["version"] == "1.0.200"

    def test_renamed_dependency(
        self, runner: CliRunner, project: Path, fetched: List[str]
    ) -> None:
        manifest = project / "Cargo.toml"
        manifest.write_text(
            MANIFEST.replace(
                "[dev-dependencies]",
                'json = { package = "serde_json", version = "1.0.0" }\n\n'
                "[dev-dependencies]",
            ),
            encoding="utf-8",
        )

        result = runner.invoke(cli, ["update"])

        assert result.exit_code == 0, result.output
        assert "serde_json" in fetched
        assert "json" not in fetched
        assert _read(project)["dependencies"]["json"] == {
            "version": "1.0.117",
            "package": "serde_json",
        }


@pytest.mark.integration
class TestScaffoldCommands:
    """Tests for ``depi init`` and ``depi new``."""

    @pytest.fixture(autouse=True)
    def no_git(self, monkeypatch) -> None:
        monkeypatch.setattr(
            "depi.utils.filesystem._git_init",
            lambda root: "Initialized empty Git repository",
        )

    def test_new_with_dependencies(
        self, runner: CliRunner, tmp_path: Path, monkeypatch, fetched: List[str]
    ) -> None:
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(cli, ["new", "hello", "-D", "serde:derive/rand!dev"])

        assert result.exit_code == 0, result.output
        assert "INIT" in result.output
        assert "Initialized empty Git repository" in result.output

        document = _read(tmp_path / "hello")
        assert document["package"] == {
            "name": "hello",
            "version": "0.1.0",
            "edition": "2024",
        }
        assert document["dependencies"]["serde"] == {
            "version": "1.0.200",
            "features": ["derive"],
        }
        assert document["dev-dependencies"] == {"rand": "0.8.5"}
        assert (tmp_path / "hello" / "src" / "main.rs").exists()

    def test_new_refuses_non_empty_directory(
        self, runner: CliRunner, tmp_path: Path, monkeypatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "taken").mkdir()
        (tmp_path / "taken" / "file.txt").write_text("x", encoding="utf-8")

        result = runner.invoke(cli, ["new", "taken"])

        assert result.exit_code == 2

    def test_new_refuses_existing_file(
        self, runner: CliRunner, tmp_path: Path, monkeypatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "taken.txt").write_text("x", encoding="utf-8")

        result = runner.invoke(cli, ["new", "taken.txt"])

        assert result.exit_code == 2
        assert "is not a directory" in result.output
        assert (tmp_path / "taken.txt").read_text(encoding="utf-8") == "x"

    def test_new_bad_dependency_creates_nothing(
        self, runner: CliRunner, tmp_path: Path, monkeypatch, fetched: List[str]
    ) -> None:
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(cli, ["new", "hello", "-D", "nosuchcrate"])

        assert result.exit_code == 1
        assert not (tmp_path / "hello").exists()

    def test_init_names_project_after_directory(
        self, runner: CliRunner, tmp_path: Path, monkeypatch
    ) -> None:
        root = tmp_path / "my-app"
        root.mkdir()
        monkeypatch.chdir(root)

        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 0, result.output
        assert _read(root)["package"]["name"] == "my-app"
        assert "dependencies" not in _read(root)

    def test_init_refuses_existing_manifest(
        self, runner: CliRunner, project: Path
    ) -> None:
        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 1
        assert (project / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST


@pytest.mark.integration
class TestAliasCommands:
    """Tests for ``depi alias``."""

    def test_add_list_remove(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["alias", "add", "web", "axum/tokio:full"])
        assert result.exit_code == 0, result.output
        assert "Added alias 'web'" in result.output

        stored = json.loads((tmp_path / "aliases.json").read_text(encoding="utf-8"))
        assert stored == {"web": "axum/tokio:full"}

        result = runner.invoke(cli, ["alias", "list"])
        assert "ALIAS LIST" in result.output
        assert "web -> axum/tokio:full" in result.output

        result = runner.invoke(cli, ["alias", "remove", "web"])
        assert "Removed alias 'web'" in result.output

        result = runner.invoke(cli, ["alias", "list"])
        assert "No aliases defined" in result.output

    def test_replace_reports_previous(self, runner: CliRunner) -> None:
        runner.invoke(cli, ["alias", "add", "web", "axum"])

        result = runner.invoke(cli, ["alias", "add", "web", "actix-web"])

        assert result.exit_code == 0
        assert "'axum' was replaced by 'actix-web'" in result.output

    def test_invalid_expansion(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["alias", "add", "web", "axum/bad$"])

        assert result.exit_code == 2
        assert not (tmp_path / "aliases.json").exists()

    def test_invalid_name(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["alias", "add", "a/b", "axum"])
        assert result.exit_code == 2

    def test_remove_missing(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["alias", "remove", "ghost"])

        assert result.exit_code == 0
        assert "Alias 'ghost' does not exist" in result.output


@pytest.mark.unit
class TestMainEntryPoint:
    """Tests for depi.cli.main exit codes."""

    def test_version_returns_zero(self, monkeypatch) -> None:
        monkeypatch.setattr(sys, "argv", ["depi", "--version"])
        assert main() == 0

    def test_usage_error_returns_two(self, monkeypatch) -> None:
        monkeypatch.setattr(sys, "argv", ["depi", "no-such-command"])
        assert main() == 2

    def test_keyboard_interrupt_returns_130(self, monkeypatch) -> None:
        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr("depi.cli.cli.main", interrupted)
        assert main() == 130
