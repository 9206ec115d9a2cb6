"""CLI tests for the check, scan, and rename commands."""

import json
import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from screenbutler.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env: dict[str, Any] = dict(os.environ)
    env["HOME"] = str(tmp_path)
    env["OPENAI_API_KEY"] = None
    return env


@pytest.fixture
def inbox(tmp_path: Path) -> Path:
    root = tmp_path / "inbox"
    root.mkdir()
    (root / "IMG_0001.jpg").write_bytes(b"jpeg")
    (root / "Beach_Sunset_Hawaii.jpg").write_bytes(b"jpeg")
    (root / "Albums").mkdir()
    return root


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "ScreenButler suggests descriptive names" in result.output
    for command in ("check", "scan", "rename", "config"):
        assert command in result.output


def test_check_reports_verdicts_as_json() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["check", "IMG_4821.HEIC", "Beach_Sunset_Hawaii.jpg", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["results"] == [
        {"name": "IMG_4821.HEIC", "ambiguous": True},
        {"name": "Beach_Sunset_Hawaii.jpg", "ambiguous": False},
    ]


def test_check_prints_table() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["check", "screenshot_2023.png"])

    assert result.exit_code == 0
    assert "screenshot_2023.png" in result.output
    assert "yes" in result.output


def test_scan_lists_ambiguous_files(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["scan", str(inbox), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [entry["name"] for entry in payload["entries"]] == ["IMG_0001.jpg"]
    assert payload["entries"][0]["kind"] == "image"
    assert payload["counts"] == {"total": 3, "ambiguous": 1}


def test_scan_all_includes_folders(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["scan", str(inbox), "--all", "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0
    names = [entry["name"] for entry in json.loads(result.stdout)["entries"]]
    assert names == ["Albums", "Beach_Sunset_Hawaii.jpg", "IMG_0001.jpg"]


def test_scan_summary_line(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["scan", str(inbox), "--summary"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "entries=3" in result.output
    assert "ambiguous=1" in result.output


def test_rename_with_yes_applies_fallback_names(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["rename", str(inbox), "--yes"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    assert "Renamed 1 of 1 files." in result.output
    assert (inbox / "Img 0001.jpg").exists()
    assert not (inbox / "IMG_0001.jpg").exists()
    assert (inbox / "Beach_Sunset_Hawaii.jpg").exists()


def test_rename_dry_run_json_leaves_files(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["rename", str(inbox), "--yes", "--dry-run", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["context"]["dry_run"] is True
    assert payload["context"]["model"] is False
    assert payload["result"] is None
    (item,) = payload["snapshot"]["items"]
    assert item["suggestion"] == "Img 0001"
    assert item["decision"] == "approved"
    assert item["source"] == "fallback"
    assert (inbox / "IMG_0001.jpg").exists()


def test_rename_json_reports_results(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["rename", str(inbox), "--file", "Beach_Sunset_Hawaii.jpg", "--yes", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["result"]["summary"] == "Renamed 1 of 1 files."
    assert payload["result"]["renamed"][0]["to"].endswith("Beach Sunset Hawaii.jpg")
    assert (inbox / "Beach Sunset Hawaii.jpg").exists()


def test_rename_interactive_edit(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["rename", str(inbox)],
        input="e\nHoliday Beach\n",
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert (inbox / "Holiday Beach.jpg").exists()
    assert "Renamed 1 of 1 files." in result.output


def test_rename_interactive_reject(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["rename", str(inbox)], input="r\n", env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert "No suggestions approved" in result.output
    assert (inbox / "IMG_0001.jpg").exists()


def test_rename_reports_collisions(tmp_path: Path, inbox: Path) -> None:
    (inbox / "Img 0001.jpg").write_bytes(b"existing")
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["rename", str(inbox), "--file", "IMG_0001.jpg", "--yes"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert "destination_exists" in result.output
    assert "Renamed 0 of 1 files." in result.output
    assert (inbox / "IMG_0001.jpg").exists()


def test_rename_without_candidates(tmp_path: Path) -> None:
    root = tmp_path / "tidy"
    root.mkdir()
    (root / "Family_Dinner.jpg").write_bytes(b"jpeg")
    runner = CliRunner()

    result = runner.invoke(cli, ["rename", str(root), "--yes"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "No files need renaming." in result.output


def test_rename_json_requires_noninteractive_mode(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["rename", str(inbox), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"]["code"] == "cli_error"


def test_rename_unknown_file_is_an_error(tmp_path: Path, inbox: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["rename", str(inbox), "--file", "missing.png"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code != 0
    assert "missing.png" in result.output
