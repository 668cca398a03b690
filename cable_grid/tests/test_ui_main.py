from __future__ import annotations

from pathlib import Path

import pytest

from cable_grid.ui.main import (
    PUZZLE_ENV_VAR,
    UIDirectories,
    bootstrap_directories,
    main,
    resolve_directories,
)
from cable_grid.ui import layout


def test_resolve_directories_returns_package_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(PUZZLE_ENV_VAR, raising=False)
    directories = resolve_directories()

    assert isinstance(directories, UIDirectories)
    assert directories.puzzle_root.exists()
    assert (directories.puzzle_root / "room6_cable.json").exists()


def test_resolve_directories_honours_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    puzzle_dir = tmp_path / "puzzles"
    puzzle_dir.mkdir()

    monkeypatch.setenv(PUZZLE_ENV_VAR, str(puzzle_dir))

    assert resolve_directories().puzzle_root == puzzle_dir


def test_resolve_directories_errors_on_missing_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv(PUZZLE_ENV_VAR, str(tmp_path / "missing_puzzles"))

    with pytest.raises(FileNotFoundError):
        resolve_directories()
    assert resolve_directories(check_exists=False).puzzle_root == tmp_path / "missing_puzzles"


def test_bootstrap_prints_message(capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(PUZZLE_ENV_VAR, raising=False)
    directories = bootstrap_directories()
    output = capsys.readouterr().out

    assert "Cable Grid UI bootstrap" in output
    assert str(directories.puzzle_root) in output


def test_cli_lists_puzzles(capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(PUZZLE_ENV_VAR, raising=False)
    exit_code = main(["--list-puzzles"])
    output = capsys.readouterr().out

    assert exit_code == 0
    assert "Available puzzles" in output
    assert "room6_cable" in output
    assert "relay_junction" in output


def test_cli_info_does_not_open_window(capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(PUZZLE_ENV_VAR, raising=False)

    assert main(["--info"]) == 0
    assert "Cable Grid UI bootstrap" in capsys.readouterr().out


def test_geometry_places_panel_right_of_board():
    geometry = layout.compute_geometry(4, 4)
    board_x, board_y, board_width, board_height = geometry.board
    panel_x, _, panel_width, _ = geometry.panel

    assert board_width == 4 * layout.TILE_SIZE
    assert board_height == 4 * layout.TILE_SIZE
    assert panel_x == board_x + board_width + layout.GRID_PADDING
    assert geometry.window[0] == panel_x + panel_width + layout.BOARD_OUTER_PADDING
