"""Interactive pygame viewer for cable grid puzzles."""

from __future__ import annotations

import argparse
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import pygame

from ..game import (
    FeedbackBoard,
    FrameScheduler,
    GlobalMatchValidator,
    PathStepValidator,
    PuzzleDefinition,
    PuzzleLoader,
    PuzzleValidator,
    RotationOutcome,
    create_validator,
)
from . import layout
from .toolkit import CableGridUI

logger = logging.getLogger(__name__)

PUZZLE_ENV_VAR = "CABLE_GRID_PUZZLE_ROOT"
DEFAULT_PUZZLE = "room6_cable"


@dataclass(frozen=True)
class UIDirectories:
    """Bundle with resolved directories required by the UI."""

    puzzle_root: Path


def _default_puzzle_root() -> Path:
    return Path(__file__).resolve().parents[1] / "puzzles"


def resolve_directories(check_exists: bool = True) -> UIDirectories:
    """Resolve the puzzle directory from the environment.

    Parameters
    ----------
    check_exists:
        When *True*, raise :class:`FileNotFoundError` if the resolved directory
        does not exist on disk.
    """

    value = os.environ.get(PUZZLE_ENV_VAR)
    puzzle_root = Path(value).expanduser() if value else _default_puzzle_root()

    if check_exists and not puzzle_root.exists():
        raise FileNotFoundError(f"Puzzle directory does not exist: {puzzle_root}")

    return UIDirectories(puzzle_root=puzzle_root)


class DoorIndicator:
    """Gate collaborator that only tracks whether the door is open."""

    def __init__(self) -> None:
        self.open = False

    def lock(self) -> None:
        self.open = False

    def unlock(self) -> None:
        self.open = True


class CableGridApp:
    """Window, frame loop and puzzle wiring for a single puzzle."""

    def __init__(self, puzzle_name: str = DEFAULT_PUZZLE, directories: Optional[UIDirectories] = None):
        pygame.init()
        pygame.font.init()
        self.directories = directories or resolve_directories()
        self.loader = PuzzleLoader(self.directories.puzzle_root)
        self.puzzle_name = puzzle_name
        self.font = pygame.font.Font(None, 28)
        self.small_font = pygame.font.Font(None, 22)
        self.clock = pygame.time.Clock()
        self.status_message = "Click a tile to rotate it."
        self.load_puzzle(puzzle_name)
        self.screen = pygame.display.set_mode(self.geometry.window)
        pygame.display.set_caption(f"Cable Grid - {self.definition.name}")
        self.last_time = time.perf_counter()

    def load_puzzle(self, name: str) -> None:
        self.definition: PuzzleDefinition = self.loader.load(name)
        self.puzzle_name = name
        self.gate = DoorIndicator()
        self.feedback = FeedbackBoard()
        self.scheduler = FrameScheduler()
        self.validator: PuzzleValidator = create_validator(
            self.definition,
            gate=self.gate,
            feedback=self.feedback,
            scheduler=self.scheduler,
        )
        self.ui = CableGridUI(
            self.validator,
            self.feedback,
            cell_size=layout.TILE_SIZE,
            slots=self.definition.slots,
        )
        width, height = self.ui.grid_size
        self.geometry = layout.compute_geometry(width, height)
        if self.validator.inert:
            logger.warning("Puzzle %s cannot be solved as configured", name)
            self.status_message = "Puzzle misconfigured, see log output."

    def insert_spare(self) -> bool:
        spares = [tile for tile in self.validator.tiles.values() if tile.grid_x < 0]
        for slot in self.definition.slots:
            for tile in spares:
                if slot.insert(self.validator, tile.tile_id):
                    self.status_message = f"Inserted {tile.tile_id} at {slot.cell}."
                    return True
        self.status_message = "No spare tile fits an open slot."
        return False

    def release_slot(self) -> None:
        for slot in self.definition.slots:
            tile_id = slot.release(self.validator)
            if tile_id is not None:
                self.status_message = f"Removed {tile_id} from {slot.cell}."
                return

    def progress_lines(self) -> List[str]:
        validator = self.validator
        lines = [self.definition.name, f"Variant: {self.definition.settings.variant}"]
        if isinstance(validator, PathStepValidator) and not validator.inert:
            lines.append(f"Step {validator.current_step_index}/{validator.last_index}")
        elif isinstance(validator, GlobalMatchValidator):
            lines.append("Solved" if validator.solved else "Unsolved")
        lines.append("Door open" if self.gate.open else "Door locked")
        return lines

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            raise SystemExit
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                raise SystemExit
            if event.key == pygame.K_s:
                self.insert_spare()
            elif event.key == pygame.K_x:
                self.release_slot()
            elif event.key == pygame.K_r:
                self.load_puzzle(self.puzzle_name)
                self.status_message = "Puzzle reloaded."
            return
        if event.type == pygame.MOUSEBUTTONDOWN:
            board_x, board_y, _, _ = self.geometry.board
            before = len(self.ui.outcomes)
            self.ui.process_events([event], offset=(board_x, board_y))
            if len(self.ui.outcomes) > before:
                outcome = self.ui.outcomes[-1]
                if outcome is RotationOutcome.SOLVED or self.validator.solved:
                    self.status_message = "The door is open."
                elif outcome is RotationOutcome.OUT_OF_TURN:
                    self.status_message = "Nothing happens. Another tile is next."

    def draw(self) -> None:
        self.screen.fill(layout.BACKGROUND_COLOR)
        board = self.ui.render()
        board_x, board_y, _, _ = self.geometry.board
        self.screen.blit(board, (board_x, board_y))

        panel_rect = pygame.Rect(*self.geometry.panel)
        pygame.draw.rect(self.screen, layout.PANEL_BACKGROUND_COLOR, panel_rect, border_radius=18)
        x = panel_rect.x + layout.UI_PANEL_PADDING
        y = panel_rect.y + layout.UI_PANEL_PADDING
        for line in self.progress_lines():
            text = self.font.render(line, True, layout.TEXT_COLOR)
            self.screen.blit(text, (x, y))
            y += text.get_height() + layout.UI_PANEL_SPACING
        hint = self.small_font.render(self.status_message, True, layout.ACCENT_COLOR)
        self.screen.blit(hint, (x, y))
        y += hint.get_height() + layout.UI_PANEL_SPACING
        for help_line in ("S: insert spare  X: pull tile", "R: reload  Esc: quit"):
            text = self.small_font.render(help_line, True, layout.TEXT_COLOR)
            self.screen.blit(text, (x, y))
            y += text.get_height() + 4
        pygame.display.flip()

    def run(self) -> None:
        while True:
            now = time.perf_counter()
            delta = now - self.last_time
            self.last_time = now
            for event in pygame.event.get():
                try:
                    self.handle_event(event)
                except SystemExit:
                    pygame.quit()
                    return
            self.scheduler.advance(delta)
            self.draw()
            self.clock.tick(60)


def bootstrap_directories() -> UIDirectories:
    """Return resolved directories and print a short bootstrap message."""

    directories = resolve_directories()
    print(
        "Cable Grid UI bootstrap\n"
        f"  puzzles: {directories.puzzle_root}\n"
        f"Set {PUZZLE_ENV_VAR} to point to a custom directory if needed."
    )
    return directories


def run(puzzle_name: str = DEFAULT_PUZZLE) -> None:
    """Entry point helper that instantiates and runs the UI."""

    app = CableGridApp(puzzle_name)
    app.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Cable Grid UI launcher")
    parser.add_argument("--puzzle", default=DEFAULT_PUZZLE, help="Name of the puzzle file to open.")
    parser.add_argument(
        "--list-puzzles",
        action="store_true",
        help="List puzzles in the resolved puzzle directory and exit.",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print resolved resource directories and exit without launching the UI.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    if args.list_puzzles:
        directories = resolve_directories()
        print("Available puzzles:")
        for name in PuzzleLoader(directories.puzzle_root).available():
            print(f"  {name}")
        return 0

    bootstrap_directories()
    if args.info:
        return 0
    run(args.puzzle)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation entry point
    raise SystemExit(main())
