"""Headless interaction tests for the pygame based UI wrapper.

The fixtures in ``conftest.py`` force the SDL dummy drivers. A fixed
``cell_size`` keeps pixel positions predictable.
"""

from __future__ import annotations

from pathlib import Path

from cable_grid.game import (
    FeedbackBoard,
    FrameScheduler,
    PuzzleLoader,
    RotationOutcome,
    TileState,
    create_validator,
)
from cable_grid.ui import CableGridUI, DoorIndicator
from cable_grid.ui import layout

PUZZLE_ROOT = Path(__file__).resolve().parents[2] / "puzzles"

LINE_PUZZLE = {
    "name": "Line",
    "variant": "path",
    "tiles": [
        {"id": "feed", "cell": [0, 0], "mask": "E", "source": True},
        {"id": "relay", "cell": [1, 0], "mask": "N+S"},
        {"id": "lamp", "cell": [2, 0], "mask": "W", "target": True},
    ],
    "path": [[0, 0], [1, 0], [2, 0]],
    "solution": [
        {"cell": [0, 0], "mask": 2},
        {"cell": [1, 0], "mask": 10},
        {"cell": [2, 0], "mask": 8},
    ],
}


def make_ui(pygame, definition):
    feedback = FeedbackBoard()
    gate = DoorIndicator()
    scheduler = FrameScheduler()
    validator = create_validator(definition, gate=gate, feedback=feedback, scheduler=scheduler)
    ui = CableGridUI(validator, feedback, cell_size=32, slots=definition.slots)
    return ui, gate, scheduler


def test_click_rotates_tile_and_opens_door(pygame_module):
    pygame = pygame_module
    definition = PuzzleLoader(PUZZLE_ROOT).parse(LINE_PUZZLE)
    ui, gate, scheduler = make_ui(pygame, definition)

    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(48, 16))
    ui.process_events([event])

    assert ui.outcomes == [RotationOutcome.CORRECT]
    scheduler.advance(1.0)
    assert gate.open


def test_clicks_outside_board_or_on_locked_tiles(pygame_module):
    pygame = pygame_module
    definition = PuzzleLoader(PUZZLE_ROOT).parse(LINE_PUZZLE)
    ui, gate, _ = make_ui(pygame, definition)

    events = [
        pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(500, 16)),
        pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=3, pos=(48, 16)),
        pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(8, 8)),
    ]
    ui.process_events(events)

    assert ui.outcomes == [RotationOutcome.LOCKED]
    assert not gate.open


def test_rows_are_drawn_bottom_up(pygame_module):
    pygame = pygame_module
    definition = PuzzleLoader(PUZZLE_ROOT).load("room6_cable")
    ui, _, _ = make_ui(pygame, definition)

    assert ui.grid_size == (4, 4)
    assert ui.cell_from_pixel((5, 5)) == (0, 3)
    assert ui.cell_from_pixel((5, 127)) == (0, 0)
    assert ui.cell_from_pixel((127, 5)) == (3, 3)


def test_render_colours_follow_feedback_state(pygame_module):
    pygame = pygame_module
    definition = PuzzleLoader(PUZZLE_ROOT).load("room6_cable")
    ui, _, _ = make_ui(pygame, definition)

    surface = ui.render()

    source_pixel = tuple(surface.get_at((3, 99)))[:3]
    assert source_pixel == layout.STATE_COLORS[TileState.CONFIRMED]

    neutral_pixel = tuple(surface.get_at((35, 99)))[:3]
    assert neutral_pixel == layout.STATE_COLORS[TileState.NEUTRAL]

    empty_slot_pixel = tuple(surface.get_at((3, 35)))[:3]
    assert empty_slot_pixel == layout.EMPTY_SLOT_COLOR
