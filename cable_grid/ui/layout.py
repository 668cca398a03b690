"""Layout constants for the cable grid UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from ..game import TileState

# Tile metrics
TILE_SIZE: int = 96
GRID_PADDING: int = 24
BOARD_OUTER_PADDING: int = 32
CONNECTOR_WIDTH_RATIO: float = 0.18

# UI panel metrics
UI_PANEL_WIDTH: int = 300
UI_PANEL_PADDING: int = 24
UI_PANEL_SPACING: int = 12

# Colors expressed as RGB tuples
BACKGROUND_COLOR: Tuple[int, int, int] = (12, 14, 26)
BOARD_BACKGROUND_COLOR: Tuple[int, int, int] = (20, 24, 44)
PANEL_BACKGROUND_COLOR: Tuple[int, int, int] = (32, 36, 60)
GRID_LINE_COLOR: Tuple[int, int, int] = (58, 64, 96)
TEXT_COLOR: Tuple[int, int, int] = (232, 236, 244)
ACCENT_COLOR: Tuple[int, int, int] = (255, 94, 0)
CONNECTOR_COLOR: Tuple[int, int, int] = (210, 214, 226)
LOCKED_CONNECTOR_COLOR: Tuple[int, int, int] = (120, 124, 140)
EMPTY_SLOT_COLOR: Tuple[int, int, int] = (90, 60, 40)

STATE_COLORS: Dict[TileState, Tuple[int, int, int]] = {
    TileState.NEUTRAL: (46, 46, 46),
    TileState.CONFIRMED: (40, 170, 80),
    TileState.REJECTED: (200, 50, 50),
    TileState.HIGHLIGHT: (250, 220, 90),
}


@dataclass(frozen=True)
class BoardGeometry:
    """Pixel rectangles for the major UI regions."""

    board: Tuple[int, int, int, int]
    panel: Tuple[int, int, int, int]
    window: Tuple[int, int]


def compute_geometry(grid_width: int, grid_height: int) -> BoardGeometry:
    """Compute useful rectangles for rendering the game window."""

    board_width = grid_width * TILE_SIZE
    board_height = grid_height * TILE_SIZE

    board_x = BOARD_OUTER_PADDING
    board_y = BOARD_OUTER_PADDING

    panel_x = board_x + board_width + GRID_PADDING
    panel_height = max(board_height, 240)

    window_width = panel_x + UI_PANEL_WIDTH + BOARD_OUTER_PADDING
    window_height = board_y + panel_height + BOARD_OUTER_PADDING

    return BoardGeometry(
        board=(board_x, board_y, board_width, board_height),
        panel=(panel_x, board_y, UI_PANEL_WIDTH, panel_height),
        window=(window_width, window_height),
    )
