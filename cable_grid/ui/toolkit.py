"""Minimal pygame based UI helpers for headless testing.

Rendering is deterministic so the board can be exercised in automated tests
using the SDL ``dummy`` video driver.
"""

from __future__ import annotations

import os
from typing import Iterable, List, Optional, Tuple

from ..game import (
    Cell,
    Connector,
    FeedbackBoard,
    PuzzleValidator,
    RotationOutcome,
    TileSlot,
)
from . import layout


# Imported lazily in ``ensure_pygame`` so test environments can select the
# SDL drivers first.
_PYGAME = None


def ensure_pygame():
    global _PYGAME
    if _PYGAME is None:
        os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
        _PYGAME = __import__("pygame")
        _PYGAME.display.init()
        _PYGAME.font.init()
    return _PYGAME


class CableGridUI:
    """Small pygame wrapper drawing the board and forwarding clicks."""

    def __init__(
        self,
        validator: PuzzleValidator,
        feedback: FeedbackBoard,
        *,
        cell_size: int = 32,
        slots: Iterable[TileSlot] = (),
        surface=None,
        use_display: bool = False,
    ) -> None:
        pygame = ensure_pygame()
        self.validator = validator
        self.feedback = feedback
        self.cell_size = cell_size
        self.slots = list(slots)
        width, height = self.grid_size
        self.surface = surface or pygame.Surface((width * cell_size, height * cell_size))
        self.screen = None
        if use_display:
            self.screen = pygame.display.set_mode(self.surface.get_size())
        self.outcomes: List[RotationOutcome] = []

    @property
    def grid_size(self) -> Tuple[int, int]:
        grid = self.validator.grid
        if grid is None:
            return (1, 1)
        return (max(1, grid.width), max(1, grid.height))

    # ------------------------------------------------------------------
    # Input handling
    def process_events(self, events: Iterable[object], offset: Tuple[int, int] = (0, 0)) -> None:
        pygame = ensure_pygame()
        for event in events:
            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                pos = (event.pos[0] - offset[0], event.pos[1] - offset[1])
                self._handle_click(pos)

    def cell_from_pixel(self, pos: Tuple[int, int]) -> Optional[Cell]:
        x, y = pos
        if x < 0 or y < 0:
            return None
        width, height = self.grid_size
        column = x // self.cell_size
        row = y // self.cell_size
        # Row 0 is drawn at the bottom so North points up the screen.
        cell = (column, height - 1 - row)
        if not (0 <= cell[0] < width and 0 <= cell[1] < height):
            return None
        return cell

    def _cell_rect(self, cell: Cell):
        pygame = ensure_pygame()
        _, height = self.grid_size
        return pygame.Rect(
            cell[0] * self.cell_size,
            (height - 1 - cell[1]) * self.cell_size,
            self.cell_size,
            self.cell_size,
        )

    def _handle_click(self, pos: Tuple[int, int]) -> None:
        cell = self.cell_from_pixel(pos)
        if cell is None:
            return
        tile = self.validator.tile_at(cell)
        if tile is None:
            return
        self.outcomes.append(self.validator.rotate(tile.tile_id))

    # ------------------------------------------------------------------
    # Rendering helpers
    def render(self):
        pygame = ensure_pygame()
        self.surface.fill(layout.BOARD_BACKGROUND_COLOR)
        self._draw_slots()
        self._draw_tiles()
        self._draw_grid()
        if self.screen:
            self.screen.blit(self.surface, (0, 0))
            pygame.display.flip()
        return self.surface

    def _draw_grid(self) -> None:
        pygame = ensure_pygame()
        width, height = self.grid_size
        for x in range(width):
            for y in range(height):
                pygame.draw.rect(self.surface, layout.GRID_LINE_COLOR, self._cell_rect((x, y)), 1)

    def _draw_slots(self) -> None:
        for slot in self.slots:
            if self.validator.tile_at(slot.cell) is None:
                self.surface.fill(layout.EMPTY_SLOT_COLOR, self._cell_rect(slot.cell))

    def _draw_tiles(self) -> None:
        pygame = ensure_pygame()
        grid = self.validator.grid
        if grid is None:
            return
        thickness = max(2, int(self.cell_size * layout.CONNECTOR_WIDTH_RATIO))
        half = self.cell_size // 2
        for tile in grid.tiles():
            rect = self._cell_rect(tile.cell)
            color = layout.STATE_COLORS[self.feedback.state_of(tile.tile_id)]
            self.surface.fill(color, rect)
            line_color = layout.LOCKED_CONNECTOR_COLOR if tile.locked else layout.CONNECTOR_COLOR
            mask = tile.current_mask
            for bit, (dx, dy) in (
                (Connector.NORTH, (0, -half)),
                (Connector.EAST, (half, 0)),
                (Connector.SOUTH, (0, half)),
                (Connector.WEST, (-half, 0)),
            ):
                if mask & bit:
                    end = (rect.centerx + dx, rect.centery + dy)
                    pygame.draw.line(self.surface, line_color, rect.center, end, thickness)


__all__ = ["CableGridUI", "ensure_pygame"]
