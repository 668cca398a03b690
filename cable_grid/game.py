"""Core logic for the cable grid puzzle."""

from __future__ import annotations

import heapq
import itertools
import json
import logging
import random
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]

MASK_BITS = 0xF
DEFAULT_SPACING = 1.1
MAX_SHUFFLE_ATTEMPTS = 16


class Connector(IntFlag):
    """Connection bits of a tile. North points towards increasing y."""

    NORTH = 1
    EAST = 2
    SOUTH = 4
    WEST = 8

    @staticmethod
    def from_name(name: str) -> "Connector":
        key = name.strip().upper()
        aliases = {"N": "NORTH", "E": "EAST", "S": "SOUTH", "W": "WEST"}
        key = aliases.get(key, key)
        try:
            return Connector[key]
        except KeyError as exc:
            raise ValueError(f"Unknown connector: {name}") from exc


def _rotate_once(mask: int) -> int:
    rotated = 0
    if mask & Connector.WEST:
        rotated |= Connector.NORTH
    if mask & Connector.NORTH:
        rotated |= Connector.EAST
    if mask & Connector.EAST:
        rotated |= Connector.SOUTH
    if mask & Connector.SOUTH:
        rotated |= Connector.WEST
    return int(rotated)


def rotate_mask(mask: int, steps: int = 1) -> int:
    """Rotate ``mask`` clockwise by ``steps`` quarter turns."""

    mask &= MASK_BITS
    for _ in range(steps % 4):
        mask = _rotate_once(mask)
    return mask


def rotations_to_match(base_mask: int, required_mask: int) -> Optional[int]:
    """Return the fewest clockwise steps turning ``base_mask`` into ``required_mask``."""

    for steps in range(4):
        if rotate_mask(base_mask, steps) == required_mask & MASK_BITS:
            return steps
    return None


def parse_mask(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid mask: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= MASK_BITS:
            raise ValueError(f"Mask out of range: {value}")
        return value
    if isinstance(value, str):
        value = [part for part in value.replace(",", "+").split("+") if part.strip()]
    if isinstance(value, (list, tuple)):
        mask = 0
        for name in value:
            mask |= Connector.from_name(str(name))
        return int(mask)
    raise ValueError(f"Invalid mask: {value!r}")


def describe_mask(mask: int) -> str:
    labels = [
        letter
        for letter, bit in (
            ("N", Connector.NORTH),
            ("E", Connector.EAST),
            ("S", Connector.SOUTH),
            ("W", Connector.WEST),
        )
        if mask & bit
    ]
    return "+".join(labels) if labels else "-"


# ----------------------------------------------------------------------
# Errors


class ConfigurationError(Exception):
    """A puzzle layout or definition that cannot be played as authored."""


class EmptyGridError(ConfigurationError):
    pass


class DuplicateCellError(ConfigurationError):
    pass


class MisalignedTileError(ConfigurationError):
    pass


class OutOfBoundsError(ConfigurationError):
    pass


class MissingEndpointError(ConfigurationError):
    pass


# ----------------------------------------------------------------------
# Tiles and grid


@dataclass(eq=False)
class Tile:
    """A rotatable pipe piece."""

    tile_id: str
    base_mask: int = 0
    position: Tuple[float, float] = (0.0, 0.0)
    is_source: bool = False
    is_target: bool = False
    locked: bool = False
    rotation_steps: int = 0
    grid_x: int = -1
    grid_y: int = -1
    piece_id: str = ""

    @property
    def current_mask(self) -> int:
        return rotate_mask(self.base_mask, self.rotation_steps)

    @property
    def is_endpoint(self) -> bool:
        return self.is_source or self.is_target

    @property
    def cell(self) -> Cell:
        return (self.grid_x, self.grid_y)

    def rotate_once(self) -> int:
        if self.locked:
            return self.current_mask
        self.rotation_steps = (self.rotation_steps + 1) % 4
        return self.current_mask

    def force_set_rotation(self, steps: int) -> None:
        self.rotation_steps = steps % 4

    def reset(self) -> None:
        self.rotation_steps = 0


def grid_coordinate(value: float, minimum: float, spacing: float, tolerance: float) -> Optional[int]:
    """Map a spatial coordinate onto the lattice.

    Returns ``None`` when ``value`` lies ``tolerance`` or further from the
    nearest lattice point; such layouts are rejected rather than snapped.
    """

    offset = (value - minimum) / spacing
    index = round(offset)
    if abs(offset - index) * spacing >= tolerance:
        return None
    return int(index)


@dataclass
class Grid:
    """Tiles arranged on integer cells, derived from their spatial layout."""

    width: int
    height: int
    origin: Tuple[float, float]
    spacing: float
    tolerance: float
    cells: Dict[Cell, Tile] = field(default_factory=dict)
    errors: List[ConfigurationError] = field(default_factory=list)
    source: Optional[Tile] = None
    target: Optional[Tile] = None

    @property
    def valid(self) -> bool:
        return self.source is not None and self.target is not None

    def inside(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, cell: Cell) -> Optional[Tile]:
        return self.cells.get(cell)

    def tiles(self) -> List[Tile]:
        return [self.cells[cell] for cell in sorted(self.cells, key=lambda c: (c[1], c[0]))]

    def cell_position(self, cell: Cell) -> Tuple[float, float]:
        return (
            self.origin[0] + cell[0] * self.spacing,
            self.origin[1] + cell[1] * self.spacing,
        )

    def rebuild(self, tiles: Iterable[Tile]) -> "Grid":
        """Re-derive the grid from ``tiles`` keeping this grid's origin and shape."""

        return build_grid(
            tiles,
            self.spacing,
            origin=self.origin,
            shape=(self.width, self.height),
            tolerance=self.tolerance,
        )


def _report(grid: Grid, error: ConfigurationError) -> None:
    logger.error("%s", error)
    grid.errors.append(error)


def build_grid(
    tiles: Iterable[Tile],
    spacing: float = DEFAULT_SPACING,
    *,
    origin: Optional[Tuple[float, float]] = None,
    shape: Optional[Tuple[int, int]] = None,
    tolerance: Optional[float] = None,
) -> Grid:
    """Infer grid coordinates for ``tiles`` from their positions.

    Raises :class:`EmptyGridError` when no tiles are supplied and
    :class:`ConfigurationError` for a non-positive spacing. Duplicate,
    misaligned and out-of-bounds tiles are rejected, logged and recorded in
    :attr:`Grid.errors`; the first tile claiming a cell keeps it.
    """

    tiles = list(tiles)
    if spacing <= 0:
        raise ConfigurationError(f"Grid spacing must be positive, got {spacing}")
    if not tiles and origin is None:
        raise EmptyGridError("No cable tiles supplied")
    if tolerance is None:
        tolerance = spacing / 2

    if origin is None:
        origin = (
            min(tile.position[0] for tile in tiles),
            min(tile.position[1] for tile in tiles),
        )

    grid = Grid(width=0, height=0, origin=origin, spacing=spacing, tolerance=tolerance)

    coords: List[Tuple[Tile, Cell]] = []
    for tile in tiles:
        gx = grid_coordinate(tile.position[0], origin[0], spacing, tolerance)
        gy = grid_coordinate(tile.position[1], origin[1], spacing, tolerance)
        if gx is None or gy is None:
            _report(
                grid,
                MisalignedTileError(
                    f"Tile {tile.tile_id} at {tile.position} is not aligned to spacing {spacing}"
                ),
            )
            continue
        coords.append((tile, (gx, gy)))

    if shape is None:
        grid.width = max((cell[0] for _, cell in coords), default=-1) + 1
        grid.height = max((cell[1] for _, cell in coords), default=-1) + 1
    else:
        grid.width, grid.height = shape

    for tile, cell in coords:
        if not grid.inside(cell):
            _report(grid, OutOfBoundsError(f"Tile {tile.tile_id} maps to {cell} outside the grid"))
            continue
        existing = grid.cells.get(cell)
        if existing is not None:
            _report(
                grid,
                DuplicateCellError(
                    f"Duplicate cell {cell} for {tile.tile_id} and {existing.tile_id}"
                ),
            )
            continue
        tile.grid_x, tile.grid_y = cell
        grid.cells[cell] = tile

    _find_endpoints(grid)
    logger.info("Cable grid created %dx%d with %d tiles", grid.width, grid.height, len(grid.cells))
    return grid


def _find_endpoints(grid: Grid) -> None:
    sources = [tile for tile in grid.tiles() if tile.is_source]
    targets = [tile for tile in grid.tiles() if tile.is_target]
    for label, found in (("SOURCE", sources), ("TARGET", targets)):
        if not found:
            _report(grid, MissingEndpointError(f"Missing {label} tile"))
        elif len(found) > 1:
            names = ", ".join(tile.tile_id for tile in found)
            _report(grid, ConfigurationError(f"More than one {label} tile: {names}"))
    grid.source = sources[0] if len(sources) == 1 else None
    grid.target = targets[0] if len(targets) == 1 else None


# ----------------------------------------------------------------------
# Solution


@dataclass(frozen=True)
class SolutionTable:
    """Required masks for the on-path cells, optionally with a traversal order."""

    required: Mapping[Cell, int]
    path: Tuple[Cell, ...] = ()

    def is_on_path(self, cell: Cell) -> bool:
        return cell in self.required or cell in self.path

    def required_mask(self, cell: Cell) -> Optional[int]:
        return self.required.get(cell)

    def cells(self) -> List[Cell]:
        return list(self.required)

    def check_path(self) -> None:
        if len(self.path) < 2:
            raise ConfigurationError("An ordered path needs at least a source and a target cell")
        if len(set(self.path)) != len(self.path):
            raise ConfigurationError("Ordered path visits a cell more than once")
        stray = set(self.required) - set(self.path)
        if stray:
            raise ConfigurationError(f"Required masks for cells off the ordered path: {sorted(stray)}")
        # The source and target ends are never stepped, so only the cells
        # between them need a required mask.
        missing = [cell for cell in self.path[1:-1] if cell not in self.required]
        if missing:
            raise ConfigurationError(f"Ordered path cells without a required mask: {missing}")


# ----------------------------------------------------------------------
# Collaborators


class TileState(Enum):
    NEUTRAL = "neutral"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    HIGHLIGHT = "highlight"


class Gate(Protocol):
    def lock(self) -> None: ...

    def unlock(self) -> None: ...


class FeedbackPort(Protocol):
    def set_tile_state(self, tile_id: str, state: TileState) -> None: ...


class Scheduler(Protocol):
    def after(self, duration: float, fn: Callable[[], None]) -> None: ...


class FrameScheduler:
    """Runs continuations from a frame loop once their delay has elapsed."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []
        self._counter = itertools.count()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def after(self, duration: float, fn: Callable[[], None]) -> None:
        due = self.now + max(0.0, float(duration))
        heapq.heappush(self._queue, (due, next(self._counter), fn))

    def advance(self, delta: float) -> int:
        self.now += max(0.0, float(delta))
        fired = 0
        while self._queue and self._queue[0][0] <= self.now:
            _, _, fn = heapq.heappop(self._queue)
            fn()
            fired += 1
        return fired


class FeedbackBoard:
    """Feedback port that remembers the latest state of every tile."""

    def __init__(self) -> None:
        self.states: Dict[str, TileState] = {}
        self.history: List[Tuple[str, TileState]] = []

    def set_tile_state(self, tile_id: str, state: TileState) -> None:
        self.states[tile_id] = state
        self.history.append((tile_id, state))

    def state_of(self, tile_id: str) -> TileState:
        return self.states.get(tile_id, TileState.NEUTRAL)


# ----------------------------------------------------------------------
# Puzzle definitions


VARIANTS = ("path", "global")


@dataclass
class PuzzleSettings:
    spacing: float = DEFAULT_SPACING
    correct_delay: float = 0.20
    wrong_flash_delay: float = 0.50
    blink_count: int = 3
    blink_duration: float = 0.25
    lock_off_path: bool = True
    variant: str = "path"
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.variant not in VARIANTS:
            raise ConfigurationError(f"Unknown puzzle variant: {self.variant}")


@dataclass
class TileSlot:
    """Socket at a grid cell that accepts a loose tile."""

    cell: Cell
    required_piece_id: str = ""
    inserted_base_mask: Optional[int] = None
    occupant: Optional[str] = None

    def accepts(self, tile: Tile) -> bool:
        if self.occupant is not None:
            return False
        if self.required_piece_id and tile.piece_id != self.required_piece_id:
            return False
        return True

    def insert(self, validator: "PuzzleValidator", tile_id: str) -> bool:
        tile = validator.tiles.get(tile_id)
        if tile is None or not self.accepts(tile):
            logger.debug("Slot %s rejected tile %s", self.cell, tile_id)
            return False
        previous_mask = tile.base_mask
        if self.inserted_base_mask is not None:
            tile.base_mask = self.inserted_base_mask
        if not validator.notify_inserted(tile_id, *self.cell):
            tile.base_mask = previous_mask
            return False
        self.occupant = tile_id
        return True

    def release(self, validator: "PuzzleValidator") -> Optional[str]:
        if self.occupant is None:
            return None
        tile_id, self.occupant = self.occupant, None
        validator.notify_removed(*self.cell)
        return tile_id


@dataclass
class PuzzleDefinition:
    name: str
    tiles: List[Tile]
    solution: SolutionTable
    settings: PuzzleSettings = field(default_factory=PuzzleSettings)
    spare_tiles: List[Tile] = field(default_factory=list)
    slots: List[TileSlot] = field(default_factory=list)
    description: str = ""

    @property
    def metadata(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "variant": self.settings.variant,
            "tiles": len(self.tiles),
            "on_path": len(self.solution.required),
        }


def _parse_cell(value: object) -> Cell:
    if isinstance(value, str):
        value = [token for token in value.strip("()[] ").split(",") if token.strip()]
    try:
        x, y = value  # type: ignore[misc]
        return (int(x), int(y))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid cell: {value!r}") from exc


class PuzzleLoader:
    """Load puzzle files stored as JSON."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def available(self) -> List[str]:
        return sorted(path.stem for path in self.root.glob("*.json"))

    def load(self, name: str) -> PuzzleDefinition:
        path = self.root / f"{name}.json"
        if not path.exists():
            raise FileNotFoundError(path)
        data = json.loads(path.read_text())
        return self.parse(data)

    def parse(self, data: Dict) -> PuzzleDefinition:
        settings_data = dict(data.get("settings", {}))
        settings = PuzzleSettings(
            spacing=float(settings_data.get("spacing", DEFAULT_SPACING)),
            correct_delay=float(settings_data.get("correct_delay", 0.20)),
            wrong_flash_delay=float(settings_data.get("wrong_flash_delay", 0.50)),
            blink_count=int(settings_data.get("blink_count", 3)),
            blink_duration=float(settings_data.get("blink_duration", 0.25)),
            lock_off_path=bool(settings_data.get("lock_off_path", True)),
            variant=str(data.get("variant", "path")).lower(),
            seed=settings_data.get("seed"),
        )
        spacing = settings.spacing

        tiles = [self._parse_tile(entry, spacing) for entry in data.get("tiles", [])]
        spare_tiles = [self._parse_tile(entry, spacing) for entry in data.get("spare_tiles", [])]

        required: Dict[Cell, int] = {}
        for entry in data.get("solution", []):
            try:
                required[_parse_cell(entry["cell"])] = parse_mask(entry["mask"])
            except (KeyError, ValueError) as exc:
                raise ConfigurationError(f"Invalid solution entry {entry!r}") from exc
        path = tuple(_parse_cell(cell) for cell in data.get("path", []))

        slots = []
        for entry in data.get("slots", []):
            base = entry.get("inserted_mask")
            slots.append(
                TileSlot(
                    cell=_parse_cell(entry["cell"]),
                    required_piece_id=str(entry.get("required_piece", "")),
                    inserted_base_mask=parse_mask(base) if base is not None else None,
                )
            )

        return PuzzleDefinition(
            name=data["name"],
            description=data.get("description", ""),
            tiles=tiles,
            spare_tiles=spare_tiles,
            solution=SolutionTable(required=required, path=path),
            settings=settings,
            slots=slots,
        )

    @staticmethod
    def _parse_tile(entry: Dict, spacing: float) -> Tile:
        if "position" in entry:
            x, y = entry["position"]
            position = (float(x), float(y))
        elif "cell" in entry:
            gx, gy = _parse_cell(entry["cell"])
            position = (gx * spacing, gy * spacing)
        else:
            position = (0.0, 0.0)
        try:
            mask = parse_mask(entry.get("mask", 0))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid mask for tile {entry.get('id')!r}") from exc
        return Tile(
            tile_id=str(entry["id"]),
            base_mask=mask,
            position=position,
            is_source=bool(entry.get("source", False)),
            is_target=bool(entry.get("target", False)),
            piece_id=str(entry.get("piece", "")),
        )


# ----------------------------------------------------------------------
# Validation


class RotationOutcome(Enum):
    UNKNOWN_TILE = "unknown_tile"
    BUSY = "busy"
    LOCKED = "locked"
    ROTATED = "rotated"
    OUT_OF_TURN = "out_of_turn"
    CORRECT = "correct"
    WRONG = "wrong"
    SOLVED = "solved"


class PuzzleValidator:
    """Owns the grid and progress state and reacts to player events."""

    def __init__(
        self,
        grid: Optional[Grid],
        solution: SolutionTable,
        *,
        gate: Gate,
        feedback: FeedbackPort,
        scheduler: Scheduler,
        settings: Optional[PuzzleSettings] = None,
        spare_tiles: Sequence[Tile] = (),
    ) -> None:
        self.grid = grid
        self.solution = solution
        self.gate = gate
        self.feedback = feedback
        self.scheduler = scheduler
        self.settings = settings or PuzzleSettings()
        self.busy = False
        self.solved = False
        self.tiles: Dict[str, Tile] = {}
        if grid is not None:
            self.tiles.update((tile.tile_id, tile) for tile in grid.tiles())
        self.tiles.update((tile.tile_id, tile) for tile in spare_tiles)

    @property
    def inert(self) -> bool:
        return self.grid is None or not self.grid.valid

    def start(self) -> None:
        """Apply the initial visual state and lock the gate."""

        self.apply_visual_state()

    # ------------------------------------------------------------------
    # Events
    def rotate(self, tile_id: str) -> RotationOutcome:
        tile = self.tiles.get(tile_id)
        if tile is None:
            logger.debug("Rotation for unknown tile %s ignored", tile_id)
            return RotationOutcome.UNKNOWN_TILE
        if self.busy:
            return RotationOutcome.BUSY
        if tile.locked:
            return RotationOutcome.LOCKED
        tile.rotate_once()
        if self.inert or self.grid.get(tile.cell) is not tile:
            return RotationOutcome.ROTATED
        return self._on_rotated(tile)

    def notify_inserted(self, tile_id: str, gx: int, gy: int, *, keep_rotation: bool = False) -> bool:
        tile = self.tiles.get(tile_id)
        if self.grid is None or tile is None or not self.grid.inside((gx, gy)):
            logger.debug("Insertion of %s at %s ignored", tile_id, (gx, gy))
            return False
        occupant = self.grid.get((gx, gy))
        if occupant is not None and occupant is not tile:
            _report(
                self.grid,
                DuplicateCellError(
                    f"Cell {(gx, gy)} already holds {occupant.tile_id}, {tile_id} rejected"
                ),
            )
            return False
        tile.position = self.grid.cell_position((gx, gy))
        if not keep_rotation:
            tile.reset()
        placed = [t for t in self.grid.tiles() if t is not tile]
        placed.append(tile)
        self._rebuild(placed)
        self._after_insert(tile)
        return True

    def notify_removed(self, gx: int, gy: int) -> None:
        if self.grid is None or not self.grid.inside((gx, gy)):
            logger.debug("Removal at %s ignored", (gx, gy))
            return
        removed = self.grid.get((gx, gy))
        placed = [t for t in self.grid.tiles() if t is not removed]
        self._rebuild(placed)
        if removed is not None:
            removed.grid_x = removed.grid_y = -1
        self._after_remove()

    def _rebuild(self, tiles: List[Tile]) -> None:
        self.grid = self.grid.rebuild(tiles)
        self.apply_visual_state()

    # ------------------------------------------------------------------
    # Visual state
    def apply_visual_state(self) -> None:
        if self.grid is None:
            self.gate.lock()
            return
        for tile in self.grid.tiles():
            self.feedback.set_tile_state(tile.tile_id, TileState.NEUTRAL)
            if self.settings.lock_off_path and not self.solution.is_on_path(tile.cell):
                tile.locked = True
                tile.base_mask = 0
            else:
                tile.locked = tile.is_endpoint
        self._restore_progress()
        if self.grid.source is not None:
            self.feedback.set_tile_state(self.grid.source.tile_id, TileState.CONFIRMED)
        if not self.solved:
            self.gate.lock()

    def set_all(self, state: TileState) -> None:
        for tile in self.grid.tiles():
            self.feedback.set_tile_state(tile.tile_id, state)

    def tile_at(self, cell: Cell) -> Optional[Tile]:
        return self.grid.get(cell) if self.grid is not None else None

    # ------------------------------------------------------------------
    # Variant hooks
    def _on_rotated(self, tile: Tile) -> RotationOutcome:
        raise NotImplementedError

    def _restore_progress(self) -> None:
        pass

    def _after_insert(self, tile: Tile) -> None:
        pass

    def _after_remove(self) -> None:
        pass


class PathStepValidator(PuzzleValidator):
    """Tiles must be solved one at a time in path order."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.current_step_index = 1
        self._path_ok = True
        try:
            self.solution.check_path()
        except ConfigurationError as exc:
            logger.error("%s", exc)
            self._path_ok = False

    @property
    def inert(self) -> bool:
        return super().inert or not self._path_ok

    @property
    def path(self) -> Tuple[Cell, ...]:
        return self.solution.path

    @property
    def last_index(self) -> int:
        return len(self.path) - 1

    def expected_cell(self) -> Optional[Cell]:
        if self.inert or not 1 <= self.current_step_index < self.last_index:
            return None
        return self.path[self.current_step_index]

    def _on_rotated(self, tile: Tile) -> RotationOutcome:
        expected = self.expected_cell()
        if expected is None:
            return RotationOutcome.ROTATED
        if tile.cell != expected:
            logger.debug("Tile %s rotated out of turn (expected %s)", tile.tile_id, expected)
            return RotationOutcome.OUT_OF_TURN

        if tile.current_mask == self.solution.required_mask(expected):
            self.busy = True
            self.feedback.set_tile_state(tile.tile_id, TileState.CONFIRMED)
            tile.locked = True
            self.scheduler.after(
                self.settings.correct_delay, lambda: self._finish_correct(tile, expected)
            )
            return RotationOutcome.CORRECT

        self.busy = True
        self.feedback.set_tile_state(tile.tile_id, TileState.REJECTED)
        self.scheduler.after(
            self.settings.wrong_flash_delay, lambda: self._finish_wrong(tile, expected)
        )
        return RotationOutcome.WRONG

    def _finish_correct(self, tile: Tile, cell: Cell) -> None:
        self.busy = False
        if self.tile_at(cell) is not tile or self.current_step_index >= self.last_index:
            logger.debug("Dropped stale confirmation for %s", tile.tile_id)
            return
        if self.path[self.current_step_index] != cell:
            return
        tile.locked = True
        self.feedback.set_tile_state(tile.tile_id, TileState.CONFIRMED)
        self.current_step_index += 1
        logger.info("Cable step %d/%d confirmed", self.current_step_index, self.last_index)
        if self.current_step_index == self.last_index:
            final = self.tile_at(self.path[self.last_index])
            if final is not None:
                self.feedback.set_tile_state(final.tile_id, TileState.CONFIRMED)
            self.solved = True
            logger.info("Cable puzzle solved, unlocking gate")
            self.gate.unlock()

    def _finish_wrong(self, tile: Tile, cell: Cell) -> None:
        self.busy = False
        if self.tile_at(cell) is tile:
            self.feedback.set_tile_state(tile.tile_id, TileState.NEUTRAL)

    def _restore_progress(self) -> None:
        if self.inert:
            return
        for index in range(1, self.current_step_index):
            cell = self.path[index]
            tile = self.tile_at(cell)
            if tile is None or tile.current_mask != self.solution.required_mask(cell):
                logger.info("Path progress truncated at %s", cell)
                self.current_step_index = index
                self.solved = False
                break
            tile.locked = True
            self.feedback.set_tile_state(tile.tile_id, TileState.CONFIRMED)
        if self.solved:
            final = self.tile_at(self.path[self.last_index])
            if final is not None:
                self.feedback.set_tile_state(final.tile_id, TileState.CONFIRMED)


class GlobalMatchValidator(PuzzleValidator):
    """The puzzle is solved once every on-path cell shows its required mask."""

    def __init__(self, *args, rng: Optional[random.Random] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.rng = rng or random.Random(self.settings.seed)

    def start(self) -> None:
        self.shuffle()
        super().start()

    def shuffle(self) -> None:
        """Give each rotatable on-path tile a random rotation, avoiding a solved start."""

        if self.grid is None:
            return
        movable = [
            tile
            for tile in self.grid.tiles()
            if self.solution.is_on_path(tile.cell) and not tile.is_endpoint
        ]
        for _ in range(MAX_SHUFFLE_ATTEMPTS):
            for tile in movable:
                tile.force_set_rotation(self.rng.randrange(4))
            if not self.all_match():
                return
        for tile in movable:
            if rotate_mask(tile.current_mask) != tile.current_mask:
                tile.force_set_rotation(tile.rotation_steps + 1)
                return
        if movable:
            logger.warning("Every rotatable tile is symmetric, puzzle starts solved")

    def all_match(self) -> bool:
        if self.inert:
            return False
        for cell, required in self.solution.required.items():
            tile = self.grid.get(cell)
            if tile is None or tile.current_mask != required:
                return False
        return True

    def check(self) -> RotationOutcome:
        if self.solved or not self.all_match():
            return RotationOutcome.ROTATED
        self.solved = True
        logger.info("Cable puzzle solved, unlocking gate")
        self.gate.unlock()
        self.busy = True
        self._blink(self.settings.blink_count)
        return RotationOutcome.SOLVED

    def _blink(self, remaining: int) -> None:
        if remaining <= 0:
            self.busy = False
            # Tiles may have been pulled and replaced while blinking.
            if not self.solved:
                self.check()
            return
        self.set_all(TileState.HIGHLIGHT)
        self.scheduler.after(self.settings.blink_duration, lambda: self._blink_off(remaining))

    def _blink_off(self, remaining: int) -> None:
        self.set_all(TileState.NEUTRAL)
        self.scheduler.after(self.settings.blink_duration, lambda: self._blink(remaining - 1))

    def _on_rotated(self, tile: Tile) -> RotationOutcome:
        return self.check()

    def _after_insert(self, tile: Tile) -> None:
        if not self.busy:
            self.check()

    def _after_remove(self) -> None:
        if self.solved:
            logger.info("Tile removed, cable puzzle no longer solved")
        self.solved = False
        self.gate.lock()


def create_validator(
    definition: PuzzleDefinition,
    *,
    gate: Gate,
    feedback: FeedbackPort,
    scheduler: Scheduler,
    rng: Optional[random.Random] = None,
) -> PuzzleValidator:
    """Build the grid for ``definition`` and return a started validator."""

    settings = definition.settings
    try:
        grid: Optional[Grid] = build_grid(definition.tiles, settings.spacing)
    except ConfigurationError as exc:
        logger.error("Puzzle %s left inert: %s", definition.name, exc)
        grid = None

    common = dict(
        gate=gate,
        feedback=feedback,
        scheduler=scheduler,
        settings=settings,
        spare_tiles=definition.spare_tiles,
    )
    validator: PuzzleValidator
    if settings.variant == "global":
        validator = GlobalMatchValidator(grid, definition.solution, rng=rng, **common)
    else:
        validator = PathStepValidator(grid, definition.solution, **common)
    validator.start()
    return validator
