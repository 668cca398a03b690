"""Simple command line demo for the cable grid logic."""

import logging
from pathlib import Path

from .game import (
    FeedbackBoard,
    FrameScheduler,
    PathStepValidator,
    PuzzleLoader,
    RotationOutcome,
    create_validator,
    describe_mask,
    rotations_to_match,
)


class ConsoleGate:
    def __init__(self) -> None:
        self.open = False

    def lock(self) -> None:
        self.open = False

    def unlock(self) -> None:
        if not self.open:
            print("  >> gate unlocked")
        self.open = True


def play_path(validator: PathStepValidator, scheduler: FrameScheduler, slots) -> None:
    while not validator.solved:
        cell = validator.expected_cell()
        if cell is None:
            break
        tile = validator.tile_at(cell)
        if tile is None:
            slot = next((slot for slot in slots if slot.cell == cell), None)
            spares = [t for t in validator.tiles.values() if t.grid_x < 0]
            if slot is None or not spares or not slot.insert(validator, spares[0].tile_id):
                print(f"  cell {cell} is empty and nothing fits, giving up")
                return
            print(f"  inserted {spares[0].tile_id} at {cell}")
            continue
        required = validator.solution.required_mask(cell)
        outcome = validator.rotate(tile.tile_id)
        print(f"  rotate {tile.tile_id} at {cell}: {describe_mask(tile.current_mask)} -> {outcome.value}")
        scheduler.advance(max(validator.settings.correct_delay, validator.settings.wrong_flash_delay))
        if outcome is RotationOutcome.LOCKED or rotations_to_match(tile.base_mask, required) is None:
            print(f"  tile at {cell} can never show {describe_mask(required)}, giving up")
            return


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    package_root = Path(__file__).resolve().parent
    loader = PuzzleLoader(package_root / "puzzles")

    definition = loader.load("room6_cable")
    gate = ConsoleGate()
    scheduler = FrameScheduler()
    validator = create_validator(
        definition, gate=gate, feedback=FeedbackBoard(), scheduler=scheduler
    )

    print("=== Cable Grid Demo ===")
    print(f"Puzzle: {definition.name} ({definition.settings.variant})")
    play_path(validator, scheduler, definition.slots)
    print(f"Steps confirmed: {validator.current_step_index}/{len(validator.path) - 1}")
    print(f"Gate open: {gate.open}")


if __name__ == "__main__":
    main()
