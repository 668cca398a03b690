"""Cable Grid puzzle package."""

from .game import (
    FeedbackBoard,
    FrameScheduler,
    GlobalMatchValidator,
    PathStepValidator,
    PuzzleLoader,
    SolutionTable,
    Tile,
    build_grid,
    create_validator,
)
from .ui import CableGridUI

__all__ = [
    "FeedbackBoard",
    "FrameScheduler",
    "GlobalMatchValidator",
    "PathStepValidator",
    "PuzzleLoader",
    "SolutionTable",
    "Tile",
    "build_grid",
    "create_validator",
    "CableGridUI",
]
