"""User interface package for the cable grid puzzle."""

from .main import (
    PUZZLE_ENV_VAR,
    CableGridApp,
    DoorIndicator,
    UIDirectories,
    bootstrap_directories,
    main,
    resolve_directories,
    run,
)
from .toolkit import CableGridUI

__all__ = [
    "PUZZLE_ENV_VAR",
    "UIDirectories",
    "CableGridApp",
    "CableGridUI",
    "DoorIndicator",
    "bootstrap_directories",
    "main",
    "resolve_directories",
    "run",
]
