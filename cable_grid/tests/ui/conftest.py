"""Shared pytest fixtures for UI tests.

The tests force pygame into a deterministic headless configuration by using
the SDL ``dummy`` video and audio drivers.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")


@pytest.fixture(scope="session")
def pygame_module() -> Generator[object, None, None]:
    import pygame

    pygame.display.init()
    pygame.font.init()
    try:
        yield pygame
    finally:
        pygame.quit()
