"""Nametable mirroring arrangements."""

from enum import IntEnum


class Mirroring(IntEnum):
    """How the two physical nametables map onto the four logical ones."""

    HORIZONTAL = 0
    VERTICAL = 1
    ONE_SCREEN_LOW = 2
    ONE_SCREEN_HIGH = 3