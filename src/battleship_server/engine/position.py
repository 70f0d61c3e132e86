"""Grid coordinates for the Battleship engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """Immutable, value-equal board coordinate."""

    x: int
    y: int

    def __str__(self) -> str:
        return f"({self.x},{self.y})"
