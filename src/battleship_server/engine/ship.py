"""Ship domain model for the Battleship engine."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .position import Position


@dataclass(frozen=True)
class ShipSnapshot:
    """Detached, immutable view of a ship."""

    positions: tuple[Position, ...]
    hits: frozenset[Position]

    @property
    def sunk(self) -> bool:
        return len(self.hits) == len(self.positions)


class Ship:
    """Represents a single ship: a fixed footprint and the cells hit so far."""

    __slots__ = ("_positions", "_position_set", "_hits")

    def __init__(self, positions: Iterable[Position] | None) -> None:
        if positions is None:
            raise ValueError("Ship positions are required.")
        footprint = tuple(positions)
        if not footprint:
            raise ValueError("A ship must occupy at least one position.")
        if not all(isinstance(pos, Position) for pos in footprint):
            raise ValueError("Ship positions must be Position values.")
        position_set = frozenset(footprint)
        if len(position_set) != len(footprint):
            raise ValueError("Ship positions must be unique.")
        self._positions = footprint
        self._position_set = position_set
        self._hits: set[Position] = set()

    def __repr__(self) -> str:
        return f"Ship(positions={self._positions!r})"

    def __len__(self) -> int:
        return len(self._positions)

    @property
    def positions(self) -> tuple[Position, ...]:
        """Return the ordered footprint."""
        return self._positions

    @property
    def hits(self) -> frozenset[Position]:
        """Return the footprint positions hit so far."""
        return frozenset(self._hits)

    def occupies(self, position: Position) -> bool:
        return position in self._position_set

    def register_hit(self, position: Position) -> bool:
        """Record a hit if the position belongs to this ship.

        Repeated hits on the same cell still return True; the hit-set does not
        grow.
        """
        if position not in self._position_set:
            return False
        self._hits.add(position)
        return True

    def is_sunk(self) -> bool:
        """Determine whether every position belonging to the ship has been hit."""
        return len(self._hits) == len(self._position_set)

    def overlapping(self, other: Ship) -> frozenset[Position]:
        """Return the positions shared with another ship."""
        return self._position_set & other._position_set

    def copy(self) -> Ship:
        """Return an unhit ship with the same footprint."""
        return Ship(self._positions)

    def snapshot(self) -> ShipSnapshot:
        return ShipSnapshot(positions=self._positions, hits=frozenset(self._hits))
