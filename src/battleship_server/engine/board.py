"""Single-board state machine for the Battleship engine."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID, uuid4

from battleship_server.telemetry import EventSink, get_event_sink, get_tracer, record_metric

from .position import Position
from .ship import Ship, ShipSnapshot

tracer = get_tracer("battleship_server.engine.board")

PLACEMENT_METRIC = "battleship_server_ship_placements"
ATTACK_METRIC = "battleship_server_attacks"


class PlacementCheck(Enum):
    """Outcome of validating a ship against a board."""

    OK = "ok"
    MISSING_SHIP = "missing_ship"
    OUT_OF_BOUNDS = "out_of_bounds"
    OVERLAP = "overlap"


@dataclass(frozen=True)
class AttackResult:
    """Outcome of a single attack."""

    hit: bool
    sunk: bool
    message: str

    @classmethod
    def repeat(cls) -> AttackResult:
        return cls(hit=False, sunk=False, message="Position already attacked.")

    @classmethod
    def miss(cls) -> AttackResult:
        return cls(hit=False, sunk=False, message="Miss!")

    @classmethod
    def hit_ship(cls, sunk: bool) -> AttackResult:
        return cls(hit=True, sunk=sunk, message="Ship sunk!" if sunk else "Hit!")


@dataclass(frozen=True)
class BoardSnapshot:
    """Immutable view of a board for state queries."""

    board_id: UUID
    size: int
    ships: tuple[tuple[Position, ...], ...]
    sunk: tuple[bool, ...]
    attacks: frozenset[Position]

    def all_ships_sunk(self) -> bool:
        return bool(self.sunk) and all(self.sunk)


def _describe(positions: Iterable[Position]) -> str:
    return ", ".join(str(pos) for pos in positions)


@dataclass(eq=False)
class Board:
    """One size×size grid, its fleet and its attack history.

    Placements and attacks are serialised per board through ``_lock``; both
    only ever grow the board's state. Accepted ships are copied on entry,
    so hit state is owned by the board alone.
    """

    size: int = 10
    board_id: UUID | None = None
    events: EventSink | None = field(default=None, repr=False)
    _ships: list[Ship] = field(init=False, repr=False, default_factory=list)
    _attacks: set[Position] = field(init=False, repr=False, default_factory=set)
    _lock: threading.RLock = field(init=False, repr=False, default_factory=threading.RLock)

    def __post_init__(self) -> None:
        if not isinstance(self.size, int) or isinstance(self.size, bool):
            raise ValueError("Board size must be an integer.")
        if self.size <= 0:
            raise ValueError("Board size must be greater than zero.")
        if self.board_id is None:
            self.board_id = uuid4()
        if self.events is None:
            self.events = get_event_sink(__name__)
        self.events.info("board_created", board_id=str(self.board_id), size=self.size)

    @property
    def ships(self) -> tuple[ShipSnapshot, ...]:
        """Return detached views of the placed ships, in placement order."""
        with self._lock:
            return tuple(ship.snapshot() for ship in self._ships)

    @property
    def attacks(self) -> frozenset[Position]:
        with self._lock:
            return frozenset(self._attacks)

    def is_valid_position(self, position: Position) -> bool:
        """Check whether a position lies inside the board boundaries."""
        return 0 <= position.x < self.size and 0 <= position.y < self.size

    def check_placement(self, ship: Ship | None) -> PlacementCheck:
        """Determine whether a ship can be placed, bounds before overlap."""
        if ship is None:
            return PlacementCheck.MISSING_SHIP
        with self._lock:
            if not all(self.is_valid_position(pos) for pos in ship.positions):
                return PlacementCheck.OUT_OF_BOUNDS
            if any(ship.overlapping(existing) for existing in self._ships):
                return PlacementCheck.OVERLAP
            return PlacementCheck.OK

    def place_ship(self, ship: Ship | None) -> bool:
        """Add ship to the board if placement is valid."""
        return self.try_place_ship(ship) is PlacementCheck.OK

    def try_place_ship(self, ship: Ship | None) -> PlacementCheck:
        """Add ship to the board if placement is valid, reporting why not otherwise."""
        with tracer.start_as_current_span("board.place_ship") as span:
            span.set_attribute("board.id", str(self.board_id))
            with self._lock:
                check = self.check_placement(ship)
                span.set_attribute("placement.result", check.value)
                record_metric(PLACEMENT_METRIC, 1, {"result": check.value})
                if check is not PlacementCheck.OK:
                    self._report_rejection(ship, check)
                    return check
                ship = ship.copy()
                self._ships.append(ship)

            span.set_attribute("ship.length", len(ship))
            self.events.info(
                "ship_placed",
                board_id=str(self.board_id),
                positions=_describe(ship.positions),
            )
            return check

    def apply_attack(self, position: Position) -> AttackResult:
        """Register an attack at this board and return its outcome.

        A position resolves at most once; later attacks on it are no-ops.
        """
        with tracer.start_as_current_span("board.apply_attack") as span:
            span.set_attribute("board.id", str(self.board_id))
            span.set_attribute("attack.x", position.x)
            span.set_attribute("attack.y", position.y)
            with self._lock:
                result, outcome = self._resolve_attack(position)

            span.set_attribute("attack.outcome", outcome)
            record_metric(ATTACK_METRIC, 1, {"outcome": outcome})
            fields = {"board_id": str(self.board_id), "x": position.x, "y": position.y}
            if outcome == "repeat":
                self.events.info("attack_repeated", **fields)
            elif result.hit:
                self.events.info("attack_hit", sunk=result.sunk, **fields)
            else:
                self.events.info("attack_missed", **fields)
            return result

    def snapshot(self) -> BoardSnapshot:
        """Return an immutable copy of the board's current state."""
        with self._lock:
            return BoardSnapshot(
                board_id=self.board_id,
                size=self.size,
                ships=tuple(ship.positions for ship in self._ships),
                sunk=tuple(ship.is_sunk() for ship in self._ships),
                attacks=frozenset(self._attacks),
            )

    def all_ships_sunk(self) -> bool:
        with self._lock:
            return bool(self._ships) and all(ship.is_sunk() for ship in self._ships)

    def _resolve_attack(self, position: Position) -> tuple[AttackResult, str]:
        if position in self._attacks:
            return AttackResult.repeat(), "repeat"
        self._attacks.add(position)
        for ship in self._ships:
            if ship.register_hit(position):
                sunk = ship.is_sunk()
                return AttackResult.hit_ship(sunk), "sunk" if sunk else "hit"
        return AttackResult.miss(), "miss"

    def _report_rejection(self, ship: Ship | None, check: PlacementCheck) -> None:
        fields: dict[str, str] = {"board_id": str(self.board_id), "reason": check.value}
        if check is PlacementCheck.OUT_OF_BOUNDS:
            invalid = [pos for pos in ship.positions if not self.is_valid_position(pos)]
            fields["invalid_positions"] = _describe(invalid)
        elif check is PlacementCheck.OVERLAP:
            overlap: set[Position] = set()
            for existing in self._ships:
                overlap |= ship.overlapping(existing)
            fields["overlapping_positions"] = _describe(sorted(overlap, key=lambda p: (p.x, p.y)))
        self.events.warning("ship_placement_failed", **fields)
