"""Request and response models exchanged with the transport layer."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from battleship_server.engine.board import AttackResult, BoardSnapshot, PlacementCheck
from battleship_server.engine.position import Position
from battleship_server.engine.ship import Ship


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class PositionModel(_Frozen):
    x: int
    y: int

    def to_position(self) -> Position:
        return Position(self.x, self.y)


class BoardCreationRequest(_Frozen):
    size: int | None = None


class ShipPlacementRequest(_Frozen):
    positions: list[PositionModel]

    def to_ship(self) -> Ship:
        """Build the domain ship; raises ValueError for an empty or repeated footprint."""
        return Ship(tuple(pos.to_position() for pos in self.positions))


class AttackRequest(_Frozen):
    position: PositionModel


class BoardCreationResponse(_Frozen):
    success: bool
    message: str
    board_id: UUID | None = None
    size: int | None = None


class ShipPlacementResponse(_Frozen):
    success: bool
    message: str
    reason: str | None = None

    @classmethod
    def from_check(cls, check: PlacementCheck) -> ShipPlacementResponse:
        if check is PlacementCheck.OK:
            return cls(success=True, message="Ship added successfully.", reason=check.value)
        return cls(
            success=False,
            message="Failed to add ship (overlap or invalid position).",
            reason=check.value,
        )


class AttackResponse(_Frozen):
    hit: bool
    sunk: bool
    message: str

    @classmethod
    def from_result(cls, result: AttackResult) -> AttackResponse:
        return cls(hit=result.hit, sunk=result.sunk, message=result.message)


class BoardView(_Frozen):
    board_id: UUID
    size: int
    ships: list[list[PositionModel]]
    sunk: list[bool]
    attacks: list[PositionModel]

    @classmethod
    def from_snapshot(cls, snapshot: BoardSnapshot) -> BoardView:
        ordered = sorted(snapshot.attacks, key=lambda pos: (pos.x, pos.y))
        return cls(
            board_id=snapshot.board_id,
            size=snapshot.size,
            ships=[[PositionModel(x=p.x, y=p.y) for p in ship] for ship in snapshot.ships],
            sunk=list(snapshot.sunk),
            attacks=[PositionModel(x=p.x, y=p.y) for p in ordered],
        )
