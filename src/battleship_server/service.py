"""Game service: the single entry point the transport layer calls."""

from __future__ import annotations

from uuid import UUID

from battleship_server.config import GameSettings, load_settings
from battleship_server.engine.board import AttackResult, Board, BoardSnapshot
from battleship_server.engine.position import Position
from battleship_server.engine.ship import Ship
from battleship_server.models import BoardCreationResponse, ShipPlacementResponse
from battleship_server.store import GameStateStore
from battleship_server.telemetry import EventSink, get_event_sink, get_tracer, record_metric

tracer = get_tracer("battleship_server.service")

BOARDS_CREATED_METRIC = "battleship_server_boards_created"


class GameService:
    """Creates boards, places ships and resolves attacks against the store.

    Failures that callers are expected to branch on (bad sizes, unknown
    boards, illegal placements) come back as response values, never as
    exceptions.
    """

    def __init__(
        self,
        store: GameStateStore | None = None,
        events: EventSink | None = None,
        board_events: EventSink | None = None,
        settings: GameSettings | None = None,
    ) -> None:
        self.store = store if store is not None else GameStateStore()
        self.events = events or get_event_sink(__name__)
        self._board_events = board_events
        self.settings = settings or load_settings()

    def create_board(self, size: int | None = None) -> BoardCreationResponse:
        """Create a board of ``size`` (the configured default when omitted)."""
        resolved = self.settings.default_board_size if size is None else size
        with tracer.start_as_current_span("service.create_board") as span:
            span.set_attribute("board.size", resolved)
            if resolved <= 0:
                self.events.warning("board_creation_rejected", size=resolved)
                return BoardCreationResponse(
                    success=False,
                    message=f"Board size must be greater than zero (got {resolved}).",
                )

            board = Board(resolved, events=self._board_events)
            self.store.insert(board)
            span.set_attribute("board.id", str(board.board_id))
            record_metric(BOARDS_CREATED_METRIC, 1, {"size": resolved})
            self.events.info("board_created", board_id=str(board.board_id), size=resolved)
            return BoardCreationResponse(
                success=True,
                message="Board created successfully.",
                board_id=board.board_id,
                size=resolved,
            )

    def add_ship(self, board_id: UUID, ship: Ship | None) -> ShipPlacementResponse:
        with tracer.start_as_current_span("service.add_ship") as span:
            span.set_attribute("board.id", str(board_id))
            board = self.store.lookup(board_id)
            if board is None:
                self.events.warning("board_not_found", board_id=str(board_id), operation="add_ship")
                return ShipPlacementResponse(
                    success=False,
                    message=f"AddShip failed: Board with ID {board_id} not found",
                    reason="not_found",
                )

            check = board.try_place_ship(ship)
            response = ShipPlacementResponse.from_check(check)
            event = "ship_added" if response.success else "ship_rejected"
            self.events.info(event, board_id=str(board_id), reason=check.value)
            return response

    def attack(self, board_id: UUID, position: Position) -> AttackResult | None:
        """Resolve an attack; ``None`` means the board does not exist."""
        with tracer.start_as_current_span("service.attack") as span:
            span.set_attribute("board.id", str(board_id))
            board = self.store.lookup(board_id)
            if board is None:
                self.events.warning("board_not_found", board_id=str(board_id), operation="attack")
                return None

            result = board.apply_attack(position)
            self.events.info(
                "attack_resolved",
                board_id=str(board_id),
                x=position.x,
                y=position.y,
                hit=result.hit,
                sunk=result.sunk,
            )
            return result

    def get_board(self, board_id: UUID) -> BoardSnapshot | None:
        board = self.store.lookup(board_id)
        return board.snapshot() if board is not None else None

    def remove_board(self, board_id: UUID) -> bool:
        return self.store.remove(board_id) is not None
