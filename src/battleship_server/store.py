"""In-memory, process-wide registry of boards."""

from __future__ import annotations

import threading
from uuid import UUID

from battleship_server.engine.board import Board
from battleship_server.telemetry import EventSink, get_event_sink


class GameStateStore:
    """Maps board identifiers to boards behind a single lock.

    Lookups hand out the live ``Board``; mutation of a board is guarded by
    that board's own lock, not by the store.
    """

    def __init__(self, events: EventSink | None = None) -> None:
        self._boards: dict[UUID, Board] = {}
        self._lock = threading.Lock()
        self.events = events or get_event_sink(__name__)

    def __contains__(self, board_id: object) -> bool:
        with self._lock:
            return board_id in self._boards

    def __len__(self) -> int:
        with self._lock:
            return len(self._boards)

    def insert(self, board: Board) -> None:
        """Store a board under its identifier; an existing entry is replaced."""
        with self._lock:
            replaced = board.board_id in self._boards
            self._boards[board.board_id] = board
        if replaced:
            self.events.warning("board_replaced", board_id=str(board.board_id))
        else:
            self.events.info("board_stored", board_id=str(board.board_id))

    def lookup(self, board_id: UUID) -> Board | None:
        with self._lock:
            return self._boards.get(board_id)

    def remove(self, board_id: UUID) -> Board | None:
        with self._lock:
            board = self._boards.pop(board_id, None)
        if board is not None:
            self.events.info("board_removed", board_id=str(board_id))
        return board

    def ids(self) -> list[UUID]:
        with self._lock:
            return list(self._boards)
