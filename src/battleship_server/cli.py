"""Line-oriented console driver for the Battleship game service.

Commands, one per line::

    create [size]
    ship <board_id> x,y [x,y ...]
    attack <board_id> x,y
    show <board_id>
    quit
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Iterable, TextIO
from uuid import UUID

from pydantic import ValidationError

from battleship_server.config import GameSettings
from battleship_server.models import (
    AttackRequest,
    AttackResponse,
    BoardCreationRequest,
    BoardView,
    PositionModel,
    ShipPlacementRequest,
)
from battleship_server.service import GameService
from battleship_server.telemetry import TelemetryConfig, init_telemetry, shutdown_telemetry

PROMPT = "> "


class CommandError(ValueError):
    """Raised for malformed console input."""


def _position_from_input(text: str) -> PositionModel:
    parts = text.replace("(", "").replace(")", "").split(",")
    if len(parts) != 2:
        raise CommandError(f"Use coordinates like 3,4 (got {text!r}).")
    return PositionModel(x=parts[0].strip(), y=parts[1].strip())


def _board_id_from_input(text: str) -> UUID:
    try:
        return UUID(text)
    except ValueError as exc:
        raise CommandError(f"Not a board id: {text!r}.") from exc


def _error(message: str) -> str:
    return json.dumps({"error": message})


def handle_command(service: GameService, line: str) -> str | None:
    """Run one command and return the JSON line to print (None for blanks)."""
    words = line.split()
    if not words:
        return None
    command, args = words[0].lower(), words[1:]
    try:
        if command == "create":
            if len(args) > 1:
                raise CommandError("Usage: create [size]")
            request = BoardCreationRequest(size=args[0] if args else None)
            return service.create_board(request.size).model_dump_json()

        if command == "ship":
            if len(args) < 2:
                raise CommandError("Usage: ship <board_id> x,y [x,y ...]")
            board_id = _board_id_from_input(args[0])
            request = ShipPlacementRequest(positions=[_position_from_input(a) for a in args[1:]])
            return service.add_ship(board_id, request.to_ship()).model_dump_json()

        if command == "attack":
            if len(args) != 2:
                raise CommandError("Usage: attack <board_id> x,y")
            board_id = _board_id_from_input(args[0])
            request = AttackRequest(position=_position_from_input(args[1]))
            result = service.attack(board_id, request.position.to_position())
            if result is None:
                return _error(f"Board with ID {board_id} not found")
            return AttackResponse.from_result(result).model_dump_json()

        if command == "show":
            if len(args) != 1:
                raise CommandError("Usage: show <board_id>")
            board_id = _board_id_from_input(args[0])
            snapshot = service.get_board(board_id)
            if snapshot is None:
                return _error(f"Board with ID {board_id} not found")
            return BoardView.from_snapshot(snapshot).model_dump_json()
    except ValidationError as exc:
        return _error(f"Invalid input: {exc.errors()[0]['msg']}")
    except ValueError as exc:
        return _error(str(exc))

    return _error(f"Unknown command: {command}")


def run(service: GameService, lines: Iterable[str], out: TextIO) -> int:
    """Feed ``lines`` through the service until exhausted or ``quit``."""
    handled = 0
    for line in lines:
        if line.strip().lower() in {"quit", "exit"}:
            break
        reply = handle_command(service, line)
        if reply is None:
            continue
        print(reply, file=out)
        handled += 1
    return handled


def _prompting(stream: TextIO) -> Iterable[str]:
    while True:
        print(PROMPT, end="", flush=True)
        line = stream.readline()
        if not line:
            return
        yield line


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Drive the Battleship game service from a console.")
    parser.add_argument(
        "--size", type=int, default=None, help="Default board size for 'create' without a size."
    )
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. INFO or WARNING.")
    args = parser.parse_args(argv)

    overrides = {"log_level": args.log_level.upper()} if args.log_level else {}
    init_telemetry(TelemetryConfig.from_env(**overrides))

    settings = GameSettings.from_env(
        **({"default_board_size": args.size} if args.size is not None else {})
    )
    service = GameService(settings=settings)
    lines = _prompting(sys.stdin) if sys.stdin.isatty() else sys.stdin
    try:
        run(service, lines, sys.stdout)
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    main()
