"""Game settings loaded from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_BOARD_SIZE = 10


class GameSettings(BaseModel):
    """Runtime knobs for the game service."""

    default_board_size: int = Field(default=DEFAULT_BOARD_SIZE)

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameSettings":
        """Construct settings from ``BATTLESHIP_SERVER_*`` env vars."""
        data: dict[str, Any] = {}
        size = os.getenv("BATTLESHIP_SERVER_DEFAULT_BOARD_SIZE")
        if size is not None:
            data["default_board_size"] = size.strip()
        data.update(overrides)
        return cls(**data)


@lru_cache(maxsize=1)
def load_settings() -> GameSettings:
    """Load and cache game settings from the environment."""
    return GameSettings.from_env()
