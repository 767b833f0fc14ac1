from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from tictactoe.board import Board


class GameStatus(StrEnum):
    in_progress = "in_progress"
    player1_won = "player1_won"
    player2_won = "player2_won"
    tie = "tie"


TERMINAL_STATUSES = frozenset({GameStatus.player1_won, GameStatus.player2_won, GameStatus.tie})


class GameCreateRequest(BaseModel):
    player_id: str = Field(..., min_length=1, max_length=200)


class MoveRequest(BaseModel):
    # Range is enforced by the board so out-of-range cells surface as `out_of_range`.
    row: int
    col: int


class GameState(BaseModel):
    game_id: int
    player1: str
    # Unset until a second participant joins.
    player2: str | None = None

    board: Board = Field(default_factory=Board)
    status: GameStatus = GameStatus.in_progress

    # Decided once at join time; None while waiting for player2.
    is_player1_first: bool | None = None
    ply_count: int = Field(0, ge=0, le=9)

    created_at: datetime
    last_updated_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class GameListResponse(BaseModel):
    games: list[GameState]


class ActiveGameResponse(BaseModel):
    player_id: str
    game_id: int | None = None


class RegistryInfo(BaseModel):
    game_count: int
    is_paused: bool
    owner: str
