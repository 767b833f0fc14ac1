from __future__ import annotations

from tictactoe.api.models import GameState
from tictactoe.board import Mark
from tictactoe.errors import GameNotStarted, NotYourTurn


def current_turn_player_id(*, state: GameState) -> str:
    """Return which player_id should place the next mark.

    player1 owns the even plies when they move first, the odd plies otherwise.
    """

    if state.player2 is None or state.is_player1_first is None:
        raise GameNotStarted()

    even_ply = state.ply_count % 2 == 0
    return state.player1 if even_ply == state.is_player1_first else state.player2


def assert_is_players_turn(*, state: GameState, player_id: str) -> None:
    expected = current_turn_player_id(state=state)
    if player_id != expected:
        raise NotYourTurn(f"Not your turn (expected player_id={expected})")


def mark_for(*, state: GameState, player_id: str) -> Mark:
    return Mark.player1 if player_id == state.player1 else Mark.player2
