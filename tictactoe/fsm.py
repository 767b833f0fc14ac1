from __future__ import annotations

from statemachine import State, StateMachine

from tictactoe.api.models import GameState, GameStatus
from tictactoe.board import Mark, Outcome


class GameFSM(StateMachine):
    """FSM wrapper around GameState.

    - statuses: in_progress -> player1_won | player2_won | tie
    - the registry mutates the board; the FSM only guards status transitions.
    """

    in_progress = State(GameStatus.in_progress.value, value=GameStatus.in_progress.value, initial=True)
    player1_won = State(GameStatus.player1_won.value, value=GameStatus.player1_won.value, final=True)
    player2_won = State(GameStatus.player2_won.value, value=GameStatus.player2_won.value, final=True)
    tie = State(GameStatus.tie.value, value=GameStatus.tie.value, final=True)

    player1_wins = in_progress.to(player1_won)
    player2_wins = in_progress.to(player2_won)
    draw = in_progress.to(tie)

    def __init__(self, game: GameState):
        self.game = game
        super().__init__(start_value=game.status.value)

    def apply_outcome(self, outcome: Outcome) -> bool:
        """Fire the transition matching `outcome`. Returns True if the game ended."""

        if outcome.kind == "win":
            if outcome.mark == Mark.player1:
                self.player1_wins()
            else:
                self.player2_wins()
        elif outcome.kind == "tie":
            self.draw()
        else:
            return False
        self.sync_status_to_model()
        return True

    def sync_status_to_model(self) -> None:
        self.game.status = GameStatus(str(self.current_state.value))
