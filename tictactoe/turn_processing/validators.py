from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from tictactoe.api.models import GameState
from tictactoe.errors import (
    AlreadyInGame,
    CannotJoinOwnGame,
    GameFinished,
    GameFull,
    GameNotStarted,
)
from tictactoe.turn_processing.turns import assert_is_players_turn


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    game_id: int
    player_id: str
    action: str
    # The caller's current entry in the active-game mapping, read under lock.
    active_game_id: int | None = None


class ActionValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class OpenSeatValidator(ActionValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.player2 is not None:
            raise GameFull()


@dataclass(frozen=True, slots=True)
class NotOwnGameValidator(ActionValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.player1 == ctx.player_id:
            raise CannotJoinOwnGame()


@dataclass(frozen=True, slots=True)
class NoActiveGameValidator(ActionValidator):
    """A participant may hold at most one in-progress game."""

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if ctx.active_game_id is not None:
            raise AlreadyInGame(f"Player already in active game {ctx.active_game_id}")


@dataclass(frozen=True, slots=True)
class InProgressValidator(ActionValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.is_terminal:
            raise GameFinished(f"Game is finished ({state.status.value})")


@dataclass(frozen=True, slots=True)
class StartedValidator(ActionValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.player2 is None:
            raise GameNotStarted()


@dataclass(frozen=True, slots=True)
class PlayerTurnValidator(ActionValidator):
    """Only the current turn owner may place a mark; outsiders never own a turn."""

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        assert_is_players_turn(state=state, player_id=ctx.player_id)


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[ActionValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


# Order matters: the first failing check decides the reported error.
DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "join": ValidatorPipeline(
        validators=(
            OpenSeatValidator(),
            NotOwnGameValidator(),
            NoActiveGameValidator(),
        )
    ),
    "move": ValidatorPipeline(
        validators=(
            InProgressValidator(),
            StartedValidator(),
            PlayerTurnValidator(),
        )
    ),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
