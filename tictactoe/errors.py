from __future__ import annotations


class GameError(ValueError):
    """Base class for every rejected registry request.

    Each subclass carries a stable `code` so front ends can branch on it
    without parsing messages. Raising one never leaves partial state behind.
    """

    code = "game_error"
    default_message = "Request rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class Paused(GameError):
    code = "paused"
    default_message = "Registry is paused"


class NotOwner(GameError):
    code = "not_owner"
    default_message = "Must be owner to do this op"


class AlreadyInGame(GameError):
    code = "already_in_game"
    default_message = "Player already has an active game"


class GameNotFound(GameError):
    code = "game_not_found"
    default_message = "Game not found"


class GameFull(GameError):
    code = "game_full"
    default_message = "Game already has two players"


class CannotJoinOwnGame(GameError):
    code = "cannot_join_own_game"
    default_message = "Cannot join your own game"


class GameFinished(GameError):
    code = "game_finished"
    default_message = "Game is finished"


class GameNotStarted(GameError):
    code = "game_not_started"
    default_message = "Game is waiting for a second player"


class NotYourTurn(GameError):
    code = "not_your_turn"
    default_message = "Not your turn"


class OutOfRange(GameError):
    code = "out_of_range"
    default_message = "Row and col must be between 0 and 2"


class CellOccupied(GameError):
    code = "cell_occupied"
    default_message = "Cell is already taken"


class GameBusy(GameError):
    code = "game_busy"
    default_message = "Game is busy"
