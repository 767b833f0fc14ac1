from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

import redis

from tictactoe.api.models import GameState, MoveRequest
from tictactoe.game_store import GameRegistry
from tictactoe.streams import Mailbox, publish_many
from tictactoe.turn_processing.turns import current_turn_player_id


ActionName = Literal["join", "move"]

MailboxEntry = tuple[Mailbox, dict[str, str]]


@dataclass(frozen=True, slots=True)
class ActionResult:
    state: GameState
    mailbox_entry_ids: list[str]


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


def _players(state: GameState) -> list[str]:
    return [p for p in (state.player1, state.player2) if p is not None]


def _mailbox_entries_for_move_prompt(*, state: GameState) -> list[MailboxEntry]:
    """Tell whoever owns the next ply that it is their turn."""

    player_id = current_turn_player_id(state=state)
    return [
        (
            Mailbox(game_id=state.game_id, player_id=player_id),
            {
                "type": "prompt_move",
                "game_id": str(state.game_id),
                "player_id": player_id,
                "ply_count": str(state.ply_count),
                "ts": _now_iso(),
            },
        )
    ]


def _mailbox_entries_for_joined(*, state: GameState) -> list[MailboxEntry]:
    payload = {
        "type": "game_joined",
        "game_id": str(state.game_id),
        "player1": state.player1,
        "player2": state.player2 or "",
        "is_player1_first": "1" if state.is_player1_first else "0",
        "ts": _now_iso(),
    }
    entries: list[MailboxEntry] = [(Mailbox(game_id=state.game_id, player_id=p), payload) for p in _players(state)]
    entries.extend(_mailbox_entries_for_move_prompt(state=state))
    return entries


def _mailbox_entries_for_finished(*, state: GameState) -> list[MailboxEntry]:
    payload = {
        "type": "game_finished",
        "game_id": str(state.game_id),
        "status": state.status.value,
        "ts": _now_iso(),
    }
    return [(Mailbox(game_id=state.game_id, player_id=p), payload) for p in _players(state)]


def mailbox_entries_for_action(*, action: ActionName, state: GameState) -> list[MailboxEntry]:
    if action == "join":
        return _mailbox_entries_for_joined(state=state)
    if state.is_terminal:
        return _mailbox_entries_for_finished(state=state)
    return _mailbox_entries_for_move_prompt(state=state)


def dispatch_action(
    *,
    registry: GameRegistry,
    r: redis.Redis,
    game_id: int,
    player_id: str,
    action: ActionName,
    payload: dict[str, Any],
) -> ActionResult:
    """Entry point shared by the typed routes and the generic action endpoint.

    Applies the action through the registry (which validates and commits
    atomically), then notifies the affected mailboxes. Mailboxes are only
    written after a successful commit.
    """

    if action == "join":
        state = registry.join_game(game_id=game_id, caller=player_id)
    elif action == "move":
        move = MoveRequest.model_validate(payload)
        state = registry.make_move(game_id=game_id, row=move.row, col=move.col, caller=player_id)
    else:
        raise ValueError(f"Unknown action: {action}")

    ids = publish_many(r=r, entries=mailbox_entries_for_action(action=action, state=state))
    return ActionResult(state=state, mailbox_entry_ids=ids)
