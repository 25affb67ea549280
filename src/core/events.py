"""
Events flowing into the session state machine.

Two sources: the user (intents) and the server (decoded protocol messages).
Both are plain value objects so the state machine can be driven without a UI or a socket.
"""

from dataclasses import dataclass
from typing import Any, Optional

from src.mill.moves import Move
from src.mill.square import Square


# --- USER INTENTS ---
@dataclass(frozen=True)
class StartGame:
    play_black: bool


@dataclass(frozen=True)
class SelectSquare:
    """User clicked a point on the board (empty or holding a piece, the controller looks it up)"""

    square: Square


@dataclass(frozen=True)
class ResetGame:
    pass


Intent = StartGame | SelectSquare | ResetGame


# --- SERVER MESSAGES ---
@dataclass(frozen=True)
class ServerError:
    detail: Any


@dataclass(frozen=True)
class GameEnded:
    black_won: bool


@dataclass(frozen=True)
class MoveReceived:
    move: Optional[Move]


@dataclass(frozen=True)
class LegalMovesReceived:
    moves: list[Move]


ServerEvent = ServerError | GameEnded | MoveReceived | LegalMovesReceived
