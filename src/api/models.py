"""Wire models for the messages exchanged with the server (JSON objects over a WebSocket)"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError, field_validator

from src.core.events import (
    GameEnded,
    LegalMovesReceived,
    MoveReceived,
    ServerError,
    ServerEvent,
)
from src.core.exceptions import ProtocolError
from src.mill.moves import Move
from src.mill.square import Square

logger = logging.getLogger(__name__)

WireSquare = tuple[int, int]


class WireMove(BaseModel):
    model_config = ConfigDict(extra="forbid")

    square: WireSquare
    from_square: Optional[WireSquare] = None
    remove_square: Optional[WireSquare] = None

    @field_validator(*["square", "from_square", "remove_square"])
    @classmethod
    def validate_square(cls, value: Optional[WireSquare]) -> Optional[WireSquare]:
        if value is None:
            return value
        if not Square(*value).is_within_bounds():
            raise ValueError(f"Square {list(value)} is not on the board.")
        return value

    @classmethod
    def from_move(cls, move: Move) -> "WireMove":
        return cls.model_validate(move.to_wire())

    def to_move(self) -> Move:
        return Move.from_wire(self.model_dump())


# --- CLIENT -> SERVER ---
class StartMessage(BaseModel):
    start: bool


class MoveMessage(BaseModel):
    move: Optional[WireMove]


def encode_start(play_black: bool) -> str:
    return StartMessage(start=play_black).model_dump_json()


def encode_move(move: Optional[Move]) -> str:
    """A pass is encoded as an explicit null move"""
    wire_move = WireMove.from_move(move) if move is not None else None
    return MoveMessage(move=wire_move).model_dump_json()


# --- SERVER -> CLIENT ---
class ServerMessage(BaseModel):
    """
    Keys are mutually exclusive, except that "move" and "legal_moves" may share a message.
    Presence of a key is what matters (a null "move" is a pass), so check model_fields_set.
    """

    model_config = ConfigDict(extra="forbid")

    move: Optional[WireMove] = None
    legal_moves: Optional[list[WireMove]] = None
    error: Any = None
    end: Optional[StrictBool] = None


def parse_server_message(raw: str | bytes) -> list[ServerEvent]:
    """
    Decode one message from the server into the events it carries, in the order they must be handled:
    error, end, move, legal_moves.
    """
    try:
        message = ServerMessage.model_validate_json(raw)
    except ValidationError as e:
        raise ProtocolError(f"Cannot interpret message from server: {raw!r}") from e

    present = message.model_fields_set
    if not present:
        raise ProtocolError(f"Message from server has no known keys: {raw!r}")

    if "error" in present:
        return [ServerError(message.error)]

    if "end" in present:
        if message.end is None:
            raise ProtocolError("'end' must be a boolean.")
        return [GameEnded(black_won=message.end)]

    events: list[ServerEvent] = []
    if "move" in present:
        events.append(
            MoveReceived(message.move.to_move() if message.move is not None else None)
        )
    if "legal_moves" in present:
        if message.legal_moves is None:
            raise ProtocolError("'legal_moves' must be a list.")
        events.append(
            LegalMovesReceived([wire_move.to_move() for wire_move in message.legal_moves])
        )
    return events
