"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    BLACK = "black"
    WHITE = "white"

    @classmethod
    def from_is_black(cls, is_black: bool) -> "Color":
        return cls.BLACK if is_black else cls.WHITE


class Phase(StrEnum):
    AWAITING_START = "awaiting start"
    WAITING_FOR_SERVER = "waiting for server"
    CLIENT_PLACEMENT = "client placement"
    CLIENT_MOVEMENT = "client movement"
    CLIENT_REMOVAL = "client removal"
    GAME_OVER = "game over"


# Phases in which it is the local player's turn and selections are interpreted
CLIENT_TURN_PHASES = frozenset(
    {Phase.CLIENT_PLACEMENT, Phase.CLIENT_MOVEMENT, Phase.CLIENT_REMOVAL}
)


class MessageKind(StrEnum):
    """Status messages the renderer knows how to display"""

    START = "start"
    BLACK_PLACEMENT = "black-placement"
    YOUR_TURN = "your-turn"
    SELECT_REMOVAL = "select-removal"
    WAITING = "waiting"
    YOU_WON = "you-won"
    YOU_LOST = "you-lost"
    NO_CONNECTION = "no-connection"
    ERROR = "error"
