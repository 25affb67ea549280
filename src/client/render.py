"""
Rendering collaborator.

The session only tells the renderer *what* happened; how it is drawn is up to the implementation.
"""

import logging
import sys
from typing import Optional, Protocol, TextIO

from src.core.shared_types import Color, MessageKind
from src.mill.board import BoardState
from src.mill.moves import Move
from src.mill.square import Square

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def render_move(self, move: Optional[Move], board: BoardState) -> None:
        """Place / move / remove a visual piece. `board` already reflects the move."""
        ...

    def render_legal_highlight(self, squares: list[Square]) -> None:
        """Highlight the squares the user may select next (empty list clears the highlight)."""
        ...

    def display_message(self, kind: MessageKind, detail: Optional[str] = None) -> None:
        """Status line for the user."""
        ...


MESSAGES: dict[MessageKind, str] = {
    MessageKind.START: "Start a new game: 'start black' or 'start white'.",
    MessageKind.BLACK_PLACEMENT: "Black places first.",
    MessageKind.YOUR_TURN: "Your turn.",
    MessageKind.SELECT_REMOVAL: "Mill! Select an opponent piece to remove.",
    MessageKind.WAITING: "Waiting for the opponent...",
    MessageKind.YOU_WON: "You won!",
    MessageKind.YOU_LOST: "You lost.",
    MessageKind.NO_CONNECTION: "No connection to the server.",
    MessageKind.ERROR: "Error.",
}


def _sq(square: Square) -> str:
    return f"{square.ring}:{square.point}"


def describe_move(move: Optional[Move]) -> str:
    """Short human readable description, ex. 'move 0:1 -> 1:1, remove 2:4'"""
    if move is None:
        return "pass"

    if move.from_square is None:
        text = f"place {_sq(move.square)}"
    else:
        text = f"move {_sq(move.from_square)} -> {_sq(move.square)}"
    if move.remove_square is not None:
        text += f", remove {_sq(move.remove_square)}"
    return text


def describe_counts(board: BoardState) -> str:
    """ex. 'Black: 4  White: 3'"""
    counts = board.count_pieces()
    return f"Black: {counts[Color.BLACK]}  White: {counts[Color.WHITE]}"


def _message_text(kind: MessageKind, detail: Optional[str]) -> str:
    text = MESSAGES[kind]
    return f"{text} {detail}" if detail else text


class TerminalRenderer:
    """Plain text output: prints the board after every move and one line per status message"""

    def __init__(self, stream: TextIO = sys.stdout) -> None:
        self.stream = stream

    def render_move(self, move: Optional[Move], board: BoardState) -> None:
        self._print(describe_move(move))
        self._print(board.to_text())
        self._print(describe_counts(board))

    def render_legal_highlight(self, squares: list[Square]) -> None:
        if not squares:
            return
        self._print("Selectable: " + " ".join(_sq(square) for square in squares))

    def display_message(self, kind: MessageKind, detail: Optional[str] = None) -> None:
        self._print(_message_text(kind, detail))

    def _print(self, text: str) -> None:
        print(text, file=self.stream, flush=True)


class LoggingRenderer:
    """Headless renderer: everything goes to the log (moves and status at INFO, highlights at DEBUG)"""

    def render_move(self, move: Optional[Move], board: BoardState) -> None:
        logger.info("%s (%s)", describe_move(move), describe_counts(board))

    def render_legal_highlight(self, squares: list[Square]) -> None:
        logger.debug("Selectable: %s", " ".join(_sq(square) for square in squares))

    def display_message(self, kind: MessageKind, detail: Optional[str] = None) -> None:
        logger.info("%s", _message_text(kind, detail))
