"""
Client-side mirror of the board.

Simplified version of the server's board: it only tracks where the pieces are, whose turn it is,
and the set of moves the server last declared legal. Legality itself is never computed here.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from src.core.exceptions import InvariantViolationError
from src.core.shared_types import Color
from src.mill.moves import Move, is_legal_move
from src.mill.pieces import Piece
from src.mill.square import BOARD_DIMENSIONS, Square

logger = logging.getLogger(__name__)


@dataclass
class BoardState:
    position: dict[Square, Piece] = field(default_factory=dict)
    turn_is_black: bool = True
    legal_moves: list[Move] = field(default_factory=list)
    initial_placed: int = 0

    @property
    def mover_color(self) -> Color:
        return Color.from_is_black(self.turn_is_black)

    def piece_at(self, square: Square) -> Optional[Piece]:
        return self.position.get(square)

    def is_empty(self, square: Square) -> bool:
        return square not in self.position

    def pieces_of(self, color: Color) -> list[Piece]:
        return [piece for piece in self.position.values() if piece.color == color]

    def count_pieces(self) -> dict[Color, int]:
        return {color: len(self.pieces_of(color)) for color in Color}

    def apply_move(self, move: Optional[Move]) -> None:
        """
        Apply a move (or a pass when `move` is None) and hand the turn to the other player.
        ----

        * placement: new piece of the mover's color on move.square
        * movement: the mover's piece on move.from_square relocates to move.square
        * capture: the opponent piece on move.remove_square disappears

        All preconditions are checked before anything changes, so a failing move leaves the board untouched.
        """
        if move is not None:
            self._check_move(move)
            if move.from_square is None:
                self._place_piece(move.square)
            else:
                self._relocate_piece(move.from_square, move.square)
            if move.remove_square is not None:
                del self.position[move.remove_square]

        # every branch (including a pass) hands the turn over exactly once
        self.turn_is_black = not self.turn_is_black

    def set_legal_moves(self, moves: Iterable[Move]) -> None:
        """Replaced wholesale, never merged. Trusts the server: no consistency check with the position."""
        self.legal_moves = list(moves)

    def is_legal(self, move: Optional[Move]) -> bool:
        return is_legal_move(move, self.legal_moves)

    def to_text(self) -> str:
        """One line per ring, outermost first. '.' empty, 'B' black, 'W' white"""
        lines: list[str] = []
        for ring in range(BOARD_DIMENSIONS[0]):
            symbols = []
            for point in range(BOARD_DIMENSIONS[1]):
                piece = self.piece_at(Square(ring, point))
                symbols.append(piece.to_symbol() if piece else ".")
            lines.append(f"{ring}: {' '.join(symbols)}")
        return "\n".join(lines)

    # -- PRIVATE HELPERS ---
    def _check_move(self, move: Move) -> None:
        mover = self.mover_color
        if move.from_square is not None:
            piece = self.piece_at(move.from_square)
            if piece is None:
                raise InvariantViolationError(
                    f"No piece to move on {move.from_square}."
                )
            if piece.color != mover:
                raise InvariantViolationError(
                    f"Cannot move {piece.color} piece on {move.from_square}: it is {mover}'s turn."
                )
        if not self.is_empty(move.square):
            raise InvariantViolationError(f"Square {move.square} is already occupied.")
        if move.remove_square is not None:
            target = self.piece_at(move.remove_square)
            if target is None:
                raise InvariantViolationError(
                    f"No piece to remove on {move.remove_square}."
                )
            if target.color == mover:
                raise InvariantViolationError(
                    f"Cannot remove own piece on {move.remove_square}."
                )

    def _place_piece(self, square: Square) -> None:
        piece = Piece(id=self.initial_placed, color=self.mover_color, square=square)
        self.position[square] = piece
        self.initial_placed += 1
        logger.debug("placed %s piece #%d on %s", piece.color, piece.id, square)

    def _relocate_piece(self, from_square: Square, to_square: Square) -> None:
        piece = self.position.pop(from_square)
        piece.move_to(to_square)
        self.position[to_square] = piece
