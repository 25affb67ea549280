"""
Move representation and the equality / legality rules the client needs.

The server is the sole authority on legality. Locally we only check whether a move the
user built from their clicks is one of the moves the server last told us about.

A pass is not a Move: it is represented by `None`.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterable, Optional, Self

from src.mill.square import Square

MOVE_FIELDS = ("square", "from_square", "remove_square")


class MoveKind(Enum):
    PASS = auto()
    PLACEMENT = auto()
    PLACEMENT_WITH_CAPTURE = auto()
    MOVEMENT = auto()
    MOVEMENT_WITH_CAPTURE = auto()


@dataclass(frozen=True)
class Move:
    """A placement (no from_square) or a movement, optionally capturing the piece on remove_square"""

    square: Square
    from_square: Optional[Square] = None
    remove_square: Optional[Square] = None

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Self:
        """
        The server always sends all three keys, but an omitted key and an explicit null mean the same thing.
        """
        squares = {
            key: Square.from_wire(data[key]) if data.get(key) is not None else None
            for key in MOVE_FIELDS
        }
        if squares["square"] is None:
            raise ValueError(f"Move without destination square: {data!r}")
        return cls(**squares)

    def to_wire(self) -> dict[str, Optional[list[int]]]:
        return {
            key: (value.to_wire() if value is not None else None)
            for key, value in ((key, getattr(self, key)) for key in MOVE_FIELDS)
        }

    @property
    def kind(self) -> MoveKind:
        if self.from_square is None:
            return (
                MoveKind.PLACEMENT
                if self.remove_square is None
                else MoveKind.PLACEMENT_WITH_CAPTURE
            )
        return (
            MoveKind.MOVEMENT
            if self.remove_square is None
            else MoveKind.MOVEMENT_WITH_CAPTURE
        )

    def is_placement(self) -> bool:
        return self.from_square is None

    def with_removal(self, remove_square: Square) -> "Move":
        return Move(self.square, self.from_square, remove_square)


def move_kind(move: Optional[Move]) -> MoveKind:
    return MoveKind.PASS if move is None else move.kind


def is_move_equal(move_a: Optional[Move], move_b: Optional[Move]) -> bool:
    """
    Structural equality of two moves (or passes).
    ---

    * both None: equal (two passes)
    * only one None: not equal
    * otherwise field by field: absent on both sides matches, absent on only one side does not,
      present on both sides must have the same coordinates.

    Stops at the first field that disagrees.
    """
    if move_a is None and move_b is None:
        return True
    if move_a is None or move_b is None:
        return False
    for key in MOVE_FIELDS:
        if getattr(move_a, key) != getattr(move_b, key):
            return False
    return True


def is_legal_move(move: Optional[Move], legal_moves: Iterable[Move]) -> bool:
    """Linear scan of the legal set. No ordering or uniqueness assumed."""
    for legal_move in legal_moves:
        if is_move_equal(move, legal_move):
            return True
    return False


def capture_options(
    square: Square, from_square: Optional[Square], legal_moves: Iterable[Move]
) -> list[Move]:
    """The legal moves that go from `from_square` to `square` and capture something on the way"""
    return [
        legal_move
        for legal_move in legal_moves
        if legal_move.remove_square is not None
        and legal_move.square == square
        and legal_move.from_square == from_square
    ]


def requires_removal(
    square: Square, from_square: Optional[Square], legal_moves: Iterable[Move]
) -> bool:
    """
    Does completing this (placement or movement) move require naming an opponent piece to capture?
    Derived only from the legal set the server sent: a move closing a mill is only offered together with a removal.
    """
    return len(capture_options(square, from_square, legal_moves)) > 0


def selectable_from_squares(legal_moves: Iterable[Move]) -> list[Square]:
    """Squares holding a piece that has at least one legal move (movement stage)"""
    squares: list[Square] = []
    for legal_move in legal_moves:
        if legal_move.from_square is not None and legal_move.from_square not in squares:
            squares.append(legal_move.from_square)
    return squares


def destination_squares(
    legal_moves: Iterable[Move], from_square: Optional[Square] = None
) -> list[Square]:
    """Squares a piece (or a newly placed piece, when from_square is None) can go to"""
    squares: list[Square] = []
    for legal_move in legal_moves:
        if legal_move.from_square != from_square:
            continue
        if legal_move.square not in squares:
            squares.append(legal_move.square)
    return squares


def removal_squares(
    square: Square, from_square: Optional[Square], legal_moves: Iterable[Move]
) -> list[Square]:
    """Opponent squares that may be captured after moving to `square`"""
    squares: list[Square] = []
    for legal_move in capture_options(square, from_square, legal_moves):
        if legal_move.remove_square not in squares:
            squares.append(legal_move.remove_square)
    return squares
