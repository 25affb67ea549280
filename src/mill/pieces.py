"""Defines the pieces on a mill board"""

from dataclasses import dataclass

from src.core.shared_types import Color
from src.mill.square import Square


@dataclass
class Piece:
    id: int
    color: Color
    square: Square

    def move_to(self, square: Square) -> None:
        self.square = square

    def to_symbol(self) -> str:
        return "B" if self.color == Color.BLACK else "W"
