"""
A square (point) on the mill board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Three concentric rings of eight points each.
# Ring 0 is the outermost. Points start at the top left corner of a ring and go clockwise,
# so even points are corners and odd points are the middle of an edge.
BOARD_DIMENSIONS = (3, 8)


@dataclass(frozen=True)
class Square:
    ring: int
    point: int

    @classmethod
    def from_wire(cls, value: Any) -> Square:
        """Wire format is a JSON array of two integers: [ring, point]"""
        ring, point = value
        return cls(int(ring), int(point))

    def to_wire(self) -> list[int]:
        return [self.ring, self.point]

    def is_within_bounds(self) -> bool:
        return (0 <= self.ring < BOARD_DIMENSIONS[0]) and (
            0 <= self.point < BOARD_DIMENSIONS[1]
        )

