"""Board topology for Nine Men's Morris.

This module describes the static shape of the board: the 24 positions, the
lines along which pieces may slide, and the 16 mill lines. Every other module
(rules, heuristics, search and puzzles) reads these tables; nothing here is
mutable.

The board has three concentric squares (rings 0 = outer, 1 = middle,
2 = inner) with eight points each. Points are numbered clockwise from the
top midpoint::

    7 --- 0 --- 1
    |           |
    6           2
    |           |
    5 --- 4 --- 3

Even points are intersections: they sit on one ring-side mill and on the
cross-ring mill joining the three rings. Odd points are corners and sit on
two ring-side mills only. A position's flat index is ``ring * 8 + point``.
"""

from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

import numpy as np

NUM_RINGS = 3
POINTS_PER_RING = 8
NUM_POSITIONS = NUM_RINGS * POINTS_PER_RING


class Piece(str, Enum):
    """Colour of a piece. White always moves first."""

    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Piece":
        return Piece.BLACK if self is Piece.WHITE else Piece.WHITE

    @property
    def code(self) -> int:
        """Compact cell value used by array boards (1 = white, 2 = black)."""
        return 1 if self is Piece.WHITE else 2

    @classmethod
    def from_code(cls, code: int) -> "Piece":
        if code == 1:
            return cls.WHITE
        if code == 2:
            return cls.BLACK
        raise ValueError(f"Invalid piece code: {code}")


class Position(NamedTuple):
    """One of the 24 board intersections."""

    ring: int
    point: int

    @property
    def index(self) -> int:
        return self.ring * POINTS_PER_RING + self.point

    @property
    def is_intersection(self) -> bool:
        return self.point % 2 == 0

    @property
    def key(self) -> str:
        """String key used by the snapshot format, e.g. ``"1_4"``."""
        return f"{self.ring}_{self.point}"

    @classmethod
    def from_index(cls, index: int) -> "Position":
        return cls(index // POINTS_PER_RING, index % POINTS_PER_RING)

    @classmethod
    def from_key(cls, key: str) -> "Position":
        parts = key.split("_")
        if len(parts) != 2:
            raise ValueError(f"Invalid position key: {key!r}")
        position = cls(int(parts[0]), int(parts[1]))
        if not is_valid_position(position):
            raise ValueError(f"Position out of range: {key!r}")
        if position.key != key:
            raise ValueError(f"Non-canonical position key: {key!r}")
        return position

    def __str__(self) -> str:
        return f"({self.ring}, {self.point})"


class Move(NamedTuple):
    """A complete move: placement or slide/fly, plus an optional capture.

    ``origin`` is None for a placement. ``destination`` is None only for a
    capture-only move, which answers a pending capture after a mill was
    formed by a separate call.
    """

    origin: Optional[Position]
    destination: Optional[Position]
    capture: Optional[Position] = None

    @property
    def is_placement(self) -> bool:
        return self.origin is None and self.destination is not None

    @property
    def is_capture_only(self) -> bool:
        return self.destination is None


def is_valid_position(position: Position) -> bool:
    return 0 <= position.ring < NUM_RINGS and 0 <= position.point < POINTS_PER_RING


def _build_mill_lines() -> Tuple[Tuple[int, int, int], ...]:
    lines = []
    # Ring sides: (7, 0, 1), (1, 2, 3), (3, 4, 5), (5, 6, 7) on every ring
    for ring in range(NUM_RINGS):
        base = ring * POINTS_PER_RING
        for corner in (7, 1, 3, 5):
            mid = (corner + 1) % POINTS_PER_RING
            end = (corner + 2) % POINTS_PER_RING
            lines.append((base + corner, base + mid, base + end))
    # Cross-ring lines through the intersections
    for point in range(0, POINTS_PER_RING, 2):
        lines.append(tuple(ring * POINTS_PER_RING + point for ring in range(NUM_RINGS)))
    return tuple(lines)


def _build_adjacency() -> Tuple[Tuple[int, ...], ...]:
    adjacency = []
    for index in range(NUM_POSITIONS):
        ring, point = divmod(index, POINTS_PER_RING)
        neighbours = [
            ring * POINTS_PER_RING + (point + 7) % POINTS_PER_RING,
            ring * POINTS_PER_RING + (point + 1) % POINTS_PER_RING,
        ]
        if point % 2 == 0:
            if ring > 0:
                neighbours.append((ring - 1) * POINTS_PER_RING + point)
            if ring < NUM_RINGS - 1:
                neighbours.append((ring + 1) * POINTS_PER_RING + point)
        adjacency.append(tuple(neighbours))
    return tuple(adjacency)


# All 16 mill lines as index triples
MILL_LINES: Tuple[Tuple[int, int, int], ...] = _build_mill_lines()

# For each index, the indices into MILL_LINES it belongs to
MILLS_FOR_INDEX: Tuple[Tuple[int, ...], ...] = tuple(
    tuple(m for m, line in enumerate(MILL_LINES) if index in line)
    for index in range(NUM_POSITIONS)
)

# For each index, the indices a piece may slide to
ADJACENCY: Tuple[Tuple[int, ...], ...] = _build_adjacency()

ALL_POSITIONS: Tuple[Position, ...] = tuple(
    Position.from_index(i) for i in range(NUM_POSITIONS)
)
INTERSECTIONS: Tuple[Position, ...] = tuple(p for p in ALL_POSITIONS if p.is_intersection)

# Array views of the same tables for vectorised evaluation
MILL_LINE_ARRAY = np.array(MILL_LINES, dtype=np.intp)
INTERSECTION_MASK = np.array([p.is_intersection for p in ALL_POSITIONS], dtype=bool)
ADJACENCY_MATRIX = np.zeros((NUM_POSITIONS, NUM_POSITIONS), dtype=np.int32)
for _index, _neighbours in enumerate(ADJACENCY):
    ADJACENCY_MATRIX[_index, list(_neighbours)] = 1
# MILL_MEMBERSHIP[i, m] is 1 when cell i lies on mill line m
MILL_MEMBERSHIP = np.zeros((NUM_POSITIONS, len(MILL_LINES)), dtype=np.int32)
for _line_index, _line in enumerate(MILL_LINES):
    MILL_MEMBERSHIP[list(_line), _line_index] = 1
ADJACENCY_MATRIX.setflags(write=False)
MILL_MEMBERSHIP.setflags(write=False)
MILL_LINE_ARRAY.setflags(write=False)
INTERSECTION_MASK.setflags(write=False)


def mill_lines_containing(position: Position) -> List[Tuple[Position, Position, Position]]:
    """Get every mill line that passes through a position.

    Args:
        position: The position to look up.

    Returns:
        The mill lines as position triples, ring sides first.
    """
    return [
        tuple(Position.from_index(i) for i in MILL_LINES[m])
        for m in MILLS_FOR_INDEX[position.index]
    ]


def adjacent_positions(position: Position) -> List[Position]:
    return [Position.from_index(i) for i in ADJACENCY[position.index]]


def all_mill_lines() -> List[Tuple[Position, Position, Position]]:
    return [tuple(Position.from_index(i) for i in line) for line in MILL_LINES]
