"""Enumerations and small records describing the state of a game."""

from enum import Enum
from typing import NamedTuple


class GamePhase(str, Enum):
    """Phase of the game as seen by the player to move.

    The phase is always derived from the counters and the board, never
    stored: placement ends when both players have placed all their pieces,
    and a player flies while holding exactly the minimum number of pieces.
    """

    PLACING = "placing"
    MOVING = "moving"
    FLYING = "flying"


class TerminationReason(str, Enum):
    """Why a game ended."""

    INSUFFICIENT_PIECES = "insufficient-pieces"
    MILL_BLOCKADE = "mill-blockade"
    NO_LEGAL_MOVES = "no-legal-moves"
    NO_CAPTURE_THRESHOLD = "no-capture-threshold"
    REPETITION_THRESHOLD = "repetition-threshold"
    FORFEIT = "forfeit"
    TIMEOUT = "timeout"

    @property
    def is_draw(self) -> bool:
        return self in (TerminationReason.NO_CAPTURE_THRESHOLD,
                        TerminationReason.REPETITION_THRESHOLD)


class DrawWarning(NamedTuple):
    """A draw is approaching.

    Attributes:
        kind: ``"no-capture"`` or ``"repetition"``.
        moves_remaining: For no-capture warnings, the quiet moves left before
            the draw; for repetition warnings, the repetitions left (1).
    """

    kind: str
    moves_remaining: int
