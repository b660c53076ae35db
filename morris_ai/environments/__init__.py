"""Environments for Nine Men's Morris.

This package contains the board topology, the game state model and the
snapshot schema used to save and transmit games.
"""

from morris_ai.environments.base_environment import BaseEnvironment
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.state_types import DrawWarning, GamePhase, TerminationReason
from morris_ai.environments.topology import Move, Piece, Position

__all__ = [
    "BaseEnvironment",
    "DrawWarning",
    "GamePhase",
    "Move",
    "MorrisEnvironment",
    "Piece",
    "Position",
    "TerminationReason",
]
