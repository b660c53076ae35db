"""Pytest configuration file for Morris AI tests.

This file contains fixtures and configuration for pytest.
"""

import random
from datetime import datetime, timezone

import pytest

from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Piece, Position

W = Piece.WHITE
B = Piece.BLACK


def P(ring, point):
    return Position(ring, point)


FIXED_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """A clock that always returns the same instant."""
    return lambda: FIXED_TIME


@pytest.fixture
def env(clock):
    """Fixture for a fresh MorrisEnvironment."""
    return MorrisEnvironment(clock=clock)


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def white_mill_threat(clock):
    """Placing phase, white to move with (0,7) and (0,0) and (0,1) empty.

    Black has two unrelated pieces and no threat of its own.
    """
    board = {P(0, 7): W, P(0, 0): W, P(2, 3): B, P(1, 6): B}
    return MorrisEnvironment.from_position(
        board, current_player=W, white_pieces_to_place=5, black_pieces_to_place=5, clock=clock)


@pytest.fixture
def protected_mill_position(clock):
    """Placing phase, white about to form a mill; black has a mill plus one loose piece at (2,4)."""
    board = {
        P(0, 7): W, P(0, 0): W,
        P(2, 7): B, P(2, 0): B, P(2, 1): B, P(2, 4): B,
    }
    return MorrisEnvironment.from_position(
        board, current_player=W, white_pieces_to_place=3, black_pieces_to_place=3, clock=clock)


@pytest.fixture
def sliding_mill_position(clock):
    """Moving phase, white can slide (0,2) to (0,1) to complete (0,7)-(0,0)-(0,1).

    Black holds exactly three pieces with no two on a common line.
    """
    board = {
        P(0, 7): W, P(0, 0): W, P(0, 2): W, P(2, 4): W,
        P(1, 3): B, P(2, 6): B, P(2, 1): B,
    }
    return MorrisEnvironment.from_position(board, current_player=W, clock=clock)


@pytest.fixture
def shuttle_position(clock):
    """Moving phase, four pieces each, where both sides can shuttle without forming mills."""
    board = {
        P(0, 1): W, P(0, 3): W, P(1, 5): W, P(2, 7): W,
        P(1, 1): B, P(0, 5): B, P(2, 3): B, P(1, 7): B,
    }
    return board
