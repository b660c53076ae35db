"""Base environment for mill games.

This module provides the board container shared by mill-game environments:
the position → piece mapping, piece counting, adjacency and mill queries,
and a text rendering of the board. It holds no turn or phase rules; those
live in the concrete environments such as MorrisEnvironment.
"""

from typing import Dict, FrozenSet, List, Optional, Tuple

import numpy as np

from morris_ai.config import DEFAULT_RULES, RulesConfig
from morris_ai.environments.topology import (
    ALL_POSITIONS,
    NUM_POSITIONS,
    Piece,
    Position,
    adjacent_positions,
    is_valid_position,
    mill_lines_containing,
)


class BaseEnvironment:
    """Base class for mill game environments.

    Attributes:
        rules (RulesConfig): Rule constants for this game.
        board (Dict[Position, Piece]): Occupied positions; empty cells are absent.
        current_player (Piece): Player to move.
        winner (Optional[Piece]): Winner once the game is over, None while
            playing or after a draw.
        done (bool): Whether the game is finished.
    """

    DISPLAY_NAME = "Mill Board"  # Default display name, should be overridden by subclasses

    def __init__(self, rules: RulesConfig = DEFAULT_RULES):
        """Initialize the environment.

        Args:
            rules: Rule constants (piece allotment and draw thresholds).
        """
        self.rules = rules

        self.board: Dict[Position, Piece] = {}
        self.current_player: Piece = Piece.WHITE
        self.winner: Optional[Piece] = None
        self.done = False

        self.reset()

    def reset(self) -> np.ndarray:
        """Reset the environment to an empty board with white to move.

        Returns:
            The initial observation of the environment.
        """
        self.board = {}
        self.current_player = Piece.WHITE
        self.winner = None
        self.done = False

        return self._get_observation()

    def render(self) -> str:
        """Render the board as text, one character per cell.

        Returns:
            A multi-line drawing of the three rings with ``W``, ``B`` and ``.``.
        """
        def c(ring: int, point: int) -> str:
            piece = self.board.get(Position(ring, point))
            if piece is None:
                return "."
            return "W" if piece is Piece.WHITE else "B"

        return "\n".join([
            f"{c(0, 7)}-----------{c(0, 0)}-----------{c(0, 1)}",
            f"|           |           |",
            f"|   {c(1, 7)}-------{c(1, 0)}-------{c(1, 1)}   |",
            f"|   |       |       |   |",
            f"|   |   {c(2, 7)}---{c(2, 0)}---{c(2, 1)}   |   |",
            f"|   |   |       |   |   |",
            f"{c(0, 6)}---{c(1, 6)}---{c(2, 6)}       {c(2, 2)}---{c(1, 2)}---{c(0, 2)}",
            f"|   |   |       |   |   |",
            f"|   |   {c(2, 5)}---{c(2, 4)}---{c(2, 3)}   |   |",
            f"|   |       |       |   |",
            f"|   {c(1, 5)}-------{c(1, 4)}-------{c(1, 3)}   |",
            f"|           |           |",
            f"{c(0, 5)}-----------{c(0, 4)}-----------{c(0, 3)}",
        ])

    def __str__(self) -> str:
        return self.render()

    def _get_observation(self) -> np.ndarray:
        """Get the board as a flat array of 24 cells.

        Returns:
            An int8 array indexed by ``ring * 8 + point`` with 0 for empty,
            1 for white and 2 for black.
        """
        observation = np.zeros(NUM_POSITIONS, dtype=np.int8)
        for position, piece in self.board.items():
            observation[position.index] = piece.code
        return observation

    # ------------------------------------------------------------------
    # Board queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_all_positions() -> List[Position]:
        return list(ALL_POSITIONS)

    @staticmethod
    def is_valid_position(position: Position) -> bool:
        return is_valid_position(position)

    def is_empty(self, position: Position) -> bool:
        return position not in self.board

    def get_empty_positions(self) -> List[Position]:
        return [p for p in ALL_POSITIONS if p not in self.board]

    def pieces_of(self, player: Piece) -> List[Position]:
        """Get the positions holding a player's pieces, in board index order."""
        return [p for p in ALL_POSITIONS if self.board.get(p) is player]

    def count_pieces(self, player: Piece) -> int:
        return sum(1 for piece in self.board.values() if piece is player)

    def get_adjacent_positions(self, position: Position) -> List[Position]:
        """Get the positions a piece may slide to from a position.

        Movement is along the lines of the board: the two neighbours on the
        same ring, plus the neighbouring rings at intersections.
        """
        return adjacent_positions(position)

    def get_mills_containing(self, position: Position) -> List[Tuple[Position, Position, Position]]:
        """Get all mill lines that include a position, whether formed or not."""
        return mill_lines_containing(position)

    def is_in_mill(self, position: Position) -> bool:
        """Check whether the piece at a position is part of a formed mill."""
        return bool(self.find_formed_mill(position))

    def find_formed_mill(self, position: Position) -> FrozenSet[Position]:
        """Find the completed mill that includes a position.

        Args:
            position: The position to check.

        Returns:
            The three positions of the first complete mill line through the
            position, or an empty set when the cell is empty or not in a mill.
        """
        piece = self.board.get(position)
        if piece is None:
            return frozenset()

        for line in mill_lines_containing(position):
            if all(self.board.get(p) is piece for p in line):
                return frozenset(line)
        return frozenset()

    def all_pieces_in_mills(self, player: Piece) -> bool:
        return all(self.is_in_mill(p) for p in self.pieces_of(player))

    def capturable_pieces(self, player: Piece) -> List[Position]:
        """Get the pieces of a player that the opponent is allowed to capture.

        Pieces inside a formed mill are protected, unless every piece of the
        player is inside some mill.

        Args:
            player: The owner of the pieces (the player being captured from).

        Returns:
            The capturable positions in board index order.
        """
        pieces = self.pieces_of(player)
        unprotected = [p for p in pieces if not self.is_in_mill(p)]
        return unprotected if unprotected else pieces

    def would_form_mill(self, destination: Position, player: Piece,
                        origin: Optional[Position] = None) -> bool:
        """Check whether putting a piece on a cell would complete a mill.

        Args:
            destination: The (empty) cell the piece would occupy.
            player: The owner of the piece.
            origin: The cell the piece leaves when moving, None when placing.

        Returns:
            True if a mill line through the destination would be complete.
        """
        for line in mill_lines_containing(destination):
            if all(
                p == destination or (p != origin and self.board.get(p) is player)
                for p in line
            ):
                return True
        return False

    def board_key(self) -> str:
        """Serialize the board into a canonical string, one character per cell."""
        chars = []
        for position in ALL_POSITIONS:
            piece = self.board.get(position)
            if piece is None:
                chars.append(".")
            else:
                chars.append("W" if piece is Piece.WHITE else "B")
        return "".join(chars)

    def get_valid_actions(self) -> list:
        """Get a list of legal moves for the current player.

        Returns:
            A list of legal moves.
        """
        raise NotImplementedError("Subclasses must implement get_valid_actions")

    def get_winner(self) -> Optional[Piece]:
        """Get the winner of the game.

        Returns:
            The winning colour, or None if the game is not finished or drawn.
        """
        if not self.done:
            return None
        return self.winner
