"""Minimax agent for Nine Men's Morris.

The search runs on SearchState, a compact numpy board, rather than on the
full environment. A move that completes a mill is expanded into one tree
edge per capture target, so choosing what to capture is part of the search.
"""

import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from morris_ai.agents.base_agent import Agent
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import (
    ADJACENCY,
    ADJACENCY_MATRIX,
    INTERSECTION_MASK,
    MILL_LINE_ARRAY,
    MILL_LINES,
    MILL_MEMBERSHIP,
    MILLS_FOR_INDEX,
    NUM_POSITIONS,
    Move,
    Position,
)

logger = logging.getLogger(__name__)

EMPTY = 0
WHITE = 1
BLACK = 2


class SearchState:
    """Lightweight game state used inside the search tree.

    Attributes:
        board (np.ndarray): int8 array of 24 cells, 0 empty, 1 white, 2 black.
        current_player (int): 1 for white, 2 for black.
        white_pieces_to_place (int): Pieces white still has to place.
        black_pieces_to_place (int): Pieces black still has to place.
    """

    __slots__ = ("board", "current_player", "white_pieces_to_place", "black_pieces_to_place")

    def __init__(self, board: np.ndarray, current_player: int,
                 white_pieces_to_place: int = 0, black_pieces_to_place: int = 0):
        self.board = board
        self.current_player = current_player
        self.white_pieces_to_place = white_pieces_to_place
        self.black_pieces_to_place = black_pieces_to_place

    @classmethod
    def from_environment(cls, env: MorrisEnvironment) -> "SearchState":
        return cls(
            board=env._get_observation(),
            current_player=env.current_player.code,
            white_pieces_to_place=env.white_pieces_to_place,
            black_pieces_to_place=env.black_pieces_to_place,
        )

    @property
    def is_placing_phase(self) -> bool:
        return self.white_pieces_to_place > 0 or self.black_pieces_to_place > 0

    def pieces_to_place(self, player: int) -> int:
        return self.white_pieces_to_place if player == WHITE else self.black_pieces_to_place

    def count(self, player: int) -> int:
        return int(np.count_nonzero(self.board == player))

    def can_fly(self, player: int) -> bool:
        return not self.is_placing_phase and self.count(player) == 3

    def clone(self) -> "SearchState":
        return SearchState(self.board.copy(), self.current_player,
                           self.white_pieces_to_place, self.black_pieces_to_place)


class SearchMove(NamedTuple):
    """A move in the search tree as board indices (origin None when placing)."""

    origin: Optional[int]
    destination: int
    capture: Optional[int] = None

    def to_move(self) -> Move:
        return Move(
            Position.from_index(self.origin) if self.origin is not None else None,
            Position.from_index(self.destination),
            Position.from_index(self.capture) if self.capture is not None else None,
        )


class MinimaxAgent(Agent):
    """AI agent that uses depth-limited minimax with alpha-beta pruning.

    There is no transposition table and no iterative deepening. Ties are
    broken by move generation order, so identical inputs always produce the
    same move.
    """

    DISPLAY_NAME = "Minimax Agent"

    WIN_SCORE = 10000.0

    # Evaluation weights
    MATERIAL_WEIGHT = 100
    MILL_WEIGHT = 50
    POTENTIAL_MILL_WEIGHT = 20
    DOUBLE_MILL_WEIGHT = 40
    MOBILITY_WEIGHT = 8
    INTERSECTION_WEIGHT = 3

    def __init__(self, name: str = "Minimax", depth: int = 3):
        """Initialize a minimax agent.

        Args:
            name: The name of the agent.
            depth: The maximum depth to search in the game tree. One level
                less is searched while pieces are still being placed.
        """
        super().__init__(name)
        self.depth = depth
        self.nodes_searched = 0

    def get_settings(self) -> Dict[str, Tuple[Any, str, str]]:
        """Get the agent's configurable settings."""
        return {
            "depth": (self.depth, "Maximum depth to search in the game tree", "int"),
        }

    def set_setting(self, setting_name: str, value: Any) -> bool:
        """Set a specific setting to a new value."""
        if setting_name == "depth":
            try:
                depth = int(value)
            except (TypeError, ValueError):
                logger.warning(f"{self.name}: depth must be a valid integer, got {value!r}")
                return False
            if depth <= 0:
                logger.warning(f"{self.name}: depth must be a positive integer, got {depth}")
                return False
            self.depth = depth
            return True
        return super().set_setting(setting_name, value)

    def search_depth_for(self, state: SearchState) -> int:
        # Placement has a much larger branching factor
        if state.is_placing_phase and self.depth > 2:
            return self.depth - 1
        return self.depth

    def get_action(self, env: MorrisEnvironment) -> Optional[Move]:
        """Get the best move found by the search.

        Args:
            env: The game environment. It is not modified.

        Returns:
            The selected move, a capture-only move when a capture is pending,
            or None when there is no legal move.
        """
        if env.done:
            return None

        state = SearchState.from_environment(env)
        depth = self.search_depth_for(state)

        if env.awaiting_capture:
            capture = self.find_best_capture(state, depth)
            return Move(None, None, Position.from_index(capture)) if capture is not None else None

        best = self.find_best_move_with_search(state, depth)
        return best.to_move() if best is not None else None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def find_best_move_with_search(self, state: SearchState, depth: int) -> Optional[SearchMove]:
        """Find the best move for the player to move.

        Args:
            state: The position to search. It is not modified.
            depth: Number of plies to search.

        Returns:
            The best move, or None if the player to move has no legal move.
        """
        self.nodes_searched = 0
        ai_player = state.current_player

        moves = self.generate_moves(state)
        if not moves:
            return None

        best_move = None
        best_score = float("-inf")
        for move in moves:
            child = state.clone()
            self.apply_search_move(child, move)
            # The opponent moves next, so the next level minimizes
            score = self._minimax(child, depth - 1, float("-inf"), float("inf"), False, ai_player)
            if score > best_score:
                best_score = score
                best_move = move

        logger.debug(f"{self.name}: best {best_move} scored {best_score} "
                     f"at depth {depth} ({self.nodes_searched} nodes)")
        return best_move

    def find_best_capture(self, state: SearchState, depth: int) -> Optional[int]:
        """Choose a capture target when a mill was formed outside the search.

        Args:
            state: The position after the mill was formed, captor to move.
            depth: Number of plies to search after the capture.

        Returns:
            The board index to capture, or None if nothing can be captured.
        """
        self.nodes_searched = 0
        ai_player = state.current_player

        best_target = None
        best_score = float("-inf")
        for target in self._capturable(state, ai_player):
            child = state.clone()
            child.board[target] = EMPTY
            child.current_player = 3 - ai_player
            score = self._minimax(child, depth - 1, float("-inf"), float("inf"), False, ai_player)
            if score > best_score:
                best_score = score
                best_target = target
        return best_target

    def _minimax(self, state: SearchState, depth: int, alpha: float, beta: float,
                 maximizing: bool, ai_player: int) -> float:
        self.nodes_searched += 1

        terminal = self._terminal_score(state, ai_player)
        if terminal is not None:
            # Faster wins and slower losses score higher
            return terminal + depth if terminal > 0 else terminal - depth

        if depth <= 0:
            return self.evaluate(state, ai_player)

        moves = self.generate_moves(state)

        if maximizing:
            best = float("-inf")
            for move in moves:
                child = state.clone()
                self.apply_search_move(child, move)
                best = max(best, self._minimax(child, depth - 1, alpha, beta, False, ai_player))
                alpha = max(alpha, best)
                if beta <= alpha:
                    break
            return best

        best = float("inf")
        for move in moves:
            child = state.clone()
            self.apply_search_move(child, move)
            best = min(best, self._minimax(child, depth - 1, alpha, beta, True, ai_player))
            beta = min(beta, best)
            if beta <= alpha:
                break
        return best

    def _terminal_score(self, state: SearchState, ai_player: int) -> Optional[float]:
        """Score a finished position, or None if the game goes on."""
        if state.is_placing_phase:
            return None

        opponent = 3 - ai_player
        if state.count(opponent) < 3:
            return self.WIN_SCORE
        if state.count(ai_player) < 3:
            return -self.WIN_SCORE
        if self.count_moves(state, state.current_player) == 0:
            return -self.WIN_SCORE if state.current_player == ai_player else self.WIN_SCORE
        return None

    # ------------------------------------------------------------------
    # Move generation
    # ------------------------------------------------------------------

    @staticmethod
    def _forms_mill(state: SearchState, destination: int, player: int,
                    vacated: Optional[int] = None) -> bool:
        board = state.board
        for m in MILLS_FOR_INDEX[destination]:
            if all(p == destination or (p != vacated and board[p] == player)
                   for p in MILL_LINES[m]):
                return True
        return False

    @staticmethod
    def _in_mill(state: SearchState, index: int, player: int) -> bool:
        board = state.board
        return any(all(board[p] == player for p in MILL_LINES[m]) for m in MILLS_FOR_INDEX[index])

    def _capturable(self, state: SearchState, captor: int) -> List[int]:
        opponent = 3 - captor
        pieces = [i for i in range(NUM_POSITIONS) if state.board[i] == opponent]
        unprotected = [i for i in pieces if not self._in_mill(state, i, opponent)]
        return unprotected if unprotected else pieces

    def _expand(self, state: SearchState, origin: Optional[int], destination: int,
                player: int, moves: List[SearchMove]) -> None:
        if not self._forms_mill(state, destination, player, origin):
            moves.append(SearchMove(origin, destination))
            return

        # Mill protection does not depend on the moving piece, only on the opponent
        targets = self._capturable(state, player)
        if not targets:
            moves.append(SearchMove(origin, destination))
            return
        moves.extend(SearchMove(origin, destination, t) for t in targets)

    def generate_moves(self, state: SearchState) -> List[SearchMove]:
        """Generate every legal move, capture choices included.

        Returns:
            The moves, capturing moves first, otherwise in board index order.
        """
        player = state.current_player
        board = state.board
        moves: List[SearchMove] = []

        if state.is_placing_phase:
            if state.pieces_to_place(player) > 0:
                for destination in range(NUM_POSITIONS):
                    if board[destination] == EMPTY:
                        self._expand(state, None, destination, player, moves)
        else:
            empties = [i for i in range(NUM_POSITIONS) if board[i] == EMPTY]
            flying = state.can_fly(player)
            for origin in range(NUM_POSITIONS):
                if board[origin] != player:
                    continue
                destinations = empties if flying else [i for i in ADJACENCY[origin] if board[i] == EMPTY]
                for destination in destinations:
                    self._expand(state, origin, destination, player, moves)

        # Stable sort keeps generation order within each group
        moves.sort(key=lambda m: m.capture is None)
        return moves

    @staticmethod
    def apply_search_move(state: SearchState, move: SearchMove) -> None:
        """Apply a move to a search state in place."""
        player = state.current_player
        if move.origin is not None:
            state.board[move.origin] = EMPTY
        elif player == WHITE:
            state.white_pieces_to_place -= 1
        else:
            state.black_pieces_to_place -= 1

        state.board[move.destination] = player
        if move.capture is not None:
            state.board[move.capture] = EMPTY
        state.current_player = 3 - player

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    @staticmethod
    def count_moves(state: SearchState, player: int) -> int:
        """Count the legal destinations of a player's pieces.

        A flying player's mobility is its piece count times the number of
        empty cells.
        """
        own = (state.board == player).astype(np.int32)
        empty = (state.board == EMPTY).astype(np.int32)
        if state.can_fly(player):
            return int(own.sum() * empty.sum())
        return int(own @ ADJACENCY_MATRIX @ empty)

    def evaluate(self, state: SearchState, ai_player: int) -> float:
        """Evaluate a position from the searching player's point of view.

        Args:
            state: The position to evaluate.
            ai_player: 1 or 2, the player the score is for.

        Returns:
            Positive values favour ai_player.
        """
        opponent = 3 - ai_player
        board = state.board

        ai_cells = board == ai_player
        opp_cells = board == opponent

        ai_total = int(ai_cells.sum()) + state.pieces_to_place(ai_player)
        opp_total = int(opp_cells.sum()) + state.pieces_to_place(opponent)
        score = (ai_total - opp_total) * self.MATERIAL_WEIGHT

        lines = board[MILL_LINE_ARRAY]
        ai_count = (lines == ai_player).sum(axis=1)
        opp_count = (lines == opponent).sum(axis=1)
        empty_count = (lines == EMPTY).sum(axis=1)

        mills = int(np.count_nonzero(ai_count == 3)) - int(np.count_nonzero(opp_count == 3))
        score += mills * self.MILL_WEIGHT

        potential = (int(np.count_nonzero((ai_count == 2) & (empty_count == 1)))
                     - int(np.count_nonzero((opp_count == 2) & (empty_count == 1))))
        score += potential * self.POTENTIAL_MILL_WEIGHT

        # Pieces sitting on two or more live lines of their own colour
        ai_strong = MILL_MEMBERSHIP @ ((ai_count >= 2) & (opp_count == 0)).astype(np.int32)
        opp_strong = MILL_MEMBERSHIP @ ((opp_count >= 2) & (ai_count == 0)).astype(np.int32)
        doubles = (int(np.count_nonzero(ai_cells & (ai_strong >= 2)))
                   - int(np.count_nonzero(opp_cells & (opp_strong >= 2))))
        score += doubles * self.DOUBLE_MILL_WEIGHT

        if not state.is_placing_phase:
            mobility = self.count_moves(state, ai_player) - self.count_moves(state, opponent)
            score += mobility * self.MOBILITY_WEIGHT

        intersections = (int(np.count_nonzero(ai_cells & INTERSECTION_MASK))
                         - int(np.count_nonzero(opp_cells & INTERSECTION_MASK)))
        score += intersections * self.INTERSECTION_WEIGHT

        return float(score)
