"""Heuristic agent for Nine Men's Morris.

The agent plays by a fixed list of priorities. Each priority step is only
taken when a dice roll against the difficulty's chances succeeds, so weaker
levels skip good moves more often and fall through to random play.

Placing and moving share the same priorities; a placement is simply a
candidate with no origin cell, and for a slide or flight the origin is
treated as vacated when judging the destination:

1. Complete a mill.
2. Block an opponent mill (gated by the block chance).
3. Set up a mill (two own pieces on a line with the third cell empty).
4. Take a double-mill junction (a cell on two live lines).
5. Take an intersection.
6. Any legal move.

Capture targets are chosen among the capturable pieces: first a piece on
a potential opponent mill, then an intersection piece, then any.
"""

import copy
import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from morris_ai.agents.base_agent import Agent
from morris_ai.agents.difficulty import Difficulty
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Move, Piece, Position

logger = logging.getLogger(__name__)

Candidate = Tuple[Optional[Position], Position]


class HeuristicAgent(Agent):
    """AI agent that follows difficulty-scaled tactical priorities."""

    DISPLAY_NAME = "Heuristic Agent"

    def __init__(self, name: str = "Heuristic", difficulty: Difficulty = Difficulty.MEDIUM,
                 rng: Optional[random.Random] = None):
        """Initialize a heuristic agent.

        Args:
            name: The name of the agent.
            difficulty: Controls how often each priority step is taken.
            rng: Random source for the dice rolls and random choices.
        """
        super().__init__(name)
        self.difficulty = difficulty
        self.rng = rng or random.Random()

    def get_settings(self) -> Dict[str, Tuple[Any, str, str]]:
        return {
            "difficulty": (self.difficulty.value, "One of " + ", ".join(d.value for d in Difficulty), "str"),
        }

    def set_setting(self, setting_name: str, value: Any) -> bool:
        if setting_name == "difficulty":
            try:
                self.difficulty = Difficulty(value)
                return True
            except ValueError:
                logger.warning(f"{self.name}: unknown difficulty {value!r}")
                return False
        return super().set_setting(setting_name, value)

    def _should_make_optimal_move(self) -> bool:
        return self.rng.randrange(100) < self.difficulty.optimal_move_chance

    def _should_block(self) -> bool:
        return self.rng.randrange(100) < self.difficulty.block_chance

    def get_action(self, env: MorrisEnvironment) -> Optional[Move]:
        """Choose a complete move for the player to move.

        Args:
            env: The game environment. It is not modified.

        Returns:
            A placement or slide with its capture when it forms a mill, a
            capture-only move when a capture is pending, or None when the
            game is over or the player has no legal move.
        """
        if env.done:
            return None

        if env.awaiting_capture:
            target = self.select_capture(env)
            return Move(None, None, target) if target is not None else None

        player = env.current_player
        if env.pieces_to_place(player) > 0:
            candidates = [(None, p) for p in env.get_empty_positions()]
        else:
            candidates = [
                (origin, destination)
                for origin in env.pieces_of(player)
                for destination in env.get_valid_destinations(origin)
            ]
        if not candidates:
            return None

        origin, destination = self._select_candidate(env, candidates)
        return Move(origin, destination, self._capture_after(env, origin, destination))

    def _select_candidate(self, env: MorrisEnvironment, candidates: List[Candidate]) -> Candidate:
        player = env.current_player
        opponent = player.opponent

        # Priority 1: complete a mill
        mill = next((c for c in candidates if env.would_form_mill(c[1], player, c[0])), None)
        if mill is not None and self._should_make_optimal_move():
            return mill

        # Priority 2: block an opponent mill
        block = next((c for c in candidates if env.would_form_mill(c[1], opponent)), None)
        if block is not None and self._should_block():
            return block

        # Priority 3: set up a mill
        if self._should_make_optimal_move():
            setup = next((c for c in candidates if self._creates_setup(env, c, player)), None)
            if setup is not None:
                return setup

        # Priority 4: double-mill junction
        if self._should_make_optimal_move():
            junction = self._find_junction(env, candidates, player)
            if junction is not None:
                return junction

        # Priority 5: intersections
        if self._should_make_optimal_move():
            intersections = [c for c in candidates if c[1].is_intersection]
            if intersections:
                return self.rng.choice(intersections)

        return self.rng.choice(candidates)

    @staticmethod
    def _line_counts(env: MorrisEnvironment, line, destination: Position,
                     origin: Optional[Position], player: Piece) -> Tuple[int, int, int]:
        """Count own, opponent and empty cells on a line, destination excluded."""
        own = opponent = empty = 0
        for p in line:
            if p == destination:
                continue
            piece = None if p == origin else env.board.get(p)
            if piece is None:
                empty += 1
            elif piece is player:
                own += 1
            else:
                opponent += 1
        return own, opponent, empty

    def _creates_setup(self, env: MorrisEnvironment, candidate: Candidate, player: Piece) -> bool:
        origin, destination = candidate
        for line in env.get_mills_containing(destination):
            own, _, empty = self._line_counts(env, line, destination, origin, player)
            if own == 1 and empty == 1:
                return True
        return False

    def _find_junction(self, env: MorrisEnvironment, candidates: List[Candidate],
                       player: Piece) -> Optional[Candidate]:
        best = None
        best_lines = 1
        for origin, destination in candidates:
            strong_lines = 0
            for line in env.get_mills_containing(destination):
                own, opponent, _ = self._line_counts(env, line, destination, origin, player)
                if own >= 1 and opponent == 0:
                    strong_lines += 1
            if strong_lines > best_lines:
                best_lines = strong_lines
                best = (origin, destination)
        return best

    def _capture_after(self, env: MorrisEnvironment, origin: Optional[Position],
                       destination: Position) -> Optional[Position]:
        if not env.would_form_mill(destination, env.current_player, origin):
            return None

        after = copy.deepcopy(env)
        if origin is None:
            after.place_piece(destination)
        else:
            after.move_piece(origin, destination)
        if not after.awaiting_capture:
            return None
        return self.select_capture(after)

    def select_capture(self, env: MorrisEnvironment) -> Optional[Position]:
        """Choose which opponent piece to capture.

        Args:
            env: The game environment, with the current player to capture.

        Returns:
            The position to capture, or None if the opponent has no pieces.
        """
        opponent = env.current_player.opponent
        capturable = env.capturable_pieces(opponent)
        if not capturable:
            return None

        if not self._should_make_optimal_move():
            return self.rng.choice(capturable)

        # Priority 1: break a potential opponent mill
        for position in capturable:
            if self._on_potential_mill(env, position, opponent):
                return position

        # Priority 2: intersections
        intersections = [p for p in capturable if p.is_intersection]
        if intersections:
            return self.rng.choice(intersections)

        return self.rng.choice(capturable)

    @staticmethod
    def _on_potential_mill(env: MorrisEnvironment, position: Position, owner: Piece) -> bool:
        for line in env.get_mills_containing(position):
            pieces = [env.board.get(p) for p in line]
            if pieces.count(owner) == 2 and pieces.count(None) == 1:
                return True
        return False
