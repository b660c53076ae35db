"""Training puzzle generator.

Each puzzle is a scratch game built directly with
``MorrisEnvironment.from_position``: a motif (a half-built mill, a threat to
block, a fork point) is laid on a random mill line and the rest of the board
is filled with decoy pieces that never touch the motif's own cells.

Piece counts respect the allotment (on board plus to place never exceeds
the starting pieces) and the player to move always has a legal move.
"""

import logging
import random
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

from morris_ai.config import DEFAULT_RULES, RulesConfig
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.state_types import GamePhase
from morris_ai.environments.topology import (
    ALL_POSITIONS,
    INTERSECTIONS,
    Piece,
    Position,
    adjacent_positions,
    all_mill_lines,
    mill_lines_containing,
)
from morris_ai.errors import MorrisError

logger = logging.getLogger(__name__)

Line = Tuple[Position, Position, Position]


class PuzzleCategory(str, Enum):
    MILL_COMPLETION = "mill-completion"
    MILL_BLOCK = "mill-block"
    FORK = "fork"
    FORCED_DEFENSE = "forced-defense"
    MOVING_MILL_COMPLETION = "moving-mill-completion"
    MOVING_DEFENSE = "moving-defense"
    MOVING_FORK = "moving-fork"
    FLYING = "flying"
    FLYING_DEFENSE = "flying-defense"
    FLYING_FORK = "flying-fork"

    @property
    def phase(self) -> GamePhase:
        if self in _PLACING_WEIGHTS:
            return GamePhase.PLACING
        if self in _MOVING_WEIGHTS:
            return GamePhase.MOVING
        return GamePhase.FLYING


# Category weights within each phase
_PLACING_WEIGHTS = {
    PuzzleCategory.MILL_COMPLETION: 2,
    PuzzleCategory.MILL_BLOCK: 1,
    PuzzleCategory.FORK: 1,
    PuzzleCategory.FORCED_DEFENSE: 1,
}
_MOVING_WEIGHTS = {
    PuzzleCategory.MOVING_MILL_COMPLETION: 2,
    PuzzleCategory.MOVING_DEFENSE: 1,
    PuzzleCategory.MOVING_FORK: 1,
}
_FLYING_WEIGHTS = {
    PuzzleCategory.FLYING: 2,
    PuzzleCategory.FLYING_DEFENSE: 1,
    PuzzleCategory.FLYING_FORK: 1,
}
PHASE_WEIGHTS: Dict[GamePhase, Dict[PuzzleCategory, int]] = {
    GamePhase.PLACING: _PLACING_WEIGHTS,
    GamePhase.MOVING: _MOVING_WEIGHTS,
    GamePhase.FLYING: _FLYING_WEIGHTS,
}


class Puzzle(NamedTuple):
    """A generated training position.

    Attributes:
        category: The motif the position was built around.
        env: The game, with the solver to move.
        target: The key cell of the motif (the cell completing or blocking
            the mill, or the fork point); None for open flying positions.
        origin: For moving motifs, the piece meant to reach ``target``.
    """

    category: PuzzleCategory
    env: MorrisEnvironment
    target: Optional[Position] = None
    origin: Optional[Position] = None

    @property
    def player(self) -> Piece:
        return self.env.current_player


class PuzzleGenerator:
    """Builds random training puzzles.

    Args:
        rng: Random source; seed it for reproducible puzzles.
        rules: Rule constants for the generated games.
    """

    MAX_ATTEMPTS = 50

    def __init__(self, rng: Optional[random.Random] = None, rules: RulesConfig = DEFAULT_RULES):
        self.rng = rng or random.Random()
        self.rules = rules
        self._builders = {
            PuzzleCategory.MILL_COMPLETION: self._mill_completion,
            PuzzleCategory.MILL_BLOCK: self._mill_block,
            PuzzleCategory.FORK: self._fork,
            PuzzleCategory.FORCED_DEFENSE: self._forced_defense,
            PuzzleCategory.MOVING_MILL_COMPLETION: self._moving_mill_completion,
            PuzzleCategory.MOVING_DEFENSE: self._moving_defense,
            PuzzleCategory.MOVING_FORK: self._moving_fork,
            PuzzleCategory.FLYING: self._flying,
            PuzzleCategory.FLYING_DEFENSE: self._flying_defense,
            PuzzleCategory.FLYING_FORK: self._flying_fork,
        }

    def random_category(self) -> PuzzleCategory:
        """Draw a phase uniformly, then a category by its weight within the phase."""
        weights = PHASE_WEIGHTS[self.rng.choice(list(GamePhase))]
        categories = list(weights)
        return self.rng.choices(categories, weights=[weights[c] for c in categories])[0]

    def generate(self, category: Optional[PuzzleCategory] = None) -> Puzzle:
        """Generate a puzzle.

        Args:
            category: The motif to build; drawn at random when None.

        Returns:
            The puzzle, with the solver to move and at least one legal move.

        Raises:
            MorrisError: If no valid position could be built.
        """
        if category is None:
            category = self.random_category()

        builder = self._builders[category]
        for attempt in range(self.MAX_ATTEMPTS):
            puzzle = builder()
            if puzzle is None:
                continue
            if puzzle.env.done or not puzzle.env.get_valid_actions():
                logger.debug(f"Discarded {category.value} puzzle on attempt {attempt + 1}")
                continue
            return puzzle

        raise MorrisError("Could not generate puzzle", code="PUZZLE_GENERATION_FAILED",
                          context={"category": category.value})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _random_player(self) -> Piece:
        return self.rng.choice([Piece.WHITE, Piece.BLACK])

    def _shuffled(self, items: Iterable) -> list:
        items = list(items)
        self.rng.shuffle(items)
        return items

    def _free_cells(self, board: Dict[Position, Piece], reserved: Set[Position]) -> List[Position]:
        return self._shuffled(p for p in ALL_POSITIONS if p not in board and p not in reserved)

    @staticmethod
    def _fill(board: Dict[Position, Piece], cells: List[Position], piece: Piece, count: int) -> None:
        """Place up to ``count`` pieces on the first free cells, consuming them."""
        placed = 0
        while cells and placed < count:
            board[cells.pop(0)] = piece
            placed += 1

    def _placing_env(self, board: Dict[Position, Piece], player: Piece,
                     to_place: int) -> MorrisEnvironment:
        """Build a placing-phase game where the player to move still has pieces to place."""
        starting = self.rules.starting_pieces
        own = sum(1 for piece in board.values() if piece is player)
        other = sum(1 for piece in board.values() if piece is not player)

        if player is Piece.WHITE:
            # White moves first, so both counters are equal on white's turn
            to_place = min(to_place, starting - own, starting - other)
            white, black = to_place, to_place
        else:
            to_place = min(to_place, starting - own, starting - other + 1)
            white, black = to_place - 1, to_place
        return MorrisEnvironment.from_position(
            board, current_player=player, white_pieces_to_place=white,
            black_pieces_to_place=black, rules=self.rules)

    def _moving_env(self, board: Dict[Position, Piece], player: Piece) -> MorrisEnvironment:
        return MorrisEnvironment.from_position(board, current_player=player, rules=self.rules)

    def _half_mill(self, board: Dict[Position, Piece], line: Sequence[Position],
                   piece: Piece) -> Position:
        """Put two pieces on a mill line and return the cell left empty."""
        empty = self.rng.choice(line)
        for position in line:
            if position != empty:
                board[position] = piece
        return empty

    def _fork_lines(self, fork_point: Position) -> Tuple[Line, Line]:
        lines = mill_lines_containing(fork_point)
        return lines[0], lines[1]

    def _one_in_each(self, first: Line, second: Line, fork_point: Position) -> Tuple[Position, Position]:
        in_first = self.rng.choice([p for p in first if p != fork_point])
        in_second = self.rng.choice([p for p in second if p != fork_point])
        return in_first, in_second

    # ------------------------------------------------------------------
    # Placing motifs
    # ------------------------------------------------------------------

    def _mill_completion(self) -> Puzzle:
        player = self._random_player()
        line = self.rng.choice(all_mill_lines())
        board: Dict[Position, Piece] = {}
        target = self._half_mill(board, line, player)

        cells = self._free_cells(board, set(line))
        self._fill(board, cells, player.opponent, self.rng.randint(2, 5))
        self._fill(board, cells, player, self.rng.randint(1, 3))
        return Puzzle(PuzzleCategory.MILL_COMPLETION, self._placing_env(board, player, 5), target)

    def _mill_block(self) -> Puzzle:
        player = self._random_player()
        line = self.rng.choice(all_mill_lines())
        board: Dict[Position, Piece] = {}
        target = self._half_mill(board, line, player.opponent)

        cells = self._free_cells(board, set(line))
        self._fill(board, cells, player, self.rng.randint(2, 5))
        self._fill(board, cells, player.opponent, self.rng.randint(0, 2))
        return Puzzle(PuzzleCategory.MILL_BLOCK, self._placing_env(board, player, 4), target)

    def _fork(self) -> Puzzle:
        player = self._random_player()
        fork_point = self.rng.choice(INTERSECTIONS)
        first, second = self._fork_lines(fork_point)
        board: Dict[Position, Piece] = {}
        for position in self._one_in_each(first, second, fork_point):
            board[position] = player

        # Decoys stay off both lines so the two threats remain open
        cells = self._free_cells(board, set(first) | set(second))
        self._fill(board, cells, player.opponent, self.rng.randint(3, 5))
        self._fill(board, cells, player, self.rng.randint(2, 3))
        return Puzzle(PuzzleCategory.FORK, self._placing_env(board, player, 3), fork_point)

    def _forced_defense(self) -> Optional[Puzzle]:
        player = self._random_player()
        lines = self._shuffled(all_mill_lines())
        for i, first in enumerate(lines):
            for second in lines[i + 1:]:
                shared = set(first) & set(second)
                if len(shared) != 1:
                    continue

                defense = shared.pop()
                board = {p: player.opponent for p in (*first, *second) if p != defense}
                cells = self._free_cells(board, set(first) | set(second))
                self._fill(board, cells, player, self.rng.randint(3, 5))
                return Puzzle(PuzzleCategory.FORCED_DEFENSE,
                              self._placing_env(board, player, 3), defense)
        return None

    # ------------------------------------------------------------------
    # Moving motifs
    # ------------------------------------------------------------------

    def _moving_mill_completion(self) -> Optional[Puzzle]:
        player = self._random_player()
        for line in self._shuffled(all_mill_lines()):
            target = self.rng.choice(line)
            origins = [p for p in adjacent_positions(target) if p not in line]
            if not origins:
                continue

            origin = self.rng.choice(origins)
            board = {p: player for p in line if p != target}
            board[origin] = player

            cells = self._free_cells(board, set(line))
            self._fill(board, cells, player, self.rng.randint(2, 4))
            self._fill(board, cells, player.opponent, self.rng.randint(4, 6))
            return Puzzle(PuzzleCategory.MOVING_MILL_COMPLETION,
                          self._moving_env(board, player), target, origin)
        return None

    def _moving_defense(self) -> Optional[Puzzle]:
        player = self._random_player()
        for line in self._shuffled(all_mill_lines()):
            target = self.rng.choice(line)
            blockers = [p for p in adjacent_positions(target) if p not in line]
            if not blockers:
                continue

            blocker = self.rng.choice(blockers)
            board = {p: player.opponent for p in line if p != target}
            board[blocker] = player

            cells = self._free_cells(board, set(line))
            self._fill(board, cells, player, self.rng.randint(4, 5))
            self._fill(board, cells, player.opponent, self.rng.randint(3, 4))
            return Puzzle(PuzzleCategory.MOVING_DEFENSE,
                          self._moving_env(board, player), target, blocker)
        return None

    def _moving_fork(self) -> Optional[Puzzle]:
        """Slide a piece into a fork point along one of its lines.

        Every neighbour of a fork point lies on one of the fork's lines, so
        the moving piece comes from the ring side: that side keeps its other
        piece and the vacated cell becomes its open third cell. The piece on
        the cross line sits on the far ring so it cannot reach the fork point
        and complete the ring side instead.
        """
        player = self._random_player()
        outer_forks = [p for p in INTERSECTIONS if p.ring != 1]
        for fork_point in self._shuffled(outer_forks):
            first, second = self._fork_lines(fork_point)
            origin = self.rng.choice([p for p in first if p != fork_point])
            partner = next(p for p in first if p not in (fork_point, origin))
            in_second = Position(2 - fork_point.ring, fork_point.point)
            board = {origin: player, partner: player, in_second: player}

            cells = self._free_cells(board, set(first) | set(second))
            self._fill(board, cells, player, self.rng.randint(2, 3))
            self._fill(board, cells, player.opponent, self.rng.randint(5, 6))
            return Puzzle(PuzzleCategory.MOVING_FORK,
                          self._moving_env(board, player), fork_point, origin)
        return None

    # ------------------------------------------------------------------
    # Flying motifs
    # ------------------------------------------------------------------

    def _flying(self) -> Puzzle:
        player = self._random_player()
        board: Dict[Position, Piece] = {}
        cells = self._shuffled(ALL_POSITIONS)
        self._fill(board, cells, player, self.rules.minimum_pieces)
        self._fill(board, cells, player.opponent, self.rng.randint(4, 6))
        return Puzzle(PuzzleCategory.FLYING, self._moving_env(board, player))

    def _flying_defense(self) -> Puzzle:
        player = self._random_player()
        line = self.rng.choice(all_mill_lines())
        board: Dict[Position, Piece] = {}
        target = self._half_mill(board, line, player.opponent)

        cells = self._free_cells(board, set(line))
        self._fill(board, cells, player, self.rules.minimum_pieces)
        self._fill(board, cells, player.opponent, self.rng.randint(2, 3))
        return Puzzle(PuzzleCategory.FLYING_DEFENSE, self._moving_env(board, player), target)

    def _flying_fork(self) -> Puzzle:
        player = self._random_player()
        fork_point = self.rng.choice(INTERSECTIONS)
        first, second = self._fork_lines(fork_point)
        board: Dict[Position, Piece] = {}
        for position in self._one_in_each(first, second, fork_point):
            board[position] = player

        cells = self._free_cells(board, set(first) | set(second))
        origin = cells[0]
        self._fill(board, cells, player, 1)
        self._fill(board, cells, player.opponent, self.rng.randint(4, 5))
        return Puzzle(PuzzleCategory.FLYING_FORK, self._moving_env(board, player), fork_point, origin)
