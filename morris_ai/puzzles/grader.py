"""Move grading for training puzzles.

Every legal move in the position gets a tactical value (mill completion,
blocks, setups, positional value, mobility and a few penalties). The
player's move is then scored against the spread of those values: 100 when
nothing is better, otherwise proportionally lower with a little jitter so
scores do not all land on round numbers.
"""

import logging
import random
from typing import List, NamedTuple, Optional, Tuple

from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Move, Piece, Position
from morris_ai.errors import IllegalMoveError

logger = logging.getLogger(__name__)

Candidate = Tuple[Optional[Position], Position]

# (minimum score, rating), best first
RATINGS = (
    (90, "Excellent!"),
    (70, "Great Move"),
    (50, "Good"),
    (30, "Okay"),
    (10, "Weak"),
    (0, "Blunder"),
)

PERFECT_PHRASES = (
    "Optimal play - you identified the best move in this position.",
    "Perfect tactical awareness - this move maximizes your advantage.",
    "Strong strategic thinking - you found the critical move.",
    "Excellent board vision - this is precisely the right choice.",
    "Sharp calculation - you navigated this position flawlessly.",
)


class MoveEvaluation(NamedTuple):
    score: int
    rating: str
    explanation: str

    @classmethod
    def from_score(cls, score: int, explanation: str) -> "MoveEvaluation":
        rating = next(label for minimum, label in RATINGS if score >= minimum)
        return cls(score, rating, explanation)


def strategic_value(position: Position) -> int:
    """Positional value of a cell: intersections over corners, middle ring best."""
    if position.is_intersection:
        return 4 if position.ring == 1 else 3
    return 2 if position.ring == 1 else 1


def _capitalize(reason: str) -> str:
    return reason[0].upper() + reason[1:]


class MoveGrader:
    """Scores a move against every legal alternative.

    Args:
        rng: Random source for score jitter and phrasing.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def evaluate_move(self, env: MorrisEnvironment, move: Move) -> MoveEvaluation:
        """Grade a placement or a slide/flight.

        The capture part of the move, if any, is not graded.

        Args:
            env: The position before the move. It is not modified.
            move: The move played.

        Returns:
            The score (0-100), its rating and an explanation.

        Raises:
            IllegalMoveError: If the move is not legal in the position.
        """
        candidates = self._candidates(env)
        played = (move.origin, move.destination)
        if env.awaiting_capture or played not in candidates:
            raise IllegalMoveError(
                "Move is not legal in this position",
                context={"origin": move.origin, "destination": move.destination,
                         "player": env.current_player.value},
            )

        if move.origin is None:
            return self._evaluate_placement(env, move.destination, candidates)
        return self._evaluate_slide(env, move.origin, move.destination, candidates)

    @staticmethod
    def _candidates(env: MorrisEnvironment) -> List[Candidate]:
        seen = []
        for action in env.get_valid_actions():
            pair = (action.origin, action.destination)
            if pair not in seen:
                seen.append(pair)
        return seen

    def _score(self, value: int, values: List[int], neutral: Tuple[int, int],
               quiet: Optional[Tuple[int, int]] = None) -> Tuple[int, bool]:
        """Map a move value onto 0-100 against all move values.

        Returns:
            The score and whether the move was tied for best.
        """
        best = max(values)
        if value >= best:
            return 100, True

        spread = best - min(values)
        if spread > 0:
            base = round((1 - (best - value) / spread) * 75 + 15)
            return max(5, min(99, base + self.rng.randint(-3, 3))), False
        if quiet is not None and best == 0 and value == 0:
            return quiet[0] + self.rng.randrange(quiet[1]), False
        return neutral[0] + self.rng.randrange(neutral[1]), False

    # ------------------------------------------------------------------
    # Line helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _count_setups(env: MorrisEnvironment, position: Position, player: Piece,
                      vacated: Optional[Position] = None) -> int:
        """Count lines through a cell holding one own piece and one empty cell besides it."""
        count = 0
        for line in env.get_mills_containing(position):
            own = empty = 0
            for p in line:
                if p == position:
                    continue
                piece = None if p == vacated else env.board.get(p)
                if piece is player:
                    own += 1
                elif piece is None:
                    empty += 1
            if own == 1 and empty == 1:
                count += 1
        return count

    def _blocks_setup(self, env: MorrisEnvironment, position: Position, opponent: Piece) -> bool:
        return self._count_setups(env, position, opponent) > 0

    @staticmethod
    def _friendly_neighbours(env: MorrisEnvironment, position: Position, player: Piece) -> int:
        return sum(1 for p in env.get_adjacent_positions(position) if env.board.get(p) is player)

    @staticmethod
    def _mobility(env: MorrisEnvironment, position: Position, vacated: Position) -> int:
        return sum(1 for p in env.get_adjacent_positions(position)
                   if p not in env.board or p == vacated)

    @staticmethod
    def _lines_with(env: MorrisEnvironment, position: Position, piece: Piece, count: int,
                    skip: Tuple[Position, ...] = ()) -> bool:
        for line in env.get_mills_containing(position):
            owned = sum(1 for p in line if p != position and p not in skip
                        and env.board.get(p) is piece)
            if owned == count:
                return True
        return False

    def _was_part_of_setup(self, env: MorrisEnvironment, origin: Position, player: Piece) -> bool:
        for line in env.get_mills_containing(origin):
            pieces = [env.board.get(p) for p in line]
            if pieces.count(player) == 2 and pieces.count(None) == 1:
                return True
        return False

    def _creates_shuttle(self, env: MorrisEnvironment, origin: Position,
                         destination: Position, player: Piece) -> bool:
        """A mill now, and another one when the piece slides back."""
        if not env.would_form_mill(destination, player, origin):
            return False
        return self._lines_with(env, origin, player, 2, skip=(destination,))

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def placement_value(self, env: MorrisEnvironment, position: Position) -> int:
        player = env.current_player
        opponent = player.opponent
        value = 0

        if env.would_form_mill(position, player):
            value += 100
        if env.would_form_mill(position, opponent):
            value += 90

        setups = self._count_setups(env, position, player)
        if setups >= 2:
            value += 60
        elif setups == 1:
            value += 25

        value += strategic_value(position) * 5
        value += sum(1 for p in env.get_adjacent_positions(position) if p not in env.board) * 3

        if self._blocks_setup(env, position, opponent):
            value += 15

        # Clustering without purpose
        if self._friendly_neighbours(env, position, player) >= 2 and setups == 0:
            value -= 10
        return value

    def _evaluate_placement(self, env: MorrisEnvironment, position: Position,
                            candidates: List[Candidate]) -> MoveEvaluation:
        player = env.current_player
        opponent = player.opponent

        value = self.placement_value(env, position)
        values = [self.placement_value(env, p) for _, p in candidates]
        score, is_best = self._score(value, values, neutral=(50, 10))
        best_cell = candidates[values.index(max(values))][1]

        positive = []
        if env.would_form_mill(position, player):
            positive.append("you formed a mill")
        if env.would_form_mill(position, opponent):
            positive.append("you blocked your opponent's mill")

        setups = self._count_setups(env, position, player)
        if setups >= 2:
            positive.append("you created a powerful double mill threat")
        elif setups == 1 and len(positive) < 2:
            positive.append("you set up a future mill")

        strategic = strategic_value(position)
        if strategic >= 4 and len(positive) < 2:
            positive.append("you control a prime intersection")
        elif strategic >= 3 and len(positive) < 2:
            positive.append("you secured a key intersection")

        if self._blocks_setup(env, position, opponent) and len(positive) < 2:
            positive.append("you disrupted your opponent's setup")

        negative = []
        if not is_best:
            if env.would_form_mill(best_cell, player) and not env.would_form_mill(position, player):
                negative.append("you missed completing a mill")

            urgent = next((p for _, p in candidates if env.would_form_mill(p, opponent)), None)
            if urgent is not None and urgent != position and not env.would_form_mill(position, opponent):
                negative.append("you failed to block your opponent's mill threat")

            if self._friendly_neighbours(env, position, player) >= 2 and setups == 0:
                negative.append("your pieces are clustered without forming a threat")

        return MoveEvaluation.from_score(score, self.build_explanation(positive, negative, score))

    # ------------------------------------------------------------------
    # Slide / flight
    # ------------------------------------------------------------------

    def slide_value(self, env: MorrisEnvironment, origin: Position, destination: Position) -> int:
        player = env.current_player
        opponent = player.opponent
        forms_mill = env.would_form_mill(destination, player, origin)
        value = 0

        if forms_mill:
            value += 100
        if env.would_form_mill(destination, opponent):
            value += 85
        if self._creates_shuttle(env, origin, destination, player):
            value += 70
        if self._count_setups(env, destination, player, vacated=origin) >= 2:
            value += 50
        if self._count_setups(env, destination, player, vacated=origin) >= 1:
            value += 25

        if destination.is_intersection:
            value += 15
        if origin.is_intersection and not destination.is_intersection:
            value -= 10

        old_mobility = self._mobility(env, origin, origin)
        new_mobility = self._mobility(env, destination, origin)
        value += (new_mobility - old_mobility) * 5

        if self._count_setups(env, destination, player) > 0:
            value += 15

        if new_mobility <= 1 and not env.can_fly(player):
            value -= 20
        if self._was_part_of_setup(env, origin, player) and not forms_mill:
            value -= 15
        if self._lines_with(env, origin, opponent, 2) and not forms_mill:
            value -= 10
        return value

    def _evaluate_slide(self, env: MorrisEnvironment, origin: Position, destination: Position,
                        candidates: List[Candidate]) -> MoveEvaluation:
        player = env.current_player
        opponent = player.opponent
        forms_mill = env.would_form_mill(destination, player, origin)

        value = self.slide_value(env, origin, destination)
        values = [self.slide_value(env, o, d) for o, d in candidates]
        score, is_best = self._score(value, values, neutral=(45, 15), quiet=(82, 8))
        best_origin, best_destination = candidates[values.index(max(values))]

        positive = []
        if forms_mill:
            positive.append("you formed a mill")
        if env.would_form_mill(destination, opponent):
            positive.append("you blocked your opponent's mill")
        if self._creates_shuttle(env, origin, destination, player):
            positive.append("you set up a devastating shuttle mill")
        if self._count_setups(env, destination, player, vacated=origin) >= 2 and not forms_mill:
            positive.append("you positioned for a double mill threat")
        if self._count_setups(env, destination, player, vacated=origin) >= 1 and len(positive) < 2:
            positive.append("you set up a future mill")
        if destination.is_intersection and not origin.is_intersection and len(positive) < 2:
            positive.append("you gained control of an intersection")

        negative = []
        if not is_best:
            if (env.would_form_mill(best_destination, player, best_origin)
                    and not forms_mill):
                negative.append("you missed forming a mill")
            if self._mobility(env, destination, origin) <= 1 and not env.can_fly(player):
                negative.append("you moved into a trapped position")
            if self._was_part_of_setup(env, origin, player) and not forms_mill:
                negative.append("you broke up your own mill setup")

        return MoveEvaluation.from_score(score, self.build_explanation(positive, negative, score))

    # ------------------------------------------------------------------
    # Explanation
    # ------------------------------------------------------------------

    def build_explanation(self, positive: List[str], negative: List[str], score: int) -> str:
        """Assemble feedback from the bonuses and penalties that applied."""
        if score == 100:
            if not positive:
                return self.rng.choice(PERFECT_PHRASES)
            return " and ".join(_capitalize(r) for r in positive) + " - excellent move!"

        if score >= 70:
            if positive:
                result = " and ".join(_capitalize(r) for r in positive)
                if len(negative) == 1:
                    result += f", though {negative[0]}"
                return result + "."
            if negative:
                return f"{_capitalize(negative[0])}, but still a reasonable move."
            return "A solid move that keeps you in a good position."

        if score >= 40:
            if positive:
                result = " and ".join(_capitalize(r) for r in positive)
                if negative:
                    result += ", but " + " and ".join(negative)
                return result + "."
            if negative:
                return f"{_capitalize(negative[0])}. Look for stronger alternatives."
            return "An acceptable move, but there are better options."

        if negative:
            return " and ".join(_capitalize(r) for r in negative) + ". Consider the position more carefully."
        if positive:
            return f"{_capitalize(positive[0])}, but a much stronger move was available."
        return "This move misses key tactical opportunities. Look deeper!"
