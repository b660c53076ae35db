"""AI difficulty levels.

- Beginner: Makes random moves most of the time, rarely blocks
- Easy: Sometimes makes good moves, often misses opportunities
- Medium: Balanced play, occasionally makes mistakes
- Hard: Minimax search, rarely makes mistakes
- Expert: Deeper minimax search
"""

from enum import Enum


class Difficulty(str, Enum):
    """Difficulty levels, ordered from weakest to strongest."""

    BEGINNER = "beginner"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def optimal_move_chance(self) -> int:
        """Chance (0-100) that a heuristic priority step is taken."""
        return _OPTIMAL_MOVE_CHANCE[self]

    @property
    def block_chance(self) -> int:
        """Chance (0-100) that an opponent threat is blocked."""
        return _BLOCK_CHANCE[self]

    @property
    def search_depth(self) -> int:
        """Minimax search depth (0 means heuristic only)."""
        return _SEARCH_DEPTH[self]

    @property
    def uses_search(self) -> bool:
        return self.search_depth > 0

    @property
    def rank(self) -> int:
        return list(Difficulty).index(self)

    # Ordered by strength, not alphabetically by value
    def __lt__(self, other):
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank >= other.rank


_DESCRIPTIONS = {
    Difficulty.BEGINNER: "Learning the ropes",
    Difficulty.EASY: "Casual play",
    Difficulty.MEDIUM: "Balanced challenge",
    Difficulty.HARD: "Tough opponent",
    Difficulty.EXPERT: "Master tactician",
}

_OPTIMAL_MOVE_CHANCE = {
    Difficulty.BEGINNER: 10,
    Difficulty.EASY: 30,
    Difficulty.MEDIUM: 70,
    Difficulty.HARD: 100,
    Difficulty.EXPERT: 100,
}

_BLOCK_CHANCE = {
    Difficulty.BEGINNER: 10,
    Difficulty.EASY: 40,
    Difficulty.MEDIUM: 80,
    Difficulty.HARD: 100,
    Difficulty.EXPERT: 100,
}

_SEARCH_DEPTH = {
    Difficulty.BEGINNER: 0,
    Difficulty.EASY: 0,
    Difficulty.MEDIUM: 0,
    Difficulty.HARD: 3,
    Difficulty.EXPERT: 4,
}
