"""Training puzzles: position generation and move grading."""

from morris_ai.puzzles.generator import Puzzle, PuzzleCategory, PuzzleGenerator
from morris_ai.puzzles.grader import MoveEvaluation, MoveGrader

__all__ = ["MoveEvaluation", "MoveGrader", "Puzzle", "PuzzleCategory", "PuzzleGenerator"]
