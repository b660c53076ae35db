"""Tests for the puzzle generator and the move grader."""

import random

import pytest

from morris_ai.environments.state_types import GamePhase
from morris_ai.environments.topology import Move, Piece, Position
from morris_ai.errors import IllegalMoveError
from morris_ai.puzzles.generator import PHASE_WEIGHTS, Puzzle, PuzzleCategory, PuzzleGenerator
from morris_ai.puzzles.grader import PERFECT_PHRASES, MoveEvaluation, MoveGrader, strategic_value

W = Piece.WHITE
B = Piece.BLACK

SEEDS = range(8)


def P(ring, point):
    return Position(ring, point)


def open_threats(env, target, player, vacated=None):
    """Count lines through target holding one of player's pieces and one empty cell."""
    count = 0
    for line in env.get_mills_containing(target):
        others = [None if p == vacated else env.board.get(p) for p in line if p != target]
        if others.count(player) == 1 and others.count(None) == 1:
            count += 1
    return count


def two_piece_lines(env, target, owner):
    return sum(
        1 for line in env.get_mills_containing(target)
        if [env.board.get(p) for p in line if p != target].count(owner) == 2
    )


class TestPuzzleGenerator:
    """Tests for the PuzzleGenerator class."""

    @pytest.mark.parametrize("category", list(PuzzleCategory))
    def test_every_category_is_playable(self, category):
        """Test that each category yields a live, legal position in its phase."""
        for seed in SEEDS:
            puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(category)
            env = puzzle.env

            assert puzzle.category is category
            assert not env.done
            assert env.get_valid_actions()
            assert env.game_phase is category.phase
            for player in (W, B):
                assert env.count_pieces(player) + env.pieces_to_place(player) <= 9
                assert env.pieces_captured(player) >= 0

    @pytest.mark.parametrize("seed", SEEDS)
    def test_mill_completion(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.MILL_COMPLETION)
        assert puzzle.env.is_empty(puzzle.target)
        assert puzzle.env.would_form_mill(puzzle.target, puzzle.player)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_mill_block(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.MILL_BLOCK)
        assert puzzle.env.would_form_mill(puzzle.target, puzzle.player.opponent)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_fork(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.FORK)
        assert puzzle.target.is_intersection
        assert open_threats(puzzle.env, puzzle.target, puzzle.player) == 2

    @pytest.mark.parametrize("seed", SEEDS)
    def test_forced_defense(self, seed):
        """Test that the opponent threatens two mills through the same cell."""
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.FORCED_DEFENSE)
        opponent = puzzle.player.opponent
        assert puzzle.env.would_form_mill(puzzle.target, opponent)
        assert two_piece_lines(puzzle.env, puzzle.target, opponent) == 2

    @pytest.mark.parametrize("seed", SEEDS)
    def test_moving_mill_completion(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.MOVING_MILL_COMPLETION)
        env = puzzle.env
        assert puzzle.target in env.get_valid_destinations(puzzle.origin)
        assert env.would_form_mill(puzzle.target, puzzle.player, puzzle.origin)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_moving_defense(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.MOVING_DEFENSE)
        env = puzzle.env
        assert puzzle.target in env.get_valid_destinations(puzzle.origin)
        assert env.would_form_mill(puzzle.target, puzzle.player.opponent)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_moving_fork(self, seed):
        """Test that sliding into the fork point opens two mill threats at once."""
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.MOVING_FORK)
        env = puzzle.env
        assert puzzle.target in env.get_valid_destinations(puzzle.origin)
        assert not env.would_form_mill(puzzle.target, puzzle.player, puzzle.origin)
        assert open_threats(env, puzzle.target, puzzle.player, vacated=puzzle.origin) == 2

    @pytest.mark.parametrize("seed", SEEDS)
    def test_flying(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.FLYING)
        assert puzzle.env.can_fly(puzzle.player)
        assert puzzle.target is None

    @pytest.mark.parametrize("seed", SEEDS)
    def test_flying_defense(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.FLYING_DEFENSE)
        env = puzzle.env
        assert env.can_fly(puzzle.player)
        assert puzzle.target in env.get_empty_positions()
        assert env.would_form_mill(puzzle.target, puzzle.player.opponent)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_flying_fork(self, seed):
        puzzle = PuzzleGenerator(rng=random.Random(seed)).generate(PuzzleCategory.FLYING_FORK)
        env = puzzle.env
        assert env.can_fly(puzzle.player)
        assert puzzle.target in env.get_valid_destinations(puzzle.origin)
        assert open_threats(env, puzzle.target, puzzle.player, vacated=puzzle.origin) == 2

    def test_random_category(self):
        generator = PuzzleGenerator(rng=random.Random(11))
        seen = {generator.random_category() for _ in range(300)}
        assert seen == set(PuzzleCategory)

    def test_generate_without_category(self):
        puzzle = PuzzleGenerator(rng=random.Random(2)).generate()
        assert isinstance(puzzle, Puzzle)
        assert puzzle.category in PuzzleCategory

    def test_reproducible(self):
        first = PuzzleGenerator(rng=random.Random(99)).generate(PuzzleCategory.FORK)
        second = PuzzleGenerator(rng=random.Random(99)).generate(PuzzleCategory.FORK)
        assert first.env.board == second.env.board
        assert first.target == second.target

    def test_phase_weights(self):
        assert PHASE_WEIGHTS[GamePhase.PLACING][PuzzleCategory.MILL_COMPLETION] == 2
        assert sum(len(weights) for weights in PHASE_WEIGHTS.values()) == len(PuzzleCategory)


class TestMoveGrader:
    """Tests for the MoveGrader class."""

    def test_best_placement_scores_100(self, white_mill_threat):
        grader = MoveGrader(rng=random.Random(0))
        evaluation = grader.evaluate_move(white_mill_threat, Move(None, P(0, 1), P(2, 3)))

        assert evaluation.score == 100
        assert evaluation.rating == "Excellent!"
        assert evaluation.explanation.startswith("You formed a mill")

    def test_capture_is_not_graded(self, white_mill_threat):
        grader = MoveGrader(rng=random.Random(0))
        first = grader.evaluate_move(white_mill_threat, Move(None, P(0, 1), P(2, 3)))
        second = grader.evaluate_move(white_mill_threat, Move(None, P(0, 1), P(1, 6)))
        assert first == second

    def test_missed_mill_placement(self, white_mill_threat):
        """Test that ignoring an open mill scores below 100 and says so."""
        grader = MoveGrader(rng=random.Random(0))
        evaluation = grader.evaluate_move(white_mill_threat, Move(None, P(2, 7)))

        assert evaluation.score < 100
        assert "missed completing a mill" in evaluation.explanation.lower()

    def test_best_slide_scores_100(self, sliding_mill_position):
        grader = MoveGrader(rng=random.Random(0))
        evaluation = grader.evaluate_move(sliding_mill_position, Move(P(0, 2), P(0, 1), P(1, 3)))

        assert evaluation.score == 100
        assert evaluation.rating == "Excellent!"

    def test_missed_mill_slide(self, sliding_mill_position):
        grader = MoveGrader(rng=random.Random(0))
        evaluation = grader.evaluate_move(sliding_mill_position, Move(P(0, 0), P(0, 1)))

        assert 5 <= evaluation.score < 100
        assert "you missed forming a mill" in evaluation.explanation

    def test_slide_values(self, sliding_mill_position):
        grader = MoveGrader()
        assert grader.slide_value(sliding_mill_position, P(0, 2), P(0, 1)) == 75
        assert grader.slide_value(sliding_mill_position, P(0, 0), P(0, 1)) == 40

    def test_illegal_move(self, white_mill_threat):
        grader = MoveGrader()
        with pytest.raises(IllegalMoveError):
            grader.evaluate_move(white_mill_threat, Move(None, P(0, 7)))
        with pytest.raises(IllegalMoveError):
            grader.evaluate_move(white_mill_threat, Move(P(0, 7), P(0, 6)))

    def test_illegal_while_capture_pending(self, protected_mill_position):
        protected_mill_position.place_piece(P(0, 1))
        with pytest.raises(IllegalMoveError):
            MoveGrader().evaluate_move(protected_mill_position, Move(None, P(1, 1)))

    def test_does_not_mutate_environment(self, sliding_mill_position):
        before = sliding_mill_position.to_json()
        MoveGrader().evaluate_move(sliding_mill_position, Move(P(2, 4), P(1, 4)))
        assert sliding_mill_position.to_json() == before

    def test_graded_puzzles(self):
        """Test that every legal move of generated puzzles gets a score in range."""
        generator = PuzzleGenerator(rng=random.Random(21))
        grader = MoveGrader(rng=random.Random(21))
        for category in PuzzleCategory:
            puzzle = generator.generate(category)
            for move in puzzle.env.get_valid_actions():
                evaluation = grader.evaluate_move(puzzle.env, move)
                assert 0 <= evaluation.score <= 100
                assert evaluation.explanation


class TestRatings:
    """Tests for ratings and explanations."""

    @pytest.mark.parametrize("score, rating", [
        (100, "Excellent!"), (90, "Excellent!"), (89, "Great Move"), (70, "Great Move"),
        (55, "Good"), (30, "Okay"), (29, "Weak"), (10, "Weak"), (9, "Blunder"), (0, "Blunder"),
    ])
    def test_rating_thresholds(self, score, rating):
        assert MoveEvaluation.from_score(score, "").rating == rating

    def test_strategic_value(self):
        assert strategic_value(P(1, 2)) == 4
        assert strategic_value(P(0, 2)) == 3
        assert strategic_value(P(1, 3)) == 2
        assert strategic_value(P(2, 3)) == 1

    def test_perfect_without_reasons(self):
        grader = MoveGrader(rng=random.Random(3))
        assert grader.build_explanation([], [], 100) in PERFECT_PHRASES

    def test_explanation_templates(self):
        grader = MoveGrader()
        assert (grader.build_explanation(["you formed a mill"], [], 100)
                == "You formed a mill - excellent move!")
        assert (grader.build_explanation(["you set up a future mill"], ["you missed forming a mill"], 75)
                == "You set up a future mill, though you missed forming a mill.")
        assert (grader.build_explanation([], ["you missed completing a mill"], 50)
                == "You missed completing a mill. Look for stronger alternatives.")
        assert (grader.build_explanation([], [], 20)
                == "This move misses key tactical opportunities. Look deeper!")
        assert (grader.build_explanation(["you secured a key intersection"], [], 10)
                == "You secured a key intersection, but a much stronger move was available.")
