"""Tests for the MinimaxAgent class.

This module contains tests for the MinimaxAgent class, which implements
depth-limited minimax with alpha-beta pruning.
"""

from unittest.mock import patch

import numpy as np
import pytest

from morris_ai.agents.minimax_agent import BLACK, EMPTY, WHITE, MinimaxAgent, SearchMove, SearchState
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Move, Piece, Position

W = Piece.WHITE
B = Piece.BLACK


def P(ring, point):
    return Position(ring, point)


class TestSearchState:
    """Tests for the compact search state."""

    def test_from_environment(self, white_mill_threat):
        state = SearchState.from_environment(white_mill_threat)

        assert state.current_player == WHITE
        assert state.board[P(0, 7).index] == WHITE
        assert state.board[P(2, 3).index] == BLACK
        assert state.board[P(0, 1).index] == EMPTY
        assert state.is_placing_phase
        assert state.pieces_to_place(WHITE) == 5
        assert state.count(BLACK) == 2

    def test_clone_is_independent(self, white_mill_threat):
        state = SearchState.from_environment(white_mill_threat)
        clone = state.clone()
        clone.board[0] = BLACK
        clone.white_pieces_to_place = 0

        assert state.board[0] == WHITE
        assert state.white_pieces_to_place == 5

    def test_search_move_conversion(self):
        assert SearchMove(None, 1, 14).to_move() == Move(None, P(0, 1), P(1, 6))
        assert SearchMove(2, 1).to_move() == Move(P(0, 2), P(0, 1), None)


class TestMinimaxAgent:
    """Tests for the MinimaxAgent class."""

    def test_initialization(self):
        """Test that the minimax agent initializes correctly."""
        agent = MinimaxAgent(name="Test Minimax Agent")
        assert agent.name == "Test Minimax Agent"
        assert agent.depth == 3  # Default depth

    def test_settings(self):
        agent = MinimaxAgent()
        assert agent.get_settings()["depth"][0] == 3
        assert agent.set_setting("depth", "5")
        assert agent.depth == 5
        assert not agent.set_setting("depth", 0)
        assert not agent.set_setting("depth", "deep")
        assert agent.depth == 5

    def test_placing_searches_one_ply_less(self, env):
        agent = MinimaxAgent(depth=3)
        assert agent.search_depth_for(SearchState.from_environment(env)) == 2
        assert MinimaxAgent(depth=2).search_depth_for(SearchState.from_environment(env)) == 2

    def test_get_action_uses_search_depth(self, env):
        """Test that get_action hands the placing depth to the search."""
        agent = MinimaxAgent(depth=4)
        with patch.object(agent, "find_best_move_with_search", return_value=SearchMove(None, 0)) as search:
            action = agent.get_action(env)

        assert action == Move(None, P(0, 0), None)
        assert search.call_args[0][1] == 3

    def test_get_action_returns_legal_move(self, env):
        agent = MinimaxAgent(depth=2)
        action = agent.get_action(env)
        assert action in env.get_valid_actions()

    def test_completes_mill(self, white_mill_threat):
        """Test that the search takes an open mill and captures."""
        agent = MinimaxAgent(depth=3)
        action = agent.get_action(white_mill_threat)

        assert action.destination == P(0, 1)
        assert action.capture in (P(2, 3), P(1, 6))

    def test_deterministic(self, white_mill_threat):
        agent = MinimaxAgent(depth=3)
        assert agent.get_action(white_mill_threat) == agent.get_action(white_mill_threat)

    def test_finds_winning_capture(self, clock):
        """Test that the search wins at once by reducing the opponent to two pieces."""
        board = {
            P(0, 7): W, P(0, 0): W, P(0, 2): W, P(2, 4): W,
            P(1, 3): B, P(2, 6): B, P(1, 6): B,
        }
        env = MorrisEnvironment.from_position(board, W, clock=clock)
        action = MinimaxAgent(depth=3).get_action(env)

        assert action.origin == P(0, 2)
        assert action.destination == P(0, 1)
        assert action.capture in (P(1, 3), P(2, 6), P(1, 6))
        assert env.apply_move(action)
        assert env.winner is W

    def test_pending_capture(self, protected_mill_position):
        env = protected_mill_position
        env.place_piece(P(0, 1))

        assert MinimaxAgent(depth=2).get_action(env) == Move(None, None, P(2, 4))

    def test_no_action_when_done(self, env):
        env.forfeit(W)
        assert MinimaxAgent().get_action(env) is None

    def test_does_not_mutate_environment(self, white_mill_threat):
        before = white_mill_threat.to_json()
        MinimaxAgent(depth=2).get_action(white_mill_threat)
        assert white_mill_threat.to_json() == before


class TestMoveGeneration:
    """Tests for move generation inside the search."""

    def test_captures_first(self, sliding_mill_position):
        agent = MinimaxAgent()
        moves = agent.generate_moves(SearchState.from_environment(sliding_mill_position))

        captures = [m for m in moves if m.capture is not None]
        assert len(captures) == 3
        assert moves[:3] == captures
        assert all(m.origin == P(0, 2).index and m.destination == P(0, 1).index for m in captures)

    def test_matches_environment(self, sliding_mill_position):
        """Test that the search generates the same moves as the environment."""
        agent = MinimaxAgent()
        moves = agent.generate_moves(SearchState.from_environment(sliding_mill_position))
        assert {m.to_move() for m in moves} == set(sliding_mill_position.get_valid_actions())

    def test_initial_placements(self, env):
        moves = MinimaxAgent().generate_moves(SearchState.from_environment(env))
        assert len(moves) == 24

    def test_apply_search_move(self, white_mill_threat):
        state = SearchState.from_environment(white_mill_threat)
        MinimaxAgent.apply_search_move(state, SearchMove(None, P(0, 1).index, P(2, 3).index))

        assert state.board[P(0, 1).index] == WHITE
        assert state.board[P(2, 3).index] == EMPTY
        assert state.white_pieces_to_place == 4
        assert state.current_player == BLACK


class TestEvaluation:
    """Tests for the evaluation function."""

    def test_empty_board_is_even(self, env):
        state = SearchState.from_environment(env)
        assert MinimaxAgent().evaluate(state, WHITE) == 0

    def test_antisymmetric(self, sliding_mill_position):
        agent = MinimaxAgent()
        state = SearchState.from_environment(sliding_mill_position)
        assert agent.evaluate(state, WHITE) == -agent.evaluate(state, BLACK)

    def test_count_moves(self, sliding_mill_position):
        state = SearchState.from_environment(sliding_mill_position)
        # Black holds three pieces and flies to any of the 17 empty cells
        assert MinimaxAgent.count_moves(state, BLACK) == 3 * 17
        # (0,7): 1, (0,0): 2, (0,2): 3, (2,4): 3
        assert MinimaxAgent.count_moves(state, WHITE) == 9

    def test_terminal_score(self):
        agent = MinimaxAgent()
        board = np.zeros(24, dtype=np.int8)
        board[[0, 2, 4, 6]] = WHITE
        board[[1, 3]] = BLACK
        state = SearchState(board, BLACK)

        assert agent._terminal_score(state, WHITE) == agent.WIN_SCORE
        assert agent._terminal_score(state, BLACK) == -agent.WIN_SCORE

    def test_no_terminal_score_while_placing(self):
        agent = MinimaxAgent()
        state = SearchState(np.zeros(24, dtype=np.int8), WHITE, 9, 9)
        assert agent._terminal_score(state, WHITE) is None
