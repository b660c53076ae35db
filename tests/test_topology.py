"""Tests for the board topology tables."""

import numpy as np
import pytest

from morris_ai.environments.topology import (
    ADJACENCY,
    ADJACENCY_MATRIX,
    ALL_POSITIONS,
    INTERSECTIONS,
    MILL_LINES,
    MILL_MEMBERSHIP,
    Move,
    Piece,
    Position,
    adjacent_positions,
    all_mill_lines,
    is_valid_position,
    mill_lines_containing,
)


class TestPositions:
    """Tests for Position and Piece."""

    def test_index_layout(self):
        """Test that positions are indexed ring by ring."""
        assert len(ALL_POSITIONS) == 24
        assert Position(0, 0).index == 0
        assert Position(1, 4).index == 12
        assert Position(2, 7).index == 23
        for i, position in enumerate(ALL_POSITIONS):
            assert position.index == i
            assert Position.from_index(i) == position

    def test_intersections(self):
        """Test that even points are intersections."""
        assert len(INTERSECTIONS) == 12
        assert Position(1, 2).is_intersection
        assert not Position(1, 3).is_intersection

    def test_key_round_trip(self):
        """Test that snapshot keys parse back to the same position."""
        for position in ALL_POSITIONS:
            assert Position.from_key(position.key) == position
        assert Position(1, 4).key == "1_4"

    @pytest.mark.parametrize("key", ["3_0", "0_8", "1-4", "1_2_3", "a_b", "00_1", " 0_1", "+0_1", "1_04", "0_1 "])
    def test_invalid_key(self, key):
        """Test that malformed or out-of-range keys are rejected."""
        with pytest.raises(ValueError):
            Position.from_key(key)

    def test_is_valid_position(self):
        assert is_valid_position(Position(2, 7))
        assert not is_valid_position(Position(3, 0))
        assert not is_valid_position(Position(0, -1))

    def test_piece_helpers(self):
        """Test opponent lookup and the numeric codes."""
        assert Piece.WHITE.opponent is Piece.BLACK
        assert Piece.BLACK.opponent is Piece.WHITE
        assert Piece.from_code(Piece.WHITE.code) is Piece.WHITE
        assert Piece.from_code(Piece.BLACK.code) is Piece.BLACK
        assert Piece("white") is Piece.WHITE

    def test_move_kinds(self):
        placement = Move(None, Position(0, 0))
        capture_only = Move(None, None, Position(1, 1))
        slide = Move(Position(0, 0), Position(0, 1))

        assert placement.is_placement and not placement.is_capture_only
        assert capture_only.is_capture_only and not capture_only.is_placement
        assert not slide.is_placement and not slide.is_capture_only


class TestMillLines:
    """Tests for the mill line table."""

    def test_sixteen_lines(self):
        """Test that there are 12 ring sides and 4 cross-ring lines."""
        assert len(MILL_LINES) == 16
        assert len(set(MILL_LINES)) == 16
        cross = [line for line in MILL_LINES if len({i // 8 for i in line}) == 3]
        assert len(cross) == 4

    def test_every_cell_on_two_lines(self):
        """Test that corners lie on two ring sides and intersections on one side plus one cross line."""
        for position in ALL_POSITIONS:
            lines = mill_lines_containing(position)
            assert len(lines) == 2
            assert all(position in line for line in lines)
            rings_per_line = [len({p.ring for p in line}) for line in lines]
            if position.is_intersection:
                assert sorted(rings_per_line) == [1, 3]
            else:
                assert rings_per_line == [1, 1]

    def test_corner_lines(self):
        lines = {frozenset(line) for line in mill_lines_containing(Position(0, 7))}
        assert lines == {
            frozenset({Position(0, 7), Position(0, 0), Position(0, 1)}),
            frozenset({Position(0, 5), Position(0, 6), Position(0, 7)}),
        }

    def test_membership_matrix(self):
        """Test that the membership matrix agrees with the line table."""
        assert MILL_MEMBERSHIP.shape == (24, 16)
        assert np.all(MILL_MEMBERSHIP.sum(axis=0) == 3)
        assert np.all(MILL_MEMBERSHIP.sum(axis=1) == 2)
        assert len(all_mill_lines()) == 16


class TestAdjacency:
    """Tests for the adjacency table."""

    def test_symmetric(self):
        for index, neighbours in enumerate(ADJACENCY):
            for other in neighbours:
                assert index in ADJACENCY[other]
        assert np.array_equal(ADJACENCY_MATRIX, ADJACENCY_MATRIX.T)

    def test_degrees(self):
        """Test neighbour counts: corners 2, outer and inner intersections 3, middle intersections 4."""
        for position in ALL_POSITIONS:
            degree = len(adjacent_positions(position))
            if not position.is_intersection:
                assert degree == 2
            elif position.ring == 1:
                assert degree == 4
            else:
                assert degree == 3

    def test_rings_connect_at_intersections(self):
        assert set(adjacent_positions(Position(1, 2))) == {
            Position(1, 1), Position(1, 3), Position(0, 2), Position(2, 2)}
        assert Position(1, 3) not in adjacent_positions(Position(0, 3))

    def test_tables_are_read_only(self):
        with pytest.raises(ValueError):
            ADJACENCY_MATRIX[0, 0] = 1
