"""Nine Men's Morris environment.

This module provides the rules state machine for Nine Men's Morris. It
extends BaseEnvironment with the placing → moving → flying rules, mill
captures, terminal and draw detection, and snapshot serialization.

Every mutating operation validates the request first and returns False
without touching the state when the request breaks a rule, so a rejected tap
in a user interface is simply a no-op.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import numpy as np

from morris_ai.config import DEFAULT_RULES, RulesConfig
from morris_ai.environments.base_environment import BaseEnvironment
from morris_ai.environments.snapshot import GameSnapshot, MoveRecord, SnapshotMeta, parse_snapshot
from morris_ai.environments.state_types import DrawWarning, GamePhase, TerminationReason
from morris_ai.environments.topology import ALL_POSITIONS, Move, Piece, Position
from morris_ai.errors import InvariantViolationError, SnapshotError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MorrisEnvironment(BaseEnvironment):
    """Nine Men's Morris game state and rules.

    The phase is never stored. Placement is over once both to-place counters
    reach zero; after that a player holding exactly ``rules.minimum_pieces``
    pieces may fly, independently of the opponent.

    Attributes:
        rules (RulesConfig): Rule constants for this game.
        board (Dict[Position, Piece]): Occupied positions.
        current_player (Piece): Player to move.
        white_pieces_to_place (int): Pieces white still has to place.
        black_pieces_to_place (int): Pieces black still has to place.
        selected_position (Optional[Position]): Piece chosen to move next.
        awaiting_capture (bool): A mill was just formed and the current
            player must capture before the turn passes.
        no_capture_moves (int): Completed turns since the last capture.
        position_occurrences (Counter): Occurrences of each position
            signature (board plus player to move).
        winner (Optional[Piece]): Winner, None while playing or after a draw.
        termination_reason (Optional[TerminationReason]): Why the game ended.
        turn_started_at (datetime): When the current turn began.
        move_history (List[MoveRecord]): Every accepted operation.
        done (bool): Whether the game is finished.
    """

    DISPLAY_NAME = "Nine Men's Morris"

    def __init__(self, rules: RulesConfig = DEFAULT_RULES,
                 clock: Optional[Callable[[], datetime]] = None):
        """Initialize a new game with white to move.

        Args:
            rules: Rule constants (piece allotment and draw thresholds).
            clock: Source of timestamps for the move history; defaults to
                the current UTC time.
        """
        self.clock = clock or _utc_now
        super().__init__(rules)

    def reset(self) -> np.ndarray:
        """Reset the game to the starting position.

        Returns:
            The initial observation of the environment.
        """
        observation = super().reset()

        self.white_pieces_to_place = self.rules.starting_pieces
        self.black_pieces_to_place = self.rules.starting_pieces
        self.white_pieces_captured = 0
        self.black_pieces_captured = 0
        self.selected_position: Optional[Position] = None
        self.awaiting_capture = False
        self.no_capture_moves = 0
        self.position_occurrences: Counter = Counter()
        self.termination_reason: Optional[TerminationReason] = None
        self.turn_started_at = self.clock()
        self.move_history: List[MoveRecord] = []
        self._announced_warning: Optional[DrawWarning] = None

        self._record_position()
        return observation

    @classmethod
    def from_position(cls, board: Mapping[Position, Piece],
                      current_player: Piece = Piece.WHITE,
                      white_pieces_to_place: int = 0,
                      black_pieces_to_place: int = 0,
                      rules: RulesConfig = DEFAULT_RULES,
                      clock: Optional[Callable[[], datetime]] = None) -> "MorrisEnvironment":
        """Build a game directly from a board, bypassing the turn sequence.

        Captured counts are inferred from the piece allotment. Terminal
        conditions are evaluated for the resulting position.

        Args:
            board: Occupied positions.
            current_player: Player to move.
            white_pieces_to_place: Pieces white still has to place.
            black_pieces_to_place: Pieces black still has to place.
            rules: Rule constants.
            clock: Source of timestamps for the move history.

        Returns:
            The new environment.

        Raises:
            InvariantViolationError: If a position is invalid or a colour
                would exceed its allotment.
        """
        env = cls(rules=rules, clock=clock)
        for position in board:
            if not env.is_valid_position(position):
                raise InvariantViolationError(
                    "Position out of range", context={"position": position})

        env.board = {Position(*p): piece for p, piece in board.items()}
        env.current_player = current_player
        env.white_pieces_to_place = white_pieces_to_place
        env.black_pieces_to_place = black_pieces_to_place
        env.white_pieces_captured = (rules.starting_pieces - env.count_pieces(Piece.WHITE)
                                     - white_pieces_to_place)
        env.black_pieces_captured = (rules.starting_pieces - env.count_pieces(Piece.BLACK)
                                     - black_pieces_to_place)
        env._check_invariants()

        env.position_occurrences = Counter()
        env._record_position()
        env._check_game_end()
        return env

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def pieces_to_place(self, player: Piece) -> int:
        if player is Piece.WHITE:
            return self.white_pieces_to_place
        return self.black_pieces_to_place

    def pieces_captured(self, player: Piece) -> int:
        """Number of the player's pieces that the opponent has captured."""
        if player is Piece.WHITE:
            return self.white_pieces_captured
        return self.black_pieces_captured

    @property
    def placement_complete(self) -> bool:
        return self.white_pieces_to_place == 0 and self.black_pieces_to_place == 0

    def can_fly(self, player: Piece) -> bool:
        """Check whether a player may move to any empty cell."""
        return self.placement_complete and self.count_pieces(player) == self.rules.minimum_pieces

    def phase_for(self, player: Piece) -> GamePhase:
        if not self.placement_complete:
            return GamePhase.PLACING
        if self.can_fly(player):
            return GamePhase.FLYING
        return GamePhase.MOVING

    @property
    def game_phase(self) -> GamePhase:
        return self.phase_for(self.current_player)

    @property
    def is_game_over(self) -> bool:
        return self.done

    def position_signature(self) -> str:
        """Canonical signature of the board and the player to move."""
        turn = "W" if self.current_player is Piece.WHITE else "B"
        return f"{self.board_key()}|{turn}"

    @property
    def draw_warning(self) -> Optional[DrawWarning]:
        """Report an approaching draw, or None.

        A repetition warning is reported once the current position has
        occurred one time short of the repetition threshold; a no-capture
        warning once the quiet-move counter is within the warning window.
        """
        if self.done:
            return None

        occurrences = self.position_occurrences[self.position_signature()]
        if occurrences >= self.rules.repetition_warning_count:
            return DrawWarning("repetition", self.rules.repetition_threshold - occurrences)

        remaining = self.rules.no_capture_threshold - self.no_capture_moves
        if remaining <= self.rules.no_capture_warning_window:
            return DrawWarning("no-capture", remaining)
        return None

    def get_termination_details(self) -> Optional[Dict[str, Any]]:
        """Describe why the game ended, including repeated positions for repetition draws."""
        if self.termination_reason is None:
            return None

        details: Dict[str, Any] = {"reason": self.termination_reason.value}
        if self.termination_reason is TerminationReason.REPETITION_THRESHOLD:
            details["repeated_positions"] = [
                {"position_key": key, "count": count}
                for key, count in self.position_occurrences.items()
                if count >= self.rules.repetition_threshold
            ]
        return details

    # ------------------------------------------------------------------
    # Move generation
    # ------------------------------------------------------------------

    def get_valid_destinations(self, origin: Position) -> List[Position]:
        """Get the cells the piece at a position may move to.

        Args:
            origin: Position of a piece of the current player.

        Returns:
            Empty adjacent cells, or every empty cell when the player flies.
            Empty during placement or when the piece is not the current
            player's.
        """
        player = self.board.get(origin)
        if player is not self.current_player or not self.placement_complete:
            return []
        return self._destinations_for(player, origin)

    def _destinations_for(self, player: Piece, origin: Position) -> List[Position]:
        if self.can_fly(player):
            return self.get_empty_positions()
        return [p for p in self.get_adjacent_positions(origin) if p not in self.board]

    def _has_legal_move(self, player: Piece) -> bool:
        if self.pieces_to_place(player) > 0:
            return bool(self.get_empty_positions())
        if not self.placement_complete:
            return False
        return any(self._destinations_for(player, p) for p in self.pieces_of(player))

    def get_valid_actions(self) -> List[Move]:
        """Get every legal move for the current player.

        A move that forms a mill is expanded into one move per legal capture
        target. While a capture is pending only capture-only moves are
        returned.

        Returns:
            Legal moves ordered by origin, then destination, then capture.
        """
        if self.done:
            return []

        player = self.current_player
        opponent = player.opponent
        targets = self.capturable_pieces(opponent)

        if self.awaiting_capture:
            return [Move(None, None, target) for target in targets]

        moves = []
        if self.pieces_to_place(player) > 0:
            for destination in self.get_empty_positions():
                if targets and self.would_form_mill(destination, player):
                    moves.extend(Move(None, destination, t) for t in targets)
                else:
                    moves.append(Move(None, destination, None))
            return moves

        if not self.placement_complete:
            return moves

        for origin in self.pieces_of(player):
            for destination in self._destinations_for(player, origin):
                if targets and self.would_form_mill(destination, player, origin):
                    moves.extend(Move(origin, destination, t) for t in targets)
                else:
                    moves.append(Move(origin, destination, None))
        return moves

    # ------------------------------------------------------------------
    # Rule operations
    # ------------------------------------------------------------------

    def _reject(self, operation: str, reason: str) -> bool:
        logger.debug(f"Rejected {operation} for {self.current_player.value}: {reason}")
        return False

    def place_piece(self, position: Position) -> bool:
        """Place a piece of the current player.

        If the placement forms a mill the turn does not pass: the player must
        follow with capture_piece.

        Args:
            position: The empty cell to occupy.

        Returns:
            True if the piece was placed, False if the request broke a rule.
        """
        if self.done:
            return self._reject("place", "game is over")
        if self.awaiting_capture:
            return self._reject("place", "a capture is pending")
        if self.pieces_to_place(self.current_player) == 0:
            return self._reject("place", "no pieces left to place")
        if not self.is_valid_position(position) or position in self.board:
            return self._reject("place", f"{position} is not an empty cell")

        player = self.current_player
        self.board[position] = player
        if player is Piece.WHITE:
            self.white_pieces_to_place -= 1
        else:
            self.black_pieces_to_place -= 1
        self._record_move("place", destination=position)

        if self.is_in_mill(position) and self.count_pieces(player.opponent) > 0:
            self.awaiting_capture = True
            self._check_invariants()
            return True

        self._end_turn(captured=False)
        return True

    def select_position(self, position: Optional[Position]) -> bool:
        """Select the piece to move next, or clear the selection.

        Args:
            position: A cell holding a piece of the current player, or None.

        Returns:
            True if the selection changed, False if the request broke a rule.
        """
        if self.done:
            return self._reject("select", "game is over")
        if self.awaiting_capture:
            return self._reject("select", "a capture is pending")
        if position is None:
            self.selected_position = None
            return True
        if not self.placement_complete:
            return self._reject("select", "pieces are still being placed")
        if self.board.get(position) is not self.current_player:
            return self._reject("select", f"{position} does not hold an own piece")

        self.selected_position = position
        return True

    def move_piece(self, origin: Position, destination: Position) -> bool:
        """Move a piece of the current player.

        The destination must be adjacent unless the player holds exactly the
        minimum number of pieces, in which case any empty cell is allowed.

        Args:
            origin: Cell holding the piece to move.
            destination: Empty cell to move to.

        Returns:
            True if the piece moved, False if the request broke a rule.
        """
        if self.done:
            return self._reject("move", "game is over")
        if self.awaiting_capture:
            return self._reject("move", "a capture is pending")
        if not self.placement_complete:
            return self._reject("move", "pieces are still being placed")
        if self.board.get(origin) is not self.current_player:
            return self._reject("move", f"{origin} does not hold an own piece")
        if not self.is_valid_position(destination) or destination in self.board:
            return self._reject("move", f"{destination} is not an empty cell")

        player = self.current_player
        if not self.can_fly(player) and destination not in self.get_adjacent_positions(origin):
            return self._reject("move", f"{destination} is not adjacent to {origin}")

        del self.board[origin]
        self.board[destination] = player
        self.selected_position = None
        self._record_move("move", origin=origin, destination=destination)

        if self.is_in_mill(destination) and self.count_pieces(player.opponent) > 0:
            self.awaiting_capture = True
            self._check_invariants()
            return True

        self._end_turn(captured=False)
        return True

    def capture_piece(self, position: Position) -> bool:
        """Capture an opponent piece after forming a mill.

        A piece inside a formed mill is protected unless every opponent
        piece is inside some mill.

        Args:
            position: Cell holding the opponent piece to remove.

        Returns:
            True if the piece was captured, False if the request broke a rule.
        """
        if self.done:
            return self._reject("capture", "game is over")
        if not self.awaiting_capture:
            return self._reject("capture", "no mill was formed")

        opponent = self.current_player.opponent
        if self.board.get(position) is not opponent:
            return self._reject("capture", f"{position} does not hold an opponent piece")
        if position not in self.capturable_pieces(opponent):
            return self._reject("capture", f"{position} is protected by a mill")

        del self.board[position]
        if opponent is Piece.WHITE:
            self.white_pieces_captured += 1
        else:
            self.black_pieces_captured += 1
        self.awaiting_capture = False
        self._record_move("capture", destination=position, capture=True)

        self._end_turn(captured=True)
        return True

    def apply_move(self, move: Move) -> bool:
        """Apply a complete move, capture included, as a single operation.

        The capture target is validated before anything is mutated, so a
        rejected move leaves the state unchanged.

        Args:
            move: The move to apply.

        Returns:
            True if the move was applied, False if it broke a rule.
        """
        if move.is_capture_only:
            return self.capture_piece(move.capture)
        if self.done or self.awaiting_capture:
            return self._reject("apply", "no move can be made now")

        if not self.is_valid_position(move.destination) or (
                move.origin is not None and not self.is_valid_position(move.origin)):
            return self._reject("apply", f"position off the board: {move}")

        player = self.current_player
        opponent = player.opponent
        forms_mill = (move.destination not in self.board
                      and self.would_form_mill(move.destination, player, move.origin)
                      and self.count_pieces(opponent) > 0)
        if forms_mill:
            if move.capture is None or move.capture not in self.capturable_pieces(opponent):
                return self._reject("apply", f"invalid capture target {move.capture}")
        elif move.capture is not None:
            return self._reject("apply", "capture given without forming a mill")

        if move.origin is None:
            applied = self.place_piece(move.destination)
        else:
            applied = self.move_piece(move.origin, move.destination)
        if not applied:
            return False

        if self.awaiting_capture:
            return self.capture_piece(move.capture)
        return True

    def forfeit(self, player: Piece) -> bool:
        """End the game with the player conceding."""
        return self._concede(player, TerminationReason.FORFEIT)

    def record_timeout(self, player: Piece) -> bool:
        """End the game because the player ran out of time on their turn."""
        return self._concede(player, TerminationReason.TIMEOUT)

    def _concede(self, player: Piece, reason: TerminationReason) -> bool:
        if self.done:
            return self._reject(reason.value, "game is over")
        self.move_history.append(self._move_record(player, reason.value))
        self.awaiting_capture = False
        self._finish(player.opponent, reason)
        return True

    # ------------------------------------------------------------------
    # Turn bookkeeping
    # ------------------------------------------------------------------

    def _end_turn(self, captured: bool) -> None:
        if captured:
            self.no_capture_moves = 0
        else:
            self.no_capture_moves += 1

        self.current_player = self.current_player.opponent
        self.selected_position = None
        self.turn_started_at = self.clock()

        self._record_position()
        self._check_game_end()
        self._check_invariants()

    def _record_position(self) -> None:
        self.position_occurrences[self.position_signature()] += 1

    def _move_record(self, player: Piece, kind: str,
                     origin: Optional[Position] = None,
                     destination: Optional[Position] = None,
                     capture: bool = False) -> MoveRecord:
        now = self.clock()
        duration_ms = max(0, int((now - self.turn_started_at).total_seconds() * 1000))
        return MoveRecord(
            player=player,
            type=kind,
            from_=origin.key if origin is not None else None,
            to=destination.key if destination is not None else None,
            capture=capture,
            duration_ms=duration_ms,
            timestamp=now,
        )

    def _record_move(self, kind: str, origin: Optional[Position] = None,
                     destination: Optional[Position] = None, capture: bool = False) -> None:
        self.move_history.append(
            self._move_record(self.current_player, kind, origin, destination, capture))

    def _finish(self, winner: Optional[Piece], reason: TerminationReason) -> None:
        self.winner = winner
        self.termination_reason = reason
        self.done = True
        self.selected_position = None
        if winner is None:
            logger.info(f"Game drawn: {reason.value}")
        else:
            logger.info(f"Game over: {winner.value} wins ({reason.value})")

    def _check_game_end(self) -> None:
        """Check win, loss and draw conditions for the position after a turn."""
        if self.done:
            return

        if self.placement_complete:
            for player in (Piece.WHITE, Piece.BLACK):
                if self.count_pieces(player) < self.rules.minimum_pieces:
                    self._finish(player.opponent, TerminationReason.INSUFFICIENT_PIECES)
                    return

        if not self._has_legal_move(self.current_player):
            if self.get_empty_positions():
                reason = TerminationReason.NO_LEGAL_MOVES
            else:
                reason = TerminationReason.MILL_BLOCKADE
            self._finish(self.current_player.opponent, reason)
            return

        if self.position_occurrences[self.position_signature()] >= self.rules.repetition_threshold:
            self._finish(None, TerminationReason.REPETITION_THRESHOLD)
            return

        if self.no_capture_moves >= self.rules.no_capture_threshold:
            self._finish(None, TerminationReason.NO_CAPTURE_THRESHOLD)
            return

        warning = self.draw_warning
        if warning is not None and warning != self._announced_warning:
            logger.info(f"Draw approaching: {warning.kind}, {warning.moves_remaining} remaining")
        self._announced_warning = warning

    def _check_invariants(self) -> None:
        starting = self.rules.starting_pieces
        for player in (Piece.WHITE, Piece.BLACK):
            on_board = self.count_pieces(player)
            to_place = self.pieces_to_place(player)
            captured = self.pieces_captured(player)
            if to_place < 0 or captured < 0 or on_board + to_place + captured != starting:
                raise InvariantViolationError(
                    "Piece conservation violated",
                    context={"player": player.value, "on_board": on_board,
                             "to_place": to_place, "captured": captured},
                )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def snapshot(self) -> GameSnapshot:
        """Capture the full state as a validated snapshot record."""
        return GameSnapshot(
            board={p.key: self.board[p] for p in ALL_POSITIONS if p in self.board},
            current_player=self.current_player,
            game_phase=self.game_phase,
            white_pieces_to_place=self.white_pieces_to_place,
            black_pieces_to_place=self.black_pieces_to_place,
            winner=self.winner,
            termination_reason=self.termination_reason,
            awaiting_capture=self.awaiting_capture,
            selected_position=self.selected_position.key if self.selected_position else None,
            no_capture_moves=self.no_capture_moves,
            position_occurrences=dict(self.position_occurrences),
            meta=SnapshotMeta(turn_started_at=self.turn_started_at,
                              moves=list(self.move_history)),
        )

    def to_json(self) -> Dict[str, Any]:
        """Serialize the game state to a JSON-compatible dictionary."""
        return self.snapshot().model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json(cls, data: Union[str, bytes, Mapping[str, Any]],
                  rules: RulesConfig = DEFAULT_RULES,
                  clock: Optional[Callable[[], datetime]] = None) -> "MorrisEnvironment":
        """Restore a game from a snapshot record.

        Raises:
            SnapshotError: If the record is malformed or inconsistent.
        """
        env = cls(rules=rules, clock=clock)
        env.load_from_json(data)
        return env

    def load_from_json(self, data: Union[str, bytes, Mapping[str, Any], GameSnapshot]) -> None:
        """Replace the game state with a snapshot record.

        The record is fully validated before anything is assigned; on error
        the current state is left untouched.

        Args:
            data: A record produced by to_json (or its JSON text).

        Raises:
            SnapshotError: If the record is malformed or inconsistent.
        """
        snapshot = parse_snapshot(data)
        board = {Position.from_key(key): piece for key, piece in snapshot.board.items()}
        self._validate_snapshot(snapshot, board)

        self.board = board
        self.current_player = snapshot.current_player
        self.white_pieces_to_place = snapshot.white_pieces_to_place
        self.black_pieces_to_place = snapshot.black_pieces_to_place
        starting = self.rules.starting_pieces
        self.white_pieces_captured = (starting - self.count_pieces(Piece.WHITE)
                                      - snapshot.white_pieces_to_place)
        self.black_pieces_captured = (starting - self.count_pieces(Piece.BLACK)
                                      - snapshot.black_pieces_to_place)
        self.selected_position = (Position.from_key(snapshot.selected_position)
                                  if snapshot.selected_position else None)
        self.awaiting_capture = snapshot.awaiting_capture
        self.no_capture_moves = snapshot.no_capture_moves
        self.position_occurrences = Counter(snapshot.position_occurrences)
        self.winner = snapshot.winner
        self.termination_reason = snapshot.termination_reason
        self.done = snapshot.termination_reason is not None
        self.turn_started_at = snapshot.meta.turn_started_at or self.clock()
        self.move_history = list(snapshot.meta.moves)
        self._announced_warning = self.draw_warning

    def _validate_snapshot(self, snapshot: GameSnapshot, board: Dict[Position, Piece]) -> None:
        starting = self.rules.starting_pieces
        counts = {player: sum(1 for piece in board.values() if piece is player)
                  for player in (Piece.WHITE, Piece.BLACK)}
        to_place = {Piece.WHITE: snapshot.white_pieces_to_place,
                    Piece.BLACK: snapshot.black_pieces_to_place}

        for player in (Piece.WHITE, Piece.BLACK):
            if counts[player] + to_place[player] > starting:
                raise SnapshotError(
                    "More pieces than the allotment",
                    context={"player": player.value, "on_board": counts[player],
                             "to_place": to_place[player]},
                )

        placement_complete = to_place[Piece.WHITE] == 0 and to_place[Piece.BLACK] == 0
        current = snapshot.current_player
        if not placement_complete:
            expected_phase = GamePhase.PLACING
        elif counts[current] == self.rules.minimum_pieces:
            expected_phase = GamePhase.FLYING
        else:
            expected_phase = GamePhase.MOVING
        if snapshot.game_phase is not expected_phase:
            raise SnapshotError(
                "Game phase does not match the board and counters",
                context={"game_phase": snapshot.game_phase.value,
                         "expected": expected_phase.value},
            )

        if snapshot.selected_position is not None:
            selected = Position.from_key(snapshot.selected_position)
            if board.get(selected) is not current:
                raise SnapshotError(
                    "Selected position does not hold a piece of the player to move",
                    context={"selected_position": snapshot.selected_position},
                )
