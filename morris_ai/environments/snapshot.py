"""Snapshot schema for saving, resuming and transmitting a game.

A snapshot is a plain JSON-compatible record. ``parse_snapshot`` is the only
way in: it validates the record against the schema below and rejects unknown
fields, colours, phases and termination reasons instead of falling back to
defaults.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from morris_ai.environments.state_types import GamePhase, TerminationReason
from morris_ai.environments.topology import NUM_POSITIONS, Piece, Position
from morris_ai.errors import SnapshotError

# Board key plus player to move, e.g. "W..B....................|B"
SIGNATURE_PATTERN = re.compile(r"^[WB.]{%d}\|[WB]$" % NUM_POSITIONS)


def _check_position_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    Position.from_key(value)  # raises ValueError for malformed keys
    return value


class MoveRecord(BaseModel):
    """One entry of the move history kept for networked games."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    player: Piece
    type: Literal["place", "move", "capture", "forfeit", "timeout"]
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    capture: bool = False
    duration_ms: int = Field(default=0, ge=0)
    timestamp: datetime

    @field_validator("from_", "to")
    @classmethod
    def check_position_keys(cls, value: Optional[str]) -> Optional[str]:
        return _check_position_key(value)


class SnapshotMeta(BaseModel):
    """Turn clock and move history for the networked variant."""

    model_config = ConfigDict(extra="forbid")

    turn_started_at: Optional[datetime] = None
    moves: List[MoveRecord] = Field(default_factory=list)


class GameSnapshot(BaseModel):
    """Everything needed to resume a game exactly."""

    model_config = ConfigDict(extra="forbid")

    board: Dict[str, Piece]
    current_player: Piece
    game_phase: GamePhase
    white_pieces_to_place: int = Field(ge=0)
    black_pieces_to_place: int = Field(ge=0)
    winner: Optional[Piece] = None
    termination_reason: Optional[TerminationReason] = None
    awaiting_capture: bool = False
    selected_position: Optional[str] = None
    no_capture_moves: int = Field(default=0, ge=0)
    position_occurrences: Dict[str, int] = Field(default_factory=dict)
    meta: SnapshotMeta = Field(default_factory=SnapshotMeta)

    @field_validator("board")
    @classmethod
    def check_board_keys(cls, board: Dict[str, Piece]) -> Dict[str, Piece]:
        for key in board:
            Position.from_key(key)
        return board

    @field_validator("selected_position")
    @classmethod
    def check_selected_position(cls, value: Optional[str]) -> Optional[str]:
        return _check_position_key(value)

    @field_validator("position_occurrences")
    @classmethod
    def check_occurrences(cls, occurrences: Dict[str, int]) -> Dict[str, int]:
        for signature, count in occurrences.items():
            if not SIGNATURE_PATTERN.match(signature):
                raise ValueError(f"Invalid position signature: {signature!r}")
            if count < 1:
                raise ValueError(f"Occurrence count must be positive: {signature!r}")
        return occurrences

    @model_validator(mode="after")
    def check_outcome(self) -> "GameSnapshot":
        if self.winner is not None and self.termination_reason is None:
            raise ValueError("winner set without a termination reason")
        if self.termination_reason is not None:
            if self.termination_reason.is_draw and self.winner is not None:
                raise ValueError("a drawn game cannot have a winner")
            if not self.termination_reason.is_draw and self.winner is None:
                raise ValueError("a decided game must name its winner")
            if self.awaiting_capture:
                raise ValueError("a finished game cannot be awaiting a capture")
        return self


def parse_snapshot(data: Union[str, bytes, Mapping[str, Any], GameSnapshot]) -> GameSnapshot:
    """Validate a snapshot record.

    Args:
        data: A JSON document, a mapping (as produced by ``to_json``), or an
            already parsed snapshot.

    Returns:
        The validated snapshot.

    Raises:
        SnapshotError: If the record does not match the schema.
    """
    if isinstance(data, GameSnapshot):
        return data
    try:
        if isinstance(data, (str, bytes)):
            return GameSnapshot.model_validate_json(data)
        return GameSnapshot.model_validate(data)
    except ValidationError as e:
        raise SnapshotError(
            "Malformed game snapshot",
            context={"errors": e.error_count(), "detail": e.errors()[0]["msg"]},
        ) from e
