"""Error hierarchy for Morris AI.

Rule violations coming from a caller (a tap on the wrong cell, a move out of
turn) are not exceptions: the environment operations return ``False`` and
leave the state unchanged. The exceptions below cover the cases that must
never be silently ignored.

Usage:
    from morris_ai.errors import SnapshotError

    try:
        env.load_from_json(payload)
    except SnapshotError as e:
        logger.error(f"Rejected snapshot: {e.message}")
"""

from typing import Any, Dict, Optional

__all__ = [
    "ConfigurationError",
    "IllegalMoveError",
    "InvariantViolationError",
    "MorrisError",
    "SnapshotError",
]


class MorrisError(Exception):
    """Base exception for all Morris AI errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "MORRIS_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class IllegalMoveError(MorrisError):
    """Move that is not legal in the given position.

    Raised by components that must be handed a legal move (the move grader,
    for instance) rather than by the environment operations themselves.
    """
    code: str = "ILLEGAL_MOVE"


class InvariantViolationError(MorrisError):
    """Corrupted game state.

    Raised when the board reaches a configuration that normal play can never
    produce, such as a negative piece counter or more than nine pieces of
    one colour.
    """
    code: str = "INVARIANT_VIOLATION"


class SnapshotError(MorrisError):
    """Malformed or inconsistent game snapshot.

    Raised by the snapshot parser. The environment being loaded into is left
    untouched.
    """
    code: str = "SNAPSHOT_ERROR"


class ConfigurationError(MorrisError):
    """Invalid configuration."""
    code: str = "CONFIGURATION_ERROR"
