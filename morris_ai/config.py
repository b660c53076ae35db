"""Rule constants for Nine Men's Morris.

The thresholds used for draw detection are kept together in one immutable
configuration object so that a game can be played under different limits
without touching module-level state.
"""

from dataclasses import dataclass

from morris_ai.errors import ConfigurationError


@dataclass(frozen=True)
class RulesConfig:
    """Configurable rule constants.

    Attributes:
        starting_pieces: Number of pieces each player starts with.
        minimum_pieces: A player with fewer pieces than this on the board
            (after placement) loses.
        no_capture_threshold: Consecutive moves without a capture before the
            game is drawn.
        repetition_threshold: Occurrences of the same position (board and
            player to move) before the game is drawn.
        no_capture_warning_window: Number of moves before the no-capture
            threshold at which a draw warning starts to be reported.
    """

    starting_pieces: int = 9
    minimum_pieces: int = 3
    no_capture_threshold: int = 50
    repetition_threshold: int = 3
    no_capture_warning_window: int = 10

    def __post_init__(self):
        if self.starting_pieces < self.minimum_pieces:
            raise ConfigurationError(
                "starting_pieces must be at least minimum_pieces",
                context={"starting_pieces": self.starting_pieces,
                         "minimum_pieces": self.minimum_pieces},
            )
        if self.no_capture_threshold <= 0 or self.repetition_threshold <= 1:
            raise ConfigurationError(
                "draw thresholds must be positive (repetition at least 2)",
                context={"no_capture_threshold": self.no_capture_threshold,
                         "repetition_threshold": self.repetition_threshold},
            )
        if not 0 <= self.no_capture_warning_window < self.no_capture_threshold:
            raise ConfigurationError(
                "no_capture_warning_window must be below no_capture_threshold",
                context={"no_capture_warning_window": self.no_capture_warning_window},
            )

    @property
    def repetition_warning_count(self) -> int:
        """Occurrences of a position after which one more repetition draws."""
        return self.repetition_threshold - 1


DEFAULT_RULES = RulesConfig()
