"""Speed progression and line-clear rules.

Each cleared row shortens the gravity interval by a fixed step until a floor
is reached, so a game only ever gets faster.
"""

# Rows cleared by a single lock that count as a tetris
TETRIS_ROWS = 4


class SpeedRules:
    """Gravity interval as a function of total rows cleared."""

    def __init__(
        self,
        base_interval_ms: int = 500,
        step_ms: int = 10,
        min_interval_ms: int = 100,
    ):
        """Initialize speed rules.

        Args:
            base_interval_ms: Gravity interval with no rows cleared
            step_ms: Reduction per cleared row
            min_interval_ms: Floor for the interval
        """
        if min_interval_ms <= 0 or base_interval_ms < min_interval_ms:
            raise ValueError(
                f"Need 0 < min_interval_ms <= base_interval_ms, "
                f"got {min_interval_ms} and {base_interval_ms}"
            )
        if step_ms < 0:
            raise ValueError(f"step_ms must not be negative, got {step_ms}")
        self.base_interval_ms = base_interval_ms
        self.step_ms = step_ms
        self.min_interval_ms = min_interval_ms

    def interval_for(self, lines_cleared: int) -> int:
        """Gravity interval in milliseconds after clearing the given rows."""
        return max(self.min_interval_ms, self.base_interval_ms - self.step_ms * lines_cleared)

    def level_for(self, lines_cleared: int) -> int:
        """Speed level: number of interval reductions actually applied.

        Stops increasing once the interval sits on the floor.
        """
        if self.step_ms == 0:
            return 0
        max_level = (self.base_interval_ms - self.min_interval_ms) // self.step_ms
        return min(lines_cleared, max_level)

    def multiplier_for(self, lines_cleared: int) -> float:
        """How much faster gravity is than at the start of the game."""
        return self.base_interval_ms / self.interval_for(lines_cleared)


def is_tetris(rows_cleared: int) -> bool:
    """Check whether a single lock cleared a tetris."""
    return rows_cleared == TETRIS_ROWS
