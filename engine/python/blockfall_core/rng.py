"""Seedable random source for piece selection.

Selection is uniform: every draw is independent, there is no bag and no
weighting. Tests inject a seeded source (or their own object exposing
``next_int``) for deterministic piece sequences.
"""

import random
from typing import Optional


class RandomSource:
    """Deterministic integer source backed by ``random.Random``."""

    def __init__(self, seed: Optional[int] = None):
        """Initialize with an optional seed for reproducible games.

        Args:
            seed: Random seed, or None for a nondeterministic sequence
        """
        self.seed = seed
        self.rng = random.Random(seed)

    def next_int(self, bound: int) -> int:
        """Draw an integer uniformly from [0, bound).

        Args:
            bound: Exclusive upper bound, must be positive

        Returns:
            Random integer
        """
        if bound <= 0:
            raise ValueError(f"Bound must be positive, got {bound}")
        return self.rng.randrange(bound)

    def reset(self, seed: Optional[int]) -> None:
        """Reset the source with a new seed.

        Args:
            seed: New random seed
        """
        self.seed = seed
        self.rng = random.Random(seed)
