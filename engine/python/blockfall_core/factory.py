"""Piece factory: picks a kind and spawns it at the canonical position."""

from typing import Optional

from blockfall_core.piece import PIECE_KINDS, Piece, get_spawn_position
from blockfall_core.rng import RandomSource


class PieceFactory:
    """Produces new pieces for an engine."""

    def __init__(self, rng: Optional[RandomSource] = None, board_width: int = 10):
        """Initialize the factory.

        Args:
            rng: Any object with next_int(bound); a fresh RandomSource if None
            board_width: Number of board columns, used to center spawns
        """
        self.rng = rng if rng is not None else RandomSource()
        self.board_width = board_width

    def next(self) -> Piece:
        """Spawn a uniformly chosen piece kind."""
        kind = PIECE_KINDS[self.rng.next_int(len(PIECE_KINDS))]
        return self.spawn(kind)

    def spawn(self, kind: str) -> Piece:
        """Spawn a specific piece kind at its canonical anchor."""
        x, y = get_spawn_position(kind, self.board_width)
        return Piece(kind, x, y)
