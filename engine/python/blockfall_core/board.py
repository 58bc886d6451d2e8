"""Game board with collision detection and row clearing."""

from typing import List

from blockfall_core.piece import Piece


class Board:
    """Grid of locked cells, 10 columns by 20 rows unless configured."""

    WIDTH = 10
    HEIGHT = 20

    def __init__(self, width: int = WIDTH, height: int = HEIGHT):
        """Initialize an empty board.

        Args:
            width: Number of columns
            height: Number of rows
        """
        self.width = width
        self.height = height
        # rows[y][x] is the cell at (x, y); row 0 is the top
        # 0 = empty, 1-7 = color index of the piece that locked there
        self.rows: List[List[int]] = [self._empty_row() for _ in range(height)]

    def _empty_row(self) -> List[int]:
        return [0] * self.width

    def get(self, x: int, y: int) -> int:
        """Get cell value at (x, y).

        Callers are expected to pass in-range coordinates.

        Args:
            x: Column (0 to width-1)
            y: Row (0 to height-1, with 0 at top)

        Returns:
            Cell value (0 = empty, >0 = color index)
        """
        return self.rows[y][x]

    def set(self, x: int, y: int, value: int) -> None:
        """Set cell value at (x, y)."""
        self.rows[y][x] = value

    def in_bounds(self, x: int, y: int) -> bool:
        """Check if coordinates are within board bounds."""
        return 0 <= x < self.width and 0 <= y < self.height

    def collides(self, piece: Piece) -> bool:
        """Check if a piece collides with the walls, floor, or locked cells.

        Cells above the top row are open space: a piece may hang over the
        top edge without colliding.

        Args:
            piece: The piece to check

        Returns:
            True if collision detected
        """
        for x, y, _ in piece.get_cells():
            if x < 0 or x >= self.width or y >= self.height:
                return True
            if y >= 0 and self.rows[y][x] != 0:
                return True
        return False

    def merge_piece(self, piece: Piece) -> None:
        """Write a piece's colors into the board.

        The caller must have checked collides() first; overlapping cells
        would be overwritten.

        Args:
            piece: The piece to lock
        """
        for x, y, color in piece.get_cells():
            if y >= 0:
                self.rows[y][x] = color

    def is_row_full(self, y: int) -> bool:
        """Check if a row has no empty cell."""
        return all(cell != 0 for cell in self.rows[y])

    def clear_full_rows(self) -> int:
        """Clear all full rows and return how many were removed.

        Rows are scanned bottom to top. A full row is deleted and an empty
        row is inserted on top, which shifts everything above it down by one;
        the same index is then checked again.

        Returns:
            Number of rows cleared
        """
        cleared = 0
        y = self.height - 1  # Start from bottom

        while y >= 0:
            if self.is_row_full(y):
                del self.rows[y]
                self.rows.insert(0, self._empty_row())
                cleared += 1
                # Don't decrement y; the row above moved into this slot
            else:
                y -= 1

        return cleared

    def is_empty(self) -> bool:
        return all(cell == 0 for row in self.rows for cell in row)

    def copy(self) -> "Board":
        """Create a deep copy of the board."""
        new_board = Board(self.width, self.height)
        new_board.rows = [row[:] for row in self.rows]
        return new_board

    def to_list(self) -> List[List[int]]:
        """Export board as a list of rows (for serialization)."""
        return [row[:] for row in self.rows]

    @classmethod
    def from_list(cls, rows: List[List[int]]) -> "Board":
        """Create board from a list of rows.

        Args:
            rows: Row-major cell values, top row first

        Returns:
            New board
        """
        if not rows or not rows[0]:
            raise ValueError("Board needs at least one row and one column")
        width = len(rows[0])
        for y, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"Expected {width} cells in row {y}, got {len(row)}")
        board = cls(width, len(rows))
        board.rows = [list(row) for row in rows]
        return board

    def __repr__(self) -> str:
        return f"Board({self.width}x{self.height})"
