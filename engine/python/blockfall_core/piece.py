"""Tetromino piece definitions and rotation transforms.

Each piece kind is defined by a single base matrix. Rotations are computed
from it with pure matrix transforms; nothing is tabulated per orientation.
Coordinates are relative to the piece's anchor (top-left of bounding box).
"""

from typing import List, Optional, Tuple

# Type aliases for piece matrices
Matrix = List[List[int]]
ColorMatrix = List[List[Optional[int]]]

# Base shapes in spawn orientation, in color order (T=1 ... I=7)
PIECE_SHAPES: dict[str, Matrix] = {
    "T": [[1, 1, 1], [0, 1, 0]],
    "O": [[1, 1], [1, 1]],
    "S": [[1, 1, 0], [0, 1, 1]],
    "Z": [[0, 1, 1], [1, 1, 0]],
    "L": [[1, 0, 0], [1, 1, 1]],
    "J": [[0, 0, 1], [1, 1, 1]],
    "I": [[1, 1, 1, 1]],
}

PIECE_KINDS: List[str] = list(PIECE_SHAPES)

# Color index bound to each kind (0 is reserved for empty board cells)
PIECE_COLORS: dict[str, int] = {kind: i + 1 for i, kind in enumerate(PIECE_KINDS)}


def rotate_cw(matrix: list) -> list:
    """Rotate a matrix 90 degrees clockwise.

    An H x W matrix becomes W x H with result[i][j] = matrix[H-1-j][i].

    Args:
        matrix: Rectangular list of rows

    Returns:
        New rotated matrix (input is left untouched)
    """
    height = len(matrix)
    width = len(matrix[0])
    return [[matrix[height - 1 - j][i] for j in range(height)] for i in range(width)]


def rotate_ccw(matrix: list) -> list:
    """Rotate a matrix 90 degrees counter-clockwise.

    An H x W matrix becomes W x H with result[i][j] = matrix[j][W-1-i].

    Args:
        matrix: Rectangular list of rows

    Returns:
        New rotated matrix (input is left untouched)
    """
    height = len(matrix)
    width = len(matrix[0])
    return [[matrix[j][width - 1 - i] for j in range(height)] for i in range(width)]


def color_matrix(kind: str, shape: Matrix) -> ColorMatrix:
    """Build the color matrix matching a shape for a piece kind."""
    color = PIECE_COLORS[kind]
    return [[color if cell else None for cell in row] for row in shape]


class Piece:
    """A tetromino at a specific anchor and orientation.

    Pieces are treated as values: move() and rotate() return new pieces so a
    tentative move can be checked and then committed or simply dropped.
    """

    def __init__(
        self,
        kind: str,
        x: int = 0,
        y: int = 0,
        shape: Optional[Matrix] = None,
        colors: Optional[ColorMatrix] = None,
    ):
        """Initialize a piece.

        Args:
            kind: One of "T", "O", "S", "Z", "L", "J", "I"
            x: Board column of the bounding box's left edge
            y: Board row of the bounding box's top edge (0 at top)
            shape: Orientation matrix (defaults to the kind's base shape)
            colors: Color matrix parallel to shape (derived when omitted)
        """
        if kind not in PIECE_SHAPES:
            raise ValueError(f"Invalid piece type: {kind}")
        if shape is None:
            shape = [row[:] for row in PIECE_SHAPES[kind]]
        if colors is None:
            colors = color_matrix(kind, shape)
        if len(colors) != len(shape) or any(
            len(c) != len(s) for c, s in zip(colors, shape)
        ):
            raise ValueError("Color matrix must match shape dimensions")
        for row, color_row in zip(shape, colors):
            for cell, color in zip(row, color_row):
                if cell and color is None:
                    raise ValueError("Every occupied cell needs a color")

        self.kind = kind
        self.x = x
        self.y = y
        self.shape = shape
        self.colors = colors

    @property
    def width(self) -> int:
        return len(self.shape[0])

    @property
    def height(self) -> int:
        return len(self.shape)

    @property
    def color(self) -> int:
        return PIECE_COLORS[self.kind]

    def get_cells(self) -> List[Tuple[int, int, int]]:
        """Get absolute board coordinates of all occupied cells.

        Returns:
            List of (x, y, color) tuples in board coordinates
        """
        cells = []
        for dy, row in enumerate(self.shape):
            for dx, cell in enumerate(row):
                if cell:
                    cells.append((self.x + dx, self.y + dy, self.colors[dy][dx]))
        return cells

    def copy(self) -> "Piece":
        """Create a copy of this piece."""
        return Piece(
            self.kind,
            self.x,
            self.y,
            [row[:] for row in self.shape],
            [row[:] for row in self.colors],
        )

    def move(self, dx: int, dy: int) -> "Piece":
        """Return a new piece moved by the given delta."""
        return Piece(self.kind, self.x + dx, self.y + dy, self.shape, self.colors)

    def rotate(self, clockwise: bool = True) -> "Piece":
        """Return a new piece rotated about its unchanged anchor.

        Shape and colors go through the same transform so every cell keeps
        its color.
        """
        transform = rotate_cw if clockwise else rotate_ccw
        return Piece(
            self.kind, self.x, self.y, transform(self.shape), transform(self.colors)
        )

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "shape": [row[:] for row in self.shape],
            "colors": [row[:] for row in self.colors],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Piece):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.x == other.x
            and self.y == other.y
            and self.shape == other.shape
            and self.colors == other.colors
        )

    def __repr__(self) -> str:
        return f"Piece({self.kind}, x={self.x}, y={self.y}, {self.width}x{self.height})"


def get_spawn_position(kind: str, board_width: int = 10) -> Tuple[int, int]:
    """Get the canonical spawn anchor for a piece kind.

    The piece is horizontally centered (floor division on both sides) and
    placed on the top row.

    Args:
        kind: One of "T", "O", "S", "Z", "L", "J", "I"
        board_width: Number of board columns

    Returns:
        (x, y) spawn coordinates
    """
    width = len(PIECE_SHAPES[kind][0])
    return (board_width // 2 - width // 2, 0)
