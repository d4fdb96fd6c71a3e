# dbn/backends/raster.py
"""
Raster backend: draws a trace onto a 101x101 pixel grid.

The grid covers user coordinates 0..100 inclusive on both axes. Cells hold the
DBN colour string written last, or the UNPAINTED marker until something is
drawn there; unpainted cells take the paper colour when the grid is encoded.
Unlike the vector backend, anything outside the grid is silently dropped.

Two text encodings share one row-major walk over the grid:
- "test":   every cell's colour, left-justified to 3 characters plus a space
- "binary": "o" for colours >= 50 and " " otherwise

`to_image` additionally converts a grid into an RGB array suitable for
`export_image`.
"""
from typing import Callable, Dict

import numpy as np

from ..core import CANVAS_SIZE, DEFAULT_BACKGROUND_COLOUR, Background, InternalError, Line, Point
from .base import BaseBackend, State

GRID_DIM = CANVAS_SIZE + 1  # pixels per side, coordinates 0..CANVAS_SIZE
UNPAINTED = None  # marker for cells nothing has been drawn on
BINARY_THRESHOLD = 50


class RasterImage:
    """
    Intermediate tree of the raster backend.

    Attributes:
        background (str): Paper colour used for unpainted cells
        pixels (np.ndarray): (GRID_DIM, GRID_DIM) object array indexed [row, column],
            row 0 being the top of the canvas
    """
    def __init__(self):
        self.background = DEFAULT_BACKGROUND_COLOUR
        self.pixels = np.full((GRID_DIM, GRID_DIM), UNPAINTED, dtype=object)

    def set_pixel(self, column: int, row: int, colour: str) -> None:
        """Writes a colour at (column, row) if the cell lies on the grid."""
        if 0 <= column <= CANVAS_SIZE and 0 <= row <= CANVAS_SIZE:
            self.pixels[row, column] = colour

    def resolved(self) -> np.ndarray:
        """Returns a copy of the pixels with unpainted cells set to the background."""
        pixels = self.pixels.copy()
        pixels[np.equal(self.pixels, UNPAINTED)] = self.background
        return pixels


def bresenham(x0: int, y0: int, x1: int, y1: int):
    """
    Yields every grid cell on the line from (x0, y0) to (x1, y1), both ends included.

    Uses Bresenham's integer error-accumulation algorithm, valid for every
    octant.

    Examples:
        >>> list(bresenham(0, 0, 3, 1))
        [(0, 0), (1, 0), (2, 1), (3, 1)]
    """
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy
    while True:
        yield x0, y0
        if x0 == x1 and y0 == y1:
            return
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy


## --- Cell Encodings ---
def _encode_test(colour: str) -> str:
    return f"{colour:<3} "


def _encode_binary(colour: str) -> str:
    return "o" if int(colour) >= BINARY_THRESHOLD else " "


ENCODINGS: Dict[str, Callable[[str], str]] = {
    "test": _encode_test,
    "binary": _encode_binary,
}


class RasterBackend(BaseBackend):
    """
    Renders a drawing trace onto a pixel grid and encodes it as text.

    Args:
        encoding: Name of the cell encoding, "test" or "binary"

    Raises:
        InternalError: If the encoding name is unknown

    Examples:
        >>> backend = RasterBackend("binary")
        >>> grid = backend.transform([Point("0", "100", "100")])
        >>> backend.generate(grid).splitlines()[0][:3]
        'o  '
    """
    def __init__(self, encoding: str = "test"):
        if encoding not in ENCODINGS:
            raise InternalError(f'Unknown raster encoding "{encoding}".')
        self.encoding = encoding
        self.extension = encoding
        super().__init__()

    def _register_handlers(self):
        self.handlers.update({
            Background: self._background,
            Line: self._line,
            Point: self._point,
        })

    def new_tree(self) -> RasterImage:
        return RasterImage()

    def _background(self, op: Background, image: RasterImage, state: State) -> None:
        image.background = op.colour

    def _line(self, op: Line, image: RasterImage, state: State) -> None:
        cells = bresenham(self.x(op.x0), self.y(op.y0), self.x(op.x1), self.y(op.y1))
        for column, row in cells:
            image.set_pixel(column, row, state["pen"])

    def _point(self, op: Point, image: RasterImage, state: State) -> None:
        image.set_pixel(self.x(op.x), self.y(op.y), op.colour)

    def generate(self, image: RasterImage) -> str:
        """Encodes the grid row by row, top row first, one line per row."""
        encode = ENCODINGS[self.encoding]
        return "".join(
            "".join(encode(colour) for colour in row) + "\n"
            for row in image.resolved()
        )

    @staticmethod
    def to_image(image: RasterImage) -> np.ndarray:
        """
        Converts a raster grid into an RGB float image.

        DBN colour c maps to grey intensity (100 - c) / 100, clipped to [0, 1],
        so 0 is white and 100 is black.

        Returns:
            numpy array of shape (GRID_DIM, GRID_DIM, 3) with values in [0, 1]
        """
        values = np.vectorize(int, otypes=[np.int64])(image.resolved())
        intensity = np.clip((CANVAS_SIZE - values) / CANVAS_SIZE, 0.0, 1.0)
        return np.repeat(intensity[:, :, np.newaxis], 3, axis=2).astype(np.float32)
