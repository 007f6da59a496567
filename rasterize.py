"""
rasterize.py

Maps a DecodedImage onto a terminal character grid.

Each axis is handled on its own: when the source is at least as large as
the target, every cell averages the source pixels whose centers fall inside
its block (box filter); when the source is smaller, every cell copies the
nearest source pixel.
"""

from collections import namedtuple


class DegenerateTarget(ValueError):
    pass


class TargetGrid(namedtuple("TargetGrid", ["columns", "rows"])):
    __slots__ = ()

    @classmethod
    def from_terminal(cls, columns, lines, half_block=True):
        """Half blocks pack two sample rows into one terminal line."""
        return cls(columns, lines * 2 if half_block else lines)


class RenderedFrame(namedtuple("RenderedFrame", ["columns", "rows", "pixels"])):
    __slots__ = ()

    def row(self, y):
        start = y * self.columns
        return self.pixels[start:start + self.columns]


def _spans(src, dst):
    """
    Source index ranges for each of the `dst` cells along one axis.

    Pixel i belongs to cell c when c*src/dst <= i + 0.5 < (c+1)*src/dst.
    Kept in integers: i >= (2*c*src - dst) / (2*dst).
    """
    if src < dst:
        out = []
        for c in range(dst):
            i = ((2 * c + 1) * src) // (2 * dst)
            out.append(range(i, i + 1))
        return out

    def lower(c):
        # ceil((2*c*src - dst) / (2*dst))
        return max(0, -((dst - 2 * c * src) // (2 * dst)))

    return [range(lower(c), min(src, lower(c + 1))) for c in range(dst)]


def _mean(total, n):
    # round half up
    return (2 * total + n) // (2 * n)


def rasterize(image, grid) -> RenderedFrame:
    columns, rows = grid
    if columns <= 0 or rows <= 0:
        raise DegenerateTarget(f"Target grid must be at least 1x1, got {columns}x{rows}")

    if (columns, rows) == (image.width, image.height):
        return RenderedFrame(columns, rows, tuple(image.pixels))

    x_spans = _spans(image.width, columns)
    y_spans = _spans(image.height, rows)
    width = image.width
    pixels = image.pixels

    out = []
    for ys in y_spans:
        for xs in x_spans:
            r = g = b = 0
            for y in ys:
                base = y * width
                for x in xs:
                    pr, pg, pb = pixels[base + x]
                    r += pr
                    g += pg
                    b += pb
            n = len(ys) * len(xs)
            out.append((_mean(r, n), _mean(g, n), _mean(b, n)))

    return RenderedFrame(columns, rows, tuple(out))


def fit_grid(image, columns, rows, cell_aspect=1.0):
    """
    Largest grid inside columns x rows that keeps the image aspect ratio.

    `cell_aspect` is how many sample rows one grid row stands for relative
    to a column: full-block cells are about twice as tall as they are wide.
    """
    if columns <= 0 or rows <= 0:
        raise DegenerateTarget(f"Target grid must be at least 1x1, got {columns}x{rows}")

    ratio = image.height / (image.width * cell_aspect)
    if columns * ratio <= rows:
        fit_cols, fit_rows = columns, round(columns * ratio)
    else:
        fit_cols, fit_rows = round(rows / ratio), rows
    return TargetGrid(max(1, min(columns, fit_cols)), max(1, min(rows, fit_rows)))
