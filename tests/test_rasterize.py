import pytest

from bmp_reader import DecodedImage
from rasterize import DegenerateTarget, RenderedFrame, TargetGrid, _spans, fit_grid, rasterize

RED, GREEN, BLUE = (255, 0, 0), (0, 255, 0), (0, 0, 255)
BLACK, WHITE = (0, 0, 0), (255, 255, 255)


def image_from_rows(rows):
    return DecodedImage(len(rows[0]), len(rows), tuple(p for row in rows for p in row))


def gradient(width, height):
    return image_from_rows([[(x * 7 % 256, y * 13 % 256, (x * y) % 256)
                             for x in range(width)] for y in range(height)])


def test_same_size_is_identity():
    image = gradient(7, 5)
    frame = rasterize(image, TargetGrid(7, 5))
    assert frame == RenderedFrame(7, 5, image.pixels)


def test_two_by_two_blocks_average_exactly():
    colors = [[RED, GREEN], [BLUE, (10, 20, 30)]]
    rows = []
    for block_row in colors:
        line = [c for c in block_row for _ in range(2)]
        rows.extend([line, line])
    frame = rasterize(image_from_rows(rows), TargetGrid(2, 2))
    assert frame.pixels == (RED, GREEN, BLUE, (10, 20, 30))


def test_mean_rounds_half_up():
    frame = rasterize(image_from_rows([[BLACK, WHITE]]), TargetGrid(1, 1))
    assert frame.pixels == ((128, 128, 128),)


def test_mean_rounds_to_nearest():
    image = image_from_rows([[(0, 0, 0), (0, 1, 2), (1, 1, 2)]])
    assert rasterize(image, TargetGrid(1, 1)).pixels == ((0, 1, 1),)


def test_fractional_blocks_use_pixel_centers():
    # 3 -> 2: centers 0.5, 1.5, 2.5 against boundaries 0, 1.5, 3
    image = image_from_rows([[(0, 0, 0), (90, 90, 90), (210, 210, 210)]])
    frame = rasterize(image, TargetGrid(2, 1))
    assert frame.pixels == ((0, 0, 0), (150, 150, 150))


def test_vertical_downscale():
    image = image_from_rows([[RED], [RED], [BLUE], [BLUE]])
    assert rasterize(image, TargetGrid(1, 2)).pixels == (RED, BLUE)


@pytest.mark.parametrize("src", range(1, 25))
def test_downscale_spans_partition_source(src):
    for dst in range(1, src + 1):
        spans = _spans(src, dst)
        assert len(spans) == dst
        assert all(len(s) >= 1 for s in spans)
        covered = [i for s in spans for i in s]
        assert covered == list(range(src))


def test_upscale_uses_nearest_pixel():
    image = image_from_rows([[RED, BLUE]])
    frame = rasterize(image, TargetGrid(4, 3))
    assert frame.row(0) == (RED, RED, BLUE, BLUE)
    assert frame.row(2) == frame.row(0)


def test_mixed_axes():
    # wider than the grid, shorter than the grid
    image = image_from_rows([[RED, RED, BLUE, BLUE]])
    frame = rasterize(image, TargetGrid(2, 2))
    assert frame.pixels == (RED, BLUE, RED, BLUE)


def test_output_shape():
    frame = rasterize(gradient(101, 37), TargetGrid(13, 9))
    assert (frame.columns, frame.rows) == (13, 9)
    assert len(frame.pixels) == 13 * 9
    assert all(0 <= c <= 255 for p in frame.pixels for c in p)


@pytest.mark.parametrize("grid", [TargetGrid(0, 5), TargetGrid(5, 0), TargetGrid(0, 0), TargetGrid(-1, 3)])
def test_degenerate_target(grid):
    with pytest.raises(DegenerateTarget):
        rasterize(gradient(3, 3), grid)


def test_from_terminal():
    assert TargetGrid.from_terminal(80, 24) == TargetGrid(80, 48)
    assert TargetGrid.from_terminal(80, 24, half_block=False) == TargetGrid(80, 24)


@pytest.mark.parametrize("size,aspect,expected", [
    ((100, 50), 1.0, (80, 40)),
    ((100, 50), 2.0, (80, 20)),
    ((10, 100), 1.0, (4, 40)),
    ((80, 40), 1.0, (80, 40)),
])
def test_fit_grid(size, aspect, expected):
    image = DecodedImage(size[0], size[1], ())
    grid = TargetGrid(80, 80) if size != (10, 100) else TargetGrid(80, 40)
    assert fit_grid(image, grid.columns, grid.rows, cell_aspect=aspect) == TargetGrid(*expected)


def test_fit_grid_never_below_one_cell():
    image = DecodedImage(1000, 1, ())
    assert fit_grid(image, 10, 10) == TargetGrid(10, 1)
