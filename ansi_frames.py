#!/usr/bin/env python3
"""
ansi_frames.py

Turns rendered frames into 24-bit ANSI text.

Modes:
  full  one "█" per sample, foreground colored
  half  "▀" per two samples: upper sample as foreground, lower as background

Also: delta redraw against the previous frame, ANSI-aware width helpers and
frame export to frame_<n>.txt files.
"""

import re
from pathlib import Path

from wcwidth import wcswidth

CSI = "\033["
RESET = f"{CSI}0m"
HOME = f"{CSI}H"
CLEAR = f"{CSI}2J"
HIDE_CURSOR = f"{CSI}?25l"
SHOW_CURSOR = f"{CSI}?25h"
ANSI_RE = re.compile(r'\x1b\[[0-9;?]*[A-Za-z]')

FULL_BLOCK = "█"
UPPER_HALF = "▀"
MODES = ("half", "full")


def fg(rgb):
    r, g, b = rgb
    return f"{CSI}38;2;{r};{g};{b}m"


def bg(rgb):
    r, g, b = rgb
    return f"{CSI}48;2;{r};{g};{b}m"


def cursor_to(line, col):
    """1-based terminal coordinates."""
    return f"{CSI}{line};{col}H"


# ---------------- cells ----------------
def frame_cells(frame, mode="half"):
    """
    Rows of terminal cells. A cell is (upper, lower) in half mode, where
    lower is None on the last line of a frame with an odd row count, and a
    single rgb triple in full mode.
    """
    if mode == "full":
        return [list(frame.row(y)) for y in range(frame.rows)]
    if mode != "half":
        raise ValueError(f"Unknown mode: {mode}")

    lines = []
    for y in range(0, frame.rows, 2):
        upper = frame.row(y)
        lower = frame.row(y + 1) if y + 1 < frame.rows else (None,) * frame.columns
        lines.append(list(zip(upper, lower)))
    return lines


def _cell_sgr(cell, mode):
    if mode == "full":
        return fg(cell), FULL_BLOCK
    upper, lower = cell
    if lower is None:
        return RESET + fg(upper), UPPER_HALF
    return fg(upper) + bg(lower), UPPER_HALF


def cells_to_ansi(cells, mode="half"):
    out = []
    last = None
    for cell in cells:
        sgr, glyph = _cell_sgr(cell, mode)
        # equal neighbours share one escape sequence
        if sgr != last:
            out.append(sgr)
            last = sgr
        out.append(glyph)
    out.append(RESET)
    return "".join(out)


def frame_to_lines(frame, mode="half"):
    return [cells_to_ansi(cells, mode) for cells in frame_cells(frame, mode)]


def frame_delta(frame, prev, mode="half", left=0):
    """
    Escape stream that turns the screen showing `prev` into `frame`.

    Without a previous frame of the same shape this is a full home, clear
    and redraw. Otherwise only runs of changed cells are rewritten, each
    preceded by a cursor move. `left` shifts the frame right by that many
    columns.
    """
    lines = frame_cells(frame, mode)
    if prev is None or (prev.columns, prev.rows) != (frame.columns, frame.rows):
        pad = " " * left
        return HOME + CLEAR + "\r\n".join(pad + cells_to_ansi(c, mode) for c in lines)

    out = []
    for y, (cells, old) in enumerate(zip(lines, frame_cells(prev, mode))):
        x = 0
        while x < len(cells):
            if cells[x] == old[x]:
                x += 1
                continue
            start = x
            while x < len(cells) and cells[x] != old[x]:
                x += 1
            out.append(cursor_to(y + 1, left + start + 1))
            out.append(cells_to_ansi(cells[start:x], mode))
    return "".join(out)


# ---------------- width helpers ----------------
def visible_width(s: str) -> int:
    clean = ANSI_RE.sub("", s)
    w = wcswidth(clean)
    if w >= 0:
        return w
    # non-printable characters: count one column each
    return len(clean)


def pad_ansi(s: str, target: int, align="left") -> str:
    cur = visible_width(s)
    if cur >= target:
        return s
    pad = target - cur
    if align == "center":
        left = pad // 2
        right = pad - left
        return (" " * left) + s + (" " * right)
    return s + (" " * pad)


def left_margin(frame_columns, term_columns, align="left"):
    if align != "center" or frame_columns >= term_columns:
        return 0
    return (term_columns - frame_columns) // 2


# ---------------- export ----------------
def save_frame_rows(rows, path):
    with open(path, "w", encoding="utf-8") as fh:
        fh.write("\n".join(rows))


def clean_old_frames(out_dir: Path):
    """Remove all old frame_*.txt files before generating new ones."""
    removed = 0
    for f in out_dir.glob("frame_*.txt"):
        f.unlink()
        removed += 1
    return removed


def export_frames(frames, out_dir, mode="half", width=None, align="left"):
    """
    Write each rendered frame to out_dir/frame_<n>.txt. With `width`, lines
    are padded (or centered) to that many columns. Returns the written paths.
    """
    out_dir = Path(out_dir).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    clean_old_frames(out_dir)

    paths = []
    for i, frame in enumerate(frames):
        rows = frame_to_lines(frame, mode)
        if width:
            rows = [pad_ansi(r, width, align) for r in rows]
        path = out_dir / f"frame_{i}.txt"
        save_frame_rows(rows, path)
        paths.append(path)
    return paths
