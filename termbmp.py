#!/usr/bin/env python3
"""
termbmp.py

Shows BMP images as 24-bit colored text, scaled to the terminal.

Features:
 - Decodes uncompressed BMP (1/4/8/16/24/32 bpp) without any imaging library
 - Box-filter downscaling to the terminal grid, half-block (default) or full-block glyphs
 - Plays a directory of .bmp files, or a numbered sequence (walk_001.bmp, walk_002.bmp, ...), as an animation
 - Redraws only the cells that changed between frames
 - Bad frames are skipped (or abort the run with --on-error abort)
 - Press q to quit playback
 - --info prints the headers, --out exports the rendered frames as frame_<n>.txt

Usage:
  termbmp image.bmp
  termbmp frames/ --fps 24 --loop --fit --align center
  termbmp walk_001.bmp --out ~/walk-frames --width 60 --height 30
"""

from pathlib import Path
import argparse
import re
import select
import shutil
import sys
import termios
import time
import tty

import ansi_frames
from bmp_reader import ParseError, decode, describe, read_header
from rasterize import DegenerateTarget, TargetGrid, fit_grid, rasterize

# ---------------- constants ----------------
DEFAULT_FPS = 30.0
DEFAULT_MODE = "half"
BMP_SUFFIX = ".bmp"
PROMPT_LINES = 1
NUMBERED_RE = re.compile(r'^(.*?)(\d+)$')

# ---------------- frame discovery ----------------
def _is_bmp(p: Path) -> bool:
    return p.is_file() and p.suffix.lower() == BMP_SUFFIX

def numbered_siblings(path: Path):
    """
    Files next to `path` that share its name apart from a trailing number,
    in numeric order. Just [path] when the name carries no number.
    """
    m = NUMBERED_RE.match(path.stem)
    if not m:
        return [path]
    prefix = m.group(1)
    found = []
    for f in path.parent.iterdir():
        if not _is_bmp(f):
            continue
        fm = NUMBERED_RE.match(f.stem)
        if fm and fm.group(1) == prefix:
            found.append((int(fm.group(2)), f.name, f))
    return [f for _, _, f in sorted(found)]

def discover_frames(path, single=False):
    p = Path(path).expanduser()
    if not p.exists():
        raise FileNotFoundError(f"Path not found: {p}")
    if p.is_dir():
        files = sorted((f for f in p.iterdir() if _is_bmp(f)), key=lambda f: f.name)
        if not files:
            raise FileNotFoundError(f"No .bmp files in {p}")
        return files
    if p.suffix.lower() != BMP_SUFFIX:
        raise ValueError(f"Not a .bmp file: {p}")
    if single:
        return [p]
    return numbered_siblings(p)

# ---------------- grid ----------------
def terminal_grid(width=None, height=None, mode=DEFAULT_MODE):
    """Target grid from the terminal size; explicit width/height win."""
    term = shutil.get_terminal_size()
    columns = term.columns if width is None else width
    lines = max(1, term.lines - PROMPT_LINES) if height is None else height
    return TargetGrid.from_terminal(columns, lines, half_block=(mode == "half"))

def frame_grid(image, grid, mode=DEFAULT_MODE, fit=False):
    if not fit:
        return grid
    return fit_grid(image, grid.columns, grid.rows,
                    cell_aspect=1.0 if mode == "half" else 2.0)

def render_file(path, grid, mode=DEFAULT_MODE, fit=False):
    image = decode(Path(path).read_bytes())
    return rasterize(image, frame_grid(image, grid, mode, fit))

# ---------------- TERMINAL RAW MODE ----------------
old_settings = None

def enable_raw_mode():
    """Enable raw keyboard input mode."""
    global old_settings
    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    tty.setcbreak(fd)

def disable_raw_mode():
    """Restore terminal to normal mode."""
    global old_settings
    if old_settings is None:
        return
    termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, old_settings)
    old_settings = None

def kbhit():
    dr, _, _ = select.select([sys.stdin], [], [], 0)
    return dr != []

def getch():
    return sys.stdin.read(1)

def quit_pressed(interactive):
    return interactive and kbhit() and getch().lower() == "q"

# ---------------- playback ----------------
def report(path, err):
    print(f"{path}: {err}", file=sys.stderr)

def play(paths, grid, mode=DEFAULT_MODE, fps=DEFAULT_FPS, fit=False,
         align="left", loop=False, on_error="skip", out=None, interactive=None):
    """
    Decode, rasterize and draw each file in order, one frame period apart.
    Returns the number of frames that failed.

    Decoding and averaging run per pixel in pure Python, so large images
    take longer than one frame period and playback simply runs slower than
    `fps`; no frames are dropped.
    """
    if out is None:
        out = sys.stdout
    delay = 1 / fps
    term_columns = shutil.get_terminal_size().columns
    if interactive is None:
        interactive = sys.stdin.isatty()
    failures = 0
    prev = None

    if interactive:
        enable_raw_mode()
    out.write(ansi_frames.HIDE_CURSOR)
    try:
        while True:
            shown = 0
            for i, path in enumerate(paths):
                start = time.monotonic()
                try:
                    frame = render_file(path, grid, mode, fit)
                except (ParseError, OSError) as e:
                    report(path, e)
                    failures += 1
                    if on_error == "abort":
                        return failures
                    continue

                left = ansi_frames.left_margin(frame.columns, term_columns, align)
                out.write(ansi_frames.frame_delta(frame, prev, mode, left=left))
                out.flush()
                prev = frame
                shown += 1

                if quit_pressed(interactive):
                    return failures
                last = i == len(paths) - 1 and not loop
                remaining = delay - (time.monotonic() - start)
                if remaining > 0 and not last:
                    time.sleep(remaining)

            if not loop or not shown:
                return failures
    finally:
        out.write(ansi_frames.RESET + ansi_frames.SHOW_CURSOR + "\n")
        out.flush()
        if interactive:
            disable_raw_mode()

def print_info(paths):
    failures = 0
    for path in paths:
        try:
            header = read_header(Path(path).read_bytes())
        except (ParseError, OSError) as e:
            report(path, e)
            failures += 1
            continue
        print(f"{path}:")
        for line in describe(header):
            print(f"  {line}")
    return failures

def export(paths, out_dir, grid, mode=DEFAULT_MODE, fit=False, align="left",
           width=None, on_error="skip"):
    frames = []
    failures = 0
    for path in paths:
        try:
            frames.append(render_file(path, grid, mode, fit))
        except (ParseError, OSError) as e:
            report(path, e)
            failures += 1
            if on_error == "abort":
                return failures

    written = ansi_frames.export_frames(frames, out_dir, mode, width=width, align=align)
    for i, p in enumerate(written):
        print(f"Saved frame {i} → {p}")
    print(f"Generated {len(written)} frames into {Path(out_dir).expanduser()}")
    return failures

# ---------------- CLI ----------------
def build_parser():
    p = argparse.ArgumentParser(prog="termbmp", description="termbmp - BMP images in the terminal")
    p.add_argument("path", help="BMP file, numbered BMP sequence member, or directory of BMP files")
    p.add_argument("--width", type=int, help="Columns (default: terminal width)")
    p.add_argument("--height", type=int, help="Lines (default: terminal height minus one)")
    p.add_argument("--mode", choices=ansi_frames.MODES, default=DEFAULT_MODE)
    p.add_argument("--fit", action="store_true", help="Keep the image aspect ratio")
    p.add_argument("--align", choices=["left", "center"], default="left")
    p.add_argument("--fps", type=float, default=DEFAULT_FPS,
                   help="Upper bound on frame rate; large images decode slower than this")
    p.add_argument("--loop", action="store_true", help="Repeat the sequence until q is pressed")
    p.add_argument("--single", action="store_true", help="Do not expand numbered siblings")
    p.add_argument("--on-error", choices=["skip", "abort"], default="skip")
    p.add_argument("--info", action="store_true", help="Print BMP headers instead of rendering")
    p.add_argument("--out", "-o", help="Export frames as frame_<n>.txt into this folder")
    return p

def main(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    if args.fps <= 0:
        p.error("--fps must be positive")

    try:
        paths = discover_frames(args.path, single=args.single)
    except (FileNotFoundError, ValueError) as e:
        p.error(str(e))

    if args.info:
        return 1 if print_info(paths) else 0

    grid = terminal_grid(args.width, args.height, args.mode)
    try:
        if args.out:
            failures = export(paths, args.out, grid, args.mode, args.fit, args.align,
                              width=args.width, on_error=args.on_error)
        else:
            failures = play(paths, grid, args.mode, args.fps, args.fit, args.align,
                            args.loop, args.on_error)
    except DegenerateTarget as e:
        print(f"termbmp: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
