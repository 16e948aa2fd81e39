#!/usr/bin/env python3
"""
Pipesaver -- Animated pipes terminal screensaver using Python curses.
Pipes of box-drawing characters snake across the screen, turning at random
and leaving a trail. Pipes wrap around (or bounce off) the terminal edges and
the canvas is wiped once enough characters have been drawn.
Press any key to quit.
"""

import argparse
import curses
import math
import random
import signal
import sys
import time
from dataclasses import dataclass, field
from typing import Optional

VERSION = "1.3.0"

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_PIPES = 1
DEFAULT_FPS = 75.0
DEFAULT_TURN_CHANCE = 13   # percent
DEFAULT_LIMIT = 2000       # characters drawn before the canvas is wiped

BOUNDARY_WRAP = "wrap"
BOUNDARY_BOUNCE = "bounce"

# Directions: (dx, dy)
UP = (0, -1)
RIGHT = (1, 0)
DOWN = (0, 1)
LEFT = (-1, 0)

# Index order used by the glyph strings below
DIRECTIONS = [UP, RIGHT, DOWN, LEFT]

OPPOSITE = {UP: DOWN, DOWN: UP, LEFT: RIGHT, RIGHT: LEFT}
TURNS = {UP: (LEFT, RIGHT), DOWN: (LEFT, RIGHT), LEFT: (UP, DOWN), RIGHT: (UP, DOWN)}

# ---------------------------------------------------------------------------
# Pipe glyph sets
# ---------------------------------------------------------------------------

# Each set is 16 chars: set[prev * 4 + new] is drawn where a pipe that
# entered a cell heading `prev` leaves it heading `new`.
PIPE_KINDS = [
    "┃┏ ┓┛━┓  ┗┃┛┗ ┏━",        # 0 heavy
    "│╭ ╮╯─╮  ╰│╯╰ ╭─",        # 1 rounded
    "│┌ ┐┘─┐  └│┘└ ┌─",        # 2 light
    "║╔ ╗╝═╗  ╚║╝╚ ╔═",        # 3 double
    "|+ ++-+  +|++ +-",        # 4 ascii plus
    "|/ \\/-\\  \\|/\\ /-",     # 5 ascii slashes
    ".. ....  .... ..",        # 6 dots
    ".o oo.o  o.oo o.",        # 7 dots and circles
    "-\\ /\\|/  /-\\/ \\|",     # 8 railway
    "╿┍ ┑┚╼┒  ┕╽┙┖ ┎╾",        # 9 knobby
]

KIND_NAMES = [
    "heavy", "rounded", "light", "double", "ascii-plus",
    "ascii-slash", "dots", "circles", "railway", "knobby",
]


def glyph_table(chars):
    """Build the (prev_dir, new_dir) -> glyph lookup for a 16-char pipe set.

    The reversal slots of a set are blank; a reversal (only produced by a
    bounce) is drawn with the straight glyph of the new direction.
    """
    if len(chars) != 16:
        raise ValueError(f"pipe set must be 16 characters, got {len(chars)}")
    table = {}
    for i, prev in enumerate(DIRECTIONS):
        for j, new in enumerate(DIRECTIONS):
            if new == OPPOSITE[prev]:
                table[(prev, new)] = chars[j * 4 + j]
            else:
                table[(prev, new)] = chars[i * 4 + j]
    return table


GLYPH_TABLES = [glyph_table(chars) for chars in PIPE_KINDS]

# ---------------------------------------------------------------------------
# Color palettes
# ---------------------------------------------------------------------------

PALETTES = {
    "classic": [curses.COLOR_RED, curses.COLOR_GREEN, curses.COLOR_YELLOW,
                curses.COLOR_BLUE, curses.COLOR_MAGENTA, curses.COLOR_CYAN,
                curses.COLOR_WHITE],
    "neon": [curses.COLOR_MAGENTA, curses.COLOR_CYAN, curses.COLOR_GREEN,
             curses.COLOR_YELLOW],
    "fire": [curses.COLOR_RED, curses.COLOR_YELLOW, curses.COLOR_WHITE],
    "ice": [curses.COLOR_BLUE, curses.COLOR_CYAN, curses.COLOR_WHITE],
    "mono": [curses.COLOR_WHITE],
}

DEFAULT_PALETTE = "classic"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass
class Settings:
    """Screensaver configuration, filled from the command line."""

    pipes: int = DEFAULT_PIPES
    fps: float = DEFAULT_FPS
    turn_chance: int = DEFAULT_TURN_CHANCE
    limit: int = DEFAULT_LIMIT
    timeout: Optional[float] = None
    palette: str = DEFAULT_PALETTE
    kinds: list = field(default_factory=lambda: [0])
    custom: Optional[str] = None
    boundary: str = BOUNDARY_WRAP
    random_start: bool = False
    keep_style: bool = False
    bold: bool = True
    color: bool = True
    seed: Optional[int] = None

    def validate(self):
        """Raise ValueError for any out-of-range value, else return self."""
        if self.pipes < 1:
            raise ValueError(f"number of pipes must be at least 1, got {self.pipes}")
        if not math.isfinite(self.fps) or self.fps <= 0:
            raise ValueError(f"frame rate must be positive, got {self.fps}")
        if not 0 <= self.turn_chance <= 100:
            raise ValueError(f"turn chance must be between 0 and 100, got {self.turn_chance}")
        if self.limit < 0:
            raise ValueError(f"character limit cannot be negative, got {self.limit}")
        if self.timeout is not None and (not math.isfinite(self.timeout) or self.timeout <= 0):
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.palette not in PALETTES:
            raise ValueError(f"unknown palette '{self.palette}'")
        if not self.kinds:
            raise ValueError("at least one pipe kind is required")
        for kind in self.kinds:
            if not 0 <= kind < len(PIPE_KINDS):
                raise ValueError(f"pipe kind must be between 0 and {len(PIPE_KINDS) - 1}, got {kind}")
        if self.custom is not None and len(self.custom) != 16:
            raise ValueError(f"custom pipe set must be 16 characters, got {len(self.custom)}")
        if self.boundary not in (BOUNDARY_WRAP, BOUNDARY_BOUNCE):
            raise ValueError(f"unknown boundary policy '{self.boundary}'")
        return self

    def glyph_tables(self):
        """Return the glyph tables pipes may be drawn with."""
        if self.custom is not None:
            return [glyph_table(self.custom)]
        return [GLYPH_TABLES[kind] for kind in self.kinds]


# ---------------------------------------------------------------------------
# Terminal surface
# ---------------------------------------------------------------------------

class CursesSurface:
    """Character surface backed by the curses standard screen."""

    def __init__(self, stdscr, palette, bold=True, color=True):
        self.stdscr = stdscr
        self.palette = palette
        self.bold = bold
        self.color = color
        self.cursor = None

    def setup(self):
        """Hide the cursor, make input non-blocking and register color pairs."""
        try:
            self.cursor = curses.curs_set(0)
        except curses.error:
            self.cursor = None
        self.stdscr.nodelay(True)
        self.stdscr.keypad(True)
        if self.color and curses.has_colors():
            curses.start_color()
            curses.use_default_colors()
            for i, fg in enumerate(self.palette):
                curses.init_pair(i + 1, fg, -1)
        else:
            self.color = False
        self.stdscr.clear()

    def size(self):
        max_y, max_x = self.stdscr.getmaxyx()
        return max(1, max_x), max(1, max_y)

    def put(self, x, y, glyph, color=0):
        """Write glyph at (x, y), silently ignoring out-of-bounds errors."""
        attr = 0
        if self.color:
            attr |= curses.color_pair(color % len(self.palette) + 1)
        if self.bold:
            attr |= curses.A_BOLD
        try:
            self.stdscr.addstr(y, x, glyph, attr)
        except curses.error:
            pass

    def clear(self):
        self.stdscr.clear()

    def refresh(self):
        self.stdscr.refresh()

    def poll_key(self):
        return self.stdscr.getch()

    def restore(self):
        """Put the cursor back as setup() found it; curses.wrapper restores the rest."""
        if self.cursor is None:
            return
        try:
            curses.curs_set(self.cursor)
        except curses.error:
            pass


# ---------------------------------------------------------------------------
# Pipe
# ---------------------------------------------------------------------------

class Pipe:
    """A single trail-drawing pipe."""

    def __init__(self, x, y, direction, settings, rng, tables=None):
        self.x = x
        self.y = y
        self.direction = direction
        self.settings = settings
        self.rng = rng
        self.tables = tables if tables is not None else settings.glyph_tables()
        self.color = 0
        self.glyphs = self.tables[0]
        self.restyle()

    def restyle(self):
        """Pick a new random color and pipe kind."""
        self.color = self.rng.randrange(len(PALETTES[self.settings.palette]))
        self.glyphs = self.rng.choice(self.tables)

    def choose_direction(self):
        """Turn left or right with the configured chance, else keep going."""
        if self.rng.random() < self.settings.turn_chance / 100:
            return self.rng.choice(TURNS[self.direction])
        return self.direction

    def advance(self, width, height):
        """Move one cell and return (x, y, glyph) for the cell entered."""
        dx, dy = self.direction
        x, y = self.x + dx, self.y + dy
        wrapped = False
        if not (0 <= x < width and 0 <= y < height):
            if self.settings.boundary == BOUNDARY_BOUNCE:
                self.direction = OPPOSITE[self.direction]
                dx, dy = self.direction
                x = min(max(self.x + dx, 0), width - 1)
                y = min(max(self.y + dy, 0), height - 1)
            else:
                x %= width
                y %= height
                wrapped = True
        self.x, self.y = x, y

        entered = self.direction
        self.direction = self.choose_direction()
        if wrapped and not self.settings.keep_style:
            self.restyle()
        return self.x, self.y, self.glyphs[(entered, self.direction)]

    def step(self, surface, width, height):
        """Advance one cell and draw the resulting glyph on surface."""
        x, y, glyph = self.advance(width, height)
        surface.put(x, y, glyph, self.color)
        return x, y, glyph


# ---------------------------------------------------------------------------
# Animation loop
# ---------------------------------------------------------------------------

class PipeScreen:
    """Drives all pipes across a surface at a fixed frame rate."""

    def __init__(self, surface, settings, rng=None, sleep=time.sleep, clock=time.monotonic):
        self.surface = surface
        self.settings = settings
        self.rng = rng if rng is not None else random.Random(settings.seed)
        self.sleep = sleep
        self.clock = clock
        self.tables = settings.glyph_tables()
        self.width, self.height = surface.size()
        self.pipes = []
        self.drawn = 0
        self.resets = 0
        self.running = False
        self.spawn_pipes()

    def start_position(self):
        if self.settings.random_start:
            return self.rng.randrange(self.width), self.rng.randrange(self.height)
        return self.width // 2, self.height // 2

    def spawn_pipes(self):
        """Create a fresh set of pipes with random directions and styles."""
        self.pipes = []
        for _ in range(self.settings.pipes):
            x, y = self.start_position()
            direction = self.rng.choice(DIRECTIONS)
            self.pipes.append(Pipe(x, y, direction, self.settings, self.rng, self.tables))

    def reset_canvas(self):
        """Wipe the screen and start counting characters from zero."""
        self.surface.clear()
        self.drawn = 0
        self.resets += 1
        if self.settings.random_start:
            for pipe in self.pipes:
                pipe.x, pipe.y = self.start_position()

    def resize(self):
        """Pick up new terminal dimensions and start over."""
        self.width, self.height = self.surface.size()
        self.surface.clear()
        self.drawn = 0
        self.spawn_pipes()

    def tick(self):
        """Advance every pipe by one cell."""
        limit = self.settings.limit
        for pipe in self.pipes:
            if limit and self.drawn >= limit:
                self.reset_canvas()
            pipe.step(self.surface, self.width, self.height)
            self.drawn += 1
        self.surface.refresh()

    def run(self, max_ticks=None):
        """Animate until a key press, the timeout or an interrupt.

        The surface is restored however the loop ends. Returns the number
        of ticks run.
        """
        frame_delay = 1.0 / self.settings.fps
        deadline = None
        if self.settings.timeout is not None:
            deadline = self.clock() + self.settings.timeout
        ticks = 0
        self.running = True
        try:
            while self.running:
                frame_start = self.clock()
                self.tick()
                ticks += 1

                key = self.surface.poll_key()
                if key == curses.KEY_RESIZE:
                    self.resize()
                elif key != -1:
                    self.running = False

                if deadline is not None and self.clock() >= deadline:
                    self.running = False
                if max_ticks is not None and ticks >= max_ticks:
                    self.running = False

                if self.running:
                    elapsed = self.clock() - frame_start
                    self.sleep(max(0, frame_delay - elapsed))
        except KeyboardInterrupt:
            pass
        finally:
            self.running = False
            self.surface.restore()
        return ticks


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def build_parser():
    parser = argparse.ArgumentParser(
        prog="pipesaver",
        description="Animated pipes terminal screensaver. Press any key to quit.",
    )
    parser.add_argument(
        "-p", "--pipes",
        type=int,
        default=DEFAULT_PIPES,
        help=f"Number of pipes (default: {DEFAULT_PIPES})",
    )
    parser.add_argument(
        "-f", "--fps",
        type=float,
        default=DEFAULT_FPS,
        help=f"Frames per second (default: {DEFAULT_FPS:g})",
    )
    parser.add_argument(
        "-s", "--turn-chance",
        type=int,
        default=DEFAULT_TURN_CHANCE,
        help=f"Chance in percent that a pipe turns on each step, 0-100 (default: {DEFAULT_TURN_CHANCE})",
    )
    parser.add_argument(
        "-r", "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Characters drawn before the screen is wiped, 0 for no limit (default: {DEFAULT_LIMIT})",
    )
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=None,
        help="Exit after this many seconds",
    )
    parser.add_argument(
        "-c", "--palette",
        choices=sorted(PALETTES),
        default=DEFAULT_PALETTE,
        help=f"Color palette (default: {DEFAULT_PALETTE})",
    )
    kinds = ", ".join(f"{i} {name}" for i, name in enumerate(KIND_NAMES))
    parser.add_argument(
        "-k", "--kind",
        type=int,
        action="append",
        dest="kinds",
        help=f"Pipe kind, repeat to mix kinds ({kinds}; default: 0)",
    )
    parser.add_argument(
        "-T", "--custom",
        default=None,
        help="Custom 16-character pipe set, overrides --kind",
    )
    parser.add_argument(
        "-b", "--bounce",
        action="store_true",
        help="Bounce off the terminal edges instead of wrapping around",
    )
    parser.add_argument(
        "-R", "--random-start",
        action="store_true",
        help="Start pipes at random positions instead of the centre",
    )
    parser.add_argument(
        "-K", "--keep-style",
        action="store_true",
        help="Keep color and kind when a pipe wraps around an edge",
    )
    parser.add_argument(
        "-B", "--no-bold",
        action="store_true",
        help="Disable bold",
    )
    parser.add_argument(
        "-C", "--no-color",
        action="store_true",
        help="Disable color",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random number generator",
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )
    return parser


def parse_settings(argv=None):
    """Parse command-line arguments into validated Settings.

    Invalid values exit with a usage message (status 2).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings(
        pipes=args.pipes,
        fps=args.fps,
        turn_chance=args.turn_chance,
        limit=args.limit,
        timeout=args.timeout,
        palette=args.palette,
        kinds=args.kinds or [0],
        custom=args.custom,
        boundary=BOUNDARY_BOUNCE if args.bounce else BOUNDARY_WRAP,
        random_start=args.random_start,
        keep_style=args.keep_style,
        bold=not args.no_bold,
        color=not args.no_color,
        seed=args.seed,
    )
    try:
        settings.validate()
    except ValueError as e:
        parser.error(str(e))
    return settings


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def main(stdscr, settings):
    """Screensaver loop -- called by curses.wrapper()."""
    surface = CursesSurface(stdscr, PALETTES[settings.palette],
                            bold=settings.bold, color=settings.color)
    surface.setup()
    PipeScreen(surface, settings).run()


def handle_sigterm(signum, frame):
    """Turn SIGTERM into a normal exit so the terminal gets restored."""
    sys.exit(0)


def cli(argv=None):
    """Console entry point. Returns the process exit status."""
    settings = parse_settings(argv)

    if not sys.stdout.isatty():
        print("Error: pipesaver needs a terminal.", file=sys.stderr)
        return 1

    signal.signal(signal.SIGTERM, handle_sigterm)
    try:
        curses.wrapper(main, settings)
    except curses.error as e:
        print(
            f"Error: cannot initialize terminal. "
            f"Ensure TERM is set and you're running in a supported terminal.\n"
            f"Details: {e}",
            file=sys.stderr,
        )
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(cli())
