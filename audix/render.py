"""
Frame rendering for audix.

`render_frame` is a pure function of a PlayerState snapshot (apart from the
cosmetic visualizer); `FrameWriter` puts frames on the terminal.
"""
import random
import sys
from typing import Dict, Optional, TextIO

from audix.logging_config import RenderIOError, get_logger
from audix.state import PlayerState, StateReader

logger = get_logger('render')

VISUALIZER_WIDTH: int = 50
PROGRESS_WIDTH: int = 50
VOLUME_WIDTH: int = 20

VISUALIZER_BARS = "▁▂▃▄▅▆▇█"

COLOR_MAP: Dict[str, str] = {
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "gray": "\033[90m",
    "bold": "\033[1m",
    "reset": "\033[0m",
}

CONTROLS = (
    "  Controls:",
    "    [Space] Play/Pause  [h] Previous  [l] Next  [r] Restart  [q] Quit",
    "    [↑/↓] Volume  [←/→] Seek  [s] Shuffle",
)


class Icons:
    """Collection of Unicode icons used in the UI."""

    PLAY: str = "\uf04b"
    PAUSE: str = "\uf04c"
    SHUFFLE: str = "\uf074"
    VOLUME: str = "\uf028"


def format_duration(seconds: float) -> str:
    """Format a duration in MM:SS format."""
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def draw_visualizer(width: int = VISUALIZER_WIDTH, rng: Optional[random.Random] = None) -> str:
    """Random bar heights, purely decorative."""
    rng = rng or random
    return "".join(rng.choice(VISUALIZER_BARS) for _ in range(width))


def draw_progress_bar(position: float, duration: float, width: int = PROGRESS_WIDTH) -> str:
    if duration <= 0:
        return "─" * width
    ratio = max(0.0, min(1.0, position / duration))
    filled = int(ratio * width)
    return "━" * filled + "─" * (width - filled)


def draw_volume_bar(volume: float, width: int = VOLUME_WIDTH) -> str:
    ratio = max(0.0, min(1.0, volume))
    filled = int(round(ratio * width, 6))
    return "█" * filled + "░" * (width - filled)


def render_frame(state: PlayerState, colors: bool = True,
                 rng: Optional[random.Random] = None) -> str:
    """Build one UI frame from a state snapshot."""

    def paint(color: str, text: str) -> str:
        if not colors:
            return text
        return f"{COLOR_MAP[color]}{text}{COLOR_MAP['reset']}"

    status_icon = Icons.PLAY if state.is_playing else Icons.PAUSE
    shuffle_mark = f"  {Icons.SHUFFLE} shuffle" if state.shuffle else ""
    track_number = state.current_track + 1 if state.total_tracks else 0

    lines = [
        paint("cyan", "  Audix Music Player"),
        paint("yellow", f"  Now Playing: {state.track_name}"),
        paint("green", f"  {draw_visualizer(rng=rng)}"),
        "  {} {} / {}".format(
            draw_progress_bar(state.position, state.duration),
            format_duration(state.position),
            format_duration(state.duration),
        ),
        paint("blue", f"  {status_icon} Track {track_number} of {state.total_tracks}{shuffle_mark}"),
        f"  {Icons.VOLUME} Volume: {draw_volume_bar(state.volume)} {state.volume * 100:.0f}%",
    ]
    if state.status:
        lines.append(paint("red", f"  {state.status}"))
    lines.append("")
    lines.extend(paint("gray", line) for line in CONTROLS)
    return "\r\n".join(lines) + "\r\n"


class FrameWriter:
    """Writes frames to the terminal."""

    CLEAR = "\033[2J\033[H"

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout

    def draw(self, frame: str) -> None:
        """Clear the screen and write a frame.

        Raises:
            RenderIOError: The terminal rejected the write
        """
        try:
            self.out.write(self.CLEAR + frame)
            self.out.flush()
        except (OSError, ValueError) as e:
            raise RenderIOError(f"Could not draw frame: {e}") from e


class Renderer:
    """Render role: reads snapshots and draws them, never writes state."""

    def __init__(self, reader: StateReader, writer: Optional[FrameWriter] = None,
                 colors: bool = True):
        self.reader = reader
        self.writer = writer or FrameWriter()
        self.colors = colors
        self.dropped = 0

    def refresh(self) -> bool:
        """Draw the current snapshot.

        Returns:
            False when the frame was skipped because the write failed
        """
        try:
            self.writer.draw(render_frame(self.reader.snapshot(), self.colors))
        except RenderIOError as e:
            self.dropped += 1
            logger.warning(f"Skipping frame: {e}")
            return False
        return True
