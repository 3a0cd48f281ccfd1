"""
Terminal input for audix: cbreak mode, bounded key polling and key bindings.
"""
import enum
import os
import select
import sys
import termios
import tty
from typing import Dict, Optional, TextIO

from audix.logging_config import AudixError, get_logger

logger = get_logger('terminal')

HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
CLEAR_SCREEN = "\033[2J\033[H"

# Arrow key escape sequences (after the leading ESC)
ESCAPE_SEQUENCES: Dict[str, str] = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
}


class Command(enum.Enum):
    """Commands the session controller understands."""

    TOGGLE_PAUSE = "toggle_pause"
    NEXT = "next"
    PREVIOUS = "previous"
    RESTART = "restart"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    SEEK_FORWARD = "seek_forward"
    SEEK_BACKWARD = "seek_backward"
    TOGGLE_SHUFFLE = "toggle_shuffle"
    QUIT = "quit"


KEY_BINDINGS: Dict[str, Command] = {
    " ": Command.TOGGLE_PAUSE,
    "l": Command.NEXT,
    "n": Command.NEXT,
    "h": Command.PREVIOUS,
    "p": Command.PREVIOUS,
    "r": Command.RESTART,
    "s": Command.TOGGLE_SHUFFLE,
    "up": Command.VOLUME_UP,
    "+": Command.VOLUME_UP,
    "=": Command.VOLUME_UP,
    "down": Command.VOLUME_DOWN,
    "-": Command.VOLUME_DOWN,
    "right": Command.SEEK_FORWARD,
    "left": Command.SEEK_BACKWARD,
    "q": Command.QUIT,
}


class TerminalError(AudixError):
    """The terminal cannot be put into cbreak mode."""
    pass


class Terminal:
    """Context manager owning the terminal for the length of a session.

    Entering switches stdin to cbreak mode and hides the cursor; leaving
    restores both, whatever way the block exits.
    """

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self._fd: Optional[int] = None
        self._saved = None

    def __enter__(self) -> "Terminal":
        if not self.stdin.isatty():
            raise TerminalError("Must run in an interactive terminal")
        self._fd = self.stdin.fileno()
        try:
            self._saved = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        except termios.error as e:
            raise TerminalError(f"Cannot configure terminal: {e}") from e
        self.stdout.write(HIDE_CURSOR)
        self.stdout.flush()
        logger.debug("Terminal switched to cbreak mode")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def restore(self) -> None:
        """Put the terminal back the way it was. Safe to call twice."""
        if self._saved is None:
            return
        try:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
        except termios.error as e:
            logger.error(f"Failed to restore terminal: {e}")
        finally:
            self._saved = None
            try:
                self.stdout.write(SHOW_CURSOR)
                self.stdout.flush()
            except OSError:
                pass
        logger.debug("Terminal restored")

    def _read_char(self) -> str:
        data = os.read(self._fd, 1)
        return data.decode("utf-8", errors="ignore")

    def _ready(self, timeout: float) -> bool:
        try:
            return bool(select.select([self._fd], [], [], timeout)[0])
        except InterruptedError:
            return False

    def read_key(self, timeout: float) -> Optional[str]:
        """Wait at most `timeout` seconds for one key.

        Returns:
            The character, an arrow name ("up", "down", "left", "right"),
            "escape", or None on timeout
        """
        if self._fd is None or not self._ready(timeout):
            return None
        ch = self._read_char()
        if ch != "\033":
            return ch or None

        seq = ""
        while len(seq) < 2 and self._ready(0.01):
            seq += self._read_char()
        return ESCAPE_SEQUENCES.get(seq, "escape")

    def write(self, text: str) -> None:
        self.stdout.write(text)
        self.stdout.flush()


class InputDispatcher:
    """Turns at most one key press per poll into a Command."""

    def __init__(self, terminal, timeout: float = 0.05,
                 bindings: Optional[Dict[str, Command]] = None):
        self.terminal = terminal
        self.timeout = timeout
        self.bindings = bindings if bindings is not None else KEY_BINDINGS

    def translate(self, key: Optional[str]) -> Optional[Command]:
        if key is None:
            return None
        command = self.bindings.get(key)
        if command is None:
            logger.debug(f"Ignoring unbound key: {key!r}")
        return command

    def poll(self) -> Optional[Command]:
        """Wait up to the configured timeout for a key and translate it."""
        return self.translate(self.terminal.read_key(self.timeout))
