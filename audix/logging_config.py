"""
Logging configuration and error types for audix.
"""
import logging
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        # Work on a copy so the file handler never sees escape codes
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        record.levelname = f"{color}{record.levelname}{reset}"
        return super().format(record)


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Setup logging configuration for audix.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
    """
    logger = logging.getLogger('audix')
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    logger.handlers.clear()

    # Console goes to stderr so the player frame owns stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name('console')
    console_level = logging.getLevelName(str(level).upper())
    if not isinstance(console_level, int):
        console_level = logging.WARNING
    console_handler.setLevel(console_level)
    console_formatter = ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.set_name('file')
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)


def quiet_console(level: int = logging.ERROR) -> int:
    """Raise the console handler threshold while the player UI owns the screen.

    Returns:
        The previous level, so the caller can restore it
    """
    for handler in logging.getLogger('audix').handlers:
        if handler.get_name() == 'console':
            previous = handler.level
            handler.setLevel(level)
            return previous
    return logging.NOTSET


def restore_console(level: int) -> None:
    """Put the console handler back to the level returned by quiet_console()."""
    for handler in logging.getLogger('audix').handlers:
        if handler.get_name() == 'console':
            handler.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Module name

    Returns:
        Logger instance
    """
    return logging.getLogger(f'audix.{name}')


# Custom exceptions for better error handling
class AudixError(Exception):
    """Base exception for audix."""
    pass


class FilesystemError(AudixError):
    """Filesystem operation errors."""
    pass


class DirectoryNotFound(FilesystemError):
    """The music directory does not exist."""
    pass


class NotADirectory(FilesystemError):
    """The music path exists but is not a directory."""
    pass


class DirectoryUnreadable(FilesystemError):
    """The top-level music directory cannot be listed."""
    pass


class NoTracksFound(FilesystemError):
    """No supported audio files were found."""
    pass


class TrackError(AudixError):
    """A single track could not be played. Never fatal to the session."""

    def __init__(self, path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path.name}: {reason}")


class TrackOpenFailed(TrackError):
    """The track file could not be opened."""
    pass


class DecodeFailed(TrackError):
    """The track is not in a format any backend can play."""
    pass


class AudioPlayerError(AudixError):
    """Audio playback related errors."""
    pass


class AudioDeviceUnavailable(AudioPlayerError):
    """No audio output backend is available."""
    pass


class PlaybackError(AudixError):
    """Session level playback errors."""
    pass


class NoPlayableTracks(PlaybackError):
    """Every track in the playlist failed to open."""
    pass


class RenderIOError(AudixError):
    """Writing a frame to the terminal failed."""
    pass


class ConfigurationError(AudixError):
    """Configuration related errors."""
    pass


class StateError(AudixError):
    """State management errors."""
    pass
