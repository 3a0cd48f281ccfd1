"""
Music directory scanning for audix.
"""
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Set, Union

from audix.logging_config import (
    DirectoryNotFound,
    DirectoryUnreadable,
    NoTracksFound,
    NotADirectory,
    get_logger,
)

logger = get_logger('scanner')

# Audio file extensions
AUDIO_EXTENSIONS: Set[str] = {".mp3", ".wav", ".flac", ".ogg", ".m4a"}


def is_audio_file(path: Union[str, Path]) -> bool:
    """Check whether a path has a supported audio extension (case-insensitive)."""
    return Path(path).suffix.lower() in AUDIO_EXTENSIONS


def _audio_files_in(entries: Iterable[os.DirEntry]) -> Iterator[Path]:
    """Yield audio files among directory entries, descending into sub-directories."""
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                yield from _iter_audio_files(Path(entry.path))
            elif entry.is_file() and is_audio_file(entry.name):
                yield Path(entry.path)
        except OSError as e:
            logger.warning(f"Skipping unreadable entry {entry.path}: {e}")


def _iter_audio_files(path: Path) -> Iterator[Path]:
    """Yield audio files below a sub-directory, skipping anything unreadable."""
    try:
        with os.scandir(path) as entries:
            yield from _audio_files_in(entries)
    except OSError as e:
        logger.warning(f"Skipping unreadable directory {path}: {e}")


def scan_music_files(directory: Union[str, Path]) -> List[Path]:
    """Recursively collect supported audio files below a directory.

    Args:
        directory: Root of the music library

    Returns:
        Audio file paths sorted by path

    Raises:
        DirectoryNotFound: The directory does not exist
        NotADirectory: The path is not a directory
        DirectoryUnreadable: The directory itself cannot be listed
        NoTracksFound: No supported audio file was found
    """
    root = Path(directory).expanduser()

    if not root.exists():
        raise DirectoryNotFound(f"Directory '{directory}' does not exist")
    if not root.is_dir():
        raise NotADirectory(f"'{directory}' is not a directory")

    try:
        with os.scandir(root) as entries:
            top_level = list(entries)
    except OSError as e:
        raise DirectoryUnreadable(f"Cannot read directory '{directory}': {e}") from e

    music_files: List[Path] = list(_audio_files_in(top_level))
    if not music_files:
        raise NoTracksFound(f"No supported audio files found in '{directory}'")

    music_files.sort()
    logger.info(f"Found {len(music_files)} tracks in {root}")
    return music_files
