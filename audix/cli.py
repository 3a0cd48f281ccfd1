"""
Command line entry point for audix.
"""
import argparse
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from audix import __description__, __version__
from audix.audio import ProcessSink, TrackDecoder, detect_backends
from audix.config import AUDIO_PLAYERS, LOG_LEVELS, AppConfig, load_config
from audix.controller import PlaybackController
from audix.logging_config import (
    AudixError,
    ConfigurationError,
    FilesystemError,
    get_logger,
    quiet_console,
    restore_console,
    setup_logging,
)
from audix.playlist import Playlist
from audix.render import FrameWriter, Renderer
from audix.scanner import scan_music_files
from audix.state import DEFAULT_VOLUME, SharedPlayerState
from audix.terminal import CLEAR_SCREEN, InputDispatcher, Terminal

logger = get_logger('main')

EXIT_OK = 0
EXIT_FAILURE = 1

QUIT_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


def parse_volume(value: Optional[str], default: float = DEFAULT_VOLUME) -> float:
    """Parse a volume argument, clamping to 0.0-1.0.

    Unparsable values fall back to the default instead of failing.
    """
    if value is None:
        return default
    try:
        volume = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid volume {value!r}, using {default}")
        return default
    if volume != volume:  # NaN
        return default
    return max(0.0, min(1.0, volume))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="audix", description=__description__)
    parser.add_argument("-d", "--dir", dest="directory", metavar="DIRECTORY", required=True,
                        help="Directory containing music files")
    parser.add_argument("-s", "--shuffle", action="store_true",
                        help="Shuffle playlist")
    parser.add_argument("-v", "--volume", metavar="LEVEL", default=None,
                        help="Set volume (0.0 to 1.0, default 0.7)")
    parser.add_argument("--player", choices=AUDIO_PLAYERS, default=None,
                        help="Audio player backend (default: auto)")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to the TOML config file")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None,
                        type=str.upper, help="Console log level")
    parser.add_argument("--log-file", default=None,
                        help="Write a debug log to this file")
    parser.add_argument("--version", action="version",
                        version=f"audix {__version__}")
    return parser


def apply_arguments(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Let command line arguments override the config file."""
    config.volume = parse_volume(args.volume, default=parse_volume(str(config.volume)))
    if args.player:
        config.audio_player = args.player
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file
    return config


@contextmanager
def quit_on_signals(on_quit: Callable[[], None]) -> Iterator[None]:
    """Turn SIGINT/SIGTERM/SIGHUP into a clean quit for the block."""
    previous = {}

    def _handler(signum, frame):
        logger.info(f"Received signal {signum}, quitting")
        on_quit()

    for sig in QUIT_SIGNALS:
        previous[sig] = signal.signal(sig, _handler)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def play_music(files: List[Path], config: AppConfig, shuffle: bool = False) -> int:
    """Run an interactive session over the scanned files."""
    backends = detect_backends(config.audio_player)
    sink = ProcessSink(volume=config.volume)
    shared = SharedPlayerState()
    controller = PlaybackController(
        Playlist(files),
        sink,
        TrackDecoder(backends),
        shared,
        volume=config.volume,
        shuffle=shuffle,
        volume_step=config.volume_step,
        seek_seconds=config.seek_seconds,
        tick_interval=config.tick_interval,
    )

    with Terminal() as terminal:
        renderer = Renderer(shared.reader(), FrameWriter(terminal.stdout), config.use_colors)
        dispatcher = InputDispatcher(terminal, timeout=config.poll_timeout)
        console_level = quiet_console()
        try:
            with quit_on_signals(controller.quit):
                controller.run(dispatcher, renderer, frame_interval=config.frame_interval)
        finally:
            restore_console(console_level)
            terminal.write(CLEAR_SCREEN)

    print("  Goodbye!")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    apply_arguments(config, args)
    setup_logging(config.log_level, config.log_file)
    config.reset_invalid()

    try:
        files = scan_music_files(args.directory)
    except FilesystemError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        return play_music(files, config, shuffle=args.shuffle)
    except AudixError as e:
        logger.debug("Playback failed", exc_info=True)
        print(f"Playback error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
