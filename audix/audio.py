"""
Audio processing module for audix.

Decoding and output are delegated to command line players. Every track runs
in its own process group so it can be paused, resumed and killed as a unit.
"""
import os
import shutil
import signal
import subprocess
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Sequence

from audix.logging_config import (
    AudioDeviceUnavailable,
    AudioPlayerError,
    DecodeFailed,
    TrackOpenFailed,
    get_logger,
)
from audix.playlist import Track

logger = get_logger('audio')

# mpg123 decodes in 1152 sample frames
MPG123_FRAMES_PER_SECOND: float = 44100 / 1152

# External command cache
_command_cache: Dict[str, Optional[str]] = {}


def _find_command(cmd: str) -> Optional[str]:
    """Find an external command in PATH with caching."""
    if cmd in _command_cache:
        return _command_cache[cmd]
    result = shutil.which(cmd)
    _command_cache[cmd] = result
    return result


def sniff_format(header: bytes) -> Optional[str]:
    """Identify the container of an audio file from its first bytes.

    Returns:
        One of "mp3", "wav", "flac", "ogg", "m4a", or None
    """
    if header.startswith(b"ID3"):
        return "mp3"
    if len(header) >= 2 and header[0] == 0xFF and (header[1] & 0xE0) == 0xE0:
        return "mp3"
    if header.startswith(b"RIFF") and header[8:12] == b"WAVE":
        return "wav"
    if header.startswith(b"fLaC"):
        return "flac"
    if header.startswith(b"OggS"):
        return "ogg"
    if header[4:8] == b"ftyp":
        return "m4a"
    return None


class AudioBackend:
    """Base class for command line audio players."""

    name = ""
    formats: frozenset = frozenset()
    can_seek = False
    has_volume = False

    def __init__(self, executable: str):
        self.executable = executable

    def supports(self, fmt: str) -> bool:
        return fmt in self.formats

    def command(self, path: str, volume: float, start: float = 0.0) -> List[str]:
        """Build the command line that plays a file."""
        raise NotImplementedError("Subclasses must implement command()")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.executable!r})"


class MPG123Backend(AudioBackend):
    """MPG123 audio player implementation."""

    name = "mpg123"
    formats = frozenset({"mp3"})
    can_seek = True
    has_volume = True

    def command(self, path: str, volume: float, start: float = 0.0) -> List[str]:
        cmd = [self.executable, "-q", "--no-control", "-f", str(int(volume * 32768))]
        if start > 0:
            cmd.extend(["-k", str(max(1, int(start * MPG123_FRAMES_PER_SECOND)))])
        cmd.append(path)
        return cmd


class FFPlayBackend(AudioBackend):
    """ffplay implementation, handles every supported container."""

    name = "ffplay"
    formats = frozenset({"mp3", "wav", "flac", "ogg", "m4a"})
    can_seek = True
    has_volume = True

    def command(self, path: str, volume: float, start: float = 0.0) -> List[str]:
        cmd = [
            self.executable, "-nodisp", "-autoexit", "-loglevel", "quiet",
            "-volume", str(int(round(volume * 100))),
        ]
        if start > 0:
            cmd.extend(["-ss", f"{start:.1f}"])
        cmd.append(path)
        return cmd


class APlayBackend(AudioBackend):
    """APLAY audio player implementation. WAV only, no volume or seeking."""

    name = "aplay"
    formats = frozenset({"wav"})

    def command(self, path: str, volume: float, start: float = 0.0) -> List[str]:
        return [self.executable, "-q", path]


BACKEND_TYPES = (MPG123Backend, FFPlayBackend, APlayBackend)


def detect_backends(preferred: str = "auto") -> List[AudioBackend]:
    """Detect installed audio players.

    Args:
        preferred: "auto" for every installed player in preference order, or
            the name of one player

    Raises:
        AudioDeviceUnavailable: No usable player is installed
        AudioPlayerError: Unknown player name
    """
    if preferred == "auto":
        candidates = BACKEND_TYPES
    else:
        candidates = tuple(b for b in BACKEND_TYPES if b.name == preferred)
        if not candidates:
            raise AudioPlayerError(f"Unsupported audio player: {preferred}")

    backends = []
    for backend_type in candidates:
        executable = _find_command(backend_type.name)
        if executable:
            backends.append(backend_type(executable))

    if not backends:
        names = ", ".join(b.name for b in candidates)
        raise AudioDeviceUnavailable(f"No supported audio player found ({names})")

    logger.info(f"Audio backends: {', '.join(b.name for b in backends)}")
    return backends


@dataclass(frozen=True)
class AudioStream:
    """A track that has been probed and matched with a backend."""

    track: Track
    format: str
    backend: AudioBackend


class TrackDecoder:
    """Opens tracks and decides which backend can render them."""

    HEADER_SIZE = 12

    def __init__(self, backends: Sequence[AudioBackend]):
        self.backends = list(backends)

    def open(self, track: Track) -> AudioStream:
        """Probe a track.

        Raises:
            TrackOpenFailed: The file cannot be read
            DecodeFailed: The data is not a supported container, or no
                installed backend can play it
        """
        try:
            with open(track.path, "rb") as f:
                header = f.read(self.HEADER_SIZE)
        except OSError as e:
            raise TrackOpenFailed(track.path, e.strerror or str(e)) from e

        if not header:
            raise DecodeFailed(track.path, "empty file")

        fmt = sniff_format(header)
        if fmt is None:
            raise DecodeFailed(track.path, "unrecognised audio data")

        for backend in self.backends:
            if backend.supports(fmt):
                return AudioStream(track, fmt, backend)

        raise DecodeFailed(track.path, f"no installed player can decode {fmt}")


class ProcessSink:
    """Audio sink that renders queued streams through player processes.

    All public methods are thread-safe.
    """

    def __init__(self, volume: float = 1.0):
        self._lock = threading.Lock()
        self._queue: Deque[AudioStream] = deque()
        self._process: Optional[subprocess.Popen] = None
        self._current: Optional[AudioStream] = None
        self._volume = max(0.0, min(1.0, volume))
        self._paused = False
        self._offset = 0.0
        self._started_at = 0.0
        self._paused_at: Optional[float] = None

    # -- queries -----------------------------------------------------------

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def paused(self) -> bool:
        return self._paused

    def is_empty(self) -> bool:
        """True once every appended stream finished or was stopped."""
        with self._lock:
            self._reap()
            while self._process is None and self._queue:
                try:
                    self._start_next()
                except TrackOpenFailed as e:
                    logger.warning(f"Dropping queued stream: {e}")
            return self._process is None and not self._queue

    def elapsed(self) -> float:
        """Seconds rendered of the current stream."""
        with self._lock:
            return self._elapsed()

    # -- commands ----------------------------------------------------------

    def append(self, stream: AudioStream) -> None:
        with self._lock:
            self._queue.append(stream)
            self._reap()
            if self._process is None:
                self._start_next()

    def play(self) -> None:
        with self._lock:
            if not self._paused:
                return
            self._paused = False
            if self._paused_at is not None:
                self._started_at += time.monotonic() - self._paused_at
                self._paused_at = None
            self._signal(signal.SIGCONT)

    def pause(self) -> None:
        with self._lock:
            if self._paused:
                return
            self._paused = True
            self._paused_at = time.monotonic()
            self._signal(signal.SIGSTOP)

    def stop(self) -> None:
        with self._lock:
            self._queue.clear()
            self._terminate()
            self._paused = False
            self._paused_at = None

    def set_volume(self, level: float) -> None:
        level = max(0.0, min(1.0, level))
        with self._lock:
            if level == self._volume:
                return
            self._volume = level
            if self._live() and self._current.backend.has_volume and self._current.backend.can_seek:
                # Player volume is fixed at launch, restart at the same spot
                self._respawn(self._elapsed())

    def seek(self, position: float) -> bool:
        """Restart the current stream at an absolute position in seconds."""
        with self._lock:
            if not self._live() or not self._current.backend.can_seek:
                return False
            self._respawn(max(0.0, position))
            return True

    def close(self) -> None:
        self.stop()

    # -- internals (lock held) --------------------------------------------

    def _live(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def _elapsed(self) -> float:
        if self._process is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else time.monotonic()
        return self._offset + (now - self._started_at)

    def _reap(self) -> None:
        if self._process is None or self._process.poll() is None:
            return
        code = self._process.returncode
        if code not in (0, -signal.SIGTERM, -signal.SIGKILL):
            logger.warning(f"{self._current.backend.name} exited with code {code} "
                           f"for {self._current.track.name}")
        self._process = None
        self._current = None

    def _start_next(self) -> None:
        stream = self._queue.popleft()
        self._current = stream
        self._paused = False
        self._paused_at = None
        self._spawn(0.0)

    def _spawn(self, start: float) -> None:
        stream = self._current
        cmd = stream.backend.command(str(stream.track.path), self._volume, start)
        try:
            self._process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                preexec_fn=os.setsid,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start {stream.backend.name}: {e}")
            self._process = None
            self._current = None
            raise TrackOpenFailed(stream.track.path, f"failed to start {stream.backend.name}: {e}") from e
        self._offset = start
        self._started_at = time.monotonic()
        logger.info(f"Started playback: {stream.track.path} ({stream.backend.name}, pid {self._process.pid})")

    def _respawn(self, start: float) -> None:
        was_paused = self._paused
        self._terminate(keep_current=True)
        self._spawn(start)
        if was_paused:
            self._paused_at = self._started_at
            self._signal(signal.SIGSTOP)

    def _signal(self, sig: int) -> None:
        if not self._live():
            return
        try:
            os.killpg(os.getpgid(self._process.pid), sig)
        except (ProcessLookupError, PermissionError) as e:
            logger.warning(f"Could not signal audio process {self._process.pid}: {e}")

    def _terminate(self, keep_current: bool = False) -> None:
        process = self._process
        if process is not None and process.poll() is None:
            try:
                pgid = os.getpgid(process.pid)
                os.killpg(pgid, signal.SIGTERM)
                if self._paused:
                    # A stopped process only sees SIGTERM once continued
                    os.killpg(pgid, signal.SIGCONT)
                process.wait(timeout=1.0)
                logger.debug(f"Stopped audio process: {process.pid}")
            except (ProcessLookupError, PermissionError) as e:
                logger.warning(f"Process termination error: {e}")
            except subprocess.TimeoutExpired:
                try:
                    os.killpg(os.getpgid(process.pid), signal.SIGKILL)
                    logger.warning(f"Force killed audio process: {process.pid}")
                    process.wait(timeout=0.5)
                except (ProcessLookupError, PermissionError, subprocess.TimeoutExpired) as e:
                    logger.warning(f"Force kill failed: {e}")
        self._process = None
        if not keep_current:
            self._current = None
