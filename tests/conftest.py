import logging
import random
import tempfile
import pytest
from pathlib import Path

from audix.logging_config import DecodeFailed, TrackOpenFailed
from audix.playlist import Playlist
from audix.state import SharedPlayerState
from audix.controller import PlaybackController


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging() during a test."""
    yield
    logger = logging.getLogger('audix')
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True


@pytest.fixture
def temp_music_dir():
    """Create a temporary music directory with test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        music_dir = Path(tmpdir) / "music"
        music_dir.mkdir()

        (music_dir / "subdir").mkdir()

        (music_dir / "test1.mp3").touch()
        (music_dir / "test2.flac").touch()
        (music_dir / "test3.ogg").touch()
        (music_dir / "test4.txt").touch()

        (music_dir / "subdir" / "nested.mp3").touch()

        yield music_dir


class FakeSink:
    """Records sink commands; is_empty() is driven by the test."""

    def __init__(self):
        self.calls = []
        self.queue = []
        self.volume = None
        self.playing = True
        self.restart_fails = False

    def append(self, stream):
        self.calls.append(("append", stream))
        self.queue.append(stream)

    def play(self):
        self.calls.append(("play",))
        self.playing = True

    def pause(self):
        self.calls.append(("pause",))
        self.playing = False

    def stop(self):
        self.calls.append(("stop",))
        self.queue.clear()

    def _restart(self):
        """Fail like a player that cannot be relaunched, dropping the stream."""
        if self.restart_fails and self.queue:
            stream = self.queue.pop(0)
            raise TrackOpenFailed(stream.path, "failed to start player")

    def set_volume(self, level):
        self.calls.append(("set_volume", level))
        self.volume = level
        self._restart()

    def seek(self, position):
        self.calls.append(("seek", position))
        self._restart()
        return True

    def is_empty(self):
        return not self.queue

    def finish(self):
        """Pretend the current track played to its end."""
        self.queue.clear()

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


class FakeDecoder:
    """Opens every track except the ones listed as broken."""

    def __init__(self, broken=()):
        self.broken = set(broken)
        self.opened = []

    def open(self, track):
        self.opened.append(track.name)
        if track.name in self.broken:
            raise DecodeFailed(track.path, "unrecognised audio data")
        return track


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def decoder():
    return FakeDecoder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def shared_state():
    return SharedPlayerState()


@pytest.fixture
def make_controller(sink, decoder, clock, shared_state):
    """Build a controller over named tracks, e.g. make_controller("A.mp3", "B.mp3")."""

    def _make(*names, **kwargs):
        names = names or ("A.mp3", "B.mp3", "C.mp3")
        playlist = Playlist(Path("/music") / name for name in names)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("rng", random.Random(1234))
        return PlaybackController(playlist, sink, decoder, shared_state, **kwargs)

    return _make
