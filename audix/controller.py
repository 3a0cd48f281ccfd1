"""
Playback session controller for audix.

The controller owns the playlist, the cursor and the audio sink. It is driven
by one cooperative loop; every iteration runs, in this order:

    advance-on-empty -> one input command -> position tick -> render -> sleep

so a command issued in one iteration is seen by the advance step of the next.
"""
import enum
import random
import time
from typing import Any, Callable, Dict, Optional, Protocol

from audix.logging_config import NoPlayableTracks, TrackError, get_logger
from audix.playlist import Playlist, Track
from audix.state import DEFAULT_VOLUME, NOMINAL_DURATION, SharedPlayerState
from audix.terminal import Command

logger = get_logger('controller')

VOLUME_STEP: float = 0.05
SEEK_SECONDS: float = 10.0
TICK_INTERVAL: float = 1.0
FRAME_INTERVAL: float = 0.05


class SessionState(enum.Enum):
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    EXHAUSTED = "exhausted"
    TERMINATING = "terminating"


class AudioSink(Protocol):
    """What the controller needs from an audio output."""

    def append(self, stream: Any) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def set_volume(self, level: float) -> None: ...

    def seek(self, position: float) -> bool: ...

    def is_empty(self) -> bool: ...


class Decoder(Protocol):
    """Turns a track into something the sink accepts."""

    def open(self, track: Track) -> Any: ...


def clamp_volume(level: float) -> float:
    return max(0.0, min(1.0, round(level, 2)))


class PlaybackController:
    """State machine behind a playback session.

    Attributes:
        playlist: Active playlist, owned by the controller
        cursor: Index of the next track to hand to the sink
        state: Current SessionState
        shuffle_enabled: Whether the shuffled ordering is active
        quit_requested: Set by the quit command, never cleared
    """

    def __init__(
        self,
        playlist: Playlist,
        sink: AudioSink,
        decoder: Decoder,
        shared_state: SharedPlayerState,
        volume: float = DEFAULT_VOLUME,
        shuffle: bool = False,
        volume_step: float = VOLUME_STEP,
        seek_seconds: float = SEEK_SECONDS,
        tick_interval: float = TICK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.playlist = playlist
        self.sink = sink
        self.decoder = decoder
        self.volume_step = volume_step
        self.seek_seconds = seek_seconds
        self.tick_interval = tick_interval

        self.cursor = 0
        self.state = SessionState.LOADING
        self.shuffle_enabled = shuffle
        self.quit_requested = False

        self._writer = shared_state.writer()
        self._clock = clock
        self._rng = rng or random.Random()
        self._reference: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._last_tick = clock()
        self._failures = 0

        if shuffle:
            self.playlist.shuffle(self._rng)

        volume = clamp_volume(volume)
        self.sink.set_volume(volume)
        self._writer.update(volume=volume, total_tracks=len(playlist), shuffle=shuffle)

        self._handlers: Dict[Command, Callable[[], None]] = {
            Command.TOGGLE_PAUSE: self.toggle_pause,
            Command.NEXT: self.next_track,
            Command.PREVIOUS: self.previous_track,
            Command.RESTART: self.restart_track,
            Command.VOLUME_UP: self.volume_up,
            Command.VOLUME_DOWN: self.volume_down,
            Command.SEEK_FORWARD: self.seek_forward,
            Command.SEEK_BACKWARD: self.seek_backward,
            Command.TOGGLE_SHUFFLE: self.toggle_shuffle,
            Command.QUIT: self.quit,
        }

    # -- advance-on-empty ----------------------------------------------------

    def advance(self) -> bool:
        """Open the track at the cursor if the sink has drained.

        Returns:
            True when a new track was handed to the sink
        """
        if self.quit_requested or not self.sink.is_empty():
            return False

        if self.cursor >= len(self.playlist):
            self.state = SessionState.EXHAUSTED
            logger.info("Playlist finished, starting over")
            self.cursor = 0

        self.state = SessionState.LOADING
        track = self.playlist[self.cursor]

        try:
            stream = self.decoder.open(track)
            self.sink.append(stream)
        except TrackError as e:
            self._failures += 1
            logger.warning(f"Skipping track {self.cursor + 1}: {e}")
            self._writer.update(status=f"Skipped {e}")
            self.cursor += 1
            if self._failures >= len(self.playlist):
                raise NoPlayableTracks("None of the tracks in the playlist could be played") from e
            return False

        self.sink.play()
        self._failures = 0
        self._reference = self._clock()
        self._paused_at = None
        self._writer.update(
            current_track=self.cursor,
            track_name=track.name,
            duration=NOMINAL_DURATION,
            position=0.0,
            is_playing=True,
            status="",
        )
        logger.info(f"Now playing [{self.cursor + 1}/{len(self.playlist)}]: {track.name}")
        self.cursor += 1
        self.state = SessionState.PLAYING
        return True

    # -- commands ------------------------------------------------------------

    def handle(self, command: Optional[Command]) -> None:
        """Apply one command against the current state."""
        if command is None:
            return
        logger.debug(f"Command: {command.value} (cursor={self.cursor}, state={self.state.value})")
        self._handlers[command]()

    def toggle_pause(self) -> None:
        if self.state not in (SessionState.PLAYING, SessionState.PAUSED):
            return
        now = self._clock()
        with self._writer.edit() as state:
            if state.is_playing:
                self.sink.pause()
                state.is_playing = False
                self._paused_at = now
                self.state = SessionState.PAUSED
            else:
                self.sink.play()
                state.is_playing = True
                if self._paused_at is not None and self._reference is not None:
                    self._reference += now - self._paused_at
                self._paused_at = None
                self.state = SessionState.PLAYING

    def _reload(self) -> None:
        self.sink.stop()
        self.state = SessionState.LOADING

    def next_track(self) -> None:
        self._reload()

    def previous_track(self) -> None:
        if self.cursor > 1:
            self.cursor -= 2
        elif self.cursor == 1:
            self.cursor = len(self.playlist) - 1
        else:
            return
        self._reload()

    def restart_track(self) -> None:
        if self.cursor == 0:
            return
        self.cursor -= 1
        self._reload()

    def _track_lost(self, error: TrackError) -> None:
        # The sink has dropped the stream; the next advance moves on
        logger.warning(f"Lost current track: {error}")
        self._reference = None
        self._paused_at = None
        self.state = SessionState.LOADING
        self._writer.update(is_playing=False, status=f"Skipped {error}")

    def _set_volume(self, level: float) -> None:
        level = clamp_volume(level)
        self._writer.update(volume=level)
        try:
            self.sink.set_volume(level)
        except TrackError as e:
            self._track_lost(e)

    def volume_up(self) -> None:
        self._set_volume(self._writer.snapshot().volume + self.volume_step)

    def volume_down(self) -> None:
        self._set_volume(self._writer.snapshot().volume - self.volume_step)

    def _seek(self, delta: float) -> None:
        if self._reference is None or self.state not in (SessionState.PLAYING, SessionState.PAUSED):
            return
        now = self._paused_at if self._paused_at is not None else self._clock()
        with self._writer.edit() as state:
            target = max(0.0, min(now - self._reference + delta, state.duration))
            self._reference = now - target
            state.position = target
        try:
            self.sink.seek(target)
        except TrackError as e:
            self._track_lost(e)

    def seek_forward(self) -> None:
        self._seek(self.seek_seconds)

    def seek_backward(self) -> None:
        self._seek(-self.seek_seconds)

    def audible_track(self) -> Track:
        """The track considered playing: the one before the cursor."""
        if self.cursor > 0:
            return self.playlist[self.cursor - 1]
        return self.playlist[0]

    def toggle_shuffle(self) -> None:
        audible = self.audible_track()
        if self.shuffle_enabled:
            # The cursor is left alone, so the next advance may jump
            self.playlist.restore_natural()
            self.shuffle_enabled = False
        else:
            self.playlist.shuffle(self._rng, keep_first=audible)
            self.cursor = 1
            self.shuffle_enabled = True
        self._writer.update(shuffle=self.shuffle_enabled,
                           current_track=self.playlist.index(audible))
        logger.info(f"Shuffle {'on' if self.shuffle_enabled else 'off'}")

    def quit(self) -> None:
        self.quit_requested = True
        self.state = SessionState.TERMINATING

    # -- position --------------------------------------------------------------

    def tick(self, force: bool = False) -> None:
        """Advance the displayed position once per tick interval."""
        now = self._clock()
        if not force and now - self._last_tick < self.tick_interval:
            return
        self._last_tick = now
        if self._reference is None:
            return
        with self._writer.edit() as state:
            if state.is_playing:
                state.position = min(now - self._reference, state.duration)

    # -- loop ------------------------------------------------------------------

    def shutdown(self) -> None:
        self.state = SessionState.TERMINATING
        self.sink.stop()
        self._writer.update(is_playing=False)

    def run(self, dispatcher, renderer, frame_interval: float = FRAME_INTERVAL,
            sleep: Callable[[float], None] = time.sleep) -> None:
        """Drive the session until the quit command.

        Args:
            dispatcher: Object whose poll() returns a Command or None within a
                bounded wait
            renderer: Object whose refresh() draws the current state
            frame_interval: Sleep at the end of each iteration
            sleep: Sleep function
        """
        logger.info(f"Session started with {len(self.playlist)} tracks")
        try:
            while not self.quit_requested:
                self.advance()
                self.handle(dispatcher.poll())
                if self.quit_requested:
                    break
                self.tick()
                renderer.refresh()
                sleep(frame_interval)
        finally:
            self.shutdown()
            logger.info("Session ended")
