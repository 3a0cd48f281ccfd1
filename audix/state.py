"""
Shared player state for audix.

The controller is the only writer and the renderer only ever reads copies.
Both go through one lock, so a reader never sees a half-applied update.
"""
import threading
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Any, Iterator, List, Optional

from audix.logging_config import StateError, get_logger

logger = get_logger('state')

# Placeholder length for every track, there is no metadata probing
NOMINAL_DURATION: float = 180.0

DEFAULT_VOLUME: float = 0.7


@dataclass
class PlayerState:
    """Snapshot of what is playing right now."""

    current_track: int = 0
    track_name: str = ""
    is_playing: bool = False
    volume: float = DEFAULT_VOLUME
    position: float = 0.0
    duration: float = 0.0
    total_tracks: int = 0
    shuffle: bool = False
    status: str = ""

    def validate(self) -> List[str]:
        """Validate the snapshot and return a list of issues."""
        issues = []

        if not 0.0 <= self.volume <= 1.0:
            issues.append("Volume out of bounds")

        if self.position < 0 or (self.duration and self.position > self.duration):
            issues.append("Position out of bounds")

        if self.total_tracks and not 0 <= self.current_track < self.total_tracks:
            issues.append("Current track index out of bounds")

        if issues:
            logger.warning(f"State validation issues: {issues}")

        return issues


_FIELD_NAMES = frozenset(f.name for f in fields(PlayerState))


class StateReader:
    """Read-only handle on the shared state."""

    __slots__ = ('_shared',)

    def __init__(self, shared: "SharedPlayerState") -> None:
        self._shared = shared

    def snapshot(self) -> PlayerState:
        return self._shared._snapshot()


class StateWriter(StateReader):
    """The single handle allowed to mutate the shared state."""

    __slots__ = ()

    def update(self, **changes: Any) -> PlayerState:
        """Apply several field changes atomically and return the new snapshot."""
        with self.edit() as state:
            for key, value in changes.items():
                setattr(state, key, value)
        return self.snapshot()

    @contextmanager
    def edit(self) -> Iterator[PlayerState]:
        """Hold the lock while the caller mutates the live state."""
        with self._shared._lock:
            yield _GuardedState(self._shared._state)


class _GuardedState:
    """Proxy that rejects unknown attribute names."""

    __slots__ = ('_state',)

    def __init__(self, state: PlayerState) -> None:
        object.__setattr__(self, '_state', state)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._state, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in _FIELD_NAMES:
            raise StateError(f"Unknown player state field: {name}")
        setattr(self._state, name, value)


class SharedPlayerState:
    """Lock-guarded player state with one writer and any number of readers."""

    def __init__(self, initial: Optional[PlayerState] = None) -> None:
        self._lock = threading.Lock()
        self._state = initial or PlayerState()
        self._writer_issued = False

    def writer(self) -> StateWriter:
        """Return the writer handle. Can only be called once."""
        with self._lock:
            if self._writer_issued:
                raise StateError("Player state already has a writer")
            self._writer_issued = True
        return StateWriter(self)

    def reader(self) -> StateReader:
        return StateReader(self)

    def _snapshot(self) -> PlayerState:
        with self._lock:
            return replace(self._state)
