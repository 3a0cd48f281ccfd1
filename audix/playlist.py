"""
Tracks and playlist orderings for audix.
"""
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from audix.logging_config import NoTracksFound, get_logger

logger = get_logger('playlist')


@dataclass(frozen=True)
class Track:
    """A playable audio file within a playlist."""

    path: Path

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Track":
        return cls(Path(path))

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def suffix(self) -> str:
        return self.path.suffix.lower()


class Playlist:
    """Ordered, non-empty sequence of tracks.

    The natural ordering (sorted by path) is kept for the whole session. The
    active ordering is either the natural one or a shuffled permutation of it.

    Attributes:
        natural: Tracks in natural order
        shuffled: Whether the active ordering is a permutation
    """

    def __init__(self, tracks: Iterable[Union[Track, str, Path]]) -> None:
        items = [t if isinstance(t, Track) else Track.from_path(t) for t in tracks]
        if not items:
            raise NoTracksFound("A playlist needs at least one track")
        self.natural: List[Track] = sorted(items, key=lambda t: t.path)
        self._tracks: List[Track] = list(self.natural)
        self.shuffled: bool = False

    def __len__(self) -> int:
        return len(self._tracks)

    def __getitem__(self, index: int) -> Track:
        return self._tracks[index]

    def __iter__(self) -> Iterator[Track]:
        return iter(self._tracks)

    @property
    def tracks(self) -> List[Track]:
        """Copy of the active ordering."""
        return list(self._tracks)

    def index(self, track: Track) -> int:
        return self._tracks.index(track)

    def shuffle(self, rng: Optional[random.Random] = None,
                keep_first: Optional[Track] = None) -> None:
        """Replace the active ordering with a uniform random permutation.

        Args:
            rng: Random source (module level random when omitted)
            keep_first: Track to relocate to position 0 after permuting
        """
        rng = rng or random.Random()
        rng.shuffle(self._tracks)
        if keep_first is not None:
            self._tracks.remove(keep_first)
            self._tracks.insert(0, keep_first)
        self.shuffled = True
        logger.debug(f"Playlist shuffled, first track: {self._tracks[0].name}")

    def restore_natural(self) -> None:
        """Switch back to the natural ordering."""
        self._tracks = list(self.natural)
        self.shuffled = False
        logger.debug("Playlist restored to natural order")
