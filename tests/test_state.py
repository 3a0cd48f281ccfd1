import threading
import pytest

from audix.logging_config import StateError
from audix.state import DEFAULT_VOLUME, PlayerState, SharedPlayerState


class TestPlayerState:
    """Tests for PlayerState dataclass."""

    def test_player_state_defaults(self):
        """Test PlayerState default values."""
        state = PlayerState()

        assert state.current_track == 0
        assert state.track_name == ""
        assert state.is_playing is False
        assert state.volume == DEFAULT_VOLUME == 0.7
        assert state.position == 0.0
        assert state.duration == 0.0
        assert state.total_tracks == 0
        assert state.shuffle is False

    def test_validate_clean_state(self):
        """Test a default state has no issues."""
        assert PlayerState().validate() == []

    def test_validate_volume_bounds(self):
        """Test volume bounds validation."""
        assert "Volume out of bounds" in PlayerState(volume=1.5).validate()
        assert "Volume out of bounds" in PlayerState(volume=-0.1).validate()

    def test_validate_position_bounds(self):
        """Test position past the duration is reported."""
        issues = PlayerState(position=200.0, duration=180.0).validate()

        assert "Position out of bounds" in issues

    def test_validate_track_index(self):
        """Test track index validation."""
        issues = PlayerState(current_track=3, total_tracks=3).validate()

        assert "Current track index out of bounds" in issues


class TestSharedPlayerState:
    """Tests for the lock-guarded shared state."""

    def test_single_writer(self):
        """Test only one writer handle can be issued."""
        shared = SharedPlayerState()
        shared.writer()

        with pytest.raises(StateError):
            shared.writer()

    def test_reader_cannot_write(self):
        """Test the reader handle has no mutating API."""
        reader = SharedPlayerState().reader()

        assert not hasattr(reader, "update")
        assert not hasattr(reader, "edit")

    def test_snapshot_is_a_copy(self):
        """Test mutating a snapshot does not leak into the shared state."""
        shared = SharedPlayerState()
        reader = shared.reader()

        snapshot = reader.snapshot()
        snapshot.track_name = "changed"

        assert reader.snapshot().track_name == ""

    def test_update_returns_new_snapshot(self):
        """Test update applies every field."""
        shared = SharedPlayerState()
        writer = shared.writer()

        result = writer.update(track_name="A.mp3", is_playing=True, current_track=2)

        assert result.track_name == "A.mp3"
        assert shared.reader().snapshot().current_track == 2

    def test_unknown_field_rejected(self):
        """Test typos in field names are caught."""
        writer = SharedPlayerState().writer()

        with pytest.raises(StateError):
            writer.update(trackname="oops")

    def test_readers_never_see_torn_updates(self):
        """Test concurrent readers only observe complete updates."""
        shared = SharedPlayerState()
        writer = shared.writer()
        reader = shared.reader()
        torn = []
        done = threading.Event()

        def read_loop():
            while not done.is_set():
                snap = reader.snapshot()
                if snap.track_name and snap.track_name != f"track{snap.current_track}":
                    torn.append(snap)

        thread = threading.Thread(target=read_loop)
        thread.start()
        try:
            for i in range(2000):
                with writer.edit() as state:
                    state.current_track = i
                    state.track_name = f"track{i}"
        finally:
            done.set()
            thread.join()

        assert torn == []
