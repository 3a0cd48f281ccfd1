import io
import random

from audix.render import (
    FrameWriter,
    Icons,
    Renderer,
    VISUALIZER_BARS,
    draw_progress_bar,
    draw_visualizer,
    draw_volume_bar,
    format_duration,
    render_frame,
)
from audix.state import PlayerState, SharedPlayerState


class TestFormatting:
    """Tests for the small drawing helpers."""

    def test_format_duration(self):
        """Test MM:SS formatting."""
        assert format_duration(0) == "00:00"
        assert format_duration(59.9) == "00:59"
        assert format_duration(180) == "03:00"
        assert format_duration(-5) == "00:00"

    def test_progress_bar_halfway(self):
        """Test a half played track fills half the bar."""
        bar = draw_progress_bar(90, 180, width=10)

        assert bar == "━" * 5 + "─" * 5

    def test_progress_bar_clamped(self):
        """Test the ratio is clamped to 0..1."""
        assert draw_progress_bar(500, 180, width=10) == "━" * 10
        assert draw_progress_bar(-10, 180, width=10) == "─" * 10

    def test_progress_bar_without_duration(self):
        """Test an unknown duration draws an empty bar."""
        assert draw_progress_bar(30, 0, width=8) == "─" * 8

    def test_volume_bar(self):
        """Test the volume bar width and fill."""
        assert draw_volume_bar(0.7) == "█" * 14 + "░" * 6
        assert draw_volume_bar(0.95) == "█" * 19 + "░"
        assert draw_volume_bar(1.0) == "█" * 20
        assert draw_volume_bar(0.0) == "░" * 20

    def test_visualizer(self):
        """Test the visualizer uses only bar glyphs."""
        bars = draw_visualizer(30, rng=random.Random(1))

        assert len(bars) == 30
        assert set(bars) <= set(VISUALIZER_BARS)


class TestRenderFrame:
    """Tests for render_frame()."""

    def _state(self, **kwargs):
        values = dict(current_track=1, track_name="B.mp3", is_playing=True,
                      volume=0.7, position=65, duration=180, total_tracks=3)
        values.update(kwargs)
        return PlayerState(**values)

    def test_frame_contents(self):
        """Test the frame shows every section."""
        frame = render_frame(self._state(), colors=False, rng=random.Random(0))

        assert "Audix Music Player" in frame
        assert "Now Playing: B.mp3" in frame
        assert "01:05 / 03:00" in frame
        assert f"{Icons.PLAY} Track 2 of 3" in frame
        assert "Volume:" in frame and "70%" in frame
        assert "Controls:" in frame
        assert "\033[" not in frame

    def test_frame_is_deterministic_apart_from_visualizer(self):
        """Test the same snapshot and seed give the same frame."""
        state = self._state()

        first = render_frame(state, rng=random.Random(5))
        second = render_frame(state, rng=random.Random(5))

        assert first == second

    def test_paused_icon(self):
        """Test the status icon follows the playing flag."""
        frame = render_frame(self._state(is_playing=False), colors=False)

        assert f"{Icons.PAUSE} Track 2 of 3" in frame

    def test_shuffle_marker(self):
        """Test shuffle mode is shown."""
        assert "shuffle" in render_frame(self._state(shuffle=True), colors=False)
        assert "shuffle" not in render_frame(self._state(shuffle=False), colors=False).split("Controls")[0]

    def test_status_message(self):
        """Test the last error is shown."""
        frame = render_frame(self._state(status="Skipped bad.mp3: empty file"), colors=False)

        assert "Skipped bad.mp3: empty file" in frame

    def test_colors(self):
        """Test colored output contains escape codes."""
        assert "\033[36m" in render_frame(self._state(), colors=True)


class TestRenderer:
    """Tests for Renderer and FrameWriter."""

    class BrokenStream(io.StringIO):
        def write(self, text):
            raise BrokenPipeError("terminal went away")

    def test_refresh_writes_frame(self):
        """Test a frame is written after clearing the screen."""
        shared = SharedPlayerState()
        shared.writer().update(track_name="A.mp3", total_tracks=1)
        out = io.StringIO()
        renderer = Renderer(shared.reader(), FrameWriter(out), colors=False)

        assert renderer.refresh() is True
        assert out.getvalue().startswith(FrameWriter.CLEAR)
        assert "Now Playing: A.mp3" in out.getvalue()

    def test_failed_write_skips_frame(self):
        """Test an output error is reported and not raised."""
        renderer = Renderer(SharedPlayerState().reader(), FrameWriter(self.BrokenStream()))

        assert renderer.refresh() is False
        assert renderer.refresh() is False
        assert renderer.dropped == 2
