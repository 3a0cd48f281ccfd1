import os
import pytest
from pathlib import Path

from audix.logging_config import (
    DirectoryNotFound,
    DirectoryUnreadable,
    NoTracksFound,
    NotADirectory,
)
from audix.scanner import AUDIO_EXTENSIONS, is_audio_file, scan_music_files


class TestScanMusicFiles:
    """Tests for scan_music_files() function."""

    def test_scan_directory_with_files(self, temp_music_dir):
        """Test scanning directory with audio files."""
        files = scan_music_files(temp_music_dir)

        names = [path.name for path in files]

        assert "test1.mp3" in names
        assert "test2.flac" in names
        assert "test3.ogg" in names

    def test_scan_filters_non_audio_files(self, temp_music_dir):
        """Test that non-audio files are filtered out."""
        files = scan_music_files(temp_music_dir)

        assert "test4.txt" not in [path.name for path in files]

    def test_scan_includes_nested_files(self, temp_music_dir):
        """Test that files in subdirectories are included."""
        files = scan_music_files(temp_music_dir)

        assert temp_music_dir / "subdir" / "nested.mp3" in files

    def test_scan_returns_exactly_supported_files_sorted(self, temp_music_dir):
        """Test the result is exactly the audio files, sorted by path."""
        files = scan_music_files(temp_music_dir)

        expected = sorted([
            temp_music_dir / "test1.mp3",
            temp_music_dir / "test2.flac",
            temp_music_dir / "test3.ogg",
            temp_music_dir / "subdir" / "nested.mp3",
        ])
        assert files == expected

    def test_scan_extension_is_case_insensitive(self, temp_music_dir):
        """Test upper-case extensions are accepted."""
        (temp_music_dir / "LOUD.WAV").touch()
        (temp_music_dir / "Mixed.M4a").touch()

        names = [path.name for path in scan_music_files(temp_music_dir)]

        assert "LOUD.WAV" in names
        assert "Mixed.M4a" in names

    def test_scan_empty_directory(self, temp_music_dir):
        """Test scanning an empty directory."""
        empty_dir = temp_music_dir / "empty"
        empty_dir.mkdir()

        with pytest.raises(NoTracksFound):
            scan_music_files(empty_dir)

    def test_scan_only_unsupported_files(self, temp_music_dir):
        """Test a directory without audio files."""
        docs = temp_music_dir / "docs"
        docs.mkdir()
        (docs / "notes.txt").touch()
        (docs / "cover.jpg").touch()

        with pytest.raises(NoTracksFound):
            scan_music_files(docs)

    def test_scan_nonexistent_directory(self):
        """Test scanning a nonexistent directory."""
        with pytest.raises(DirectoryNotFound):
            scan_music_files(Path("/nonexistent/path"))

    def test_scan_file_instead_of_directory(self, temp_music_dir):
        """Test scanning a regular file."""
        with pytest.raises(NotADirectory):
            scan_music_files(temp_music_dir / "test1.mp3")

    @pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0,
                        reason="root can read any directory")
    def test_scan_unreadable_top_level(self, temp_music_dir):
        """Test an unreadable top-level directory is fatal."""
        locked = temp_music_dir / "locked"
        locked.mkdir()
        (locked / "song.mp3").touch()
        locked.chmod(0)
        try:
            with pytest.raises(DirectoryUnreadable):
                scan_music_files(locked)
        finally:
            locked.chmod(0o755)

    @pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0,
                        reason="root can read any directory")
    def test_scan_skips_unreadable_subdirectory(self, temp_music_dir):
        """Test an unreadable subdirectory does not abort the scan."""
        locked = temp_music_dir / "locked"
        locked.mkdir()
        (locked / "hidden.mp3").touch()
        locked.chmod(0)
        try:
            names = [path.name for path in scan_music_files(temp_music_dir)]
        finally:
            locked.chmod(0o755)

        assert "hidden.mp3" not in names
        assert "test1.mp3" in names

    def test_scan_does_not_follow_directory_symlinks(self, temp_music_dir):
        """Test a symlink loop does not recurse forever."""
        (temp_music_dir / "subdir" / "loop").symlink_to(temp_music_dir)

        files = scan_music_files(temp_music_dir)

        assert len(files) == 4

    def test_top_level_entries_follow_nested_rules(self, temp_music_dir, tmp_path):
        """Test symlinks at the top level are treated like nested ones."""
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        (elsewhere / "outside.mp3").touch()
        (temp_music_dir / "linked_dir").symlink_to(elsewhere)
        (temp_music_dir / "linked.mp3").symlink_to(elsewhere / "outside.mp3")
        (temp_music_dir / "subdir" / "nested_link.mp3").symlink_to(elsewhere / "outside.mp3")

        names = [path.name for path in scan_music_files(temp_music_dir)]

        assert "outside.mp3" not in names
        assert "linked.mp3" in names
        assert "nested_link.mp3" in names
        assert len(names) == 6


class TestIsAudioFile:
    """Tests for is_audio_file() function."""

    def test_supported_extensions(self):
        """Test every supported extension is recognised."""
        for ext in AUDIO_EXTENSIONS:
            assert is_audio_file(f"/music/song{ext}")

    def test_unsupported_extensions(self):
        """Test other files are rejected."""
        assert not is_audio_file("/music/song.aac")
        assert not is_audio_file("/music/readme")
        assert not is_audio_file("/music/mp3")
