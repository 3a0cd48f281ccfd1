"""
Audix - Terminal-based playlist music player.
"""

__version__ = "2.0.0"
__author__ = "Audix Team"
__description__ = "A terminal-based playlist music player with live keyboard controls."

from . import logging_config
from . import audio
from . import config
from . import controller
from . import playlist
from . import render
from . import scanner
from . import state
from . import terminal

from .audio import AudioBackend, AudioStream, ProcessSink, TrackDecoder, detect_backends
from .config import AppConfig, load_config
from .controller import PlaybackController, SessionState
from .playlist import Playlist, Track
from .scanner import scan_music_files
from .state import PlayerState, SharedPlayerState
from .terminal import Command

__all__ = [
    # Audio
    'AudioBackend',
    'AudioStream',
    'ProcessSink',
    'TrackDecoder',
    'detect_backends',

    # Playlist
    'Playlist',
    'Track',
    'scan_music_files',

    # State
    'PlayerState',
    'SharedPlayerState',

    # Controller
    'PlaybackController',
    'SessionState',
    'Command',

    # Config
    'AppConfig',
    'load_config',
]
