"""
Configuration management for audix.
"""
import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from audix.logging_config import ConfigurationError, get_logger

logger = get_logger('config')

DEFAULT_CONFIG: str = """# audix configuration

[playback]
# Starting volume, 0.0 to 1.0
volume = 0.7
# Volume change per key press
volume_step = 0.05
# Seconds moved by the left/right arrows
seek_seconds = 10
# auto, mpg123, ffplay or aplay
audio_player = "auto"

[ui]
use_colors = true
# Seconds to wait for a key press per loop iteration
poll_timeout = 0.05
# Pause at the end of every loop iteration
frame_interval = 0.05
# How often the displayed position advances
tick_interval = 1.0

[logging]
level = "WARNING"
# file = "~/.local/state/audix/audix.log"
"""

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
AUDIO_PLAYERS = ("auto", "mpg123", "ffplay", "aplay")

# TOML section/key -> AppConfig attribute
_SECTIONS: Dict[str, Dict[str, str]] = {
    "playback": {
        "volume": "volume",
        "volume_step": "volume_step",
        "seek_seconds": "seek_seconds",
        "audio_player": "audio_player",
    },
    "ui": {
        "use_colors": "use_colors",
        "poll_timeout": "poll_timeout",
        "frame_interval": "frame_interval",
        "tick_interval": "tick_interval",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
    },
}


@dataclass
class AppConfig:
    """Application configuration settings."""

    # Playback
    volume: float = 0.7
    volume_step: float = 0.05
    seek_seconds: float = 10.0
    audio_player: str = "auto"

    # UI and loop timing
    use_colors: bool = True
    poll_timeout: float = 0.05
    frame_interval: float = 0.05
    tick_interval: float = 1.0

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    def _problems(self) -> Dict[str, str]:
        problems = {}

        if not 0.0 <= self.volume <= 1.0:
            problems["volume"] = f"Volume must be 0.0-1.0, got {self.volume}"

        if not 0.0 < self.volume_step <= 0.5:
            problems["volume_step"] = f"Volume step must be 0.01-0.5, got {self.volume_step}"

        if not 1 <= self.seek_seconds <= 60:
            problems["seek_seconds"] = f"Seek seconds must be 1-60, got {self.seek_seconds}"

        if self.audio_player not in AUDIO_PLAYERS:
            problems["audio_player"] = f"Invalid audio player: {self.audio_player}"

        if not 0.0 < self.poll_timeout <= 0.5:
            problems["poll_timeout"] = f"Poll timeout must be 0-0.5s, got {self.poll_timeout}"

        if not 0.0 <= self.frame_interval <= 0.5:
            problems["frame_interval"] = f"Frame interval must be 0-0.5s, got {self.frame_interval}"

        if self.tick_interval <= 0:
            problems["tick_interval"] = f"Tick interval must be positive, got {self.tick_interval}"

        if self.log_level.upper() not in LOG_LEVELS:
            problems["log_level"] = f"Invalid log level: {self.log_level}"

        return problems

    def validate(self) -> List[str]:
        """Validate the configuration and return a list of issues."""
        issues = list(self._problems().values())
        if issues:
            logger.warning(f"Configuration validation issues: {issues}")
        return issues

    def reset_invalid(self) -> List[str]:
        """Put every out-of-range setting back to its default.

        Returns:
            Names of the settings that were reset
        """
        defaults = {f.name: f.default for f in fields(self)}
        problems = self._problems()
        for name, issue in problems.items():
            logger.warning(f"{issue}; using {defaults[name]!r}")
            setattr(self, name, defaults[name])
        return list(problems)


def get_config_dir() -> Path:
    """Get the configuration directory following the XDG base directory layout.

    Returns:
        Path to the config directory (~/.config/audix by default)
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "audix"
    return Path.home() / ".config" / "audix"


def default_config_path() -> Path:
    return get_config_dir() / "config.toml"


def init_config(config_file: Path) -> bool:
    """Write the default config file if it doesn't exist.

    Returns:
        True if config was created, False if it already existed
    """
    if config_file.exists():
        return False
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(DEFAULT_CONFIG)
    except OSError as e:
        logger.warning(f"Failed to create default config: {e}")
        return False
    logger.info(f"Created default config at {config_file}")
    return True


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Convert a TOML value to the type of the dataclass default."""
    if name == "log_file":
        if value is None or isinstance(value, str):
            return value
        raise TypeError(f"expected a string, got {type(value).__name__}")
    if name == "log_level":
        if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
            raise ValueError(f"expected one of {', '.join(LOG_LEVELS)}")
        return value.upper()
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise TypeError(f"expected true/false, got {value!r}")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"expected a number, got {value!r}")
        return float(value)
    if isinstance(default, str):
        if not isinstance(value, str):
            raise TypeError(f"expected a string, got {value!r}")
        return value
    return value


def apply_config_data(config: AppConfig, data: Dict[str, Any]) -> AppConfig:
    """Apply parsed TOML data to an AppConfig, skipping anything invalid."""
    defaults = {f.name: f.default for f in fields(AppConfig)}
    for section, values in data.items():
        keys = _SECTIONS.get(section)
        if keys is None or not isinstance(values, dict):
            logger.warning(f"Ignoring unknown config section: [{section}]")
            continue
        for key, value in values.items():
            attr = keys.get(key)
            if attr is None:
                logger.warning(f"Ignoring unknown config key: {section}.{key}")
                continue
            try:
                setattr(config, attr, _coerce(attr, value, defaults[attr]))
            except (TypeError, ValueError) as e:
                logger.warning(f"Invalid config value for {section}.{key}: {value} ({e})")
    return config


def load_config(config_path: Optional[Path] = None, create: bool = True) -> AppConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path of the TOML file, XDG location when omitted
        create: Write a default file when none exists

    Raises:
        ConfigurationError: The file exists but is not valid TOML
    """
    config = AppConfig()
    path = Path(config_path).expanduser() if config_path else default_config_path()

    if not path.exists():
        if create:
            init_config(path)
        else:
            logger.info(f"Config file not found at {path}, using defaults")
        return config

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e
    except OSError as e:
        logger.error(f"Failed to load config: {e}")
        logger.info("Using default configuration")
        return config

    apply_config_data(config, data)
    logger.info(f"Loaded configuration from {path}")
    return config
