"""
Picker configuration loaded from JSON.

Every key is optional. A key with an invalid value logs a warning and keeps its
default; an unreadable file logs a warning and yields the defaults.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .. import const
from ..paths import CONFIG_FILE

logger = logging.getLogger(__name__)


@dataclass
class PickerConfig:
    """Display and timing settings for the picker."""

    display_name: str = const.DISPLAY_NAME
    scan_fps: int = const.SCAN_FPS
    scan_frames: List[str] = field(default_factory=lambda: list(const.SCAN_FRAMES))
    connecting_fps: int = const.CONNECTING_FPS
    connecting_frames: List[str] = field(default_factory=lambda: list(const.CONNECTING_FRAMES))
    icons_open: List[str] = field(default_factory=lambda: list(const.ICONS_OPEN))
    icons_psk: List[str] = field(default_factory=lambda: list(const.ICONS_PSK))
    connected_label: str = const.CONNECTED_LABEL
    status_markup: str = const.STATUS_MARKUP
    rescan_interval: float = const.RESCAN_INTERVAL  # seconds
    scan_timeout: Optional[float] = const.SCAN_TIMEOUT  # seconds, None = unbounded
    connect_timeout: Optional[float] = const.CONNECT_TIMEOUT  # seconds, None = unbounded

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PickerConfig":
        config = cls()
        for key, value in data.items():
            parser = _PARSERS.get(key)
            if parser is None:
                logger.warning(f"Unknown config key '{key}', ignoring")
                continue
            try:
                setattr(config, key, parser(value))
            except (TypeError, ValueError) as e:
                logger.warning(f"Invalid value for '{key}': {e}, using default")
        return config


def _parse_text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _parse_fps(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    if not const.MIN_FPS <= value <= const.MAX_FPS:
        raise ValueError(f"{value} outside {const.MIN_FPS}..{const.MAX_FPS}")
    return value


def _parse_frames(value: Any) -> List[str]:
    if not isinstance(value, list) or not value:
        raise ValueError("expected a non-empty list of strings")
    return [_parse_text(frame) for frame in value]


def _parse_icons(value: Any) -> List[str]:
    """Five icons, strongest signal first; only the first character of each is used."""
    if not isinstance(value, list) or len(value) != len(const.ICONS_OPEN):
        raise ValueError(f"expected a list of {len(const.ICONS_OPEN)} icons")
    icons = []
    for icon in value:
        if not _parse_text(icon):
            raise ValueError("icons must not be empty")
        icons.append(icon[0])
    return icons


def _parse_markup(value: Any) -> str:
    if "{text}" not in _parse_text(value):
        raise ValueError("markup template must contain {text}")
    return value


def _parse_interval(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{value} must be positive")
    return float(value)


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    return _parse_interval(value)


_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "display_name": _parse_text,
    "scan_fps": _parse_fps,
    "scan_frames": _parse_frames,
    "connecting_fps": _parse_fps,
    "connecting_frames": _parse_frames,
    "icons_open": _parse_icons,
    "icons_psk": _parse_icons,
    "connected_label": _parse_text,
    "status_markup": _parse_markup,
    "rescan_interval": _parse_interval,
    "scan_timeout": _parse_timeout,
    "connect_timeout": _parse_timeout,
}


def load_config(path: Optional[Union[str, Path]] = None) -> PickerConfig:
    """Load picker settings from `path` (default: the user config file)."""
    config_path = Path(path) if path else CONFIG_FILE
    try:
        if config_path.exists():
            with open(config_path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
            logger.info(f"Loaded config from {config_path}")
            return PickerConfig.from_dict(data)
    except Exception as e:
        logger.warning(f"Failed to load config: {e}, using defaults")

    return PickerConfig()
