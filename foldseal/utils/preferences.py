from dataclasses import dataclass, asdict, fields
import json
import logging
import os
import platform
from pathlib import Path
from typing import Optional, Union

from ..core.format_config import (
    CHARDET_CONFIDENCE_THRESHOLD,
    HEADER_READ_SIZE,
    MAX_FILE_SIZE,
    MAX_HEADER_BYTES,
    MAX_PREVIEW_FILE_SIZE,
    MAX_TEXT_EDIT_SIZE,
    MARKER_SIZE,
)

logger = logging.getLogger(__name__)

PREFERENCES_FILE = "preferences.json"

# Hard upper bound for any configurable size ceiling (1 GiB).
_SIZE_CEILING = 1024 * 1024 * 1024


def default_config_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("APPDATA") or str(Path.home())
        return Path(base) / "FoldSeal"
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / "FoldSeal"
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "foldseal"


def default_preferences_path() -> Path:
    return default_config_dir() / PREFERENCES_FILE


def _clamp_int(value, low: int, high: int, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


@dataclass
class Preferences:
    max_file_size: int = MAX_FILE_SIZE
    max_preview_file_size: int = MAX_PREVIEW_FILE_SIZE
    max_text_edit_size: int = MAX_TEXT_EDIT_SIZE
    header_read_size: int = HEADER_READ_SIZE
    max_header_bytes: int = MAX_HEADER_BYTES
    confidence_threshold: float = CHARDET_CONFIDENCE_THRESHOLD
    sort_entries: bool = False
    follow_symlinks: bool = False  # symlinks are never followed
    log_debug: bool = False

    def normalize(self) -> None:
        self.max_file_size = _clamp_int(self.max_file_size, 1, _SIZE_CEILING, MAX_FILE_SIZE)
        self.max_preview_file_size = _clamp_int(self.max_preview_file_size, 1, _SIZE_CEILING, MAX_PREVIEW_FILE_SIZE)
        self.max_text_edit_size = _clamp_int(self.max_text_edit_size, 1, _SIZE_CEILING, MAX_TEXT_EDIT_SIZE)
        self.max_header_bytes = _clamp_int(self.max_header_bytes, MARKER_SIZE + 2, _SIZE_CEILING, MAX_HEADER_BYTES)
        self.header_read_size = _clamp_int(self.header_read_size, MARKER_SIZE + 2, self.max_header_bytes, HEADER_READ_SIZE)

        try:
            threshold = float(self.confidence_threshold)
        except (TypeError, ValueError):
            threshold = CHARDET_CONFIDENCE_THRESHOLD
        self.confidence_threshold = min(1.0, max(0.0, threshold))

        self.sort_entries = self.sort_entries if isinstance(self.sort_entries, bool) else False
        self.log_debug = self.log_debug if isinstance(self.log_debug, bool) else False
        self.follow_symlinks = False

    def load_preferences(self, path: Optional[Union[str, Path]] = None) -> None:
        target = Path(path) if path is not None else default_preferences_path()
        known = {f.name for f in fields(self)}
        try:
            with open(target, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            # Could not load, use defaults
            logger.warning(f"Ignoring unreadable preferences file {target}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {target}")
            return
        for key, value in data.items():
            if key in known:
                setattr(self, key, value)
        self.normalize()

    def save_preferences(self, path: Optional[Union[str, Path]] = None) -> Path:
        target = Path(path) if path is not None else default_preferences_path()
        self.normalize()
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=4)
        return target


def load_preferences(path: Optional[Union[str, Path]] = None) -> Preferences:
    preferences = Preferences()
    preferences.load_preferences(path)
    return preferences
