"""
Configuration management for Waypost.

Settings live in a YAML file (`waypost_config.yaml` in the working directory by
default). Everything is optional; a missing file means built-in defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from waypost.core.registry import FormatRegistry

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = (Path("waypost_config.yaml"), Path("waypost_config.yml"))

_KNOWN_KEYS = frozenset(
    [
        "preferred_formats",
        "default_output_format",
        "duplicate_first_position",
        "ignore_maximum_position_count",
        "trace_file",
    ]
)


class WaypostConfig:
    """Reading and writing preferences with user overrides."""

    def __init__(self, config_file: Optional[Path] = None):
        self.preferred_formats: List[str] = []
        self.default_output_format = "gpx"
        self.duplicate_first_position = False
        self.ignore_maximum_position_count = False
        self.trace_file: Optional[Path] = None
        self.source: Optional[Path] = None

        if config_file and config_file.exists():
            self.load_user_config(config_file)

    def load_user_config(self, config_file: Path) -> None:
        """
        Load user configuration from YAML file. Format:

        preferred_formats: [itn, gpx]
        default_output_format: kml
        duplicate_first_position: false
        ignore_maximum_position_count: false
        trace_file: waypost_trace.jsonl

        Raises:
            ValueError: invalid YAML or values of the wrong type
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {config_file}: {e}")

        if user_config is None:
            user_config = {}
        if not isinstance(user_config, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping, got {type(user_config).__name__}")

        unknown = sorted(set(user_config) - _KNOWN_KEYS)
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {config_file}: {', '.join(unknown)}")

        if "preferred_formats" in user_config:
            preferred = user_config["preferred_formats"] or []
            if isinstance(preferred, str):
                preferred = [preferred]
            if not isinstance(preferred, list):
                raise ValueError(f"preferred_formats must be a list of format names in {config_file}")
            self.preferred_formats = [str(p) for p in preferred]

        if user_config.get("default_output_format"):
            self.default_output_format = str(user_config["default_output_format"])

        if "duplicate_first_position" in user_config:
            self.duplicate_first_position = bool(user_config["duplicate_first_position"])

        if "ignore_maximum_position_count" in user_config:
            self.ignore_maximum_position_count = bool(user_config["ignore_maximum_position_count"])

        if user_config.get("trace_file"):
            self.trace_file = Path(str(user_config["trace_file"]))

        self.source = config_file

    def validate(self, registry: FormatRegistry) -> None:
        """
        Raises:
            ValueError: a configured format name is not registered
        """
        names = list(self.preferred_formats) + [self.default_output_format]
        unknown = [n for n in names if registry.format_by_name(n) is None]
        if unknown:
            where = f" in {self.source}" if self.source else ""
            raise ValueError(f"Unknown format(s){where}: {', '.join(unknown)}")

    def get_config_summary(self) -> Dict[str, Any]:
        return {
            "source": str(self.source) if self.source else None,
            "preferred_formats": list(self.preferred_formats),
            "default_output_format": self.default_output_format,
            "duplicate_first_position": self.duplicate_first_position,
            "ignore_maximum_position_count": self.ignore_maximum_position_count,
            "trace_file": str(self.trace_file) if self.trace_file else None,
        }

    def export_template(self, output_path: Path) -> None:
        yaml_content = """# Waypost configuration
#
# Format names match `waypost formats` (name or file extension).

# Formats tried first when detecting the format of a file, before the ones
# preferred by the file extension.
preferred_formats: []

# Format used by `waypost convert` when --to is not given.
default_output_format: gpx

# Insert a copy of the first position before writing, for formats that define
# such a rule (TomTom itineraries treat the first position as current location).
duplicate_first_position: false

# Write all positions to one file even if the format allows fewer per file.
ignore_maximum_position_count: false

# JSON Lines trace of detection and writing, for debugging.
# trace_file: waypost_trace.jsonl
"""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(yaml_content)


def load_config(config_file: Optional[Path] = None) -> WaypostConfig:
    """
    Load configuration.

    Args:
        config_file: Optional path to user config file (.yaml or .yml).
                    If None, looks for 'waypost_config.yaml' in current directory.
    """
    if config_file is None:
        for candidate in DEFAULT_CONFIG_FILES:
            if candidate.exists():
                config_file = candidate
                break

    return WaypostConfig(config_file)
