"""
Utility functions for Waypost.

This module contains helpers for file naming and human-readable output used by
the CLI commands.
"""

from __future__ import annotations

import re
from pathlib import Path


def sanitize_filename(name: str) -> str:
    """
    Clean a string to be safe for use as a filename.

    Example:
        >>> sanitize_filename("Lost Horse Canyon / Trail")
        'Lost_Horse_Canyon_Trail'
    """
    if not name:
        return "Untitled"

    name = re.sub(r'[<>:"/\\|?*]', "_", name)
    name = name.replace(" ", "_")
    name = re.sub(r"_+", "_", name)
    name = name.strip("_")

    # 255 is a common filesystem limit, leave room for numbering and extensions
    if len(name) > 200:
        name = name[:200]

    return name or "Untitled"


def format_file_size(size_bytes: int) -> str:
    """
    Format a file size in bytes to a human-readable string (e.g. "2.4 MB", "156.0 KB").
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def ensure_output_dir(output_path: Path) -> Path:
    """Create the directory if missing and return its resolved absolute path."""
    output_path = Path(output_path).resolve()
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path
