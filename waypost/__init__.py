"""Waypost - GPS navigation file format detection and conversion."""

__version__ = "1.0.0"
__description__ = "Detect, read and convert GPS navigation files between formats"

from waypost.cli import app, main

__all__ = ["app", "main", "__version__"]
