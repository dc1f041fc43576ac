"""Utility modules for Waypost."""
