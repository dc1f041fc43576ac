"""CLI command modules for Waypost."""
