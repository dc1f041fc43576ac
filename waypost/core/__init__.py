"""Core functionality modules for Waypost."""

__all__ = [
    "parser",
    "registry",
    "resolver",
    "trial",
    "writer",
    "stream",
    "config",
    "trace",
]
