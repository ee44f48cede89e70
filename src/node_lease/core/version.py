"""Version information for node-lease."""

__version__ = "0.1.0"
