"""Version information for memweave."""

__version__ = "0.1.0"
