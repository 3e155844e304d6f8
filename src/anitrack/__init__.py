"""anitrack: personal anime tracking backend."""

__version__ = "0.3.0"
