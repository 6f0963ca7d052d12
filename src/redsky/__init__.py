"""Red Sky: turn application descriptions into optimization experiments."""

__version__ = "0.1.0"
