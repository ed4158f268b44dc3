"""File-format conversion core with an HTTP front end."""

__version__ = "1.0.0"
