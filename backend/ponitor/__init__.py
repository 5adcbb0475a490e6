"""Ponitor: status and cleanup of well-known local ports."""

__version__ = "0.1.0"
