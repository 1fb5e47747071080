"""Capture and restore editor working context across sessions."""

__version__ = "0.1.0"

__all__ = ["__version__"]
