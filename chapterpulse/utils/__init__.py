"""Utility modules for logging and request tracing."""

from chapterpulse.utils.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
