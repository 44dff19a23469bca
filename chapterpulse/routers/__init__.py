"""API routers for all endpoints."""

from chapterpulse.routers import analytics, system

__all__ = [
    "analytics",
    "system",
]
