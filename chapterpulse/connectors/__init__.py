"""Data source connectors for members, events and attendance."""

from .base import DataSource, FetchError
from .memory_source import MemorySource
from .supabase_source import SupabaseDataSource, build_source_from_settings

__all__ = [
    "DataSource",
    "FetchError",
    "MemorySource",
    "SupabaseDataSource",
    "build_source_from_settings",
]
