"""ChapterPulse — analytics aggregation engine for chapter management dashboards."""

__version__ = "0.1.0"
