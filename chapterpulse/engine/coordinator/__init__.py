"""Load coordination: immutable analytics state, its reducer, and the async loader."""

from .loader import LoadCoordinator
from .state import AnalyticsState, Pagination, initial_state, reduce

__all__ = ["AnalyticsState", "LoadCoordinator", "Pagination", "initial_state", "reduce"]
