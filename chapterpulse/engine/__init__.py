"""
Analytics engine: category normalization, aggregations, diversity scoring,
semester reporting and the load coordinator.
"""

from .aggregation import (
    compute_category_breakdown,
    compute_event_analytics,
    compute_health_metrics,
    compute_house_points,
    compute_member_category_points,
    compute_member_performance,
    compute_member_points,
    compute_pledge_class_points,
)
from .categories import normalize_category
from .diversity import build_distribution, compute_diversity_metrics, simpson_index
from .semester_report import build_semester_report
from .views import DashboardViews

__all__ = [
    "DashboardViews",
    "build_distribution",
    "build_semester_report",
    "compute_category_breakdown",
    "compute_diversity_metrics",
    "compute_event_analytics",
    "compute_health_metrics",
    "compute_house_points",
    "compute_member_category_points",
    "compute_member_performance",
    "compute_member_points",
    "compute_pledge_class_points",
    "normalize_category",
    "simpson_index",
]
