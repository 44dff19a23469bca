"""
Category Normalizer — free-text point types to canonical categories.

Event creators type whatever they like into the point-type field ("Brotherhood
Mixer", "brotherhood", "Health & Wellness Walk"). Aggregations merge those into
the seven canonical categories by substring rules checked in a fixed priority
order; the first rule that matches wins. Labels that match nothing are kept as
their own category so custom event types still show up, unmerged.
"""

from typing import Optional

from chapterpulse.models.enums import CanonicalCategory

CANONICAL_CATEGORIES: tuple[str, ...] = tuple(c.value for c in CanonicalCategory)

UNCATEGORIZED = "Uncategorized"

# Priority order is load-bearing: "Diversity Fundraiser" must land in
# Fundraising and "Service Scholarship Drive" in Scholarship.
CATEGORY_RULES: tuple[tuple[tuple[str, ...], CanonicalCategory], ...] = (
    (("brother",), CanonicalCategory.BROTHERHOOD),
    (("scholar",), CanonicalCategory.SCHOLARSHIP),
    (("h&w", "health", "wellness"), CanonicalCategory.HEALTH_WELLNESS),
    (("fund",), CanonicalCategory.FUNDRAISING),
    (("dei", "diversity"), CanonicalCategory.DEI),
    (("professional",), CanonicalCategory.PROFESSIONALISM),
    (("service",), CanonicalCategory.SERVICE),
)


def normalize_category(raw_label: Optional[str]) -> str:
    """
    Map a free-text point type to its canonical category.

    Args:
        raw_label: Point type as typed by the event creator

    Returns:
        Canonical category name, the trimmed label itself when no rule
        matches, or "Uncategorized" for a missing/blank label

    Example:
        >>> normalize_category("BROTHER bonding")
        'Brotherhood'
        >>> normalize_category(" Intramurals ")
        'Intramurals'
    """
    label = (raw_label or "").strip()
    if not label:
        return UNCATEGORIZED

    lowered = label.lower()
    for needles, category in CATEGORY_RULES:
        if any(needle in lowered for needle in needles):
            return category.value
    return label


def is_canonical(label: str) -> bool:
    return label in CANONICAL_CATEGORIES
