"""
Diversity Engine — demographic distributions, Simpson index and insights.

Builds one distribution per self-reported demographic field, scores the
chapter with a weighted Simpson's Diversity Index across four dimensions, and
turns the results into plain-language recruitment insights.

Scoring:
    simpson = (1 - sum(p_i^2)) * 100, p_i = count_i / sum(count)
    diversity_score = 0.25*gender + 0.35*race + 0.20*orientation + 0.20*majors
"""

from datetime import date
from typing import Optional, Sequence

import structlog

from chapterpulse.models.analytics import DistributionEntry, DiversityMetrics
from chapterpulse.models.records import Member

logger = structlog.get_logger()

NOT_SPECIFIED = "Not Specified"

DIVERSITY_WEIGHTS = {
    "gender": 0.25,
    "race": 0.35,
    "sexual_orientation": 0.20,
    "majors": 0.20,
}

# Top-bucket share (percent) above which a concentration insight is emitted
CONCENTRATION_THRESHOLDS = {
    "gender": 70.0,
    "race": 60.0,
    "majors": 40.0,
}

# (lower bound exclusive, message), checked top-down
SCORE_TIERS = [
    (70.0, "Excellent diversity across multiple dimensions"),
    (50.0, "Good diversity - continue inclusive recruitment"),
    (30.0, "Moderate diversity - consider DEI initiatives"),
]
LOW_DIVERSITY_MESSAGE = "Low diversity - prioritize inclusive recruitment strategies"


def _field_values(member: Member, field: str, multi_valued: bool) -> list[str]:
    value = getattr(member, field, None)
    if value is None or value == "":
        return [NOT_SPECIFIED]
    if multi_valued and isinstance(value, str):
        # A member listing the same major twice still counts once
        parts = list(dict.fromkeys(p.strip() for p in value.split(",") if p.strip()))
        return parts or [NOT_SPECIFIED]
    return [str(value)]


def build_distribution(
    members: Sequence[Member],
    field: str,
    multi_valued: bool = False,
) -> list[DistributionEntry]:
    """
    Count members per value of a demographic field.

    Args:
        members: Loaded members
        field: Member attribute name, e.g. "gender" or "majors"
        multi_valued: Split comma-separated values and count each one

    Returns:
        Entries sorted by count descending (ties keep first-seen order).
        Percentages are relative to the member total, so multi-valued
        distributions can sum past 100.
    """
    total = len(members)
    counts: dict[str, int] = {}
    for member in members:
        for label in _field_values(member, field, multi_valued):
            counts[label] = counts.get(label, 0) + 1

    entries = [
        DistributionEntry(
            label=label,
            count=count,
            percentage=min(100.0, count / total * 100) if total else 0.0,
        )
        for label, count in counts.items()
    ]
    entries.sort(key=lambda e: e.count, reverse=True)
    return entries


def _graduation_sort_key(entry: DistributionEntry) -> tuple[int, int]:
    if entry.label.lstrip("-").isdigit():
        return (0, int(entry.label))
    return (1, 0)


def simpson_index(distribution: Sequence[DistributionEntry]) -> float:
    """
    Simpson's Diversity Index on a 0-100 scale.

    Example:
        >>> round(simpson_index([DistributionEntry(label="A", count=8, percentage=80),
        ...                      DistributionEntry(label="B", count=2, percentage=20)]), 1)
        32.0
    """
    total = sum(entry.count for entry in distribution)
    if total <= 0:
        return 0.0
    concentration = sum((entry.count / total) ** 2 for entry in distribution)
    return max(0.0, min(100.0, (1 - concentration) * 100))


def generate_insights(
    members: Sequence[Member],
    distributions: dict[str, list[DistributionEntry]],
    diversity_score: float,
    today: date,
) -> list[str]:
    """
    Recruitment insights in display order.

    Concentration warnings (gender, race, majors), the living-type plurality,
    an upcoming-graduation count, then exactly one overall tier message.
    """
    insights: list[str] = []

    gender = distributions["gender"]
    if gender and gender[0].percentage > CONCENTRATION_THRESHOLDS["gender"]:
        top = gender[0]
        insights.append(
            f"{top.label} makes up {top.percentage:.0f}% of membership - consider diversifying recruitment"
        )

    race = distributions["race"]
    if race and race[0].percentage > CONCENTRATION_THRESHOLDS["race"]:
        top = race[0]
        insights.append(
            f"{top.label} represents {top.percentage:.0f}% of members - explore outreach to underrepresented groups"
        )

    majors = distributions["majors"]
    if majors and majors[0].percentage > CONCENTRATION_THRESHOLDS["majors"]:
        top = majors[0]
        insights.append(f"{top.label} is the most common major at {top.percentage:.0f}%")

    living = distributions["living_type"]
    if living:
        top = living[0]
        insights.append(f"{top.percentage:.0f}% of members are {top.label}")

    graduating = sum(
        1 for m in members if m.expected_graduation in (today.year, today.year + 1)
    )
    if graduating > 0:
        insights.append(f"{graduating} members graduating in next year - plan succession")

    for lower_bound, message in SCORE_TIERS:
        if diversity_score > lower_bound:
            insights.append(message)
            break
    else:
        insights.append(LOW_DIVERSITY_MESSAGE)

    return insights


def compute_diversity_metrics(
    members: Sequence[Member],
    today: Optional[date] = None,
    major_limit: int = 10,
) -> DiversityMetrics:
    """
    Full diversity view for the loaded members.

    Args:
        members: Loaded members
        today: Reference date for the graduation insight (default: today)
        major_limit: Number of majors kept in the published distribution

    Returns:
        DiversityMetrics with nine distributions, the composite score, the
        per-dimension indices and insights
    """
    today = today or date.today()

    majors_full = build_distribution(members, "majors", multi_valued=True)
    graduation = build_distribution(members, "expected_graduation")
    graduation.sort(key=_graduation_sort_key)

    distributions = {
        "gender": build_distribution(members, "gender"),
        "pronouns": build_distribution(members, "pronouns"),
        "race": build_distribution(members, "race"),
        "sexual_orientation": build_distribution(members, "sexual_orientation"),
        "majors": majors_full[:major_limit],
        "living_type": build_distribution(members, "living_type"),
        "house_membership": build_distribution(members, "house_membership"),
        "expected_graduation": graduation,
        "pledge_class": build_distribution(members, "pledge_class"),
    }

    dimension_scores = {
        "gender": simpson_index(distributions["gender"]),
        "race": simpson_index(distributions["race"]),
        "sexual_orientation": simpson_index(distributions["sexual_orientation"]),
        "majors": simpson_index(majors_full),
    }
    diversity_score = sum(
        dimension_scores[dim] * weight for dim, weight in DIVERSITY_WEIGHTS.items()
    )
    diversity_score = max(0.0, min(100.0, diversity_score))

    insights = generate_insights(members, distributions, diversity_score, today)

    logger.debug(
        "diversity_metrics_computed",
        members=len(members),
        diversity_score=round(diversity_score, 2),
        insights=len(insights),
    )

    return DiversityMetrics(
        gender_distribution=distributions["gender"],
        pronoun_distribution=distributions["pronouns"],
        race_distribution=distributions["race"],
        sexual_orientation_distribution=distributions["sexual_orientation"],
        major_distribution=distributions["majors"],
        living_type_distribution=distributions["living_type"],
        house_membership_distribution=distributions["house_membership"],
        graduation_year_distribution=distributions["expected_graduation"],
        pledge_class_distribution=distributions["pledge_class"],
        diversity_score=diversity_score,
        dimension_scores=dimension_scores,
        insights=insights,
    )
