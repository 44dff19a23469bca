"""
Unit tests for the ChapterPulse engine modules.

- Independent tests (no shared state)
- Clear naming (test_<function>_<scenario>)
- Expected values worked out by hand from the sample chapter in conftest
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from chapterpulse.config import DEFAULT_POINT_REQUIREMENTS
from chapterpulse.engine.aggregation import (
    compute_category_breakdown,
    compute_event_analytics,
    compute_health_metrics,
    compute_house_points,
    compute_member_category_points,
    compute_member_performance,
    compute_member_points,
    compute_pledge_class_points,
)
from chapterpulse.engine.categories import (
    CANONICAL_CATEGORIES,
    UNCATEGORIZED,
    is_canonical,
    normalize_category,
)
from chapterpulse.engine.coordinator.state import AnalyticsState, initial_state
from chapterpulse.engine.diversity import (
    NOT_SPECIFIED,
    build_distribution,
    compute_diversity_metrics,
    generate_insights,
    simpson_index,
)
from chapterpulse.engine.lookups import (
    active_brothers,
    bounded_rate,
    build_event_lookup,
    build_member_lookup,
    dedupe_attendance,
    display_name_for,
    safe_rate,
)
from chapterpulse.engine.semester_report import build_semester_report
from chapterpulse.engine.views import MAX_CACHED_VIEWS, DashboardViews
from chapterpulse.models.analytics import DistributionEntry, HealthMetrics
from chapterpulse.models.records import DateRange, Event
from tests.conftest import (
    NOW,
    make_attendance,
    make_chapter,
    make_event,
    make_member,
    make_settings,
)


# ============================================================================
# Category normalizer
# ============================================================================


class TestNormalizeCategory:
    """Substring rules, priority order, fallthrough and blank handling."""

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Brotherhood Mixer", "Brotherhood"),
            ("brotherhood", "Brotherhood"),
            ("BROTHER bonding", "Brotherhood"),
            ("Scholarship Night", "Scholarship"),
            ("H&W yoga", "H&W"),
            ("Mental Health Talk", "H&W"),
            ("wellness walk", "H&W"),
            ("Fundraiser", "Fundraising"),
            ("DEI panel", "DEI"),
            ("Diversity Dinner", "DEI"),
            ("Professional Headshots", "Professionalism"),
            ("Community Service", "Service"),
        ],
    )
    def test_normalize_category_rules(self, label, expected):
        assert normalize_category(label) == expected

    def test_normalize_category_priority_fund_before_diversity(self):
        assert normalize_category("Diversity Fundraiser") == "Fundraising"

    def test_normalize_category_priority_scholar_before_service(self):
        assert normalize_category("Service Scholarship Drive") == "Scholarship"

    def test_normalize_category_unmatched_label_returned_trimmed(self):
        assert normalize_category("  Intramurals ") == "Intramurals"

    @pytest.mark.parametrize("label", [None, "", "   "])
    def test_normalize_category_blank_is_uncategorized(self, label):
        assert normalize_category(label) == UNCATEGORIZED

    @pytest.mark.parametrize("category", CANONICAL_CATEGORIES)
    def test_normalize_category_idempotent_on_canonical(self, category):
        assert normalize_category(category) == category
        assert is_canonical(normalize_category(category))

    def test_canonical_categories_order(self):
        assert CANONICAL_CATEGORIES == (
            "Brotherhood",
            "Service",
            "Professionalism",
            "Scholarship",
            "DEI",
            "H&W",
            "Fundraising",
        )


# ============================================================================
# Lookups and shared helpers
# ============================================================================


class TestLookups:
    def test_build_member_lookup_first_record_wins(self):
        first = make_member("u1", first_name="First")
        second = make_member("u1", first_name="Second")
        lookup = build_member_lookup([first, second])
        assert lookup["u1"].first_name == "First"

    def test_build_event_lookup_first_record_wins(self):
        first = make_event("e1", title="First")
        second = make_event("e1", title="Second")
        assert build_event_lookup([first, second])["e1"].title == "First"

    def test_active_brothers_roles(self):
        members = [
            make_member("a", role="brother"),
            make_member("b", role="Officer"),
            make_member("c", role="president"),
            make_member("d", role="pledge"),
            make_member("e", role="inactive"),
            make_member("f", role="alumni"),
            make_member("g", role="abroad"),
        ]
        assert [m.user_id for m in active_brothers(members)] == ["a", "b", "c"]

    def test_dedupe_attendance_keeps_first_row(self):
        rows = [
            make_attendance("u1", "e1", attended=False),
            make_attendance("u1", "e1", attended=True),
            make_attendance("u2", "e1"),
        ]
        deduped = dedupe_attendance(rows)
        assert len(deduped) == 2
        assert deduped[0].attended is False

    def test_dedupe_attendance_restricts_users(self):
        rows = [make_attendance("u1", "e1"), make_attendance("u2", "e1")]
        assert [r.user_id for r in dedupe_attendance(rows, user_ids={"u2"})] == ["u2"]

    def test_dedupe_attendance_idempotent(self, sample_attendance):
        once = dedupe_attendance(sample_attendance)
        assert dedupe_attendance(once) == once

    def test_display_name_for_unknown(self):
        assert display_name_for({}, "nobody") == "Unknown"
        assert display_name_for({}, None) == "Unknown"

    def test_safe_rate_zero_denominator(self):
        assert safe_rate(5, 0) == 0.0

    def test_bounded_rate_clamps(self):
        assert bounded_rate(150, 100) == 100.0
        assert bounded_rate(-1, 1) == 0.0


# ============================================================================
# Aggregations
# ============================================================================


class TestHealthMetrics:
    def test_health_metrics_zero_members_all_zero(self):
        metrics = compute_health_metrics([], [make_event("e1")], [make_attendance("u1", "e1")])
        assert metrics == HealthMetrics(
            total_members=0,
            active_members=0,
            retention_rate=0.0,
            avg_attendance_rate=0.0,
            avg_points=0.0,
        )

    def test_health_metrics_sample_chapter(self, chapter):
        metrics = compute_health_metrics(*chapter)
        assert metrics.total_members == 5
        assert metrics.active_members == 4
        assert metrics.retention_rate == pytest.approx(80.0)
        # 4 attended brother pairs over 3 brothers x 3 events
        assert metrics.avg_attendance_rate == pytest.approx(4 / 9 * 100)
        # (15 + 10 + 5) / 3 brothers
        assert metrics.avg_points == pytest.approx(10.0)

    def test_health_metrics_zero_events(self, sample_members):
        metrics = compute_health_metrics(sample_members, [], [])
        assert metrics.avg_attendance_rate == 0.0
        assert metrics.avg_points == 0.0

    def test_health_metrics_counts_zero_attendance_brothers(self):
        members = [make_member("u1"), make_member("u2")]
        events = [make_event("e1", point_value=8)]
        metrics = compute_health_metrics(members, events, [make_attendance("u1", "e1")])
        assert metrics.avg_points == pytest.approx(4.0)
        assert metrics.avg_attendance_rate == pytest.approx(50.0)


class TestMemberPoints:
    def test_member_points_skips_unloaded_events(self, sample_events, sample_attendance):
        points = compute_member_points(sample_attendance, sample_events)
        assert points == {"u1": 15.0, "u2": 10.0, "u3": 5.0, "u4": 10.0}

    def test_member_points_ignores_not_attended(self):
        events = [make_event("e1")]
        rows = [make_attendance("u1", "e1", rsvp=True, attended=False)]
        assert compute_member_points(rows, events) == {}


class TestMemberPerformance:
    def test_member_performance_duplicate_attendance_counted_once(self):
        members = [make_member("u1"), make_member("u2")]
        events = [make_event("e1", point_value=5)]
        rows = [make_attendance("u1", "e1"), make_attendance("u1", "e1")]

        performance = compute_member_performance(members, events, rows)

        assert len(performance) == 1
        assert performance[0].user_id == "u1"
        assert performance[0].points == 5
        assert performance[0].events_attended == 1

    def test_member_performance_no_show_row_before_attended_row(self):
        members = [make_member("u1")]
        events = [make_event("e1", point_value=5)]
        rows = [
            make_attendance("u1", "e1", rsvp=True, attended=False),
            make_attendance("u1", "e1", rsvp=True, attended=True),
        ]

        performance = compute_member_performance(members, events, rows)

        assert [(p.user_id, p.points, p.events_attended) for p in performance] == [("u1", 5.0, 1)]

    def test_member_performance_brothers_only_sorted(self, chapter):
        performance = compute_member_performance(*chapter)
        assert [(p.user_id, p.points) for p in performance] == [("u1", 15.0), ("u3", 5.0)]
        assert performance[0].name == "Alex Adams"
        assert performance[0].attendance_rate == pytest.approx(2 / 3 * 100)

    def test_member_performance_limit(self, chapter):
        assert len(compute_member_performance(*chapter, limit=1)) == 1
        assert compute_member_performance(*chapter, limit=0) == []

    def test_member_performance_negative_limit_raises(self, chapter):
        with pytest.raises(ValueError):
            compute_member_performance(*chapter, limit=-1)


class TestEventAnalytics:
    def test_event_analytics_sample_chapter(self, chapter):
        by_id = {e.id: e for e in compute_event_analytics(*chapter)}

        e1 = by_id["e1"]
        assert e1.attendance_count == 3
        assert e1.attendance_rate == pytest.approx(100.0)
        assert e1.rsvp_count == 3
        assert e1.no_show_rate == 0.0
        assert e1.top_attendees == ["Alex Adams", "Blake Baker", "Drew Davis"]
        assert e1.creator == "Blake Baker"

        e3 = by_id["e3"]
        assert e3.attendance_count == 0
        assert e3.no_show_rate == pytest.approx(100.0)
        assert e3.creator == "Unknown"

    def test_event_analytics_walk_ins_do_not_go_negative(self, chapter):
        # e2: one RSVP, two attendees (one walk-in)
        e2 = next(e for e in compute_event_analytics(*chapter) if e.id == "e2")
        assert e2.attendance_count == 2
        assert e2.rsvp_count == 1
        assert e2.no_show_rate == 0.0

    def test_event_analytics_no_brothers_zero_rate(self):
        events = [make_event("e1")]
        members = [make_member("p1", role="pledge")]
        analytics = compute_event_analytics(members, events, [make_attendance("p1", "e1")])
        assert analytics[0].attendance_rate == 0.0
        assert analytics[0].attendance_count == 1

    def test_event_analytics_top_attendees_limit(self):
        members = [make_member(f"u{i}", first_name=f"M{i}") for i in range(8)]
        events = [make_event("e1")]
        rows = [make_attendance(m.user_id, "e1") for m in members]
        analytics = compute_event_analytics(members, events, rows, top_attendees=5)
        assert len(analytics[0].top_attendees) == 5


class TestCategoryBreakdown:
    def test_category_breakdown_sample_chapter(self, chapter):
        breakdown = compute_category_breakdown(*chapter)
        assert [b.category for b in breakdown] == ["Brotherhood", "Service", "Intramurals"]

        brotherhood = breakdown[0]
        assert brotherhood.event_count == 1
        assert brotherhood.attendance_count == 3
        assert brotherhood.total_points == pytest.approx(30.0)
        assert brotherhood.average_points == pytest.approx(10.0)
        assert brotherhood.average_attendance_per_member == pytest.approx(0.6)

        intramurals = breakdown[2]
        assert intramurals.attendance_count == 0
        assert intramurals.average_points == 0.0

    def test_category_breakdown_merges_label_variants(self):
        members = [make_member("u1")]
        events = [
            make_event("e1", point_type="Brotherhood Mixer"),
            make_event("e2", point_type="brotherhood"),
            make_event("e3", point_type="BROTHER bonding"),
        ]
        breakdown = compute_category_breakdown(members, events, [])
        assert len(breakdown) == 1
        assert breakdown[0].category == "Brotherhood"
        assert breakdown[0].event_count == 3

    def test_category_breakdown_omits_categories_without_events(self, chapter):
        categories = {b.category for b in compute_category_breakdown(*chapter)}
        assert "Fundraising" not in categories

    def test_category_breakdown_no_members(self):
        breakdown = compute_category_breakdown([], [make_event("e1")], [])
        assert breakdown[0].average_attendance_per_member == 0.0


class TestGroupSummaries:
    def test_house_points(self, chapter):
        houses = compute_house_points(*chapter)
        assert [(h.group, h.total_points, h.member_count) for h in houses] == [
            ("North", 20.0, 2),
            ("South", 10.0, 1),
            ("Not Specified", 10.0, 2),
        ]
        assert houses[2].avg_points_per_member == pytest.approx(5.0)

    def test_pledge_class_points_sorted_by_label(self, chapter):
        classes = compute_pledge_class_points(*chapter)
        assert [c.group for c in classes] == ["Fall 2022", "Fall 2023", "Fall 2025", "Spring 2024"]
        fall_2023 = classes[1]
        assert fall_2023.total_points == pytest.approx(25.0)
        assert fall_2023.avg_points_per_member == pytest.approx(12.5)

    def test_pledge_class_missing_label_is_unknown(self):
        classes = compute_pledge_class_points([make_member("u1")], [], [])
        assert classes[0].group == "Unknown"


class TestMemberCategoryPoints:
    def test_member_category_points(self, sample_events, sample_attendance):
        result = compute_member_category_points("u1", sample_events, sample_attendance)
        assert result.points_by_category["Brotherhood"] == pytest.approx(10.0)
        assert result.points_by_category["Service"] == pytest.approx(5.0)
        assert result.points_by_category["DEI"] == 0.0
        assert set(result.points_by_category) == set(CANONICAL_CATEGORIES)
        assert result.total_points == pytest.approx(15.0)

    def test_member_category_points_ignores_custom_categories(self, sample_events):
        rows = [make_attendance("u2", "e3")]
        result = compute_member_category_points("u2", sample_events, rows)
        assert result.total_points == 0.0

    def test_member_category_points_requirement_progress(self, sample_events, sample_attendance):
        result = compute_member_category_points("u1", sample_events, sample_attendance)
        progress = {row.category: row for row in result.requirements}

        assert [row.category for row in result.requirements] == list(CANONICAL_CATEGORIES)
        assert progress["Brotherhood"].required == 20.0
        assert progress["Brotherhood"].met is False
        assert progress["Brotherhood"].progress_pct == pytest.approx(50.0)
        assert progress["Service"].met is True
        assert progress["Service"].progress_pct == 100.0
        assert progress["DEI"].met is False
        assert progress["DEI"].progress_pct == 0.0
        assert result.pillars_met == 1
        assert result.all_requirements_met is False

    def test_member_category_points_all_requirements_met(self, sample_events, sample_attendance):
        requirements = {"Brotherhood": 10.0, "Service": 5.0}
        result = compute_member_category_points(
            "u1", sample_events, sample_attendance, requirements=requirements
        )
        assert result.pillars_met == len(CANONICAL_CATEGORIES)
        assert result.all_requirements_met is True
        assert all(row.progress_pct == 100.0 for row in result.requirements)

    def test_point_requirements_setting_merges_over_defaults(self):
        settings = make_settings(point_requirements={"Brotherhood": 25})
        assert settings.point_requirements["Brotherhood"] == 25.0
        assert settings.point_requirements["Service"] == DEFAULT_POINT_REQUIREMENTS["Service"]

    def test_point_requirements_setting_rejects_unknown_category(self):
        with pytest.raises(ValidationError):
            make_settings(point_requirements={"Intramurals": 2})


# ============================================================================
# Diversity
# ============================================================================


class TestDiversity:
    def test_simpson_index_two_buckets(self):
        distribution = [
            DistributionEntry(label="Male", count=8, percentage=80.0),
            DistributionEntry(label="Female", count=2, percentage=20.0),
        ]
        assert simpson_index(distribution) == pytest.approx(32.0)

    def test_simpson_index_empty(self):
        assert simpson_index([]) == 0.0

    def test_build_distribution_not_specified_bucket(self):
        members = [make_member("u1", gender="Male"), make_member("u2")]
        distribution = build_distribution(members, "gender")
        assert [(d.label, d.count, d.percentage) for d in distribution] == [
            ("Male", 1, 50.0),
            (NOT_SPECIFIED, 1, 50.0),
        ]

    def test_build_distribution_majors_multi_valued(self):
        members = [
            make_member("u1", majors="Biology, Chemistry"),
            make_member("u2", majors="Biology"),
            make_member("u3", majors=" , "),
        ]
        distribution = build_distribution(members, "majors", multi_valued=True)
        counts = {d.label: d.count for d in distribution}
        assert counts == {"Biology": 2, "Chemistry": 1, NOT_SPECIFIED: 1}
        assert distribution[0].label == "Biology"

    def test_build_distribution_empty_members(self):
        assert build_distribution([], "gender") == []

    def test_diversity_metrics_sample_chapter(self, sample_members):
        metrics = compute_diversity_metrics(sample_members, today=date(2026, 3, 1))

        assert [d.label for d in metrics.graduation_year_distribution] == [
            "2026",
            "2027",
            "2028",
            NOT_SPECIFIED,
        ]
        assert metrics.dimension_scores["gender"] == pytest.approx(56.0)
        assert metrics.dimension_scores["race"] == pytest.approx(72.0)
        assert metrics.dimension_scores["sexual_orientation"] == pytest.approx(64.0)
        assert metrics.dimension_scores["majors"] == pytest.approx((1 - 10 / 36) * 100)
        assert metrics.diversity_score == pytest.approx(
            0.25 * 56 + 0.35 * 72 + 0.20 * 64 + 0.20 * (1 - 10 / 36) * 100
        )
        assert metrics.insights == [
            "40% of members are On Campus",
            "2 members graduating in next year - plan succession",
            "Good diversity - continue inclusive recruitment",
        ]

    def test_diversity_concentration_insights(self):
        members = [
            make_member(f"u{i}", gender="Male", race="White", majors="Finance", living_type="House")
            for i in range(10)
        ]
        insights = compute_diversity_metrics(members, today=date(2026, 1, 1)).insights
        assert insights[0] == "Male makes up 100% of membership - consider diversifying recruitment"
        assert insights[1] == (
            "White represents 100% of members - explore outreach to underrepresented groups"
        )
        assert insights[2] == "Finance is the most common major at 100%"
        assert insights[3] == "100% of members are House"
        assert insights[-1] == "Low diversity - prioritize inclusive recruitment strategies"

    def test_diversity_major_limit(self):
        members = [make_member(f"u{i}", majors=f"Major {i}") for i in range(15)]
        metrics = compute_diversity_metrics(members, major_limit=10)
        assert len(metrics.major_distribution) == 10
        # Index uses the full distribution, not the published top ten
        assert metrics.dimension_scores["majors"] == pytest.approx((1 - 15 * (1 / 15) ** 2) * 100)

    def test_diversity_no_members(self):
        metrics = compute_diversity_metrics([])
        assert metrics.diversity_score == 0.0
        assert metrics.gender_distribution == []
        assert metrics.insights == ["Low diversity - prioritize inclusive recruitment strategies"]

    @staticmethod
    def _distributions(gender_share: float = 50.0) -> dict[str, list[DistributionEntry]]:
        return {
            "gender": [DistributionEntry(label="Male", count=7, percentage=gender_share)],
            "race": [],
            "majors": [],
            "living_type": [],
        }

    @pytest.mark.parametrize(
        "score, message",
        [
            (75.0, "Excellent diversity across multiple dimensions"),
            (70.0, "Good diversity - continue inclusive recruitment"),
            (50.5, "Good diversity - continue inclusive recruitment"),
            (40.0, "Moderate diversity - consider DEI initiatives"),
            (30.0, "Low diversity - prioritize inclusive recruitment strategies"),
        ],
    )
    def test_generate_insights_score_tiers(self, score, message):
        insights = generate_insights([], self._distributions(), score, date(2026, 1, 1))
        assert insights == [message]

    def test_generate_insights_gender_share_at_threshold_not_flagged(self):
        at_threshold = generate_insights([], self._distributions(70.0), 40.0, date(2026, 1, 1))
        above = generate_insights([], self._distributions(71.0), 40.0, date(2026, 1, 1))

        assert at_threshold == ["Moderate diversity - consider DEI initiatives"]
        assert above[0] == "Male makes up 71% of membership - consider diversifying recruitment"


# ============================================================================
# Semester report
# ============================================================================


class TestSemesterReport:
    def test_semester_report_sample_chapter(self, chapter):
        report = build_semester_report(*chapter, start=NOW - timedelta(days=60), end=NOW)

        assert report.total_members == 3
        assert report.active_members == 3
        assert report.total_events == 3
        assert report.events_by_category == {"Brotherhood": 1, "Service": 1, "Intramurals": 1}
        assert report.total_attendance == 4
        assert report.average_attendance == pytest.approx(4 / 3)
        assert report.most_attended_event.name == "Brotherhood Mixer"
        assert report.least_attended_event.name == "Intramural Soccer"
        assert report.least_attended_event.attendance == 0

        assert report.total_points_awarded == pytest.approx(30.0)
        assert report.average_points_per_member == pytest.approx(10.0)
        assert report.highest_point_earner.name == "Alex Adams"
        assert report.points_by_category == {"Brotherhood": 20.0, "Service": 10.0}

        assert report.overall_attendance_rate == pytest.approx(4 / 9 * 100)
        assert report.perfect_attendance == []
        assert report.low_attendance == ["Blake Baker", "Casey Clark"]

    def test_semester_report_officer_and_retention(self, chapter):
        report = build_semester_report(*chapter, start=NOW - timedelta(days=60), end=NOW)

        assert len(report.officer_stats) == 1
        officer = report.officer_stats[0]
        assert (officer.position, officer.name, officer.events_created) == ("Treasurer", "Blake Baker", 2)
        assert officer.avg_event_attendance == pytest.approx(2.0)

        assert [m.name for m in report.retention.at_risk_members] == ["Casey Clark", "Blake Baker"]
        assert report.retention.inactive_members == []
        assert report.point_system.members_on_track == 2
        assert report.point_system.members_struggling == 0
        assert report.point_system.average_points_gap == pytest.approx(5.0)
        assert report.point_system.category_balance["Brotherhood"] == pytest.approx(200 / 3)

    def test_semester_report_window_excludes_events(self, chapter):
        report = build_semester_report(*chapter, start=NOW - timedelta(days=15), end=NOW)
        assert report.total_events == 1
        assert report.total_attendance == 2

    def test_semester_report_empty(self):
        report = build_semester_report([], [], [], start=NOW - timedelta(days=1), end=NOW)
        assert report.total_members == 0
        assert report.most_attended_event is None
        assert report.least_attended_event is None
        assert report.overall_attendance_rate == 0.0

    def test_semester_report_inverted_window_raises(self, chapter):
        with pytest.raises(ValueError):
            build_semester_report(*chapter, start=NOW, end=NOW - timedelta(days=1))


# ============================================================================
# Derived-view cache
# ============================================================================


class TestDashboardViews:
    def _state(self, members, events, attendance) -> AnalyticsState:
        state = initial_state(make_settings(), now=NOW)
        return state.model_copy(
            update={
                "members": tuple(members),
                "events": tuple(events),
                "attendance": tuple(attendance),
            }
        )

    def test_views_memoize_on_same_snapshot(self):
        views = DashboardViews(settings=make_settings())
        state = self._state(*make_chapter())

        first = views.health_metrics(state)
        second = views.health_metrics(state)

        assert first is second
        assert views.computations == 1

    def test_views_recompute_on_new_snapshot(self):
        views = DashboardViews(settings=make_settings())
        members, events, attendance = make_chapter()
        state = self._state(members, events, attendance)
        views.health_metrics(state)

        changed = state.model_copy(update={"attendance": tuple(attendance[:1])})
        metrics = views.health_metrics(changed)

        assert views.computations == 2
        assert metrics.avg_points == pytest.approx(10 / 3)

    def test_views_key_includes_arguments(self):
        views = DashboardViews(settings=make_settings())
        state = self._state(*make_chapter())
        assert len(views.leaderboard(state, limit=1)) == 1
        assert len(views.leaderboard(state, limit=10)) == 2

    def test_views_cache_bounded_within_snapshot(self):
        views = DashboardViews(settings=make_settings())
        state = self._state(*make_chapter())
        views.health_metrics(state)

        for i in range(MAX_CACHED_VIEWS + 10):
            views.health_metrics(state)
            views.member_category_points(state, f"user_{i}")

        assert len(views._cache) == MAX_CACHED_VIEWS
        computed = views.computations
        views.health_metrics(state)
        views.member_category_points(state, f"user_{MAX_CACHED_VIEWS + 9}")
        assert views.computations == computed

        views.member_category_points(state, "user_0")
        assert views.computations == computed + 1

    def test_views_semester_report_defaults_to_date_range(self):
        views = DashboardViews(settings=make_settings())
        state = self._state(*make_chapter())
        report = views.semester_report(state)
        assert report.semester_start == state.date_range.start
        assert report.semester_end == state.date_range.end


# ============================================================================
# Records
# ============================================================================


class TestRecords:
    def test_member_role_lowercased_and_aliases(self):
        member = make_member("u1", role="Brother", pledgeClass="Fall 2023", grad_year="2027")
        assert member.role == "brother"
        assert member.pledge_class == "Fall 2023"
        assert member.expected_graduation == 2027

    def test_event_null_point_value_is_zero(self):
        raw = make_event("e1").model_dump()
        raw["point_value"] = None
        raw["point_type"] = None
        parsed = Event.model_validate(raw)
        assert parsed.point_value == 0.0
        assert parsed.point_type == ""

    def test_date_range_rejects_inverted(self):
        with pytest.raises(ValueError):
            DateRange(start=NOW, end=NOW - timedelta(days=1))

    def test_date_range_naive_treated_as_utc(self):
        window = DateRange(start=datetime(2026, 1, 1), end=datetime(2026, 2, 1))
        assert window.start.tzinfo == timezone.utc
        assert window.contains(datetime(2026, 1, 15, tzinfo=timezone.utc))

    def test_trailing_months(self):
        window = DateRange.trailing_months(6, now=NOW)
        assert window.start == datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)
        assert window.end == NOW
