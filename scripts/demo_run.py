#!/usr/bin/env python3
"""
ChapterPulse Demo — full dashboard run without a Supabase project.

Runs the complete analytics workflow:
1. Seeds a synthetic chapter (members, six months of events, attendance)
2. Drives the load coordinator through members → events → attendance
3. Prints health metrics, the leaderboard, categories, diversity and the
   semester report

Usage:
    python scripts/demo_run.py                  # 40 members, seed 7
    python scripts/demo_run.py --members 120    # Larger chapter
    python scripts/demo_run.py --seed 3         # Different synthetic data
"""

import argparse
import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from chapterpulse.config import get_settings
from chapterpulse.connectors import MemorySource
from chapterpulse.engine.coordinator import LoadCoordinator
from chapterpulse.engine.views import DashboardViews
from chapterpulse.models.records import AttendanceRecord, Event, Member
from chapterpulse.utils.logging import configure_logging

FIRST_NAMES = ["Alex", "Blake", "Casey", "Drew", "Eli", "Finn", "Gray", "Harper", "Jordan", "Kai"]
LAST_NAMES = ["Adams", "Baker", "Clark", "Davis", "Evans", "Foster", "Garcia", "Hughes", "Ito", "Jones"]
ROLES = ["brother"] * 14 + ["officer"] * 3 + ["pledge"] * 2 + ["inactive", "alumni"]
POSITIONS = ["President", "Treasurer", "Secretary", "Social Chair", "Philanthropy Chair"]
GENDERS = ["Male", "Male", "Male", "Female", "Non-binary", None]
RACES = ["White", "Black", "Asian", "Hispanic", "Multiracial", None]
ORIENTATIONS = ["Straight", "Straight", "Gay", "Bisexual", None]
MAJORS = ["Economics", "Biology", "Computer Science", "History", "Finance", "Chemistry"]
LIVING = ["On Campus", "Off Campus", "Chapter House"]
HOUSES = ["North", "South", "East", None]
PLEDGE_CLASSES = ["Fall 2022", "Spring 2023", "Fall 2023", "Spring 2024", "Fall 2024"]
EVENT_TYPES = [
    ("Brotherhood Mixer", 10),
    ("Community Service", 8),
    ("Professional Workshop", 6),
    ("Scholarship Study Hall", 4),
    ("DEI Panel", 6),
    ("Health & Wellness Run", 5),
    ("Fundraiser Gala", 8),
    ("Intramurals", 2),
]


def seed_chapter(member_count: int, rng: random.Random, now: datetime):
    """Build a synthetic chapter with demographics, events and attendance."""
    members = []
    for i in range(member_count):
        role = rng.choice(ROLES)
        members.append(
            Member(
                user_id=f"user_{i:03d}",
                first_name=rng.choice(FIRST_NAMES),
                last_name=f"{rng.choice(LAST_NAMES)}{i:03d}",
                email=f"member{i}@example.edu",
                role=role,
                officer_position=rng.choice(POSITIONS) if role == "officer" else None,
                pledge_class=rng.choice(PLEDGE_CLASSES),
                gender=rng.choice(GENDERS),
                race=rng.choice(RACES),
                sexual_orientation=rng.choice(ORIENTATIONS),
                majors=", ".join(rng.sample(MAJORS, rng.choice([1, 1, 2]))),
                expected_graduation=rng.choice([now.year, now.year + 1, now.year + 2, now.year + 3]),
                living_type=rng.choice(LIVING),
                house_membership=rng.choice(HOUSES),
            )
        )

    officers = [m.user_id for m in members if m.role == "officer"]
    events = []
    for i in range(18):
        title, points = rng.choice(EVENT_TYPES)
        start = now - timedelta(days=rng.randint(1, 170), hours=rng.randint(0, 12))
        events.append(
            Event(
                id=f"event_{i:03d}",
                title=f"{title} #{i + 1}",
                start_time=start,
                end_time=start + timedelta(hours=2),
                point_value=points,
                point_type=title,
                creator_id=rng.choice(officers) if officers else None,
                status="approved",
            )
        )

    attendance = []
    for event in events:
        for member in members:
            if rng.random() < 0.45:
                attended = rng.random() < 0.8
                attendance.append(
                    AttendanceRecord(
                        user_id=member.user_id, event_id=event.id, rsvp=True, attended=attended
                    )
                )
            elif rng.random() < 0.05:
                attendance.append(
                    AttendanceRecord(user_id=member.user_id, event_id=event.id, attended=True)
                )
    return members, events, attendance


async def run_demo(member_count: int, seed: int) -> None:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    members, events, attendance = seed_chapter(member_count, random.Random(seed), now)

    coordinator = LoadCoordinator(MemorySource(members, events, attendance), settings=settings)
    views = DashboardViews(settings=settings)

    print(f"\n[1/3] Seeded {len(members)} members, {len(events)} events, {len(attendance)} attendance rows")

    print("[2/3] Loading members → events → attendance...")
    await coordinator.load_members()
    state = coordinator.state
    print(
        f"  stage={state.stage.value} members={len(state.members)} "
        f"events={len(state.events)} attendance={len(state.attendance)}"
    )

    print("[3/3] Dashboard views\n")
    health = views.health_metrics(state)
    print("Health")
    print(f"  members: {health.total_members} ({health.active_members} active)")
    print(f"  retention: {health.retention_rate:.1f}%")
    print(f"  attendance: {health.avg_attendance_rate:.1f}%")
    print(f"  avg points: {health.avg_points:.1f}")

    print("\nLeaderboard")
    for rank, row in enumerate(views.leaderboard(state), start=1):
        print(f"  {rank:>2}. {row.name:<20} {row.points:>6.1f} pts  {row.events_attended} events")

    print("\nCategories")
    for row in views.category_breakdown(state):
        print(
            f"  {row.category:<16} {row.event_count:>2} events  "
            f"{row.total_points:>7.1f} pts  {row.average_points:.1f} avg"
        )

    diversity = views.diversity(state)
    print(f"\nDiversity score: {diversity.diversity_score:.1f}")
    for insight in diversity.insights:
        print(f"  - {insight}")

    report = views.semester_report(state)
    print("\nSemester report")
    print(f"  events: {report.total_events}  attendance: {report.total_attendance}")
    if report.most_attended_event:
        print(
            f"  most attended: {report.most_attended_event.name} "
            f"({report.most_attended_event.attendance})"
        )
    if report.highest_point_earner:
        print(
            f"  top earner: {report.highest_point_earner.name} "
            f"({report.highest_point_earner.points:.1f} pts)"
        )
    print(f"  at risk: {len(report.retention.at_risk_members)}")


def main():
    parser = argparse.ArgumentParser(description="Run ChapterPulse demo (no Supabase required)")
    parser.add_argument("--members", type=int, default=40, help="Number of synthetic members")
    parser.add_argument("--seed", type=int, default=7, help="Random seed for the synthetic chapter")
    args = parser.parse_args()

    configure_logging()

    print("\n" + "=" * 60)
    print("ChapterPulse Demo")
    print("=" * 60)

    asyncio.run(run_demo(args.members, args.seed))

    print("\n" + "=" * 60)
    print("Done. Start the API with: uvicorn chapterpulse.main:app --reload")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
