"""Tests for attendance records and weekly reports."""

from datetime import date, datetime, timedelta

import pytest

from packages.common.events import EventBus
from services.streaks.attendance import AttendanceBook, activity_level, week_id
from services.streaks.reports import (
    MESSAGES,
    build_weekly_report,
    message_category,
    motivational_message,
    previous_week_id,
    week_bounds,
)
from services.streaks.repo import StreakRepo
from services.streaks.tracker import StreakTracker

MONDAY = date(2024, 1, 15)  # 2024-W03


@pytest.fixture
def book() -> AttendanceBook:
    return AttendanceBook(StreakTracker(repo=StreakRepo(), bus=EventBus(producer=None, topic="t")))


def _at(day: date, hour: int = 9) -> datetime:
    return datetime(day.year, day.month, day.day, hour)


def _study(book: AttendanceBook, day: date, minutes: float, *activities: str) -> None:
    book.start_session("u", _at(day))
    for kind in activities:
        book.record_activity("u", kind, _at(day, 10), item_id=f"{kind}-{day}")
    book.end_session("u", minutes, _at(day, 11))


def test_session_tracks_minutes_and_streak(book) -> None:
    _study(book, MONDAY, 20)
    _study(book, MONDAY, 25)
    rec = book.records_between("u", MONDAY, MONDAY)[0]
    assert rec.duration == 45
    assert rec.login_time == _at(MONDAY)
    assert book.tracker.get("u").current_streak == 1


def test_modules_and_jargons_are_unique(book) -> None:
    now = _at(MONDAY)
    for _ in range(3):
        book.record_activity("u", "lesson", now, module_id="m1", jargon_id="j1")
    rec = book.record_activity("u", "flashcard", now, module_id="m2")
    assert rec.modules_accessed == ["m1", "m2"]
    assert rec.jargons_viewed == ["j1"]
    assert len(rec.activities) == 4


@pytest.mark.parametrize("minutes,level", [(0, 0), (14, 1), (15, 2), (29.5, 2), (30, 3), (59, 3), (60, 4), (300, 4)])
def test_activity_level(minutes, level) -> None:
    assert activity_level(minutes) == level


def test_heatmap_daily_records_and_summary(book) -> None:
    _study(book, MONDAY, 10)
    _study(book, MONDAY + timedelta(days=2), 90, "lesson", "quiz")
    heat = book.heatmap("u", 2024)
    assert heat.total_days == 2
    assert heat.days["2024-01-17"].level == 4

    days = book.daily_records("u", MONDAY + timedelta(days=3), days=4)
    assert [d.minutes for d in days] == [10, 0, 90, 0]
    assert days[0].weekday == "Mon"
    assert days[2].activities_count == 2

    summary = book.summary("u", MONDAY + timedelta(days=3))
    assert summary.total_days_active == 2
    assert summary.total_hours == 1.7
    assert summary.message == "You studied 2/7 days in the last week"
    assert summary.current_week == "2024-W03"


def test_week_helpers() -> None:
    assert week_id(MONDAY) == "2024-W03"
    assert week_bounds("2024-W03") == (MONDAY, MONDAY + timedelta(days=6))
    assert previous_week_id("2024-W01") == "2023-W52"
    assert week_id(date(2021, 1, 3)) == "2020-W53"


@pytest.mark.parametrize(
    "days,streak,goal,category",
    [(6, 0, False, "excellent"), (5, 7, False, "excellent"), (5, 6, False, "good"), (1, 0, True, "good"),
     (2, 0, False, "moderate"), (1, 30, False, "needs-improvement")],
)
def test_message_category(days, streak, goal, category) -> None:
    assert message_category(days, streak, goal) == category


def test_motivational_message_is_reproducible() -> None:
    a = motivational_message(3, 0, False, "2024-W03")
    assert a == motivational_message(3, 0, False, "2024-W03")
    assert a in MESSAGES["moderate"]


def test_weekly_report_goal_awards_freeze_once(book) -> None:
    for i in range(5):
        _study(book, MONDAY + timedelta(days=i), 70, "lesson")
    now = _at(MONDAY + timedelta(days=7))
    report = build_weekly_report(book, "u", "2024-W03", now, commitment_hours=5)

    assert report.days_active == 5
    assert report.total_minutes == 350
    assert report.lessons_completed == 5
    assert [d.day_name for d in report.daily_activity][:2] == ["Mon", "Tue"]
    assert report.weekly_goal.target_minutes == 300
    assert report.weekly_goal.achieved is True
    assert report.freeze_awarded is True
    assert report.streak_at_week_end == 5
    assert report.comparison.trend == "stable"
    assert len(book.tracker.available_freezes("u", now)) == 1

    next_monday = MONDAY + timedelta(days=7)
    for i in range(5):
        _study(book, next_monday + timedelta(days=i), 80)
    follow = build_weekly_report(book, "u", "2024-W04", now + timedelta(days=7), previous=report, commitment_hours=5)
    assert follow.weekly_goal.achieved is True
    assert follow.freeze_awarded is False
    assert follow.comparison.minutes_change == 50
    assert follow.comparison.trend == "improving"


def test_weekly_report_declining_trend(book) -> None:
    for i in range(4):
        _study(book, MONDAY + timedelta(days=i), 60)
    first = build_weekly_report(book, "u", "2024-W03", _at(MONDAY + timedelta(days=7)))
    _study(book, MONDAY + timedelta(days=8), 20)
    second = build_weekly_report(book, "u", "2024-W04", _at(MONDAY + timedelta(days=14)), previous=first)
    assert second.comparison.days_active_change == -3
    assert second.comparison.trend == "declining"
    assert second.weekly_goal.achieved is False
