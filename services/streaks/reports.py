# services/streaks/reports.py
"""Weekly activity reports.

A report covers one ISO week (Monday..Sunday) of attendance records, compares
it against the previous week's report and, when the weekly goal is met for
the first time in a row, awards a streak freeze.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Sequence, Tuple

from packages.common.config import get_settings
from packages.schemas.streaks import (
    AttendanceRecord,
    DailyActivity,
    WeeklyComparison,
    WeeklyGoal,
    WeeklyReport,
)
from .attendance import AttendanceBook, week_id
from .tracker import StreakTracker

log = logging.getLogger(__name__)

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

MESSAGES: Dict[str, Tuple[str, ...]] = {
    "excellent": (
        "Outstanding week! You're on fire!",
        "Incredible progress! Keep up the amazing work!",
        "You're crushing it! Your dedication is inspiring!",
        "Perfect week! You're a learning machine!",
    ),
    "good": (
        "Great job this week! You're making solid progress!",
        "Nice work! Consistency is key and you're nailing it!",
        "Well done! Keep building on this momentum!",
        "Good week! You're on the right track!",
    ),
    "moderate": (
        "Decent effort this week! Every bit counts!",
        "You showed up! That's what matters most!",
        "Progress takes time. Keep going!",
        "Good start! Try to add one more day next week!",
    ),
    "needs-improvement": (
        "We missed you this week! Let's get back on track!",
        "New week, new opportunities! You've got this!",
        "It's okay to have slow weeks. Tomorrow is a fresh start!",
        "Your learning journey awaits! Jump back in!",
    ),
}


def week_bounds(wid: str) -> Tuple[date, date]:
    """Monday and Sunday of an ISO week label such as 2024-W03."""
    year, week = wid.split("-W")
    start = date.fromisocalendar(int(year), int(week), 1)
    return start, start + timedelta(days=6)


def previous_week_id(wid: str) -> str:
    start, _ = week_bounds(wid)
    return week_id(start - timedelta(days=7))


def message_category(days_active: int, current_streak: int, goal_achieved: bool) -> str:
    if days_active >= 6 or (days_active >= 5 and current_streak >= 7):
        return "excellent"
    if days_active >= 4 or goal_achieved:
        return "good"
    if days_active >= 2:
        return "moderate"
    return "needs-improvement"


def motivational_message(days_active: int, current_streak: int, goal_achieved: bool, wid: str) -> str:
    """Pick a message for the activity category; the week label selects among
    the category's messages so a report is reproducible."""
    options = MESSAGES[message_category(days_active, current_streak, goal_achieved)]
    _, week = wid.split("-W")
    return options[int(week) % len(options)]


def compare(days_active: int, minutes: float, lessons: int, previous: Optional[WeeklyReport]) -> WeeklyComparison:
    if previous is None:
        return WeeklyComparison()
    days_change = days_active - previous.days_active
    minutes_change = minutes - previous.total_minutes
    trend = "stable"
    if minutes_change > 30 or days_change > 0:
        trend = "improving"
    elif minutes_change < -30 or days_change < -1:
        trend = "declining"
    return WeeklyComparison(
        days_active_change=days_change,
        minutes_change=minutes_change,
        lessons_change=lessons - previous.lessons_completed,
        trend=trend,
    )


def daily_activity(start: date, records: Sequence[AttendanceRecord]) -> Tuple[DailyActivity, ...]:
    by_day = {r.date: r for r in records}
    days = []
    for i, name in enumerate(DAY_NAMES):
        d = start + timedelta(days=i)
        rec = by_day.get(d)
        kinds = [a.type for a in rec.activities] if rec else []
        days.append(
            DailyActivity(
                date=d,
                day_name=name,
                minutes=rec.duration if rec else 0,
                lessons_completed=kinds.count("lesson"),
                quizzes_completed=kinds.count("quiz"),
                assignments_completed=kinds.count("assignment"),
                jargons_learned=len(rec.jargons_viewed) if rec else 0,
            )
        )
    return tuple(days)


def build_weekly_report(
    book: AttendanceBook,
    user_id: str,
    wid: str,
    now: datetime,
    previous: Optional[WeeklyReport] = None,
    commitment_hours: Optional[float] = None,
    tracker: Optional[StreakTracker] = None,
) -> WeeklyReport:
    """Aggregate one ISO week of attendance for `user_id`.

    Args:
        book: Attendance source.
        user_id: Learner.
        wid: ISO week label, e.g. "2024-W03".
        now: Generation time; used for a freeze awarded by this report.
        previous: Report of the week before, if one was generated.
        commitment_hours: Weekly time commitment; defaults to the configured value.
        tracker: Streak tracker; defaults to the book's.

    Returns:
        The report. `freeze_awarded` is set when the goal was achieved and the
        previous week's goal was not.
    """
    s = get_settings()
    tracker = tracker or book.tracker
    start, end = week_bounds(wid)
    days = daily_activity(start, book.records_between(user_id, start, end))

    days_active = sum(1 for d in days if d.minutes > 0)
    total_minutes = sum(d.minutes for d in days)
    lessons = sum(d.lessons_completed for d in days)

    hours = s.WEEKLY_COMMITMENT_HOURS if commitment_hours is None else commitment_hours
    target_minutes = hours * 60
    achieved = total_minutes >= target_minutes and days_active >= s.WEEKLY_TARGET_DAYS
    streak = tracker.get(user_id).current_streak

    award = achieved and not (previous is not None and previous.weekly_goal.achieved)
    if award:
        tracker.award_freeze(user_id, now, reason="earned")
        log.info("weekly goal met user=%s week=%s; freeze awarded", user_id, wid)

    return WeeklyReport(
        user_id=user_id,
        week_id=wid,
        week_start=start,
        week_end=end,
        days_active=days_active,
        total_minutes=total_minutes,
        daily_activity=days,
        lessons_completed=lessons,
        quizzes_completed=sum(d.quizzes_completed for d in days),
        assignments_submitted=sum(d.assignments_completed for d in days),
        jargons_learned=sum(d.jargons_learned for d in days),
        streak_at_week_end=streak,
        streak_maintained=streak > 0,
        comparison=compare(days_active, total_minutes, lessons, previous),
        weekly_goal=WeeklyGoal(target_minutes=target_minutes, target_days=s.WEEKLY_TARGET_DAYS, achieved=achieved),
        motivational_message=motivational_message(days_active, streak, achieved, wid),
        freeze_awarded=award,
    )
