"""Per-day attendance records: sessions, activities, summaries and the yearly heatmap."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from packages.schemas.streaks import (
    ActivityRecord,
    ActivityType,
    AttendanceRecord,
    AttendanceSummary,
    DailyRecord,
    Heatmap,
    HeatmapDay,
)
from .tracker import StreakTracker

log = logging.getLogger(__name__)


def week_id(day: date) -> str:
    """ISO week label, e.g. 2024-W03."""
    iso = day.isocalendar()
    return f"{iso[0]}-W{iso[1]:02d}"


def activity_level(minutes: float) -> int:
    """Heatmap intensity 0..4 for a day's study minutes."""
    if minutes <= 0:
        return 0
    if minutes < 15:
        return 1
    if minutes < 30:
        return 2
    if minutes < 60:
        return 3
    return 4


class AttendanceBook:
    """Attendance records keyed by (user, day), backed by memory."""

    def __init__(self, tracker: Optional[StreakTracker] = None) -> None:
        self.tracker = tracker or StreakTracker()
        self._records: Dict[Tuple[str, date], AttendanceRecord] = {}
        self._guard = threading.Lock()

    def _today_record(self, user_id: str, now: datetime) -> AttendanceRecord:
        key = (user_id, now.date())
        rec = self._records.get(key)
        if rec is None:
            rec = AttendanceRecord(user_id=user_id, date=now.date(), login_time=now)
            self._records[key] = rec
        return rec

    def start_session(self, user_id: str, now: datetime) -> AttendanceRecord:
        """Open today's record (keeping an earlier login time) and count the day for the streak."""
        with self._guard:
            rec = self._today_record(user_id, now)
            if rec.login_time is None:
                rec.login_time = now
            snapshot = rec.model_copy(deep=True)
        self.tracker.record_activity(user_id, now.date(), now)
        return snapshot

    def end_session(self, user_id: str, minutes: float, now: datetime) -> AttendanceRecord:
        """Add the session's active minutes to today's record."""
        with self._guard:
            rec = self._today_record(user_id, now)
            rec.duration += max(0.0, float(minutes or 0))
            rec.logout_time = now
            return rec.model_copy(deep=True)

    def record_activity(
        self,
        user_id: str,
        activity_type: ActivityType,
        now: datetime,
        item_id: Optional[str] = None,
        module_id: Optional[str] = None,
        jargon_id: Optional[str] = None,
    ) -> AttendanceRecord:
        """Log a completed activity; module and jargon ids are kept unique per day."""
        with self._guard:
            rec = self._today_record(user_id, now)
            rec.activities.append(ActivityRecord(type=activity_type, item_id=item_id, completed_at=now))
            if module_id and module_id not in rec.modules_accessed:
                rec.modules_accessed.append(module_id)
            if jargon_id and jargon_id not in rec.jargons_viewed:
                rec.jargons_viewed.append(jargon_id)
            return rec.model_copy(deep=True)

    def records_between(self, user_id: str, start: date, end: date) -> List[AttendanceRecord]:
        """Records for `start..end` inclusive, by date."""
        with self._guard:
            found = [r.model_copy(deep=True) for (uid, d), r in self._records.items() if uid == user_id and start <= d <= end]
        return sorted(found, key=lambda r: r.date)

    def summary(self, user_id: str, today: date) -> AttendanceSummary:
        records = self.records_between(user_id, date.min, date.max)
        total_minutes = sum(r.duration for r in records)
        since = today - timedelta(days=6)
        recent = [r for r in records if since <= r.date <= today]
        recent_minutes = sum(r.duration for r in recent)
        streak = self.tracker.get(user_id)
        return AttendanceSummary(
            user_id=user_id,
            total_days_active=len(records),
            total_minutes=total_minutes,
            total_hours=round(total_minutes / 60, 1),
            last7_days_active=len(recent),
            last7_minutes=recent_minutes,
            last7_hours=round(recent_minutes / 60, 1),
            message=f"You studied {len(recent)}/7 days in the last week",
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
            current_week=week_id(today),
        )

    def daily_records(self, user_id: str, today: date, days: int = 7) -> List[DailyRecord]:
        """One entry per day for the last `days` days, zero-filled where absent."""
        start = today - timedelta(days=days - 1)
        by_day = {r.date: r for r in self.records_between(user_id, start, today)}
        out = []
        for i in range(days):
            d = start + timedelta(days=i)
            rec = by_day.get(d)
            out.append(
                DailyRecord(
                    date=d,
                    weekday=d.strftime("%a"),
                    minutes=rec.duration if rec else 0,
                    activities_count=len(rec.activities) if rec else 0,
                )
            )
        return out

    def heatmap(self, user_id: str, year: int) -> Heatmap:
        records = self.records_between(user_id, date(year, 1, 1), date(year, 12, 31))
        days = {r.date.isoformat(): HeatmapDay(minutes=r.duration, level=activity_level(r.duration)) for r in records}
        return Heatmap(year=year, total_days=len(days), days=days)
