"""Streak, freeze-token, attendance and weekly-report schemas."""

from datetime import date, datetime
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

FreezeReason = Literal["earned", "purchased", "admin-granted", "automatic"]
ActivityType = Literal["lesson", "quiz", "assignment", "flashcard", "library", "login"]
Trend = Literal["improving", "declining", "stable"]


class StreakFreeze(BaseModel):
    """A consumable token that preserves a streak across a missed day."""
    id: str
    created_at: datetime
    reason: FreezeReason = "earned"
    streak_preserved: int = 0
    expires_at: Optional[datetime] = None
    is_used: bool = False
    used_at: Optional[datetime] = None
    points_cost: int = 0

    def is_available(self, now: datetime) -> bool:
        """True while unused and not past `expires_at`."""
        if self.is_used:
            return False
        return self.expires_at is None or self.expires_at > now


class StreakState(BaseModel):
    """Per-user streak counters; `version` backs the optimistic update check."""
    user_id: str
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None
    freezes: List[StreakFreeze] = []
    last_milestone: Optional[int] = None
    total_active_days: int = 0
    version: int = 0

    def freezes_available(self, now: datetime) -> int:
        return sum(1 for f in self.freezes if f.is_available(now))


class Milestone(BaseModel):
    model_config = ConfigDict(frozen=True)

    days: int
    reward: str
    points: int
    description: str
    freezes_awarded: int = 0


class StreakUpdate(BaseModel):
    """What a single `record_activity` call changed."""
    model_config = ConfigDict(frozen=True)

    state: StreakState
    changed: bool
    freeze_used: Optional[StreakFreeze] = None
    milestone: Optional[Milestone] = None
    streak_reset: bool = False


class ActivityRecord(BaseModel):
    type: ActivityType
    item_id: Optional[str] = None
    completed_at: datetime


class AttendanceRecord(BaseModel):
    """One user's activity for one calendar day."""
    user_id: str
    date: date
    login_time: Optional[datetime] = None
    logout_time: Optional[datetime] = None
    duration: float = 0  # minutes
    activities: List[ActivityRecord] = []
    modules_accessed: List[str] = []
    jargons_viewed: List[str] = []


class DailyActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    day_name: str
    minutes: float = 0
    lessons_completed: int = 0
    quizzes_completed: int = 0
    assignments_completed: int = 0
    jargons_learned: int = 0


class WeeklyComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    days_active_change: int = 0
    minutes_change: float = 0
    lessons_change: int = 0
    trend: Trend = "stable"


class WeeklyGoal(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_minutes: float
    target_days: int
    achieved: bool


class WeeklyReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    week_id: str
    week_start: date
    week_end: date
    days_active: int
    total_minutes: float
    daily_activity: Tuple[DailyActivity, ...]
    lessons_completed: int
    quizzes_completed: int
    assignments_submitted: int
    jargons_learned: int
    streak_at_week_end: int
    streak_maintained: bool
    comparison: WeeklyComparison
    weekly_goal: WeeklyGoal
    motivational_message: str
    freeze_awarded: bool = False


class DailyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    weekday: str
    minutes: float = 0
    activities_count: int = 0


class AttendanceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    total_days_active: int
    total_minutes: float
    total_hours: float
    last7_days_active: int
    last7_minutes: float
    last7_hours: float
    message: str
    current_streak: int
    longest_streak: int
    current_week: str


class HeatmapDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    minutes: float
    level: int = Field(ge=0, le=4)


class Heatmap(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    total_days: int
    days: Dict[str, HeatmapDay]
