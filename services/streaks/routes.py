# services/streaks/routes.py
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from packages.schemas.streaks import StreakState, StreakUpdate
from .tracker import StreakTracker

router = APIRouter()
tracker = StreakTracker()


class ActivityIn(BaseModel):
    day: Optional[date] = None


@router.post("/streaks/{user_id}/activity", response_model=StreakUpdate, tags=["streaks"])
def record_activity(user_id: str, body: ActivityIn) -> StreakUpdate:
    """Count today's (or `day`'s) activity toward the user's streak."""
    now = datetime.now()
    return tracker.record_activity(user_id, body.day or now.date(), now)


@router.get("/streaks/{user_id}", response_model=StreakState, tags=["streaks"])
def get_streak(user_id: str) -> StreakState:
    return tracker.get(user_id)
