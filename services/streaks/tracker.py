# services/streaks/tracker.py
"""Daily streak tracking with freeze tokens and milestone rewards.

`advance` is the pure per-day transition; `StreakTracker` wraps it with a
per-user lock, the repository's version check and event publishing.

Transition on activity for day `today`:
- same day as the last activity: nothing changes;
- the day after the last activity (or the first activity ever): the streak grows by one;
- a gap of two or more days: the oldest usable freeze is consumed and the
  streak still grows by one; without a freeze the streak restarts at 1.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from prometheus_client import Counter

from packages.common.config import get_settings
from packages.common.errors import InvalidInputError
from packages.common.events import EventBus, get_bus
from packages.schemas.streaks import FreezeReason, Milestone, StreakFreeze, StreakState, StreakUpdate
from .repo import StreakRepo

log = logging.getLogger(__name__)

_FREEZES_USED = Counter("streak_freezes_used_total", "Freeze tokens consumed to keep a streak.")
_RESETS = Counter("streak_resets_total", "Streaks restarted or broken after a missed day.")

MILESTONES: Tuple[Milestone, ...] = (
    Milestone(days=3, reward="streak-3 badge", points=15, description="3-day streak!"),
    Milestone(days=7, reward="streak-7 badge + freeze", points=30, description="1 week streak!", freezes_awarded=1),
    Milestone(days=14, reward="streak-14 badge", points=50, description="2 week streak!"),
    Milestone(
        days=30, reward="streak-30 badge + 2 freezes", points=100, description="1 month streak!", freezes_awarded=2
    ),
    Milestone(days=60, reward="streak-master badge", points=200, description="2 month streak!"),
    Milestone(days=100, reward="century badge + special certificate", points=500, description="100 day streak!"),
)
_MILESTONES_BY_DAYS = {m.days: m for m in MILESTONES}
LOCK_STRIPES = 64


def new_freeze(now: datetime, reason: FreezeReason, streak: int, points_cost: int = 0) -> StreakFreeze:
    return StreakFreeze(
        id=uuid.uuid4().hex,
        created_at=now,
        reason=reason,
        streak_preserved=streak,
        expires_at=now + timedelta(days=get_settings().FREEZE_EXPIRY_DAYS),
        points_cost=points_cost,
    )


def usable_freezes(state: StreakState, now: datetime) -> List[StreakFreeze]:
    """Unused, unexpired tokens, oldest first."""
    return sorted((f for f in state.freezes if f.is_available(now)), key=lambda f: (f.created_at, f.id))


def milestone_for(state: StreakState) -> Optional[Milestone]:
    """Milestone reached by the current streak that has not fired yet."""
    m = _MILESTONES_BY_DAYS.get(state.current_streak)
    if m is None:
        return None
    if state.last_milestone is not None and state.last_milestone >= m.days:
        return None
    return m


def advance(state: StreakState, today: date, now: Optional[datetime] = None) -> StreakUpdate:
    """Apply one day's activity to `state` and return what changed.

    `state` is not modified; the update carries a new state with the same
    version (the repository bumps it on save).
    """
    now = now or datetime.combine(today, time())
    last = state.last_activity_date
    if last is not None and last >= today:
        return StreakUpdate(state=state, changed=False)

    new = state.model_copy(deep=True)
    used: Optional[StreakFreeze] = None
    reset = False

    if last is None or last == today - timedelta(days=1):
        new.current_streak += 1
    else:
        available = usable_freezes(new, now) if new.current_streak > 0 else []
        if available:
            oldest = available[0]
            used = oldest.model_copy(update={"is_used": True, "used_at": now, "streak_preserved": new.current_streak})
            new.freezes = [used if f.id == oldest.id else f for f in new.freezes]
            new.current_streak += 1
        else:
            new.current_streak = 1
            new.last_milestone = None
            reset = True

    new.longest_streak = max(new.longest_streak, new.current_streak)
    new.last_activity_date = today
    new.total_active_days += 1

    milestone = milestone_for(new)
    if milestone is not None:
        new.last_milestone = milestone.days
        new.freezes = new.freezes + [
            new_freeze(now, "earned", new.current_streak) for _ in range(milestone.freezes_awarded)
        ]

    return StreakUpdate(state=new, changed=True, freeze_used=used, milestone=milestone, streak_reset=reset)


class StreakTracker:
    """Per-user streak updates: one logical update per user at a time."""

    def __init__(self, repo: Optional[StreakRepo] = None, bus: Optional[EventBus] = None) -> None:
        self.repo = repo or StreakRepo()
        self._bus = bus
        # fixed stripes; users sharing a stripe just serialize
        self._locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    @property
    def bus(self) -> EventBus:
        return self._bus or get_bus()

    def _lock(self, user_id: str) -> threading.Lock:
        return self._locks[hash(user_id) % len(self._locks)]

    def get(self, user_id: str) -> StreakState:
        return self.repo.load(user_id)

    def record_activity(self, user_id: str, today: date, now: Optional[datetime] = None) -> StreakUpdate:
        """Count activity for `today` and persist the new streak.

        Raises:
            StateConflictError: the stored state changed since it was read.
        """
        with self._lock(user_id):
            state = self.repo.load(user_id)
            update = advance(state, today, now)
            if not update.changed:
                return update
            saved = self.repo.save(update.state, expected_version=state.version)
            update = update.model_copy(update={"state": saved})

        log.info(
            "streak now %s (freeze_used=%s reset=%s)",
            saved.current_streak,
            update.freeze_used is not None,
            update.streak_reset,
            extra={"user_id": user_id},
        )
        self._announce(update)
        return update

    def _announce(self, update: StreakUpdate) -> None:
        s = update.state
        self.bus.publish(
            "streak.updated",
            s.user_id,
            {"current_streak": s.current_streak, "longest_streak": s.longest_streak, "reset": update.streak_reset},
        )
        if update.streak_reset:
            _RESETS.inc()
        if update.freeze_used is not None:
            _FREEZES_USED.inc()
            self.bus.notify(
                s.user_id,
                "Streak Freeze Used!",
                f"Your {update.freeze_used.streak_preserved}-day streak was preserved using a streak freeze.",
                kind="streak-reminder",
            )
        m = update.milestone
        if m is not None:
            self.bus.publish("streak.milestone", s.user_id, m.model_dump())
            self.bus.notify(
                s.user_id,
                f"{m.days}-Day Streak Milestone!",
                f"Amazing! {m.description} You earned {m.points} points!",
                kind="badge-earned",
                priority="high",
            )

    def reconcile(self, user_id: str, today: date, now: Optional[datetime] = None) -> StreakState:
        """Daily check: break the streak after a missed day unless a freeze can cover it.

        The covering freeze is consumed by the next `record_activity`.
        """
        now = now or datetime.combine(today, time())
        with self._lock(user_id):
            state = self.repo.load(user_id)
            last = state.last_activity_date
            missed = last is not None and (today - last).days >= 2
            if not missed or state.current_streak == 0 or usable_freezes(state, now):
                return state
            previous = state.current_streak
            broken = state.model_copy(update={"current_streak": 0, "last_milestone": None})
            saved = self.repo.save(broken, expected_version=state.version)

        _RESETS.inc()
        log.info("streak broken user=%s previous=%s", user_id, previous)
        if previous >= 3:
            self.bus.notify(
                user_id,
                "Streak Lost",
                f"Your {previous}-day streak has ended. Don't worry, you can start building a new one today!",
                kind="streak-reminder",
                priority="high",
            )
        return saved

    def award_freeze(self, user_id: str, now: datetime, reason: FreezeReason = "earned") -> StreakFreeze:
        """Grant a freeze token that expires after the configured number of days."""
        with self._lock(user_id):
            state = self.repo.load(user_id)
            freeze = new_freeze(now, reason, state.current_streak)
            self.repo.save(state.model_copy(update={"freezes": state.freezes + [freeze]}), state.version)

        self.bus.notify(
            user_id,
            "Streak Freeze Earned!",
            "You earned a streak freeze! It will automatically protect your streak if you miss a day.",
            kind="badge-earned",
        )
        return freeze

    def purchase_freeze(self, user_id: str, points: int, now: datetime) -> Tuple[StreakFreeze, int]:
        """Buy a freeze with points; returns the token and the remaining points.

        Raises:
            InvalidInputError: fewer points than the freeze costs.
        """
        cost = get_settings().FREEZE_COST_POINTS
        if points < cost:
            raise InvalidInputError("streak-freeze", f"Not enough points. You need {cost} points.")
        with self._lock(user_id):
            state = self.repo.load(user_id)
            freeze = new_freeze(now, "purchased", state.current_streak, points_cost=cost)
            self.repo.save(state.model_copy(update={"freezes": state.freezes + [freeze]}), state.version)
        self.bus.publish("streak.freeze.purchased", user_id, {"freeze_id": freeze.id, "points_cost": cost})
        return freeze, points - cost

    def available_freezes(self, user_id: str, now: datetime) -> List[StreakFreeze]:
        return usable_freezes(self.repo.load(user_id), now)
