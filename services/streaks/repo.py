"""Repository layer for streak state.

An in-memory store with an optimistic version check: `save` only succeeds
when the caller read the version currently stored. Swappable for a database
adapter exposing the same `load`/`save` pair.
"""

import threading
from typing import Dict, Optional

from packages.common.errors import StateConflictError
from packages.schemas.streaks import StreakState


class StreakRepo:
    """Versioned per-user `StreakState` storage."""

    def __init__(self) -> None:
        self._states: Dict[str, StreakState] = {}
        self._guard = threading.Lock()

    def load(self, user_id: str) -> StreakState:
        """Return a copy of the stored state, or a fresh version-0 state."""
        with self._guard:
            state = self._states.get(user_id)
        if state is None:
            return StreakState(user_id=user_id)
        return state.model_copy(deep=True)

    def save(self, state: StreakState, expected_version: Optional[int] = None) -> StreakState:
        """Store `state` if nobody saved since it was loaded.

        Args:
            state: New state to persist.
            expected_version: Version the caller read; defaults to `state.version`.

        Returns:
            The stored state, carrying the incremented version.

        Raises:
            StateConflictError: the stored version differs from `expected_version`.
        """
        expected = state.version if expected_version is None else expected_version
        with self._guard:
            current = self._states.get(state.user_id)
            actual = current.version if current is not None else 0
            if actual != expected:
                raise StateConflictError(state.user_id, expected, actual)
            stored = state.model_copy(update={"version": expected + 1}, deep=True)
            self._states[state.user_id] = stored
        return stored.model_copy(deep=True)
