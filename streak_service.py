import datetime
from typing import Callable

import pandas as pd

from db import DailyProgressRepository
from errors import InvalidArgumentError, require_positive_id
from tools import ProgressMath, day_index


class StreakService:
    """Derive consecutive-day workout streaks from the daily snapshots."""

    def __init__(
        self,
        progress_repo: DailyProgressRepository,
        lookback_days: int = 90,
        today: Callable[[], datetime.date] = datetime.date.today,
    ) -> None:
        self.progress = progress_repo
        self.lookback_days = lookback_days
        self.today = today

    def workout_days(
        self, user_id: int, lookback_days: int, end: datetime.date
    ) -> pd.Series:
        """Return a boolean series, oldest first, flagging days with a completed exercise."""
        span = min(lookback_days, (end - datetime.date.min).days + 1)
        start = end - datetime.timedelta(days=span - 1)
        rows = self.progress.fetch_range(user_id, start.isoformat(), end.isoformat())
        index = day_index(start, end)
        completed = pd.Series(
            [rows.get(d.isoformat(), (0, 0))[1] for d in index],
            index=index,
            dtype="int64",
        )
        return completed > 0

    def compute_streaks(
        self,
        user_id: int,
        lookback_days: int | None = None,
        today: datetime.date | None = None,
    ) -> dict:
        """Return current and longest streak plus the last workout date.

        An empty today does not end a streak that ran through yesterday.
        """
        require_positive_id(user_id, "user_id")
        lookback = self.lookback_days if lookback_days is None else lookback_days
        if isinstance(lookback, bool) or not isinstance(lookback, int) or lookback < 1:
            raise InvalidArgumentError("lookback_days must be a positive integer")
        end = today or self.today()
        has_workout = self.workout_days(user_id, lookback, end)
        if not has_workout.any():
            return {"current_streak": 0, "longest_streak": 0, "last_workout_date": None}
        runs = ProgressMath.runs(has_workout)
        current = int(runs.iloc[-1])
        if current == 0 and len(runs) > 1:
            current = int(runs.iloc[-2])
        last = has_workout[has_workout].index[-1]
        return {
            "current_streak": current,
            "longest_streak": int(runs.max()),
            "last_workout_date": last.isoformat(),
        }
