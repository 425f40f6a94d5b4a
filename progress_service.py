import calendar
import datetime
import logging
from typing import Callable

from db import (
    DAY_KEYS,
    AsyncDailyProgressRepository,
    DailyProgressRepository,
    ExerciseRepository,
    UserRepository,
    WorkoutRepository,
)
from errors import ConsistencyFault, InvalidArgumentError, require_positive_id
from tools import ProgressMath, parse_date

logger = logging.getLogger(__name__)


class DailyProgressService:
    """Maintain and read the per-day progress snapshot."""

    def __init__(
        self,
        progress_repo: DailyProgressRepository,
        exercise_repo: ExerciseRepository,
        user_repo: UserRepository,
        workout_repo: WorkoutRepository | None = None,
        today: Callable[[], datetime.date] = datetime.date.today,
        async_progress_repo: AsyncDailyProgressRepository | None = None,
    ) -> None:
        self.progress = progress_repo
        self.async_progress = async_progress_repo or AsyncDailyProgressRepository(
            progress_repo._db_path
        )
        self.exercises = exercise_repo
        self.users = user_repo
        self.workouts = workout_repo
        self.today = today

    def refresh_today(self, user_id: int) -> dict:
        """Recompute today's snapshot for ``user_id``."""
        return self.refresh_date(user_id, self.today())

    def refresh_date(self, user_id: int, date: datetime.date) -> dict:
        """Recompute and upsert the snapshot for ``user_id`` on ``date``.

        ``total`` is the user's whole exercise count and ``completed`` the
        exercises whose completion timestamp falls on ``date``.
        """
        require_positive_id(user_id, "user_id")
        self.users.fetch_detail(user_id)
        day = date.isoformat()
        total = self.exercises.total_for_user(user_id)
        completed = self.exercises.completed_on(user_id, day)
        if completed > total:
            logger.error(
                "snapshot for user %s on %s: %s completed exceeds %s total",
                user_id,
                day,
                completed,
                total,
            )
            raise ConsistencyFault(
                f"user {user_id} has {completed} completed of {total} exercises on {day}"
            )
        self.progress.upsert(user_id, day, total, completed)
        logger.debug("daily progress for user %s on %s: %s/%s", user_id, day, completed, total)
        return ProgressMath.summary(total, completed)

    async def daily_progress(self, user_id: int, date: datetime.date | str) -> dict:
        """Return the stored snapshot for ``date``, zero-filled when absent."""
        require_positive_id(user_id, "user_id")
        day = parse_date(date).isoformat()
        row = await self.async_progress.fetch(user_id, day)
        total, completed = row if row is not None else (0, 0)
        return ProgressMath.summary(total, completed)

    def workout_progress(self, workout_id: int) -> dict:
        require_positive_id(workout_id, "workout_id")
        if self.workouts is not None:
            self.workouts.fetch_detail(workout_id)
        total, completed = self.exercises.counts_for_workout(workout_id)
        return ProgressMath.summary(total, completed)

    def day_key_progress(self, user_id: int, day: str) -> dict:
        """Return progress of the workout bound to weekday slot ``day``."""
        if day not in DAY_KEYS:
            raise InvalidArgumentError("invalid day format, use day1-day7")
        total, completed = self.exercises.counts_for_day_key(user_id, day)
        return ProgressMath.summary(total, completed)

    def workout_summary(self, user_id: int) -> dict:
        """Return how many of the user's workouts are completed."""
        if self.workouts is None:
            return ProgressMath.summary(0, 0)
        total, completed = self.workouts.completion_counts(user_id)
        return ProgressMath.summary(total, completed)

    async def weekly_progress(
        self, user_id: int, start_date: datetime.date | str
    ) -> list[dict]:
        start = parse_date(start_date)
        try:
            end = start + datetime.timedelta(days=6)
        except OverflowError:
            raise InvalidArgumentError("week falls outside the supported date range")
        return await self._range_progress(user_id, start, end)

    async def monthly_progress(self, user_id: int, year: int, month: int) -> list[dict]:
        first, last = month_bounds(year, month)
        return await self._range_progress(user_id, first, last)

    async def _range_progress(
        self, user_id: int, start: datetime.date, end: datetime.date
    ) -> list[dict]:
        rows = await self.async_progress.fetch_range(user_id, start.isoformat(), end.isoformat())
        result: list[dict] = []
        day = start
        while day <= end:
            total, completed = rows.get(day.isoformat(), (0, 0))
            result.append(
                {
                    "date": day.isoformat(),
                    "day": day.strftime("%A"),
                    "progress": ProgressMath.summary(total, completed),
                }
            )
            day += datetime.timedelta(days=1)
        return result


def month_bounds(year: int, month: int) -> tuple[datetime.date, datetime.date]:
    """Return the first and last date of ``month`` in ``year``."""
    if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
        raise InvalidArgumentError("invalid year")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidArgumentError("invalid month")
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, 1), datetime.date(year, month, last_day)
