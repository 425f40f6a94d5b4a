from __future__ import annotations
import datetime
from typing import Callable

import pandas as pd

from db import DailyProgressRepository
from errors import InvalidArgumentError, require_positive_id
from progress_service import month_bounds
from tools import ProgressMath, day_index, parse_date


class StatisticsService:
    """Compute calendar views and windowed completion statistics."""

    def __init__(
        self,
        progress_repo: DailyProgressRepository,
        window_days: int = 30,
        today: Callable[[], datetime.date] = datetime.date.today,
    ) -> None:
        self.progress = progress_repo
        self.window_days = window_days
        self.today = today

    def _frame(
        self, user_id: int, start: datetime.date, end: datetime.date
    ) -> pd.DataFrame:
        """Return one row per day in ``start..end`` with zero-filled counts."""
        rows = self.progress.fetch_range(user_id, start.isoformat(), end.isoformat())
        index = day_index(start, end)
        return pd.DataFrame(
            [rows.get(d.isoformat(), (0, 0)) for d in index],
            index=index,
            columns=["total", "completed"],
        )

    def build_calendar(
        self,
        user_id: int,
        year: int,
        month: int,
        today: datetime.date | None = None,
    ) -> list[dict]:
        """Return day cells covering the full Sunday-to-Saturday weeks of a month."""
        require_positive_id(user_id, "user_id")
        first, last = month_bounds(year, month)
        try:
            start = first - datetime.timedelta(days=(first.weekday() + 1) % 7)
            end = last + datetime.timedelta(days=(5 - last.weekday()) % 7)
        except OverflowError:
            raise InvalidArgumentError("calendar weeks fall outside the supported date range")
        current = today or self.today()
        frame = self._frame(user_id, start, end)
        cells: list[dict] = []
        for day, row in frame.iterrows():
            cells.append(
                {
                    "date": day.isoformat(),
                    "day": day.strftime("%A"),
                    "is_today": day == current,
                    "is_current_month": day.month == month and day.year == year,
                    "progress": ProgressMath.summary(row["total"], row["completed"]),
                }
            )
        return cells

    def window_stats(
        self, user_id: int, start: datetime.date, end: datetime.date
    ) -> dict:
        """Aggregate snapshot counts over the inclusive range ``start..end``."""
        if start > end:
            raise InvalidArgumentError("start date must not be after end date")
        frame = self._frame(user_id, start, end)
        total = int(frame["total"].sum())
        completed = int(frame["completed"].sum())
        workout_days = int((frame["completed"] > 0).sum())
        elapsed = len(frame)
        return {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "elapsed_days": elapsed,
            "total_exercises": total,
            "completed_exercises": completed,
            "workout_days": workout_days,
            "average_completion_rate": ProgressMath.completion_rate(completed, total),
            "average_workouts_per_week": ProgressMath.per_week(workout_days, elapsed),
        }

    def build_stats(
        self, user_id: int, reference_date: datetime.date | str | None = None
    ) -> dict:
        """Return month-to-date and trailing-window statistics."""
        require_positive_id(user_id, "user_id")
        ref = parse_date(reference_date) if reference_date is not None else self.today()
        span = min(self.window_days, (ref - datetime.date.min).days + 1)
        window_start = ref - datetime.timedelta(days=span - 1)
        return {
            "current_month": self.window_stats(user_id, ref.replace(day=1), ref),
            "rolling_window": self.window_stats(user_id, window_start, ref),
        }
