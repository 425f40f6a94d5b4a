import datetime
import math

import pandas as pd

from errors import InvalidArgumentError


class ProgressMath:
    """Provides the arithmetic shared by progress, streak and statistics views."""

    @staticmethod
    def percentage(completed: int, total: int) -> int:
        """Return ``completed`` as a whole-number percentage of ``total``."""
        if total <= 0:
            return 0
        return int(round_half_up(completed / total * 100))

    @classmethod
    def summary(cls, total: int, completed: int) -> dict:
        return {
            "total": int(total),
            "completed": int(completed),
            "percentage": cls.percentage(completed, total),
        }

    @staticmethod
    def completion_rate(completed: int, total: int) -> float:
        """Return ``completed / total`` in percent rounded to two decimals."""
        if total <= 0:
            return 0.0
        return round_half_up(completed / total * 100, 2)

    @staticmethod
    def per_week(days_with_workout: int, elapsed_days: int) -> float:
        """Return the average number of workout days per seven elapsed days."""
        if days_with_workout <= 0 or elapsed_days <= 0:
            return 0.0
        return round_half_up(days_with_workout / (elapsed_days / 7), 2)

    @staticmethod
    def runs(flags: pd.Series) -> pd.Series:
        """Return the length of the run of ``True`` values ending at each position."""
        flags = flags.astype(bool)
        groups = (~flags).cumsum()
        return flags.astype(int).groupby(groups).cumsum()


def round_half_up(value: float, digits: int = 0) -> float:
    """Round ``value`` to ``digits`` decimals with halves rounded up.

    The built-in ``round`` rounds halves to even, so 12.5 would become 12.
    """
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def day_index(start: datetime.date, end: datetime.date) -> pd.Index:
    """Return every calendar date in ``start..end`` as an index of ``date`` objects.

    Plain dates are used instead of timestamps so that any year is accepted.
    """
    days = (end - start).days + 1
    return pd.Index([start + datetime.timedelta(days=i) for i in range(max(days, 0))])


def parse_date(value: datetime.date | str) -> datetime.date:
    """Return ``value`` as a date, accepting ``YYYY-MM-DD`` strings."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value))
    except ValueError:
        raise InvalidArgumentError("invalid date format, use YYYY-MM-DD")
