import datetime
import logging
from typing import Callable

from db import ExerciseRepository, WorkoutRepository
from errors import ConsistencyFault, NotFoundError, require_positive_id
from progress_service import DailyProgressService

logger = logging.getLogger(__name__)


class WorkoutCompletionService:
    """Derive a workout's completion state from its exercises."""

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        exercise_repo: ExerciseRepository,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.workouts = workout_repo
        self.exercises = exercise_repo
        self.clock = clock

    def recompute(self, workout_id: int) -> dict:
        """Recompute and persist ``completed``/``completed_at`` for a workout.

        A workout is complete when it has at least one exercise and every
        exercise is complete. The state is always rebuilt from the exercise
        rows, so earlier missed updates are repaired on the next call.
        """
        workout = self.workouts.fetch_detail(workout_id)
        total, completed = self.exercises.counts_for_workout(workout_id)
        if completed > total:
            raise ConsistencyFault(
                f"workout {workout_id} has {completed} completed of {total} exercises"
            )
        done = total > 0 and completed == total
        if done:
            stamp = workout["completed_at"] if workout["completed"] else None
            stamp = stamp or self.clock().isoformat(timespec="seconds")
        else:
            stamp = None
        if self.workouts.set_completion(workout_id, done, stamp) == 0:
            raise ConsistencyFault(f"workout {workout_id} vanished during recompute")
        if done != workout["completed"]:
            logger.info(
                "workout %s completion changed to %s (%s/%s exercises)",
                workout_id,
                done,
                completed,
                total,
            )
        workout.update(completed=done, completed_at=stamp)
        return workout


class ExerciseCompletionService:
    """Toggle exercise completion and cascade into derived progress state."""

    def __init__(
        self,
        exercise_repo: ExerciseRepository,
        workout_completion: WorkoutCompletionService,
        daily_progress: DailyProgressService,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.exercises = exercise_repo
        self.workout_completion = workout_completion
        self.daily_progress = daily_progress
        self.clock = clock

    def mark_complete(self, exercise_id: int) -> dict:
        return self._set_completed(exercise_id, True)

    def mark_incomplete(self, exercise_id: int) -> dict:
        return self._set_completed(exercise_id, False)

    def _set_completed(self, exercise_id: int, completed: bool) -> dict:
        require_positive_id(exercise_id, "exercise_id")
        exercise = self.exercises.fetch_detail(exercise_id)
        if not completed:
            stamp = None
        elif exercise["completed"] and exercise["completed_at"]:
            stamp = exercise["completed_at"]
        else:
            stamp = self.clock().isoformat(timespec="seconds")
        self.exercises.set_completion(exercise_id, completed, stamp)
        # the cascade runs even when the flag did not change
        workout = self.workout_completion.recompute(exercise["workout_id"])
        logger.info(
            "exercise %s marked %s",
            exercise_id,
            "complete" if completed else "incomplete",
            extra={
                "progress_exercise_id": exercise_id,
                "progress_workout_id": workout["id"],
                "progress_user_id": workout["user_id"],
            },
        )
        try:
            self.daily_progress.refresh_today(workout["user_id"])
        except NotFoundError as e:
            raise ConsistencyFault(
                f"owner of workout {workout['id']} is missing"
            ) from e
        return self.exercises.fetch_detail(exercise_id)
