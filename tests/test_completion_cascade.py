import os
import sys
import datetime
import unittest
from unittest import mock

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    UserRepository,
    WorkoutRepository,
    ExerciseRepository,
    DailyProgressRepository,
)
from errors import ConsistencyFault, InvalidArgumentError, NotFoundError
from completion_service import ExerciseCompletionService, WorkoutCompletionService
from progress_service import DailyProgressService


class FixedClock:
    def __init__(self, now: datetime.datetime) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now


class CompletionCascadeTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cascade.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.clock = FixedClock(datetime.datetime(2024, 3, 5, 9, 30))
        self.users = UserRepository(self.db_path)
        self.workouts = WorkoutRepository(self.db_path)
        self.exercises = ExerciseRepository(self.db_path)
        self.daily = DailyProgressRepository(self.db_path)
        self.progress = DailyProgressService(
            self.daily,
            self.exercises,
            self.users,
            self.workouts,
            today=lambda: self.clock().date(),
        )
        self.workout_completion = WorkoutCompletionService(
            self.workouts, self.exercises, clock=self.clock
        )
        self.service = ExerciseCompletionService(
            self.exercises,
            self.workout_completion,
            self.progress,
            clock=self.clock,
        )
        self.user_id = self.users.create("alice", "alice@example.com", "pw")
        self.workout_id = self.workouts.create(
            self.user_id, "day1", "Full Body A", "Strength"
        )
        self.ex_ids = [
            self.exercises.add(self.workout_id, "Squat", "workout", 3, "8-12"),
            self.exercises.add(self.workout_id, "Press", "workout", 3, "8-12"),
            self.exercises.add(self.workout_id, "Plank", "cooldown", 3, "30s"),
        ]

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_three_exercise_scenario(self) -> None:
        ex = self.service.mark_complete(self.ex_ids[0])
        self.assertIs(ex["completed"], True)
        self.assertEqual(ex["completed_at"], "2024-03-05T09:30:00")
        self.assertFalse(self.workouts.fetch_detail(self.workout_id)["completed"])
        self.assertEqual(
            self.progress.workout_progress(self.workout_id),
            {"total": 3, "completed": 1, "percentage": 33},
        )
        self.assertEqual(self.daily.fetch(self.user_id, "2024-03-05"), (3, 1))

        self.service.mark_complete(self.ex_ids[1])
        self.service.mark_complete(self.ex_ids[2])
        workout = self.workouts.fetch_detail(self.workout_id)
        self.assertTrue(workout["completed"])
        self.assertEqual(workout["completed_at"], "2024-03-05T09:30:00")
        self.assertEqual(self.daily.fetch(self.user_id, "2024-03-05"), (3, 3))

        ex = self.service.mark_incomplete(self.ex_ids[1])
        self.assertIs(ex["completed"], False)
        self.assertIsNone(ex["completed_at"])
        workout = self.workouts.fetch_detail(self.workout_id)
        self.assertFalse(workout["completed"])
        self.assertIsNone(workout["completed_at"])
        self.assertEqual(self.daily.fetch(self.user_id, "2024-03-05"), (3, 2))

    def test_mark_complete_is_idempotent(self) -> None:
        first = self.service.mark_complete(self.ex_ids[0])
        self.clock.now = datetime.datetime(2024, 3, 5, 11, 0)
        second = self.service.mark_complete(self.ex_ids[0])
        self.assertEqual(first, second)
        self.assertEqual(self.daily.fetch(self.user_id, "2024-03-05"), (3, 1))

    def test_cascade_repairs_drifted_workout(self) -> None:
        self.workouts.set_completion(self.workout_id, True, "2024-01-01T00:00:00")
        self.service.mark_incomplete(self.ex_ids[0])
        workout = self.workouts.fetch_detail(self.workout_id)
        self.assertFalse(workout["completed"])
        self.assertIsNone(workout["completed_at"])

    def test_workout_without_exercises_is_never_complete(self) -> None:
        wid = self.workouts.create(self.user_id, "day2", "Empty", "None")
        result = self.workout_completion.recompute(wid)
        self.assertFalse(result["completed"])
        self.assertIsNone(result["completed_at"])

    def test_completion_kept_on_recompute(self) -> None:
        for eid in self.ex_ids:
            self.service.mark_complete(eid)
        self.clock.now = datetime.datetime(2024, 3, 6, 8, 0)
        result = self.workout_completion.recompute(self.workout_id)
        self.assertTrue(result["completed"])
        self.assertEqual(result["completed_at"], "2024-03-05T09:30:00")

    def test_invalid_and_missing_ids(self) -> None:
        for bad in (0, -1, True, "1", None):
            with self.assertRaises(InvalidArgumentError):
                self.service.mark_complete(bad)
        with self.assertRaises(NotFoundError):
            self.service.mark_complete(999)
        with self.assertRaises(NotFoundError):
            self.workout_completion.recompute(999)

    def test_completed_at_requires_completed_flag(self) -> None:
        with self.assertRaises(ValueError):
            self.exercises.set_completion(self.ex_ids[0], True, None)
        with self.assertRaises(ValueError):
            self.exercises.set_completion(self.ex_ids[0], False, "2024-03-05T09:30:00")

    def test_missing_owner_is_consistency_fault(self) -> None:
        with mock.patch.object(
            self.users, "fetch_detail", side_effect=NotFoundError("user not found")
        ):
            with self.assertRaises(ConsistencyFault):
                self.service.mark_complete(self.ex_ids[0])


if __name__ == "__main__":
    unittest.main()
