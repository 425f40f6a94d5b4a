import datetime
import unittest
import sys
import os

from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import ProgressClient
from rest_api import ProgressAPI


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.api = ProgressAPI(
            db_path=self.db_path, clock=lambda: datetime.datetime(2024, 3, 5, 7, 0)
        )
        user_id = self.api.users.create("gina", "gina@example.com", "pw")
        self.client = ProgressClient(
            user_id, base_url="http://testserver", session=TestClient(self.api.app)
        )

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_workflow(self) -> None:
        wid = self.client.create_workout("day3", "Full Body B", "Strength")
        eid = self.client.add_exercise(wid, "Push-Ups", "workout", sets=3, reps="max")
        self.assertEqual(self.client.complete(eid)["completed"], True)
        self.assertEqual(
            self.client.workout_progress(wid),
            {"total": 1, "completed": 1, "percentage": 100},
        )
        self.assertEqual(self.client.streak()["current_streak"], 1)
        self.assertEqual(len(self.client.calendar(2024, 3)) % 7, 0)
        self.assertEqual(
            self.client.stats("2024-03-05")["current_month"]["completed_exercises"], 1
        )
        self.assertEqual(self.client.uncomplete(eid)["completed"], False)

    def test_error_status_raises(self) -> None:
        with self.assertRaises(Exception):
            self.client.complete(999)


if __name__ == '__main__':
    unittest.main()
