import requests
from typing import Optional

class ProgressClient:
    """Simple REST client for the progress API."""

    def __init__(
        self,
        user_id: int,
        base_url: str = "http://localhost:8000",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.headers = {"X-User-Id": str(user_id)}

    def _request(self, method: str, path: str, **params):
        resp = self.session.request(
            method,
            f"{self.base_url}{path}",
            params={k: v for k, v in params.items() if v is not None},
            headers=self.headers,
        )
        resp.raise_for_status()
        return resp.json()

    def create_workout(self, day: str, title: str, focus: str) -> int:
        return self._request("POST", "/workouts", day=day, title=title, focus=focus)["id"]

    def add_exercise(
        self,
        workout_id: int,
        name: str,
        category: str,
        sets: Optional[int] = None,
        reps: Optional[str] = None,
    ) -> int:
        return self._request(
            "POST",
            f"/workouts/{workout_id}/exercises",
            name=name,
            category=category,
            sets=sets,
            reps=reps,
        )["id"]

    def complete(self, exercise_id: int) -> dict:
        return self._request("PATCH", f"/exercises/{exercise_id}/complete")

    def uncomplete(self, exercise_id: int) -> dict:
        return self._request("PATCH", f"/exercises/{exercise_id}/incomplete")

    def workout_progress(self, workout_id: int) -> dict:
        return self._request("GET", f"/workouts/{workout_id}/progress")

    def streak(self) -> dict:
        return self._request("GET", "/progress/streak")

    def calendar(self, year: int, month: int) -> list:
        return self._request("GET", f"/progress/calendar/{year}/{month}")

    def stats(self, reference_date: Optional[str] = None) -> dict:
        return self._request("GET", "/progress/stats", reference_date=reference_date)
