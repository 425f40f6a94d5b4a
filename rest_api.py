import datetime
import logging
import time
from contextlib import contextmanager
from typing import Callable

from fastapi import FastAPI, HTTPException, Response, APIRouter, Request, Header, Depends
from fastapi.responses import JSONResponse

from config import APP_VERSION, load_settings
from db import (
    UserRepository,
    WorkoutRepository,
    ExerciseRepository,
    DailyProgressRepository,
    AsyncDailyProgressRepository,
)
from errors import (
    ConflictError,
    ConsistencyFault,
    InvalidArgumentError,
    NotFoundError,
    require_positive_id,
)
from completion_service import ExerciseCompletionService, WorkoutCompletionService
from log_setup import setup_logging
from progress_service import DailyProgressService
from stats_service import StatisticsService
from streak_service import StreakService
from tools import parse_date

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple in-memory rate limiter."""

    def __init__(self, limit: int = 60, window: int = 60) -> None:
        self.limit = limit
        self.window = window
        self.requests: dict[str, list[float]] = {}

    async def __call__(self, request: Request, call_next):
        ip = request.client.host if request.client else "anon"
        now = time.time()
        history = [t for t in self.requests.get(ip, []) if now - t < self.window]
        if len(history) >= self.limit:
            return Response("rate limit exceeded", status_code=429)
        history.append(now)
        self.requests[ip] = history
        return await call_next(request)


class ProgressAPI:
    """Provides REST endpoints for workout completion and progress tracking."""

    def __init__(
        self,
        db_path: str = "fitness_tracker.db",
        *,
        lookback_days: int = 90,
        window_days: int = 30,
        rate_limit: int | None = None,
        rate_window: int = 60,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.db_path = db_path
        self.clock = clock
        self.users = UserRepository(db_path)
        self.workouts = WorkoutRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.daily = DailyProgressRepository(db_path)
        self.async_daily = AsyncDailyProgressRepository(db_path)
        self.progress = DailyProgressService(
            self.daily,
            self.exercises,
            self.users,
            self.workouts,
            today=self.today,
            async_progress_repo=self.async_daily,
        )
        self.workout_completion = WorkoutCompletionService(
            self.workouts, self.exercises, clock=clock
        )
        self.completion = ExerciseCompletionService(
            self.exercises,
            self.workout_completion,
            self.progress,
            clock=clock,
        )
        self.streaks = StreakService(self.daily, lookback_days, today=self.today)
        self.statistics = StatisticsService(self.daily, window_days, today=self.today)
        self.app = FastAPI(
            title="Progress API",
            description="REST API for workout completion and progress tracking",
            version=APP_VERSION,
        )
        if rate_limit is not None:
            limiter = RateLimiter(limit=rate_limit, window=rate_window)
            self.app.middleware("http")(limiter)
        self.app.add_exception_handler(ConsistencyFault, self._consistency_fault)
        self._setup_routes()

    def today(self) -> datetime.date:
        return self.clock().date()

    @staticmethod
    async def _consistency_fault(request: Request, exc: ConsistencyFault):
        logger.error(
            "consistency fault on %s %s",
            request.method,
            request.url.path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return JSONResponse(status_code=500, content={"detail": "internal error"})

    @staticmethod
    @contextmanager
    def _http_errors():
        """Translate expected core errors into HTTP responses."""
        try:
            yield
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidArgumentError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))

    def _owned_workout(self, workout_id: int, user_id: int) -> dict:
        workout = self.workouts.fetch_detail(workout_id)
        if workout["user_id"] != user_id:
            raise NotFoundError("workout not found")
        return workout

    def _owned_exercise(self, exercise_id: int, user_id: int) -> dict:
        exercise = self.exercises.fetch_detail(exercise_id)
        workout = self.workouts.fetch_detail(exercise["workout_id"])
        if workout["user_id"] != user_id:
            raise NotFoundError("exercise not found")
        return exercise

    def _setup_routes(self) -> None:
        workouts_router = APIRouter(prefix="/workouts", tags=["Workouts"])
        exercises_router = APIRouter(prefix="/exercises", tags=["Exercises"])
        progress_router = APIRouter(prefix="/progress", tags=["Progress"])

        def current_user(x_user_id: str | None = Header(None)) -> int:
            """Return the user id supplied by the identity layer."""
            if x_user_id is None:
                raise HTTPException(status_code=401, detail="user id required")
            try:
                user_id = int(x_user_id.strip())
            except ValueError:
                raise HTTPException(
                    status_code=400, detail="user_id must be a positive integer"
                )
            with self._http_errors():
                require_positive_id(user_id, "user_id")
                self.users.fetch_detail(user_id)
            return user_id

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            self.users.fetch_all_ids()
            return {"status": "ok"}

        @self.app.post("/users")
        def create_user(username: str, email: str, password: str):
            with self._http_errors():
                uid = self.users.create(username, email, password)
            return {"id": uid}

        @self.app.delete("/users/{user_id}")
        def delete_user(user_id: int, current: int = Depends(current_user)):
            if user_id != current:
                raise HTTPException(status_code=404, detail="user not found")
            with self._http_errors():
                self.users.delete(user_id)
            return {"status": "deleted"}

        @workouts_router.get("")
        def list_workouts(user_id: int = Depends(current_user)):
            return self.workouts.fetch_for_user(user_id)

        @workouts_router.post("")
        def create_workout(
            day: str, title: str, focus: str, user_id: int = Depends(current_user)
        ):
            with self._http_errors():
                wid = self.workouts.create(user_id, day, title, focus)
            return {"id": wid}

        @workouts_router.get("/progress/summary")
        def workout_summary(user_id: int = Depends(current_user)):
            return self.progress.workout_summary(user_id)

        @workouts_router.get("/day/{day}")
        def get_workout_by_day(day: str, user_id: int = Depends(current_user)):
            workout = self.workouts.fetch_by_day(user_id, day)
            if workout is None:
                raise HTTPException(status_code=404, detail="workout not found")
            workout["exercises"] = self.exercises.fetch_for_workout(workout["id"])
            return workout

        @workouts_router.get("/{workout_id}")
        def get_workout(workout_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                workout = self._owned_workout(workout_id, user_id)
            workout["exercises"] = self.exercises.fetch_for_workout(workout_id)
            return workout

        @workouts_router.put("/{workout_id}")
        def update_workout(
            workout_id: int, title: str, focus: str, user_id: int = Depends(current_user)
        ):
            with self._http_errors():
                self._owned_workout(workout_id, user_id)
                self.workouts.update(workout_id, title, focus)
            return {"status": "updated"}

        @workouts_router.delete("/{workout_id}")
        def delete_workout(workout_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                self._owned_workout(workout_id, user_id)
                self.workouts.delete(workout_id)
                self.progress.refresh_today(user_id)
            return {"status": "deleted"}

        @workouts_router.get("/{workout_id}/progress")
        def workout_progress(workout_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                self._owned_workout(workout_id, user_id)
                return self.progress.workout_progress(workout_id)

        @workouts_router.post("/{workout_id}/exercises")
        def add_exercise(
            workout_id: int,
            name: str,
            category: str,
            sets: int | None = None,
            reps: str | None = None,
            notes: str | None = None,
            user_id: int = Depends(current_user),
        ):
            with self._http_errors():
                self._owned_workout(workout_id, user_id)
                eid = self.exercises.add(workout_id, name, category, sets, reps, notes)
                self.workout_completion.recompute(workout_id)
            return {"id": eid}

        @workouts_router.get("/{workout_id}/exercises")
        def list_exercises(
            workout_id: int,
            category: str | None = None,
            user_id: int = Depends(current_user),
        ):
            with self._http_errors():
                self._owned_workout(workout_id, user_id)
            return self.exercises.fetch_for_workout(workout_id, category)

        @exercises_router.get("/{exercise_id}")
        def get_exercise(exercise_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                return self._owned_exercise(exercise_id, user_id)

        @exercises_router.put("/{exercise_id}")
        def update_exercise(
            exercise_id: int,
            name: str | None = None,
            category: str | None = None,
            sets: int | None = None,
            reps: str | None = None,
            notes: str | None = None,
            user_id: int = Depends(current_user),
        ):
            fields = {
                "name": name,
                "category": category,
                "sets": sets,
                "reps": reps,
                "notes": notes,
            }
            with self._http_errors():
                self._owned_exercise(exercise_id, user_id)
                self.exercises.update(
                    exercise_id, **{k: v for k, v in fields.items() if v is not None}
                )
            return {"status": "updated"}

        @exercises_router.delete("/{exercise_id}")
        def delete_exercise(exercise_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                exercise = self._owned_exercise(exercise_id, user_id)
                self.exercises.remove(exercise_id)
                self.workout_completion.recompute(exercise["workout_id"])
                self.progress.refresh_today(user_id)
            return {"status": "deleted"}

        @exercises_router.patch("/{exercise_id}/complete")
        def complete_exercise(exercise_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                self._owned_exercise(exercise_id, user_id)
                return self.completion.mark_complete(exercise_id)

        @exercises_router.patch("/{exercise_id}/incomplete")
        def incomplete_exercise(exercise_id: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                self._owned_exercise(exercise_id, user_id)
                return self.completion.mark_incomplete(exercise_id)

        @progress_router.get("/daily/{date}")
        async def daily_progress(date: str, user_id: int = Depends(current_user)):
            with self._http_errors():
                day = parse_date(date).isoformat()
                progress = await self.progress.daily_progress(user_id, day)
            return {"date": day, "progress": progress}

        @progress_router.get("/weekly/{start_date}")
        async def weekly_progress(start_date: str, user_id: int = Depends(current_user)):
            with self._http_errors():
                return await self.progress.weekly_progress(user_id, start_date)

        @progress_router.get("/monthly/{year}/{month}")
        async def monthly_progress(year: int, month: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                return await self.progress.monthly_progress(user_id, year, month)

        @progress_router.get("/day/{day}")
        def day_key_progress(day: str, user_id: int = Depends(current_user)):
            with self._http_errors():
                return self.progress.day_key_progress(user_id, day)

        @progress_router.get("/calendar/{year}/{month}")
        def calendar_view(year: int, month: int, user_id: int = Depends(current_user)):
            with self._http_errors():
                return self.statistics.build_calendar(user_id, year, month)

        @progress_router.get("/streak")
        def streak(user_id: int = Depends(current_user)):
            with self._http_errors():
                return self.streaks.compute_streaks(user_id)

        @progress_router.get("/stats")
        def stats(reference_date: str | None = None, user_id: int = Depends(current_user)):
            with self._http_errors():
                return self.statistics.build_stats(user_id, reference_date)

        self.app.include_router(workouts_router)
        self.app.include_router(exercises_router)
        self.app.include_router(progress_router)


def create_app(yaml_path: str = "settings.yaml") -> FastAPI:
    """Build the ASGI app from ``settings.yaml`` and the environment."""
    settings = load_settings(yaml_path)
    setup_logging(settings.log_format, settings.log_level)
    api = ProgressAPI(
        settings.db_path,
        lookback_days=settings.streak_lookback_days,
        window_days=settings.stats_window_days,
        rate_limit=settings.rate_limit,
        rate_window=settings.rate_window,
    )
    return api.app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())
