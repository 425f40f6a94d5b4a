import logging

from db import UserRepository, WorkoutRepository, ExerciseRepository

logger = logging.getLogger(__name__)

WARMUP = [
    ("5 minutes of light cardio", 1, "5 minutes"),
    ("Arm circles", 1, "10 each direction"),
    ("Bodyweight squats", 1, "15 reps"),
]
COOLDOWN = [
    ("Quad stretch", 1, "30s each"),
    ("Hamstring stretch", 1, "30s each"),
    ("Chest stretch", 1, "30s"),
]

WEEK_PLAN = [
    (
        "day1",
        "Full Body Strength A",
        "Strength Training",
        [("Goblet Squats", 3, "8-12 reps"), ("Dumbbell Bench Press", 3, "8-12 reps"), ("Plank", 3, "30-60 seconds")],
    ),
    (
        "day2",
        "Cardio & Core",
        "Cardiovascular Health & Core Strength",
        [("Steady-State Cardio", 1, "20-30 minutes"), ("Crunches", 3, "15-20 reps"), ("Glute Bridges", 3, "15-20 reps")],
    ),
    (
        "day3",
        "Full Body Strength B",
        "Strength Training",
        [("Romanian Deadlifts", 3, "10-15 reps"), ("Push-Ups", 3, "to failure"), ("Leg Raises", 3, "15-20 reps")],
    ),
    (
        "day4",
        "Active Recovery",
        "Rest & Mobility",
        [("Walk", 1, "20-30 minutes"), ("Light stretching or foam rolling", 1, "10-15 minutes")],
    ),
    (
        "day5",
        "Full Body Strength A",
        "Strength Training",
        [("Goblet Squats", 3, "8-12 reps"), ("Dumbbell Rows", 3, "8-12 reps per arm"), ("Lunges", 3, "10-12 reps per leg")],
    ),
    (
        "day6",
        "Cardio & Core",
        "Cardiovascular Health & Core Strength",
        [("Steady-State Cardio", 1, "20-30 minutes"), ("Bird-Dog", 3, "10 reps per side")],
    ),
    (
        "day7",
        "Rest Day",
        "Full Recovery",
        [("Quality sleep", 1, "7-9 hours"), ("Nutrition and hydration", 1, "Throughout the day")],
    ),
]

RECOVERY_DAYS = {"day4", "day7"}


def seed(db_path: str = "fitness_tracker.db") -> int | None:
    """Insert a demo user with a seven-day plan; return its id or ``None`` if users exist."""
    users = UserRepository(db_path)
    if users.fetch_all_ids():
        logger.info("database already contains users")
        return None
    workouts = WorkoutRepository(db_path)
    exercises = ExerciseRepository(db_path)
    user_id = users.create("testuser", "test@example.com", "password123")
    for day, title, focus, main in WEEK_PLAN:
        wid = workouts.create(user_id, day, title, focus)
        if day in RECOVERY_DAYS:
            blocks = [("workout", main)]
        else:
            blocks = [("warmup", WARMUP), ("workout", main), ("cooldown", COOLDOWN)]
        for category, items in blocks:
            for name, sets, reps in items:
                exercises.add(wid, name, category, sets, reps)
    logger.info("seeded demo user %s", user_id)
    return user_id


if __name__ == "__main__":
    seed()
