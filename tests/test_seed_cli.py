import os
import sys
import json
import logging

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import main
from db import ExerciseRepository, WorkoutRepository
from seed_sample_data import seed


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_seed_creates_week_plan(tmp_path):
    db_file = str(tmp_path / "seed.db")
    user_id = seed(db_file)
    assert user_id == 1
    workouts = WorkoutRepository(db_file).fetch_for_user(user_id)
    assert [w["day"] for w in workouts] == [f"day{i}" for i in range(1, 8)]
    exercises = ExerciseRepository(db_file)
    day1 = exercises.fetch_for_workout(workouts[0]["id"])
    assert {e["category"] for e in day1} == {"warmup", "workout", "cooldown"}
    assert len(exercises.fetch_for_workout(workouts[3]["id"])) == 2
    assert seed(db_file) is None


def test_cli_commands(tmp_path, capsys):
    db_file = str(tmp_path / "cli.db")
    config = str(tmp_path / "settings.yaml")
    main(["--config", config, "--db", db_file, "seed"])
    assert json.loads(capsys.readouterr().out) == {"user_id": 1}

    exercises = ExerciseRepository(db_file)
    eid = exercises.fetch_for_workout(1)[0]["id"]
    exercises.set_completion(eid, True, "2024-03-05T08:00:00")

    main(["--config", config, "--db", db_file, "refresh", "--user", "1", "--date", "2024-03-05"])
    out = json.loads(capsys.readouterr().out)
    assert out[0]["date"] == "2024-03-05"
    assert out[0]["completed"] == 1

    main(["--config", config, "--db", db_file, "streak", "--user", "1", "--lookback", "30"])
    streak = json.loads(capsys.readouterr().out)
    assert set(streak) == {"current_streak", "longest_streak", "last_workout_date"}

    main(["--config", config, "--db", db_file, "calendar", "--user", "1", "--year", "2024", "--month", "3"])
    cells = json.loads(capsys.readouterr().out)
    marked = [c for c in cells if c["date"] == "2024-03-05"]
    assert marked[0]["progress"]["completed"] == 1

    main(["--config", config, "--db", db_file, "stats", "--user", "1", "--date", "2024-03-05"])
    stats = json.loads(capsys.readouterr().out)
    assert stats["current_month"]["workout_days"] == 1

    backup = str(tmp_path / "backup.db")
    main(["--config", config, "--db", db_file, "backup", "--out", backup])
    assert os.path.exists(backup)
