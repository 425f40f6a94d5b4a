import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    AsyncDailyProgressRepository,
    DailyProgressRepository,
    ExerciseRepository,
    UserRepository,
)
from errors import InvalidArgumentError
from progress_service import DailyProgressService


@pytest.fixture
def snapshots(tmp_path):
    db_file = str(tmp_path / "progress.db")
    users = UserRepository(db_file)
    user_id = users.create("frank", "frank@example.com", "pw")
    daily = DailyProgressRepository(db_file)
    service = DailyProgressService(
        daily,
        ExerciseRepository(db_file),
        users,
        async_progress_repo=AsyncDailyProgressRepository(db_file),
    )
    return db_file, daily, service, user_id


@pytest.mark.asyncio
async def test_async_daily_progress_repo(snapshots):
    db_file, daily, _service, user_id = snapshots
    daily.upsert(user_id, "2024-03-05", 6, 4)
    repo = AsyncDailyProgressRepository(db_file)
    assert await repo.fetch(user_id, "2024-03-05") == (6, 4)
    assert await repo.fetch(user_id, "2024-03-06") is None
    rows = await repo.fetch_range(user_id, "2024-03-01", "2024-03-31")
    assert rows == {"2024-03-05": (6, 4)}


@pytest.mark.asyncio
async def test_daily_progress_reads_snapshot(snapshots):
    _db_file, daily, service, user_id = snapshots
    daily.upsert(user_id, "2024-03-05", 8, 1)
    assert await service.daily_progress(user_id, "2024-03-05") == {
        "total": 8,
        "completed": 1,
        "percentage": 13,
    }
    assert await service.daily_progress(user_id, "2024-01-01") == {
        "total": 0,
        "completed": 0,
        "percentage": 0,
    }
    with pytest.raises(InvalidArgumentError):
        await service.daily_progress(user_id, "01/01/2024")


@pytest.mark.asyncio
async def test_weekly_and_monthly(snapshots):
    _db_file, daily, service, user_id = snapshots
    daily.upsert(user_id, "2024-03-06", 4, 2)
    week = await service.weekly_progress(user_id, "2024-03-04")
    assert len(week) == 7
    assert week[0]["date"] == "2024-03-04"
    assert week[0]["day"] == "Monday"
    assert week[2]["progress"] == {"total": 4, "completed": 2, "percentage": 50}
    month = await service.monthly_progress(user_id, 2024, 2)
    assert len(month) == 29
    assert month[-1]["date"] == "2024-02-29"
    with pytest.raises(InvalidArgumentError):
        await service.weekly_progress(user_id, "9999-12-30")


@pytest.mark.asyncio
async def test_default_async_repo_shares_database(tmp_path):
    db_file = str(tmp_path / "default.db")
    users = UserRepository(db_file)
    user_id = users.create("hana", "hana@example.com", "pw")
    daily = DailyProgressRepository(db_file)
    service = DailyProgressService(daily, ExerciseRepository(db_file), users)
    daily.upsert(user_id, "2024-03-05", 2, 2)
    progress = await service.daily_progress(user_id, "2024-03-05")
    assert progress["percentage"] == 100
