import argparse
import datetime
import json
import shutil

from config import load_settings
from db import Database, DailyProgressRepository, ExerciseRepository, UserRepository, WorkoutRepository
from log_setup import setup_logging
from migrate import migrate
from progress_service import DailyProgressService
from seed_sample_data import seed
from stats_service import StatisticsService
from streak_service import StreakService
from tools import parse_date


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def refresh_snapshots(db_path: str, user_id: int | None, date: datetime.date) -> list[dict]:
    """Recompute the snapshot of ``date`` for one user or for every user."""
    users = UserRepository(db_path)
    service = DailyProgressService(
        DailyProgressRepository(db_path),
        ExerciseRepository(db_path),
        users,
        WorkoutRepository(db_path),
    )
    ids = [user_id] if user_id is not None else users.fetch_all_ids()
    return [
        {"user_id": uid, "date": date.isoformat(), **service.refresh_date(uid, date)}
        for uid in ids
    ]


def _print(data) -> None:
    print(json.dumps(data, indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Progress tracker utility commands")
    parser.add_argument("--config", default="settings.yaml")
    parser.add_argument("--db", default=None, help="overrides db_path from settings")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db")
    sub.add_parser("migrate")
    sub.add_parser("seed")

    ref = sub.add_parser("refresh")
    ref.add_argument("--user", type=int, default=None)
    ref.add_argument("--date", default=None)

    stk = sub.add_parser("streak")
    stk.add_argument("--user", type=int, required=True)
    stk.add_argument("--lookback", type=int, default=None)

    cal = sub.add_parser("calendar")
    cal.add_argument("--user", type=int, required=True)
    cal.add_argument("--year", type=int, required=True)
    cal.add_argument("--month", type=int, required=True)

    sts = sub.add_parser("stats")
    sts.add_argument("--user", type=int, required=True)
    sts.add_argument("--date", default=None)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")

    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    setup_logging(settings.log_format, settings.log_level)
    db_path = args.db or settings.db_path

    if args.cmd == "init-db":
        Database(db_path)
    elif args.cmd == "migrate":
        migrate(db_path)
    elif args.cmd == "seed":
        _print({"user_id": seed(db_path)})
    elif args.cmd == "refresh":
        day = parse_date(args.date) if args.date else datetime.date.today()
        _print(refresh_snapshots(db_path, args.user, day))
    elif args.cmd == "streak":
        service = StreakService(DailyProgressRepository(db_path), settings.streak_lookback_days)
        _print(service.compute_streaks(args.user, args.lookback))
    elif args.cmd == "calendar":
        service = StatisticsService(DailyProgressRepository(db_path), settings.stats_window_days)
        _print(service.build_calendar(args.user, args.year, args.month))
    elif args.cmd == "stats":
        service = StatisticsService(DailyProgressRepository(db_path), settings.stats_window_days)
        _print(service.build_stats(args.user, args.date))
    elif args.cmd == "backup":
        backup_db(db_path, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, db_path)


if __name__ == "__main__":
    main()
