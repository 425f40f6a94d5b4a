import sqlite3
import aiosqlite

from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Dict

from errors import NotFoundError, ConflictError, InvalidArgumentError

DAY_KEYS = ("day1", "day2", "day3", "day4", "day5", "day6", "day7")

EXERCISE_CATEGORIES = (
    "warmup",
    "workout",
    "cooldown",
    "strength",
    "cardio",
    "flexibility",
    "balance",
    "sports",
)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    email TEXT NOT NULL UNIQUE,
                    password TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );""",
            ["id", "username", "email", "password", "created_at"],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    day TEXT NOT NULL,
                    title TEXT NOT NULL,
                    focus TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at TEXT,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (user_id, day),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "day",
                "title",
                "focus",
                "completed",
                "completed_at",
                "created_at",
            ],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    sets INTEGER,
                    reps TEXT,
                    notes TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at TEXT,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "workout_id",
                "name",
                "category",
                "sets",
                "reps",
                "notes",
                "completed",
                "completed_at",
                "created_at",
            ],
        ),
        "daily_progress": (
            """CREATE TABLE daily_progress (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    total_exercises INTEGER NOT NULL DEFAULT 0,
                    completed_exercises INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (user_id, date),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "date",
                "total_exercises",
                "completed_exercises",
                "notes",
                "created_at",
            ],
        ),
    }

    _INDEXES = (
        "CREATE INDEX IF NOT EXISTS idx_workouts_user_id ON workouts(user_id);",
        "CREATE INDEX IF NOT EXISTS idx_exercises_workout_id ON exercises(workout_id);",
        "CREATE INDEX IF NOT EXISTS idx_exercises_completed_at ON exercises(completed_at);",
        "CREATE INDEX IF NOT EXISTS idx_daily_progress_user_date ON daily_progress(user_id, date);",
    )

    def __init__(self, db_path: str = "fitness_tracker.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._ensure_indexes()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            # keep child REFERENCES pointing at the rebuilt table, not *_old
            conn.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA legacy_alter_table=off;")
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_indexes(self) -> None:
        with self._connection() as conn:
            for sql in self._INDEXES:
                conn.execute(sql)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("completed", "total_exercises", "completed_exercises"):
                        return "0"
                    if col == "created_at":
                        return "CURRENT_TIMESTAMP"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def execute_rowcount(self, query: str, params: Tuple = ()) -> int:
        """Execute ``query`` and return the number of affected rows."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.rowcount

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            await conn.execute("PRAGMA foreign_keys=on;")
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


class UserRepository(BaseRepository):
    """Repository for user accounts.

    Credentials are stored as given; hashing belongs to the identity layer.
    """

    def create(self, username: str, email: str, password: str) -> int:
        try:
            return self.execute(
                "INSERT INTO users (username, email, password) VALUES (?, ?, ?);",
                (username, email, password),
            )
        except sqlite3.IntegrityError:
            raise ConflictError("username or email already exists")

    def fetch_detail(self, user_id: int) -> dict:
        rows = self.fetch_all(
            "SELECT id, username, email, created_at FROM users WHERE id = ?;",
            (user_id,),
        )
        if not rows:
            raise NotFoundError("user not found")
        uid, username, email, created_at = rows[0]
        return {
            "id": uid,
            "username": username,
            "email": email,
            "created_at": created_at,
        }

    def exists(self, user_id: int) -> bool:
        rows = self.fetch_all("SELECT 1 FROM users WHERE id = ?;", (user_id,))
        return bool(rows)

    def fetch_all_ids(self) -> list[int]:
        return [r[0] for r in self.fetch_all("SELECT id FROM users ORDER BY id;")]

    def delete(self, user_id: int) -> None:
        if not self.exists(user_id):
            raise NotFoundError("user not found")
        self.execute("DELETE FROM users WHERE id = ?;", (user_id,))


class WorkoutRepository(BaseRepository):
    """Repository for workout table operations."""

    _COLUMNS = "id, user_id, day, title, focus, completed, completed_at, created_at"

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "user_id": row[1],
            "day": row[2],
            "title": row[3],
            "focus": row[4],
            "completed": bool(row[5]),
            "completed_at": row[6],
            "created_at": row[7],
        }

    def create(self, user_id: int, day: str, title: str, focus: str) -> int:
        if day not in DAY_KEYS:
            raise InvalidArgumentError(f"day must be one of: {', '.join(DAY_KEYS)}")
        try:
            return self.execute(
                "INSERT INTO workouts (user_id, day, title, focus) VALUES (?, ?, ?, ?);",
                (user_id, day, title, focus),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise ConflictError("workout for this day already exists for this user")
            raise NotFoundError("user not found")

    def fetch_detail(self, workout_id: int) -> dict:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workouts WHERE id = ?;",
            (workout_id,),
        )
        if not rows:
            raise NotFoundError("workout not found")
        return self._to_dict(rows[0])

    def fetch_by_day(self, user_id: int, day: str) -> Optional[dict]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workouts WHERE user_id = ? AND day = ?;",
            (user_id, day),
        )
        return self._to_dict(rows[0]) if rows else None

    def fetch_for_user(self, user_id: int) -> list[dict]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workouts WHERE user_id = ? ORDER BY day;",
            (user_id,),
        )
        return [self._to_dict(r) for r in rows]

    def update(self, workout_id: int, title: str, focus: str) -> None:
        changed = self.execute_rowcount(
            "UPDATE workouts SET title = ?, focus = ? WHERE id = ?;",
            (title, focus, workout_id),
        )
        if changed == 0:
            raise NotFoundError("workout not found")

    def set_completion(
        self, workout_id: int, completed: bool, completed_at: Optional[str]
    ) -> int:
        """Persist derived completion state and return the affected row count."""
        return self.execute_rowcount(
            "UPDATE workouts SET completed = ?, completed_at = ? WHERE id = ?;",
            (1 if completed else 0, completed_at, workout_id),
        )

    def delete(self, workout_id: int) -> None:
        changed = self.execute_rowcount(
            "DELETE FROM workouts WHERE id = ?;", (workout_id,)
        )
        if changed == 0:
            raise NotFoundError("workout not found")

    def completion_counts(self, user_id: int) -> Tuple[int, int]:
        """Return (total, completed) workouts for ``user_id``."""
        rows = self.fetch_all(
            "SELECT COUNT(*), COALESCE(SUM(completed), 0) FROM workouts WHERE user_id = ?;",
            (user_id,),
        )
        total, completed = rows[0]
        return int(total), int(completed)


class ExerciseRepository(BaseRepository):
    """Repository for exercise table operations."""

    _COLUMNS = (
        "id, workout_id, name, category, sets, reps, notes, completed, completed_at, created_at"
    )
    _EDITABLE = ("name", "category", "sets", "reps", "notes")

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "workout_id": row[1],
            "name": row[2],
            "category": row[3],
            "sets": row[4],
            "reps": row[5],
            "notes": row[6],
            "completed": bool(row[7]),
            "completed_at": row[8],
            "created_at": row[9],
        }

    def add(
        self,
        workout_id: int,
        name: str,
        category: str,
        sets: Optional[int] = None,
        reps: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        if category not in EXERCISE_CATEGORIES:
            raise InvalidArgumentError(
                f"category must be one of: {', '.join(EXERCISE_CATEGORIES)}"
            )
        try:
            return self.execute(
                "INSERT INTO exercises (workout_id, name, category, sets, reps, notes) VALUES (?, ?, ?, ?, ?, ?);",
                (workout_id, name, category, sets, reps, notes),
            )
        except sqlite3.IntegrityError:
            raise NotFoundError("workout not found")

    def fetch_detail(self, exercise_id: int) -> dict:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            raise NotFoundError("exercise not found")
        return self._to_dict(rows[0])

    def fetch_for_workout(
        self, workout_id: int, category: Optional[str] = None
    ) -> list[dict]:
        query = f"SELECT {self._COLUMNS} FROM exercises WHERE workout_id = ?"
        params: list[int | str] = [workout_id]
        if category is not None:
            query += " AND category = ?"
            params.append(category)
        query += " ORDER BY category, id;"
        return [self._to_dict(r) for r in self.fetch_all(query, tuple(params))]

    def update(self, exercise_id: int, **fields) -> None:
        updates = {k: v for k, v in fields.items() if k in self._EDITABLE}
        if not updates:
            raise InvalidArgumentError("no editable fields given")
        if "category" in updates and updates["category"] not in EXERCISE_CATEGORIES:
            raise InvalidArgumentError(
                f"category must be one of: {', '.join(EXERCISE_CATEGORIES)}"
            )
        clause = ", ".join(f"{k} = ?" for k in updates)
        changed = self.execute_rowcount(
            f"UPDATE exercises SET {clause} WHERE id = ?;",
            (*updates.values(), exercise_id),
        )
        if changed == 0:
            raise NotFoundError("exercise not found")

    def set_completion(
        self, exercise_id: int, completed: bool, completed_at: Optional[str]
    ) -> None:
        if completed != (completed_at is not None):
            raise ValueError("completed_at must be set exactly when completed")
        changed = self.execute_rowcount(
            "UPDATE exercises SET completed = ?, completed_at = ? WHERE id = ?;",
            (1 if completed else 0, completed_at, exercise_id),
        )
        if changed == 0:
            raise NotFoundError("exercise not found")

    def remove(self, exercise_id: int) -> None:
        changed = self.execute_rowcount(
            "DELETE FROM exercises WHERE id = ?;", (exercise_id,)
        )
        if changed == 0:
            raise NotFoundError("exercise not found")

    def counts_for_workout(self, workout_id: int) -> Tuple[int, int]:
        """Return (total, completed) exercises of a workout."""
        rows = self.fetch_all(
            "SELECT COUNT(*), COALESCE(SUM(completed), 0) FROM exercises WHERE workout_id = ?;",
            (workout_id,),
        )
        total, completed = rows[0]
        return int(total), int(completed)

    def counts_for_day_key(self, user_id: int, day: str) -> Tuple[int, int]:
        """Return (total, completed) exercises of the workout bound to ``day``."""
        rows = self.fetch_all(
            "SELECT COUNT(e.id), COALESCE(SUM(e.completed), 0) FROM exercises e "
            "JOIN workouts w ON e.workout_id = w.id WHERE w.user_id = ? AND w.day = ?;",
            (user_id, day),
        )
        total, completed = rows[0]
        return int(total), int(completed)

    def total_for_user(self, user_id: int) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(e.id) FROM exercises e JOIN workouts w ON e.workout_id = w.id "
            "WHERE w.user_id = ?;",
            (user_id,),
        )
        return int(rows[0][0])

    def completed_on(self, user_id: int, date: str) -> int:
        """Count exercises of ``user_id`` whose completion timestamp falls on ``date``."""
        rows = self.fetch_all(
            "SELECT COUNT(e.id) FROM exercises e JOIN workouts w ON e.workout_id = w.id "
            "WHERE w.user_id = ? AND e.completed = 1 AND date(e.completed_at) = ?;",
            (user_id, date),
        )
        return int(rows[0][0])


class DailyProgressRepository(BaseRepository):
    """Repository for the per-day progress snapshot."""

    def upsert(self, user_id: int, date: str, total: int, completed: int) -> None:
        self.execute(
            "INSERT INTO daily_progress (user_id, date, total_exercises, completed_exercises) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(user_id, date) DO UPDATE SET "
            "total_exercises=excluded.total_exercises, "
            "completed_exercises=excluded.completed_exercises;",
            (user_id, date, total, completed),
        )

    def fetch(self, user_id: int, date: str) -> Optional[Tuple[int, int]]:
        rows = self.fetch_all(
            "SELECT total_exercises, completed_exercises FROM daily_progress "
            "WHERE user_id = ? AND date = ?;",
            (user_id, date),
        )
        if not rows:
            return None
        return int(rows[0][0]), int(rows[0][1])

    def fetch_range(
        self, user_id: int, start_date: str, end_date: str
    ) -> Dict[str, Tuple[int, int]]:
        """Return ``{date: (total, completed)}`` for rows in the inclusive range."""
        rows = self.fetch_all(
            "SELECT date, total_exercises, completed_exercises FROM daily_progress "
            "WHERE user_id = ? AND date >= ? AND date <= ? ORDER BY date;",
            (user_id, start_date, end_date),
        )
        return {d: (int(t), int(c)) for d, t, c in rows}


class AsyncDailyProgressRepository(AsyncBaseRepository):
    """Async read access to the per-day progress snapshot."""

    async def fetch(self, user_id: int, date: str) -> Optional[Tuple[int, int]]:
        rows = await self.fetch_all(
            "SELECT total_exercises, completed_exercises FROM daily_progress "
            "WHERE user_id = ? AND date = ?;",
            (user_id, date),
        )
        if not rows:
            return None
        return int(rows[0][0]), int(rows[0][1])

    async def fetch_range(
        self, user_id: int, start_date: str, end_date: str
    ) -> Dict[str, Tuple[int, int]]:
        rows = await self.fetch_all(
            "SELECT date, total_exercises, completed_exercises FROM daily_progress "
            "WHERE user_id = ? AND date >= ? AND date <= ? ORDER BY date;",
            (user_id, start_date, end_date),
        )
        return {d: (int(t), int(c)) for d, t, c in rows}
