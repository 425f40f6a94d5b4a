import sqlite3
import sys

def migrate(db_path='fitness_tracker.db'):
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    existing = set()
    for table in ('workouts', 'exercises'):
        cur.execute(f"PRAGMA table_info({table});")
        cols = [r[1] for r in cur.fetchall()]
        if not cols:
            continue
        existing.add(table)
        if 'completed' not in cols:
            cur.execute(f"ALTER TABLE {table} ADD COLUMN completed INTEGER NOT NULL DEFAULT 0;")
        if 'completed_at' not in cols:
            cur.execute(f"ALTER TABLE {table} ADD COLUMN completed_at TEXT;")
    cur.execute("PRAGMA table_info(daily_progress);")
    if not cur.fetchall():
        cur.execute(
            "CREATE TABLE daily_progress (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER NOT NULL, "
            "date TEXT NOT NULL, total_exercises INTEGER NOT NULL DEFAULT 0, "
            "completed_exercises INTEGER NOT NULL DEFAULT 0, notes TEXT, "
            "created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP, UNIQUE (user_id, date), "
            "FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE);"
        )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_daily_progress_user_date ON daily_progress(user_id, date);")
    if 'exercises' in existing:
        # completed_at must be cleared wherever completed is unset
        cur.execute("UPDATE exercises SET completed_at = NULL WHERE completed = 0;")
    conn.commit()
    conn.close()

if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'fitness_tracker.db'
    migrate(path)
