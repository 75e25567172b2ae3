"""Ad-hoc database migrations for the local Trakn store."""

from __future__ import annotations

from sqlalchemy import text


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_sync_queue_table(conn) -> None:
    conn.execute(
        text(
            """
            CREATE TABLE IF NOT EXISTS sync_queue (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                table_name TEXT NOT NULL,
                data TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                retries INTEGER NOT NULL DEFAULT 0,
                last_error TEXT
            )
            """
        )
    )
    if not _column_exists(conn, "sync_queue", "last_error"):
        conn.execute(text("ALTER TABLE sync_queue ADD COLUMN last_error TEXT"))
    conn.execute(
        text(
            """
            CREATE INDEX IF NOT EXISTS ix_sync_queue_timestamp
            ON sync_queue (timestamp)
            """
        )
    )


def ensure_workout_indexes(conn) -> None:
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_workouts_user_id ON workouts(user_id)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_workouts_created_at ON workouts(created_at)"))


def run_all(engine) -> None:
    with engine.begin() as conn:
        # SQLModel creates both tables, but legacy files may predate last_error
        ensure_sync_queue_table(conn)
        ensure_workout_indexes(conn)


__all__ = ["run_all"]
