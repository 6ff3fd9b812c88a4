"""SQLite-backed usage log storage."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from cv_gap_analyzer.logging.models import UsageLog

DEFAULT_DB_PATH = Path.home() / ".cv-gap-analyzer" / "usage.db"

# Column order matches the CREATE TABLE statement below
COLUMNS = (
    "id",
    "timestamp",
    "talent_id",
    "career_path_title",
    "file_name",
    "overall_score",
    "used_fallback",
    "status_code",
    "elapsed_ms",
    "total_input_tokens",
    "total_output_tokens",
    "estimated_cost_usd",
    "success",
    "error_message",
)


class UsageStore:
    """Append-mostly store of one row per analysis run, in WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS usage_logs (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    talent_id TEXT,
                    career_path_title TEXT,
                    file_name TEXT,
                    overall_score INTEGER,
                    used_fallback INTEGER NOT NULL DEFAULT 0,
                    status_code INTEGER NOT NULL DEFAULT 200,
                    elapsed_ms INTEGER NOT NULL DEFAULT 0,
                    total_input_tokens INTEGER NOT NULL DEFAULT 0,
                    total_output_tokens INTEGER NOT NULL DEFAULT 0,
                    estimated_cost_usd REAL NOT NULL DEFAULT 0.0,
                    success INTEGER NOT NULL DEFAULT 1,
                    error_message TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_usage_talent ON usage_logs (talent_id, timestamp)"
            )

    def save_log(self, log: UsageLog) -> None:
        """Persist a usage log entry, replacing any entry with the same id."""
        record = log.model_dump()
        record["timestamp"] = log.timestamp.isoformat()
        record["used_fallback"] = int(log.used_fallback)
        record["success"] = int(log.success)
        placeholders = ", ".join("?" for _ in COLUMNS)
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO usage_logs ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                tuple(record[column] for column in COLUMNS),
            )

    def get_logs(
        self,
        talent_id: str | None = None,
        limit: int = 50,
    ) -> list[UsageLog]:
        """Most recent runs first, optionally only those for one talent."""
        query = "SELECT * FROM usage_logs"
        params: list = []
        if talent_id is not None:
            query += " WHERE talent_id = ?"
            params.append(talent_id)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_log(row) for row in rows]

    def get_stats(self, since: datetime) -> dict:
        """Aggregate runs whose timestamp is at or after ``since``."""
        with self._connect() as conn:
            row = conn.execute(
                """SELECT
                       COUNT(*) AS runs,
                       COALESCE(SUM(total_input_tokens), 0) AS input_tokens,
                       COALESCE(SUM(total_output_tokens), 0) AS output_tokens,
                       COALESCE(SUM(estimated_cost_usd), 0.0) AS cost,
                       AVG(overall_score) AS avg_score,
                       COALESCE(SUM(success), 0) AS successes,
                       COALESCE(SUM(used_fallback), 0) AS fallbacks
                   FROM usage_logs
                   WHERE timestamp >= ?""",
                (since.isoformat(),),
            ).fetchone()
        runs = row["runs"]
        return {
            "total_runs": runs,
            "total_input_tokens": row["input_tokens"],
            "total_output_tokens": row["output_tokens"],
            "total_cost_usd": row["cost"],
            "avg_overall_score": round(row["avg_score"], 1) if row["avg_score"] is not None else None,
            "success_rate": row["successes"] / runs * 100 if runs else 0.0,
            "fallback_rate": row["fallbacks"] / runs * 100 if runs else 0.0,
        }

    def get_monthly_stats(self) -> dict:
        """Aggregated stats for the current calendar month."""
        now = datetime.now()
        stats = self.get_stats(now.replace(day=1, hour=0, minute=0, second=0, microsecond=0))
        stats["month"] = now.strftime("%Y-%m")
        return stats

    def get_total_cost(self) -> float:
        with self._connect() as conn:
            row = conn.execute("SELECT SUM(estimated_cost_usd) FROM usage_logs").fetchone()
        return row[0] or 0.0

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> UsageLog:
        data = dict(row)
        data["timestamp"] = datetime.fromisoformat(data["timestamp"])
        data["used_fallback"] = bool(data["used_fallback"])
        data["success"] = bool(data["success"])
        return UsageLog(**data)
