"""SQLite-backed document store for talent profiles and career paths."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path

from cv_gap_analyzer.models.profile import CareerTarget, Profile

DEFAULT_DB_PATH = Path.home() / ".cv-gap-analyzer" / "store.db"


class SQLiteDocumentStore:
    """Profile and career-path lookups over two JSON document tables.

    Reads run in a worker thread so the async pipeline is never blocked.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS talents (
                    talent_id TEXT PRIMARY KEY,
                    document_json TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS career_paths (
                    id TEXT PRIMARY KEY,
                    document_json TEXT NOT NULL
                )
            """)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    # --- writes (used to seed the store) ---

    def put_profile(self, profile: Profile) -> None:
        """Insert or replace a talent profile, keyed by talent_id."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO talents (talent_id, document_json) VALUES (?, ?)",
                (profile.talent_id, profile.model_dump_json(by_alias=True)),
            )

    def put_career_target(self, target: CareerTarget) -> None:
        """Insert or replace a career path document."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO career_paths (id, document_json) VALUES (?, ?)",
                (target.id, target.model_dump_json(by_alias=True)),
            )

    def count(self) -> dict:
        with self._connect() as conn:
            talents = conn.execute("SELECT COUNT(*) FROM talents").fetchone()[0]
            careers = conn.execute("SELECT COUNT(*) FROM career_paths").fetchone()[0]
        return {"talents": talents, "career_paths": careers}

    # --- reads ---

    def _find_profile(self, talent_id: str) -> Profile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT document_json FROM talents WHERE talent_id = ?", (talent_id,)
            ).fetchone()
        if row is None:
            return None
        return Profile.model_validate_json(row[0])

    def _get_career(self, career_id: str) -> CareerTarget:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT document_json FROM career_paths WHERE id = ?", (career_id,)
            ).fetchone()
        if row is None:
            raise KeyError(f"Career path not found: {career_id}")
        return CareerTarget.model_validate_json(row[0])

    async def find_by_key(self, talent_id: str) -> Profile | None:
        """Return the profile for talent_id, or None when there is none."""
        return await asyncio.to_thread(self._find_profile, talent_id)

    async def get_by_id(self, career_id: str) -> CareerTarget:
        """Return a career path. Raises KeyError when the id is unknown."""
        return await asyncio.to_thread(self._get_career, career_id)
