import sqlite3
from collections.abc import Iterable
from typing import Literal

type JobStatus = Literal["pending", "running", "completed", "failed"]


class Database:
    _conn: sqlite3.Connection | None = None

    def __init__(self, db_path):
        self.db_path = db_path

    def initialise(self):
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS jobs (
                id TEXT PRIMARY KEY,
                status TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS site_summaries (
                job_id TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
                position INTEGER NOT NULL,
                site TEXT NOT NULL,
                n_matched INTEGER NOT NULL,
                net_change REAL NOT NULL,
                PRIMARY KEY (job_id, site)
            )
        """
        )

        conn.commit()

        self._conn = conn

    def close(self):
        """Close the database connection."""
        if self._conn:
            self._conn.commit()
            self._conn.close()
            self._conn = None

    def _cursor(self) -> sqlite3.Cursor:
        if not self._conn:
            raise ValueError("Database connection not initialized")
        return self._conn.cursor()

    def create_job(self, job_id: str, status: JobStatus = "pending"):
        cursor = self._cursor()
        cursor.execute(
            """
            INSERT INTO jobs (id, status) VALUES (?, ?)
        """,
            (job_id, status),
        )
        self._conn.commit()

    def get_job_status(self, job_id: str) -> str | None:
        cursor = self._cursor()
        cursor.execute(
            """
            SELECT status FROM jobs WHERE id = ?
        """,
            (job_id,),
        )
        row = cursor.fetchone()
        return row[0] if row else None

    def update_job_status(self, job_id: str, status: JobStatus):
        cursor = self._cursor()
        cursor.execute(
            """
            UPDATE jobs SET status = ? WHERE id = ?
            """,
            (status, job_id),
        )
        self._conn.commit()

    def save_site_summaries(
        self, job_id: str, summaries: Iterable[tuple[str, int, float]]
    ):
        """Replace the stored (site, n_matched, net_change) rows for a job."""
        cursor = self._cursor()
        cursor.execute("DELETE FROM site_summaries WHERE job_id = ?", (job_id,))
        cursor.executemany(
            """
            INSERT INTO site_summaries (job_id, position, site, n_matched, net_change)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (job_id, position, site, int(n_matched), float(net_change))
                for position, (site, n_matched, net_change) in enumerate(summaries)
            ],
        )
        self._conn.commit()

    def get_site_summaries(self, job_id: str) -> list[tuple[str, int, float]]:
        cursor = self._cursor()
        cursor.execute(
            """
            SELECT site, n_matched, net_change FROM site_summaries
            WHERE job_id = ? ORDER BY position
            """,
            (job_id,),
        )
        return [(row[0], row[1], row[2]) for row in cursor.fetchall()]

    def delete_job(self, job_id: str):
        cursor = self._cursor()
        cursor.execute("DELETE FROM site_summaries WHERE job_id = ?", (job_id,))
        cursor.execute(
            """
            DELETE FROM jobs WHERE id = ?
            """,
            (job_id,),
        )
        self._conn.commit()
