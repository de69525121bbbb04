import logging
import os
import sqlite3
from pathlib import Path
from typing import Union

from prowflake.errors import PersistenceError
from prowflake.models import Job, History, TestTrack


logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SQLiteHistoryStore:
    """Caches the analyzed History of each job in its own SQLite file.

    Caching is best effort: write failures are logged and dropped, and any
    file that cannot be decoded is reported as a cache miss.
    """

    def __init__(self, cache_dir: Union[str, Path] = ".prowflake"):
        self.cache_dir = Path(cache_dir)

    def path_for(self, job_name: str) -> Path:
        return self.cache_dir / f"{job_name}.db"

    def save(self, job: Job) -> bool:
        logger.info("%s - Saving data", job.name)
        path = self.path_for(job.name)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            if tmp_path.exists():
                tmp_path.unlink()
            self._write(tmp_path, job.name, job.history)
            os.replace(tmp_path, path)
        except (sqlite3.Error, OSError) as e:
            logger.error("%s - Error while saving data: %s", job.name, e)
            return False
        return True

    def load(self, job: Job) -> bool:
        path = self.path_for(job.name)
        if not path.exists():
            return False

        try:
            history = self._read(path)
        except (sqlite3.Error, OSError, PersistenceError) as e:
            logger.warning("%s - Ignoring unreadable cache %s: %s", job.name, path, e)
            return False

        logger.info("%s - Using cached data from %s", job.name, path)
        job.history = history
        return True

    def clear(self, job_name: str) -> bool:
        path = self.path_for(job_name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def _write(self, path: Path, job_name: str, history: History):
        conn = sqlite3.connect(str(path))
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE history (
                    job_name TEXT,
                    from_ts INTEGER,
                    to_ts INTEGER,
                    builds_analyzed INTEGER
                )
            """)

            cursor.execute("""
                CREATE TABLE test_tracks (
                    name TEXT PRIMARY KEY,
                    previous_passed INTEGER,
                    flake_score REAL
                )
            """)

            cursor.execute(
                "INSERT INTO meta (key, value) VALUES ('schema_version', ?)",
                (str(SCHEMA_VERSION),),
            )
            cursor.execute("""
                INSERT INTO history (job_name, from_ts, to_ts, builds_analyzed)
                VALUES (?, ?, ?, ?)
            """, (job_name, history.from_ts, history.to_ts, history.builds_analyzed))

            cursor.executemany("""
                INSERT INTO test_tracks (name, previous_passed, flake_score)
                VALUES (?, ?, ?)
            """, [
                (name, int(track.previous_passed), track.flake_score)
                for name, track in history.tests.items()
            ])

            conn.commit()
        finally:
            conn.close()

    def _read(self, path: Path) -> History:
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        try:
            cursor = conn.cursor()

            cursor.execute("SELECT value FROM meta WHERE key = 'schema_version'")
            row = cursor.fetchone()
            if row is None:
                raise PersistenceError("missing schema version")
            if row["value"] != str(SCHEMA_VERSION):
                raise PersistenceError(
                    f"schema version {row['value']} does not match {SCHEMA_VERSION}"
                )

            cursor.execute("SELECT from_ts, to_ts, builds_analyzed FROM history")
            row = cursor.fetchone()
            if row is None:
                raise PersistenceError("missing history record")

            history = History(
                from_ts=row["from_ts"],
                to_ts=row["to_ts"],
                builds_analyzed=row["builds_analyzed"],
            )

            cursor.execute("SELECT name, previous_passed, flake_score FROM test_tracks ORDER BY rowid")
            for track_row in cursor.fetchall():
                history.tests[track_row["name"]] = TestTrack(
                    previous_passed=bool(track_row["previous_passed"]),
                    flake_score=track_row["flake_score"],
                )
        finally:
            conn.close()

        return history
