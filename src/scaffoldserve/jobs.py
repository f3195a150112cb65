"""SQLite job ledger recording the status of every scaffold request.

The ledger is bookkeeping, not part of the request path: all operations catch
``aiosqlite.Error`` internally, reads return ``None`` on failure and writes are
logged and ignored. A request still returns its result when the ledger is
unavailable.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import structlog

from scaffoldserve.models.jobs import ErrorDetail, JobRecord, JobStatus

log = structlog.get_logger()

_CREATE_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    job_id       TEXT PRIMARY KEY,
    scaffold     TEXT NOT NULL,
    store_id     TEXT NOT NULL,
    status       TEXT NOT NULL,
    started_at   TEXT NOT NULL,
    finished_at  TEXT,
    backing_path TEXT,
    delegated    INTEGER NOT NULL DEFAULT 0,
    peer         TEXT,
    payload      TEXT,
    error        TEXT
)
"""

_CREATE_JOBS_INDEX = "CREATE INDEX IF NOT EXISTS idx_jobs_started ON jobs(started_at)"


class JobStore:
    """SQLite-backed store of ``JobRecord`` rows keyed by job id."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_JOBS_TABLE)
        await self._db.execute(_CREATE_JOBS_INDEX)
        await self._db.commit()

    async def record(self, job: JobRecord) -> None:
        """Insert or update a job row. Non-fatal on failure."""
        try:
            error = json.dumps(job.error.model_dump(mode="json")) if job.error else None
            await self._db.execute(
                "INSERT OR REPLACE INTO jobs "
                "(job_id, scaffold, store_id, status, started_at, finished_at, "
                "backing_path, delegated, peer, payload, error) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    job.job_id,
                    job.scaffold,
                    job.store_id,
                    job.status.value,
                    job.started_at.isoformat(),
                    job.finished_at.isoformat() if job.finished_at else None,
                    job.backing_path,
                    int(job.delegated),
                    job.peer,
                    job.payload,
                    error,
                ),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("job_store_write_error", job_id=job.job_id, exc_info=True)

    async def get(self, job_id: str) -> JobRecord | None:
        """Read a job. Returns ``None`` when missing or on read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT job_id, scaffold, store_id, status, started_at, finished_at, "
                "backing_path, delegated, peer, payload, error "
                "FROM jobs WHERE job_id = ?",
                (job_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            return JobRecord(
                job_id=row[0],
                scaffold=row[1],
                store_id=row[2],
                status=JobStatus(row[3]),
                started_at=datetime.fromisoformat(row[4]),
                finished_at=datetime.fromisoformat(row[5]) if row[5] else None,
                backing_path=row[6],
                delegated=bool(row[7]),
                peer=row[8],
                payload=row[9],
                error=ErrorDetail.model_validate_json(row[10]) if row[10] else None,
            )
        except aiosqlite.Error:
            log.warning("job_store_read_error", job_id=job_id, exc_info=True)
            return None

    async def cleanup_finished(self, older_than_days: int = 7) -> None:
        """Delete terminal jobs older than the retention window. Non-fatal on failure."""
        try:
            cutoff = (datetime.now(UTC) - timedelta(days=older_than_days)).isoformat()
            cursor = await self._db.execute(
                "DELETE FROM jobs WHERE status != ? AND started_at < ?",
                (JobStatus.STARTED.value, cutoff),
            )
            deleted = cursor.rowcount
            await self._db.commit()
            log.info("job_cleanup_complete", deleted=deleted)
        except aiosqlite.Error:
            log.warning("job_cleanup_error", exc_info=True)


async def open_job_store(db_path: str | Path) -> tuple[aiosqlite.Connection, JobStore]:
    """Connect to ``db_path`` (creating parent dirs) and initialise the schema."""
    path = str(db_path)
    if path != ":memory:":
        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        path = str(Path(path).expanduser())
    db = await aiosqlite.connect(path)
    store = JobStore(db)
    await store.init_db()
    return db, store
