from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from scaffoldserve.errors import ErrorCode, ScaffoldError


class JobStatus(StrEnum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorDetail(BaseModel):
    code: ErrorCode
    message: str
    recoverable: bool = False

    def to_error(self) -> ScaffoldError:
        return ScaffoldError(self.code, self.message, recoverable=self.recoverable)


class JobRecord(BaseModel):
    """Result record for one scaffold request.

    A job is created in ``started`` and moves to exactly one terminal status.
    Only a ``succeeded`` job carries a payload.
    """

    job_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    scaffold: str
    store_id: str
    status: JobStatus = JobStatus.STARTED
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    payload: str | None = None
    error: ErrorDetail | None = None
    delegated: bool = False
    peer: str | None = None
    backing_path: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not JobStatus.STARTED

    def succeed(self, payload: str, *, peer: str | None = None) -> None:
        self._finish(JobStatus.SUCCEEDED)
        self.payload = payload
        if peer is not None:
            self.delegated = True
            self.peer = peer

    def fail(self, exc: ScaffoldError) -> None:
        self._finish(JobStatus.FAILED)
        self.payload = None
        self.error = ErrorDetail(code=exc.code, message=exc.message, recoverable=exc.recoverable)

    def _finish(self, status: JobStatus) -> None:
        if self.is_terminal:
            raise RuntimeError(
                f"Job {self.job_id} already finished with status {self.status.value!r}"
            )
        self.status = status
        self.finished_at = datetime.now(UTC)
