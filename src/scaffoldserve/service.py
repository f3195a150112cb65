"""Request orchestration: resolve -> fetch locally, or delegate to peers.

Every request gets a ``JobRecord`` that starts in ``started`` and ends in
exactly one terminal status. Failures never escape ``handle``; they are
attached to the job as an ``ErrorDetail``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import structlog

from scaffoldserve.errors import ErrorCode, ScaffoldError
from scaffoldserve.models.jobs import JobRecord
from scaffoldserve.registry import resolve

if TYPE_CHECKING:
    from scaffoldserve.delegation import PeerDispatcherProtocol
    from scaffoldserve.fetcher import ScaffoldFetcher
    from scaffoldserve.jobs import JobStore
    from scaffoldserve.models.registry import IndexEntry
    from scaffoldserve.models.tools import FetchScaffoldInput
    from scaffoldserve.registry import IndexRegistry

log = structlog.get_logger()


class ScaffoldServiceProtocol(Protocol):
    def resolve(self, requested_id: str | None) -> IndexEntry | None: ...

    def fetch(self, backing_path: str, scaffold_name: str, line_break: int) -> str: ...

    async def handle(self, request: FetchScaffoldInput) -> JobRecord: ...

    async def reject(self, store_id: str, scaffold: str, exc: ScaffoldError) -> JobRecord: ...


class ScaffoldService:
    """Serves scaffold requests from the local registry, falling back to peers."""

    def __init__(
        self,
        registry: IndexRegistry,
        fetcher: ScaffoldFetcher,
        dispatcher: PeerDispatcherProtocol,
        job_store: JobStore | None = None,
        provider_namespace: str | None = None,
    ) -> None:
        self.registry = registry
        self.provider_namespace = provider_namespace
        self._fetcher = fetcher
        self._dispatcher = dispatcher
        self._job_store = job_store

    def resolve(self, requested_id: str | None) -> IndexEntry | None:
        return resolve(requested_id, self.registry, self.provider_namespace)

    def fetch(self, backing_path: str, scaffold_name: str, line_break: int) -> str:
        return self._fetcher.fetch(backing_path, scaffold_name, line_break)

    async def handle(self, request: FetchScaffoldInput) -> JobRecord:
        job = JobRecord(scaffold=request.scaffold, store_id=request.store_id)
        await self._record(job)
        log.info(
            "job_started",
            job_id=job.job_id,
            store_id=request.store_id,
            scaffold=request.scaffold,
        )

        try:
            entry = self.resolve(request.store_id)
            if entry is not None:
                job.backing_path = entry.backing_path
                record = await asyncio.to_thread(
                    self.fetch, entry.backing_path, request.scaffold, request.line_break
                )
                job.succeed(record)
            else:
                await self._delegate(job, request)
        except ScaffoldError as exc:
            job.fail(exc)
        except Exception as exc:
            log.error("job_internal_error", job_id=job.job_id, exc_info=True)
            job.fail(ScaffoldError(ErrorCode.INTERNAL_ERROR, f"Unexpected error: {exc}"))

        await self._record(job)
        log.info(
            "job_finished",
            job_id=job.job_id,
            status=job.status.value,
            delegated=job.delegated,
            error_code=job.error.code.value if job.error else None,
        )
        return job

    async def reject(self, store_id: str, scaffold: str, exc: ScaffoldError) -> JobRecord:
        """Record a request refused before orchestration (bad input) as a failed job."""
        job = JobRecord(scaffold=scaffold, store_id=store_id)
        job.fail(exc)
        await self._record(job)
        log.info("job_rejected", job_id=job.job_id, error_code=exc.code.value)
        return job

    async def _delegate(self, job: JobRecord, request: FetchScaffoldInput) -> None:
        """Hand an unresolved request to the peers; raises when none can serve it."""
        log.info("index_not_found_delegating", store_id=request.store_id)
        outcome = await self._dispatcher.dispatch(request)

        if outcome.attempted == 0:
            raise ScaffoldError(
                ErrorCode.NO_STORE_AVAILABLE,
                f"No index matches {request.store_id!r} and no peer stores are configured",
                recoverable=True,
            )

        success = outcome.first_success()
        if success is None:
            failures = "; ".join(f"{r.peer}: {r.message}" for r in outcome.results)
            raise ScaffoldError(
                ErrorCode.NO_STORE_AVAILABLE,
                f"No index matches {request.store_id!r} and no peer store could serve it "
                f"({failures})",
                recoverable=True,
            )

        if success.payload is None:
            raise ScaffoldError(
                ErrorCode.INTERNAL_ERROR,
                f"Peer {success.peer!r} reported success without a record",
            )
        job.succeed(success.payload, peer=success.peer)

    async def _record(self, job: JobRecord) -> None:
        if self._job_store is not None:
            await self._job_store.record(job)
