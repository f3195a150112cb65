"""Tool handlers, independent of the MCP transport.

Handlers take the ``AppState`` and plain arguments, return a JSON-ready dict,
and raise ``ScaffoldError`` for anything the client should see as an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from scaffoldserve.errors import ErrorCode, ScaffoldError
from scaffoldserve.models.jobs import JobStatus
from scaffoldserve.models.tools import FetchScaffoldInput, FetchScaffoldOutput, ListIndexesOutput
from scaffoldserve.registry import default_store_id, index_options

if TYPE_CHECKING:
    from scaffoldserve.state import AppState


def _invalid_input(exc: ValidationError) -> ScaffoldError:
    message = "; ".join(err["msg"] for err in exc.errors())
    return ScaffoldError(ErrorCode.INVALID_INPUT, message)


async def handle_fetch_scaffold(
    state: AppState,
    store_id: str,
    scaffold: str,
    line_break: int | None = None,
) -> dict[str, Any]:
    if line_break is None:
        line_break = state.settings.service.default_line_break
    try:
        request = FetchScaffoldInput(store_id=store_id, scaffold=scaffold, line_break=line_break)
    except ValidationError as exc:
        error = _invalid_input(exc)
        await state.service.reject(store_id, scaffold, error)
        raise error from exc

    job = await state.service.handle(request)
    if job.status is not JobStatus.SUCCEEDED or job.payload is None:
        if job.error is None:
            raise ScaffoldError(
                ErrorCode.INTERNAL_ERROR,
                f"Job {job.job_id} ended {job.status.value} without a record or an error",
            )
        raise job.error.to_error()

    output = FetchScaffoldOutput(
        job_id=job.job_id,
        store_id=request.store_id,
        scaffold=request.scaffold,
        record=job.payload,
        delegated=job.delegated,
        peer=job.peer,
    )
    return output.model_dump(mode="json")


async def handle_list_indexes(state: AppState) -> dict[str, Any]:
    output = ListIndexesOutput(
        default=default_store_id(state.registry),
        indexes=index_options(state.registry, state.service.provider_namespace),
    )
    return output.model_dump(mode="json")
