from __future__ import annotations

from scaffoldserve.models.delegation import DelegationOutcome, PeerResult
from scaffoldserve.models.jobs import ErrorDetail, JobRecord, JobStatus
from scaffoldserve.models.registry import IndexEntry, IndexOption
from scaffoldserve.models.tools import (
    DEFAULT_LINE_BREAK,
    FetchScaffoldInput,
    FetchScaffoldOutput,
    ListIndexesOutput,
)

__all__ = [
    # registry
    "IndexEntry",
    "IndexOption",
    # jobs
    "JobStatus",
    "JobRecord",
    "ErrorDetail",
    # delegation
    "PeerResult",
    "DelegationOutcome",
    # tools
    "DEFAULT_LINE_BREAK",
    "FetchScaffoldInput",
    "FetchScaffoldOutput",
    "ListIndexesOutput",
]
