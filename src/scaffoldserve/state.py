"""Application state shared by the MCP tools for the lifetime of the server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from scaffoldserve.config import Settings
    from scaffoldserve.jobs import JobStore
    from scaffoldserve.registry import IndexRegistry
    from scaffoldserve.service import ScaffoldService


@dataclass
class AppState:
    settings: Settings
    registry: IndexRegistry
    service: ScaffoldService
    http_client: httpx.AsyncClient | None = None
    job_store: JobStore | None = None
