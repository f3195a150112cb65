"""MCP server entry point.

Run with ``python -m scaffoldserve.server`` (or the ``scaffoldserve`` script).
Settings are validated before any transport starts, so a bad config exits
non-zero without touching stdin/stdout.
"""

from __future__ import annotations

import json
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

from scaffoldserve.config import Settings
from scaffoldserve.delegation import HttpPeerDispatcher, build_http_client
from scaffoldserve.errors import ScaffoldError
from scaffoldserve.fetcher import ScaffoldFetcher
from scaffoldserve.jobs import open_job_store
from scaffoldserve.logging_config import setup_logging
from scaffoldserve.registry import build_registry
from scaffoldserve.service import ScaffoldService
from scaffoldserve.state import AppState
from scaffoldserve.tools import handle_fetch_scaffold, handle_list_indexes

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

log = structlog.get_logger()

_INSTRUCTIONS = (
    "Fetch genomic scaffolds from indexed FASTA stores. Call list_indexes to see the "
    "available stores, then fetch_scaffold with a store id (or FASTA path) and a "
    "scaffold name. line_break sets the line width; 0 disables wrapping."
)


def _text_result(payload: dict[str, Any], is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload))],
        isError=is_error,
    )


def build_lifespan(
    settings: Settings,
) -> Callable[[FastMCP | None], AbstractAsyncContextManager[AppState]]:
    """Return the server lifespan, which builds ``AppState`` and releases it on exit.

    Each resource joins the ``AsyncExitStack`` as soon as it is opened and is
    closed even when a later startup step raises.
    """

    @asynccontextmanager
    async def lifespan(server: FastMCP | None = None) -> AsyncIterator[AppState]:
        async with AsyncExitStack() as stack:
            registry = build_registry(settings)
            db, job_store = await open_job_store(settings.jobs.db_path)
            stack.push_async_callback(db.close)
            await job_store.cleanup_finished(settings.jobs.retention_days)

            client = await stack.enter_async_context(build_http_client(settings.delegation))
            dispatcher = HttpPeerDispatcher(client, settings.peers)
            namespace = settings.service.provider_name if settings.peers else None
            service = ScaffoldService(
                registry=registry,
                fetcher=ScaffoldFetcher(settings.fetcher),
                dispatcher=dispatcher,
                job_store=job_store,
                provider_namespace=namespace,
            )
            log.info(
                "server_started",
                transport=settings.server.transport,
                indexes=len(registry),
                peers=len(settings.peers),
            )
            try:
                yield AppState(
                    settings=settings,
                    registry=registry,
                    service=service,
                    http_client=client,
                    job_store=job_store,
                )
            finally:
                log.info("server_stopped")

    return lifespan


def create_server(settings: Settings) -> FastMCP:
    mcp = FastMCP(
        "scaffoldserve",
        instructions=_INSTRUCTIONS,
        lifespan=build_lifespan(settings),
        host=settings.server.host,
        port=settings.server.port,
    )

    @mcp.tool()
    async def fetch_scaffold(
        store_id: str,
        scaffold: str,
        ctx: Context,
        line_break: int | None = None,
    ) -> CallToolResult:
        """Fetch a scaffold as a FASTA record.

        store_id: store identifier or FASTA path, as listed by list_indexes.
        scaffold: name of the sequence to fetch.
        line_break: characters per line (default 60, 0 = single line).
        """
        state: AppState = ctx.request_context.lifespan_context
        try:
            return _text_result(await handle_fetch_scaffold(state, store_id, scaffold, line_break))
        except ScaffoldError as exc:
            return _text_result(exc.to_dict(), is_error=True)

    @mcp.tool()
    async def list_indexes(ctx: Context) -> CallToolResult:
        """List the configured sequence stores and the default selection."""
        state: AppState = ctx.request_context.lifespan_context
        return _text_result(await handle_list_indexes(state))

    return mcp


def main() -> None:
    settings = Settings()
    setup_logging(settings.logging)

    mcp = create_server(settings)
    if settings.server.transport == "http":
        mcp.run(transport="streamable-http")
    else:
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
