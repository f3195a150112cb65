"""Delegation of unresolved requests to peer scaffold stores.

Peers are tried in configuration order and every peer is attempted, so the
outcome reports how many were contacted and what each returned. No retries:
a failed peer is recorded and the next one is tried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import httpx
import structlog

from scaffoldserve.models.delegation import DelegationOutcome, PeerResult

if TYPE_CHECKING:
    from scaffoldserve.config import DelegationSettings, PeerSettings
    from scaffoldserve.models.tools import FetchScaffoldInput

log = structlog.get_logger()


class PeerDispatcherProtocol(Protocol):
    async def dispatch(self, request: FetchScaffoldInput) -> DelegationOutcome: ...


def build_http_client(settings: DelegationSettings | None = None) -> httpx.AsyncClient:
    """Shared client for peer requests."""
    timeout = settings.timeout_seconds if settings is not None else 30.0
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": "scaffoldserve"},
    )


class HttpPeerDispatcher:
    """Forwards a scaffold request to each configured peer over HTTP.

    A peer accepts ``POST <url>`` with ``{"store_id", "scaffold", "line_break"}``
    and answers a 2xx with ``{"record": "<fasta>"}``.
    """

    def __init__(self, client: httpx.AsyncClient, peers: list[PeerSettings]) -> None:
        self._client = client
        self._peers = list(peers)

    @property
    def peer_count(self) -> int:
        return len(self._peers)

    async def dispatch(self, request: FetchScaffoldInput) -> DelegationOutcome:
        outcome = DelegationOutcome()
        for peer in self._peers:
            outcome.attempted += 1
            result = await self._call_peer(peer, request)
            outcome.results.append(result)
        log.info(
            "delegation_complete",
            store_id=request.store_id,
            scaffold=request.scaffold,
            attempted=outcome.attempted,
            succeeded=outcome.succeeded,
        )
        return outcome

    async def _call_peer(self, peer: PeerSettings, request: FetchScaffoldInput) -> PeerResult:
        body = {
            "store_id": request.store_id,
            "scaffold": request.scaffold,
            "line_break": request.line_break,
        }
        try:
            response = await self._client.post(peer.url, json=body)
        except httpx.HTTPError as exc:
            log.warning("delegation_peer_failed", peer=peer.name, reason=str(exc))
            return PeerResult(peer=peer.name, succeeded=False, message=f"Network error: {exc}")

        if not response.is_success:
            log.warning("delegation_peer_failed", peer=peer.name, status_code=response.status_code)
            return PeerResult(
                peer=peer.name,
                succeeded=False,
                message=f"HTTP {response.status_code}",
            )

        try:
            record = response.json().get("record")
        except (ValueError, AttributeError):
            record = None
        if not isinstance(record, str) or not record:
            log.warning("delegation_peer_failed", peer=peer.name, reason="malformed response")
            return PeerResult(peer=peer.name, succeeded=False, message="Malformed peer response")

        return PeerResult(peer=peer.name, succeeded=True, payload=record)
