"""Unit tests for scaffoldserve.delegation."""

from __future__ import annotations

import json

import httpx
import respx

from scaffoldserve.config import DelegationSettings, PeerSettings
from scaffoldserve.delegation import HttpPeerDispatcher, build_http_client
from scaffoldserve.models.tools import FetchScaffoldInput

REQUEST = FetchScaffoldInput(store_id="wheatB", scaffold="chr1B", line_break=10)
ROTHAMSTED = PeerSettings(name="rothamsted", url="https://rothamsted.example.org/scaffold")
JIC = PeerSettings(name="jic", url="https://jic.example.org/scaffold")


class TestBuildHttpClient:
    def test_timeout_from_settings(self) -> None:
        client = build_http_client(DelegationSettings(timeout_seconds=5.0))
        assert isinstance(client, httpx.AsyncClient)
        assert client.timeout.read == 5.0


class TestHttpPeerDispatcher:
    async def test_no_peers_attempts_nothing(self) -> None:
        async with httpx.AsyncClient() as client:
            dispatcher = HttpPeerDispatcher(client, [])
            outcome = await dispatcher.dispatch(REQUEST)
        assert outcome.attempted == 0
        assert outcome.results == []
        assert outcome.succeeded is False

    async def test_successful_peer(self) -> None:
        with respx.mock:
            route = respx.post(ROTHAMSTED.url).mock(
                return_value=httpx.Response(200, json={"record": ">chr1B\nACGT\n"})
            )
            async with httpx.AsyncClient() as client:
                outcome = await HttpPeerDispatcher(client, [ROTHAMSTED]).dispatch(REQUEST)

            sent = json.loads(route.calls.last.request.content)
        assert sent == {"store_id": "wheatB", "scaffold": "chr1B", "line_break": 10}
        assert outcome.attempted == 1
        success = outcome.first_success()
        assert success is not None
        assert success.peer == "rothamsted"
        assert success.payload == ">chr1B\nACGT\n"

    async def test_every_peer_is_attempted(self) -> None:
        with respx.mock:
            respx.post(ROTHAMSTED.url).mock(return_value=httpx.Response(404))
            respx.post(JIC.url).mock(
                return_value=httpx.Response(200, json={"record": ">chr1B\nACGT\n"})
            )
            async with httpx.AsyncClient() as client:
                outcome = await HttpPeerDispatcher(client, [ROTHAMSTED, JIC]).dispatch(REQUEST)

        assert outcome.attempted == 2
        assert [r.succeeded for r in outcome.results] == [False, True]
        assert outcome.results[0].message == "HTTP 404"
        assert outcome.first_success().peer == "jic"  # type: ignore[union-attr]

    async def test_network_error_is_a_failed_attempt(self) -> None:
        with respx.mock:
            respx.post(ROTHAMSTED.url).mock(side_effect=httpx.ConnectError("Connection refused"))
            async with httpx.AsyncClient() as client:
                outcome = await HttpPeerDispatcher(client, [ROTHAMSTED]).dispatch(REQUEST)

        assert outcome.attempted == 1
        assert outcome.succeeded is False
        assert "Network error" in (outcome.results[0].message or "")

    async def test_malformed_body_is_a_failed_attempt(self) -> None:
        with respx.mock:
            respx.post(ROTHAMSTED.url).mock(return_value=httpx.Response(200, text="not json"))
            async with httpx.AsyncClient() as client:
                outcome = await HttpPeerDispatcher(client, [ROTHAMSTED]).dispatch(REQUEST)

        assert outcome.attempted == 1
        assert outcome.succeeded is False
        assert outcome.results[0].message == "Malformed peer response"

    async def test_missing_record_is_a_failed_attempt(self) -> None:
        with respx.mock:
            respx.post(ROTHAMSTED.url).mock(
                return_value=httpx.Response(200, json={"status": "ok"})
            )
            async with httpx.AsyncClient() as client:
                outcome = await HttpPeerDispatcher(client, [ROTHAMSTED]).dispatch(REQUEST)

        assert outcome.succeeded is False
