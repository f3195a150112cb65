"""Integration fixtures: a server environment pointing at on-disk FASTA stores."""

from __future__ import annotations

import json
import os
import subprocess
import sys
import threading
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def subprocess_env(tmp_path: Path, wheat_fasta: Path) -> dict[str, str]:
    """Environment for ``python -m scaffoldserve.server`` isolated under tmp_path."""
    env = os.environ.copy()
    env["SCAFFOLDSERVE__JOBS__DB_PATH"] = str(tmp_path / "jobs.db")
    env["SCAFFOLDSERVE__LOGGING__LEVEL"] = "WARNING"
    env["SCAFFOLDSERVE__INDEX_FILES"] = json.dumps(
        [{"Blast database": "wheatA", "Fasta": str(wheat_fasta)}]
    )
    return env


def _initialize(request_id: int = 1) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-06-18",
            "capabilities": {},
            "clientInfo": {"name": "pytest", "version": "0"},
        },
    }


def run_session(
    env: dict[str, str], calls: list[tuple[str, dict[str, Any]]], cwd: Path
) -> dict[int, dict[str, Any]]:
    """Send initialize plus one tools/call per entry; return responses keyed by id.

    Tool calls get ids 2, 3, ... in order.
    """
    messages: list[dict[str, Any]] = [
        _initialize(),
        {"jsonrpc": "2.0", "method": "notifications/initialized"},
    ]
    for offset, (name, arguments) in enumerate(calls):
        messages.append(
            {
                "jsonrpc": "2.0",
                "id": offset + 2,
                "method": "tools/call",
                "params": {"name": name, "arguments": arguments},
            }
        )

    proc = subprocess.Popen(
        [sys.executable, "-m", "scaffoldserve.server"],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
        cwd=cwd,
    )
    assert proc.stdin is not None
    assert proc.stdout is not None
    assert proc.stderr is not None

    for message in messages:
        proc.stdin.write(json.dumps(message) + "\n")
    proc.stdin.flush()

    # Keep stdin open until every request has been answered: the stdio server
    # stops at end-of-input and cancels tool calls that are still running.
    expected_ids = {1, *range(2, len(calls) + 2)}
    result: dict[int, dict[str, Any]] = {}
    timer = threading.Timer(30, proc.kill)
    timer.start()
    try:
        while not expected_ids <= result.keys():
            line = proc.stdout.readline()
            if not line:
                break
            if not line.strip():
                continue
            response = json.loads(line)
            if "id" in response:
                result[response["id"]] = response
    finally:
        timer.cancel()

    proc.stdin.close()
    proc.stdout.read()
    proc.stderr.read()  # Drain for clean process shutdown on all platforms
    proc.wait(timeout=10)

    return result


@pytest.fixture()
def session(subprocess_env: dict[str, str], tmp_path: Path):
    def _run(calls: list[tuple[str, dict[str, Any]]]) -> dict[int, dict[str, Any]]:
        return run_session(subprocess_env, calls, cwd=tmp_path)

    return _run
