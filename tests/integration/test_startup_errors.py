"""Tests for server startup error scenarios.

Covers:
- Wrong-type config values (both stdio and HTTP transports)
- Non-existent jobs db_path parent directories (auto-created)
"""

from __future__ import annotations

import subprocess
import sys
from typing import TYPE_CHECKING

from tests.integration.conftest import run_session

if TYPE_CHECKING:
    from pathlib import Path


def _run_and_wait(
    env: dict[str, str], cwd: Path, timeout: int = 10
) -> subprocess.CompletedProcess[str]:
    """Start the server with stdin closed and wait for it to exit."""
    return subprocess.run(
        [sys.executable, "-m", "scaffoldserve.server"],
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env,
        cwd=cwd,
    )


class TestBadConfigType:
    """Wrong-type config values crash the server before any transport starts."""

    def test_stdio_crashes_on_wrong_type(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        env = {**subprocess_env, "SCAFFOLDSERVE__SERVER__PORT": "not-a-number"}
        result = _run_and_wait(env, tmp_path)
        assert result.returncode != 0

    def test_http_crashes_on_wrong_type(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        env = {
            **subprocess_env,
            "SCAFFOLDSERVE__SERVER__TRANSPORT": "http",
            "SCAFFOLDSERVE__SERVER__PORT": "not-a-number",
        }
        result = _run_and_wait(env, tmp_path)
        assert result.returncode != 0

    def test_negative_default_line_break_crashes(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        env = {**subprocess_env, "SCAFFOLDSERVE__SERVICE__DEFAULT_LINE_BREAK": "-5"}
        result = _run_and_wait(env, tmp_path)
        assert result.returncode != 0


class TestJobsDbStartup:
    def test_missing_parent_dirs_are_auto_created(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        deep_path = tmp_path / "a" / "b" / "c" / "jobs.db"
        assert not deep_path.parent.exists()

        env = {**subprocess_env, "SCAFFOLDSERVE__JOBS__DB_PATH": str(deep_path)}
        responses = run_session(env, [], cwd=tmp_path)

        assert "result" in responses[1]
        assert deep_path.parent.exists()
