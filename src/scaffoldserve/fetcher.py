"""Scaffold fetching: random-access FASTA lookup and record formatting.

The FASTA index is opened per request and closed on every exit path, so no
handle outlives a fetch. With ``fetcher.index_dir`` configured the offsets are
persisted in an SQLite index (``Bio.SeqIO.index_db``) and reused by later
requests until the FASTA file is modified; otherwise an in-memory offset index
(``Bio.SeqIO.index``) is built.

Output is assembled in a request-private ``RecordBuffer``. Any failure raises
``ScaffoldError`` and the partially written buffer is dropped with it.
"""

from __future__ import annotations

import hashlib
import io
import os
import sqlite3
import threading
import uuid
from contextlib import closing
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from Bio import SeqIO

from scaffoldserve.errors import ErrorCode, ScaffoldError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from Bio.SeqRecord import SeqRecord

    from scaffoldserve.config import FetcherSettings

log = structlog.get_logger()


class BufferFullError(Exception):
    """Raised when a write would take a ``RecordBuffer`` past its capacity."""


class RecordBuffer:
    """Growable text sink with a hard upper bound on its size."""

    def __init__(self, max_bytes: int) -> None:
        self._max_bytes = max_bytes
        self._size = 0
        self._buf = io.StringIO()

    def __len__(self) -> int:
        return self._size

    def write(self, text: str) -> None:
        if self._size + len(text) > self._max_bytes:
            raise BufferFullError(
                f"record would exceed {self._max_bytes} bytes "
                f"(have {self._size}, writing {len(text)})"
            )
        self._buf.write(text)
        self._size += len(text)

    def getvalue(self) -> str:
        return self._buf.getvalue()


def write_wrapped(buffer: RecordBuffer, sequence: str, line_break: int) -> None:
    """Write ``sequence`` into ``buffer`` as lines of ``line_break`` characters.

    Every line but the last is exactly ``line_break`` long; the last holds the
    remaining 1..line_break characters. A ``line_break`` of 0 writes the whole
    sequence on one line. An empty sequence writes nothing.
    """
    seq_len = len(sequence)

    if line_break <= 0:
        if seq_len:
            buffer.write(sequence)
            buffer.write("\n")
        return

    offset = 0
    while offset + line_break < seq_len:
        buffer.write(sequence[offset : offset + line_break])
        buffer.write("\n")
        offset += line_break

    if seq_len > offset:
        buffer.write(sequence[offset:])
        buffer.write("\n")


# ------------------------------------------------------------------
# Persistent index files
# ------------------------------------------------------------------

_build_locks: dict[Path, threading.Lock] = {}
_build_locks_guard = threading.Lock()


def index_path_for(index_dir: Path, resolved_path: str) -> Path:
    """``<name>.<digest>.idx``: one index file per absolute FASTA path."""
    digest = hashlib.sha256(resolved_path.encode()).hexdigest()[:16]
    return index_dir / f"{Path(resolved_path).name}.{digest}.idx"


def _build_lock(index_path: Path) -> threading.Lock:
    with _build_locks_guard:
        return _build_locks.setdefault(index_path, threading.Lock())


def _index_is_current(index_path: Path, resolved_path: str) -> bool:
    """True when the index exists and is not older than its FASTA file."""
    try:
        index_mtime = index_path.stat().st_mtime_ns
    except FileNotFoundError:
        return False
    if os.stat(resolved_path).st_mtime_ns >= index_mtime:
        log.info("index_stale", index_path=str(index_path), backing_path=resolved_path)
        return False
    return True


def _build_index(index_path: Path, resolved_path: str) -> None:
    """Build into a temporary file and rename it over ``index_path``.

    Readers only ever open a complete index, including readers in other
    processes sharing the same directory.
    """
    index_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = index_path.with_name(f"{index_path.name}.{uuid.uuid4().hex}.tmp")
    try:
        SeqIO.index_db(str(tmp_path), [resolved_path], "fasta").close()
        os.replace(tmp_path, index_path)
    finally:
        tmp_path.unlink(missing_ok=True)
    log.info("index_built", index_path=str(index_path), backing_path=resolved_path)


class ScaffoldFetcher:
    """Fetches one named sequence from a FASTA file and formats it as a record."""

    def __init__(self, settings: FetcherSettings | None = None) -> None:
        if settings is None:
            from scaffoldserve.config import FetcherSettings

            settings = FetcherSettings()
        self._index_dir = Path(settings.index_dir).expanduser() if settings.index_dir else None
        self._max_record_bytes = settings.max_record_bytes

    def fetch(self, backing_path: str, scaffold_name: str, line_break: int) -> str:
        """Return ``>scaffold_name`` plus the wrapped sequence.

        Raises ScaffoldError with INDEX_LOAD_FAILED, BUFFER_WRITE_FAILED or
        SCAFFOLD_NOT_FOUND.
        """
        index = self._open_index(backing_path)
        with closing(index):
            buffer = RecordBuffer(self._max_record_bytes)
            try:
                buffer.write(f">{scaffold_name}\n")
                sequence = self._read_sequence(index, backing_path, scaffold_name)
                log.debug(
                    "scaffold_read",
                    scaffold=scaffold_name,
                    length=len(sequence),
                    line_break=line_break,
                )
                write_wrapped(buffer, sequence, line_break)
            except BufferFullError as exc:
                log.warning("buffer_write_failed", scaffold=scaffold_name, reason=str(exc))
                raise ScaffoldError(
                    ErrorCode.BUFFER_WRITE_FAILED,
                    f"Failed to write scaffold data for {scaffold_name!r}: {exc}",
                ) from exc

        log.info(
            "scaffold_fetched",
            scaffold=scaffold_name,
            backing_path=backing_path,
            record_bytes=len(buffer),
        )
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Index access
    # ------------------------------------------------------------------

    def _open_index(self, backing_path: str) -> Mapping[str, SeqRecord]:
        log.debug("index_loading", backing_path=backing_path)
        try:
            if self._index_dir is None:
                return SeqIO.index(backing_path, "fasta")
            resolved = str(Path(backing_path).resolve())
            index_path = index_path_for(self._index_dir, resolved)
            with _build_lock(index_path):
                if not _index_is_current(index_path, resolved):
                    _build_index(index_path, resolved)
            return SeqIO.index_db(str(index_path), [resolved], "fasta")
        except (OSError, ValueError, sqlite3.Error) as exc:
            log.warning("index_load_failed", backing_path=backing_path, exc_info=True)
            raise ScaffoldError(
                ErrorCode.INDEX_LOAD_FAILED,
                f"Failed to load fasta index {backing_path!r}: {exc}",
            ) from exc

    @staticmethod
    def _read_sequence(
        index: Mapping[str, SeqRecord], backing_path: str, scaffold_name: str
    ) -> str:
        try:
            record = index[scaffold_name]
            return str(record.seq)
        except KeyError as exc:
            raise ScaffoldError(
                ErrorCode.SCAFFOLD_NOT_FOUND,
                f"Scaffold {scaffold_name!r} not found in {backing_path!r}",
            ) from exc
        except (OSError, ValueError) as exc:
            log.warning(
                "scaffold_read_failed",
                scaffold=scaffold_name,
                backing_path=backing_path,
                exc_info=True,
            )
            raise ScaffoldError(
                ErrorCode.SCAFFOLD_NOT_FOUND,
                f"Failed to fetch scaffold {scaffold_name!r} from {backing_path!r}: {exc}",
            ) from exc
