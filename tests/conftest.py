"""Shared fixtures: small FASTA stores on disk and a registry pointing at them."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from scaffoldserve.models.registry import IndexEntry
from scaffoldserve.registry import IndexRegistry

if TYPE_CHECKING:
    from pathlib import Path

CHR1A = "ACGTACGTACGTACGTACGTACGTA"  # 25 bases
CHR2B = "TTTTGGGGCCCCAAAATTTT"  # 20 bases


def write_fasta(path: Path, records: dict[str, str], width: int = 7) -> Path:
    """Write ``records`` as FASTA, wrapping the stored lines at ``width``."""
    lines: list[str] = []
    for name, seq in records.items():
        lines.append(f">{name} test scaffold")
        lines.extend(seq[i : i + width] for i in range(0, len(seq), width))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def wheat_fasta(tmp_path: Path) -> Path:
    return write_fasta(
        tmp_path / "wheatA.fa",
        {"chr1A": CHR1A, "chr2B": CHR2B, "empty": ""},
    )


@pytest.fixture()
def barley_fasta(tmp_path: Path) -> Path:
    return write_fasta(tmp_path / "barley.fa", {"chr1H": "GATTACA" * 3})


@pytest.fixture()
def sample_entries(wheat_fasta: Path, barley_fasta: Path) -> list[IndexEntry]:
    return [
        IndexEntry(store_id="wheatA", backing_path=str(wheat_fasta)),
        IndexEntry(store_id="barley", backing_path=str(barley_fasta)),
    ]


@pytest.fixture()
def registry(sample_entries: list[IndexEntry]) -> IndexRegistry:
    return IndexRegistry(entries=tuple(sample_entries))
