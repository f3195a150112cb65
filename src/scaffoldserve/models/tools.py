from __future__ import annotations

import re

from pydantic import BaseModel, field_validator

from scaffoldserve.models.registry import IndexOption

DEFAULT_LINE_BREAK = 60


class FetchScaffoldInput(BaseModel):
    store_id: str
    scaffold: str
    line_break: int = DEFAULT_LINE_BREAK

    @field_validator("store_id")
    @classmethod
    def validate_store_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("store_id must not be empty")
        if len(v) > 4096:
            raise ValueError("store_id must not exceed 4096 characters")
        return v

    @field_validator("scaffold")
    @classmethod
    def validate_scaffold(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("scaffold must not be empty")
        # FASTA identifiers end at the first whitespace
        if re.search(r"\s", v):
            raise ValueError(f"Invalid scaffold name: {v!r}")
        return v

    @field_validator("line_break")
    @classmethod
    def validate_line_break(cls, v: int) -> int:
        if v < 0:
            raise ValueError("line_break must be >= 0")
        return v


class FetchScaffoldOutput(BaseModel):
    job_id: str
    store_id: str
    scaffold: str
    record: str  # FASTA header line plus wrapped sequence
    delegated: bool = False
    peer: str | None = None


class ListIndexesOutput(BaseModel):
    default: str | None
    indexes: list[IndexOption]
