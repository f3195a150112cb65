from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class IndexEntry(BaseModel):
    """Single configured sequence store: an identifier and the FASTA file behind it."""

    model_config = ConfigDict(frozen=True)

    # Key names follow the service configuration files ("Blast database" / "Fasta")
    store_id: str = Field(
        default="",
        validation_alias=AliasChoices("Blast database", "store_id"),
    )
    backing_path: str = Field(validation_alias=AliasChoices("Fasta", "backing_path"))

    @field_validator("store_id", mode="before")
    @classmethod
    def validate_store_id(cls, v: str | None) -> str:
        return "" if v is None else v

    @field_validator("backing_path")
    @classmethod
    def validate_backing_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("backing path must not be empty")
        return v


class IndexOption(BaseModel):
    """Selectable store as presented to clients: value is the path, label the store id."""

    value: str
    label: str
