from __future__ import annotations

from pydantic import BaseModel


class PeerResult(BaseModel):
    """Outcome of forwarding one request to one peer store."""

    peer: str
    succeeded: bool
    payload: str | None = None
    message: str | None = None


class DelegationOutcome(BaseModel):
    attempted: int = 0
    results: list[PeerResult] = []

    @property
    def succeeded(self) -> bool:
        return any(r.succeeded for r in self.results)

    def first_success(self) -> PeerResult | None:
        return next((r for r in self.results if r.succeeded), None)
