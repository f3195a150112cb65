"""Index registry: construction from configuration and request resolution.

The registry is built once at startup and never mutated, so concurrent
requests read it without locking. Resolution is a linear scan in
configuration order; the first matching entry wins.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from scaffoldserve.models.registry import IndexEntry, IndexOption

if TYPE_CHECKING:
    from collections.abc import Iterator

    from scaffoldserve.config import Settings

log = structlog.get_logger()


@dataclass(frozen=True)
class IndexRegistry:
    """Ordered, immutable table of configured sequence stores."""

    entries: tuple[IndexEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries)


def parse_index_entries(raw: Any) -> list[IndexEntry]:
    """Parse the ``index_files`` configuration value.

    Accepts a single object or an array of objects. Entries without a usable
    backing path are skipped with a warning rather than failing startup.
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        items = [raw]
    elif isinstance(raw, list):
        items = raw
    else:
        raise ValueError(f"index_files must be an object or an array, got {type(raw).__name__}")

    entries: list[IndexEntry] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            log.warning("registry_entry_skipped", position=position, reason="not an object")
            continue
        try:
            entries.append(IndexEntry.model_validate(item))
        except ValidationError as exc:
            log.warning(
                "registry_entry_skipped",
                position=position,
                reason=exc.errors()[0]["msg"],
            )
    return entries


def load_index_file(path: str | Path) -> list[IndexEntry]:
    """Read a standalone JSON config file of the form ``{"index_files": ...}``."""
    data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    if isinstance(data, dict) and "index_files" in data:
        data = data["index_files"]
    return parse_index_entries(data)


def build_registry(settings: Settings) -> IndexRegistry:
    """Build the registry from inline ``index_files`` plus the optional JSON file."""
    entries = parse_index_entries(settings.index_files)
    if settings.service.index_config_path:
        entries.extend(load_index_file(settings.service.index_config_path))
    registry = IndexRegistry(entries=tuple(entries))
    log.info("registry_loaded", entries=len(registry))
    return registry


def qualified_store_name(store_id: str, provider_namespace: str) -> str:
    """Name a local store the way peers and clients see it: ``"wheatA (earlham)"``."""
    return f"{store_id} ({provider_namespace})"


def resolve(
    requested_id: str | None,
    registry: IndexRegistry,
    provider_namespace: str | None = None,
) -> IndexEntry | None:
    """Return the first entry matching ``requested_id``, or ``None``.

    Each entry matches on its backing path or its store id. When a provider
    namespace is in play the namespace-qualified store id matches as well.
    """
    if not requested_id:
        return None

    for entry in registry.entries:
        if entry.backing_path == requested_id:
            return entry
        if entry.store_id:
            if entry.store_id == requested_id:
                return entry
            if (
                provider_namespace
                and qualified_store_name(entry.store_id, provider_namespace) == requested_id
            ):
                return entry

    log.debug("index_not_resolved", requested_id=requested_id, entries=len(registry))
    return None


def index_options(
    registry: IndexRegistry, provider_namespace: str | None = None
) -> list[IndexOption]:
    """List the selectable stores in registry order."""
    options = []
    for entry in registry.entries:
        label = entry.store_id or entry.backing_path
        if provider_namespace and entry.store_id:
            label = qualified_store_name(entry.store_id, provider_namespace)
        options.append(IndexOption(value=entry.backing_path, label=label))
    return options


def default_store_id(registry: IndexRegistry) -> str | None:
    """The first configured store is the default selection."""
    if not registry.entries:
        return None
    first = registry.entries[0]
    return first.store_id or first.backing_path
