"""Storage name allocation."""

import re
import time
from typing import Callable, NamedTuple, Optional
from uuid import UUID, uuid4

DEFAULT_EXTENSION = "jpg"

STORAGE_NAME_PATTERN = re.compile(
    r"^(?P<owner_id>.+)-(?P<timestamp>\d+)-"
    r"(?P<uuid>[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})"
    r"\.(?P<extension>[a-z0-9]+)$"
)


class StorageNameParts(NamedTuple):
    owner_id: str
    timestamp_ms: int
    uuid: str
    extension: str


def allocate(
    owner_id,
    extension: str,
    *,
    now_ms: Optional[int] = None,
    uuid_factory: Callable[[], UUID] = uuid4,
) -> str:
    """Mint a storage name: {owner_id}-{millisecond timestamp}-{uuid}.{extension}."""
    timestamp = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    ext = extension.lower().lstrip(".") or DEFAULT_EXTENSION
    return f"{owner_id}-{timestamp}-{uuid_factory()}.{ext}"


def parse_storage_name(name: str) -> Optional[StorageNameParts]:
    """Split a storage name into its parts, or None if it is not one."""
    match = STORAGE_NAME_PATTERN.match(name or "")
    if not match:
        return None
    return StorageNameParts(
        owner_id=match.group("owner_id"),
        timestamp_ms=int(match.group("timestamp")),
        uuid=match.group("uuid"),
        extension=match.group("extension"),
    )
