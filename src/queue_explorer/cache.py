"""Persisted cache of discovered queue names, keyed by connection name.

Entries never expire; a forced rediscovery overwrites them.
"""

import json
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


def cache_key(connection_name: str) -> str:
    return f"bullmq:queues:{connection_name}"


class QueueNameCache(Protocol):
    """Storage for queue names discovered per connection."""

    def get(self, connection_name: str) -> list[str]:
        """Cached names, or an empty list."""
        ...

    def update(self, connection_name: str, queue_names: list[str]) -> None:
        """Replace the cached names wholesale."""
        ...


class MemoryQueueNameCache:
    """Cache that lives as long as the process."""

    def __init__(self) -> None:
        self._entries: dict[str, list[str]] = {}

    def get(self, connection_name: str) -> list[str]:
        return list(self._entries.get(cache_key(connection_name), []))

    def update(self, connection_name: str, queue_names: list[str]) -> None:
        self._entries[cache_key(connection_name)] = list(queue_names)


class JsonFileQueueNameCache:
    """Cache stored as one JSON object in a file.

    The file is re-read on every ``get`` so several explorer processes can
    share it; writes replace the whole file.
    """

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> dict[str, list[str]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("queue_cache_unreadable", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, connection_name: str) -> list[str]:
        names = self._read().get(cache_key(connection_name))
        if isinstance(names, list) and names:
            return [str(name) for name in names]
        return []

    def update(self, connection_name: str, queue_names: list[str]) -> None:
        data = self._read()
        data[cache_key(connection_name)] = list(queue_names)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
        logger.debug(
            "queue_cache_updated",
            connection=connection_name,
            queue_count=len(queue_names),
        )
