"""A live connection to one Redis backend and the queues found in it."""

import asyncio
from collections.abc import Callable
import time

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from queue_explorer.cache import MemoryQueueNameCache, QueueNameCache
from queue_explorer.config import Settings
from queue_explorer.errors import ConfigurationError, QueueDiscoveryError
from queue_explorer.models import ConnectionDefinition, ConnectionStatus, QueuesExplored
from queue_explorer.queue_client import BullQueue, QueueHandle
from queue_explorer.signals import Signal

logger = structlog.get_logger(__name__)

DEFAULT_PREFIX = "bull"
DEFAULT_SCAN_COUNT = 1000

QueueFactory = Callable[[str, redis.Redis, str], QueueHandle]


def create_redis_client(definition: ConnectionDefinition, settings: Settings) -> redis.Redis:
    """Build a client for a connection definition. Nothing is sent until first use."""
    timeouts = {
        "socket_timeout": settings.socket_timeout,
        "socket_connect_timeout": settings.socket_connect_timeout,
    }
    config = definition.config
    if config.url:
        return redis.from_url(config.url, decode_responses=True, **timeouts)
    return redis.Redis(**config.client_kwargs(), decode_responses=True, **timeouts)


def queue_name_from_key(key: str) -> str | None:
    """Queue name of a ``<prefix>:<queue>:id`` key, or None if the key does not qualify."""
    parts = key.split(":")
    if len(parts) < 3:
        return None
    name = parts[1]
    if not name or name == "*":
        return None
    return name


class Connection:
    """One named backend connection.

    Status moves idle -> connected on ``connect`` (or failed), then
    loading-queues -> ready on each ``explore_queues`` pass.
    """

    def __init__(
        self,
        name: str,
        client: redis.Redis | None,
        cache: QueueNameCache,
        prefix: str | None = None,
        queue_factory: QueueFactory = BullQueue,
        scan_count: int = DEFAULT_SCAN_COUNT,
    ):
        self._name = name
        self._client = client
        self._cache = cache
        self._prefix = prefix or DEFAULT_PREFIX
        self._queue_factory = queue_factory
        self._scan_count = scan_count
        self._status = ConnectionStatus.IDLE
        self._queues: dict[str, QueueHandle] = {}
        self._closed = False
        self._setup_error: Exception | None = None
        # Serializes discovery passes on this connection
        self._explore_lock = asyncio.Lock()

        self.queues_explored: Signal[QueuesExplored] = Signal("queues_explored")

    @classmethod
    def from_definition(
        cls,
        definition: ConnectionDefinition,
        cache: QueueNameCache,
        settings: Settings,
    ) -> "Connection":
        return cls(
            name=definition.name,
            client=create_redis_client(definition, settings),
            cache=cache,
            prefix=definition.prefix,
            scan_count=settings.scan_count,
        )

    @classmethod
    def unavailable(cls, name: str, error: Exception) -> "Connection":
        """A connection whose client could not be built. It stays failed."""
        connection = cls(name=name, client=None, cache=MemoryQueueNameCache())
        connection._status = ConnectionStatus.FAILED
        connection._setup_error = error
        return connection

    @property
    def name(self) -> str:
        return self._name

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def client(self) -> redis.Redis | None:
        return self._client

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def queues(self) -> dict[str, QueueHandle]:
        """Discovered queues in discovery order. Read-only for callers."""
        return self._queues

    async def connect(self) -> None:
        """Open the link to the backend.

        Raises:
            ConfigurationError: If the client could not be built from the
                connection options.
            RedisError: If the backend is unreachable. Status is set to failed.
        """
        if self._client is None:
            self._status = ConnectionStatus.FAILED
            raise ConfigurationError(
                f"Connection {self._name} is misconfigured: {self._setup_error}"
            )
        try:
            await self._client.ping()
        except Exception:
            self._status = ConnectionStatus.FAILED
            raise
        self._status = ConnectionStatus.CONNECTED
        logger.info("connection_established", connection=self._name)

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._client is None:
            return
        await self._client.aclose()
        logger.info("connection_closed", connection=self._name)

    async def explore_queues(self, force_refresh: bool = False) -> None:
        """Discover the queues of this connection and rebuild the queue map.

        Cached names are used unless ``force_refresh`` is set or the cache is
        empty. Emits ``queues_explored`` once per completed pass.

        Raises:
            QueueDiscoveryError: If scanning fails. Status stays loading-queues.
        """
        async with self._explore_lock:
            if self._status in (ConnectionStatus.IDLE, ConnectionStatus.FAILED):
                return

            # ready only goes back to loading-queues on a forced refresh
            if not force_refresh and (self._queues or self._status == ConnectionStatus.READY):
                return

            self._status = ConnectionStatus.LOADING_QUEUES

            cached_names = [] if force_refresh else self._cache.get(self._name)
            if cached_names:
                queue_names = cached_names
                logger.debug(
                    "queue_names_from_cache",
                    connection=self._name,
                    queue_count=len(queue_names),
                )
            else:
                queue_names = await self.scan_queue_names()

            self._cache.update(self._name, queue_names)

            # Fresh handles every pass, even for names seen before
            self._queues = {
                queue_name: self._queue_factory(queue_name, self._client, self._prefix)
                for queue_name in queue_names
            }

            self._status = ConnectionStatus.READY

        self.queues_explored.emit(
            QueuesExplored(connection_name=self._name, queue_count=len(self._queues))
        )

    async def scan_queue_names(self) -> list[str]:
        """Enumerate queue names by scanning for ``<prefix>:*:id`` keys.

        Uses cursor-based SCAN batches instead of KEYS so large key spaces
        never block the server.
        """
        started = time.monotonic()
        logger.info("queue_scan_started", connection=self._name, prefix=self._prefix)

        # dict keeps first-seen order
        queue_names: dict[str, None] = {}
        try:
            async for key in self._client.scan_iter(
                match=f"{self._prefix}:*:id", count=self._scan_count
            ):
                if isinstance(key, bytes):
                    key = key.decode()
                queue_name = queue_name_from_key(key)
                if queue_name:
                    queue_names[queue_name] = None
        except RedisError as e:
            logger.error("queue_scan_failed", connection=self._name, error=str(e))
            raise QueueDiscoveryError(self._name, e) from e

        logger.info(
            "queue_scan_finished",
            connection=self._name,
            queue_count=len(queue_names),
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return list(queue_names)
