"""Ordered set of backend connections built from configuration."""

import asyncio
from collections.abc import Callable

import structlog

from queue_explorer.cache import QueueNameCache
from queue_explorer.config import Settings
from queue_explorer.connection import Connection
from queue_explorer.errors import ConnectionNotFoundError
from queue_explorer.models import ConnectionDefinition, ConnectionStatus
from queue_explorer.signals import Signal

logger = structlog.get_logger(__name__)

DefinitionsLoader = Callable[[], list[ConnectionDefinition]]
ConnectionFactory = Callable[[ConnectionDefinition], Connection]


class ConnectionRegistry:
    """Owns the connections and publishes their lifecycle.

    The connection list is replaced, never mutated in place, so a caller
    holding the previous list keeps a consistent view during a reinitialize.
    """

    def __init__(
        self,
        load_definitions: DefinitionsLoader,
        connection_factory: ConnectionFactory,
    ):
        self._load_definitions = load_definitions
        self._connection_factory = connection_factory
        self._connections: tuple[Connection, ...] = ()

        self.connection_added: Signal[Connection] = Signal("connection_added")
        self.reinitialized: Signal[None] = Signal("connections_reinitialized")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: QueueNameCache,
        load_definitions: DefinitionsLoader,
    ) -> "ConnectionRegistry":
        return cls(
            load_definitions=load_definitions,
            connection_factory=lambda definition: Connection.from_definition(
                definition, cache, settings
            ),
        )

    @property
    def connections(self) -> tuple[Connection, ...]:
        return self._connections

    def get_connection(self, name: str) -> Connection:
        for connection in self._connections:
            if connection.name == name:
                return connection
        raise ConnectionNotFoundError(f"Connection '{name}' is not configured")

    async def init_connections(self) -> None:
        """Build and connect every configured connection concurrently.

        Connections that cannot be built or fail to connect stay in the
        registry with status failed. One ``connection_added`` event per
        connection is emitted, in configuration order, once all of them have
        settled.
        """
        definitions = self._load_definitions()
        if not definitions:
            logger.warning("no_connections_configured")
            return

        self._connections = await self._build_connections(definitions)
        for connection in self._connections:
            self.connection_added.emit(connection)

    async def reinitialize_connections(self) -> None:
        """Disconnect everything, then rebuild from the current configuration."""
        for connection in self._connections:
            try:
                await connection.disconnect()
            except Exception as e:
                logger.error("connection_disconnect_failed", connection=connection.name, error=str(e))

        definitions = self._load_definitions()
        if not definitions:
            logger.warning("no_connections_configured")
            self._connections = ()
        else:
            self._connections = await self._build_connections(definitions)
            for connection in self._connections:
                self.connection_added.emit(connection)

        logger.info("connections_reinitialized", count=len(self._connections))
        self.reinitialized.emit(None)

    async def close(self) -> None:
        """Disconnect all connections and drop every listener."""
        for connection in self._connections:
            try:
                await connection.disconnect()
            except Exception as e:
                logger.error("connection_disconnect_failed", connection=connection.name, error=str(e))
            connection.queues_explored.clear()
        self.connection_added.clear()
        self.reinitialized.clear()

    async def _build_connections(
        self, definitions: list[ConnectionDefinition]
    ) -> tuple[Connection, ...]:
        order = {definition.name: index for index, definition in enumerate(definitions)}
        settled: list[Connection] = []

        async def connect(definition: ConnectionDefinition) -> None:
            try:
                connection = self._connection_factory(definition)
            except Exception as e:
                logger.error("connection_setup_failed", connection=definition.name, error=str(e))
                settled.append(Connection.unavailable(definition.name, e))
                return

            try:
                await connection.connect()
            except Exception as e:
                logger.error("connection_failed", connection=definition.name, error=str(e))

            if connection.status == ConnectionStatus.CONNECTED:
                logger.info("connection_ready", connection=definition.name)

            settled.append(connection)

        results = await asyncio.gather(
            *(connect(d) for d in definitions), return_exceptions=True
        )
        for definition, result in zip(definitions, results, strict=True):
            if isinstance(result, Exception):
                logger.error("connection_task_failed", connection=definition.name, error=str(result))

        # Completion order is arbitrary; restore configuration order
        return tuple(sorted(settled, key=lambda c: order[c.name]))
