"""Exception hierarchy for queue-explorer."""


class QueueExplorerError(Exception):
    """Base class for all queue-explorer errors."""


class ConfigurationError(QueueExplorerError):
    """Connections file or settings are malformed."""


class QueueDiscoveryError(QueueExplorerError):
    """Scanning the backend for queue names failed."""

    def __init__(self, connection_name: str, cause: Exception):
        super().__init__(f"Failed to scan queues for connection {connection_name}: {cause}")
        self.connection_name = connection_name
        self.cause = cause


class ConnectionNotFoundError(QueueExplorerError):
    """No connection with the given name is registered."""


class QueueNotFoundError(QueueExplorerError):
    """The connection has not discovered a queue with the given name."""
