"""Application settings and the connections file.

Settings come from environment variables prefixed with ``QUEUE_EXPLORER_``
(or a ``.env`` file). Connection definitions live in a separate YAML file,
an ordered list of ``{name, prefix?, config}`` entries.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog
import yaml

from queue_explorer.errors import ConfigurationError
from queue_explorer.models import ConnectionDefinition

logger = structlog.get_logger(__name__)


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "queue-explorer"


class Settings(BaseSettings):
    """Explorer settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUE_EXPLORER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    connections_file: Path = Field(
        default=Path("connections.yaml"),
        description="YAML file with the ordered list of connections",
    )
    cache_dir: Path = Field(
        default_factory=_default_cache_dir,
        description="Directory for the discovered queue names cache",
    )

    # Logging configuration
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Backend access
    scan_count: int = Field(
        default=1000,
        ge=1,
        description="COUNT hint for each SCAN batch during queue discovery",
    )
    job_list_limit: int = Field(
        default=10_000,
        ge=1,
        description="Max job ids listed under one status",
    )
    socket_timeout: float | None = Field(default=10.0, gt=0)
    socket_connect_timeout: float | None = Field(default=5.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @property
    def queue_cache_file(self) -> Path:
        return self.cache_dir / "queues.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# === Connections file ===

CONNECTIONS_FILE_HEADER = """\
# Queue Explorer connections
#
# Each connection requires:
#   - name: a unique identifier for the connection
#   - config: Redis connection options (url, or host/port/db/username/password/tls)
#   - prefix (optional): BullMQ key prefix, "bull" when omitted
#
# Example:
#
# - name: local-redis
#   prefix: bull
#   config:
#     host: localhost
#     port: 6379
#     password: ""
"""


def parse_connection_definitions(raw: Any) -> list[ConnectionDefinition]:
    """Validate the parsed content of a connections file.

    Raises:
        ConfigurationError: If the content is not a list of valid, uniquely
            named connection definitions.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigurationError("Connections file must contain a list of connections")

    definitions: list[ConnectionDefinition] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw):
        try:
            definition = ConnectionDefinition.model_validate(entry)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid connection at position {index}: {e}") from e
        if definition.name in seen:
            raise ConfigurationError(f"Duplicate connection name: {definition.name}")
        seen.add(definition.name)
        definitions.append(definition)
    return definitions


def load_connection_definitions(path: Path) -> list[ConnectionDefinition]:
    """Read connection definitions, in file order. A missing file means no connections."""
    if not path.exists():
        logger.warning("connections_file_missing", path=str(path))
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    definitions = parse_connection_definitions(raw)
    logger.debug("connections_loaded", path=str(path), count=len(definitions))
    return definitions


def dump_connection_definitions(definitions: list[ConnectionDefinition]) -> str:
    data = [d.model_dump(exclude_none=True, exclude_defaults=False) for d in definitions]
    return CONNECTIONS_FILE_HEADER + "\n" + yaml.safe_dump(data, sort_keys=False)


def save_connection_definitions(path: Path, definitions: list[ConnectionDefinition]) -> None:
    """Write definitions back to the connections file, with the documentation header."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_connection_definitions(definitions), encoding="utf-8")
    logger.info("connections_saved", path=str(path), count=len(definitions))
