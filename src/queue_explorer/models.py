"""Data models shared across the explorer."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class ConnectionStatus(str, Enum):
    """Lifecycle of a backend connection."""

    IDLE = "idle"
    CONNECTED = "connected"
    FAILED = "failed"
    LOADING_QUEUES = "loading-queues"
    READY = "ready"


class JobState(str, Enum):
    """Job lifecycle states, in display order."""

    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"
    PRIORITIZED = "prioritized"
    WAITING_CHILDREN = "waiting-children"


class QueueSortOrder(str, Enum):
    NONE = "none"
    JOB_COUNT_ASC = "jobCountAsc"
    JOB_COUNT_DESC = "jobCountDesc"


class JobSortOrder(str, Enum):
    NONE = "none"
    ID_ASC = "idAsc"
    ID_DESC = "idDesc"


class FilterState(BaseModel):
    """Active filter criteria.

    Name fields are exact matches, pattern fields are substring matches.
    """

    model_config = ConfigDict(frozen=True)

    connection_name: str | None = None
    queue_name: str | None = None
    queue_name_pattern: str | None = None
    job_id_pattern: str | None = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.connection_name,
                self.queue_name,
                self.queue_name_pattern,
                self.job_id_pattern,
            )
        )


class SortState(BaseModel):
    model_config = ConfigDict(frozen=True)

    queue_sort: QueueSortOrder = QueueSortOrder.NONE
    job_sort: JobSortOrder = JobSortOrder.NONE

    def is_empty(self) -> bool:
        return self.queue_sort == QueueSortOrder.NONE and self.job_sort == JobSortOrder.NONE


@dataclass(frozen=True)
class QueuesExplored:
    """Payload of a finished discovery pass."""

    connection_name: str
    queue_count: int


# === Connection configuration ===


class RedisConfig(BaseModel):
    """Redis connection options for one connection.

    Either ``url`` or the host/port fields are used. ``tls`` is accepted as
    another name for ``ssl``. Unknown keys are passed through to the redis
    client untouched.
    """

    model_config = ConfigDict(extra="allow")

    url: str | None = Field(default=None, examples=["redis://localhost:6379/0"])
    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0)
    username: str | None = None
    password: str | None = None
    ssl: bool = Field(default=False, validation_alias=AliasChoices("ssl", "tls"))

    @field_validator("password", "username")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        return v or None

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``redis.asyncio.Redis`` (ignored when ``url`` is set)."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "username": self.username,
            "password": self.password,
            "ssl": self.ssl,
        }
        kwargs.update(self.model_extra or {})
        return kwargs


class ConnectionDefinition(BaseModel):
    """One entry of the connections file."""

    name: str = Field(..., min_length=1, description="Unique connection name")
    prefix: str | None = Field(default=None, description="BullMQ key prefix (default: bull)")
    config: RedisConfig = Field(default_factory=RedisConfig)


# === Jobs ===


class JobSnapshot(BaseModel):
    """Point-in-time copy of a job, as shown to the operator."""

    id: str
    name: str | None = None
    data: Any = None
    opts: dict[str, Any] = Field(default_factory=dict)
    progress: Any = 0
    returnvalue: Any = None
    failed_reason: str | None = Field(default=None, serialization_alias="failedReason")
    stacktrace: list[str] = Field(default_factory=list)
    timestamp: int | None = None
    processed_on: int | None = Field(default=None, serialization_alias="processedOn")
    finished_on: int | None = Field(default=None, serialization_alias="finishedOn")
    attempts_made: int = Field(default=0, serialization_alias="attemptsMade")
    delay: int = 0
    priority: int = 0


class Backoff(BaseModel):
    type: Literal["fixed", "exponential"]
    delay: int = Field(..., ge=0)


class Repeat(BaseModel):
    model_config = ConfigDict(extra="allow")

    cron: str | None = None
    every: int | None = Field(default=None, gt=0)
    limit: int | None = Field(default=None, gt=0)


class JobOptions(BaseModel):
    """Options accepted when creating a job.

    Field aliases are BullMQ's option names; extra options pass through.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    delay: int | None = Field(default=None, ge=0)
    priority: int | None = Field(default=None, ge=0, le=2_097_152)
    attempts: int | None = Field(default=None, ge=1)
    backoff: Backoff | None = None
    repeat: Repeat | None = None
    job_id: str | None = Field(default=None, alias="jobId")
    lifo: bool | None = None
    remove_on_complete: bool | int | None = Field(default=None, alias="removeOnComplete")
    remove_on_fail: bool | int | None = Field(default=None, alias="removeOnFail")
    timeout: int | None = Field(default=None, gt=0)

    def to_bull_options(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class JobTemplate(BaseModel):
    """A job to create: name, payload and options."""

    name: str = Field(..., min_length=1)
    data: Any = Field(...)
    opts: JobOptions = Field(default_factory=JobOptions)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Job 'name' must not be blank")
        return v

    @field_validator("opts", mode="before")
    @classmethod
    def null_opts(cls, v: Any) -> Any:
        # An all-commented opts block in the template parses as null
        return {} if v is None else v


class JobChanges(BaseModel):
    """Editable fields of a job. Only fields present in the input are applied."""

    model_config = ConfigDict(extra="ignore")

    data: Any = None
    progress: int | float | dict[str, Any] | None = None
    delay: int | None = Field(default=None, ge=0)
    priority: int | None = Field(default=None, ge=0, le=2_097_152)

    @model_validator(mode="after")
    def drop_explicit_nulls(self) -> "JobChanges":
        # null progress/delay/priority means "leave as is"; null data is a real value
        for name in ("progress", "delay", "priority"):
            if getattr(self, name) is None:
                self.model_fields_set.discard(name)
        return self
