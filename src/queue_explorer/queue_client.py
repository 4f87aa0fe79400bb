"""Narrow interface to the BullMQ queue client.

The explorer only talks to queues through ``QueueHandle`` and ``JobHandle``.
``BullQueue`` implements them on top of the ``bullmq`` package. Job ids are
listed with ``Queue.getRanges``, so no payloads are read while browsing.
"""

from collections.abc import Iterable
from typing import Any, Protocol

import bullmq
import redis.asyncio as redis
import structlog

from queue_explorer.models import JobSnapshot, JobState

logger = structlog.get_logger(__name__)


class JobHandle(Protocol):
    """A single job loaded from the queue."""

    @property
    def id(self) -> str: ...

    def snapshot(self) -> JobSnapshot: ...

    async def get_state(self) -> str: ...

    async def remove(self) -> None: ...

    async def promote(self) -> None: ...

    async def update_data(self, data: Any) -> None: ...

    async def update_progress(self, progress: Any) -> None: ...

    async def change_delay(self, delay: int) -> None: ...

    async def change_priority(self, priority: int) -> None: ...


class QueueHandle(Protocol):
    """A queue inside one connection's namespace."""

    @property
    def name(self) -> str: ...

    async def add(self, name: str, data: Any, opts: dict[str, Any]) -> str: ...

    async def get_job(self, job_id: str) -> JobHandle | None: ...

    async def get_job_state(self, job_id: str) -> str: ...

    async def list_identifiers(
        self,
        states: Iterable[JobState | str],
        start: int = 0,
        end: int = -1,
        asc: bool = False,
    ) -> list[str]: ...

    async def drain(self, delayed: bool = False) -> None: ...

    async def obliterate(self, force: bool = False) -> None: ...


def snapshot_from_bull_job(job: Any) -> JobSnapshot:
    """Copy the public fields of a ``bullmq.Job``."""
    return JobSnapshot(
        id=str(job.id),
        name=getattr(job, "name", None),
        data=getattr(job, "data", None),
        opts=dict(getattr(job, "opts", None) or {}),
        progress=getattr(job, "progress", 0),
        returnvalue=getattr(job, "returnvalue", None),
        failed_reason=getattr(job, "failedReason", None),
        stacktrace=list(getattr(job, "stacktrace", None) or []),
        timestamp=getattr(job, "timestamp", None),
        processed_on=getattr(job, "processedOn", None),
        finished_on=getattr(job, "finishedOn", None),
        attempts_made=getattr(job, "attemptsMade", 0) or 0,
        delay=getattr(job, "delay", 0) or 0,
        priority=getattr(job, "priority", 0) or 0,
    )


class BullJob:
    """``JobHandle`` backed by a ``bullmq.Job``."""

    def __init__(self, job: bullmq.Job):
        self._job = job

    @property
    def id(self) -> str:
        return str(self._job.id)

    def snapshot(self) -> JobSnapshot:
        return snapshot_from_bull_job(self._job)

    async def get_state(self) -> str:
        return await self._job.getState()

    async def remove(self) -> None:
        await self._job.remove()

    async def promote(self) -> None:
        await self._job.promote()

    async def update_data(self, data: Any) -> None:
        await self._job.updateData(data)

    async def update_progress(self, progress: Any) -> None:
        await self._job.updateProgress(progress)

    async def change_delay(self, delay: int) -> None:
        await self._job.changeDelay(delay)

    async def change_priority(self, priority: int) -> None:
        await self._job.changePriority({"priority": priority})


class BullQueue:
    """``QueueHandle`` for a BullMQ queue reached through a shared Redis client."""

    def __init__(self, name: str, redis_client: redis.Redis, prefix: str = "bull"):
        self._name = name
        self.prefix = prefix
        self._redis = redis_client
        self._bull: bullmq.Queue | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def bull(self) -> bullmq.Queue:
        """The bullmq queue, created on first use.

        It shares the connection's client and must not be closed on its own.
        """
        if self._bull is None:
            self._bull = bullmq.Queue(
                self._name, {"connection": self._redis, "prefix": self.prefix}
            )
        return self._bull

    def key(self, suffix: str) -> str:
        return f"{self.prefix}:{self._name}:{suffix}"

    async def list_identifiers(
        self,
        states: Iterable[JobState | str],
        start: int = 0,
        end: int = -1,
        asc: bool = False,
    ) -> list[str]:
        """Job ids in the given states, within ``start..end`` of each state.

        ``end=-1`` means up to the last job. Without ``asc`` the newest jobs
        come first, as BullMQ lists them. ``waiting`` includes paused jobs.
        """
        types = [JobState(state).value for state in states]
        job_ids = await self.bull.getRanges(types, start, end, asc)
        return list(dict.fromkeys(str(job_id) for job_id in job_ids))

    async def add(self, name: str, data: Any, opts: dict[str, Any]) -> str:
        job = await self.bull.add(name, data, opts)
        logger.info("job_added", queue=self._name, job_id=job.id, job_name=name)
        return str(job.id)

    async def get_job(self, job_id: str) -> BullJob | None:
        if not await self._redis.exists(self.key(job_id)):
            return None
        job = await bullmq.Job.fromId(self.bull, job_id)
        if job is None:
            return None
        return BullJob(job)

    async def get_job_state(self, job_id: str) -> str:
        """State name of a job, "unknown" if it does not exist."""
        return await self.bull.getJobState(job_id)

    async def drain(self, delayed: bool = False) -> None:
        await self.bull.drain(delayed)
        logger.info("queue_drained", queue=self._name, delayed=delayed)

    async def obliterate(self, force: bool = False) -> None:
        await self.bull.obliterate(force=force)
        logger.info("queue_obliterated", queue=self._name, force=force)
