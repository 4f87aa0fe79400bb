"""In-memory stand-ins for the Redis client and BullMQ queues."""

import asyncio
from collections.abc import Iterable
from contextlib import asynccontextmanager
from typing import Any

from redis.exceptions import ConnectionError as RedisConnectionError

from queue_explorer.cache import MemoryQueueNameCache, QueueNameCache
from queue_explorer.connection import Connection
from queue_explorer.explorer import open_explorer
from queue_explorer.models import ConnectionDefinition, JobSnapshot, JobState
from queue_explorer.registry import ConnectionRegistry
from queue_explorer.tree import TreeProvider
from queue_explorer.view_state import ViewState


class FakeRedisClient:
    """Only what ``Connection`` uses: ping, scan_iter and aclose."""

    def __init__(
        self,
        keys: Iterable[str] = (),
        ping_delay: float = 0.0,
        fail: bool = False,
        scan_error: Exception | None = None,
    ):
        self.keys = list(keys)
        self.ping_delay = ping_delay
        self.fail = fail
        self.scan_error = scan_error
        self.scan_calls = 0
        self.closed = False

    async def ping(self) -> bool:
        await asyncio.sleep(self.ping_delay)
        if self.fail:
            raise RedisConnectionError("Connection refused")
        return True

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        self.scan_calls += 1
        if self.scan_error is not None:
            raise self.scan_error
        prefix = match.split("*")[0] if match else ""
        for key in self.keys:
            if key.startswith(prefix) and key.endswith(":id"):
                yield key

    async def aclose(self) -> None:
        self.closed = True


class FakeJob:
    def __init__(self, queue: "FakeQueue", job_id: str, state: JobState, **fields: Any):
        self.queue = queue
        self._id = job_id
        self.state = state
        self.fields = {"name": "job", "data": {}, "progress": 0, "delay": 0, "priority": 0}
        self.fields.update(fields)

    @property
    def id(self) -> str:
        return self._id

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(id=self._id, **self.fields)

    async def get_state(self) -> str:
        return self.state.value

    async def remove(self) -> None:
        self.queue.calls.append(("remove", self._id))
        del self.queue.jobs[self._id]

    async def promote(self) -> None:
        self.queue.calls.append(("promote", self._id))
        self.state = JobState.WAITING

    async def update_data(self, data: Any) -> None:
        self.queue.calls.append(("update_data", self._id))
        self.fields["data"] = data

    async def update_progress(self, progress: Any) -> None:
        self.queue.calls.append(("update_progress", self._id))
        self.fields["progress"] = progress

    async def change_delay(self, delay: int) -> None:
        self.queue.calls.append(("change_delay", self._id))
        self.fields["delay"] = delay

    async def change_priority(self, priority: int) -> None:
        self.queue.calls.append(("change_priority", self._id))
        self.fields["priority"] = priority


class FakeQueue:
    """Queue handle keeping jobs in a dict, listed in insertion order."""

    def __init__(self, name: str):
        self._name = name
        self.jobs: dict[str, FakeJob] = {}
        self.calls: list[tuple] = []
        self.fail_listing = False
        self.fail_mutations = False
        self.fail_lookups = False
        self._next_id = 1

    @property
    def name(self) -> str:
        return self._name

    def add_job(self, job_id: str, state: JobState = JobState.WAITING, **fields: Any) -> FakeJob:
        job = FakeJob(self, job_id, state, **fields)
        self.jobs[job_id] = job
        return job

    def add_jobs(self, job_ids: Iterable[str], state: JobState) -> None:
        for job_id in job_ids:
            self.add_job(job_id, state)

    async def add(self, name: str, data: Any, opts: dict[str, Any]) -> str:
        if self.fail_mutations:
            raise RedisConnectionError("Connection lost")
        self.calls.append(("add", name, data, opts))
        job_id = opts.get("jobId") or str(self._next_id)
        self._next_id += 1
        state = JobState.DELAYED if opts.get("delay") else JobState.WAITING
        self.add_job(job_id, state, name=name, data=data)
        return job_id

    async def get_job(self, job_id: str) -> FakeJob | None:
        return self.jobs.get(job_id)

    async def get_job_state(self, job_id: str) -> str:
        if self.fail_lookups:
            raise RedisConnectionError("Connection lost")
        job = self.jobs.get(job_id)
        return job.state.value if job else "unknown"

    async def list_identifiers(
        self,
        states: Iterable[JobState | str],
        start: int = 0,
        end: int = -1,
        asc: bool = False,
    ) -> list[str]:
        if self.fail_listing:
            raise RedisConnectionError("Connection lost")
        ids: list[str] = []
        for state in states:
            state_ids = [job.id for job in self.jobs.values() if job.state == JobState(state)]
            ids.extend(state_ids[start:] if end == -1 else state_ids[start : end + 1])
        return ids

    async def drain(self, delayed: bool = False) -> None:
        if self.fail_mutations:
            raise RedisConnectionError("Connection lost")
        self.calls.append(("drain", delayed))
        drained = {JobState.WAITING, JobState.PRIORITIZED}
        if delayed:
            drained.add(JobState.DELAYED)
        self.jobs = {k: j for k, j in self.jobs.items() if j.state not in drained}

    async def obliterate(self, force: bool = False) -> None:
        if self.fail_mutations:
            raise RedisConnectionError("Connection lost")
        self.calls.append(("obliterate", force))
        self.jobs.clear()


def make_connection(
    name: str,
    queues: Iterable[FakeQueue] = (),
    cache: QueueNameCache | None = None,
    **client_options: Any,
) -> Connection:
    """Connection whose discovery finds ``queues`` and hands out those same objects."""
    queues_by_name = {queue.name: queue for queue in queues}
    client = FakeRedisClient(keys=[f"bull:{q}:id" for q in queues_by_name], **client_options)
    return Connection(
        name=name,
        client=client,
        cache=cache or MemoryQueueNameCache(),
        queue_factory=lambda queue_name, _client, _prefix: queues_by_name[queue_name],
    )


def make_registry(connections: Iterable[Connection]) -> ConnectionRegistry:
    by_name = {connection.name: connection for connection in connections}
    definitions = [ConnectionDefinition(name=name) for name in by_name]
    return ConnectionRegistry(
        load_definitions=lambda: definitions,
        connection_factory=lambda definition: by_name[definition.name],
    )


def explorer_factory(build_connections):
    """Replacement for ``open_explorer`` that uses fresh fake connections per session."""

    @asynccontextmanager
    async def fake_open_explorer(settings, view_state=None):
        registry = make_registry(build_connections())
        async with open_explorer(settings, view_state=view_state, registry=registry) as explorer:
            yield explorer

    return fake_open_explorer


async def open_tree(connections, view_state=None, **kwargs) -> TreeProvider:
    """Tree over ``connections`` after their first discovery pass."""
    registry = make_registry(connections)
    tree = TreeProvider(registry, view_state or ViewState(), **kwargs)
    await registry.init_connections()
    await tree.settle()
    return tree
