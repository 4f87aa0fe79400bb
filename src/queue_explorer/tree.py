"""Four-level view over connections, queues, status buckets and jobs.

Nodes are transient: every call to ``get_roots``/``get_children`` recomputes
them from the registry and the current ``ViewState``. Only job ids are read
while building the tree; payloads are loaded when a job is opened.
"""

import asyncio
from dataclasses import dataclass
from functools import cmp_to_key

import structlog

from queue_explorer.connection import Connection
from queue_explorer.errors import QueueNotFoundError
from queue_explorer.models import (
    ConnectionStatus,
    FilterState,
    JobSortOrder,
    JobState,
    QueueSortOrder,
    QueuesExplored,
)
from queue_explorer.queue_client import QueueHandle
from queue_explorer.registry import ConnectionRegistry
from queue_explorer.signals import Signal, Unsubscribe
from queue_explorer.view_state import ViewState

logger = structlog.get_logger(__name__)

JOB_LIST_LIMIT = 10_000

LIFECYCLE_STATES: tuple[JobState, ...] = tuple(JobState)


def pluralize(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


@dataclass(frozen=True)
class ConnectionNode:
    connection: Connection
    queue_count: int

    @property
    def id(self) -> str:
        return f"connection:{self.connection.name}"

    @property
    def label(self) -> str:
        return f"{self.connection.name} ({pluralize(self.queue_count, 'queue', 'queues')})"


@dataclass(frozen=True)
class QueueNode:
    queue: QueueHandle
    connection: Connection
    total_job_count: int

    @property
    def id(self) -> str:
        return f"queue:{self.connection.name}:{self.queue.name}"

    @property
    def label(self) -> str:
        return f"{self.queue.name} ({pluralize(self.total_job_count, 'job', 'jobs')})"


@dataclass(frozen=True)
class StatusNode:
    status: JobState
    queue: QueueHandle
    job_count: int
    connection_name: str

    @property
    def id(self) -> str:
        return f"status:{self.connection_name}:{self.queue.name}:{self.status.value}"

    @property
    def label(self) -> str:
        status_label = self.status.value[:1].upper() + self.status.value[1:]
        return f"{status_label} ({pluralize(self.job_count, 'job', 'jobs')})"


@dataclass(frozen=True)
class JobNode:
    job_id: str
    queue: QueueHandle
    status: JobState | None
    connection_name: str

    @property
    def id(self) -> str:
        return f"job:{self.connection_name}:{self.queue.name}:{self.job_id}"

    @property
    def label(self) -> str:
        return self.job_id

    @property
    def is_delayed(self) -> bool:
        return self.status == JobState.DELAYED


Node = ConnectionNode | QueueNode | StatusNode | JobNode


def _matches(job_id: str, pattern: str | None) -> bool:
    return pattern is None or pattern in job_id


def _as_canonical_int(value: str) -> int | None:
    """The integer ``value`` spells, if it round-trips exactly ("10" yes, "010" no)."""
    try:
        number = int(value)
    except ValueError:
        return None
    return number if str(number) == value else None


def compare_job_ids(a: str, b: str) -> int:
    """Numeric order when both ids are canonical integers, string order otherwise."""
    a_num, b_num = _as_canonical_int(a), _as_canonical_int(b)
    if a_num is not None and b_num is not None:
        return (a_num > b_num) - (a_num < b_num)
    return (a > b) - (a < b)


def sort_job_ids(job_ids: list[str], order: JobSortOrder) -> list[str]:
    if order == JobSortOrder.NONE:
        return job_ids
    return sorted(
        job_ids,
        key=cmp_to_key(compare_job_ids),
        reverse=order == JobSortOrder.ID_DESC,
    )


class TreeProvider:
    """Builds tree levels on demand and announces when they are stale.

    ``tree_invalidated`` fires after mutations, discovery passes,
    reinitialization and view state changes. ``generation`` increases with
    every invalidation, so a caller can drop results computed for an older
    generation.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        view_state: ViewState,
        job_list_limit: int = JOB_LIST_LIMIT,
    ):
        self.registry = registry
        self.view_state = view_state
        self.job_list_limit = job_list_limit
        self.generation = 0
        self.tree_invalidated: Signal[None] = Signal("tree_invalidated")

        self._pending: set[asyncio.Task] = set()
        self._connection_subscriptions: dict[Connection, Unsubscribe] = {}
        self._subscriptions: list[Unsubscribe] = [
            registry.connection_added.subscribe(self._on_connection_added),
            registry.reinitialized.subscribe(self._on_reinitialized),
            view_state.changed.subscribe(lambda _: self.invalidate()),
        ]

    # === Notifications ===

    def invalidate(self) -> None:
        self.generation += 1
        self.tree_invalidated.emit(None)

    def _on_connection_added(self, connection: Connection) -> None:
        previous = self._connection_subscriptions.pop(connection, None)
        if previous is not None:
            previous()
        self._connection_subscriptions[connection] = connection.queues_explored.subscribe(
            self._on_queues_explored
        )
        task = asyncio.get_running_loop().create_task(connection.explore_queues())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_reinitialized(self, _: None) -> None:
        # Connections replaced by the reinitialize are no longer listened to
        current = set(self.registry.connections)
        for connection in list(self._connection_subscriptions):
            if connection not in current:
                self._connection_subscriptions.pop(connection)()
        self.invalidate()

    def _on_queues_explored(self, event: QueuesExplored) -> None:
        logger.debug(
            "queues_explored",
            connection=event.connection_name,
            queue_count=event.queue_count,
        )
        self.invalidate()

    async def settle(self) -> None:
        """Wait for discovery passes started by new connections."""
        while self._pending:
            tasks = list(self._pending)
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("queue_exploration_failed", error=str(result))

    def close(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        for unsubscribe in self._connection_subscriptions.values():
            unsubscribe()
        self._connection_subscriptions.clear()
        self.tree_invalidated.clear()

    # === Expansion ===

    async def get_roots(self) -> list[ConnectionNode]:
        connections = list(self.registry.connections)
        flt = self.view_state.filter

        if flt is not None and flt.connection_name is not None:
            connections = [c for c in connections if c.name == flt.connection_name][:1]

        queue_lists = await asyncio.gather(*(self._filter_queues(c) for c in connections))
        return [
            ConnectionNode(connection=connection, queue_count=len(queues))
            for connection, queues in zip(connections, queue_lists, strict=True)
        ]

    async def get_children(self, node: Node | None = None) -> list[Node]:
        match node:
            case None:
                return list(await self.get_roots())
            case ConnectionNode(connection=connection):
                return list(await self._queue_nodes(connection))
            case QueueNode(queue=queue, connection=connection):
                return list(await self._status_nodes(queue, connection.name))
            case StatusNode(status=status, queue=queue, connection_name=connection_name):
                return list(await self._job_nodes(queue, status, connection_name))
            case JobNode():
                return []
            case _:
                raise TypeError(f"Unknown tree node: {node!r}")

    async def _filter_queues(self, connection: Connection) -> list[QueueHandle]:
        """Queues of a connection that pass the queue-level filters.

        The job id probe touches the backend for every queue, so it runs last.
        """
        queues = list(connection.queues.values())
        flt = self.view_state.filter
        if flt is None:
            return queues

        if flt.queue_name is not None:
            queues = [q for q in queues if q.name == flt.queue_name][:1]

        if flt.queue_name_pattern:
            queues = [q for q in queues if flt.queue_name_pattern in q.name]

        if flt.job_id_pattern:
            matching = []
            for queue in queues:
                if await self._has_matching_jobs(queue, flt.job_id_pattern):
                    matching.append(queue)
            queues = matching

        return queues

    async def _has_matching_jobs(self, queue: QueueHandle, pattern: str) -> bool:
        for state in LIFECYCLE_STATES:
            try:
                job_ids = await queue.list_identifiers([state], 0, -1, asc=True)
            except Exception as e:
                logger.debug("job_probe_failed", queue=queue.name, state=state.value, error=str(e))
                continue
            if any(pattern in job_id for job_id in job_ids):
                return True
        return False

    async def _count_jobs(self, queue: QueueHandle, state: JobState, flt: FilterState | None) -> int:
        """Ids in one state matching the id pattern. Backend errors count as zero."""
        pattern = flt.job_id_pattern if flt else None
        try:
            job_ids = await queue.list_identifiers([state], 0, -1)
        except Exception as e:
            logger.debug("job_count_failed", queue=queue.name, state=state.value, error=str(e))
            return 0
        return sum(1 for job_id in job_ids if _matches(job_id, pattern))

    async def _total_job_count(self, queue: QueueHandle, flt: FilterState | None) -> int:
        counts = await asyncio.gather(*(self._count_jobs(queue, s, flt) for s in LIFECYCLE_STATES))
        return sum(counts)

    async def _queue_nodes(self, connection: Connection) -> list[QueueNode]:
        flt = self.view_state.filter
        queues = await self._filter_queues(connection)
        totals = await asyncio.gather(*(self._total_job_count(q, flt) for q in queues))
        nodes = [
            QueueNode(queue=queue, connection=connection, total_job_count=total)
            for queue, total in zip(queues, totals, strict=True)
        ]

        sort = self.view_state.sort
        if sort is not None and sort.queue_sort != QueueSortOrder.NONE:
            nodes.sort(
                key=lambda n: n.total_job_count,
                reverse=sort.queue_sort == QueueSortOrder.JOB_COUNT_DESC,
            )
        return nodes

    async def _status_nodes(self, queue: QueueHandle, connection_name: str) -> list[StatusNode]:
        flt = self.view_state.filter
        counts = await asyncio.gather(*(self._count_jobs(queue, s, flt) for s in LIFECYCLE_STATES))
        return [
            StatusNode(status=state, queue=queue, job_count=count, connection_name=connection_name)
            for state, count in zip(LIFECYCLE_STATES, counts, strict=True)
            if count > 0
        ]

    async def _job_nodes(
        self, queue: QueueHandle, status: JobState, connection_name: str
    ) -> list[JobNode]:
        flt = self.view_state.filter
        pattern = flt.job_id_pattern if flt else None

        job_ids = await queue.list_identifiers([status], 0, -1)
        job_ids = [job_id for job_id in job_ids if _matches(job_id, pattern)]
        job_ids = job_ids[: self.job_list_limit]

        sort = self.view_state.sort
        if sort is not None:
            job_ids = sort_job_ids(job_ids, sort.job_sort)

        return [
            JobNode(job_id=job_id, queue=queue, status=status, connection_name=connection_name)
            for job_id in job_ids
        ]

    # === Lookup for direct addressing (CLI arguments) ===

    async def find_queue_node(
        self, connection_name: str, queue_name: str, with_count: bool = True
    ) -> QueueNode:
        """Node for a queue by name, ignoring the view filter.

        Raises:
            ConnectionNotFoundError: If no such connection is configured.
            QueueNotFoundError: If the connection has not discovered the queue.
        """
        connection = self.registry.get_connection(connection_name)
        queue = connection.queues.get(queue_name)
        if queue is None:
            hint = "" if connection.status == ConnectionStatus.READY else (
                f" (connection status: {connection.status.value})"
            )
            raise QueueNotFoundError(
                f"Queue '{queue_name}' not found in connection '{connection_name}'{hint}"
            )
        total = await self._total_job_count(queue, None) if with_count else 0
        return QueueNode(queue=queue, connection=connection, total_job_count=total)

    async def find_job_node(self, connection_name: str, queue_name: str, job_id: str) -> JobNode:
        """Node for a job by id. Its status is None when the job is gone or in no known state."""
        queue_node = await self.find_queue_node(connection_name, queue_name, with_count=False)
        state = await queue_node.queue.get_job_state(job_id)
        status = JobState(state) if state in {s.value for s in JobState} else None
        return JobNode(
            job_id=job_id,
            queue=queue_node.queue,
            status=status,
            connection_name=connection_name,
        )
