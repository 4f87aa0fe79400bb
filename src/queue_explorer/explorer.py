"""Wiring of registry, view state, tree and actions for one session."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import partial

import structlog

from queue_explorer.actions import JobActions
from queue_explorer.cache import JsonFileQueueNameCache, QueueNameCache
from queue_explorer.config import Settings, load_connection_definitions
from queue_explorer.registry import ConnectionRegistry
from queue_explorer.tree import TreeProvider
from queue_explorer.view_state import ViewState

logger = structlog.get_logger(__name__)


@dataclass
class Explorer:
    registry: ConnectionRegistry
    view_state: ViewState
    tree: TreeProvider
    actions: JobActions


@asynccontextmanager
async def open_explorer(
    settings: Settings,
    view_state: ViewState | None = None,
    cache: QueueNameCache | None = None,
    registry: ConnectionRegistry | None = None,
) -> AsyncIterator[Explorer]:
    """Connect every configured backend and discover its queues.

    Yields once all connections have settled and the initial discovery passes
    have finished. Connections are closed on exit.
    """
    if registry is None:
        registry = ConnectionRegistry.from_settings(
            settings,
            cache or JsonFileQueueNameCache(settings.queue_cache_file),
            partial(load_connection_definitions, settings.connections_file),
        )
    view_state = view_state or ViewState()

    # Subscribed before init so no connection_added event is missed
    tree = TreeProvider(registry, view_state, job_list_limit=settings.job_list_limit)
    explorer = Explorer(
        registry=registry,
        view_state=view_state,
        tree=tree,
        actions=JobActions(tree),
    )

    try:
        await registry.init_connections()
        await tree.settle()
        logger.debug("explorer_ready", connections=len(registry.connections))
        yield explorer
    finally:
        tree.close()
        await registry.close()
