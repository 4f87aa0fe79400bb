"""Queue Explorer - browse and manage BullMQ queues stored in Redis."""

from queue_explorer.actions import ActionResult, JobActions
from queue_explorer.explorer import Explorer, open_explorer
from queue_explorer.models import ConnectionStatus, JobSortOrder, JobState, QueueSortOrder
from queue_explorer.view_state import ViewState

__all__ = [
    "ActionResult",
    "ConnectionStatus",
    "Explorer",
    "JobActions",
    "JobSortOrder",
    "JobState",
    "QueueSortOrder",
    "ViewState",
    "open_explorer",
]
