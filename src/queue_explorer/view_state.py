"""Filter and sort criteria applied across the whole tree.

``ViewState`` is passed explicitly to the tree provider. A filter or sort
whose fields are all default is stored as ``None``, so "state present"
always means "something is applied".
"""

from queue_explorer.models import FilterState, JobSortOrder, QueueSortOrder, SortState
from queue_explorer.signals import Signal

QUEUE_SORT_LABELS = {
    QueueSortOrder.JOB_COUNT_ASC: "Job count (ascending)",
    QueueSortOrder.JOB_COUNT_DESC: "Job count (descending)",
}

JOB_SORT_LABELS = {
    JobSortOrder.ID_ASC: "ID (ascending)",
    JobSortOrder.ID_DESC: "ID (descending)",
}


def _blank_to_none(value: str | None) -> str | None:
    return value if value else None


class ViewState:
    """Current filter and sort. Every change emits ``changed``."""

    def __init__(self, filter: FilterState | None = None, sort: SortState | None = None):
        self._filter = filter if filter and not filter.is_empty() else None
        self._sort = sort if sort and not sort.is_empty() else None
        self.changed: Signal[None] = Signal("view_state_changed")

    @property
    def filter(self) -> FilterState | None:
        return self._filter

    @property
    def sort(self) -> SortState | None:
        return self._sort

    def set_filter(
        self,
        connection_name: str | None = None,
        queue_name: str | None = None,
        queue_name_pattern: str | None = None,
        job_id_pattern: str | None = None,
    ) -> None:
        """Replace the filter. Empty strings count as unset."""
        candidate = FilterState(
            connection_name=_blank_to_none(connection_name),
            queue_name=_blank_to_none(queue_name),
            queue_name_pattern=_blank_to_none(queue_name_pattern),
            job_id_pattern=_blank_to_none(job_id_pattern),
        )
        self._filter = None if candidate.is_empty() else candidate
        self.changed.emit(None)

    def clear_filter(self) -> None:
        self._filter = None
        self.changed.emit(None)

    def set_sort(
        self,
        queue_sort: QueueSortOrder | None = None,
        job_sort: JobSortOrder | None = None,
    ) -> None:
        """Update one or both sort axes, keeping the other one as it was."""
        if queue_sort is None and job_sort is None and self._sort is None:
            return

        current = self._sort or SortState()
        candidate = SortState(
            queue_sort=queue_sort if queue_sort is not None else current.queue_sort,
            job_sort=job_sort if job_sort is not None else current.job_sort,
        )
        self._sort = None if candidate.is_empty() else candidate
        self.changed.emit(None)

    def clear_sort(self) -> None:
        self._sort = None
        self.changed.emit(None)

    def describe_filter(self) -> list[str]:
        if self._filter is None:
            return []
        parts = []
        if self._filter.connection_name:
            parts.append(f"Connection: {self._filter.connection_name}")
        if self._filter.queue_name:
            parts.append(f"Queue: {self._filter.queue_name}")
        if self._filter.queue_name_pattern:
            parts.append(f"Queue pattern: *{self._filter.queue_name_pattern}*")
        if self._filter.job_id_pattern:
            parts.append(f"Job ID pattern: *{self._filter.job_id_pattern}*")
        return parts

    def describe_sort(self) -> list[str]:
        if self._sort is None:
            return []
        parts = []
        if self._sort.queue_sort != QueueSortOrder.NONE:
            parts.append(f"Queues: {QUEUE_SORT_LABELS[self._sort.queue_sort]}")
        if self._sort.job_sort != JobSortOrder.NONE:
            parts.append(f"Jobs: {JOB_SORT_LABELS[self._sort.job_sort]}")
        return parts
