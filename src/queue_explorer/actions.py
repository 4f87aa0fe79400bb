"""Operator actions on queues and jobs.

Every action resolves its target through the node it is given, runs the
backend operation and, on success, invalidates the tree. Failures never
escape: they come back as an ``ActionResult`` with level ``error`` so the
shell can show them. A job that disappeared in the meantime is a warning.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import ValidationError
import structlog
import yaml

from queue_explorer.connection import Connection
from queue_explorer.models import JobChanges, JobSnapshot, JobState, JobTemplate
from queue_explorer.tree import JobNode, QueueNode, TreeProvider, pluralize

logger = structlog.get_logger(__name__)

Confirm = Callable[[str], bool]

DRAIN_WARNING = (
    'Are you sure you want to drain queue "{queue}"? '
    "This will remove all waiting, prioritized and paused jobs from the queue."
)
OBLITERATE_WARNING = (
    'Are you sure you want to obliterate queue "{queue}"? This will completely remove '
    "the queue and all of its contents (including active, completed, and failed jobs). "
    "This action cannot be undone."
)

JOB_TEMPLATE = """\
# Create job for queue: {queue}
#
# Fields:
#   name: job name (string, required)
#   data: job payload (any JSON-serializable value, required)
#   opts: job options (optional)
#
# Job options (opts):
#   delay: milliseconds to wait before the job becomes available
#   priority: 0-2097152, lower = higher priority
#   attempts: number of attempts if the job fails (default: 1)
#   backoff: {{type: fixed | exponential, delay: milliseconds}}
#   repeat: {{cron: "...", every: milliseconds, limit: count}}
#   jobId: custom unique identifier
#   lifo: true to use last-in-first-out instead of FIFO
#   removeOnComplete: true/false, or number of completed jobs to keep
#   removeOnFail: true/false, or number of failed jobs to keep
#   timeout: milliseconds before the job is considered timed out
name: ""
data: {{}}
opts:
  # delay: 0
  # priority: 0
  # attempts: 1
  # backoff:
  #   type: exponential
  #   delay: 1000
  # repeat:
  #   every: 60000
  #   limit: 5
  # jobId: custom-job-id
  # lifo: false
  # removeOnComplete: true
  # removeOnFail: false
  # timeout: 30000
"""


@dataclass(frozen=True)
class ActionResult:
    """Outcome of an action, as shown to the operator."""

    level: Literal["info", "warning", "error"]
    message: str
    job: JobSnapshot | None = None

    @property
    def ok(self) -> bool:
        return self.level == "info"

    @classmethod
    def info(cls, message: str, job: JobSnapshot | None = None) -> "ActionResult":
        return cls("info", message, job)

    @classmethod
    def warning(cls, message: str) -> "ActionResult":
        return cls("warning", message)

    @classmethod
    def error(cls, message: str) -> "ActionResult":
        return cls("error", message)


def job_template_text(queue_name: str) -> str:
    """Commented YAML template for a new job."""
    return JOB_TEMPLATE.format(queue=queue_name)


def _parse_document(text: str) -> Any:
    """Parse YAML (or JSON, which is YAML) input from the operator."""
    return yaml.safe_load(text)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "input"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class JobActions:
    """Queue and job operations that refresh the tree when they succeed."""

    def __init__(self, tree: TreeProvider):
        self.tree = tree

    # === Queue level ===

    async def drain_queue(
        self, node: QueueNode, confirm: Confirm, delayed: bool = False
    ) -> ActionResult:
        queue_name = node.queue.name
        if not confirm(DRAIN_WARNING.format(queue=queue_name)):
            return ActionResult.warning(f'Drain of queue "{queue_name}" cancelled')

        try:
            await node.queue.drain(delayed)
        except Exception as e:
            logger.error("queue_drain_failed", queue=queue_name, error=str(e))
            return ActionResult.error(f'Failed to drain queue "{queue_name}": {e}')

        self.tree.invalidate()
        return ActionResult.info(f'Successfully drained queue "{queue_name}"')

    async def obliterate_queue(
        self, node: QueueNode, confirm: Confirm, force: bool = False
    ) -> ActionResult:
        queue_name = node.queue.name
        if not confirm(OBLITERATE_WARNING.format(queue=queue_name)):
            return ActionResult.warning(f'Obliterate of queue "{queue_name}" cancelled')

        try:
            await node.queue.obliterate(force=force)
        except Exception as e:
            logger.error("queue_obliterate_failed", queue=queue_name, error=str(e))
            return ActionResult.error(f'Failed to obliterate queue "{queue_name}": {e}')

        self.tree.invalidate()
        return ActionResult.info(f'Successfully obliterated queue "{queue_name}"')

    async def create_job(self, node: QueueNode, payload: Any) -> ActionResult:
        """Add a job described by ``payload`` ({name, data, opts}) to the queue."""
        queue_name = node.queue.name
        try:
            template = JobTemplate.model_validate(payload)
        except ValidationError as e:
            return ActionResult.error(f"Invalid job: {_format_validation_error(e)}")

        try:
            job_id = await node.queue.add(
                template.name, template.data, template.opts.to_bull_options()
            )
        except Exception as e:
            logger.error("job_create_failed", queue=queue_name, error=str(e))
            return ActionResult.error(f"Failed to create job: {e}")

        self.tree.invalidate()
        return ActionResult.info(
            f'Successfully created job "{template.name}" (id {job_id}) in queue "{queue_name}"'
        )

    async def create_job_from_text(self, node: QueueNode, text: str) -> ActionResult:
        try:
            payload = _parse_document(text)
        except yaml.YAMLError as e:
            return ActionResult.error(f"Invalid YAML/JSON: {e}")
        if not isinstance(payload, dict):
            return ActionResult.error("Invalid job: expected a mapping with name, data and opts")
        return await self.create_job(node, payload)

    async def refresh_connection(self, connection: Connection) -> ActionResult:
        """Rediscover the queues of a connection, bypassing the cache."""
        try:
            await connection.explore_queues(force_refresh=True)
        except Exception as e:
            return ActionResult.error(f"Failed to refresh connection {connection.name}: {e}")
        return ActionResult.info(
            f"Connection {connection.name}: "
            f"{pluralize(len(connection.queues), 'queue', 'queues')} discovered"
        )

    # === Job level ===

    async def show_job(self, node: JobNode) -> ActionResult:
        try:
            job = await node.queue.get_job(node.job_id)
        except Exception as e:
            return ActionResult.error(f"Failed to load job data: {e}")
        if job is None:
            return ActionResult.warning(f"Job {node.job_id} not found")
        return ActionResult.info(f"Job {node.job_id}", job=job.snapshot())

    async def edit_job(self, node: JobNode, changes: Any) -> ActionResult:
        """Apply the changed editable fields of a job.

        Only fields that differ from the loaded job are written, each with its
        own update call. A delay change is skipped unless the job is delayed.
        """
        try:
            edit = changes if isinstance(changes, JobChanges) else JobChanges.model_validate(changes)
        except ValidationError as e:
            return ActionResult.error(f"Invalid job changes: {_format_validation_error(e)}")

        try:
            job = await node.queue.get_job(node.job_id)
            if job is None:
                return ActionResult.warning(f"Job {node.job_id} not found")
            current = job.snapshot()

            updates = []
            notes = []
            if "data" in edit.model_fields_set and edit.data != current.data:
                updates.append(job.update_data(edit.data))
            if "progress" in edit.model_fields_set and edit.progress != current.progress:
                updates.append(job.update_progress(edit.progress))
            if "delay" in edit.model_fields_set and edit.delay != current.delay:
                if await job.get_state() == JobState.DELAYED.value:
                    updates.append(job.change_delay(edit.delay))
                else:
                    notes.append("delay unchanged, job is not delayed")
            if "priority" in edit.model_fields_set and edit.priority != current.priority:
                updates.append(job.change_priority(edit.priority))

            if not updates:
                message = f"Job {node.job_id}: nothing to update"
                if notes:
                    message += f" ({'; '.join(notes)})"
                return ActionResult.info(message, job=current)

            await asyncio.gather(*updates)

            reloaded = await node.queue.get_job(node.job_id)
        except Exception as e:
            logger.error("job_update_failed", job_id=node.job_id, error=str(e))
            return ActionResult.error(f"Failed to update job: {e}")

        logger.info("job_updated", job_id=node.job_id, operations=len(updates))
        self.tree.invalidate()
        message = f"Job {node.job_id} updated successfully"
        if notes:
            message += f" ({'; '.join(notes)})"
        return ActionResult.info(message, job=reloaded.snapshot() if reloaded else None)

    async def edit_job_from_text(self, node: JobNode, text: str) -> ActionResult:
        try:
            changes = _parse_document(text)
        except yaml.YAMLError as e:
            return ActionResult.error(f"Invalid YAML/JSON: {e}")
        if not isinstance(changes, dict):
            return ActionResult.error("Invalid job changes: expected a mapping")
        return await self.edit_job(node, changes)

    async def remove_job(self, node: JobNode) -> ActionResult:
        try:
            job = await node.queue.get_job(node.job_id)
            if job is None:
                return ActionResult.warning(f"Job {node.job_id} not found")
            await job.remove()
        except Exception as e:
            logger.error("job_remove_failed", job_id=node.job_id, error=str(e))
            return ActionResult.error(f"Failed to remove job: {e}")

        self.tree.invalidate()
        return ActionResult.info(f"Job {node.job_id} removed successfully")

    async def promote_job(self, node: JobNode) -> ActionResult:
        try:
            job = await node.queue.get_job(node.job_id)
            if job is None:
                return ActionResult.warning(f"Job {node.job_id} not found")

            state = await job.get_state()
            if state != JobState.DELAYED.value:
                return ActionResult.warning(
                    f"Job {node.job_id} is not in delayed state (current state: {state}). "
                    "Only delayed jobs can be promoted."
                )

            await job.promote()
        except Exception as e:
            logger.error("job_promote_failed", job_id=node.job_id, error=str(e))
            return ActionResult.error(f"Failed to promote job: {e}")

        self.tree.invalidate()
        return ActionResult.info(f"Job {node.job_id} promoted successfully")
