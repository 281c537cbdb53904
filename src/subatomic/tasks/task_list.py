"""Ordered task registry rendered as a single, continuously edited chat message."""

from __future__ import annotations

import uuid

import structlog

from subatomic.core.errors import DuplicateKey, UnknownKey
from subatomic.messaging.base import MessageAck, MessageSink, RenderedMessage
from subatomic.tasks.models import Task, TaskStatus

logger = structlog.get_logger()


class TaskListMessage:
    """Tracks the tasks of one provisioning run and displays them as a status board.

    Every display goes to the same destination under the same correlation id,
    so the destination shows one message that updates in place.
    """

    def __init__(
        self,
        title: str,
        sink: MessageSink,
        destination: str,
        *,
        correlation_id: str | None = None,
    ) -> None:
        self.title = title
        self.destination = destination
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self._sink = sink
        self._tasks: dict[str, Task] = {}

    @staticmethod
    def create_unique_task_name(name: str) -> str:
        return f"{name}-{uuid.uuid4()}"

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def count_tasks(self) -> int:
        return len(self._tasks)

    def add_task(self, key: str, description: str) -> Task:
        if key in self._tasks:
            raise DuplicateKey(f"Task {key} is already registered", {"key": key})
        task = Task(key=key, description=description)
        self._tasks[key] = task
        return task

    def status_of(self, key: str) -> TaskStatus:
        return self._get(key).status

    def pending_keys(self) -> list[str]:
        return [task.key for task in self._tasks.values() if task.status is TaskStatus.PENDING]

    def indent_task_at_index(self, index: int, depth: int) -> None:
        """Prefix every line of a task's description with ``depth`` tabs."""
        task = self.tasks[index]
        prefix = "\t" * depth
        task.description = "\n".join(f"{prefix}{line}" for line in task.description.split("\n"))

    async def set_task_status(self, key: str, status: TaskStatus) -> MessageAck:
        task = self._get(key)
        task.status = status
        logger.debug("task_status_changed", key=key, status=status.value)
        return await self.display()

    async def succeed_task(self, key: str) -> MessageAck:
        return await self.set_task_status(key, TaskStatus.SUCCESSFUL)

    async def fail_remaining_tasks(self) -> MessageAck:
        for key in self.pending_keys():
            self._tasks[key].status = TaskStatus.FAILED
        return await self.display()

    def render(self) -> RenderedMessage:
        return RenderedMessage(
            title=self.title,
            lines=tuple(task.render() for task in self._tasks.values()),
        )

    async def display(self) -> MessageAck:
        return await self._sink.send(self.render(), self.destination, self.correlation_id)

    def _get(self, key: str) -> Task:
        try:
            return self._tasks[key]
        except KeyError:
            raise UnknownKey(f"Task {key} was never added", {"key": key}) from None
