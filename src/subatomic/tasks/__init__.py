"""Task registry and progress reporting."""

from subatomic.tasks.models import STATUS_GLYPHS, Task, TaskStatus
from subatomic.tasks.task_list import TaskListMessage

__all__ = ["STATUS_GLYPHS", "Task", "TaskListMessage", "TaskStatus"]
