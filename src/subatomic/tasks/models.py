from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TaskStatus(str, Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"


STATUS_GLYPHS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "✴️",
    TaskStatus.SUCCESSFUL: "✅",
    TaskStatus.FAILED: "❌",
}


@dataclass(slots=True)
class Task:
    """User-visible progress record for one unit of provisioning work."""

    key: str
    description: str
    status: TaskStatus = TaskStatus.PENDING

    def render(self) -> str:
        return f"{STATUS_GLYPHS[self.status]} {self.description}"
