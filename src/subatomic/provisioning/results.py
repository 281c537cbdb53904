"""Result types for provisioning runs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class RunResult:
    """Outcome of one provisioning run."""

    run_id: str
    state: RunState
    completed_steps: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.state is RunState.COMPLETED
