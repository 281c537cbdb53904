"""Step definitions, run context and the step registry."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from subatomic.config.settings import Settings
from subatomic.core.errors import DuplicateKey, UnknownKey
from subatomic.domain.models import DevOpsEnvironment, Team
from subatomic.providers.base import PlatformCommandRunner


@dataclass
class RunContext:
    """Shared context passed to every step of one provisioning run."""

    team: Team
    environment: DevOpsEnvironment
    settings: Settings
    platform: PlatformCommandRunner
    run_id: str = ""
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    outputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def project_id(self) -> str:
        return self.environment.project_id


StepAction = Callable[[RunContext], Awaitable[None]]


@dataclass(frozen=True)
class Step:
    """One external-effecting operation, tracked by the task of the same key."""

    key: str
    description: str
    action: StepAction


@dataclass(frozen=True)
class Stage:
    """Consecutive steps shown beneath a header task.

    A stage without a header shows its steps at the top level.
    """

    key: str
    header: Optional[str]
    steps: Sequence[Step]


class StepRegistry:
    """In-memory registry of steps by name."""

    def __init__(self) -> None:
        self._steps: Dict[str, Step] = {}

    def register(self, step: Step) -> None:
        if step.key in self._steps:
            raise DuplicateKey(f"Step {step.key} is already registered", {"key": step.key})
        self._steps[step.key] = step

    def get(self, key: str) -> Step:
        try:
            return self._steps[key]
        except KeyError:
            raise UnknownKey(f"Step {key} is not registered", {"key": key}) from None

    def list(self) -> List[str]:
        return list(self._steps.keys())

    def stage(self, key: str, header: Optional[str], step_keys: Sequence[str]) -> Stage:
        """Build a stage from registered step names."""
        return Stage(key=key, header=header, steps=[self.get(k) for k in step_keys])
