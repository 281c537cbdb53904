"""Sequential provisioning engine with all-or-abort failure handling."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Union

import structlog

from subatomic.core.errors import ConfigurationError, RunTimeout, StepFailed
from subatomic.logging import bind_context
from subatomic.provisioning.registry import RunContext, Stage, Step
from subatomic.provisioning.results import RunResult, RunState
from subatomic.tasks.task_list import TaskListMessage

logger = structlog.get_logger()

CompletedCallback = Callable[[RunContext], Awaitable[None]]
AbortedCallback = Callable[[RunContext, BaseException], Awaitable[None]]


class ProvisioningOrchestrator:
    """Runs stages of steps in order, reporting progress through a task list.

    The first failing step (or an expired deadline) fails every task still
    pending, invokes ``on_aborted`` once with the original error and raises
    StepFailed. Steps already applied are left in place.
    """

    def __init__(
        self,
        task_list: TaskListMessage,
        stages: Sequence[Union[Stage, Step]],
        *,
        on_completed: CompletedCallback,
        on_aborted: AbortedCallback,
        timeout: Optional[float] = None,
    ) -> None:
        self._task_list = task_list
        self._stages: List[Stage] = [
            s if isinstance(s, Stage) else Stage(key=s.key, header=None, steps=[s]) for s in stages
        ]
        self._on_completed = on_completed
        self._on_aborted = on_aborted
        self._timeout = timeout
        self._current: tuple[int, str] = (0, "display")
        self._completed: List[str] = []
        self.state = RunState.NOT_STARTED
        self._register_tasks()

    @property
    def steps(self) -> List[Step]:
        return [step for stage in self._stages for step in stage.steps]

    def _register_tasks(self) -> None:
        for stage in self._stages:
            if stage.header:
                self._task_list.add_task(stage.key, stage.header)
            for step in stage.steps:
                self._task_list.add_task(step.key, step.description)
                if stage.header:
                    self._task_list.indent_task_at_index(self._task_list.count_tasks() - 1, 1)

    async def run(self, context: RunContext) -> RunResult:
        if self.state is not RunState.NOT_STARTED:
            raise ConfigurationError(
                "A provisioning run can only be started once", {"state": self.state.value}
            )

        self.state = RunState.RUNNING
        started = time.monotonic()
        log = bind_context(run_id=context.run_id, project=context.project_id)
        log.info("run_started", steps=len(self.steps), timeout=self._timeout)

        try:
            await self._execute_with_deadline(context)
        except Exception as exc:
            error: BaseException = exc
        else:
            self.state = RunState.COMPLETED
            duration = time.monotonic() - started
            log.info("run_completed", duration=duration)
            await self._on_completed(context)
            return RunResult(
                run_id=context.run_id,
                state=self.state,
                completed_steps=list(self._completed),
                duration_seconds=duration,
            )

        await self._abort(context, error, log)
        number, key = self._current
        raise StepFailed(number, key, error) from error

    async def _execute_with_deadline(self, context: RunContext) -> None:
        if self._timeout is None:
            await self._execute(context)
            return
        try:
            await asyncio.wait_for(self._execute(context), self._timeout)
        except asyncio.TimeoutError as exc:
            raise RunTimeout(
                f"Provisioning did not finish within {self._timeout} seconds",
                {"timeout": self._timeout, "step_key": self._current[1]},
            ) from exc

    async def _execute(self, context: RunContext) -> None:
        await self._task_list.display()
        total = len(self.steps)
        number = 0
        for stage in self._stages:
            for step in stage.steps:
                number += 1
                self._current = (number, step.key)
                logger.info("step_started", step=step.key, number=number, total=total)
                await step.action(context)
                self._completed.append(step.key)
                await self._task_list.succeed_task(step.key)
                logger.info("step_succeeded", step=step.key, number=number)
            if stage.header:
                await self._task_list.succeed_task(stage.key)

    async def _abort(
        self,
        context: RunContext,
        error: BaseException,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        self.state = RunState.ABORTED
        number, key = self._current
        log.error(
            "step_failed",
            step=key,
            number=number,
            error_type=type(error).__name__,
            error=str(error),
        )
        try:
            await self._task_list.fail_remaining_tasks()
        except Exception as display_error:
            # The failure callback still has to run if the board cannot be updated
            log.error("task_list_update_failed", error=str(display_error))
        await self._on_aborted(context, error)
