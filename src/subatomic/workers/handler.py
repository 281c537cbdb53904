from __future__ import annotations

import argparse
import asyncio
import json
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

import structlog

from subatomic.clients import SlackClient
from subatomic.config import Settings, get_settings
from subatomic.core.errors import StepFailed, describe_failure
from subatomic.domain.models import DevOpsEnvironmentRequest, devops_environment_for
from subatomic.logging import configure_logging, run_context
from subatomic.messaging import MessageSink, SlackMessageSink
from subatomic.providers import OpenShiftPlatform, PlatformCommandRunner
from subatomic.provisioning import (
    ProvisioningOrchestrator,
    RunContext,
    RunResult,
    build_devops_pipeline,
)
from subatomic.tasks import TaskListMessage

logger = structlog.get_logger()


def _slack_sink(settings: Settings) -> SlackMessageSink:
    return SlackMessageSink(
        SlackClient(
            settings.slack_bot_token,
            base_url=settings.slack_api_url,
            timeout=settings.http_timeout,
            max_retries=settings.http_max_retries,
            backoff_factor=settings.http_retry_backoff_factor,
        )
    )


async def process_event(
    payload: dict[str, Any],
    settings: Settings,
    *,
    platform: PlatformCommandRunner | None = None,
    sink: MessageSink | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RunResult:
    """Provision the DevOps environment requested by one event."""
    request = DevOpsEnvironmentRequest.from_payload(payload)
    team = request.team
    channel = team.channel or settings.slack_default_channel
    platform = platform or OpenShiftPlatform.from_settings(settings)
    sink = sink or _slack_sink(settings)
    run_id = request.event_id or str(uuid.uuid4())

    task_list = TaskListMessage(
        f"🚀 Provisioning of DevOps environment for team *{team.name}* started:",
        sink,
        channel,
    )

    async def on_completed(ctx: RunContext) -> None:
        host = ctx.outputs.get("jenkins_host")
        text = f"DevOps environment for team *{team.name}* has been provisioned successfully 🎉"
        if host:
            text += f"\nJenkins is available at https://{host}"
        await sink.post_text(channel, text)

    async def on_aborted(ctx: RunContext, error: BaseException) -> None:
        await sink.post_text(channel, describe_failure(error, settings.docs_base_url))

    orchestrator = ProvisioningOrchestrator(
        task_list,
        build_devops_pipeline(),
        on_completed=on_completed,
        on_aborted=on_aborted,
        timeout=settings.run_timeout_seconds,
    )
    context = RunContext(
        team=team,
        environment=devops_environment_for(team.name),
        settings=settings,
        platform=platform,
        run_id=run_id,
        sleep=sleep,
    )

    with run_context(run_id=run_id, team=team.name):
        logger.info("devops_environment_requested", project=context.project_id, channel=channel)
        try:
            return await orchestrator.run(context)
        except StepFailed as exc:
            logger.error(
                "devops_environment_failed",
                step=exc.step_key,
                step_number=exc.step_number,
                error=str(exc.error),
            )
            raise


async def handle_event(
    event: dict[str, Any],
    settings: Settings,
    **overrides: Any,
) -> dict[str, Any]:
    """
    Handle a batch of queued events with partial batch failure support.
    Returns batchItemFailures for failed messages.
    """
    records = event.get("Records", [])
    failed_message_ids = []

    for record in records:
        message_id = record.get("messageId")
        try:
            payload = json.loads(record["body"])
            await process_event(payload, settings, **overrides)
        except Exception as exc:
            logger.error(
                "message_processing_failed",
                message_id=message_id,
                error=str(exc),
            )
            failed_message_ids.append(message_id)

    return {"batchItemFailures": [{"itemIdentifier": msg_id} for msg_id in failed_message_ids]}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="subatomic-worker",
        description="Provision DevOps environments for the events in a JSON file.",
    )
    parser.add_argument("event_file", type=Path, help="Queue event or single DevOpsEnvironmentRequested payload")
    parser.add_argument("--console", action="store_true", help="Human-readable logs instead of JSON")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.json_logs and not args.console)

    event = json.loads(args.event_file.read_text(encoding="utf-8"))
    if "Records" not in event:
        event = {"Records": [{"messageId": args.event_file.name, "body": json.dumps(event)}]}

    logger.info("worker_invoked", record_count=len(event["Records"]))
    result = asyncio.run(handle_event(event, settings))
    return 1 if result["batchItemFailures"] else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
