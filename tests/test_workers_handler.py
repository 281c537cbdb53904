import json

import pytest

from subatomic.core.errors import StepFailed
from subatomic.messaging import InMemoryMessageSink
from subatomic.workers import handler
from subatomic.workers.handler import handle_event, main, process_event

EVENT = {
    "DevOpsEnvironmentRequestedEvent": [
        {
            "id": "evt-42",
            "team": {
                "teamId": "team-1",
                "name": "Team Awesome",
                "slackIdentity": {"teamChannel": "team-awesome"},
                "owners": [{"firstName": "Jane", "domainUsername": "CORP\\jdoe"}],
                "members": [],
            },
        }
    ]
}


@pytest.mark.asyncio
async def test_process_event_provisions_environment(settings, platform, fake_sleep):
    sink = InMemoryMessageSink()

    result = await process_event(EVENT, settings, platform=platform, sink=sink, sleep=fake_sleep)

    assert result.success
    assert result.run_id == "evt-42"
    assert len(result.completed_steps) == 7
    destination, cid, board = sink.sent[-1]
    assert destination == "team-awesome"
    assert board.title == "🚀 Provisioning of DevOps environment for team *Team Awesome* started:"
    assert all(line.startswith("✅") for line in board.lines)
    assert {c for _, c, _ in sink.sent} == {cid}
    [(channel, text)] = sink.texts
    assert channel == "team-awesome"
    assert "has been provisioned" in text
    assert platform.route_host in text


@pytest.mark.asyncio
async def test_process_event_reports_failure_to_channel(settings, platform, fake_sleep):
    platform.jenkins_template = None
    sink = InMemoryMessageSink()

    with pytest.raises(StepFailed) as exc_info:
        await process_event(EVENT, settings, platform=platform, sink=sink, sleep=fake_sleep)

    assert exc_info.value.step_key == "tag_template"
    [(_, text)] = sink.texts
    assert text.startswith("❗Failed to find jenkins template")
    assert "<https://docs.test/FAQ|FAQ>" in text
    assert sink.latest(sink.sent[-1][1]).lines[-1].startswith("❌")


@pytest.mark.asyncio
async def test_process_event_falls_back_to_default_channel(settings, platform, fake_sleep):
    event = json.loads(json.dumps(EVENT))
    del event["DevOpsEnvironmentRequestedEvent"][0]["team"]["slackIdentity"]
    sink = InMemoryMessageSink()

    await process_event(event, settings, platform=platform, sink=sink, sleep=fake_sleep)

    assert sink.sent[0][0] == settings.slack_default_channel


@pytest.mark.asyncio
async def test_handle_event_reports_partial_batch_failures(settings, platform, fake_sleep):
    sink = InMemoryMessageSink()
    event = {
        "Records": [
            {"messageId": "good", "body": json.dumps(EVENT)},
            {"messageId": "not-json", "body": "{"},
            {"messageId": "no-team", "body": json.dumps({"DevOpsEnvironmentRequestedEvent": [{"id": "x"}]})},
        ]
    }

    result = await handle_event(event, settings, platform=platform, sink=sink, sleep=fake_sleep)

    assert result == {"batchItemFailures": [{"itemIdentifier": "not-json"}, {"itemIdentifier": "no-team"}]}


def test_main_wraps_a_single_event(tmp_path, monkeypatch, settings):
    received = []

    async def fake_handle_event(event, settings):
        received.append(event)
        return {"batchItemFailures": []}

    monkeypatch.setattr(handler, "handle_event", fake_handle_event)
    monkeypatch.setattr(handler, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(handler, "get_settings", lambda: settings)
    event_file = tmp_path / "event.json"
    event_file.write_text(json.dumps(EVENT), encoding="utf-8")

    assert main([str(event_file)]) == 0

    [record] = received[0]["Records"]
    assert record["messageId"] == "event.json"
    assert json.loads(record["body"]) == EVENT


def test_main_returns_non_zero_on_failures(tmp_path, monkeypatch, settings):
    async def fake_handle_event(event, settings):
        return {"batchItemFailures": [{"itemIdentifier": "m1"}]}

    monkeypatch.setattr(handler, "handle_event", fake_handle_event)
    monkeypatch.setattr(handler, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(handler, "get_settings", lambda: settings)
    event_file = tmp_path / "batch.json"
    event_file.write_text(json.dumps({"Records": [{"messageId": "m1", "body": "{}"}]}), encoding="utf-8")

    assert main([str(event_file), "--console"]) == 1
