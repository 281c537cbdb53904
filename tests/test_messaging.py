import json

import pytest
import respx
from httpx import Response

from subatomic.clients import SlackClient
from subatomic.messaging import InMemoryMessageSink, RenderedMessage, SlackMessageSink

SLACK = "https://slack.test/api"


def slack_sink(token="xoxb-token"):
    return SlackMessageSink(SlackClient(token, base_url=SLACK, backoff_factor=0))


def test_rendered_message_text():
    message = RenderedMessage("Title", ("✴️ one", "✅ two"))
    assert message.body == "✴️ one\n✅ two"
    assert message.text == "Title\n✴️ one\n✅ two"
    assert RenderedMessage("Only title").text == "Only title"


@pytest.mark.asyncio
async def test_slack_sink_posts_then_updates_in_place():
    sink = slack_sink()
    with respx.mock:
        post = respx.post(f"{SLACK}/chat.postMessage").mock(
            return_value=Response(200, json={"ok": True, "channel": "C123", "ts": "111.222"})
        )
        update = respx.post(f"{SLACK}/chat.update").mock(
            return_value=Response(200, json={"ok": True, "channel": "C123", "ts": "111.222"})
        )

        first = await sink.send(RenderedMessage("Board", ("✴️ a",)), "team-channel", "run-1")
        second = await sink.send(RenderedMessage("Board", ("✅ a",)), "team-channel", "run-1")

        assert post.call_count == 1
        assert update.call_count == 1
        assert first.updated is False and second.updated is True
        assert first.message_ref == second.message_ref == "111.222"

        body = json.loads(update.calls.last.request.content)
        assert body["channel"] == "C123"
        assert body["ts"] == "111.222"
        assert body["attachments"] == [{"text": "✅ a"}]


@pytest.mark.asyncio
async def test_slack_sink_keeps_separate_messages_per_correlation_id():
    sink = slack_sink()
    with respx.mock:
        post = respx.post(f"{SLACK}/chat.postMessage")
        post.side_effect = [
            Response(200, json={"ok": True, "channel": "C1", "ts": "1.0"}),
            Response(200, json={"ok": True, "channel": "C1", "ts": "2.0"}),
        ]

        await sink.send(RenderedMessage("A"), "team", "run-a")
        await sink.send(RenderedMessage("B"), "team", "run-b")

        assert post.call_count == 2


@pytest.mark.asyncio
async def test_slack_sink_without_token_sends_nothing():
    sink = slack_sink(token=None)
    with respx.mock(assert_all_called=False) as mock:
        ack = await sink.send(RenderedMessage("Board", ("✴️ a",)), "team", "run-1")
        await sink.post_text("team", "done")

        assert not mock.calls
        assert ack.message_ref is None


@pytest.mark.asyncio
async def test_in_memory_sink_tracks_latest_per_correlation_id():
    sink = InMemoryMessageSink()

    await sink.send(RenderedMessage("Board", ("✴️ a",)), "team", "run-1")
    ack = await sink.send(RenderedMessage("Board", ("✅ a",)), "team", "run-1")
    await sink.post_text("team", "finished")

    assert ack.updated is True
    assert sink.latest("run-1").lines == ("✅ a",)
    assert sink.latest("other") is None
    assert sink.message_count() == 2
    assert sink.texts == [("team", "finished")]
