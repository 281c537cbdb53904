from __future__ import annotations

import structlog

from subatomic.clients.slack import SlackClient
from subatomic.messaging.base import MessageAck, RenderedMessage

logger = structlog.get_logger()


class SlackMessageSink:
    """Sends status boards to Slack, editing one message per correlation id.

    The first send for a correlation id posts a new message and remembers its
    channel and timestamp; later sends update that message in place.
    """

    def __init__(self, client: SlackClient) -> None:
        self._client = client
        self._posted: dict[str, tuple[str, str]] = {}

    async def send(
        self,
        message: RenderedMessage,
        destination: str,
        correlation_id: str,
    ) -> MessageAck:
        if not self._client.enabled:
            logger.info("slack_disabled", destination=destination, title=message.title)
            return MessageAck(destination=destination, correlation_id=correlation_id)

        attachments = [{"text": message.body}] if message.lines else []
        posted = self._posted.get(correlation_id)
        if posted is None:
            response = await self._client.post_message(
                destination, message.title, attachments=attachments
            )
            channel, ts = response.get("channel", destination), response["ts"]
            self._posted[correlation_id] = (channel, ts)
            return MessageAck(destination, correlation_id, message_ref=ts, updated=False)

        channel, ts = posted
        await self._client.update_message(channel, ts, message.title, attachments=attachments)
        return MessageAck(destination, correlation_id, message_ref=ts, updated=True)

    async def post_text(self, destination: str, text: str) -> MessageAck:
        if not self._client.enabled:
            logger.info("slack_disabled", destination=destination, text=text)
            return MessageAck(destination=destination, correlation_id="")
        response = await self._client.post_message(destination, text)
        return MessageAck(destination, correlation_id="", message_ref=response.get("ts"))
