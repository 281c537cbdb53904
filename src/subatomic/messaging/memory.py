from __future__ import annotations

import uuid

from subatomic.messaging.base import MessageAck, RenderedMessage


class InMemoryMessageSink:
    """Keeps sent messages in memory, for local runs and tests."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, RenderedMessage]] = []
        self.texts: list[tuple[str, str]] = []
        self._latest: dict[str, RenderedMessage] = {}

    async def send(
        self,
        message: RenderedMessage,
        destination: str,
        correlation_id: str,
    ) -> MessageAck:
        updated = correlation_id in self._latest
        self._latest[correlation_id] = message
        self.sent.append((destination, correlation_id, message))
        return MessageAck(
            destination=destination,
            correlation_id=correlation_id,
            message_ref=correlation_id,
            updated=updated,
        )

    async def post_text(self, destination: str, text: str) -> MessageAck:
        self.texts.append((destination, text))
        return MessageAck(destination=destination, correlation_id=str(uuid.uuid4()))

    def latest(self, correlation_id: str) -> RenderedMessage | None:
        """The message currently shown for a correlation id."""
        return self._latest.get(correlation_id)

    def message_count(self) -> int:
        """Number of distinct messages visible at destinations."""
        return len(self._latest) + len(self.texts)
