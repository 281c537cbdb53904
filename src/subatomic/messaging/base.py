from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class RenderedMessage:
    """A status board ready to be sent: a title plus one line per task."""

    title: str
    lines: tuple[str, ...] = ()

    @property
    def body(self) -> str:
        return "\n".join(self.lines)

    @property
    def text(self) -> str:
        if not self.lines:
            return self.title
        return f"{self.title}\n{self.body}"


@dataclass(frozen=True)
class MessageAck:
    """Acknowledgement returned by a sink for one send."""

    destination: str
    correlation_id: str
    message_ref: str | None = None
    updated: bool = False
    metadata: dict[str, str] = field(default_factory=dict)


class MessageSink(Protocol):
    """Destination for rendered status boards.

    Sends sharing a correlation id must replace the earlier message at the
    destination rather than add a new one.
    """

    async def send(
        self,
        message: RenderedMessage,
        destination: str,
        correlation_id: str,
    ) -> MessageAck:
        ...

    async def post_text(self, destination: str, text: str) -> MessageAck:
        ...
