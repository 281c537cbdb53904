"""Message sinks for chat status boards."""

from subatomic.messaging.base import MessageAck, MessageSink, RenderedMessage
from subatomic.messaging.memory import InMemoryMessageSink
from subatomic.messaging.slack import SlackMessageSink

__all__ = [
    "InMemoryMessageSink",
    "MessageAck",
    "MessageSink",
    "RenderedMessage",
    "SlackMessageSink",
]
