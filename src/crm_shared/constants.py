"""
Well-known stream, channel and status names shared by producers and workers.
"""
from __future__ import annotations

from enum import Enum


class MessageStreams(str, Enum):
    INCOMING = "incoming_meta_messages"
    OUTGOING = "outgoing_meta_messages"


MESSAGES_GROUP_NAME = "messages_processors_group"


class PubSubChannel(str, Enum):
    MESSAGE_UPDATE = "message-updates"


class DeliveryStatus(str, Enum):
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    DELETED = "deleted"
    FAILED = "failed"


# Field holding the JSON body of every stream entry
STREAM_PAYLOAD_FIELD = "payload"
