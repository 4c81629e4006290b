"""
Message Schema Definitions

This module defines the single unit of transmission, ``Message``, and the
closed set of control codes that select how clients render it and how the
server dispatches it.

Wire Format:
    {
        "code": "SendMessage",
        "timestamp": 1700000000,
        "group": {"name": "global", "id": 0},
        "sender": {"nickname": "alice", "address": "127.0.0.1:9090"},
        "msg": "hi"
    }
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from .base import BaseSchema, require_field
from .member import Endpoint, Group, Member


class ControlCode(str, Enum):
    """Discriminator selecting a message's semantic type."""

    SEND_MESSAGE = "SendMessage"
    JOIN_GROUP = "JoinGroup"
    LEAVE_GROUP = "LeaveGroup"
    EXIT_SERVER = "ExitServer"
    ERROR = "Error"

    @classmethod
    def _missing_(cls, value):
        # Older peers spell the exit code "EixtServer" on the wire.
        if value == "EixtServer":
            return cls.EXIT_SERVER
        return None


def current_timestamp() -> int:
    """Return the current wall-clock time in unix seconds."""
    return int(datetime.now(timezone.utc).timestamp())


@dataclass
class Message(BaseSchema):
    """
    A chat protocol message.

    Handlers mutate messages in place (for example the server turning a
    rejected join into an error reply), so this dataclass is not frozen.

    Attributes:
        code: Control code of the message
        timestamp: Unix timestamp in seconds
        group: Group the message refers to
        sender: Member that sent the message
        text: Message body, serialized under the ``msg`` key
    """

    code: ControlCode
    timestamp: int
    group: Group
    sender: Member
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "timestamp": self.timestamp,
            "group": self.group.to_dict(),
            "sender": self.sender.to_dict(),
            "msg": self.text,
        }

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "Message":
        """Create from wire data dictionary."""
        return cls(
            code=ControlCode(require_field(data, "code", str)),
            timestamp=require_field(data, "timestamp", int),
            group=Group.from_dict(require_field(data, "group", dict)),
            sender=Member.from_dict(require_field(data, "sender", dict)),
            text=require_field(data, "msg", str),
        )

    def refresh_timestamp(self) -> None:
        """Stamp the message with the current time."""
        self.timestamp = current_timestamp()

    def update_sender_address(self, address: Endpoint) -> None:
        """Overwrite the sender endpoint with the observed source address."""
        self.sender.address = (address[0], address[1])


def new_message(
    code: ControlCode,
    group: Group,
    sender: Member,
    text: str,
) -> Message:
    """
    Create a message stamped with the current time.

    Args:
        code: Control code of the message
        group: Group the message refers to
        sender: Sending member
        text: Message body

    Returns:
        Message: The new message
    """
    return Message(
        code=code,
        timestamp=current_timestamp(),
        group=group,
        sender=sender,
        text=text,
    )
