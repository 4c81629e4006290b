"""
Message Rendering

Converts decoded protocol messages into display-ready lines for the chat
history. Rendering is a pure function of the message's code, sender,
timestamp and text, so it can run on a background thread without touching
UI state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..schemas import ControlCode, Message, format_endpoint

logger = logging.getLogger(__name__)

# Line kinds, used by the UI to pick a style
KIND_CHAT = "chat"
KIND_JOIN = "join"
KIND_LEAVE = "leave"
KIND_EXIT = "exit"
KIND_ERROR = "error"


@dataclass(frozen=True)
class RenderedLine:
    """
    A display-ready chat history line.

    Attributes:
        text: The full line text, possibly spanning several lines
        kind: One of the KIND_* constants
        code: Control code of the message the line was rendered from
    """

    text: str
    kind: str
    code: ControlCode


def format_local_time(timestamp: int) -> str:
    """
    Render a unix timestamp in the local timezone.

    Raises:
        OverflowError, OSError, ValueError: If the timestamp is out of range
    """
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc).astimezone()
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z")


def render_message(message: Message) -> Optional[RenderedLine]:
    """
    Convert a message into a history line.

    Args:
        message: Decoded message

    Returns:
        RenderedLine, or None if the timestamp cannot be represented
    """
    try:
        when = format_local_time(message.timestamp)
    except (OverflowError, OSError, ValueError) as e:
        logger.warning(
            f"Dropping message with malformed timestamp "
            f"{message.timestamp!r}: {e}"
        )
        return None

    who = (
        f"{message.sender.nickname}@"
        f"{format_endpoint(message.sender.address)}"
    )
    code = message.code

    if code == ControlCode.ERROR:
        return RenderedLine(f"server error: {message.text}", KIND_ERROR, code)
    if code == ControlCode.JOIN_GROUP:
        return RenderedLine(
            f"{who} has joined the group -- {when}", KIND_JOIN, code
        )
    if code == ControlCode.LEAVE_GROUP:
        return RenderedLine(
            f"{who} has left the group -- {when}", KIND_LEAVE, code
        )
    if code == ControlCode.EXIT_SERVER:
        return RenderedLine(
            f"{who} has exited the server -- {when}", KIND_EXIT, code
        )
    if code == ControlCode.SEND_MESSAGE:
        return RenderedLine(
            f"~> {who} -- {when}\n{message.text}", KIND_CHAT, code
        )

    raise ValueError(f"Unhandled control code: {code!r}")
