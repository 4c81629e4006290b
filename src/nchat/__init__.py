"""
nchat - minimal UDP group chat

The wire protocol shared by client and server lives in ``nchat.protocol``
and ``nchat.schemas``; the terminal client in ``nchat.client`` and the relay
server in ``nchat.server``.
"""

from .protocol import (
    MAX_DATAGRAM_SIZE,
    NchatError,
    DecodeError,
    TransportError,
    ProtocolViolation,
    encode,
    decode,
)
from .schemas import (
    ControlCode,
    Group,
    Member,
    Message,
    new_message,
)

__all__ = [
    "MAX_DATAGRAM_SIZE",
    "NchatError",
    "DecodeError",
    "TransportError",
    "ProtocolViolation",
    "encode",
    "decode",
    "ControlCode",
    "Group",
    "Member",
    "Message",
    "new_message",
]
