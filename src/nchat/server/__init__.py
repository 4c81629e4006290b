"""
Chat Server Package

This package provides the chat server: the in-memory group/member state,
the broadcast engine that dispatches messages by control code, and the
asyncio datagram server that drives it.
"""

from .state import ServerState, DEFAULT_GROUP
from .engine import BroadcastEngine
from .broadcast import broadcast_to_members
from .datagram_server import DatagramServer, ChatServerProtocol

__all__ = [
    "ServerState",
    "DEFAULT_GROUP",
    "BroadcastEngine",
    "broadcast_to_members",
    "DatagramServer",
    "ChatServerProtocol",
]
