"""
Datagram Server

Binds the server's single UDP socket on the asyncio event loop and feeds
every received datagram to the BroadcastEngine. The engine runs inside the
protocol callback, so datagrams are handled strictly one after another.
"""

import asyncio
import logging
from typing import Optional

from ..schemas import Endpoint
from .engine import BroadcastEngine

logger = logging.getLogger(__name__)


class ChatServerProtocol(asyncio.DatagramProtocol):
    """asyncio protocol forwarding datagrams to the engine."""

    def __init__(self, engine: BroadcastEngine):
        self.engine = engine

    def connection_made(self, transport) -> None:
        self.engine.set_transport(transport)

    def datagram_received(self, data: bytes, addr) -> None:
        self.engine.handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        # Usually ICMP port unreachable for a member that went away
        logger.warning(f"Datagram error: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc:
            logger.error(f"Server socket closed with error: {exc}")


class DatagramServer:
    """
    UDP server for the chat protocol.

    Attributes:
        engine: The broadcast engine handling datagrams
        host: Host address to bind to
        port: Port to listen on (0 picks a free port)
    """

    def __init__(self, engine: BroadcastEngine, host: str, port: int):
        self.engine = engine
        self.host = host
        self.port = port
        self.transport: Optional[asyncio.DatagramTransport] = None

    async def start(self) -> None:
        """Bind the socket and start receiving."""
        loop = asyncio.get_running_loop()
        self.transport, _ = await loop.create_datagram_endpoint(
            lambda: ChatServerProtocol(self.engine),
            local_addr=(self.host, self.port),
        )
        logger.info(f"Datagram server listening on {self.address}")

    @property
    def address(self) -> Optional[Endpoint]:
        """The endpoint the socket is bound to, once started."""
        if self.transport is None:
            return None
        sockname = self.transport.get_extra_info("sockname")
        return sockname[0], sockname[1]

    async def stop(self) -> None:
        """Close the socket."""
        if self.transport:
            self.transport.close()
            self.transport = None
            logger.info("Datagram server stopped")
