"""
Broadcast Engine

Processes incoming datagrams one at a time: decode, dispatch on the control
code, update membership, and reply or fan out.

Every message the engine sends has its timestamp refreshed and its sender
address overwritten with the source endpoint of the datagram that caused it,
so addresses embedded by clients are never trusted.
"""

import logging
from typing import Callable, Dict, Optional

from ..protocol import DecodeError, ProtocolViolation, decode, encode
from ..schemas import ControlCode, Endpoint, Message, format_endpoint
from .broadcast import broadcast_to_members
from .state import ServerState

logger = logging.getLogger(__name__)

Handler = Callable[[Message, Endpoint], None]


class BroadcastEngine:
    """
    Membership and broadcast logic of the chat server.

    The engine is not thread-safe; it expects to be driven by a single
    event loop.

    Attributes:
        state: Group and member sets
        transport: Object with ``sendto(data, address)``, set once the
            socket is open
    """

    def __init__(self, state: ServerState, transport=None):
        """
        Initialize the engine.

        Args:
            state: The server state to operate on
            transport: Optional datagram transport
        """
        self.state = state
        self.transport = transport
        self._handlers: Dict[ControlCode, Handler] = {
            ControlCode.SEND_MESSAGE: self.handle_send_message,
            ControlCode.JOIN_GROUP: self.handle_join_group,
            ControlCode.LEAVE_GROUP: self.handle_leave_group,
            ControlCode.ERROR: self.handle_error,
            ControlCode.EXIT_SERVER: self.handle_exit_server,
        }

    def set_transport(self, transport) -> None:
        self.transport = transport

    def handler_for(self, code: ControlCode) -> Optional[Handler]:
        """Return the handler registered for a control code."""
        return self._handlers.get(code)

    def handle_datagram(self, data: bytes, src) -> None:
        """
        Process one inbound datagram.

        Malformed payloads are logged and ignored.

        Args:
            data: Raw datagram payload
            src: Source address reported by the socket
        """
        src = (src[0], src[1])
        try:
            message = decode(data)
        except DecodeError as e:
            logger.warning(
                f"Ignoring malformed datagram from {format_endpoint(src)}: {e}"
            )
            return

        logger.debug(
            f"Received {message.code.value} from {format_endpoint(src)}"
        )
        handler = self._handlers.get(message.code)
        if handler is None:
            logger.warning(f"No handler for control code {message.code!r}")
            return
        handler(message, src)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def handle_send_message(self, message: Message, src: Endpoint) -> None:
        """Relay a chat message to every member, sender included."""
        self._stamp(message, src)
        self._send_to_all(message)

    def handle_join_group(self, message: Message, src: Endpoint) -> None:
        """
        Add the source endpoint to the members if the requested group,
        carried in the message text, exists. Otherwise reply with an error
        to the requester only.
        """
        try:
            self._check_group(message.text)
        except ProtocolViolation as e:
            logger.info(f"Rejected join from {format_endpoint(src)}: {e}")
            message.code = ControlCode.ERROR
            message.text = str(e)
            self._stamp(message, src)
            self._send_to(message, src)
            return

        if self.state.add_member(src):
            logger.info(
                f"{message.sender.nickname}@{format_endpoint(src)} joined "
                f"group '{message.text}'"
            )
        self._stamp(message, src)
        self._send_to_all(message)

    def handle_leave_group(self, message: Message, src: Endpoint) -> None:
        """Remove the source endpoint from the members and announce it."""
        if self.state.remove_member(src):
            logger.info(
                f"{message.sender.nickname}@{format_endpoint(src)} left"
            )
        self._stamp(message, src)
        self._send_to_all(message)

    def handle_error(self, message: Message, src: Endpoint) -> None:
        # Errors from clients are dropped so they cannot start error loops
        logger.debug(f"Discarding error message from {format_endpoint(src)}")

    def handle_exit_server(self, message: Message, src: Endpoint) -> None:
        # Farewell datagrams need no server action; the client sends a
        # LeaveGroup before it.
        logger.debug(f"Ignoring exit message from {format_endpoint(src)}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_group(self, name: str) -> None:
        if not self.state.group_exists(name):
            raise ProtocolViolation(f"group {name} not exist")

    @staticmethod
    def _stamp(message: Message, src: Endpoint) -> None:
        message.update_sender_address(src)
        message.refresh_timestamp()

    def _send_to_all(self, message: Message) -> None:
        if self.transport is None:
            logger.error("No transport set, dropping broadcast")
            return
        broadcast_to_members(
            self.transport, encode(message), self.state.list_members()
        )

    def _send_to(self, message: Message, address: Endpoint) -> None:
        if self.transport is None:
            logger.error("No transport set, dropping reply")
            return
        try:
            self.transport.sendto(encode(message), address)
        except OSError as e:
            logger.error(
                f"Failed to send to {format_endpoint(address)}: {e}"
            )
