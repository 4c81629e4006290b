"""
Client Network Pipeline

This module bridges the unreliable datagram channel and the single-threaded
terminal UI without blocking either side.

Architecture:
    - Receiver thread: socket -> decode -> render queue
    - Render thread: render queue -> RenderedLine -> UI line queue
    - Sender thread: outbound event queue -> encode -> socket
    - UI loop (nchat.client.ui): drains the line queue on a timer and
      pushes SubmitText / Shutdown events to the outbound queue

Threads only talk through queues. The receiver and the sender each own a
duplicated handle of the client socket.

Shutdown is driven by a Shutdown event travelling through the outbound
queue behind any text submitted before it. The sender announces the leave,
sends the ExitServer farewell and stops; the pipeline then shuts the socket
down, which ends the receiver, whose end-of-stream marker ends the render
thread.
"""

import logging
import queue
import socket
import threading
from dataclasses import dataclass
from typing import List, Optional, Union

from ..protocol import (
    MAX_DATAGRAM_SIZE,
    DecodeError,
    TransportError,
    decode,
    encode,
)
from ..schemas import (
    ControlCode,
    Endpoint,
    Group,
    Member,
    Message,
    new_message,
)
from .render import RenderedLine, render_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitText:
    """Text typed by the user, to be sent as a chat message."""

    text: str


@dataclass(frozen=True)
class Shutdown:
    """The user quit; send the farewell and stop the sender."""


OutboundEvent = Union[SubmitText, Shutdown]

# Put on the render queue by the receiver when it stops
END_OF_STREAM = object()


def open_socket(local: Endpoint, server: Endpoint) -> socket.socket:
    """
    Create a UDP socket bound to ``local`` and connected to ``server``.

    Connecting filters out datagrams that do not come from the server.

    Raises:
        TransportError: If the socket cannot be bound or connected
    """
    family = socket.AF_INET6 if ":" in local[0] else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.bind(local)
        sock.connect(server)
    except OSError as e:
        sock.close()
        raise TransportError(
            f"Could not open socket {local} -> {server}: {e}"
        ) from e
    return sock


class ClientPipeline:
    """
    Background network pipeline of a chat client.

    Attributes:
        socket: The client socket, bound and connected to the server
        local_address: Endpoint the socket is bound to
        member: This client as seen by other members
        group: Group requested at login
        outbound: Queue of OutboundEvent values fed by the UI
        render_queue: Queue of decoded Messages fed by the receiver
        lines: Queue of RenderedLine values consumed by the UI
        farewell_sent: Set once both the LeaveGroup request and the
            ExitServer farewell are on the wire
    """

    def __init__(self, sock: socket.socket, nickname: str, group_name: str):
        """
        Initialize the pipeline.

        Args:
            sock: UDP socket already connected to the server
            nickname: Nickname shown to other members
            group_name: Group to join at login
        """
        self.socket = sock
        self.local_address: Endpoint = sock.getsockname()[:2]
        self.member = Member(nickname, self.local_address)
        self.group = Group(group_name, 0)

        self.outbound: "queue.Queue[OutboundEvent]" = queue.Queue()
        self.render_queue: queue.Queue = queue.Queue()
        self.lines: "queue.Queue[RenderedLine]" = queue.Queue()

        self.farewell_sent = threading.Event()
        self._stopping = threading.Event()
        self._shutdown_requested = False
        self._receiver: Optional[threading.Thread] = None
        self._renderer: Optional[threading.Thread] = None
        self._sender: Optional[threading.Thread] = None

        logger.info(
            f"Client pipeline initialized for {nickname} on "
            f"{self.local_address}"
        )

    def login(self) -> None:
        """
        Ask the server to add this client to its group.

        The requested group name travels in the message text.

        Raises:
            TransportError: If the join request cannot be sent
        """
        message = new_message(
            ControlCode.JOIN_GROUP,
            Group(self.group.name, self.group.id),
            Member(self.member.nickname, self.member.address),
            self.group.name,
        )
        try:
            self.socket.send(encode(message))
        except OSError as e:
            raise TransportError(f"Login request send failed: {e}") from e
        logger.info(f"Sent join request for group '{self.group.name}'")

    def start(self) -> None:
        """Start the receiver, render and sender threads."""
        self._receiver = threading.Thread(
            target=self._receive_loop,
            args=(self.socket.dup(),),
            name="nchat-receiver",
            daemon=True,
        )
        self._renderer = threading.Thread(
            target=self._render_loop, name="nchat-render", daemon=True
        )
        self._sender = threading.Thread(
            target=self._send_loop,
            args=(self.socket.dup(),),
            name="nchat-sender",
            daemon=True,
        )
        for thread in (self._receiver, self._renderer, self._sender):
            thread.start()

    # ------------------------------------------------------------------
    # UI-facing API
    # ------------------------------------------------------------------

    def submit(self, text: str) -> None:
        """Queue text typed by the user for sending."""
        self.outbound.put(SubmitText(text))

    def shutdown(self) -> None:
        """Queue the Shutdown event. Only the first call has an effect."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True
        self.outbound.put(Shutdown())

    def drain_lines(self) -> List[RenderedLine]:
        """Return every rendered line currently waiting, without blocking."""
        lines = []
        while True:
            try:
                lines.append(self.lines.get_nowait())
            except queue.Empty:
                return lines

    def close(self) -> None:
        """
        Wait for the pipeline to finish and release the socket.

        Queues the Shutdown event if the UI has not done so, waits until the
        sender has put the farewell on the wire, then stops the receiver and
        the render thread.
        """
        self.shutdown()
        if self._sender:
            self._sender.join()

        self._stopping.set()
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Socket shutdown: {e}")

        if self._receiver:
            self._receiver.join()
        if self._renderer:
            self._renderer.join()
        self.socket.close()
        logger.info("Client pipeline stopped")

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def _receive_loop(self, sock: socket.socket) -> None:
        with sock:
            while True:
                try:
                    data = sock.recv(MAX_DATAGRAM_SIZE)
                except ConnectionRefusedError:
                    # ICMP port unreachable from an earlier send
                    logger.warning("Server unreachable")
                    continue
                except OSError as e:
                    if not self._stopping.is_set():
                        logger.error(f"Receiver stopped, receive failed: {e}")
                    break

                if not data and self._stopping.is_set():
                    break

                try:
                    message = decode(data)
                except DecodeError as e:
                    logger.warning(f"Skipping bad datagram: {e}")
                    continue

                self.render_queue.put(message)

        self.render_queue.put(END_OF_STREAM)
        logger.debug("Receiver thread finished")

    def _render_loop(self) -> None:
        while True:
            item = self.render_queue.get()
            if item is END_OF_STREAM:
                break

            line = render_message(item)
            if line is None:
                continue
            self.lines.put(line)

            if self._is_own_farewell(item):
                break
        logger.debug("Render thread finished")

    def _is_own_farewell(self, message: Message) -> bool:
        return (
            message.code == ControlCode.EXIT_SERVER
            and tuple(message.sender.address) == tuple(self.local_address)
        )

    def _send_loop(self, sock: socket.socket) -> None:
        # One message reused for every event; only code and text change
        template = new_message(
            ControlCode.SEND_MESSAGE,
            Group(self.group.name, self.group.id),
            Member(self.member.nickname, self.member.address),
            "",
        )
        with sock:
            try:
                while True:
                    event = self.outbound.get()
                    if isinstance(event, Shutdown):
                        left = self._transmit(
                            sock,
                            template,
                            ControlCode.LEAVE_GROUP,
                            self.group.name,
                        )
                        if not left:
                            logger.error(
                                f"Leave request for '{self.group.name}' "
                                f"was lost; the server keeps this member"
                            )
                        said_goodbye = self._transmit(
                            sock, template, ControlCode.EXIT_SERVER, ""
                        )
                        if left and said_goodbye:
                            self.farewell_sent.set()
                        break
                    if isinstance(event, SubmitText):
                        self._transmit(
                            sock,
                            template,
                            ControlCode.SEND_MESSAGE,
                            event.text,
                        )
                    else:
                        logger.warning(
                            f"Ignoring unexpected outbound event: {event!r}"
                        )
            except TransportError as e:
                logger.error(f"Sender stopped: {e}")
        logger.debug("Sender thread finished")

    def _transmit(
        self,
        sock: socket.socket,
        template: Message,
        code: ControlCode,
        text: str,
    ) -> bool:
        """Send one event; return False if the server refused it."""
        template.code = code
        template.text = text
        template.refresh_timestamp()
        try:
            sock.send(encode(template))
        except ConnectionRefusedError:
            logger.warning(f"Server unreachable, {code.value} not sent")
            return False
        except OSError as e:
            raise TransportError(f"send failed: {e}") from e
        return True
