"""
Broadcast Utilities

Contains the fan-out helper used by the server to send one payload to every
member endpoint.
"""

import logging
from typing import Iterable

from ..schemas import Endpoint, format_endpoint

logger = logging.getLogger(__name__)


def broadcast_to_members(
    transport,
    payload: bytes,
    members: Iterable[Endpoint],
) -> int:
    """
    Send a payload to each member endpoint.

    A failed send to one member is logged and does not stop the sends to
    the remaining members.

    Args:
        transport: Object with a ``sendto(data, address)`` method
        payload: Encoded datagram
        members: Endpoints to send to

    Returns:
        int: Number of sends that did not raise
    """
    sent = 0
    for member in list(members):
        try:
            transport.sendto(payload, member)
            sent += 1
        except OSError as e:
            logger.error(
                f"Failed to send to member {format_endpoint(member)}: {e}"
            )
    logger.debug(f"Broadcast {len(payload)} bytes to {sent} members")
    return sent
