"""
Member Schema Definitions

This module defines the participant and group structures carried inside
every chat message, together with the textual endpoint format used on the
wire (``host:port``, or ``[host]:port`` for IPv6 hosts).
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .base import BaseSchema, require_field

Endpoint = Tuple[str, int]


def format_endpoint(address) -> str:
    """
    Render a socket address in its standard textual form.

    Args:
        address: ``(host, port)`` tuple; extra IPv6 fields are ignored

    Returns:
        str: ``host:port`` or ``[host]:port``
    """
    host, port = address[0], address[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_endpoint(text: str) -> Endpoint:
    """
    Parse ``host:port`` or ``[host]:port`` into an endpoint tuple.

    Args:
        text: Textual endpoint

    Returns:
        Endpoint: ``(host, port)``

    Raises:
        ValueError: If the text is not a valid endpoint
    """
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ValueError(f"invalid endpoint: {text!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep or ":" in host:
            raise ValueError(f"invalid endpoint: {text!r}")

    if not host or not (port_text.isascii() and port_text.isdigit()):
        raise ValueError(f"invalid endpoint: {text!r}")

    port = int(port_text)
    if port > 65535:
        raise ValueError(f"port out of range in endpoint: {text!r}")
    return host, port


@dataclass
class Member(BaseSchema):
    """
    A chat participant.

    The endpoint is the identity used for broadcast; nicknames are neither
    unique nor verified.

    Attributes:
        nickname: Display name chosen by the user
        address: Network endpoint of the participant
    """

    nickname: str
    address: Endpoint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nickname": self.nickname,
            "address": format_endpoint(self.address),
        }

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "Member":
        """Create from wire data dictionary."""
        return cls(
            nickname=require_field(data, "nickname", str),
            address=parse_endpoint(require_field(data, "address", str)),
        )


@dataclass
class Group(BaseSchema):
    """
    A named broadcast scope.

    Attributes:
        name: Group name, the only discriminator
        id: Numeric id, unused and always 0
    """

    name: str
    id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "id": self.id}

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "Group":
        """Create from wire data dictionary."""
        group_id = require_field(data, "id", int)
        if group_id < 0:
            raise ValueError("field 'id' must not be negative")
        return cls(name=require_field(data, "name", str), id=group_id)
