"""
Schemas Package

This package contains the wire schemas shared by the chat client and
server. Schemas are organized by category: members/groups and messages.

The package provides a base class (BaseSchema) that holds the common
serialization and deserialization methods.
"""

from .base import BaseSchema
from .member import (
    Endpoint,
    Group,
    Member,
    format_endpoint,
    parse_endpoint,
)
from .message import (
    ControlCode,
    Message,
    current_timestamp,
    new_message,
)

__all__ = [
    # Base classes
    "BaseSchema",
    # Member schemas
    "Endpoint",
    "Group",
    "Member",
    "format_endpoint",
    "parse_endpoint",
    # Message schemas
    "ControlCode",
    "Message",
    "current_timestamp",
    "new_message",
]
