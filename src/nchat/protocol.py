"""
Wire Protocol for Client-Server Communication

This module turns ``Message`` objects into datagram payloads and back, and
defines the error taxonomy shared by the client and the server.

Message Format:
    Every datagram carries exactly one UTF-8 encoded JSON object as
    described in ``nchat.schemas.message``. There is no length prefix and
    no fragmentation; the transport delivers whole datagrams.

There is no version field in the payload, so adding, removing or renaming
a field is a breaking protocol change.
"""

import json

from .schemas import Message

# Largest datagram a peer will read in one receive call
MAX_DATAGRAM_SIZE = 4096


class NchatError(Exception):
    """Base class for chat protocol and transport errors."""


class DecodeError(NchatError, ValueError):
    """A datagram payload could not be decoded into a Message."""


class TransportError(NchatError):
    """A socket-level send or receive failed."""


class ProtocolViolation(NchatError):
    """A peer asked for something the protocol does not allow."""


def encode(message: Message) -> bytes:
    """
    Serialize a message into a datagram payload.

    Args:
        message: Message to serialize

    Returns:
        bytes: UTF-8 encoded JSON
    """
    return message.to_json().encode("utf-8")


def decode(data: bytes) -> Message:
    """
    Parse a datagram payload into a message.

    Args:
        data: Raw datagram payload

    Returns:
        Message: The decoded message

    Raises:
        DecodeError: If the payload is not a well-formed message. No other
            exception is raised for bad input.
    """
    try:
        return Message.from_json(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"payload is not valid JSON text: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"payload is not a valid message: {e}") from e
    except RecursionError as e:
        raise DecodeError("payload is nested too deeply") from e
