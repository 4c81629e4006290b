"""
Client Package

This package provides the client-side functionality for the chat system:
the background network pipeline (receiver, render and sender threads), the
message renderer, and the terminal user interface.
"""

from .pipeline import (
    ClientPipeline,
    OutboundEvent,
    Shutdown,
    SubmitText,
    END_OF_STREAM,
    open_socket,
)
from .render import RenderedLine, render_message, format_local_time

__all__ = [
    # Pipeline
    "ClientPipeline",
    "OutboundEvent",
    "Shutdown",
    "SubmitText",
    "END_OF_STREAM",
    "open_socket",
    # Rendering
    "RenderedLine",
    "render_message",
    "format_local_time",
]
