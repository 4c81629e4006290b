"""
UI Package

Textual-based terminal user interface for the chat client.
"""

from .app import ChatApp

__all__ = ["ChatApp"]
