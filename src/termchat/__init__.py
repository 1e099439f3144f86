"""
Terminal Chat Client Package

This package provides a terminal chat client that talks to a chat server
over a stream socket using fixed-size binary frames, and displays the
conversation either as a plain scrolling log or as a full-screen terminal
UI with scrollback.
"""

from .protocol import (
    BODY_SIZE,
    FRAME_SIZE,
    USERNAME_SIZE,
    Frame,
    Kind,
    MalformedFrame,
    ProtocolError,
    decode_frame,
    encode_frame,
)
from .connection import Connection
from .message_log import MessageLog
from .renderer import PlainRenderer, Renderer, TerminalRenderer
from .session import ClientConfig, Session
from .receiver import ReceiveLoop, ReceiveState
from .input_loop import InputLoop, StdinReader
from .chat_client import ChatClient

__all__ = [
    # Wire protocol
    "BODY_SIZE",
    "FRAME_SIZE",
    "USERNAME_SIZE",
    "Frame",
    "Kind",
    "MalformedFrame",
    "ProtocolError",
    "decode_frame",
    "encode_frame",
    # Transport and state
    "Connection",
    "MessageLog",
    "ClientConfig",
    "Session",
    # Rendering
    "Renderer",
    "PlainRenderer",
    "TerminalRenderer",
    # Loops and lifecycle
    "ReceiveLoop",
    "ReceiveState",
    "InputLoop",
    "StdinReader",
    "ChatClient",
]
