"""
Wire Protocol for Client-Server Communication

This module defines the fixed-layout binary frame exchanged with the chat
server, and the codec that converts between frames and bytes.

Frame Format:
    Every frame has the same size regardless of content. Integer fields
    are unsigned 32-bit in network byte order, text fields are UTF-8,
    NUL-terminated and NUL-padded to their fixed capacity.

    | Offset | Size | Field     |
    |--------|------|-----------|
    | 0      | 4    | kind      |
    | 4      | 4    | timestamp |
    | 8      | 32   | username  |
    | 40     | 1024 | body      |
"""

import struct
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

USERNAME_SIZE = 32
BODY_SIZE = 1024

# Usable characters, one byte is reserved for the terminator
MAX_USERNAME_LENGTH = USERNAME_SIZE - 1
MAX_BODY_LENGTH = BODY_SIZE - 1

_FRAME = struct.Struct(f"!II{USERNAME_SIZE}s{BODY_SIZE}s")
FRAME_SIZE = _FRAME.size

_U32_MAX = 0xFFFFFFFF


class Kind(IntEnum):
    """Purpose tag carried in the first field of every frame."""

    LOGIN = 0
    LOGOUT = 1
    CHAT_SEND = 2
    CHAT_RECV = 10
    DISCONNECT = 12
    SYSTEM = 13


class ProtocolError(Exception):
    """Base class for wire protocol errors."""


class MalformedFrame(ProtocolError):
    """Raised when a byte slice cannot hold a complete frame."""


def _encode_text(text: str, capacity: int) -> bytes:
    """
    Encode text into a field of the given capacity.

    Text longer than capacity - 1 bytes is truncated on a character
    boundary. struct pads the result with NULs.
    """
    raw = text.encode("utf-8")
    if len(raw) >= capacity:
        raw = raw[: capacity - 1].decode("utf-8", errors="ignore").encode(
            "utf-8"
        )
    # An embedded NUL would terminate the field early on the peer
    return raw.split(b"\0", 1)[0]


def _decode_text(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Frame:
    """
    One message on the wire.

    Attributes:
        kind: Kind member, or a plain int for kinds this client
              does not know about
        timestamp: Seconds since the epoch
        username: Sender (inbound) or local user (outbound)
        body: Message text
    """

    kind: Union[Kind, int]
    timestamp: int = 0
    username: str = ""
    body: str = ""

    @classmethod
    def outgoing(cls, kind: Kind, username: str, body: str = "") -> "Frame":
        """Create a frame stamped with the current time."""
        return cls(
            kind=kind, timestamp=int(time.time()), username=username, body=body
        )

    def encode(self) -> bytes:
        """Serialize to exactly FRAME_SIZE bytes."""
        return encode_frame(self)

    @classmethod
    def decode(cls, data: bytes) -> "Frame":
        """Deserialize from at least FRAME_SIZE bytes."""
        return decode_frame(data)


def encode_frame(frame: Frame) -> bytes:
    """
    Encode a frame into its fixed-size wire representation.

    Oversized text is truncated silently. Callers that must not lose
    text should cap their input at MAX_USERNAME_LENGTH / MAX_BODY_LENGTH
    encoded bytes.

    Args:
        frame: Frame to encode

    Returns:
        bytes of length FRAME_SIZE
    """
    return _FRAME.pack(
        int(frame.kind) & _U32_MAX,
        min(max(int(frame.timestamp), 0), _U32_MAX),
        _encode_text(frame.username, USERNAME_SIZE),
        _encode_text(frame.body, BODY_SIZE),
    )


def decode_frame(data: bytes) -> Frame:
    """
    Decode a frame from its wire representation.

    Args:
        data: At least FRAME_SIZE bytes; anything beyond is ignored

    Returns:
        Decoded Frame. Unknown kind values are kept as plain ints.

    Raises:
        MalformedFrame: If fewer than FRAME_SIZE bytes are given
    """
    if len(data) < FRAME_SIZE:
        raise MalformedFrame(
            f"frame needs {FRAME_SIZE} bytes, got {len(data)}"
        )

    kind_value, timestamp, username, body = _FRAME.unpack_from(data)
    try:
        kind: Union[Kind, int] = Kind(kind_value)
    except ValueError:
        kind = kind_value

    return Frame(
        kind=kind,
        timestamp=timestamp,
        username=_decode_text(username),
        body=_decode_text(body),
    )
