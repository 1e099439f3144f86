"""
Input Loop

Foreground task that reads keystrokes one byte at a time, edits the input
line, scrolls the message window and sends chat messages.

Key handling:
    - printable text   appended to the input line (capped, overflow dropped)
    - backspace        removes the last character
    - newline          sends the input line as a chat message, if non-empty
    - ESC x y          arrow keys: up scrolls back, down scrolls forward;
                       other sequences are consumed and ignored
"""

import codecs
import logging
import os
import select
import sys
from typing import Callable, Optional

from .connection import Connection
from .protocol import MAX_BODY_LENGTH, Frame, Kind
from .renderer import Renderer
from .session import Session

logger = logging.getLogger(__name__)

KEY_ESCAPE = 0x1B
KEY_BACKSPACE = (0x7F, 0x08)
KEY_NEWLINE = (ord("\n"), ord("\r"))
ARROW_UP = ord("A")
ARROW_DOWN = ord("B")

# Seconds between checks of the running flag while waiting for a key
DEFAULT_POLL_INTERVAL = 0.1


class StdinReader:
    """
    Reads single bytes from a terminal fd.

    Waits with select() so a shutdown request ends the read without
    needing another keystroke.
    """

    def __init__(
        self,
        session: Session,
        fd: Optional[int] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self._session = session
        self._fd = fd
        self._poll_interval = poll_interval

    def __call__(self) -> bytes:
        """
        Returns:
            One byte, or b"" on end of input or shutdown.
        """
        if self._fd is None:
            self._fd = sys.stdin.fileno()

        while self._session.running:
            readable, _, _ = select.select(
                [self._fd], [], [], self._poll_interval
            )
            if readable:
                return os.read(self._fd, 1)
        return b""


class InputLoop:
    """
    Line editor and message dispatcher driven by raw keystrokes.

    Attributes:
        input_buffer: Text typed but not yet sent
        scroll_offset: Lines back from the newest message, never negative
    """

    def __init__(
        self,
        connection: Connection,
        session: Session,
        renderer: Renderer,
        read_byte: Callable[[], bytes],
    ):
        """
        Initialize the input loop.

        Args:
            connection: Connection used to send chat messages
            session: Shared session state
            renderer: Renderer repainted after every keystroke
            read_byte: Returns the next input byte, b"" at end of input
        """
        self._connection = connection
        self._session = session
        self._renderer = renderer
        self._read_byte = read_byte
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")
        self.input_buffer = ""
        self.scroll_offset = 0

    def run(self) -> None:
        """Process keystrokes until end of input or the session stops."""
        logger.info("Starting input loop")
        while self._session.running:
            data = self._read_byte()
            if not data:
                logger.info("End of input")
                break
            if not self.handle_byte(data[0]):
                break
            self._renderer.redraw(self.input_buffer, self.scroll_offset)
        logger.info("Input loop stopped")

    def handle_byte(self, byte: int) -> bool:
        """
        Apply one keystroke.

        Args:
            byte: Input byte value

        Returns:
            False if the loop must stop (end of input inside an escape
            sequence, or the send failed).
        """
        if byte in KEY_NEWLINE:
            return self._submit()
        if byte in KEY_BACKSPACE:
            self.input_buffer = self.input_buffer[:-1]
            self._decoder.reset()
            return True
        if byte == KEY_ESCAPE:
            return self._handle_escape()

        text = self._decoder.decode(bytes([byte]))
        for char in text:
            if char.isprintable():
                self._insert(char)
        return True

    def scroll_up(self) -> None:
        limit = self._renderer.max_scroll_offset()
        self.scroll_offset = min(self.scroll_offset + 1, limit)

    def scroll_down(self) -> None:
        self.scroll_offset = max(self.scroll_offset - 1, 0)

    def _insert(self, char: str) -> None:
        size = len(self.input_buffer.encode("utf-8"))
        if size + len(char.encode("utf-8")) <= MAX_BODY_LENGTH:
            self.input_buffer += char

    def _handle_escape(self) -> bool:
        # Always consume both bytes so the stream stays in sync
        first = self._read_byte()
        second = self._read_byte() if first else b""
        if not second:
            return False

        if second[0] == ARROW_UP:
            self.scroll_up()
        elif second[0] == ARROW_DOWN:
            self.scroll_down()
        else:
            logger.debug("Ignoring escape sequence %r", first + second)
        return True

    def _submit(self) -> bool:
        if not self.input_buffer:
            return True

        frame = Frame.outgoing(
            Kind.CHAT_SEND, self._session.username, self.input_buffer
        )
        try:
            self._connection.send(frame)
        except ConnectionError as e:
            logger.warning("Send failed: %s", e)
            self._session.request_shutdown()
            return False

        self.input_buffer = ""
        self._decoder.reset()
        return True
