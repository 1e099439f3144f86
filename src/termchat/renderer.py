"""
Terminal Rendering

Paints the message log and the input line to the terminal. Two renderers
share one interface:

    - TerminalRenderer: full-screen UI with scrollback, owns the raw
      terminal mode
    - PlainRenderer: plain scrolling log, the terminal's own line editing
      handles input

The receive loop calls line_added() after appending to the log; the
input loop calls redraw() after every keystroke.
"""

import logging
import os
import shutil
import sys
import termios
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, TextIO

from .message_log import MessageLog

logger = logging.getLogger(__name__)

ESC = "\033"
CLEAR_SCREEN = ESC + "[2J"
HIDE_CURSOR = ESC + "[?25l"
SHOW_CURSOR = ESC + "[?25h"
PROMPT = "> "

# Used when the terminal size cannot be determined
DEFAULT_ROWS = 24

# Rows not available to the message window
RESERVED_ROWS = 2


def move_cursor(row: int, column: int) -> str:
    return f"{ESC}[{row};{column}H"


class Renderer:
    """Interface shared by the plain and full-screen renderers."""

    def line_added(self, line: str) -> None:
        """Called after a line has been appended to the message log."""

    def redraw(self, input_buffer: str = "", scroll_offset: int = 0) -> None:
        """Called after a keystroke changed the input line or scroll."""

    def max_scroll_offset(self) -> int:
        """Largest useful scroll offset for the current window."""
        return 0


class PlainRenderer(Renderer):
    """Writes each new line to the output as it arrives."""

    def __init__(self, output: Optional[TextIO] = None):
        self._output = output or sys.stdout
        self._output_lock = threading.Lock()

    def line_added(self, line: str) -> None:
        with self._output_lock:
            self._output.write(line + "\n")
            self._output.flush()


class TerminalRenderer(Renderer):
    """
    Full-screen renderer: message window above a fixed prompt line.

    Paints are serialized by an output lock so escape sequences from two
    threads never interleave. The log snapshot is copied out under the
    log's own lock before painting.

    Attributes:
        message_log: Source of the lines to display
    """

    def __init__(
        self,
        message_log: MessageLog,
        output: Optional[TextIO] = None,
        input_fd: Optional[int] = None,
        rows: Optional[int] = None,
    ):
        """
        Initialize the renderer.

        Args:
            message_log: Log to display
            output: Text stream to paint to (default: sys.stdout)
            input_fd: Terminal fd whose mode is changed (default: stdin)
            rows: Fixed terminal height; queried on every paint if None
        """
        self.message_log = message_log
        self._output = output or sys.stdout
        self._input_fd = input_fd
        self._rows = rows
        self._output_lock = threading.Lock()
        self._input_buffer = ""
        self._scroll_offset = 0
        self._saved_attrs: Optional[List] = None
        self._interactive = False

    @property
    def rows(self) -> int:
        if self._rows is not None:
            return self._rows
        return shutil.get_terminal_size(fallback=(80, DEFAULT_ROWS)).lines

    @property
    def window_size(self) -> int:
        return max(self.rows - RESERVED_ROWS, 1)

    @property
    def is_interactive(self) -> bool:
        return self._interactive

    def max_scroll_offset(self) -> int:
        return self.message_log.max_scroll_offset(self.window_size)

    def enter_interactive_mode(self) -> None:
        """
        Switch the terminal to raw input and hide the cursor.

        Line buffering and local echo are disabled. If the input is not a
        terminal the mode change is skipped.
        """
        if self._input_fd is None:
            self._input_fd = sys.stdin.fileno()
        fd = self._input_fd

        if os.isatty(fd):
            self._saved_attrs = termios.tcgetattr(fd)
            raw = termios.tcgetattr(fd)
            raw[3] &= ~(termios.ICANON | termios.ECHO)
            termios.tcsetattr(fd, termios.TCSAFLUSH, raw)
            logger.debug("Terminal switched to raw mode")
        else:
            logger.debug("Input fd %d is not a tty, keeping its mode", fd)

        self._interactive = True
        with self._output_lock:
            self._output.write(HIDE_CURSOR)
            self._output.flush()

    def exit_interactive_mode(self) -> None:
        """Restore the saved terminal mode, show the cursor, clear."""
        saved, self._saved_attrs = self._saved_attrs, None
        self._interactive = False
        try:
            if saved is not None:
                termios.tcsetattr(self._input_fd, termios.TCSAFLUSH, saved)
                logger.debug("Terminal mode restored")
        finally:
            with self._output_lock:
                self._output.write(
                    SHOW_CURSOR + CLEAR_SCREEN + move_cursor(1, 1)
                )
                self._output.flush()

    @contextmanager
    def interactive(self) -> Iterator["TerminalRenderer"]:
        """
        Scope raw terminal mode to a with-block.

        The terminal is restored however the block exits.
        """
        self.enter_interactive_mode()
        try:
            yield self
        finally:
            self.exit_interactive_mode()

    def redraw(self, input_buffer: str = "", scroll_offset: int = 0) -> None:
        """
        Repaint the screen with a new input line and scroll position.

        Args:
            input_buffer: Text currently being typed
            scroll_offset: Lines back from the newest message
        """
        with self._output_lock:
            self._input_buffer = input_buffer
            self._scroll_offset = scroll_offset
            self._paint()

    def line_added(self, line: str) -> None:
        """Repaint keeping the last input line and scroll position."""
        with self._output_lock:
            self._paint()

    def write_line(self, line: str) -> None:
        """Print a line below the cleared screen after interactive mode."""
        with self._output_lock:
            self._output.write(line + "\n")
            self._output.flush()

    def _paint(self) -> None:
        # Caller holds the output lock
        rows = self.rows
        window = max(rows - RESERVED_ROWS, 1)
        lines = self.message_log.snapshot(window, self._scroll_offset)

        parts = [CLEAR_SCREEN, move_cursor(1, 1)]
        parts.extend(line + "\n" for line in lines)
        parts.append(move_cursor(rows, 1))
        parts.append(PROMPT + self._input_buffer)

        self._output.write("".join(parts))
        self._output.flush()
