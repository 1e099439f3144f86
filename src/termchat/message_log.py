"""
Message Log for Rendered Chat Lines

This module provides the bounded buffer of display lines shared by the
receive loop, the input loop and the renderer.

Architecture:
    - Fixed capacity, the oldest line is evicted when a new one arrives
      at capacity (FIFO)
    - Insertion order is display order, oldest first
    - One lock guards every access; callers get copies, never the
      underlying storage

Usage:
    log = MessageLog(capacity=500)
    log.append("[2024-01-01 12:00:00] carol: hello")
    visible = log.snapshot(window_size=22, scroll_offset=0)
"""

import logging
import threading
from collections import deque
from typing import Deque, List

logger = logging.getLogger(__name__)

# Maximum number of lines kept for scrollback
DEFAULT_CAPACITY = 500


class MessageLog:
    """
    Thread-safe ring buffer of rendered text lines.

    Attributes:
        capacity: Maximum number of lines retained
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize the message log.

        Args:
            capacity: Maximum number of lines to keep. Older lines are
                      evicted when exceeded.

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._lines: Deque[str] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        """
        Append a line, evicting the oldest one if the log is full.

        Args:
            line: Rendered display line
        """
        with self._lock:
            self._lines.append(line)

    def snapshot(self, window_size: int, scroll_offset: int = 0) -> List[str]:
        """
        Get the lines visible in a window of the given height.

        The window ends scroll_offset lines back from the newest line.
        The offset is clamped so the window never starts before the
        oldest retained line.

        Args:
            window_size: Number of lines the window can show
            scroll_offset: Lines back from the newest (0 = pinned to newest)

        Returns:
            Copy of the visible lines, oldest first.
        """
        if window_size <= 0:
            return []

        with self._lock:
            lines = list(self._lines)

        offset = min(max(scroll_offset, 0), max(0, len(lines) - window_size))
        end = len(lines) - offset
        start = max(0, end - window_size)
        return lines[start:end]

    def max_scroll_offset(self, window_size: int) -> int:
        """Largest scroll offset that still fills a window of this height."""
        return max(0, len(self) - max(window_size, 0))

    def clear(self) -> None:
        """Remove all lines."""
        with self._lock:
            self._lines.clear()
        logger.debug("Message log cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
