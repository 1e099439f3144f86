"""
Receive Loop

Background task that reads frames from the connection, formats them into
display lines, appends them to the message log and asks the renderer to
repaint.

States:
    RUNNING  -> reading frames
    DRAINING -> the server sent a disconnect notice; the notice is shown
                and the session is asked to shut down
    STOPPED  -> terminal, the loop has returned
"""

import logging
import threading
from enum import Enum
from typing import Optional

from .connection import Connection
from .formatting import (
    format_chat_line,
    format_disconnect_line,
    format_system_line,
)
from .message_log import MessageLog
from .protocol import Frame, Kind, ProtocolError
from .renderer import Renderer
from .session import Session

logger = logging.getLogger(__name__)


class ReceiveState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class ReceiveLoop:
    """
    Reads and displays inbound frames until the session ends.

    Attributes:
        state: Current ReceiveState
        disconnect_notice: Display line of the server's disconnect
                           notice, None until one arrives
    """

    def __init__(
        self,
        connection: Connection,
        session: Session,
        message_log: MessageLog,
        renderer: Renderer,
    ):
        self._connection = connection
        self._session = session
        self._message_log = message_log
        self._renderer = renderer
        self._thread: Optional[threading.Thread] = None
        self.state = ReceiveState.RUNNING
        self.disconnect_notice: Optional[str] = None

    def start(self) -> None:
        """Run the loop on a background thread."""
        self._thread = threading.Thread(
            target=self.run, name="receive-loop", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the background thread to finish."""
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Receive loop did not stop within %ss", timeout)

    def run(self) -> None:
        """
        Read frames until the peer closes, the read fails, the server
        sends a disconnect notice or the session stops running.
        """
        logger.info("Starting receive loop")
        try:
            while self._session.running:
                try:
                    frame = self._connection.receive_frame()
                except ConnectionError as e:
                    if self._session.running:
                        logger.warning("Receive failed: %s", e)
                    break
                except ProtocolError as e:
                    logger.warning("Dropping connection: %s", e)
                    break

                if frame is None:
                    logger.info("Connection closed by server")
                    break

                self._handle_frame(frame)
                if self.state is ReceiveState.DRAINING:
                    break
        finally:
            self._session.request_shutdown()
            self.state = ReceiveState.STOPPED
            logger.info("Receive loop stopped")

    def _handle_frame(self, frame: Frame) -> None:
        config = self._session.config

        if frame.kind == Kind.CHAT_RECV:
            line = format_chat_line(
                frame.timestamp,
                frame.username,
                frame.body,
                config.local_username,
                config.quiet_mode,
            )
        elif frame.kind == Kind.SYSTEM:
            line = format_system_line(frame.body)
        elif frame.kind == Kind.DISCONNECT:
            logger.info("Server disconnected us: %s", frame.body)
            line = format_disconnect_line(frame.body)
            self.disconnect_notice = line
            self.state = ReceiveState.DRAINING
            self._session.request_shutdown()
        else:
            logger.debug("Ignoring frame of kind %s", frame.kind)
            return

        self._message_log.append(line)
        self._renderer.line_added(line)
