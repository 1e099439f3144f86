"""
Chat Client Lifecycle

This module wires the connection, message log, renderer and the two loops
into one session.

Sequence:
    connect -> send login -> start receive loop -> (TUI) enter raw mode
    -> run input loop -> (TUI) leave raw mode -> send logout -> close
    -> join receive loop -> (TUI) repeat any disconnect notice

Usage:
    client = ChatClient(ClientConfig(local_username="bob", use_tui=True))
    client.run()
"""

import logging
from typing import Callable, Optional

from .connection import Connection
from .input_loop import InputLoop, StdinReader
from .message_log import MessageLog
from .protocol import Frame, Kind
from .receiver import ReceiveLoop
from .renderer import PlainRenderer, Renderer, TerminalRenderer
from .session import ClientConfig, Session

logger = logging.getLogger(__name__)

# Seconds to wait for the receive thread after the socket is closed
RECEIVE_JOIN_TIMEOUT = 5.0


class ChatClient:
    """
    One chat session from login to logout.

    Attributes:
        config: Startup configuration
        session: Shared running flag and configuration
        connection: Connection to the server
        message_log: Bounded log of display lines
        renderer: TerminalRenderer in TUI mode, PlainRenderer otherwise
    """

    def __init__(
        self,
        config: ClientConfig,
        connection: Optional[Connection] = None,
        renderer: Optional[Renderer] = None,
        message_log: Optional[MessageLog] = None,
        read_byte: Optional[Callable[[], bytes]] = None,
    ):
        """
        Initialize the chat client.

        Args:
            config: Startup configuration
            connection: Optional pre-built connection (for testing)
            renderer: Optional renderer replacing the one chosen by
                      config.use_tui (for testing)
            message_log: Optional log shared with a custom renderer
            read_byte: Optional keystroke source (default: stdin)
        """
        self.config = config
        self.session = Session(config)
        if message_log is None:
            message_log = MessageLog(config.log_capacity)
        self.message_log = message_log
        self.connection = connection or Connection(
            config.server_address,
            config.server_port,
            timeout=config.connect_timeout,
        )

        if renderer is None:
            if config.use_tui:
                renderer = TerminalRenderer(self.message_log)
            else:
                renderer = PlainRenderer()
        self.renderer = renderer

        self.receiver = ReceiveLoop(
            self.connection, self.session, self.message_log, self.renderer
        )
        self.input_loop = InputLoop(
            self.connection,
            self.session,
            self.renderer,
            read_byte or StdinReader(self.session),
        )
        self._started = False
        self._shut_down = False

    def start(self) -> None:
        """
        Connect, log in and start the receive loop.

        Raises:
            ConnectionError: If the connection or the login fails
        """
        if not self.connection.is_connected:
            self.connection.connect()
        self.connection.send(
            Frame.outgoing(Kind.LOGIN, self.config.local_username)
        )
        logger.info("Logged in as %s", self.config.local_username)

        self.receiver.start()
        self._started = True

    def run(self) -> None:
        """
        Run a full session: start, read input until the session ends,
        then shut down.

        Raises:
            ConnectionError: If the connection or the login fails
        """
        try:
            self.start()
            if isinstance(self.renderer, TerminalRenderer):
                with self.renderer.interactive():
                    self.renderer.redraw()
                    self.input_loop.run()
            else:
                self.input_loop.run()
        finally:
            self.shutdown()
            self._show_disconnect_notice()

    def _show_disconnect_notice(self) -> None:
        # Leaving full-screen mode clears the screen, notice included
        notice = self.receiver.disconnect_notice
        if notice is not None and isinstance(self.renderer, TerminalRenderer):
            self.renderer.write_line(notice)

    def request_shutdown(self) -> None:
        """End the session at the next check of the running flag."""
        self.session.request_shutdown()

    def shutdown(self) -> None:
        """
        Log out, close the connection and wait for the receive loop.

        Safe to call more than once.
        """
        if self._shut_down:
            return
        self._shut_down = True
        self.session.request_shutdown()

        if self.connection.is_connected:
            try:
                self.connection.send(
                    Frame.outgoing(Kind.LOGOUT, self.config.local_username)
                )
            except ConnectionError as e:
                logger.warning("Could not send logout: %s", e)
        self.connection.close()

        if self._started:
            self.receiver.join(RECEIVE_JOIN_TIMEOUT)
        logger.info("Session closed")
