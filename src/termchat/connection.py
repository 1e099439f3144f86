"""
Connection to the Chat Server

This module owns the stream socket to the server. It provides a blocking
send of whole frames and a blocking receive that always returns either a
complete frame or a closed signal.

Architecture:
    - Supports dependency injection for the socket factory (for testability)
    - The receive loop only reads and the input loop only writes, so the
      socket itself needs no locking
    - close() shuts the socket down first so a recv() blocked in another
      thread returns
"""

import logging
import socket
from typing import Callable, Optional

from .protocol import FRAME_SIZE, Frame, decode_frame, encode_frame

logger = logging.getLogger(__name__)


class Connection:
    """
    Stream socket connection speaking the fixed-size frame protocol.

    Attributes:
        host: Server host name or address
        port: Server TCP port
        timeout: Connect timeout in seconds, None blocks indefinitely
        sock: Active socket (None if not connected)
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        socket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the connection.

        Args:
            host: Server host name or address
            port: Server TCP port
            timeout: Connect timeout in seconds (None for no timeout)
            socket_factory: Optional replacement for socket.create_connection
                            (for dependency injection/testing)
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.sock: Optional[socket.socket] = None
        self._socket_factory = socket_factory or socket.create_connection

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_connected(self) -> bool:
        """Check if a socket is currently open."""
        return self.sock is not None

    def connect(self) -> None:
        """
        Open the stream socket to the server.

        Host names are resolved by the socket factory.

        Raises:
            ConnectionError: If the connection cannot be established
        """
        logger.info("Connecting to %s...", self.address)
        try:
            sock = self._socket_factory((self.host, self.port), self.timeout)
        except OSError as e:
            logger.error("Failed to connect to %s: %s", self.address, e)
            raise ConnectionError(
                f"Could not connect to {self.address}: {e}"
            ) from e

        # The timeout only applies to connect; reads and writes block
        sock.settimeout(None)
        self.sock = sock
        logger.info("Connected to %s", self.address)

    def send(self, frame: Frame) -> None:
        """
        Send one frame, blocking until it is fully written.

        Args:
            frame: Frame to send

        Raises:
            ConnectionError: If not connected or the write fails
        """
        sock = self.sock
        if sock is None:
            raise ConnectionError("Not connected to a server")

        try:
            sock.sendall(encode_frame(frame))
        except OSError as e:
            raise ConnectionError(
                f"Failed to send to {self.address}: {e}"
            ) from e
        logger.debug("Sent frame kind=%s", frame.kind)

    def receive_frame(self) -> Optional[Frame]:
        """
        Block until one complete frame has been read.

        Short reads are retried until FRAME_SIZE bytes have arrived.

        Returns:
            The decoded Frame, or None if the peer closed the connection
            (including part way through a frame)

        Raises:
            ConnectionError: If not connected or the read fails
        """
        sock = self.sock
        if sock is None:
            raise ConnectionError("Not connected to a server")

        buf = bytearray()
        while len(buf) < FRAME_SIZE:
            try:
                chunk = sock.recv(FRAME_SIZE - len(buf))
            except OSError as e:
                raise ConnectionError(
                    f"Failed to receive from {self.address}: {e}"
                ) from e
            if not chunk:
                if buf:
                    logger.warning(
                        "Connection closed mid-frame after %d of %d bytes",
                        len(buf),
                        FRAME_SIZE,
                    )
                return None
            buf.extend(chunk)

        return decode_frame(bytes(buf))

    def close(self) -> None:
        """
        Shut down and close the socket. Safe to call more than once.
        """
        sock, self.sock = self.sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # Already disconnected by the peer
            logger.debug("Socket shutdown failed: %s", e)
        sock.close()
        logger.info("Disconnected from %s", self.address)

    def _set_test_mode(self, mock_socket: object = None) -> None:
        """
        Attach an already-open socket-like object instead of connecting.

        Args:
            mock_socket: Required object with recv/sendall/shutdown/close

        Note: This should only be used in tests.

        Raises:
            ValueError: If mock_socket is not provided
        """
        if mock_socket is None:
            raise ValueError("_set_test_mode requires a mock_socket object")
        self.sock = mock_socket
