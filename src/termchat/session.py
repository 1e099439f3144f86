"""
Session Configuration and Shared State

Holds the startup configuration of the client and the running flag that
both loops read and that any party may clear to end the session.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .message_log import DEFAULT_CAPACITY
from .protocol import MAX_USERNAME_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080


@dataclass
class ClientConfig:
    """
    Startup configuration for a chat session.

    Attributes:
        local_username: Name sent with the login frame
        server_address: Server host name or address
        server_port: Server TCP port
        use_tui: Full-screen terminal UI instead of a plain scrolling log
        quiet_mode: Disable mention highlighting and the bell
        log_capacity: Number of lines kept for scrollback
        connect_timeout: Connect timeout in seconds, None blocks
    """

    local_username: str
    server_address: str = DEFAULT_HOST
    server_port: int = DEFAULT_PORT
    use_tui: bool = False
    quiet_mode: bool = False
    log_capacity: int = DEFAULT_CAPACITY
    connect_timeout: Optional[float] = None

    def __post_init__(self):
        if not self.local_username:
            raise ValueError("username must not be empty")
        if len(self.local_username.encode("utf-8")) > MAX_USERNAME_LENGTH:
            raise ValueError(
                f"username must be at most {MAX_USERNAME_LENGTH} bytes"
            )
        if not 0 < self.server_port < 65536:
            raise ValueError(f"invalid port: {self.server_port}")


class Session:
    """
    State shared by the loops of one chat session.

    The running flag starts set and is cleared exactly once; clearing it
    again is a no-op.

    Attributes:
        config: Startup configuration
    """

    def __init__(self, config: ClientConfig):
        self.config = config
        self._stopped = threading.Event()

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    @property
    def username(self) -> str:
        return self.config.local_username

    def request_shutdown(self) -> None:
        """Clear the running flag. Does not touch the socket."""
        if not self._stopped.is_set():
            logger.info("Shutdown requested")
        self._stopped.set()
