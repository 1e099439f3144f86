"""
Tests for the Chat Client Lifecycle

End-to-end tests against a peer on the other end of a socket pair:
- Login, chat and logout ordering
- Inbound chat rendered while the user types
- Server-initiated disconnect
- Idempotent shutdown
"""

import io
import os
import socket
import threading
import time

import pytest

from termchat import (
    FRAME_SIZE,
    ChatClient,
    ClientConfig,
    Connection,
    Frame,
    Kind,
    MessageLog,
    PlainRenderer,
    ReceiveState,
    TerminalRenderer,
    encode_frame,
)
from termchat.formatting import format_disconnect_line, format_timestamp
from termchat.renderer import CLEAR_SCREEN


class EventRenderer(PlainRenderer):
    """Plain renderer that signals when a line arrives."""

    def __init__(self):
        self.output = io.StringIO()
        super().__init__(output=self.output)
        self.line_seen = threading.Event()

    def line_added(self, line):
        super().line_added(line)
        self.line_seen.set()


def read_frames(sock):
    """Read frames from the peer socket until it is closed."""
    data = b""
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        data += chunk
    return [
        Frame.decode(data[i : i + FRAME_SIZE])
        for i in range(0, len(data) - FRAME_SIZE + 1, FRAME_SIZE)
    ]


@pytest.fixture
def socket_pair():
    client_sock, server_sock = socket.socketpair()
    yield client_sock, server_sock
    client_sock.close()
    server_sock.close()


def make_client(client_sock, read_byte, renderer=None, username="bob"):
    connection = Connection("localhost", 8080)
    connection._set_test_mode(mock_socket=client_sock)
    config = ClientConfig(local_username=username)
    return ChatClient(
        config,
        connection=connection,
        renderer=renderer or EventRenderer(),
        read_byte=read_byte,
    )


def keys_after(event, keys):
    """Keystroke source that waits for event before yielding keys."""
    stream = io.BytesIO(keys)

    def read_byte():
        event.wait(timeout=5)
        return stream.read(1)

    return read_byte


class TestLifecycle:
    """Tests for the order of frames sent by a session."""

    def test_login_chat_logout(self, socket_pair):
        """Test that a session sends login, chat, then logout."""
        client_sock, server_sock = socket_pair
        stream = io.BytesIO(b"hello\n")
        client = make_client(client_sock, lambda: stream.read(1))

        client.run()

        frames = read_frames(server_sock)
        assert [f.kind for f in frames] == [
            Kind.LOGIN,
            Kind.CHAT_SEND,
            Kind.LOGOUT,
        ]
        assert frames[0].username == "bob"
        assert frames[1].body == "hello"
        assert client.receiver.state is ReceiveState.STOPPED
        assert not client.connection.is_connected
        assert not client.session.running

    def test_inbound_chat_is_rendered(self, socket_pair):
        """Test that a chat frame from the peer reaches the log."""
        client_sock, server_sock = socket_pair
        renderer = EventRenderer()
        client = make_client(
            client_sock, keys_after(renderer.line_seen, b""), renderer
        )
        server_sock.sendall(
            encode_frame(
                Frame(
                    kind=Kind.CHAT_RECV,
                    timestamp=1700000000,
                    username="carol",
                    body="hello",
                )
            )
        )

        client.run()

        expected = f"[{format_timestamp(1700000000)}] carol: hello"
        assert client.message_log.snapshot(10) == [expected]
        assert renderer.output.getvalue() == expected + "\n"

    def test_server_disconnect_ends_session(self, socket_pair):
        """Test that a disconnect notice stops both loops."""
        client_sock, server_sock = socket_pair
        client = None

        def read_byte():
            while client.session.running:
                time.sleep(0.01)
            return b""

        client = make_client(client_sock, read_byte)
        server_sock.sendall(
            encode_frame(
                Frame(kind=Kind.DISCONNECT, body="server shutting down")
            )
        )

        client.run()

        lines = client.message_log.snapshot(10)
        assert len(lines) == 1
        assert "server shutting down" in lines[0]
        assert client.receiver.state is ReceiveState.STOPPED
        assert client.session.running is False
        assert read_frames(server_sock)[-1].kind is Kind.LOGOUT

    def test_peer_close_ends_session(self, socket_pair):
        """Test that the peer hanging up ends the session silently."""
        client_sock, server_sock = socket_pair
        client = None

        def read_byte():
            while client.session.running:
                time.sleep(0.01)
            return b""

        client = make_client(client_sock, read_byte)
        server_sock.shutdown(socket.SHUT_WR)

        client.run()

        assert len(client.message_log) == 0
        assert client.receiver.state is ReceiveState.STOPPED


class TestShutdown:
    """Tests for shutdown and shutdown requests."""

    def test_shutdown_is_idempotent(self, socket_pair):
        """Test that a second shutdown sends nothing more."""
        client_sock, server_sock = socket_pair
        client = make_client(client_sock, lambda: b"")
        client.start()

        client.shutdown()
        client.shutdown()

        kinds = [f.kind for f in read_frames(server_sock)]
        assert kinds == [Kind.LOGIN, Kind.LOGOUT]

    def test_request_shutdown_clears_running(self, socket_pair):
        """Test that a shutdown request only flips the flag."""
        client_sock, _ = socket_pair
        client = make_client(client_sock, lambda: b"")

        client.request_shutdown()

        assert client.session.running is False
        assert client.connection.is_connected

    def test_connect_failure_propagates(self):
        """Test that a refused connection raises ConnectionError."""

        def factory(address, timeout):
            raise ConnectionRefusedError("refused")

        config = ClientConfig(local_username="bob")
        connection = Connection("localhost", 1, socket_factory=factory)
        client = ChatClient(
            config,
            connection=connection,
            renderer=EventRenderer(),
            read_byte=lambda: b"",
        )

        with pytest.raises(ConnectionError):
            client.run()
        assert client.receiver.state is ReceiveState.RUNNING


class TestRendererSelection:
    """Tests for choosing a renderer from the configuration."""

    def test_tui_config_uses_terminal_renderer(self):
        """Test that use_tui selects the full-screen renderer."""
        client = ChatClient(
            ClientConfig(local_username="bob", use_tui=True),
            read_byte=lambda: b"",
        )
        assert isinstance(client.renderer, TerminalRenderer)
        assert client.renderer.message_log is client.message_log

    def test_plain_config_uses_plain_renderer(self):
        """Test that plain mode prints lines."""
        client = ChatClient(
            ClientConfig(local_username="bob"), read_byte=lambda: b""
        )
        assert isinstance(client.renderer, PlainRenderer)

    def test_tui_session_over_socketpair(self, socket_pair):
        """Test a full-screen session on a non-tty input."""
        client_sock, server_sock = socket_pair
        output = io.StringIO()
        connection = Connection("localhost", 8080)
        connection._set_test_mode(mock_socket=client_sock)
        log = MessageLog()
        read_fd, write_fd = socket.socketpair()
        try:
            renderer = TerminalRenderer(
                log, output=output, input_fd=read_fd.fileno(), rows=10
            )
            client = ChatClient(
                ClientConfig(local_username="bob", use_tui=True),
                connection=connection,
                renderer=renderer,
                message_log=log,
                read_byte=lambda: b"",
            )

            client.run()
        finally:
            read_fd.close()
            write_fd.close()

        assert "> " in output.getvalue()
        kinds = [f.kind for f in read_frames(server_sock)]
        assert kinds == [Kind.LOGIN, Kind.LOGOUT]

    def test_tui_disconnect_notice_survives_exit(self, socket_pair):
        """Test that the notice is still on screen after the TUI exits."""
        client_sock, server_sock = socket_pair
        output = io.StringIO()
        connection = Connection("localhost", 8080)
        connection._set_test_mode(mock_socket=client_sock)
        log = MessageLog()
        read_fd, write_fd = os.pipe()
        client = None

        def read_byte():
            while client.session.running:
                time.sleep(0.01)
            return b""

        try:
            renderer = TerminalRenderer(
                log, output=output, input_fd=read_fd, rows=10
            )
            client = ChatClient(
                ClientConfig(local_username="bob", use_tui=True),
                connection=connection,
                renderer=renderer,
                message_log=log,
                read_byte=read_byte,
            )
            server_sock.sendall(
                encode_frame(
                    Frame(kind=Kind.DISCONNECT, body="server shutting down")
                )
            )

            client.run()
        finally:
            os.close(read_fd)
            os.close(write_fd)

        after_clear = output.getvalue().rsplit(CLEAR_SCREEN, 1)[-1]
        assert "server shutting down" in after_clear
        notice = format_disconnect_line("server shutting down")
        assert after_clear.endswith(notice + "\n")
