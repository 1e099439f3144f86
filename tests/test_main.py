"""
Tests for the Command Line Entry Point

Tests for flag parsing, environment fallbacks and configuration errors.
"""

import signal

import pytest

from termchat import ChatClient, ClientConfig
from termchat.main import (
    build_config,
    install_signal_handlers,
    main,
    parse_args,
)


class TestParseArgs:
    """Tests for parse_args and build_config."""

    def test_defaults(self, monkeypatch):
        """Test the defaults with only USER set."""
        monkeypatch.setenv("USER", "bob")
        monkeypatch.delenv("TERMCHAT_HOST", raising=False)
        monkeypatch.delenv("TERMCHAT_PORT", raising=False)

        config = build_config(parse_args([]))

        assert config.local_username == "bob"
        assert config.server_address == "127.0.0.1"
        assert config.server_port == 8080
        assert config.use_tui is False
        assert config.quiet_mode is False
        assert config.connect_timeout is None

    def test_flags(self, monkeypatch):
        """Test that flags override the defaults."""
        monkeypatch.setenv("USER", "bob")
        args = parse_args(
            [
                "--tui",
                "--quiet",
                "--port",
                "9000",
                "--domain",
                "chat.example.org",
                "--username",
                "alice",
                "--connect-timeout",
                "2.5",
            ]
        )

        config = build_config(args)

        assert config == ClientConfig(
            local_username="alice",
            server_address="chat.example.org",
            server_port=9000,
            use_tui=True,
            quiet_mode=True,
            connect_timeout=2.5,
        )

    def test_environment_fallbacks(self, monkeypatch):
        """Test TERMCHAT_HOST and TERMCHAT_PORT."""
        monkeypatch.setenv("USER", "bob")
        monkeypatch.setenv("TERMCHAT_HOST", "10.0.0.5")
        monkeypatch.setenv("TERMCHAT_PORT", "7000")

        config = build_config(parse_args([]))

        assert config.server_address == "10.0.0.5"
        assert config.server_port == 7000

    def test_invalid_port_environment_is_a_usage_error(
        self, monkeypatch, capsys
    ):
        """Test that a non-numeric TERMCHAT_PORT exits with status 2."""
        monkeypatch.setenv("USER", "bob")
        monkeypatch.setenv("TERMCHAT_PORT", "abc")

        with pytest.raises(SystemExit) as exc_info:
            parse_args([])

        assert exc_info.value.code == 2
        assert "--port" in capsys.readouterr().err

    def test_port_flag_overrides_invalid_environment(self, monkeypatch):
        """Test that --port wins over a bad TERMCHAT_PORT."""
        monkeypatch.setenv("USER", "bob")
        monkeypatch.setenv("TERMCHAT_PORT", "abc")

        config = build_config(parse_args(["--port", "9000"]))

        assert config.server_port == 9000


class TestConfigValidation:
    """Tests for ClientConfig validation."""

    def test_empty_username_rejected(self):
        """Test that a username is required."""
        with pytest.raises(ValueError):
            ClientConfig(local_username="")

    def test_long_username_rejected(self):
        """Test that usernames must fit the frame field."""
        with pytest.raises(ValueError):
            ClientConfig(local_username="x" * 32)

    def test_bad_port_rejected(self):
        """Test that ports must be in range."""
        with pytest.raises(ValueError):
            ClientConfig(local_username="bob", server_port=70000)


class TestMain:
    """Tests for main()."""

    def test_missing_username_exits_with_error(self, monkeypatch, tmp_path):
        """Test that main reports an invalid configuration."""
        monkeypatch.delenv("USER", raising=False)
        status = main(["--log-file", str(tmp_path / "client.log")])
        assert status == 2

    def test_connection_refused_exits_with_error(
        self, monkeypatch, tmp_path, capsys
    ):
        """Test that main reports a failed connection."""

        def refuse(self):
            raise ConnectionError("Could not connect to 127.0.0.1:1")

        monkeypatch.setattr(ChatClient, "run", refuse)
        previous = {
            sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            status = main(
                [
                    "--username",
                    "bob",
                    "--port",
                    "1",
                    "--log-file",
                    str(tmp_path / "client.log"),
                ]
            )
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        assert status == 1
        assert "Could not connect" in capsys.readouterr().err


class TestSignalHandlers:
    """Tests for signal wiring."""

    def test_signal_requests_shutdown(self):
        """Test that the handler only flips the running flag."""
        client = ChatClient(
            ClientConfig(local_username="bob"), read_byte=lambda: b""
        )
        previous = signal.getsignal(signal.SIGTERM)
        previous_int = signal.getsignal(signal.SIGINT)
        try:
            install_signal_handlers(client)
            handler = signal.getsignal(signal.SIGTERM)
            handler(signal.SIGTERM, None)
        finally:
            signal.signal(signal.SIGTERM, previous)
            signal.signal(signal.SIGINT, previous_int)

        assert client.session.running is False
        assert not client.connection.is_connected
