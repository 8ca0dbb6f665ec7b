"""Tests for the process entry point and runtime wiring."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bookfeed.app import main, read_instrument
from bookfeed.di import AppContainer, build_container
from bookfeed.runtime import run
from bookfeed.settings import Settings
from bookfeed.stream.errors import ResolutionError, SetupError
from bookfeed.stream.state import SessionState
from tests.conftest import FakeNetwork


@pytest.fixture(autouse=True)
def no_log_files():
    with patch("bookfeed.app.configure_logging"):
        yield


class TestStreamMode:
    """Tests for `bookfeed stream`."""

    def test_empty_instrument_fails_before_network(self):
        """Empty input exits non-zero and never starts the runtime."""
        with patch("bookfeed.app.run") as mock_run, patch("bookfeed.app.build_container") as mock_build:
            assert main(["stream", "--instrument", ""]) == 1

        mock_run.assert_not_called()
        mock_build.assert_not_called()

    def test_prompted_empty_instrument(self, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt="": "   ")
        with patch("bookfeed.app.run") as mock_run:
            assert main([]) == 1
        mock_run.assert_not_called()

    def test_prompt_eof_counts_as_empty(self, monkeypatch):
        def eof(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", eof)
        assert read_instrument() == ""

    def test_setup_error_exits_non_zero(self, tmp_path):
        with patch("bookfeed.app.build_container", side_effect=SetupError("cannot create TLS context")), \
                patch("bookfeed.app.run") as mock_run:
            code = main(["stream", "--instrument", "BTC-PERPETUAL", "--config", str(tmp_path / "none.yml")])

        assert code == 1
        mock_run.assert_not_called()

    def test_invalid_config_exits_non_zero(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("stream:\n  nope: 1\n", encoding="utf-8")

        assert main(["stream", "--instrument", "BTC-PERPETUAL", "--config", str(path)]) == 1

    def test_runs_until_session_ends(self, tmp_path):
        container = MagicMock()
        with patch("bookfeed.app.build_container", return_value=container), \
                patch("bookfeed.app.run", new_callable=AsyncMock) as mock_run:
            code = main(["stream", "--instrument", "BTC-PERPETUAL", "--config", str(tmp_path / "none.yml")])

        assert code == 0
        mock_run.assert_awaited_once_with(container, "BTC-PERPETUAL")

    def test_prompted_instrument_is_used(self, monkeypatch, tmp_path):
        monkeypatch.setattr("builtins.input", lambda prompt="": "ETH-PERPETUAL")
        with patch("bookfeed.app.build_container", return_value=MagicMock()), \
                patch("bookfeed.app.run", new_callable=AsyncMock) as mock_run:
            assert main(["stream", "--config", str(tmp_path / "none.yml")]) == 0

        assert mock_run.await_args.args[1] == "ETH-PERPETUAL"

    def test_instrument_used_as_read(self, monkeypatch, tmp_path):
        """Only blank input is refused; anything else is subscribed verbatim."""
        monkeypatch.setattr("builtins.input", lambda prompt="": " btc-perpetual ")
        with patch("bookfeed.app.build_container", return_value=MagicMock()), \
                patch("bookfeed.app.run", new_callable=AsyncMock) as mock_run:
            assert main(["stream", "--config", str(tmp_path / "none.yml")]) == 0

        assert mock_run.await_args.args[1] == " btc-perpetual "

    def test_other_commands_go_to_cli(self):
        with patch("bookfeed.cli.run_cli") as mock_cli:
            assert main(["order-book", "BTC-PERPETUAL"]) == 0
        mock_cli.assert_called_once_with(["order-book", "BTC-PERPETUAL"])


class TestContainer:
    """Tests for build_container."""

    def test_builds_tls_context(self):
        container = build_container(Settings())

        assert isinstance(container, AppContainer)
        assert container.ssl_context.check_hostname is True

    def test_bad_ca_file_is_setup_error(self, tmp_path):
        settings = Settings.model_validate({"stream": {"ca_file": str(tmp_path / "missing.pem")}})

        with pytest.raises(SetupError):
            build_container(settings)

    def test_create_session_uses_stream_settings(self):
        settings = Settings.model_validate({"stream": {"host": "test.deribit.com", "port": 8443}})
        session = build_container(settings).create_session("BTC-PERPETUAL")

        assert (session.host, session.port, session.instrument) == ("test.deribit.com", 8443, "BTC-PERPETUAL")
        assert session.state is SessionState.INIT


class TestRuntime:
    """Tests for runtime.run."""

    @pytest.mark.asyncio
    async def test_run_returns_failed_session(self, sink, error_sink):
        """The runtime returns once the session reaches its terminal failure."""
        from bookfeed.stream.client import OrderBookStreamer

        network = FakeNetwork()
        network.resolve.error = ResolutionError("Name or service not known")
        container = build_container(Settings(), sink=sink)
        container.error_sink = error_sink
        streamer = OrderBookStreamer(
            resolver=network.resolver,
            connector=network.connector,
            negotiator=network.negotiator,
            handshaker=network.handshaker,
            sink=sink,
            error_sink=error_sink,
        )

        with patch.object(AppContainer, "create_streamer", return_value=streamer):
            session = await run(container, "BTC-PERPETUAL")

        assert session.failure.stage == "resolve"
        assert error_sink.reports == [("resolve", "Name or service not known")]
        assert network.connect.calls == []
