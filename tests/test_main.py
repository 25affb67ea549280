"""Unit tests for src/main.py"""

from unittest.mock import patch

import pytest

from src.client.render import LoggingRenderer
from src.core.config import load_settings
from src.main import build_parser, main


def test_parser_defaults_come_from_settings() -> None:
    settings = load_settings({"MILL_SERVER_URL": "ws://host:1234"})
    args = build_parser(settings).parse_args([])
    assert args.url == "ws://host:1234"
    assert args.play_black is None
    assert args.headless is False


@pytest.mark.parametrize("flag, expected", [("--black", True), ("--white", False)])
def test_color_flags(flag: str, expected: bool) -> None:
    args = build_parser(load_settings({})).parse_args([flag])
    assert args.play_black is expected


def test_only_one_color() -> None:
    with pytest.raises(SystemExit):
        build_parser(load_settings({})).parse_args(["--black", "--white"])


def test_main_runs_the_client_with_overrides() -> None:
    with patch("src.main.run_terminal_client") as run, patch("src.main.asyncio.run") as asyncio_run:
        main(["--url", "ws://other:7", "--white", "--log-level", "debug"])

    asyncio_run.assert_called_once()
    settings = run.call_args.args[0]
    assert settings.server_url == "ws://other:7"
    assert settings.log_level == "DEBUG"
    assert run.call_args.kwargs == {"play_black": False, "renderer": None}


def test_headless_uses_the_logging_renderer() -> None:
    with patch("src.main.run_terminal_client") as run, patch("src.main.asyncio.run"):
        main(["--headless", "--black"])

    assert isinstance(run.call_args.kwargs["renderer"], LoggingRenderer)


def test_invalid_environment_exits_with_the_variable_name(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("MILL_CONNECT_TIMEOUT_S", "soon")
    with patch("src.main.asyncio.run") as asyncio_run:
        with pytest.raises(SystemExit, match="MILL_CONNECT_TIMEOUT_S"):
            main([])
    asyncio_run.assert_not_called()
