"""Command line entry point: play a game of mill against the server from a terminal."""

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import Optional, Sequence

from src.client.render import LoggingRenderer
from src.client.runner import run_terminal_client
from src.core.config import Settings, load_settings
from src.core.exceptions import ConfigurationError


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Terminal client for a game of mill (Nine Men's Morris)."
    )
    parser.add_argument(
        "--url", default=settings.server_url, help="WebSocket URL of the game server"
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="report moves and status through the log instead of drawing the board",
    )
    color = parser.add_mutually_exclusive_group()
    color.add_argument(
        "--black", dest="play_black", action="store_const", const=True, default=None
    )
    color.add_argument("--white", dest="play_black", action="store_const", const=False)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        raise SystemExit(f"mill-client: {e}") from e
    args = build_parser(settings).parse_args(argv)
    settings = replace(settings, server_url=args.url, log_level=args.log_level)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    renderer = LoggingRenderer() if args.headless else None
    asyncio.run(
        run_terminal_client(settings, play_black=args.play_black, renderer=renderer)
    )


if __name__ == "__main__":
    main()
