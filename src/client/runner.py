"""
Terminal front end: wires stdin, the WebSocket transport and a terminal renderer to a SessionController.

Commands (one per line):
* "<ring> <point>" (or "<ring>:<point>") select a point on the board
* "start black" / "start white"
* "reset"
* "quit"
"""

import asyncio
import logging
import sys
from typing import Optional, TextIO

from src.client.render import Renderer, TerminalRenderer
from src.client.transport import OnFailure, OnMessage, Transport, WebSocketTransport
from src.core.config import Settings
from src.core.events import Intent, ResetGame, SelectSquare, StartGame
from src.core.exceptions import MillClientError, SessionStateError
from src.core.shared_types import MessageKind
from src.mill.square import Square
from src.services.session_controller import SessionController

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("q", "quit", "exit")


def parse_command(line: str) -> Intent:
    """Translate one line typed by the user into an intent. Raises ValueError if it makes no sense."""
    words = line.replace(":", " ").replace(",", " ").split()
    if not words:
        raise ValueError("Empty command.")

    if words[0] == "start":
        if len(words) != 2 or words[1] not in ("black", "white"):
            raise ValueError("Usage: start black|white")
        return StartGame(play_black=words[1] == "black")

    if words[0] == "reset":
        return ResetGame()

    if len(words) == 2 and all(word.isdigit() for word in words):
        square = Square(int(words[0]), int(words[1]))
        if not square.is_within_bounds():
            raise ValueError(f"{square.ring}:{square.point} is not a point on the board.")
        return SelectSquare(square)

    raise ValueError(f"Unknown command: {line!r}")


async def run_terminal_client(
    settings: Settings,
    play_black: Optional[bool] = True,
    renderer: Optional[Renderer] = None,
    stdin: TextIO = sys.stdin,
) -> None:
    """Play until the user quits (or stdin closes). `play_black=None` waits for a 'start' command."""
    loop = asyncio.get_running_loop()
    renderer = renderer if renderer is not None else TerminalRenderer()

    def transport_factory(on_message: OnMessage, on_failure: OnFailure) -> Transport:
        return WebSocketTransport(
            settings.server_url,
            on_message,
            on_failure,
            connect_timeout_s=settings.connect_timeout_s,
        )

    controller = SessionController(renderer, transport_factory, scheduler=loop)
    if play_black is None:
        renderer.display_message(MessageKind.START)
    else:
        controller.dispatch(StartGame(play_black))

    try:
        while True:
            line = await asyncio.to_thread(stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            if line in QUIT_COMMANDS:
                break
            try:
                intent = parse_command(line)
                controller.dispatch(intent)
            except (ValueError, SessionStateError) as e:
                renderer.display_message(MessageKind.ERROR, str(e))
            except MillClientError as e:
                controller.abort(e)
    finally:
        controller.close()
        logger.info("Client stopped")
