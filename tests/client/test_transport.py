"""Tests for src/client/transport.py against an in-process aiohttp WebSocket server"""

import asyncio
from typing import Callable
from unittest.mock import patch

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from src.client.transport import OnFailure, OnMessage, Transport, WebSocketTransport
from src.core.exceptions import ConnectionFailureError
from src.core.shared_types import MessageKind, Phase
from src.services.session_controller import SessionController

from conftest import RecordingRenderer


async def _wait_until(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    async def poll() -> None:
        while not condition():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


def _echo_app(received: list[str]) -> web.Application:
    """Records every frame and answers each one with an empty legal set"""

    async def handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        async for message in ws:
            received.append(message.data)
            await ws.send_str('{"legal_moves": []}')
        return ws

    app = web.Application()
    app.router.add_get("/", handler)
    return app


def test_messages_queued_before_connect_are_delivered() -> None:
    received_by_server: list[str] = []
    inbox: list[str] = []
    failures: list[Exception] = []

    async def scenario() -> None:
        async with TestServer(_echo_app(received_by_server)) as server:
            got_reply = asyncio.Event()

            def on_message(raw: str) -> None:
                inbox.append(raw)
                got_reply.set()

            transport = WebSocketTransport(
                str(server.make_url("/")), on_message, failures.append
            )
            transport.open()
            transport.send('{"start": true}')
            await asyncio.wait_for(got_reply.wait(), timeout=5)

            transport.close()
            await asyncio.wait_for(transport.wait_closed(), timeout=5)

    asyncio.run(scenario())

    assert received_by_server == ['{"start": true}']
    assert inbox == ['{"legal_moves": []}']
    assert failures == []


def test_close_is_idempotent_and_drops_later_sends() -> None:
    failures: list[Exception] = []

    async def scenario() -> None:
        async with TestServer(_echo_app([])) as server:
            transport = WebSocketTransport(
                str(server.make_url("/")), lambda raw: None, failures.append
            )
            transport.open()
            transport.close()
            transport.close()
            transport.send('{"move": null}')
            await asyncio.wait_for(transport.wait_closed(), timeout=5)
            assert transport.is_closed

    asyncio.run(scenario())
    assert failures == []


def test_unreachable_server_reports_connection_failure() -> None:
    failures: list[Exception] = []

    async def scenario() -> None:
        # nothing listens on port 1
        transport = WebSocketTransport(
            "ws://127.0.0.1:1/", lambda raw: None, failures.append, connect_timeout_s=2
        )
        transport.open()
        await asyncio.wait_for(transport.wait_closed(), timeout=5)

    asyncio.run(scenario())

    assert len(failures) == 1
    assert isinstance(failures[0], ConnectionFailureError)


def test_server_hanging_up_is_a_connection_failure() -> None:
    failures: list[Exception] = []

    async def hang_up(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.close()
        return ws

    async def scenario() -> None:
        app = web.Application()
        app.router.add_get("/", hang_up)
        async with TestServer(app) as server:
            transport = WebSocketTransport(
                str(server.make_url("/")), lambda raw: None, failures.append
            )
            transport.open()
            await asyncio.wait_for(transport.wait_closed(), timeout=5)

    asyncio.run(scenario())

    assert len(failures) == 1
    assert isinstance(failures[0], ConnectionFailureError)


def test_failed_send_ends_the_connection() -> None:
    received_by_server: list[str] = []
    failures: list[Exception] = []

    async def scenario() -> None:
        async with TestServer(_echo_app(received_by_server)) as server:
            transport = WebSocketTransport(
                str(server.make_url("/")), lambda raw: None, failures.append
            )
            with patch.object(
                aiohttp.ClientWebSocketResponse,
                "send_str",
                side_effect=ConnectionResetError("connection reset"),
            ):
                transport.open()
                transport.send('{"start": true}')
                await asyncio.wait_for(transport.wait_closed(), timeout=5)
            assert transport.is_closed

    asyncio.run(scenario())

    assert received_by_server == []
    assert len(failures) == 1
    assert isinstance(failures[0], ConnectionFailureError)
    assert "connection reset" in str(failures[0])


def test_impossible_server_move_ends_the_session_with_an_error() -> None:
    """The board refuses to remove a piece that is not there: the session stops instead of drifting"""
    renderer = RecordingRenderer()

    async def answer_start(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        async for _ in ws:
            await ws.send_str(
                '{"move": {"square": [0, 0], "from_square": null, "remove_square": [2, 2]}}'
            )
        return ws

    async def scenario() -> SessionController:
        app = web.Application()
        app.router.add_get("/", answer_start)
        async with TestServer(app) as server:
            url = str(server.make_url("/"))

            def factory(on_message: OnMessage, on_failure: OnFailure) -> Transport:
                return WebSocketTransport(url, on_message, on_failure)

            controller = SessionController(
                renderer, factory, scheduler=asyncio.get_running_loop()
            )
            controller.start_game(play_black=False)
            await _wait_until(lambda: controller.phase == Phase.GAME_OVER)
            return controller

    controller = asyncio.run(scenario())

    assert controller.board.position == {}
    assert controller.session.transport is None
    assert renderer.moves == []
    assert renderer.messages[-1] == (
        MessageKind.ERROR,
        "No piece to remove on Square(ring=2, point=2).",
    )
