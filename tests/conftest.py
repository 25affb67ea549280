"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines the fakes (transport, scheduler, renderer) required for testing multiple layers.
"""

import json
from typing import Any, Callable, Optional

import pytest

from src.client.transport import OnFailure, OnMessage
from src.core.shared_types import MessageKind
from src.mill.board import BoardState
from src.mill.moves import Move
from src.mill.square import Square
from src.services.session_controller import SessionController


class RecordingTransport:
    """Stands in for the WebSocket: records what the session pushes into it"""

    def __init__(self, on_message: OnMessage, on_failure: OnFailure) -> None:
        self.on_message = on_message
        self.on_failure = on_failure
        self.opened = False
        self.close_calls = 0
        self.sent: list[str] = []

    def open(self) -> None:
        self.opened = True

    def send(self, payload: str) -> None:
        self.sent.append(payload)

    def close(self) -> None:
        self.close_calls += 1

    @property
    def sent_json(self) -> list[Any]:
        return [json.loads(payload) for payload in self.sent]


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deferred callbacks only run when the test says so (mimics the next turn of the event loop)"""

    def __init__(self) -> None:
        self.pending: list[tuple[ManualHandle, Callable[[], None]]] = []

    def call_soon(self, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle()
        self.pending.append((handle, callback))
        return handle

    def run_pending(self) -> None:
        batch, self.pending = self.pending, []
        for handle, callback in batch:
            if not handle.cancelled:
                callback()


class RecordingRenderer:
    def __init__(self) -> None:
        self.moves: list[Optional[Move]] = []
        self.highlights: list[list[Square]] = []
        self.messages: list[tuple[MessageKind, Optional[str]]] = []

    def render_move(self, move: Optional[Move], board: BoardState) -> None:
        self.moves.append(move)

    def render_legal_highlight(self, squares: list[Square]) -> None:
        self.highlights.append(list(squares))

    def display_message(self, kind: MessageKind, detail: Optional[str] = None) -> None:
        self.messages.append((kind, detail))

    @property
    def message_kinds(self) -> list[MessageKind]:
        return [kind for kind, _ in self.messages]


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def transports() -> list[RecordingTransport]:
    """Every transport the controller created, in order"""
    return []


@pytest.fixture
def controller(
    renderer: RecordingRenderer,
    scheduler: ManualScheduler,
    transports: list[RecordingTransport],
) -> SessionController:
    def _factory(on_message: OnMessage, on_failure: OnFailure) -> RecordingTransport:
        transport = RecordingTransport(on_message, on_failure)
        transports.append(transport)
        return transport

    return SessionController(renderer, _factory, scheduler)
